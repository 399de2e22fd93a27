"""Reporting exports."""
from .base import ReportManager, Reporter
from .json_reporter import JsonReporter, build_payload
from .terminal import TerminalReporter

__all__ = [
    "JsonReporter",
    "ReportManager",
    "Reporter",
    "TerminalReporter",
    "build_payload",
]
