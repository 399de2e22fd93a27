"""Scheduling of registered declarations."""
from .runner import Scheduler, run_plan, run_registry

__all__ = [
    "Scheduler",
    "run_plan",
    "run_registry",
]
