"""hooktest package initialization."""
from __future__ import annotations

import logging

from .api import Suite
from .assertions import ABSENT, MemorySnapshotStore, SnapshotStore, ThrowsExpectation
from .config import RunnerConfig, load_config
from .context import ExecutionContext
from .core import Macro, SuiteResult, UnitResult, UnitStatus, compare_values, macro
from .plan import Scheduler
from .version import __version__

__all__ = [
    "ABSENT",
    "ExecutionContext",
    "Macro",
    "MemorySnapshotStore",
    "RunnerConfig",
    "Scheduler",
    "SnapshotStore",
    "Suite",
    "SuiteResult",
    "ThrowsExpectation",
    "UnitResult",
    "UnitStatus",
    "__version__",
    "bootstrap",
    "compare_values",
    "load_config",
    "macro",
]

_BOOTSTRAPPED = False

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def bootstrap(*, verbose: bool = False) -> None:
    """Initialize logging for command line use (idempotent)."""

    global _BOOTSTRAPPED
    level = logging.DEBUG if verbose else logging.WARNING
    if _BOOTSTRAPPED:
        logging.getLogger("hooktest").setLevel(level)
        return
    logging.basicConfig(format=LOG_FORMAT)
    logging.getLogger("hooktest").setLevel(level)
    _BOOTSTRAPPED = True
