"""Core models and helpers exposed at the package level."""
from .comparator import Compare, Comparison, compare_values
from .models import (
    Declaration,
    ExecutionUnit,
    ExpectedOutcome,
    HookPhase,
    Implementation,
    Macro,
    Modifier,
    UnitKind,
    macro,
)
from .results import AssertionCounts, FailureRecord, SuiteResult, UnitResult, UnitStatus

__all__ = [
    "AssertionCounts",
    "Compare",
    "Comparison",
    "Declaration",
    "ExecutionUnit",
    "ExpectedOutcome",
    "FailureRecord",
    "HookPhase",
    "Implementation",
    "Macro",
    "Modifier",
    "SuiteResult",
    "UnitKind",
    "UnitResult",
    "UnitStatus",
    "compare_values",
    "macro",
]
