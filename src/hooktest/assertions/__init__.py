"""Assertion engine exports."""
from .engine import SKIPPED, Assertions, BoundAssertion, same_value
from .outcome import AssertionOutcome
from .snapshot import ABSENT, MemorySnapshotStore, SnapshotStore
from .throws import Expectation, ExpectationKind, SourceKind, ThrowsExpectation

__all__ = [
    "ABSENT",
    "AssertionOutcome",
    "Assertions",
    "BoundAssertion",
    "Expectation",
    "ExpectationKind",
    "MemorySnapshotStore",
    "SKIPPED",
    "SnapshotStore",
    "SourceKind",
    "ThrowsExpectation",
    "same_value",
]
