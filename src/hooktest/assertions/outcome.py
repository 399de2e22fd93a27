"""Per-context assertion accumulator."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from hooktest.core.errors import PlanAlreadySet, PlanMismatch
from hooktest.core.results import AssertionCounts, FailureRecord


@dataclass
class AssertionOutcome:
    """Counts and failure records accumulated by one execution context.

    Failures never unwind the unit; the plan is only checked in
    :meth:`plan_failure`, called once at finalization.
    """

    passed: int = 0
    failed: int = 0
    planned: Optional[int] = None
    errors: List[FailureRecord] = field(default_factory=list)

    def record_pass(self) -> None:
        self.passed += 1

    def record_failure(self, record: FailureRecord) -> None:
        self.failed += 1
        self.errors.append(record)

    def plan(self, count: int) -> None:
        if isinstance(count, bool) or not isinstance(count, int):
            raise TypeError(f"plan() expects an integer count, got {count!r}")
        if count < 0:
            raise ValueError(f"plan() expects a non-negative count, got {count}")
        if self.planned is not None:
            raise PlanAlreadySet(f"plan() was already called with {self.planned}; it can only be called once")
        self.planned = count

    @property
    def total(self) -> int:
        return self.passed + self.failed

    def plan_failure(self, title: Optional[str] = None) -> Optional[FailureRecord]:
        if self.planned is None or self.total == self.planned:
            return None
        error = PlanMismatch(f"Planned for {self.planned} assertion(s), but got {self.total}")
        return FailureRecord(
            kind=error.kind,
            message=str(error),
            assertion="plan",
            actual=self.total,
            expected=self.planned,
            title=title,
            error=error,
        )

    def counts(self) -> AssertionCounts:
        return AssertionCounts(passed=self.passed, failed=self.failed, planned=self.planned)
