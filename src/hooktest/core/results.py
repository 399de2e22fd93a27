"""Result data structures produced by the scheduler."""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

from .errors import UnitError
from .models import UnitKind


class UnitStatus(str, enum.Enum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    TODO = "todo"


@dataclass(frozen=True)
class FailureRecord:
    """One failure, structured enough for a reporter to render."""

    kind: str
    message: str
    assertion: Optional[str] = None
    actual: Any = None
    expected: Any = None
    diff: Optional[str] = None
    title: Optional[str] = None
    error: Optional[BaseException] = None

    @classmethod
    def from_exception(cls, exc: BaseException, *, title: Optional[str] = None) -> "FailureRecord":
        if isinstance(exc, UnitError):
            return cls(kind=exc.kind, message=str(exc), title=title, error=exc)
        return cls(
            kind="UncaughtException",
            message=f"{type(exc).__name__}: {exc}",
            title=title,
            actual=exc,
            error=exc,
        )


@dataclass(frozen=True)
class AssertionCounts:
    passed: int = 0
    failed: int = 0
    planned: Optional[int] = None

    @property
    def total(self) -> int:
        return self.passed + self.failed


@dataclass(frozen=True)
class UnitResult:
    """Outcome of one test or hook invocation."""

    title: str
    status: UnitStatus
    kind: UnitKind = UnitKind.TEST
    assertions: AssertionCounts = field(default_factory=AssertionCounts)
    failures: Sequence[FailureRecord] = field(default_factory=tuple)
    logs: Sequence[Any] = field(default_factory=tuple)
    duration_s: float = 0.0
    expected_failure: bool = False

    @property
    def passed(self) -> bool:
        return self.status is UnitStatus.PASSED

    @property
    def failed(self) -> bool:
        return self.status is UnitStatus.FAILED


@dataclass
class SuiteResult:
    """Aggregate over every unit of one suite, built incrementally."""

    title: Optional[str] = None
    units: List[UnitResult] = field(default_factory=list)
    interrupted: bool = False
    duration_s: float = 0.0

    def add(self, result: UnitResult) -> None:
        self.units.append(result)

    @property
    def tests(self) -> List[UnitResult]:
        return [unit for unit in self.units if unit.kind is UnitKind.TEST]

    @property
    def hooks(self) -> List[UnitResult]:
        return [unit for unit in self.units if unit.kind is UnitKind.HOOK]

    def _count(self, status: UnitStatus) -> int:
        return sum(1 for unit in self.tests if unit.status is status)

    @property
    def passed(self) -> int:
        return self._count(UnitStatus.PASSED)

    @property
    def failed(self) -> int:
        return self._count(UnitStatus.FAILED)

    @property
    def skipped(self) -> int:
        return self._count(UnitStatus.SKIPPED)

    @property
    def todo(self) -> int:
        return self._count(UnitStatus.TODO)

    @property
    def known_failures(self) -> int:
        return sum(1 for unit in self.tests if unit.passed and unit.expected_failure)

    @property
    def hooks_failed(self) -> int:
        return sum(1 for unit in self.hooks if unit.failed)

    @property
    def passed_assertions(self) -> int:
        return sum(unit.assertions.passed for unit in self.units)

    @property
    def failed_assertions(self) -> int:
        return sum(unit.assertions.failed for unit in self.units)

    @property
    def failures(self) -> List[FailureRecord]:
        records: List[FailureRecord] = []
        for unit in self.units:
            if unit.failed:
                records.extend(unit.failures)
        return records

    @property
    def ok(self) -> bool:
        return self.failed == 0 and self.hooks_failed == 0

    def get(self, title: str) -> UnitResult:
        for unit in self.units:
            if unit.title == title:
                return unit
        raise KeyError(f"No unit titled '{title}' in suite result")
