"""Run lifecycle shared by every reporter."""
from __future__ import annotations

from typing import List, Sequence

from hooktest.core.results import SuiteResult


class Reporter:
    """Receives run events; subclasses override the ones they render."""

    def on_run_start(self, sources: Sequence[str]) -> None:
        pass

    def on_suite_finished(self, result: SuiteResult, index: int, total: int) -> None:
        pass

    def on_run_end(self, results: Sequence[SuiteResult]) -> None:
        pass


class ReportManager:
    """Fans run events out to reporters in registration order."""

    def __init__(self, reporters: Sequence[Reporter]) -> None:
        self._reporters = list(reporters)
        self._results: List[SuiteResult] = []

    def run_started(self, sources: Sequence[str]) -> None:
        self._results = []
        for reporter in self._reporters:
            reporter.on_run_start(sources)

    def suite_finished(self, result: SuiteResult, index: int, total: int) -> None:
        self._results.append(result)
        for reporter in self._reporters:
            reporter.on_suite_finished(result, index, total)

    def run_finished(self) -> Sequence[SuiteResult]:
        """Close the run for every reporter and return the collected suite results."""
        results = tuple(self._results)
        for reporter in self._reporters:
            reporter.on_run_end(results)
        return results
