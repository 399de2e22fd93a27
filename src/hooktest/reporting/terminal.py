"""Terminal reporter rendering unit outcomes and summaries."""
from __future__ import annotations

import time
from typing import List, Sequence, Tuple

import click
from colorama import Fore, Style, init as colorama_init

from hooktest.core.comparator import format_value
from hooktest.core.models import UnitKind
from hooktest.core.results import FailureRecord, SuiteResult, UnitResult, UnitStatus

from .base import Reporter

_LABELS = {
    UnitStatus.PASSED: ("PASS", Fore.GREEN),
    UnitStatus.FAILED: ("FAIL", Fore.RED),
    UnitStatus.SKIPPED: ("SKIP", Fore.YELLOW),
    UnitStatus.TODO: ("TODO", Fore.BLUE),
}


class TerminalReporter(Reporter):
    """Human-readable reporter that streams to stdout."""

    def __init__(self, *, use_color: bool = True) -> None:
        self._use_color = use_color
        self._start_time = 0.0
        self._failures: List[Tuple[str, UnitResult]] = []
        if use_color:
            colorama_init()

    def on_run_start(self, sources: Sequence[str]) -> None:
        self._start_time = time.perf_counter()
        self._failures.clear()
        click.echo(self._styled(f"Running {len(sources)} suite(s)", Fore.CYAN))

    def on_suite_finished(self, result: SuiteResult, index: int, total: int) -> None:
        name = result.title or f"suite {index}"
        click.echo(f"[{index}/{total}] {name}")
        for unit in result.units:
            if unit.kind is UnitKind.HOOK and not unit.failed:
                continue
            click.echo(f"  {self._status(unit)} {unit.title} ({unit.duration_s * 1000:.2f} ms)")
            for value in unit.logs:
                click.echo(f"      log: {value if isinstance(value, str) else format_value(value)}")
            if unit.failed:
                self._failures.append((name, unit))
        if result.interrupted:
            click.echo(self._styled("  fail-fast: remaining tests were not run", Fore.YELLOW))

    def on_run_end(self, results: Sequence[SuiteResult]) -> None:
        duration = time.perf_counter() - self._start_time
        passed = sum(r.passed for r in results)
        failed = sum(r.failed for r in results)
        skipped = sum(r.skipped for r in results)
        todo = sum(r.todo for r in results)
        known = sum(r.known_failures for r in results)
        hooks_failed = sum(r.hooks_failed for r in results)
        color = Fore.GREEN if all(r.ok for r in results) else Fore.RED
        click.echo(
            self._styled(
                f"Summary: passed={passed} failed={failed} skipped={skipped} todo={todo} "
                f"known_failures={known} hooks_failed={hooks_failed} duration={duration:.2f}s",
                color,
            )
        )
        if self._failures:
            click.echo(self._styled("Failure details:", Fore.RED))
            for suite_name, unit in self._failures:
                click.echo(f"  {suite_name} > {unit.title}")
                for record in unit.failures:
                    self._print_failure(record, indent="    ")

    def _status(self, unit: UnitResult) -> str:
        label, color = _LABELS[unit.status]
        if unit.expected_failure and unit.passed:
            label = "XFAIL"
        return self._styled(f"{label:<5}", color)

    def _styled(self, text: str, color: str) -> str:
        if not self._use_color:
            return text
        return f"{color}{text}{Style.RESET_ALL}"

    def _print_failure(self, record: FailureRecord, *, indent: str) -> None:
        name = f" [{record.assertion}]" if record.assertion else ""
        click.echo(f"{indent}{record.kind}{name}: {record.message}")
        if record.diff:
            for line in record.diff.splitlines():
                click.echo(f"{indent}  {line}")
            return
        if record.actual is not None:
            click.echo(f"{indent}  actual: {format_value(record.actual)}")
        if record.expected is not None:
            click.echo(f"{indent}  expected: {format_value(record.expected)}")
