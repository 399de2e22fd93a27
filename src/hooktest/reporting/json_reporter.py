"""JSON reporter emitting structured suite results."""
from __future__ import annotations

import datetime as dt
import json
import pathlib
from typing import Any, Dict, List, Optional, Sequence

import click
from jsonschema import validate

from hooktest.core.comparator import format_value
from hooktest.core.results import FailureRecord, SuiteResult, UnitResult

from .base import Reporter
from .schema import JSON_SCHEMA_V1, SCHEMA_VERSION


class JsonReporter(Reporter):
    """Writes results as JSON validated against the schema; to stdout when no path is given."""

    def __init__(self, path: Optional[str] = None) -> None:
        self._path = pathlib.Path(path) if path else None
        self._records: List[Dict[str, Any]] = []

    def on_run_start(self, sources: Sequence[str]) -> None:
        self._records.clear()

    def on_suite_finished(self, result: SuiteResult, index: int, total: int) -> None:
        self._records.append(suite_to_dict(result))

    def on_run_end(self, results: Sequence[SuiteResult]) -> None:
        payload = build_payload(results, self._records)
        text = json.dumps(payload, indent=2)
        if self._path is None:
            click.echo(text)
            return
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(text, encoding="utf-8")
        except OSError as exc:  # pragma: no cover - filesystem protection
            raise RuntimeError(f"Failed to write JSON report to {self._path}: {exc}") from exc
        click.echo(f"JSON report written to {self._path}")


def build_payload(results: Sequence[SuiteResult], records: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    payload = {
        "schema_version": SCHEMA_VERSION,
        "generated_at": dt.datetime.now(dt.timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
        "summary": {
            "suites": len(results),
            "passed": sum(r.passed for r in results),
            "failed": sum(r.failed for r in results),
            "skipped": sum(r.skipped for r in results),
            "todo": sum(r.todo for r in results),
            "known_failures": sum(r.known_failures for r in results),
            "hooks_failed": sum(r.hooks_failed for r in results),
            "ok": all(r.ok for r in results),
        },
        "suites": records if records is not None else [suite_to_dict(r) for r in results],
    }
    validate(instance=payload, schema=JSON_SCHEMA_V1)
    return payload


def suite_to_dict(result: SuiteResult) -> Dict[str, Any]:
    return {
        "title": result.title,
        "interrupted": result.interrupted,
        "duration_s": result.duration_s,
        "assertions": {"passed": result.passed_assertions, "failed": result.failed_assertions},
        "units": [_unit_to_dict(unit) for unit in result.units],
    }


def _unit_to_dict(unit: UnitResult) -> Dict[str, Any]:
    return {
        "title": unit.title,
        "kind": unit.kind.value,
        "status": unit.status.value,
        "expected_failure": unit.expected_failure,
        "assertions": {
            "passed": unit.assertions.passed,
            "failed": unit.assertions.failed,
            "planned": unit.assertions.planned,
        },
        "failures": [_failure_to_dict(record) for record in unit.failures] if unit.failed else [],
        "logs": [value if isinstance(value, str) else format_value(value) for value in unit.logs],
        "duration_ms": unit.duration_s * 1000,
    }


def _failure_to_dict(record: FailureRecord) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "kind": record.kind,
        "message": record.message,
        "assertion": record.assertion,
        "diff": record.diff,
    }
    if record.actual is not None:
        data["actual"] = format_value(record.actual)
    if record.expected is not None:
        data["expected"] = format_value(record.expected)
    return data
