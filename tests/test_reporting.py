from __future__ import annotations

import json
from pathlib import Path

import jsonschema
import pytest

from hooktest import Suite, SuiteResult
from hooktest.reporting import JsonReporter, ReportManager, Reporter, TerminalReporter, build_payload
from hooktest.reporting.schema import JSON_SCHEMA_V1


def _mixed_result() -> SuiteResult:
    suite = Suite("mixed")

    @suite("passes")
    def passes(t) -> None:
        t.log("note")
        t.log({"k": 1})
        t.is_(1, 1)

    @suite("fails")
    def fails(t) -> None:
        t.deep_equal({"a": 1}, {"a": 2}, "dicts")

    suite.failing("known", lambda t: t.fail())
    suite.skip("skipped", lambda t: None)
    suite.todo("later")
    return suite.run()


def test_build_payload_matches_schema() -> None:
    result = _mixed_result()
    payload = build_payload([result])
    jsonschema.validate(payload, JSON_SCHEMA_V1)
    summary = payload["summary"]
    assert summary == {
        "suites": 1,
        "passed": 2,
        "failed": 1,
        "skipped": 1,
        "todo": 1,
        "known_failures": 1,
        "hooks_failed": 0,
        "ok": False,
    }
    units = {unit["title"]: unit for unit in payload["suites"][0]["units"]}
    assert units["passes"]["logs"] == ["note", "{'k': 1}"]
    failure = units["fails"]["failures"][0]
    assert failure["assertion"] == "deep_equal"
    assert failure["message"].startswith("dicts")
    assert failure["expected"] == "{'a': 2}"
    assert units["known"]["failures"] == []
    assert units["known"]["expected_failure"] is True


def test_json_reporter_writes_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    result = _mixed_result()
    output = tmp_path / "reports" / "report.json"
    manager = ReportManager([JsonReporter(str(output))])
    manager.run_started(["mixed.py"])
    manager.suite_finished(result, 1, 1)
    assert manager.run_finished() == (result,)
    data = json.loads(output.read_text(encoding="utf-8"))
    assert data["schema_version"] == "1.0.0"
    assert data["suites"][0]["title"] == "mixed"
    assert "JSON report written" in capsys.readouterr().out


def test_terminal_reporter_prints_units_and_failures(capsys: pytest.CaptureFixture[str]) -> None:
    result = _mixed_result()
    reporter = TerminalReporter(use_color=False)
    reporter.on_run_start(["mixed.py"])
    reporter.on_suite_finished(result, 1, 1)
    reporter.on_run_end([result])
    out = capsys.readouterr().out
    assert "Running 1 suite(s)" in out
    assert "PASS  passes" in out
    assert "FAIL  fails" in out
    assert "XFAIL known" in out
    assert "SKIP  skipped" in out
    assert "TODO  later" in out
    assert "log: note" in out
    assert "Summary: passed=2 failed=1 skipped=1 todo=1 known_failures=1" in out
    assert "Failure details:" in out
    assert "AssertionFailure [deep_equal]" in out


def test_report_manager_dispatches_the_run_lifecycle_in_order() -> None:
    events = []

    class Recording(Reporter):
        def on_run_start(self, sources) -> None:
            events.append(("start", tuple(sources)))

        def on_suite_finished(self, result, index, total) -> None:
            events.append(("suite", result.title, index, total))

    first, second = Suite("one").run(), Suite("two").run()
    manager = ReportManager([Recording(), Reporter()])
    manager.run_started(["a.py", "b.py"])
    manager.suite_finished(first, 1, 2)
    manager.suite_finished(second, 2, 2)
    assert manager.run_finished() == (first, second)
    assert events == [("start", ("a.py", "b.py")), ("suite", "one", 1, 2), ("suite", "two", 2, 2)]
