import asyncio
import re

import pytest

from hooktest.assertions import SKIPPED, Assertions, same_value
from hooktest.core.errors import PlanAlreadySet


def test_same_value_semantics() -> None:
    nan = float("nan")
    assert same_value(nan, float("nan"))
    assert not same_value(0.0, -0.0)
    assert same_value("abc", "ab" + "c")
    assert not same_value(1, True)
    assert not same_value([], [])
    shared: list = []
    assert same_value(shared, shared)


def test_is_and_not_record_without_raising() -> None:
    t = Assertions(title="is")
    t.is_(float("nan"), float("nan"))
    t.is_(0.0, -0.0)
    t.is_([1], [1])
    t.not_(0.0, -0.0)
    t.not_(3, 3)
    assert t.outcome.passed == 2
    assert t.outcome.failed == 3
    assert [record.assertion for record in t.outcome.errors] == ["is", "is", "not"]


def test_failure_message_keeps_user_message_and_reason() -> None:
    t = Assertions(title="messages")
    t.is_(1, 2, "numbers differ")
    record = t.outcome.errors[0]
    assert record.kind == "AssertionFailure"
    assert record.message.startswith("numbers differ")
    assert record.actual == 1 and record.expected == 2
    assert record.title == "messages"
    assert record.diff


def test_true_false_are_strict_and_truthy_falsy_are_not() -> None:
    t = Assertions()
    t.true(1)
    t.truthy(1)
    t.false(0)
    t.falsy(0)
    t.true(True)
    t.false(False)
    assert t.outcome.passed == 4
    assert [record.assertion for record in t.outcome.errors] == ["true", "false"]


def test_deep_equal_and_not_deep_equal() -> None:
    t = Assertions()
    t.deep_equal({"a": [1, 2]}, {"a": [1, 2]})
    t.deep_equal({"a": [1, 2]}, {"a": [1, 3]})
    t.not_deep_equal([1], [2])
    t.not_deep_equal((1,), (1,))
    assert t.outcome.passed == 2
    failed = t.outcome.errors
    assert [record.assertion for record in failed] == ["deep_equal", "not_deep_equal"]
    assert "expected" in failed[0].diff


def test_regex_requires_strings_and_patterns() -> None:
    t = Assertions()
    t.regex("hello world", r"wor")
    t.regex("hello", re.compile(r"^h"))
    t.not_regex("hello", r"\d")
    t.regex("hello", r"\d")
    t.regex(42, r"4")
    t.not_regex("hello", 5)
    assert t.outcome.passed == 3
    reasons = [record.message for record in t.outcome.errors]
    assert reasons[0] == "String does not match the pattern"
    assert "must be called with a string" in reasons[1]
    assert "regular expression" in reasons[2]


def test_pass_and_fail() -> None:
    t = Assertions()
    t.pass_()
    t.fail("nope")
    assert t.outcome.passed == 1
    assert t.outcome.failed == 1
    assert t.outcome.errors[0].message.startswith("nope")


def test_skip_variants_leave_counters_untouched() -> None:
    t = Assertions()
    assert t.is_.skip(1, 2) is SKIPPED
    assert t.deep_equal.skip({}, {"a": 1}) is SKIPPED
    assert t.fail.skip() is SKIPPED

    async def reject() -> None:
        raise ValueError("boom")

    async def scenario() -> None:
        await t.throws.skip(reject())

    asyncio.run(scenario())
    assert t.outcome.total == 0


def test_plan_validation() -> None:
    t = Assertions()
    with pytest.raises(TypeError):
        t.plan("2")
    with pytest.raises(TypeError):
        t.plan(True)
    with pytest.raises(ValueError):
        t.plan(-1)
    t.plan(1)
    with pytest.raises(PlanAlreadySet):
        t.plan(1)


def test_plan_failure_only_on_mismatch() -> None:
    t = Assertions(title="planned")
    t.plan(2)
    t.pass_()
    record = t.outcome.plan_failure("planned")
    assert record is not None
    assert record.kind == "PlanMismatch"
    assert record.expected == 2 and record.actual == 1
    t.fail()
    assert t.outcome.plan_failure("planned") is None
