"""Assertion engine.

Every assertion records into the owning :class:`AssertionOutcome` and never
raises on failure: the unit keeps running and its outcome is decided at
finalization. Each assertion also exposes a ``.skip`` variant which performs
no comparison and leaves the counters untouched::

    t.is_(value, 3)
    t.deep_equal.skip(value, {"a": 1})
"""
from __future__ import annotations

import asyncio
import copy
import functools
import logging
import math
import re
from typing import Any, Callable, List, Optional

from hooktest.core.comparator import Compare, compare_values, format_diff
from hooktest.core.results import FailureRecord

from .outcome import AssertionOutcome
from .snapshot import ABSENT, MemorySnapshotStore, SnapshotStore
from .throws import (
    Expectation,
    SourceKind,
    check,
    classify,
    classify_source,
    discard,
    settle,
)

logger = logging.getLogger(__name__)

_SCALARS = (int, float, complex, str, bytes, bool, type(None))


def same_value(actual: Any, expected: Any) -> bool:
    """Identity for objects, type-and-value for immutable scalars.

    ``NaN`` is the same value as itself and ``0.0`` is not the same value as ``-0.0``.
    """

    if actual is expected:
        return True
    if type(actual) is not type(expected) or not isinstance(actual, _SCALARS):
        return False
    if isinstance(actual, float):
        if math.isnan(actual) and math.isnan(expected):
            return True
        return actual == expected and math.copysign(1.0, actual) == math.copysign(1.0, expected)
    if isinstance(actual, complex):
        return same_value(actual.real, expected.real) and same_value(actual.imag, expected.imag)
    return actual == expected


class _SkippedResult:
    """Returned by ``.skip`` variants so ``await t.throws.skip(...)`` stays valid."""

    def __await__(self):
        return iter(())

    def __repr__(self) -> str:
        return "<skipped assertion>"


SKIPPED = _SkippedResult()


class BoundAssertion:
    __slots__ = ("_owner", "_func", "name")

    def __init__(self, owner: "Assertions", func: Callable[..., Any], name: str) -> None:
        self._owner = owner
        self._func = func
        self.name = name

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self._func(self._owner, *args, **kwargs)

    def skip(self, *args: Any, **kwargs: Any) -> Any:
        for value in args:
            discard(value)
        logger.debug("Skipped assertion %s in %r", self.name, self._owner.title)
        return SKIPPED


class assertion:
    """Method decorator turning an assertion into a descriptor with a ``.skip`` variant."""

    def __init__(self, func: Callable[..., Any]) -> None:
        self._func = func
        self.name = func.__name__.rstrip("_")
        functools.update_wrapper(self, func)

    def __get__(self, instance: Optional["Assertions"], owner: Any = None) -> Any:
        if instance is None:
            return self
        return BoundAssertion(instance, self._func, self.name)


class Assertions:
    """Assertion methods bound to one outcome accumulator."""

    def __init__(
        self,
        *,
        title: str = "",
        outcome: Optional[AssertionOutcome] = None,
        compare: Compare = compare_values,
        snapshots: Optional[SnapshotStore] = None,
        update_snapshots: bool = False,
        timeout: Optional[float] = None,
    ) -> None:
        self._title = title
        self._outcome = outcome if outcome is not None else AssertionOutcome()
        self._compare = compare
        self._snapshots = snapshots if snapshots is not None else MemorySnapshotStore()
        self._update_snapshots = update_snapshots
        self._timeout = timeout
        self._snapshot_index = 0
        self._pending: List["asyncio.Future[Any]"] = []
        self._finished = False

    @property
    def title(self) -> str:
        return self._title

    @property
    def outcome(self) -> AssertionOutcome:
        return self._outcome

    # -- recording ---------------------------------------------------------

    def _inactive(self, name: str) -> bool:
        if self._finished:
            logger.warning("Assertion %s called after %r finished; ignored", name, self._title)
            return True
        return False

    def _pass(self) -> None:
        if self._inactive("pass"):
            return
        self._outcome.record_pass()

    def _fail(
        self,
        name: str,
        message: Optional[str],
        reason: str,
        *,
        actual: Any = None,
        expected: Any = None,
        diff: Optional[str] = None,
    ) -> None:
        if self._inactive(name):
            return
        text = f"{message} ({reason})" if message else reason
        self._outcome.record_failure(
            FailureRecord(
                kind="AssertionFailure",
                message=text,
                assertion=name,
                actual=actual,
                expected=expected,
                diff=diff,
                title=self._title,
            )
        )

    def _schedule(self, coro: Any) -> "asyncio.Future[Any]":
        task = asyncio.ensure_future(coro)
        self._pending.append(task)
        return task

    # -- counters ----------------------------------------------------------

    @assertion
    def pass_(self, message: Optional[str] = None) -> None:
        self._pass()

    @assertion
    def fail(self, message: Optional[str] = None) -> None:
        self._fail("fail", message, "Test failed via `t.fail()`")

    def plan(self, count: int) -> None:
        self._outcome.plan(count)

    # -- value assertions --------------------------------------------------

    @assertion
    def is_(self, actual: Any, expected: Any, message: Optional[str] = None) -> None:
        if same_value(actual, expected):
            self._pass()
            return
        self._fail(
            "is",
            message,
            "Values are not the same",
            actual=actual,
            expected=expected,
            diff=format_diff(actual, expected),
        )

    @assertion
    def not_(self, actual: Any, expected: Any, message: Optional[str] = None) -> None:
        if not same_value(actual, expected):
            self._pass()
            return
        self._fail("not", message, "Value is the same as the other value", actual=actual, expected=expected)

    @assertion
    def deep_equal(self, actual: Any, expected: Any, message: Optional[str] = None) -> None:
        comparison = self._compare(actual, expected)
        if comparison.equal:
            self._pass()
            return
        self._fail(
            "deep_equal",
            message,
            "Values are not deeply equal",
            actual=actual,
            expected=expected,
            diff=comparison.diff,
        )

    @assertion
    def not_deep_equal(self, actual: Any, expected: Any, message: Optional[str] = None) -> None:
        if not self._compare(actual, expected).equal:
            self._pass()
            return
        self._fail("not_deep_equal", message, "Values are deeply equal", actual=actual, expected=expected)

    @assertion
    def true(self, actual: Any, message: Optional[str] = None) -> None:
        if actual is True:
            self._pass()
        else:
            self._fail("true", message, "Value is not `True`", actual=actual, expected=True)

    @assertion
    def false(self, actual: Any, message: Optional[str] = None) -> None:
        if actual is False:
            self._pass()
        else:
            self._fail("false", message, "Value is not `False`", actual=actual, expected=False)

    @assertion
    def truthy(self, actual: Any, message: Optional[str] = None) -> None:
        if actual:
            self._pass()
        else:
            self._fail("truthy", message, "Value is not truthy", actual=actual)

    @assertion
    def falsy(self, actual: Any, message: Optional[str] = None) -> None:
        if not actual:
            self._pass()
        else:
            self._fail("falsy", message, "Value is not falsy", actual=actual)

    @assertion
    def regex(self, contents: Any, pattern: Any, message: Optional[str] = None) -> None:
        self._match("regex", contents, pattern, message, expect_match=True)

    @assertion
    def not_regex(self, contents: Any, pattern: Any, message: Optional[str] = None) -> None:
        self._match("not_regex", contents, pattern, message, expect_match=False)

    def _match(self, name: str, contents: Any, pattern: Any, message: Optional[str], *, expect_match: bool) -> None:
        if not isinstance(contents, str):
            self._fail(name, message, f"`t.{name}()` must be called with a string", actual=contents)
            return
        if not isinstance(pattern, (str, re.Pattern)):
            self._fail(name, message, f"`t.{name}()` must be called with a regular expression", actual=pattern)
            return
        matched = re.search(pattern, contents) is not None
        if matched == expect_match:
            self._pass()
            return
        reason = "String does not match the pattern" if expect_match else "String matches the pattern"
        self._fail(name, message, reason, actual=contents, expected=pattern)

    # -- throws / not_throws -----------------------------------------------

    @assertion
    def throws(self, source: Any, expectation: Any = None, message: Optional[str] = None) -> Any:
        """Assert that ``source`` raises, rejects or errors.

        ``source`` is a zero-argument callable (raising synchronously, or
        returning an awaitable / async iterable), or an awaitable / async
        iterable directly. Synchronous sources return the raised exception
        (``None`` on failure); asynchronous ones return a task resolving to it.
        """

        try:
            expected = Expectation.coerce(expectation)
        except ValueError as exc:
            discard(source)
            self._fail("throws", message, str(exc), actual=expectation)
            return None
        kind = classify_source(source)
        if kind is SourceKind.INVALID:
            self._fail(
                "throws",
                message,
                "`t.throws()` must be called with a function, an awaitable or an async iterable",
                actual=source,
            )
            return None
        if kind is SourceKind.SYNC:
            try:
                value = source()
            except Exception as exc:
                return exc if self._check_thrown("throws", exc, expected, message) else None
            kind = classify(value)
            if kind is SourceKind.INVALID:
                self._fail("throws", message, "Function returned without raising", actual=value)
                return None
            source = value
        return self._schedule(self._throws_async(source, kind, expected, message))

    async def _throws_async(self, value: Any, kind: SourceKind, expected: Expectation, message: Optional[str]) -> Any:
        try:
            error = await self._settle(value, kind)
        except asyncio.TimeoutError:
            self._fail("throws", message, f"Did not settle within {self._timeout}s", actual=value)
            return None
        if error is None:
            if kind is SourceKind.OBSERVABLE:
                reason = "Async iterable completed, but was expected to raise"
            else:
                reason = "Awaitable resolved, but was expected to raise"
            self._fail("throws", message, reason, actual=value)
            return None
        return error if self._check_thrown("throws", error, expected, message) else None

    def _check_thrown(self, name: str, error: BaseException, expected: Expectation, message: Optional[str]) -> bool:
        mismatch = check(error, expected)
        if mismatch is None:
            self._pass()
            return True
        reason, expected_value = mismatch
        self._fail(name, message, reason, actual=error, expected=expected_value)
        return False

    @assertion
    def not_throws(self, source: Any, message: Optional[str] = None) -> Any:
        """Assert that ``source`` completes without raising; mirrors :meth:`throws`."""

        kind = classify_source(source)
        if kind is SourceKind.INVALID:
            self._fail(
                "not_throws",
                message,
                "`t.not_throws()` must be called with a function, an awaitable or an async iterable",
                actual=source,
            )
            return None
        if kind is SourceKind.SYNC:
            try:
                value = source()
            except Exception as exc:
                self._fail("not_throws", message, f"Function raised {type(exc).__name__}: {exc}", actual=exc)
                return None
            kind = classify(value)
            if kind is SourceKind.INVALID:
                self._pass()
                return None
            source = value
        return self._schedule(self._not_throws_async(source, kind, message))

    async def _not_throws_async(self, value: Any, kind: SourceKind, message: Optional[str]) -> None:
        try:
            error = await self._settle(value, kind)
        except asyncio.TimeoutError:
            self._fail("not_throws", message, f"Did not settle within {self._timeout}s", actual=value)
            return None
        if error is None:
            self._pass()
        else:
            self._fail("not_throws", message, f"Awaitable raised {type(error).__name__}: {error}", actual=error)
        return None

    async def _settle(self, value: Any, kind: SourceKind) -> Optional[BaseException]:
        if self._timeout is None:
            return await settle(value, kind)
        return await asyncio.wait_for(settle(value, kind), self._timeout)

    # -- snapshot ----------------------------------------------------------

    @assertion
    def snapshot(self, value: Any, id: Optional[str] = None, message: Optional[str] = None) -> None:
        if id is None:
            self._snapshot_index += 1
            key = f"{self._title} {self._snapshot_index}"
        else:
            key = str(id)
        recorded = self._snapshots.get(key)
        if recorded is ABSENT or self._update_snapshots:
            logger.debug("Recording snapshot %r", key)
            self._snapshots.set(key, copy.deepcopy(value))
            self._pass()
            return
        comparison = self._compare(value, recorded)
        if comparison.equal:
            self._pass()
            return
        self._fail(
            "snapshot",
            message,
            f"Did not match snapshot {key!r}",
            actual=value,
            expected=recorded,
            diff=comparison.diff,
        )
