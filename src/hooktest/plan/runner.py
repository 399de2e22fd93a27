"""Scheduler: runs hooks around tests and folds unit outcomes into a suite result."""
from __future__ import annotations

import asyncio
import fnmatch
import inspect
import logging
import time
from typing import Any, Dict, List, Optional, Sequence, Tuple

from hooktest.assertions import SnapshotStore
from hooktest.assertions.throws import discard, is_observable
from hooktest.config import RunnerConfig
from hooktest.context import ContextFactory, ExecutionContext
from hooktest.core.comparator import Compare, compare_values
from hooktest.core.errors import (
    CallbackError,
    CallbackNeverCalled,
    ExpectedFailureButPassed,
    HookFailure,
    HookTestError,
    NoAssertions,
    UnitError,
    UnitTimeout,
)
from hooktest.core.models import (
    Declaration,
    ExecutionUnit,
    ExpectedOutcome,
    HookPhase,
    Modifier,
    UnitKind,
)
from hooktest.core.results import AssertionCounts, FailureRecord, SuiteResult, UnitResult, UnitStatus
from hooktest.registry import DeclarationRegistry

logger = logging.getLogger(__name__)

Hooks = Dict[HookPhase, Tuple[ExecutionUnit, ...]]


async def _drain(source: Any) -> None:
    async for _ in source:
        pass


async def _within_deadline(awaitable: Any, timeout: Optional[float]) -> bool:
    """Await ``awaitable``; ``False`` (after cancelling it) when ``timeout`` expires first."""

    task = asyncio.ensure_future(awaitable)
    done, _ = await asyncio.wait({task}, timeout=timeout)
    if not done:
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        return False
    task.result()
    return True


class Scheduler:
    """Executes the plan of one :class:`DeclarationRegistry`.

    ``before`` hooks run once, in order, before any test; the first failure
    stops the suite. Each test runs inside its own ``before_each`` /
    ``after_each`` bracket with a private copy of the ``before`` context.
    Non-serial tests run concurrently (bounded by ``concurrency``); serial
    tests run one at a time in declaration order and may overlap with the
    concurrent ones. ``after`` hooks run once every test has settled.
    """

    def __init__(
        self,
        registry: DeclarationRegistry,
        config: Optional[RunnerConfig] = None,
        *,
        compare: Compare = compare_values,
        snapshots: Optional[SnapshotStore] = None,
    ) -> None:
        self._registry = registry
        self._config = config or RunnerConfig()
        self._factory = ContextFactory(
            compare=compare,
            snapshots=snapshots,
            update_snapshots=self._config.update_snapshots,
            timeout=self._config.timeout,
        )
        self._interrupted = False

    async def run(self) -> SuiteResult:
        start = time.perf_counter()
        self._interrupted = False
        result = SuiteResult(title=self._registry.name)
        plan = self._registry.build_plan()
        tests = [unit for unit in self._units(d for d in plan if not d.is_hook) if self._matches(unit.title)]
        hooks: Hooks = {
            phase: self._units(d for d in plan if d.is_hook and d.phase is phase) for phase in HookPhase
        }
        self._report_pending(result)

        if not tests:
            logger.info("No runnable tests in %s", self._registry.name or "suite")
            result.duration_s = time.perf_counter() - start
            return result

        context: Any = {}
        before_failed = False
        for unit in hooks[HookPhase.BEFORE]:
            unit_result, context = await self._run_unit(unit, context)
            result.add(unit_result)
            if unit_result.failed:
                logger.debug("before hook %r failed; no tests will run", unit.title)
                before_failed = True
                break

        started = 0
        if not before_failed:
            started = await self._run_tests(tests, hooks, context, result)
        await self._run_after_phase(hooks[HookPhase.AFTER], context, result, run_regular=started > 0)

        result.interrupted = self._interrupted
        result.duration_s = time.perf_counter() - start
        logger.info(
            "%s: %d passed, %d failed, %d skipped, %d todo in %.2fs",
            self._registry.name or "suite",
            result.passed,
            result.failed,
            result.skipped,
            result.todo,
            result.duration_s,
        )
        return result

    # -- planning ------------------------------------------------------------

    def _units(self, declarations: Any) -> Tuple[ExecutionUnit, ...]:
        return tuple(unit for declaration in declarations for unit in self._registry.units(declaration))

    def _matches(self, title: str) -> bool:
        patterns = self._config.match
        if not patterns:
            return True
        return any(fnmatch.fnmatchcase(title, pattern) for pattern in patterns)

    def _report_pending(self, result: SuiteResult) -> None:
        for declaration in self._registry.pending():
            for title, status in self._pending_entries(declaration):
                if self._matches(title):
                    result.add(UnitResult(title=title, status=status))

    def _pending_entries(self, declaration: Declaration) -> List[Tuple[str, UnitStatus]]:
        if declaration.has(Modifier.TODO):
            return [(declaration.title or "", UnitStatus.TODO)]
        return [(unit.title, UnitStatus.SKIPPED) for unit in self._registry.units(declaration)]

    # -- tests ---------------------------------------------------------------

    async def _run_tests(self, tests: Sequence[ExecutionUnit], hooks: Hooks, context: Any, result: SuiteResult) -> int:
        force_serial = self._config.serial
        serial = [unit for unit in tests if force_serial or unit.serial]
        concurrent = [unit for unit in tests if not (force_serial or unit.serial)]
        limit = self._config.concurrency
        semaphore = asyncio.Semaphore(limit) if limit > 0 else None
        started: List[bool] = []

        async def run_serial() -> None:
            for unit in serial:
                started.append(await self._run_test(unit, hooks, context, result))

        async def run_concurrent(unit: ExecutionUnit) -> None:
            if semaphore is None:
                started.append(await self._run_test(unit, hooks, context, result))
                return
            async with semaphore:
                started.append(await self._run_test(unit, hooks, context, result))

        await asyncio.gather(run_serial(), *(run_concurrent(unit) for unit in concurrent))
        return sum(started)

    async def _run_test(self, unit: ExecutionUnit, hooks: Hooks, base_context: Any, result: SuiteResult) -> bool:
        """Run one test inside its hook bracket; ``True`` when the body started."""

        if self._interrupted:
            return False
        context = self._factory.branch(base_context)
        hook_failure: Optional[UnitResult] = None
        for hook in hooks[HookPhase.BEFORE_EACH]:
            hook_result, context = await self._run_unit(hook.for_test(unit.title), context)
            result.add(hook_result)
            if hook_result.failed:
                hook_failure = hook_result
                break

        if hook_failure is None:
            test_result, context = await self._run_unit(unit, context)
        else:
            failure = HookFailure(f"{hook_failure.title} failed")
            test_result = UnitResult(
                title=unit.title,
                status=UnitStatus.FAILED,
                failures=(FailureRecord.from_exception(failure, title=unit.title),),
            )
        result.add(test_result)
        if test_result.failed and self._config.fail_fast and not self._interrupted:
            logger.debug("fail_fast: %r failed, not starting further tests", unit.title)
            self._interrupted = True

        each = tuple(hook.for_test(unit.title) for hook in hooks[HookPhase.AFTER_EACH])
        await self._run_after_phase(each, context, result)
        return hook_failure is None

    async def _run_after_phase(
        self,
        units: Sequence[ExecutionUnit],
        context: Any,
        result: SuiteResult,
        *,
        run_regular: bool = True,
    ) -> None:
        """Run after-family hooks in order; once one fails only ``.always`` hooks still run."""

        failed = False
        for unit in units:
            if not unit.always and (failed or not run_regular):
                continue
            unit_result, context = await self._run_unit(unit, context)
            result.add(unit_result)
            failed = failed or unit_result.failed

    # -- units ---------------------------------------------------------------

    async def _run_unit(self, unit: ExecutionUnit, context: Any) -> Tuple[UnitResult, Any]:
        ctx = self._factory.create(unit, context)
        logger.debug("Running %s %r", unit.kind.value, unit.title)
        start = time.perf_counter()
        error: Optional[BaseException] = None
        timeout_error: Optional[UnitError] = None
        try:
            if not await self._invoke(unit, ctx):
                timeout_error = self._timeout_error(unit, ctx)
        except Exception as exc:
            error = exc
        if error is None and timeout_error is None:
            await ctx.settle_pending()
        else:
            ctx.cancel_pending()
        ctx.finish()
        unit_result = self._finalize(unit, ctx, error, timeout_error, time.perf_counter() - start)
        logger.debug("Settled %s %r: %s", unit.kind.value, unit.title, unit_result.status.value)
        return unit_result, ctx.context

    async def _invoke(self, unit: ExecutionUnit, ctx: ExecutionContext) -> bool:
        """Run the unit body; ``False`` when the run's deadline expired first.

        Exceptions raised by the body, ``TimeoutError`` included, propagate.
        """

        timeout = self._config.timeout
        returned = unit.fn(ctx)
        if unit.cb:
            if inspect.isawaitable(returned) or is_observable(returned):
                discard(returned)
                raise HookTestError("cb units signal completion through t.end() and must not return an awaitable")
            assert ctx.latch is not None
            try:
                await ctx.latch.wait(timeout)
            except asyncio.TimeoutError:
                # the latch only ever holds a result, so this is the deadline
                return False
            return True
        if inspect.isawaitable(returned):
            return await _within_deadline(returned, timeout)
        if is_observable(returned):
            return await _within_deadline(_drain(returned), timeout)
        return True

    def _timeout_error(self, unit: ExecutionUnit, ctx: ExecutionContext) -> UnitError:
        timeout = self._config.timeout
        if unit.cb and ctx.latch is not None and not ctx.latch.fired:
            return CallbackNeverCalled(f"t.end() was never called within {timeout}s")
        return UnitTimeout(f"Did not complete within {timeout}s")

    def _finalize(
        self,
        unit: ExecutionUnit,
        ctx: ExecutionContext,
        error: Optional[BaseException],
        timeout_error: Optional[UnitError],
        duration: float,
    ) -> UnitResult:
        outcome = ctx.outcome
        failures: List[FailureRecord] = []
        if timeout_error is not None:
            # partial assertion state of a timed-out unit is discarded
            failures.append(FailureRecord.from_exception(timeout_error, title=unit.title))
            counts = AssertionCounts(planned=outcome.planned)
        else:
            failures.extend(outcome.errors)
            failures.extend(ctx.errors)
            if error is not None:
                failures.append(FailureRecord.from_exception(error, title=unit.title))
            latch = ctx.latch
            if latch is not None and latch.error is not None:
                callback_error = CallbackError(f"Callback called with an error: {latch.error!r}")
                failures.append(
                    FailureRecord(
                        kind=callback_error.kind,
                        message=str(callback_error),
                        actual=latch.error,
                        title=unit.title,
                        error=callback_error,
                    )
                )
            if error is None:
                plan_failure = outcome.plan_failure(unit.title)
                if plan_failure is not None:
                    failures.append(plan_failure)
            if (
                not failures
                and unit.kind is UnitKind.TEST
                and self._config.fail_without_assertions
                and outcome.total == 0
            ):
                failures.append(
                    FailureRecord.from_exception(
                        NoAssertions("Test finished without running any assertions"), title=unit.title
                    )
                )
            counts = outcome.counts()

        status = UnitStatus.FAILED if failures else UnitStatus.PASSED
        expected_failure = unit.expected_outcome is ExpectedOutcome.FAILING
        if expected_failure:
            if status is UnitStatus.FAILED:
                status = UnitStatus.PASSED
            else:
                status = UnitStatus.FAILED
                failures = [
                    FailureRecord.from_exception(
                        ExpectedFailureButPassed("Test was expected to fail, but passed"), title=unit.title
                    )
                ]
        return UnitResult(
            title=unit.title,
            status=status,
            kind=unit.kind,
            assertions=counts,
            failures=tuple(failures),
            logs=tuple(ctx.logs),
            duration_s=duration,
            expected_failure=expected_failure,
        )


async def run_registry(
    registry: DeclarationRegistry,
    config: Optional[RunnerConfig] = None,
    *,
    compare: Compare = compare_values,
    snapshots: Optional[SnapshotStore] = None,
) -> SuiteResult:
    return await Scheduler(registry, config, compare=compare, snapshots=snapshots).run()


def run_plan(
    registry: DeclarationRegistry,
    config: Optional[RunnerConfig] = None,
    *,
    compare: Compare = compare_values,
    snapshots: Optional[SnapshotStore] = None,
) -> SuiteResult:
    """Run the registry's plan on a fresh event loop."""

    return asyncio.run(run_registry(registry, config, compare=compare, snapshots=snapshots))
