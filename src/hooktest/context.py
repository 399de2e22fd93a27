"""Execution context factory: the ``t`` object handed to every test and hook."""
from __future__ import annotations

import asyncio
import copy
import logging
from typing import Any, List, Optional

from hooktest.assertions import Assertions, MemorySnapshotStore, SnapshotStore
from hooktest.core.comparator import Compare, compare_values
from hooktest.core.errors import HookTestError, MultipleCallbackEnd
from hooktest.core.models import ExecutionUnit
from hooktest.core.results import FailureRecord

logger = logging.getLogger(__name__)


class CompletionLatch:
    """One-shot completion signal for cb units."""

    def __init__(self) -> None:
        self._future: Optional["asyncio.Future[Any]"] = None
        self.calls = 0
        self.expired = False

    @property
    def future(self) -> "asyncio.Future[Any]":
        if self._future is None:
            self._future = asyncio.get_running_loop().create_future()
        return self._future

    @property
    def fired(self) -> bool:
        return self._future is not None and self._future.done()

    @property
    def error(self) -> Any:
        if not self.fired:
            return None
        return self.future.result()

    def fire(self, error: Any = None) -> bool:
        """Resolve the latch; ``False`` when it had already been resolved."""

        self.calls += 1
        if self.future.done():
            return False
        self.future.set_result(error)
        return True

    async def wait(self, timeout: Optional[float]) -> Any:
        try:
            return await asyncio.wait_for(asyncio.shield(self.future), timeout)
        except asyncio.TimeoutError:
            self.expired = True
            raise


class ExecutionContext(Assertions):
    """Per-invocation state: assertions, ``context``, ``log``, ``plan`` and, for cb units, ``end``."""

    def __init__(
        self,
        unit: ExecutionUnit,
        context: Any = None,
        *,
        compare: Compare = compare_values,
        snapshots: Optional[SnapshotStore] = None,
        update_snapshots: bool = False,
        timeout: Optional[float] = None,
    ) -> None:
        super().__init__(
            title=unit.title,
            compare=compare,
            snapshots=snapshots,
            update_snapshots=update_snapshots,
            timeout=timeout,
        )
        self.unit = unit
        self.context = {} if context is None else context
        self._logs: List[Any] = []
        self._errors: List[FailureRecord] = []
        self._latch = CompletionLatch() if unit.cb else None

    def __repr__(self) -> str:
        return f"<ExecutionContext {self.title!r}>"

    @property
    def logs(self) -> List[Any]:
        return list(self._logs)

    @property
    def errors(self) -> List[FailureRecord]:
        return list(self._errors)

    @property
    def latch(self) -> Optional[CompletionLatch]:
        return self._latch

    @property
    def finished(self) -> bool:
        return self._finished

    def log(self, *values: Any) -> None:
        if self._finished:
            return
        self._logs.append(values[0] if len(values) == 1 else values)

    @property
    def end(self):
        if self._latch is None:
            raise HookTestError("t.end() is only available in cb units; declare the unit with .cb")
        return self._end

    def _end(self, error: Any = None) -> None:
        latch = self._latch
        assert latch is not None
        if latch.expired or self._finished:
            logger.warning("t.end() called after %r finished; ignored", self.title)
            return
        if latch.fire(error):
            return
        failure = MultipleCallbackEnd(f"t.end() called {latch.calls} times; it may only be called once")
        self._errors.append(FailureRecord.from_exception(failure, title=self.title))

    async def settle_pending(self) -> None:
        """Wait for asynchronous assertions that were never awaited by the unit itself."""

        while self._pending:
            pending, self._pending = self._pending, []
            await asyncio.gather(*pending, return_exceptions=True)

    def cancel_pending(self) -> None:
        for task in self._pending:
            task.cancel()
        self._pending = []

    def finish(self) -> None:
        self._finished = True


class ContextFactory:
    """Builds fresh execution contexts that share the run's collaborators."""

    def __init__(
        self,
        *,
        compare: Compare = compare_values,
        snapshots: Optional[SnapshotStore] = None,
        update_snapshots: bool = False,
        timeout: Optional[float] = None,
    ) -> None:
        self._compare = compare
        self._snapshots = snapshots if snapshots is not None else MemorySnapshotStore()
        self._update_snapshots = update_snapshots
        self._timeout = timeout

    def create(self, unit: ExecutionUnit, inherited_context: Any = None) -> ExecutionContext:
        return ExecutionContext(
            unit,
            inherited_context,
            compare=self._compare,
            snapshots=self._snapshots,
            update_snapshots=self._update_snapshots,
            timeout=self._timeout,
        )

    @staticmethod
    def branch(context: Any) -> Any:
        """Private copy of a shared baseline so sibling tests cannot see each other's mutations."""

        return copy.deepcopy(context)
