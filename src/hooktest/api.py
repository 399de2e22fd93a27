"""Declaration submission API.

A :class:`Suite` collects tests and hooks through chainable modifiers::

    test = Suite("math")

    @test.before
    def connect(t):
        t.context["db"] = make_db()

    @test.serial.failing("known bug")
    def known_bug(t):
        t.is_(compute(), 42)

    test("adds", add_macro, 1, 2, 3)
    test.todo("subtracts")
"""
from __future__ import annotations

from typing import Any, FrozenSet, Optional, Tuple

from hooktest.assertions import SnapshotStore
from hooktest.config import RunnerConfig
from hooktest.core.comparator import Compare, compare_values
from hooktest.core.errors import InvalidModifierCombination
from hooktest.core.models import Body, Declaration, HookPhase, Implementation, Macro, Modifier, UnitKind
from hooktest.core.results import SuiteResult
from hooktest.plan import run_plan, run_registry
from hooktest.registry import DeclarationRegistry

_MODIFIERS = {
    "serial": Modifier.SERIAL,
    "only": Modifier.ONLY,
    "skip": Modifier.SKIP,
    "failing": Modifier.FAILING,
    "cb": Modifier.CB,
    "always": Modifier.ALWAYS,
}

_PHASES = {
    "before": HookPhase.BEFORE,
    "before_each": HookPhase.BEFORE_EACH,
    "after_each": HookPhase.AFTER_EACH,
    "after": HookPhase.AFTER,
}


def _as_body(value: Any) -> Optional[Body]:
    if value is None:
        return None
    if isinstance(value, (Implementation, Macro)):
        return value
    if isinstance(value, (list, tuple)):
        return tuple(value)
    if callable(value):
        return Implementation(fn=value)
    # left for the registry to reject
    return value


def _split(args: Tuple[Any, ...]) -> Tuple[Optional[str], Any, Tuple[Any, ...], bool]:
    """Split call arguments into ``(title, implementation, macro_args, has_implementation)``."""

    title: Optional[str] = None
    rest = args
    if rest and (rest[0] is None or isinstance(rest[0], str)):
        title, rest = rest[0], rest[1:]
    if not rest:
        return title, None, tuple(), False
    return title, rest[0], tuple(rest[1:]), True


class _Builder:
    """Immutable chain of modifiers; calling it registers a declaration."""

    def __init__(
        self,
        registry: DeclarationRegistry,
        *,
        phase: Optional[HookPhase] = None,
        modifiers: FrozenSet[Modifier] = frozenset(),
    ) -> None:
        self._registry = registry
        self._phase = phase
        self._modifiers = modifiers

    def __repr__(self) -> str:
        chain = [self._phase.value] if self._phase else []
        chain.extend(sorted(m.value for m in self._modifiers))
        return f"<suite builder {'.'.join(chain) or 'test'}>"

    def __getattr__(self, name: str) -> "_Builder":
        if name in _MODIFIERS:
            return _Builder(self._registry, phase=self._phase, modifiers=self._modifiers | {_MODIFIERS[name]})
        if name in _PHASES and self._phase is None:
            return _Builder(self._registry, phase=_PHASES[name], modifiers=self._modifiers)
        raise AttributeError(name)

    def __call__(self, *args: Any) -> Any:
        title, impl, macro_args, has_impl = _split(args)
        if not has_impl:
            def decorator(fn: Any) -> Any:
                self._register(title, fn, tuple())
                return fn

            return decorator
        self._register(title, impl, macro_args)
        return impl

    def todo(self, title: str) -> Declaration:
        if self._phase is not None:
            raise InvalidModifierCombination("`.todo` is only valid on tests")
        declaration = Declaration(
            kind=UnitKind.TEST,
            title=title,
            modifiers=self._modifiers | {Modifier.TODO},
            phase=self._phase,
        )
        return self._registry.register(declaration)

    def _register(self, title: Optional[str], impl: Any, macro_args: Tuple[Any, ...]) -> Declaration:
        kind = UnitKind.HOOK if self._phase is not None else UnitKind.TEST
        declaration = Declaration(
            kind=kind,
            title=title,
            modifiers=self._modifiers,
            implementation=_as_body(impl),
            args=macro_args,
            phase=self._phase,
        )
        return self._registry.register(declaration)


class Suite:
    """One group of declarations sharing hooks, titles and a result."""

    def __init__(self, name: Optional[str] = None, *, registry: Optional[DeclarationRegistry] = None) -> None:
        self.registry = registry or DeclarationRegistry(name)
        self._root = _Builder(self.registry)

    def __repr__(self) -> str:
        return f"<Suite {self.name!r} declarations={len(self.registry)}>"

    @property
    def name(self) -> Optional[str]:
        return self.registry.name

    def __call__(self, *args: Any) -> Any:
        return self._root(*args)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return getattr(self._root, name)

    def todo(self, title: str) -> Declaration:
        return self._root.todo(title)

    def run(
        self,
        config: Optional[RunnerConfig] = None,
        *,
        compare: Compare = compare_values,
        snapshots: Optional[SnapshotStore] = None,
    ) -> SuiteResult:
        return run_plan(self.registry, config, compare=compare, snapshots=snapshots)

    async def run_async(
        self,
        config: Optional[RunnerConfig] = None,
        *,
        compare: Compare = compare_values,
        snapshots: Optional[SnapshotStore] = None,
    ) -> SuiteResult:
        return await run_registry(self.registry, config, compare=compare, snapshots=snapshots)
