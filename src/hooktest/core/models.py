"""Core dataclasses describing declarations and their resolved execution units."""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Callable, FrozenSet, Optional, Sequence, Tuple, Union


class Modifier(str, enum.Enum):
    SERIAL = "serial"
    ONLY = "only"
    SKIP = "skip"
    TODO = "todo"
    FAILING = "failing"
    CB = "cb"
    ALWAYS = "always"


class UnitKind(str, enum.Enum):
    TEST = "test"
    HOOK = "hook"


class HookPhase(str, enum.Enum):
    BEFORE = "before"
    BEFORE_EACH = "before_each"
    AFTER_EACH = "after_each"
    AFTER = "after"


class ExpectedOutcome(str, enum.Enum):
    NORMAL = "normal"
    FAILING = "failing"
    TODO = "todo"
    SKIP = "skip"


@dataclass(frozen=True)
class Implementation:
    """A plain test or hook body: ``fn(t, *args)``."""

    fn: Callable[..., Any]

    def __call__(self, t: Any, *args: Any) -> Any:
        return self.fn(t, *args)


@dataclass(frozen=True)
class Macro:
    """A reusable implementation that may derive its own title."""

    fn: Callable[..., Any]
    title: Optional[Callable[..., str]] = None

    def __call__(self, t: Any, *args: Any) -> Any:
        return self.fn(t, *args)

    @property
    def name(self) -> str:
        return getattr(self.fn, "__name__", "macro")


def macro(fn: Optional[Callable[..., Any]] = None, *, title: Optional[Callable[..., str]] = None):
    """Wrap ``fn`` into a :class:`Macro`.

    Usable directly (``macro(fn, title=...)``) or as a decorator, with or
    without arguments (``@macro`` / ``@macro(title=...)``).
    """

    if fn is None:
        return lambda func: Macro(fn=func, title=title)
    return Macro(fn=fn, title=title)


Body = Union[Implementation, Macro, Tuple[Macro, ...]]


@dataclass(frozen=True, eq=False)
class Declaration:
    """One registered test or hook. Identity-hashed; immutable after creation."""

    kind: UnitKind
    title: Optional[str]
    modifiers: FrozenSet[Modifier] = frozenset()
    implementation: Optional[Body] = None
    args: Tuple[Any, ...] = tuple()
    phase: Optional[HookPhase] = None
    order: int = -1

    def has(self, modifier: Modifier) -> bool:
        return modifier in self.modifiers

    @property
    def is_hook(self) -> bool:
        return self.kind is UnitKind.HOOK

    @property
    def macros(self) -> Sequence[Macro]:
        impl = self.implementation
        if isinstance(impl, Macro):
            return (impl,)
        if isinstance(impl, tuple):
            return impl
        return tuple()

    @property
    def expected_outcome(self) -> ExpectedOutcome:
        if self.has(Modifier.TODO):
            return ExpectedOutcome.TODO
        if self.has(Modifier.SKIP):
            return ExpectedOutcome.SKIP
        if self.has(Modifier.FAILING):
            return ExpectedOutcome.FAILING
        return ExpectedOutcome.NORMAL


@dataclass(frozen=True)
class ExecutionUnit:
    """Invocable form of a declaration after macro expansion."""

    title: str
    fn: Callable[[Any], Any]
    expected_outcome: ExpectedOutcome = ExpectedOutcome.NORMAL
    declaration: Optional[Declaration] = field(default=None, compare=False)

    @property
    def cb(self) -> bool:
        return self.declaration is not None and self.declaration.has(Modifier.CB)

    @property
    def serial(self) -> bool:
        return self.declaration is not None and self.declaration.has(Modifier.SERIAL)

    @property
    def always(self) -> bool:
        return self.declaration is not None and self.declaration.has(Modifier.ALWAYS)

    @property
    def kind(self) -> UnitKind:
        if self.declaration is None:
            return UnitKind.TEST
        return self.declaration.kind

    def for_test(self, test_title: str) -> "ExecutionUnit":
        """Per-test view of an each-hook, titled after the test it brackets."""

        return ExecutionUnit(
            title=f'{self.title} for "{test_title}"',
            fn=self.fn,
            expected_outcome=self.expected_outcome,
            declaration=self.declaration,
        )
