"""Declaration registry: validates declarations and builds the runnable plan."""
from __future__ import annotations

import dataclasses
import logging
from typing import Dict, Iterator, List, Optional, Sequence, Set, Tuple

from hooktest.core.errors import DuplicateTitle, InvalidModifierCombination, RegistrationError
from hooktest.core.models import (
    Declaration,
    ExecutionUnit,
    HookPhase,
    Implementation,
    Macro,
    Modifier,
)

from .macros import MacroResolver

logger = logging.getLogger(__name__)

_HOOK_FORBIDDEN = (Modifier.ONLY, Modifier.FAILING, Modifier.TODO)
_TODO_FORBIDDEN = (Modifier.ONLY, Modifier.SKIP, Modifier.FAILING, Modifier.CB, Modifier.ALWAYS)


class DeclarationRegistry:
    """Records tests and hooks of one suite in declaration order."""

    def __init__(self, name: Optional[str] = None, *, resolver: Optional[MacroResolver] = None) -> None:
        self.name = name
        self._resolver = resolver or MacroResolver()
        self._declarations: List[Declaration] = []
        self._units: Dict[Declaration, Tuple[ExecutionUnit, ...]] = {}
        self._titles: Set[str] = set()

    def register(self, declaration: Declaration) -> Declaration:
        """Validate, resolve and record ``declaration``.

        Registration errors are fatal to that declaration only. For macro
        arrays, the elements that resolve are kept and the first failing
        element's error is raised afterwards.
        """

        self._validate(declaration)
        declaration = dataclasses.replace(declaration, order=len(self._declarations))
        if declaration.has(Modifier.TODO):
            self._claim_todo_title(declaration)
            self._record(declaration, tuple())
            return declaration

        resolutions = self._resolver.resolve_each(declaration, self._titles)
        units = tuple(item for item in resolutions if isinstance(item, ExecutionUnit))
        errors = [item for item in resolutions if isinstance(item, RegistrationError)]
        if units:
            self._record(declaration, units)
            if not declaration.is_hook:
                self._titles.update(unit.title for unit in units)
        if errors:
            raise errors[0]
        self._advise_cb(declaration)
        return declaration

    def _record(self, declaration: Declaration, units: Tuple[ExecutionUnit, ...]) -> None:
        self._declarations.append(declaration)
        self._units[declaration] = units
        logger.debug(
            "Registered %s %s with modifiers %s",
            declaration.kind.value,
            [unit.title for unit in units] or [declaration.title],
            sorted(m.value for m in declaration.modifiers),
        )

    def _claim_todo_title(self, declaration: Declaration) -> None:
        title = declaration.title
        assert title is not None
        if title in self._titles:
            raise DuplicateTitle(f"Duplicate test title: {title}")
        self._titles.add(title)

    def _validate(self, declaration: Declaration) -> None:
        mods = declaration.modifiers
        if Modifier.SKIP in mods and Modifier.ONLY in mods:
            raise InvalidModifierCombination("`.skip` cannot be combined with `.only`")
        if declaration.title is not None and not isinstance(declaration.title, str):
            raise RegistrationError(f"Titles must be strings, got {declaration.title!r}")

        if declaration.is_hook:
            if declaration.phase is None:
                raise RegistrationError("Hooks must declare a phase")
            bad = [m.value for m in _HOOK_FORBIDDEN if m in mods]
            if bad:
                raise InvalidModifierCombination(f"Hooks cannot be declared with {', '.join('.' + b for b in bad)}")
            if Modifier.ALWAYS in mods and declaration.phase in (HookPhase.BEFORE, HookPhase.BEFORE_EACH):
                raise InvalidModifierCombination("`.always` is only valid on after and after_each hooks")
        elif Modifier.ALWAYS in mods:
            raise InvalidModifierCombination("`.always` is only valid on after and after_each hooks")

        if Modifier.TODO in mods:
            bad = [m.value for m in _TODO_FORBIDDEN if m in mods]
            if bad:
                raise InvalidModifierCombination(f"`.todo` cannot be combined with {', '.join('.' + b for b in bad)}")
            if declaration.implementation is not None:
                raise InvalidModifierCombination("`.todo` tests must not have an implementation")
            if not declaration.title:
                raise RegistrationError("`.todo` tests require a title")
            return

        impl = declaration.implementation
        if impl is None:
            raise RegistrationError("Expected an implementation")
        if isinstance(impl, tuple):
            if not impl or not all(isinstance(item, Macro) for item in impl):
                raise RegistrationError("Macro arrays must be a non-empty sequence of Macro objects")
        elif not isinstance(impl, (Implementation, Macro)):
            raise RegistrationError(f"Expected an implementation, got {impl!r}")
        elif not callable(impl.fn):
            raise RegistrationError(f"Implementation must be callable, got {impl.fn!r}")

    def _advise_cb(self, declaration: Declaration) -> None:
        """Warn when a non-cb body looks like it signals completion through ``t.end``."""

        if declaration.has(Modifier.CB):
            return
        bodies = declaration.macros or (declaration.implementation,)
        for body in bodies:
            code = getattr(getattr(body, "fn", None), "__code__", None)
            if code is not None and "end" in code.co_names:
                logger.warning(
                    "%s refers to `t.end` but was not declared with `.cb`; completion is signalled by returning",
                    declaration.title or getattr(body.fn, "__name__", "implementation"),
                )

    # -- plan ----------------------------------------------------------------

    @property
    def has_only(self) -> bool:
        return any(d.has(Modifier.ONLY) for d in self._declarations if not d.is_hook)

    def build_plan(self) -> Tuple[Declaration, ...]:
        """Runnable declarations in declaration order: tests and non-skipped hooks.

        When any test carries ``.only``, only ``.only`` tests are included.
        ``.skip`` and ``.todo`` tests never appear; see :meth:`pending`.
        """

        only = self.has_only
        plan: List[Declaration] = []
        for declaration in self._declarations:
            if declaration.has(Modifier.SKIP) or declaration.has(Modifier.TODO):
                continue
            if not declaration.is_hook and only and not declaration.has(Modifier.ONLY):
                continue
            plan.append(declaration)
        return tuple(plan)

    def pending(self) -> Tuple[Declaration, ...]:
        """Skipped and todo tests to report without running; empty when ``.only`` is in effect."""

        if self.has_only:
            return tuple()
        return tuple(
            d
            for d in self._declarations
            if not d.is_hook and (d.has(Modifier.SKIP) or d.has(Modifier.TODO))
        )

    def units(self, declaration: Declaration) -> Tuple[ExecutionUnit, ...]:
        return self._units[declaration]

    def hooks(self, phase: HookPhase, plan: Optional[Sequence[Declaration]] = None) -> Tuple[Declaration, ...]:
        source = self.build_plan() if plan is None else plan
        return tuple(d for d in source if d.is_hook and d.phase is phase)

    def __iter__(self) -> Iterator[Declaration]:
        return iter(self._declarations)

    def __len__(self) -> int:
        return len(self._declarations)

    def titles(self) -> Tuple[str, ...]:
        return tuple(self._titles)
