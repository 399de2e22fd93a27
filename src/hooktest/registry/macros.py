"""Macro resolver: turns a declaration into titled, argument-bound execution units."""
from __future__ import annotations

import functools
from typing import Any, Callable, Collection, List, Optional, Sequence, Set, Tuple, Union

from hooktest.core.errors import DuplicateTitle, MissingTitle, RegistrationError
from hooktest.core.models import Declaration, ExecutionUnit, Implementation, Macro


ANONYMOUS = "[anonymous]"

Resolution = Union[ExecutionUnit, RegistrationError]


def _bind(body: Union[Implementation, Macro], args: Tuple[Any, ...]) -> Callable[[Any], Any]:
    @functools.wraps(body.fn)
    def run(t: Any) -> Any:
        return body(t, *args)

    return run


class MacroResolver:
    """Resolves plain implementations, single macros and macro arrays.

    A macro with a title function is titled ``title(declared_title, *args)``;
    otherwise the declared title is used as is. With neither, the test is
    ``"[anonymous]"`` unless that title is already taken, which is a
    :class:`MissingTitle` error. Titles must be unique within a suite.
    """

    def resolve(self, declaration: Declaration, taken: Collection[str] = ()) -> Tuple[ExecutionUnit, ...]:
        units: List[ExecutionUnit] = []
        for resolution in self.resolve_each(declaration, taken):
            if isinstance(resolution, RegistrationError):
                raise resolution
            units.append(resolution)
        return tuple(units)

    def resolve_each(self, declaration: Declaration, taken: Collection[str] = ()) -> List[Resolution]:
        """One resolution per element; failures are returned in place instead of raised."""

        bodies: Sequence[Union[Implementation, Macro]]
        if declaration.macros:
            bodies = declaration.macros
        elif declaration.implementation is not None:
            bodies = (declaration.implementation,)  # type: ignore[assignment]
        else:
            return []
        seen: Set[str] = set(taken)
        resolutions: List[Resolution] = []
        for body in bodies:
            try:
                title = self._title_for(declaration, body, seen)
            except RegistrationError as exc:
                resolutions.append(exc)
                continue
            if not declaration.is_hook:
                seen.add(title)
            resolutions.append(
                ExecutionUnit(
                    title=title,
                    fn=_bind(body, declaration.args),
                    expected_outcome=declaration.expected_outcome,
                    declaration=declaration,
                )
            )
        return resolutions

    def _title_for(self, declaration: Declaration, body: Union[Implementation, Macro], taken: Set[str]) -> str:
        title = self._derived_title(body, declaration.title, declaration.args) or declaration.title
        if declaration.is_hook:
            phase = declaration.phase.value if declaration.phase else "hook"
            return title or f"{phase} hook"
        if not title:
            if ANONYMOUS in taken:
                raise MissingTitle(
                    "Tests without a title (and without a macro title function) must be unique; "
                    f"'{ANONYMOUS}' is already used in this suite"
                )
            return ANONYMOUS
        if title in taken:
            raise DuplicateTitle(f"Duplicate test title: {title}")
        return title

    @staticmethod
    def _derived_title(
        body: Union[Implementation, Macro], provided: Optional[str], args: Tuple[Any, ...]
    ) -> Optional[str]:
        if not isinstance(body, Macro) or body.title is None:
            return None
        try:
            title = body.title(provided, *args)
        except Exception as exc:
            raise RegistrationError(f"Title function of macro '{body.name}' raised {exc!r}") from exc
        if title is not None and not isinstance(title, str):
            raise RegistrationError(f"Title function of macro '{body.name}' must return a string, got {title!r}")
        return title or None
