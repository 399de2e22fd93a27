"""Tagged variants for ``throws``/``not_throws`` sources and expectations."""
from __future__ import annotations

import enum
import inspect
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Pattern, Tuple, Type, Union


class SourceKind(str, enum.Enum):
    SYNC = "sync"
    PROMISE = "promise"
    OBSERVABLE = "observable"
    INVALID = "invalid"


def is_observable(value: Any) -> bool:
    return hasattr(type(value), "__aiter__")


def classify(value: Any) -> SourceKind:
    """Classify a value that is already in hand (not a callable to invoke)."""

    if inspect.isawaitable(value):
        return SourceKind.PROMISE
    if is_observable(value):
        return SourceKind.OBSERVABLE
    return SourceKind.INVALID


def classify_source(source: Any) -> SourceKind:
    kind = classify(source)
    if kind is not SourceKind.INVALID:
        return kind
    if callable(source):
        return SourceKind.SYNC
    return SourceKind.INVALID


async def settle(value: Any, kind: SourceKind) -> Optional[BaseException]:
    """Wait for a promise-like or observable-like value; return the error it produced, if any."""

    try:
        if kind is SourceKind.OBSERVABLE:
            async for _ in value:
                pass
        else:
            await value
    except Exception as exc:
        return exc
    return None


def discard(value: Any) -> None:
    """Release an awaitable that will never be awaited."""

    close = getattr(value, "close", None)
    if inspect.iscoroutine(value) and close is not None:
        close()


class ExpectationKind(str, enum.Enum):
    NONE = "none"
    CONSTRUCTOR = "constructor"
    REGEX = "regex"
    MESSAGE = "message"
    STRUCTURED = "structured"


_UNSET: Any = object()


@dataclass(frozen=True)
class ThrowsExpectation:
    """Structured expectation; every provided field must hold."""

    instance_of: Optional[Type[BaseException]] = None
    is_: Any = _UNSET
    message: Union[str, Pattern[str], None] = None
    name: Optional[str] = None

    _KEYS = {"instance_of": "instance_of", "instanceOf": "instance_of", "is": "is_", "is_": "is_", "message": "message", "name": "name"}

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ThrowsExpectation":
        kwargs = {}
        for key, value in data.items():
            field_name = cls._KEYS.get(key)
            if field_name is None:
                raise ValueError(f"Unknown expectation property '{key}'")
            kwargs[field_name] = value
        return cls(**kwargs)


@dataclass(frozen=True)
class Expectation:
    kind: ExpectationKind
    value: Any = None

    @classmethod
    def coerce(cls, raw: Any) -> "Expectation":
        if raw is None:
            return cls(ExpectationKind.NONE)
        if isinstance(raw, type) and issubclass(raw, BaseException):
            return cls(ExpectationKind.CONSTRUCTOR, raw)
        if isinstance(raw, re.Pattern):
            return cls(ExpectationKind.REGEX, raw)
        if isinstance(raw, str):
            return cls(ExpectationKind.MESSAGE, raw)
        if isinstance(raw, ThrowsExpectation):
            return cls(ExpectationKind.STRUCTURED, raw)
        if isinstance(raw, Mapping):
            return cls(ExpectationKind.STRUCTURED, ThrowsExpectation.from_mapping(raw))
        raise ValueError(
            "expectation must be an exception class, a compiled regex, a message string, "
            f"a ThrowsExpectation or a mapping, got {raw!r}"
        )


Mismatch = Tuple[str, Any]


def check(error: BaseException, expectation: Expectation) -> Optional[Mismatch]:
    """Return ``(reason, expected)`` for the first unmet condition, or ``None``."""

    kind = expectation.kind
    value = expectation.value
    if kind is ExpectationKind.NONE:
        return None
    if kind is ExpectationKind.CONSTRUCTOR:
        return _check_instance(error, value)
    if kind is ExpectationKind.REGEX or kind is ExpectationKind.MESSAGE:
        return _check_message(error, value)

    structured: ThrowsExpectation = value
    if structured.is_ is not _UNSET and error is not structured.is_:
        return "Function threw unexpected exception", structured.is_
    if structured.instance_of is not None:
        mismatch = _check_instance(error, structured.instance_of)
        if mismatch:
            return mismatch
    if structured.message is not None:
        mismatch = _check_message(error, structured.message)
        if mismatch:
            return mismatch
    if structured.name is not None and type(error).__name__ != structured.name:
        return "Function threw exception with unexpected name", structured.name
    return None


def _check_instance(error: BaseException, cls: Type[BaseException]) -> Optional[Mismatch]:
    if isinstance(error, cls):
        return None
    return f"Function threw exception that is not an instance of {cls.__name__}", cls


def _check_message(error: BaseException, expected: Union[str, Pattern[str]]) -> Optional[Mismatch]:
    text = str(error)
    if isinstance(expected, re.Pattern):
        if expected.search(text):
            return None
        return "Function threw exception whose message does not match the pattern", expected
    if text == expected:
        return None
    return "Function threw exception with unexpected message", expected
