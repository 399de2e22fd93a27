"""Default structural comparison used by ``deep_equal`` and ``snapshot``."""
from __future__ import annotations

import dataclasses
import difflib
import math
import pprint
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Set, Tuple

import numpy as np


@dataclass(frozen=True)
class Comparison:
    """Outcome of comparing two values."""

    equal: bool
    diff: Optional[str] = None


Compare = Callable[[Any, Any], Comparison]


def compare_values(actual: Any, expected: Any) -> Comparison:
    if _equal(actual, expected, set()):
        return Comparison(equal=True)
    return Comparison(equal=False, diff=format_diff(actual, expected))


def format_value(value: Any, *, width: int = 80) -> str:
    if isinstance(value, np.ndarray):
        return np.array2string(value, max_line_width=width, threshold=64)
    return pprint.pformat(value, width=width, depth=8)


def format_diff(actual: Any, expected: Any) -> str:
    lines = difflib.unified_diff(
        format_value(expected).splitlines(),
        format_value(actual).splitlines(),
        fromfile="expected",
        tofile="actual",
        lineterm="",
    )
    return "\n".join(lines)


def _equal(actual: Any, expected: Any, seen: Set[Tuple[int, int]]) -> bool:
    if actual is expected:
        return True
    if isinstance(actual, np.ndarray) or isinstance(expected, np.ndarray):
        return _arrays_equal(actual, expected)
    if isinstance(actual, float) and isinstance(expected, float):
        if math.isnan(actual) and math.isnan(expected):
            return True
        return actual == expected
    if type(actual) is not type(expected):
        return False

    key = (id(actual), id(expected))
    if key in seen:
        # already being compared further up the stack; a cycle compares equal to itself
        return True
    seen.add(key)
    try:
        if isinstance(actual, Mapping):
            if actual.keys() != expected.keys():
                return False
            return all(_equal(actual[k], expected[k], seen) for k in actual)
        if isinstance(actual, (list, tuple)):
            if len(actual) != len(expected):
                return False
            return all(_equal(a, e, seen) for a, e in zip(actual, expected))
        if isinstance(actual, (set, frozenset)):
            return actual == expected
        if dataclasses.is_dataclass(actual) and not isinstance(actual, type):
            return all(
                _equal(getattr(actual, f.name), getattr(expected, f.name), seen)
                for f in dataclasses.fields(actual)
            )
        return bool(actual == expected)
    finally:
        seen.discard(key)


def _arrays_equal(actual: Any, expected: Any) -> bool:
    if not (isinstance(actual, np.ndarray) and isinstance(expected, np.ndarray)):
        return False
    if actual.shape != expected.shape or actual.dtype.kind != expected.dtype.kind:
        return False
    equal_nan = actual.dtype.kind in {"f", "c"}
    return bool(np.array_equal(actual, expected, equal_nan=equal_nan))
