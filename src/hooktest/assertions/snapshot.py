"""Snapshot store collaborator."""
from __future__ import annotations

from typing import Any, Dict, Iterator, Protocol


class _Absent:
    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False


ABSENT: Any = _Absent()


class SnapshotStore(Protocol):
    """Key-value store of recorded snapshots. ``get`` returns :data:`ABSENT` for unknown keys."""

    def get(self, key: str) -> Any:
        ...

    def set(self, key: str, value: Any) -> None:
        ...


class MemorySnapshotStore:
    """In-process store; survives across runs as long as the instance does."""

    def __init__(self) -> None:
        self._values: Dict[str, Any] = {}

    def get(self, key: str) -> Any:
        return self._values.get(key, ABSENT)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value

    def __contains__(self, key: str) -> bool:
        return key in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)
