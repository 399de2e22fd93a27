"""Runner configuration and its YAML loader."""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

import yaml
from jsonschema import Draft7Validator

CONFIG_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "hooktest config",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "concurrency": {"type": "integer", "minimum": 0},
        "timeout": {"type": ["number", "null"], "exclusiveMinimum": 0},
        "fail_fast": {"type": "boolean"},
        "serial": {"type": "boolean"},
        "match": {
            "oneOf": [
                {"type": "string", "minLength": 1},
                {"type": "array", "items": {"type": "string", "minLength": 1}},
            ]
        },
        "update_snapshots": {"type": "boolean"},
        "fail_without_assertions": {"type": "boolean"},
    },
}

_validator = Draft7Validator(CONFIG_SCHEMA)


@dataclass(frozen=True)
class RunnerConfig:
    """Host-side knobs for one run.

    ``concurrency`` bounds the number of concurrently running non-serial
    tests (0 means unbounded). ``timeout`` bounds every asynchronous unit,
    including cb units waiting for ``t.end()``, and async ``throws``.
    """

    concurrency: int = 0
    timeout: Optional[float] = 10.0
    fail_fast: bool = False
    serial: bool = False
    match: Sequence[str] = field(default_factory=tuple)
    update_snapshots: bool = False
    fail_without_assertions: bool = False

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "RunnerConfig":
        if not data:
            return cls()
        errors = sorted(_validator.iter_errors(dict(data)), key=lambda e: list(e.path))
        if errors:
            messages = "; ".join(f"{'/'.join(map(str, err.path)) or 'root'}: {err.message}" for err in errors)
            raise ValueError(f"Config schema validation failed: {messages}")
        values = dict(data)
        if "match" in values:
            values["match"] = _as_patterns(values["match"])
        if values.get("timeout") is not None:
            values["timeout"] = float(values["timeout"])
        return cls(**values)

    def merged(self, **overrides: Any) -> "RunnerConfig":
        """Copy with every non-``None`` override applied."""

        changes = {key: value for key, value in overrides.items() if value is not None}
        if "match" in changes:
            changes["match"] = _as_patterns(changes["match"])
        return dataclasses.replace(self, **changes)


def _as_patterns(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        return (value,)
    return tuple(str(item) for item in value)


def load_config(path: str) -> RunnerConfig:
    """Load and validate a YAML config file."""

    config_path = Path(path).expanduser().resolve()
    raw = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, Mapping):
        raise ValueError("Config file must contain a mapping at the top level")
    return RunnerConfig.from_mapping(raw)
