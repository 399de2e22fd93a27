"""JSON schema definition for reporter output."""
from __future__ import annotations

SCHEMA_VERSION = "1.0.0"

_FAILURE = {
    "type": "object",
    "required": ["kind", "message"],
    "properties": {
        "kind": {"type": "string"},
        "message": {"type": "string"},
        "assertion": {"type": ["string", "null"]},
        "actual": {"type": "string"},
        "expected": {"type": "string"},
        "diff": {"type": ["string", "null"]},
    },
}

_UNIT = {
    "type": "object",
    "required": ["title", "kind", "status", "assertions", "failures", "logs", "duration_ms"],
    "properties": {
        "title": {"type": "string"},
        "kind": {"enum": ["test", "hook"]},
        "status": {"enum": ["passed", "failed", "skipped", "todo"]},
        "expected_failure": {"type": "boolean"},
        "assertions": {
            "type": "object",
            "required": ["passed", "failed", "planned"],
            "properties": {
                "passed": {"type": "integer", "minimum": 0},
                "failed": {"type": "integer", "minimum": 0},
                "planned": {"type": ["integer", "null"]},
            },
        },
        "failures": {"type": "array", "items": _FAILURE},
        "logs": {"type": "array", "items": {"type": "string"}},
        "duration_ms": {"type": "number"},
    },
}

JSON_SCHEMA_V1 = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "hooktest report",
    "type": "object",
    "required": ["schema_version", "generated_at", "summary", "suites"],
    "properties": {
        "schema_version": {"type": "string"},
        "generated_at": {"type": "string", "format": "date-time"},
        "summary": {
            "type": "object",
            "required": ["suites", "passed", "failed", "skipped", "todo", "known_failures", "hooks_failed", "ok"],
            "properties": {
                "suites": {"type": "integer"},
                "passed": {"type": "integer"},
                "failed": {"type": "integer"},
                "skipped": {"type": "integer"},
                "todo": {"type": "integer"},
                "known_failures": {"type": "integer"},
                "hooks_failed": {"type": "integer"},
                "ok": {"type": "boolean"},
            },
        },
        "suites": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["title", "units", "interrupted", "duration_s", "assertions"],
                "properties": {
                    "title": {"type": ["string", "null"]},
                    "interrupted": {"type": "boolean"},
                    "duration_s": {"type": "number"},
                    "assertions": {
                        "type": "object",
                        "required": ["passed", "failed"],
                        "properties": {
                            "passed": {"type": "integer"},
                            "failed": {"type": "integer"},
                        },
                    },
                    "units": {"type": "array", "items": _UNIT},
                },
            },
        },
    },
}
