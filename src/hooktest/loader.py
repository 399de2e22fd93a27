"""Helpers for loading a suite out of a user-provided Python file."""
from __future__ import annotations

import importlib.util
import sys
from pathlib import Path

from hooktest.api import Suite


def load_suite(source: Path, attribute: str = "test") -> Suite:
    """Import the file at ``source`` and return its :class:`Suite`.

    The suite is looked up under ``attribute`` first, then as the only
    ``Suite`` instance defined at module level.
    """

    path = source.expanduser().resolve()
    if not path.exists():
        raise FileNotFoundError(f"Test file not found: {path}")
    module_name = f"hooktest_suite_{path.stem}_{hash(str(path)) & 0xFFFF:x}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Unable to load module from {path}")
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    spec.loader.exec_module(module)

    suite = getattr(module, attribute, None)
    if isinstance(suite, Suite):
        return _named(suite, path)
    candidates = [value for value in vars(module).values() if isinstance(value, Suite)]
    if len(candidates) == 1:
        return _named(candidates[0], path)
    if not candidates:
        raise AttributeError(f"No Suite instance found in {path}")
    raise AttributeError(f"Multiple Suite instances found in {path}; name the one to run '{attribute}'")


def _named(suite: Suite, path: Path) -> Suite:
    if suite.registry.name is None:
        suite.registry.name = path.name
    return suite
