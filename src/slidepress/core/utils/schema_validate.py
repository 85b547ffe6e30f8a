from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator


def load_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def validate_against_schema(schema_path: Path, instance: Any) -> list[str]:
    """
    Validate an in-memory JSON value against a JSON schema file.
    Returns a list of human-readable error strings (empty if valid),
    each formatted as "<jsonpath>: <message>".
    """
    v = Draft202012Validator(load_json(schema_path))
    errors = sorted(v.iter_errors(instance), key=lambda e: list(e.path))
    result: list[str] = []
    for e in errors:
        path = "$"
        for p in e.path:
            path += f"[{p!r}]" if isinstance(p, str) else f"[{p}]"
        result.append(f"{path}: {e.message}")
    return result
