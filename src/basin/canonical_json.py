"""Deterministic canonical JSON for log entries and field metadata."""

from __future__ import annotations

import json
import math
from dataclasses import asdict, is_dataclass
from enum import Enum
from typing import Any


class CanonicalJsonTypeError(TypeError):
    """Raised when an object cannot be serialized to canonical JSON."""


def to_jsonable(obj: Any, path: str = "$") -> Any:
    """Convert enums, dataclasses and tuples into plain JSON values."""
    if isinstance(obj, Enum):
        return obj.value
    if is_dataclass(obj) and not isinstance(obj, type):
        if hasattr(obj, "as_dict"):
            return to_jsonable(obj.as_dict(), path)
        return to_jsonable(asdict(obj), path)
    if isinstance(obj, dict):
        out = {}
        for key, value in obj.items():
            if not isinstance(key, str):
                raise CanonicalJsonTypeError(f"Unsupported key type at {path}: {type(key).__name__}")
            out[key] = to_jsonable(value, f"{path}.{key}")
        return out
    if isinstance(obj, (list, tuple)):
        return [to_jsonable(item, f"{path}[{idx}]") for idx, item in enumerate(obj)]
    if obj is None or isinstance(obj, (str, int, bool)):
        return obj
    if isinstance(obj, float):
        if not math.isfinite(obj):
            raise ValueError(f"Non-finite float at {path}: {obj!r}")
        return obj
    raise CanonicalJsonTypeError(f"Unsupported type at {path}: {type(obj).__name__}")


def canonical_dumps(obj: Any) -> str:
    """Serialize an object to deterministic canonical JSON.

    Dict keys are sorted recursively, list order is kept, non-ASCII is
    preserved and there is no extra whitespace. Enums serialize as their value
    and dataclasses through ``as_dict()`` when they define one.
    """
    return json.dumps(
        to_jsonable(obj),
        sort_keys=True,
        ensure_ascii=False,
        separators=(",", ":"),
        allow_nan=False,
    )
