"""Small shared helpers."""

import json
import math
from datetime import datetime, timezone
from typing import Any


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a ``Z`` suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def _finite_float(literal: str) -> float:
    value = float(literal)
    if not math.isfinite(value):
        raise ValueError(f"{literal} is out of range")
    return value


def strict_json_loads(data: bytes | str) -> Any:
    """Decode JSON, rejecting non-finite numbers and pathologically deep nesting.

    ``NaN``, ``Infinity`` and overflowing literals such as ``1e400`` cannot be
    serialized back out, so they are treated as malformed input.

    Raises:
        ValueError: If ``data`` is not strict JSON.
    """
    try:
        return json.loads(data, parse_constant=_reject_constant, parse_float=_finite_float)
    except RecursionError:
        raise ValueError("JSON nesting too deep")
