"""Validation of tool arguments against the input schema subset."""

import math
from typing import Any

from cashcat_mcp.gateway.exceptions import ToolArgumentError

from .schemas import PropertySchema, ToolInputSchema


_TRUE_STRINGS = {"true", "1"}
_FALSE_STRINGS = {"false", "0"}


def _coerce_number(name: str, value: Any) -> int | float:
    if isinstance(value, bool):
        raise ToolArgumentError(f"Invalid {name}. Must be a number.", field=name)
    if isinstance(value, (int, float)):
        parsed: int | float = value
    elif isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            raise ToolArgumentError(f"Invalid {name}. Must be a number.", field=name)
    else:
        raise ToolArgumentError(f"Invalid {name}. Must be a number.", field=name)

    if isinstance(parsed, float) and not math.isfinite(parsed):
        raise ToolArgumentError(f"Invalid {name}. Must be a finite number.", field=name)
    return parsed


def coerce_value(name: str, prop: PropertySchema, value: Any) -> Any:
    """Check one argument against its property schema.

    Returns:
        The value, normalized to its declared type.

    Raises:
        ToolArgumentError: If the value violates type, enum or bounds.
    """
    if prop.type == "string":
        if not isinstance(value, str):
            raise ToolArgumentError(f"Invalid {name}. Must be a string.", field=name)
        coerced: Any = value

    elif prop.type == "boolean":
        if isinstance(value, bool):
            coerced = value
        elif isinstance(value, str) and value.lower() in _TRUE_STRINGS:
            coerced = True
        elif isinstance(value, str) and value.lower() in _FALSE_STRINGS:
            coerced = False
        else:
            raise ToolArgumentError(f"Invalid {name}. Use true/false.", field=name)

    elif prop.type == "integer":
        number = _coerce_number(name, value)
        if isinstance(number, float):
            if not number.is_integer():
                raise ToolArgumentError(f"Invalid {name}. Must be an integer.", field=name)
            number = int(number)
        coerced = number

    elif prop.type == "number":
        coerced = _coerce_number(name, value)

    else:
        if not isinstance(value, dict):
            raise ToolArgumentError(f"Invalid {name}. Must be an object.", field=name)
        coerced = value

    if prop.enum is not None and coerced not in prop.enum:
        allowed = ", ".join(str(item) for item in prop.enum)
        raise ToolArgumentError(f"Invalid {name}. Allowed: {allowed}", field=name)

    if prop.type in ("integer", "number"):
        low = prop.minimum if prop.minimum is not None else -math.inf
        high = prop.maximum if prop.maximum is not None else math.inf
        if coerced < low or coerced > high:
            raise ToolArgumentError(
                f"Invalid {name}. Must be between {prop.minimum} and {prop.maximum}.",
                field=name,
            )

    return coerced


def validate_arguments(schema: ToolInputSchema, arguments: dict[str, Any]) -> dict[str, Any]:
    """Validate tool arguments and fill in defaults.

    ``None`` for an optional argument is treated as absent.

    Args:
        schema: The tool's input schema.
        arguments: Raw arguments from ``tools/call``.

    Returns:
        New dict holding every declared property that has a value or default.

    Raises:
        ToolArgumentError: On the first violation found.
    """
    if not schema.additionalProperties:
        unknown = sorted(key for key in arguments if key not in schema.properties)
        if unknown:
            raise ToolArgumentError(
                f"Unknown argument(s): {', '.join(unknown)}",
                field=unknown[0] if len(unknown) == 1 else None,
            )

    validated: dict[str, Any] = {}
    for name, prop in schema.properties.items():
        value = arguments.get(name)
        if value is None:
            if name in schema.required:
                raise ToolArgumentError(f"Missing required argument: {name}", field=name)
            if prop.has_default:
                validated[name] = prop.default
            continue
        validated[name] = coerce_value(name, prop, value)

    if schema.additionalProperties:
        for name, value in arguments.items():
            validated.setdefault(name, value)

    return validated
