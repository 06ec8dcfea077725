"""Parsing helpers for date and month tool arguments."""

import re
from datetime import date

from cashcat_mcp.gateway.exceptions import ToolArgumentError


DATE_REGEX = re.compile(r"^\d{4}-\d{2}-\d{2}$")
MONTH_REGEX = re.compile(r"^\d{4}-\d{2}$")


def parse_date_arg(value: object, param_name: str) -> str | None:
    """Validate an optional ``YYYY-MM-DD`` argument.

    Raises:
        ToolArgumentError: If the value is not a real calendar date.
    """
    if value is None or value == "":
        return None
    if not isinstance(value, str) or not DATE_REGEX.match(value):
        raise ToolArgumentError(f"Invalid {param_name}. Use YYYY-MM-DD.", field=param_name)
    try:
        date.fromisoformat(value)
    except ValueError:
        raise ToolArgumentError(f"Invalid {param_name}. Use YYYY-MM-DD.", field=param_name)
    return value


def parse_month_arg(value: object, param_name: str) -> str | None:
    """Validate an optional ``YYYY-MM`` argument.

    Raises:
        ToolArgumentError: If the value is not a real calendar month.
    """
    if value is None or value == "":
        return None
    if not isinstance(value, str) or not MONTH_REGEX.match(value):
        raise ToolArgumentError(f"Invalid {param_name}. Use YYYY-MM.", field=param_name)
    if not 1 <= int(value[5:7]) <= 12:
        raise ToolArgumentError(f"Invalid {param_name}. Use YYYY-MM.", field=param_name)
    return value
