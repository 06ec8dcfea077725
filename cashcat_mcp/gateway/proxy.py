"""HTTP client for single-page reads against the CashCat REST API."""

import math
from typing import Any

import httpx
import structlog

from cashcat_mcp.config import get_settings
from cashcat_mcp.utils import strict_json_loads
from .schemas import Page, RpcContext
from .exceptions import UpstreamError


logger = structlog.get_logger(__name__)

API_PREFIX = "/api/v1/"


def _stringify_query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    return str(value)


def flatten_query(query: Any) -> dict[str, str]:
    """Flatten caller-supplied query input into string query params.

    ``None`` and empty strings are dropped, lists become comma-joined
    values, and nested objects are ignored.

    Args:
        query: Arbitrary query input; anything but a dict yields ``{}``.

    Returns:
        Mapping of query parameter names to string values.
    """
    if not isinstance(query, dict):
        return {}

    flattened: dict[str, str] = {}
    for key, raw in query.items():
        if raw is None or raw == "":
            continue

        if isinstance(raw, (list, tuple)):
            entries = [_stringify_query_value(entry).strip() for entry in raw]
            entries = [entry for entry in entries if entry]
            if entries:
                flattened[str(key)] = ",".join(entries)
            continue

        if isinstance(raw, dict):
            continue
        flattened[str(key)] = _stringify_query_value(raw)

    return flattened


def build_endpoint_url(base_origin: str, endpoint: str) -> str:
    return f"{base_origin.rstrip('/')}{API_PREFIX}{endpoint}"


def _upstream_message(payload: dict[str, Any], status_code: int) -> str:
    error = payload.get("error")
    if isinstance(error, dict) and isinstance(error.get("message"), str):
        return error["message"]
    return f"Request failed ({status_code})"


async def call_endpoint(
    client: httpx.AsyncClient,
    ctx: RpcContext,
    endpoint: str,
    query: dict[str, Any] | None = None,
    timeout: float | None = None,
) -> Page:
    """Fetch one page from a downstream endpoint.

    Args:
        client: Shared HTTP client.
        ctx: Per-request context carrying the caller's credentials.
        endpoint: Endpoint path below ``/api/v1/`` (e.g. ``transactions``).
        query: Query input, flattened with :func:`flatten_query`.
        timeout: Request timeout in seconds (defaults to settings).

    Returns:
        The parsed page.

    Raises:
        UpstreamError: On transport failure, non-JSON body, non-object JSON,
            or a non-2xx status.
    """
    if timeout is None:
        timeout = get_settings().DOWNSTREAM_TIMEOUT_SECONDS

    url = build_endpoint_url(ctx.base_origin, endpoint)
    params = flatten_query(query or {})
    headers = {
        "Authorization": ctx.auth_header,
        "Content-Type": "application/json",
        "Cache-Control": "no-store",
    }

    try:
        response = await client.get(url, params=params, headers=headers, timeout=timeout)
    except httpx.TimeoutException:
        raise UpstreamError(endpoint, f"timed out after {timeout}s")
    except httpx.RequestError as e:
        raise UpstreamError(endpoint, f"request failed: {e}")

    try:
        payload = strict_json_loads(response.content)
    except ValueError:
        raise UpstreamError(
            endpoint,
            f"non-JSON response ({response.status_code})",
            status_code=response.status_code,
        )

    if not isinstance(payload, dict):
        raise UpstreamError(
            endpoint,
            f"unexpected response shape ({response.status_code})",
            status_code=response.status_code,
        )

    if not response.is_success:
        raise UpstreamError(
            endpoint,
            _upstream_message(payload, response.status_code),
            status_code=response.status_code,
        )

    meta = payload.get("meta")
    logger.debug("downstream_page", endpoint=endpoint, status=response.status_code)
    return Page(
        data=payload.get("data"),
        meta=meta if isinstance(meta, dict) else None,
    )
