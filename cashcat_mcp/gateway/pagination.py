"""Cursor-following accumulation for one downstream endpoint."""

import math
from typing import Any

import httpx
import structlog

from .exceptions import UpstreamError
from .proxy import call_endpoint
from .schemas import PageAccumulationResult, RpcContext


logger = structlog.get_logger(__name__)

MAX_PAGE_SIZE = 1000
PAGING_KEYS = ("limit", "offset", "cursor")


def _finite_total(meta: dict[str, Any] | None) -> float | None:
    if not meta:
        return None
    total = meta.get("total")
    if isinstance(total, bool):
        return None
    if isinstance(total, (int, float)):
        return float(total) if math.isfinite(total) else None
    if isinstance(total, str):
        try:
            parsed = float(total)
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


async def fetch_all_pages(
    client: httpx.AsyncClient,
    ctx: RpcContext,
    endpoint: str,
    base_query: dict[str, Any],
    max_rows: int,
) -> PageAccumulationResult:
    """Follow ``meta.next_cursor`` until one of the stop conditions holds.

    Stop conditions: the row ceiling is reached, a page is empty, no
    ``next_cursor`` is supplied, or the ``next_cursor`` was already seen in
    this run. A page announcing an already-seen cursor replays a visited
    position, so its rows are not accumulated.

    Args:
        client: Shared HTTP client.
        ctx: Per-request context.
        endpoint: Downstream endpoint name.
        base_query: Query applied to every page (paging keys are stripped).
        max_rows: Row ceiling for this run.

    Returns:
        Accumulated rows, truncation flag, and the last page's meta.

    Raises:
        UpstreamError: If any page fails; rows fetched so far are discarded.
    """
    rows: list[Any] = []
    seen_cursors: set[str] = set()
    next_cursor: str | None = None
    last_meta: dict[str, Any] | None = None
    ceiling_reached = False

    query = {key: value for key, value in base_query.items() if key not in PAGING_KEYS}

    while True:
        page_query = {**query, "limit": min(MAX_PAGE_SIZE, max_rows - len(rows))}
        if next_cursor is not None:
            page_query["cursor"] = next_cursor

        page = await call_endpoint(client, ctx, endpoint, page_query)
        last_meta = page.meta

        if not isinstance(page.data, list):
            raise UpstreamError(endpoint, "malformed page: 'data' is not a list")
        page_rows = page.data

        cursor_value = None
        if page.meta is not None and isinstance(page.meta.get("next_cursor"), str):
            cursor_value = page.meta["next_cursor"] or None

        if cursor_value is not None and cursor_value in seen_cursors:
            logger.warning("pagination_cycle_detected", endpoint=endpoint, cursor=cursor_value)
            break

        rows.extend(page_rows[: max_rows - len(rows)])

        if len(rows) >= max_rows:
            ceiling_reached = True
            break
        if not page_rows or cursor_value is None:
            break

        seen_cursors.add(cursor_value)
        next_cursor = cursor_value

    truncated = False
    if ceiling_reached:
        total = _finite_total(last_meta)
        truncated = total is not None and total > len(rows)

    logger.debug(
        "pagination_complete",
        endpoint=endpoint,
        rows=len(rows),
        pages_followed=len(seen_cursors) + 1,
        truncated=truncated,
    )
    return PageAccumulationResult(rows=rows, truncated=truncated, last_meta=last_meta)
