"""Concurrent fan-out of paginated fetches across several endpoints."""

from typing import Mapping

import anyio
import httpx
import structlog

from .pagination import fetch_all_pages
from .schemas import DatasetBundle, DatasetRequest, PageAccumulationResult, RpcContext


logger = structlog.get_logger(__name__)


def _first_leaf(group: BaseExceptionGroup) -> BaseException:
    first = group.exceptions[0]
    if isinstance(first, BaseExceptionGroup):
        return _first_leaf(first)
    return first


async def fetch_datasets(
    client: httpx.AsyncClient,
    ctx: RpcContext,
    requests: Mapping[str, DatasetRequest],
    max_rows: int,
) -> DatasetBundle:
    """Fetch every requested dataset concurrently.

    Each key gets its own :func:`fetch_all_pages` run. The first failure
    cancels the remaining fetches and is re-raised, so callers either get a
    complete bundle or an error.

    Args:
        client: Shared HTTP client.
        ctx: Per-request context.
        requests: Dataset key -> endpoint and query.
        max_rows: Row ceiling applied to each dataset.

    Returns:
        Bundle keyed in the same order as ``requests``.

    Raises:
        UpstreamError: The first dataset failure.
    """
    results: dict[str, PageAccumulationResult] = {}

    async def _run(key: str, request: DatasetRequest) -> None:
        results[key] = await fetch_all_pages(
            client, ctx, request.endpoint, request.query, max_rows
        )

    try:
        async with anyio.create_task_group() as tg:
            for key, request in requests.items():
                tg.start_soon(_run, key, request)
    except BaseExceptionGroup as group:
        error = _first_leaf(group)
        logger.warning(
            "dataset_fetch_failed",
            datasets=list(requests),
            error=str(error),
        )
        raise error from None

    return {key: results[key] for key in requests}
