"""Gateway module - downstream fetching, fan-out and rollups."""

from .schemas import (
    RpcContext,
    Page,
    PageAccumulationResult,
    DatasetRequest,
    DatasetBundle,
)
from .exceptions import (
    GatewayError,
    ToolNotFoundError,
    ToolArgumentError,
    UpstreamError,
    ToolTimeoutError,
)
from .proxy import call_endpoint, flatten_query
from .pagination import fetch_all_pages
from .orchestrator import fetch_datasets


__all__ = [
    # Schemas
    "RpcContext",
    "Page",
    "PageAccumulationResult",
    "DatasetRequest",
    "DatasetBundle",
    # Exceptions
    "GatewayError",
    "ToolNotFoundError",
    "ToolArgumentError",
    "UpstreamError",
    "ToolTimeoutError",
    # Fetching
    "call_endpoint",
    "flatten_query",
    "fetch_all_pages",
    "fetch_datasets",
]
