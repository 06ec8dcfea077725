"""Pydantic models for downstream fetches and accumulated datasets."""

from typing import Any
from pydantic import BaseModel, ConfigDict, Field


class RpcContext(BaseModel):
    """Per-request context passed into every tool handler.

    Built fresh from the inbound request; never cached across requests.

    Attributes:
        auth_header: Caller's Authorization header, forwarded unchanged.
        base_origin: Origin of the downstream REST API (scheme://host[:port]).
    """

    model_config = ConfigDict(frozen=True)

    auth_header: str = Field(..., description="Authorization header to forward")
    base_origin: str = Field(..., description="Downstream API origin")


class Page(BaseModel):
    """One downstream list response.

    Attributes:
        data: The ``data`` member of the response, as returned.
        meta: The ``meta`` member when it is an object, else None.
    """

    data: Any = None
    meta: dict[str, Any] | None = None


class PageAccumulationResult(BaseModel):
    """Outcome of following pagination for one endpoint.

    Attributes:
        rows: Accumulated rows, never more than the caller's ceiling.
        truncated: True iff upstream reported a total above ``len(rows)``.
        last_meta: ``meta`` from the last page fetched.
    """

    rows: list[Any] = Field(default_factory=list)
    truncated: bool = False
    last_meta: dict[str, Any] | None = None

    def as_dataset(self) -> dict[str, Any]:
        """Serialize in the shape returned to tool callers."""
        return {
            "data": self.rows,
            "truncated": self.truncated,
            "meta": self.last_meta,
        }


class DatasetRequest(BaseModel):
    """One endpoint fetch scheduled by the orchestrator."""

    endpoint: str
    query: dict[str, Any] = Field(default_factory=dict)


DatasetBundle = dict[str, PageAccumulationResult]
