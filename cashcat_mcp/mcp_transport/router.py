"""HTTP transport for the MCP JSON-RPC endpoint."""

from typing import Annotated

import httpx
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from cashcat_mcp.auth.dependencies import get_key_verifier
from cashcat_mcp.auth.verifier import KeyVerifier
from cashcat_mcp.config import Settings, get_settings
from cashcat_mcp.dependencies import get_http_client, get_tool_registry
from cashcat_mcp.registry.service import ToolRegistry

from .dispatcher import MCPDispatcher
from .service import server_info


router = APIRouter(prefix="/api", tags=["mcp"])


async def get_dispatcher(
    registry: Annotated[ToolRegistry, Depends(get_tool_registry)],
    verifier: Annotated[KeyVerifier, Depends(get_key_verifier)],
    client: Annotated[httpx.AsyncClient, Depends(get_http_client)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> MCPDispatcher:
    return MCPDispatcher(registry, verifier, client, settings)


@router.options("/mcp", operation_id="mcp_endpoint_options")
async def mcp_options() -> Response:
    return Response(status_code=204)


@router.get("/mcp", operation_id="mcp_endpoint_get")
async def mcp_info() -> dict:
    """Describe the endpoint for humans and health checks."""
    return server_info()


@router.post("/mcp", operation_id="mcp_endpoint_post")
async def mcp_post(
    request: Request,
    dispatcher: Annotated[MCPDispatcher, Depends(get_dispatcher)],
) -> Response:
    """Handle one JSON-RPC 2.0 message."""
    body = await request.body()
    origin = f"{request.url.scheme}://{request.url.netloc}"
    response = await dispatcher.dispatch(
        body,
        authorization=request.headers.get("authorization"),
        origin=origin,
    )
    if response is None:
        return Response(status_code=202)
    return JSONResponse(status_code=200, content=response.to_payload())
