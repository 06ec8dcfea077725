"""Business logic for MCP protocol handlers."""

import json
import uuid
from typing import Any

import anyio
import httpx
import structlog

from cashcat_mcp.audit import audit_tool_invocation, log_denied_tool_invocation
from cashcat_mcp.auth.verifier import KeyVerifier
from cashcat_mcp.config import Settings, get_settings
from cashcat_mcp.gateway.exceptions import (
    GatewayError,
    ToolArgumentError,
    ToolNotFoundError,
    ToolTimeoutError,
)
from cashcat_mcp.gateway.schemas import RpcContext
from cashcat_mcp.registry.service import ToolRegistry
from cashcat_mcp.registry.validation import validate_arguments
from cashcat_mcp.utils import utc_now_iso

from .schemas import (
    JsonRpcId,
    MCPContent,
    MCPErrorCodes,
    MCPJSONRPCResponse,
    MCPToolCallResult,
)

logger = structlog.get_logger(__name__)

PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "cashcat-mcp"
SERVER_VERSION = "1.0.0"
SERVER_INSTRUCTIONS = (
    "Use cashcat_financial_overview and cashcat_full_context for comprehensive financial analysis."
)
UNAUTHORIZED_MESSAGE = "Unauthorized"
TOOL_FAILED_MESSAGE = "Tool execution failed"


def server_info() -> dict[str, Any]:
    """Static description served on ``GET /api/mcp``."""
    return {
        "name": SERVER_NAME,
        "version": SERVER_VERSION,
        "transport": "http-jsonrpc",
        "endpoint": "/api/mcp",
        "notes": (
            "POST JSON-RPC requests to this endpoint. "
            "Authenticate tool calls with Authorization: Bearer cc_live_..."
        ),
    }


async def handle_initialize(params: dict[str, Any]) -> dict[str, Any]:
    """Handle initialize request.

    Client capabilities are accepted but not negotiated.

    Args:
        params: Initialize parameters from client.

    Returns:
        Server initialization response.
    """
    return {
        "protocolVersion": PROTOCOL_VERSION,
        "capabilities": {"tools": {"listChanged": False}},
        "serverInfo": {"name": SERVER_NAME, "version": SERVER_VERSION},
        "instructions": SERVER_INSTRUCTIONS,
    }


async def handle_ping() -> dict[str, Any]:
    return {"ok": True, "timestamp": utc_now_iso()}


async def handle_tools_list(registry: ToolRegistry) -> dict[str, Any]:
    return {"tools": registry.list_definitions()}


def _parse_call_params(params: Any) -> tuple[str, dict[str, Any]]:
    if not isinstance(params, dict):
        params = {}
    name = params.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ToolArgumentError("Invalid params: 'name' must be a non-empty string.", field="name")
    arguments = params.get("arguments")
    if not isinstance(arguments, dict):
        arguments = {}
    return name.strip(), arguments


def _tool_result(result: dict[str, Any]) -> dict[str, Any]:
    text = json.dumps(result, indent=2, ensure_ascii=False)
    return MCPToolCallResult(
        content=[MCPContent(type="text", text=text)],
        structuredContent=result,
    ).to_payload()


async def handle_tools_call(
    request_id: JsonRpcId,
    params: Any,
    authorization: str | None,
    origin: str,
    registry: ToolRegistry,
    verifier: KeyVerifier,
    client: httpx.AsyncClient,
    settings: Settings | None = None,
) -> MCPJSONRPCResponse:
    """Handle tools/call request.

    The credential is verified before anything else, so a rejected call
    never touches the registry or the downstream API.

    Args:
        request_id: JSON-RPC id echoed in the response.
        params: Raw ``params`` member of the request.
        authorization: Raw ``Authorization`` header, if any.
        origin: Origin of the incoming request, used when no
            ``API_BASE_URL`` is configured.
        registry: Tool catalogue.
        verifier: Credential verifier.
        client: Shared HTTP client for downstream calls.
        settings: Application settings.

    Returns:
        JSON-RPC response carrying the tool result or an error.
    """
    settings = settings or get_settings()
    correlation_id = str(request_id) if request_id is not None else str(uuid.uuid4())
    raw_name = params.get("name") if isinstance(params, dict) else None
    tool_label = raw_name if isinstance(raw_name, str) else None

    auth = await verifier.verify(authorization)
    if not auth.is_valid:
        log_denied_tool_invocation(correlation_id, tool_label, auth.error)
        return MCPJSONRPCResponse.error_response(
            request_id,
            MCPErrorCodes.UNAUTHORIZED,
            UNAUTHORIZED_MESSAGE,
            data={"reason": auth.error},
        )

    try:
        name, arguments = _parse_call_params(params)
    except ToolArgumentError as e:
        return MCPJSONRPCResponse.error_response(request_id, MCPErrorCodes.INVALID_PARAMS, e.message)

    tool = registry.resolve(name)
    if tool is None:
        return MCPJSONRPCResponse.error_response(
            request_id, MCPErrorCodes.INVALID_PARAMS, ToolNotFoundError(name).message
        )

    ctx = RpcContext(
        auth_header=authorization or "",
        base_origin=settings.API_BASE_URL or origin,
    )
    timeout = settings.TOOL_CALL_TIMEOUT_SECONDS

    async with audit_tool_invocation(correlation_id, auth.user_id, name) as audit:
        try:
            validated = validate_arguments(tool.definition.inputSchema, arguments)
            with anyio.fail_after(timeout):
                result = await tool.handler(validated, ctx, client)
        except ToolArgumentError as e:
            audit.mark_error(e.code)
            return MCPJSONRPCResponse.error_response(request_id, MCPErrorCodes.INVALID_PARAMS, e.message)
        except TimeoutError:
            audit.mark_timeout()
            return MCPJSONRPCResponse.error_response(
                request_id,
                MCPErrorCodes.TOOL_EXECUTION_FAILED,
                ToolTimeoutError(name, timeout).message,
            )
        except GatewayError as e:
            audit.mark_error(e.code)
            return MCPJSONRPCResponse.error_response(
                request_id, MCPErrorCodes.TOOL_EXECUTION_FAILED, e.message
            )
        except Exception:
            logger.exception("tool_handler_failed", tool_name=name, request_id=correlation_id)
            audit.mark_error("INTERNAL_ERROR")
            return MCPJSONRPCResponse.error_response(
                request_id, MCPErrorCodes.TOOL_EXECUTION_FAILED, TOOL_FAILED_MESSAGE
            )

    return MCPJSONRPCResponse.success(request_id, _tool_result(result))
