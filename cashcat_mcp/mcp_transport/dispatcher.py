"""JSON-RPC 2.0 envelope handling and method routing."""

from typing import Any

import httpx
import structlog

from cashcat_mcp.auth.verifier import KeyVerifier
from cashcat_mcp.config import Settings, get_settings
from cashcat_mcp.registry.service import ToolRegistry
from cashcat_mcp.utils import strict_json_loads

from .schemas import JsonRpcId, MCPErrorCodes, MCPJSONRPCResponse
from .service import handle_initialize, handle_ping, handle_tools_call, handle_tools_list

logger = structlog.get_logger(__name__)

NOTIFICATION_PREFIX = "notifications/"


def _echo_id(payload: dict[str, Any]) -> JsonRpcId:
    """Return the request id if it is a valid JSON-RPC id, else ``None``."""
    raw_id = payload.get("id")
    if isinstance(raw_id, bool):
        return None
    if isinstance(raw_id, (str, int, float)):
        return raw_id
    return None


class MCPDispatcher:
    """Parses one JSON-RPC message and routes it to the matching handler.

    ``dispatch`` never raises. Every failure is mapped to a JSON-RPC error
    envelope, and notifications return ``None`` so the transport can answer
    with an empty 202.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        verifier: KeyVerifier,
        client: httpx.AsyncClient,
        settings: Settings | None = None,
    ):
        self.registry = registry
        self.verifier = verifier
        self.client = client
        self.settings = settings or get_settings()

    async def dispatch(
        self,
        body: bytes | str,
        authorization: str | None = None,
        origin: str = "",
    ) -> MCPJSONRPCResponse | None:
        try:
            payload = strict_json_loads(body)
        except ValueError:
            return MCPJSONRPCResponse.error_response(None, MCPErrorCodes.PARSE_ERROR, "Parse error")

        if not isinstance(payload, dict):
            return MCPJSONRPCResponse.error_response(
                None, MCPErrorCodes.INVALID_REQUEST, "Invalid Request"
            )

        request_id = _echo_id(payload)
        method = payload.get("method")
        if payload.get("jsonrpc") != "2.0":
            return MCPJSONRPCResponse.error_response(
                request_id, MCPErrorCodes.INVALID_REQUEST, 'Invalid Request: jsonrpc must be "2.0"'
            )
        if not isinstance(method, str):
            return MCPJSONRPCResponse.error_response(
                request_id, MCPErrorCodes.INVALID_REQUEST, "Invalid Request: missing method"
            )

        params = payload.get("params")

        try:
            if method == "initialize":
                result = await handle_initialize(params if isinstance(params, dict) else {})
                return MCPJSONRPCResponse.success(request_id, result)

            elif method == "ping":
                return MCPJSONRPCResponse.success(request_id, await handle_ping())

            elif method == "tools/list":
                return MCPJSONRPCResponse.success(request_id, await handle_tools_list(self.registry))

            elif method == "tools/call":
                return await handle_tools_call(
                    request_id=request_id,
                    params=params,
                    authorization=authorization,
                    origin=origin,
                    registry=self.registry,
                    verifier=self.verifier,
                    client=self.client,
                    settings=self.settings,
                )

            elif method.startswith(NOTIFICATION_PREFIX):
                logger.debug("notification_received", method=method)
                return None

            return MCPJSONRPCResponse.error_response(
                request_id, MCPErrorCodes.METHOD_NOT_FOUND, f"Method not found: {method}"
            )

        except Exception:
            logger.exception("jsonrpc_internal_error", method=method, request_id=request_id)
            return MCPJSONRPCResponse.error_response(
                request_id, MCPErrorCodes.INTERNAL_ERROR, "Internal error"
            )
