"""MCP transport module - JSON-RPC dispatcher and HTTP endpoint."""

from .schemas import MCPErrorCodes, MCPErrorDetail, MCPJSONRPCResponse
from .dispatcher import MCPDispatcher
from .router import router


__all__ = [
    "MCPErrorCodes",
    "MCPErrorDetail",
    "MCPJSONRPCResponse",
    "MCPDispatcher",
    "router",
]
