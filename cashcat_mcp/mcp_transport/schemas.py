"""Pydantic schemas for MCP JSON-RPC protocol messages."""

from typing import Any, Literal
from pydantic import BaseModel, Field


JsonRpcId = str | int | float | None


class MCPErrorCodes:
    """JSON-RPC error codes used by the gateway."""

    # JSON-RPC standard errors
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603

    # Gateway errors (-32000 to -32099)
    TOOL_EXECUTION_FAILED = -32000
    UNAUTHORIZED = -32001


class MCPErrorDetail(BaseModel):
    """Error details in JSON-RPC format.

    Attributes:
        code: Error code (negative integers for protocol errors).
        message: Human-readable error message.
        data: Optional additional error data.
    """

    code: int = Field(..., description="Error code")
    message: str = Field(..., description="Error message")
    data: Any | None = Field(default=None, description="Additional error data")


class MCPJSONRPCResponse(BaseModel):
    """JSON-RPC 2.0 response wrapper.

    Exactly one of ``result`` / ``error`` is serialized by :meth:`to_payload`.
    """

    jsonrpc: Literal["2.0"] = "2.0"
    id: JsonRpcId = None
    result: Any | None = None
    error: MCPErrorDetail | None = None

    @classmethod
    def success(cls, id: JsonRpcId, result: Any) -> "MCPJSONRPCResponse":
        return cls(id=id, result=result)

    @classmethod
    def error_response(
        cls,
        id: JsonRpcId,
        code: int,
        message: str,
        data: Any | None = None,
    ) -> "MCPJSONRPCResponse":
        return cls(id=id, error=MCPErrorDetail(code=code, message=message, data=data))

    def to_payload(self) -> dict[str, Any]:
        """Serialize the envelope for the wire."""
        payload: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            error: dict[str, Any] = {"code": self.error.code, "message": self.error.message}
            if self.error.data is not None:
                error["data"] = self.error.data
            payload["error"] = error
        else:
            payload["result"] = self.result
        return payload


class MCPContent(BaseModel):
    """Content item in tool response."""

    type: Literal["text", "image", "resource"]
    text: str | None = None
    data: str | None = None
    mimeType: str | None = None


class MCPToolCallResult(BaseModel):
    """Result for tools/call."""

    content: list[MCPContent]
    structuredContent: dict[str, Any] = Field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        return {
            "content": [item.model_dump(exclude_none=True) for item in self.content],
            "structuredContent": self.structuredContent,
        }


class MCPToolCallParams(BaseModel):
    """Parameters for tools/call."""

    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)
