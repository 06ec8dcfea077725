"""Custom exceptions raised while executing gateway tools."""

from cashcat_mcp.auth.exceptions import CashcatMCPError


class GatewayError(CashcatMCPError):
    """Base exception for gateway-specific errors."""
    pass


class ToolNotFoundError(GatewayError):
    """Raised when requested tool is not in the registry.

    Attributes:
        tool_name: Name of the tool that was not found.
    """

    def __init__(self, tool_name: str):
        super().__init__(
            message=f"Unknown tool: {tool_name}",
            code="TOOL_NOT_FOUND"
        )
        self.tool_name = tool_name


class ToolArgumentError(GatewayError):
    """Raised when tool arguments fail validation before any network call.

    Attributes:
        field: Name of the offending argument, when there is a single one.
    """

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message=message, code="INVALID_ARGUMENTS")
        self.field = field


class UpstreamError(GatewayError):
    """Raised when a downstream REST endpoint fails.

    The message always has the form ``"{endpoint}: {reason}"``.

    Attributes:
        endpoint: Downstream endpoint that failed (e.g. ``transactions``).
        reason: Upstream-reported or transport-level failure description.
        status_code: HTTP status code, if a response was received.
    """

    def __init__(self, endpoint: str, reason: str, status_code: int | None = None):
        super().__init__(
            message=f"{endpoint}: {reason}",
            code="UPSTREAM_ERROR"
        )
        self.endpoint = endpoint
        self.reason = reason
        self.status_code = status_code


class ToolTimeoutError(GatewayError):
    """Raised when a whole tool call exceeds its deadline.

    Attributes:
        tool_name: Tool that timed out.
        timeout_seconds: Deadline that was exceeded.
    """

    def __init__(self, tool_name: str, timeout_seconds: float):
        super().__init__(
            message=f"Tool '{tool_name}' timed out after {timeout_seconds}s",
            code="TOOL_TIMEOUT"
        )
        self.tool_name = tool_name
        self.timeout_seconds = timeout_seconds
