"""High-level async audit logger for tool invocations."""

import time
from contextlib import asynccontextmanager
from enum import Enum
from typing import AsyncGenerator

import structlog

# Configure structured logger
logger = structlog.get_logger("audit")


class AuditStatus(str, Enum):
    """Final status of an audited tool invocation."""

    success = "success"
    error = "error"
    timeout = "timeout"
    unauthorized = "unauthorized"


class AuditContext:
    """Tracks timing and status for one tool invocation.

    Attributes:
        request_id: JSON-RPC id (or generated correlation id).
        user_id: Owner of the verified credential.
        tool_name: Which tool is being invoked.
        start_time: When the invocation started.
        status: Final status of the invocation.
        error_code: Error code if failed.
    """

    def __init__(
        self,
        request_id: str,
        user_id: str | None,
        tool_name: str,
    ) -> None:
        self.request_id = request_id
        self.user_id = user_id
        self.tool_name = tool_name
        self.start_time = time.perf_counter()
        self.status = AuditStatus.success
        self.error_code: str | None = None

    def mark_error(self, error_code: str) -> None:
        """Mark the invocation as failed with an error code."""
        self.status = AuditStatus.error
        self.error_code = error_code

    def mark_timeout(self) -> None:
        """Mark the invocation as timed out."""
        self.status = AuditStatus.timeout
        self.error_code = "TOOL_TIMEOUT"

    @property
    def duration_ms(self) -> int:
        """Calculate duration in milliseconds."""
        elapsed = time.perf_counter() - self.start_time
        return int(elapsed * 1000)


def log_tool_invocation(context: AuditContext) -> None:
    """Emit one structured ``tool_invocation`` event."""
    log = logger.warning if context.status is not AuditStatus.success else logger.info
    log(
        "tool_invocation",
        request_id=context.request_id,
        user_id=context.user_id,
        tool_name=context.tool_name,
        status=context.status.value,
        duration_ms=context.duration_ms,
        error_code=context.error_code,
    )


@asynccontextmanager
async def audit_tool_invocation(
    request_id: str,
    user_id: str | None,
    tool_name: str,
) -> AsyncGenerator[AuditContext, None]:
    """Context manager for auditing tool invocations.

    Automatically tracks timing and logs when the context exits.

    Example:
        async with audit_tool_invocation(req_id, user_id, tool) as ctx:
            try:
                result = await do_work()
            except UpstreamError as e:
                ctx.mark_error(e.code)
                raise
    """
    context = AuditContext(request_id, user_id, tool_name)
    try:
        yield context
    finally:
        log_tool_invocation(context)


def log_denied_tool_invocation(request_id: str, tool_name: str | None, reason: str | None) -> None:
    """Log a tools/call rejected by the authentication gate."""
    logger.warning(
        "tool_invocation",
        request_id=request_id,
        user_id=None,
        tool_name=tool_name,
        status=AuditStatus.unauthorized.value,
        duration_ms=0,
        error_code="UNAUTHORIZED",
        reason=reason,
    )
