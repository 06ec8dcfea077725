"""Audit module - structured logging of tool invocations."""

from .logger import (
    AuditContext,
    AuditStatus,
    audit_tool_invocation,
    log_tool_invocation,
    log_denied_tool_invocation,
)

__all__ = [
    "AuditContext",
    "AuditStatus",
    "audit_tool_invocation",
    "log_tool_invocation",
    "log_denied_tool_invocation",
]
