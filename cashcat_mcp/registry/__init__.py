"""Registry module - tool catalogue, argument validation and handlers."""

from .schemas import PropertySchema, ToolInputSchema, ToolDefinition
from .service import RegisteredTool, ToolHandler, ToolRegistry
from .validation import validate_arguments
from .tools import build_tool_registry, ALLOWED_GET_ENDPOINTS


__all__ = [
    "PropertySchema",
    "ToolInputSchema",
    "ToolDefinition",
    "RegisteredTool",
    "ToolHandler",
    "ToolRegistry",
    "validate_arguments",
    "build_tool_registry",
    "ALLOWED_GET_ENDPOINTS",
]
