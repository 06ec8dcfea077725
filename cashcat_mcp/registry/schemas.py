"""Pydantic schemas for tool definitions exposed through tools/list."""

from typing import Any, Literal
from pydantic import BaseModel, ConfigDict, Field


PropertyType = Literal["string", "integer", "number", "boolean", "object"]


class PropertySchema(BaseModel):
    """Constraints for a single tool argument.

    Only a closed set of constraint kinds is understood: ``type``, ``enum``,
    ``minimum``/``maximum`` and ``default``. Extra keys (for example a nested
    ``additionalProperties`` hint on object arguments) are published in the
    catalogue but not enforced.
    """

    model_config = ConfigDict(extra="allow")

    type: PropertyType
    description: str | None = None
    enum: list[Any] | None = None
    minimum: int | float | None = None
    maximum: int | float | None = None
    default: Any = None

    @property
    def has_default(self) -> bool:
        return "default" in self.model_fields_set


class ToolInputSchema(BaseModel):
    """Object schema describing a tool's arguments."""

    type: Literal["object"] = "object"
    additionalProperties: bool = False
    required: list[str] = Field(default_factory=list)
    properties: dict[str, PropertySchema] = Field(default_factory=dict)


class ToolDefinition(BaseModel):
    """Catalogue entry for a callable tool.

    Attributes:
        name: Unique tool identifier.
        description: Human-readable description for the calling agent.
        inputSchema: Argument schema.
    """

    name: str = Field(..., description="Unique tool identifier")
    description: str = Field(..., description="Human-readable description")
    inputSchema: ToolInputSchema = Field(default_factory=ToolInputSchema)

    def to_catalogue_entry(self) -> dict[str, Any]:
        """Serialize as published by tools/list."""
        entry = self.model_dump(exclude_none=True)
        if not self.inputSchema.required:
            entry["inputSchema"].pop("required", None)
        return entry
