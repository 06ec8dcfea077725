"""Pydantic models for authentication results."""

from pydantic import BaseModel, Field


class AuthResult(BaseModel):
    """Outcome of verifying a bearer credential.

    Attributes:
        is_valid: Whether the credential was accepted.
        user_id: Owner of the credential when valid.
        error: Reason the credential was rejected.
    """

    is_valid: bool = Field(..., description="Whether the credential was accepted")
    user_id: str | None = Field(None, description="Owner of the credential")
    error: str | None = Field(None, description="Rejection reason")

    @classmethod
    def valid(cls, user_id: str) -> "AuthResult":
        return cls(is_valid=True, user_id=user_id)

    @classmethod
    def invalid(cls, error: str) -> "AuthResult":
        return cls(is_valid=False, error=error)
