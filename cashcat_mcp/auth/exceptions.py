"""Custom exceptions for authentication and the gateway error hierarchy."""


class CashcatMCPError(Exception):
    """Base exception for all CashCat MCP gateway errors."""

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(self.message)


class AuthenticationError(CashcatMCPError):
    """Raised when a bearer credential cannot be verified."""
    pass


class InvalidTokenError(AuthenticationError):
    """Raised when a bearer token is invalid or malformed."""
    pass


class ExpiredTokenError(AuthenticationError):
    """Raised when a bearer token has expired."""
    pass


class KeyVerifierUnavailableError(AuthenticationError):
    """Raised when the external key store cannot be reached."""

    def __init__(self, reason: str):
        super().__init__(
            message=f"Key verification unavailable: {reason}",
            code="KEY_VERIFIER_UNAVAILABLE"
        )
        self.reason = reason
