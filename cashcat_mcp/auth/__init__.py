"""Auth module initialization."""

from .exceptions import (
    CashcatMCPError,
    AuthenticationError,
    InvalidTokenError,
    ExpiredTokenError,
    KeyVerifierUnavailableError,
)
from .models import AuthResult
from .utils import extract_bearer_token, hash_api_key, decode_jwt, create_test_jwt
from .verifier import KeyVerifier, ApiKeyVerifier, JWTVerifier, build_key_verifier
from .dependencies import get_key_verifier

__all__ = [
    # Exceptions
    "CashcatMCPError",
    "AuthenticationError",
    "InvalidTokenError",
    "ExpiredTokenError",
    "KeyVerifierUnavailableError",
    # Models
    "AuthResult",
    # Utils
    "extract_bearer_token",
    "hash_api_key",
    "decode_jwt",
    "create_test_jwt",
    # Verifiers
    "KeyVerifier",
    "ApiKeyVerifier",
    "JWTVerifier",
    "build_key_verifier",
    # Dependencies
    "get_key_verifier",
]
