"""Credential parsing, API key hashing and JWT validation helpers."""

import hashlib
from datetime import datetime, timezone

from jose import JWTError, jwt

from ..config import Settings, get_settings
from .exceptions import InvalidTokenError, ExpiredTokenError


MALFORMED_HEADER_REASON = "Missing or malformed Authorization header"


def extract_bearer_token(authorization: str | None) -> str:
    """Extract the credential from an ``Authorization: Bearer <token>`` header.

    Raises:
        InvalidTokenError: If header is missing or malformed.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise InvalidTokenError(MALFORMED_HEADER_REASON)

    token = authorization[len("Bearer "):].strip()
    if not token:
        raise InvalidTokenError(MALFORMED_HEADER_REASON)
    return token


def hash_api_key(key: str) -> str:
    """SHA-256 hex digest under which API keys are stored."""
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


def _get_allowed_algorithms(settings: Settings) -> list[str]:
    items = [item.strip() for item in settings.JWT_ALLOWED_ALGORITHMS.split(",") if item.strip()]

    normalized = [item.upper() for item in items]
    if not normalized or "NONE" in normalized:
        raise InvalidTokenError("JWT allowed algorithms misconfigured")

    if settings.JWT_ALGORITHM.upper() not in normalized:
        raise InvalidTokenError("JWT algorithm not in allowed list")

    return normalized


def decode_jwt(token: str, settings: Settings | None = None) -> dict:
    """Decode and validate a signed bearer token.

    Args:
        token: JWT string (without 'Bearer ' prefix).
        settings: Settings override; defaults to the cached settings.

    Returns:
        Decoded JWT payload as a dictionary.

    Raises:
        InvalidTokenError: If token is malformed, badly signed or misconfigured.
        ExpiredTokenError: If token has expired.
    """
    settings = settings or get_settings()

    if not settings.JWT_ISSUER or not settings.JWT_AUDIENCE:
        raise InvalidTokenError("JWT issuer/audience not configured")

    allowed_algorithms = _get_allowed_algorithms(settings)

    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=allowed_algorithms,
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
            options={
                "verify_signature": True,
                "verify_exp": False,
                "verify_aud": True,
                "verify_iss": True,
            }
        )
    except JWTError as e:
        raise InvalidTokenError(f"Invalid JWT token: {str(e)}") from e

    exp_value = payload.get("exp")
    if exp_value is None:
        raise InvalidTokenError("JWT token missing required 'exp' claim")
    try:
        exp_ts = int(exp_value)
    except (TypeError, ValueError):
        raise InvalidTokenError("JWT token has invalid 'exp' claim")

    now_ts = int(datetime.now(timezone.utc).timestamp())
    skew = max(0, int(settings.JWT_CLOCK_SKEW_SECONDS))
    if now_ts - skew > exp_ts:
        raise ExpiredTokenError("JWT token has expired")

    return payload


def create_test_jwt(user_id: str, expire_minutes: int = 30, settings: Settings | None = None) -> str:
    """Create a signed bearer token (for development/testing only)."""
    settings = settings or get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        settings.JWT_USER_ID_CLAIM: user_id,
        "iss": settings.JWT_ISSUER,
        "aud": settings.JWT_AUDIENCE,
        "iat": int(now.timestamp()),
        "exp": int(now.timestamp()) + expire_minutes * 60,
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
