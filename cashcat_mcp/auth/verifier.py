"""Bearer credential verifiers used by the tools/call gate."""

from typing import Protocol

import httpx
import structlog

from ..config import Settings, get_settings
from ..utils import utc_now_iso
from .exceptions import AuthenticationError, KeyVerifierUnavailableError
from .models import AuthResult
from .utils import decode_jwt, extract_bearer_token, hash_api_key


logger = structlog.get_logger(__name__)

INVALID_KEY_REASON = "Invalid API Key"


class KeyVerifier(Protocol):
    """Anything that can vouch for an Authorization header."""

    async def verify(self, authorization: str | None) -> AuthResult:
        ...


class ApiKeyVerifier:
    """Verify ``cc_live_...`` API keys against the hashed key store.

    Keys are stored as SHA-256 hex digests in a PostgREST-exposed table. The
    lookup uses the service-role key, and a successful lookup stamps
    ``last_used_at`` on a best-effort basis.
    """

    def __init__(self, client: httpx.AsyncClient, settings: Settings | None = None):
        self.client = client
        self.settings = settings or get_settings()

    @property
    def _table_url(self) -> str:
        base = self.settings.SUPABASE_URL.rstrip("/")
        return f"{base}/rest/v1/{self.settings.API_KEYS_TABLE}"

    @property
    def _headers(self) -> dict[str, str]:
        service_key = self.settings.SUPABASE_SERVICE_ROLE_KEY
        return {
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
            "Accept": "application/json",
        }

    async def _lookup_user_id(self, key_hash: str) -> str | None:
        if not self.settings.SUPABASE_URL or not self.settings.SUPABASE_SERVICE_ROLE_KEY:
            raise KeyVerifierUnavailableError("key store not configured")

        try:
            response = await self.client.get(
                self._table_url,
                params={"select": "user_id", "key_hash": f"eq.{key_hash}", "limit": "1"},
                headers=self._headers,
                timeout=self.settings.KEY_VERIFY_TIMEOUT_SECONDS,
            )
        except httpx.RequestError as e:
            raise KeyVerifierUnavailableError(str(e)) from e

        if response.status_code >= 400:
            logger.warning("api_key_lookup_failed", status=response.status_code)
            return None

        try:
            rows = response.json()
        except ValueError:
            return None
        if not isinstance(rows, list) or not rows or not isinstance(rows[0], dict):
            return None
        user_id = rows[0].get("user_id")
        return str(user_id) if user_id else None

    async def _touch_last_used(self, key_hash: str) -> None:
        try:
            response = await self.client.patch(
                self._table_url,
                params={"key_hash": f"eq.{key_hash}"},
                json={"last_used_at": utc_now_iso()},
                headers={**self._headers, "Prefer": "return=minimal"},
                timeout=self.settings.KEY_VERIFY_TIMEOUT_SECONDS,
            )
        except httpx.RequestError as e:
            logger.warning("api_key_usage_update_failed", error=str(e))
            return
        if response.status_code >= 400:
            logger.warning("api_key_usage_update_failed", status=response.status_code)

    async def verify(self, authorization: str | None) -> AuthResult:
        try:
            key = extract_bearer_token(authorization)
        except AuthenticationError as e:
            return AuthResult.invalid(e.message)

        key_hash = hash_api_key(key)
        try:
            user_id = await self._lookup_user_id(key_hash)
        except KeyVerifierUnavailableError as e:
            logger.error("api_key_verifier_unavailable", reason=e.reason)
            return AuthResult.invalid("Key verification unavailable")

        if user_id is None:
            return AuthResult.invalid(INVALID_KEY_REASON)

        await self._touch_last_used(key_hash)
        return AuthResult.valid(user_id)


class JWTVerifier:
    """Verify signed bearer tokens issued for the gateway."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    async def verify(self, authorization: str | None) -> AuthResult:
        try:
            token = extract_bearer_token(authorization)
            payload = decode_jwt(token, self.settings)
        except AuthenticationError as e:
            return AuthResult.invalid(e.message)

        user_id = payload.get(self.settings.JWT_USER_ID_CLAIM)
        if not user_id:
            return AuthResult.invalid(
                f"JWT token missing required '{self.settings.JWT_USER_ID_CLAIM}' claim"
            )
        return AuthResult.valid(str(user_id))


def build_key_verifier(client: httpx.AsyncClient, settings: Settings | None = None) -> KeyVerifier:
    """Pick the verifier configured by ``AUTH_MODE``.

    Raises:
        ValueError: For an unknown mode.
    """
    settings = settings or get_settings()
    mode = settings.AUTH_MODE.strip().lower()
    if mode == "api_key":
        return ApiKeyVerifier(client, settings)
    if mode == "jwt":
        return JWTVerifier(settings)
    raise ValueError(f"unknown AUTH_MODE: {settings.AUTH_MODE}")
