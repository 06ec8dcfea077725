"""Unit tests for bearer credential verification."""

import json
from datetime import datetime, timezone

import httpx
import pytest
from jose import jwt

from cashcat_mcp.auth.exceptions import ExpiredTokenError, InvalidTokenError
from cashcat_mcp.auth.utils import (
    MALFORMED_HEADER_REASON,
    create_test_jwt,
    decode_jwt,
    extract_bearer_token,
    hash_api_key,
)
from cashcat_mcp.auth.verifier import (
    ApiKeyVerifier,
    INVALID_KEY_REASON,
    JWTVerifier,
    build_key_verifier,
)
from cashcat_mcp.config import Settings


API_KEY = "cc_live_abc123"
KEY_STORE = "http://keys.test"


@pytest.fixture
def key_settings() -> Settings:
    return Settings(SUPABASE_URL=KEY_STORE, SUPABASE_SERVICE_ROLE_KEY="service-role")


@pytest.fixture
def jwt_settings() -> Settings:
    return Settings(AUTH_MODE="jwt", JWT_ISSUER="cashcat", JWT_AUDIENCE="cashcat-mcp")


class KeyStore:
    """Stub PostgREST api_keys table."""

    def __init__(self, rows_by_hash: dict[str, str] | None = None, patch_status: int = 204):
        self.rows_by_hash = rows_by_hash or {}
        self.patch_status = patch_status
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key_hash = request.url.params.get("key_hash", "").removeprefix("eq.")
        if request.method == "PATCH":
            return httpx.Response(self.patch_status)
        user_id = self.rows_by_hash.get(key_hash)
        return httpx.Response(200, json=[{"user_id": user_id}] if user_id else [])


class TestExtractBearerToken:
    """Tests for Authorization header parsing."""

    def test_extracts_token(self):
        assert extract_bearer_token(f"Bearer {API_KEY}") == API_KEY

    @pytest.mark.parametrize("header", [None, "", "Bearer ", "Basic abc", "bearer abc", API_KEY])
    def test_malformed_headers(self, header):
        with pytest.raises(InvalidTokenError) as exc_info:
            extract_bearer_token(header)
        assert exc_info.value.message == MALFORMED_HEADER_REASON

    def test_hash_api_key(self):
        digest = hash_api_key(API_KEY)
        assert len(digest) == 64
        assert digest == hash_api_key(API_KEY)
        assert digest != hash_api_key(API_KEY + "x")


class TestApiKeyVerifier:
    """Tests for hashed API key verification."""

    @pytest.mark.asyncio
    async def test_valid_key(self, key_settings):
        store = KeyStore({hash_api_key(API_KEY): "user-1"})
        async with httpx.AsyncClient(transport=httpx.MockTransport(store)) as client:
            result = await ApiKeyVerifier(client, key_settings).verify(f"Bearer {API_KEY}")

        assert result.is_valid is True
        assert result.user_id == "user-1"

        lookup, touch = store.requests
        assert lookup.method == "GET"
        assert lookup.url.path == "/rest/v1/api_keys"
        assert lookup.url.params["select"] == "user_id"
        assert lookup.headers["apikey"] == "service-role"
        assert API_KEY not in str(lookup.url)
        assert touch.method == "PATCH"
        assert "last_used_at" in json.loads(touch.content)

    @pytest.mark.asyncio
    async def test_unknown_key(self, key_settings):
        store = KeyStore()
        async with httpx.AsyncClient(transport=httpx.MockTransport(store)) as client:
            result = await ApiKeyVerifier(client, key_settings).verify(f"Bearer {API_KEY}")

        assert result.is_valid is False
        assert result.error == INVALID_KEY_REASON
        assert [r.method for r in store.requests] == ["GET"]

    @pytest.mark.asyncio
    async def test_malformed_header_skips_lookup(self, key_settings):
        store = KeyStore()
        async with httpx.AsyncClient(transport=httpx.MockTransport(store)) as client:
            result = await ApiKeyVerifier(client, key_settings).verify("Token abc")

        assert result.error == MALFORMED_HEADER_REASON
        assert store.requests == []

    @pytest.mark.asyncio
    async def test_last_used_failure_is_ignored(self, key_settings):
        store = KeyStore({hash_api_key(API_KEY): "user-1"}, patch_status=500)
        async with httpx.AsyncClient(transport=httpx.MockTransport(store)) as client:
            result = await ApiKeyVerifier(client, key_settings).verify(f"Bearer {API_KEY}")

        assert result.is_valid is True

    @pytest.mark.asyncio
    async def test_unreachable_store(self, key_settings):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(refuse)) as client:
            result = await ApiKeyVerifier(client, key_settings).verify(f"Bearer {API_KEY}")

        assert result.is_valid is False
        assert result.error == "Key verification unavailable"

    @pytest.mark.asyncio
    async def test_unconfigured_store(self):
        store = KeyStore()
        async with httpx.AsyncClient(transport=httpx.MockTransport(store)) as client:
            result = await ApiKeyVerifier(client, Settings(SUPABASE_URL="")).verify(f"Bearer {API_KEY}")

        assert result.is_valid is False
        assert store.requests == []


class TestJWTVerification:
    """Tests for signed bearer tokens."""

    def test_round_trip(self, jwt_settings):
        token = create_test_jwt("user-9", settings=jwt_settings)
        assert decode_jwt(token, jwt_settings)["sub"] == "user-9"

    def test_expired_token(self, jwt_settings):
        token = create_test_jwt("user-9", expire_minutes=-10, settings=jwt_settings)
        with pytest.raises(ExpiredTokenError):
            decode_jwt(token, jwt_settings)

    def test_wrong_audience(self, jwt_settings):
        now = int(datetime.now(timezone.utc).timestamp())
        token = jwt.encode(
            {"sub": "user-9", "iss": "cashcat", "aud": "someone-else", "exp": now + 60},
            jwt_settings.JWT_SECRET_KEY,
            algorithm="HS256",
        )
        with pytest.raises(InvalidTokenError, match="Invalid JWT token"):
            decode_jwt(token, jwt_settings)

    def test_missing_issuer_configuration(self):
        with pytest.raises(InvalidTokenError, match="issuer/audience"):
            decode_jwt("a.b.c", Settings(JWT_ISSUER="", JWT_AUDIENCE=""))

    @pytest.mark.asyncio
    async def test_jwt_verifier(self, jwt_settings):
        verifier = JWTVerifier(jwt_settings)
        token = create_test_jwt("user-9", settings=jwt_settings)

        assert (await verifier.verify(f"Bearer {token}")).user_id == "user-9"
        rejected = await verifier.verify("Bearer not-a-jwt")
        assert rejected.is_valid is False
        assert rejected.error.startswith("Invalid JWT token")


class TestBuildKeyVerifier:
    """Tests for verifier selection."""

    def test_selects_by_mode(self, key_settings, jwt_settings):
        client = httpx.AsyncClient()
        assert isinstance(build_key_verifier(client, key_settings), ApiKeyVerifier)
        assert isinstance(build_key_verifier(client, jwt_settings), JWTVerifier)

    def test_unknown_mode(self):
        with pytest.raises(ValueError, match="AUTH_MODE"):
            build_key_verifier(httpx.AsyncClient(), Settings(AUTH_MODE="oauth"))
