# Test configuration
import sys
from pathlib import Path
from typing import Callable

import httpx
import pytest
import pytest_asyncio

REPO_ROOT = Path(__file__).parent.parent

# Add repo root to path so tests can import modules
sys.path.insert(0, str(REPO_ROOT))

from cashcat_mcp.gateway.schemas import RpcContext  # noqa: E402

API_ORIGIN = "http://cashcat.test"
AUTH_HEADER = "Bearer cc_live_test"

Responder = Callable[[httpx.Request], httpx.Response]


def cursor_pages(rows: list, total: int | None = None) -> Responder:
    """Serve ``rows`` in sequential cursor pages honouring ``limit``."""

    def respond(request: httpx.Request) -> httpx.Response:
        start = int(request.url.params.get("cursor", "0"))
        limit = int(request.url.params.get("limit", "1000"))
        chunk = rows[start:start + limit]
        end = start + len(chunk)
        meta = {"total": len(rows) if total is None else total}
        if end < len(rows):
            meta["next_cursor"] = str(end)
        return httpx.Response(200, json={"data": chunk, "meta": meta})

    return respond


class StubAPI:
    """Stub of the CashCat REST API that records every request it receives."""

    def __init__(self) -> None:
        self.routes: dict[str, Responder] = {}
        self.requests: list[httpx.Request] = []

    def route(self, endpoint: str, responder: Responder) -> None:
        self.routes[endpoint] = responder

    def rows(self, endpoint: str, rows: list, total: int | None = None) -> None:
        self.route(endpoint, cursor_pages(rows, total))

    def requests_for(self, endpoint: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == f"/api/v1/{endpoint}"]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        endpoint = request.url.path.removeprefix("/api/v1/")
        responder = self.routes.get(endpoint)
        if responder is None:
            return httpx.Response(404, json={"error": {"message": f"No route for {endpoint}"}})
        return responder(request)


@pytest.fixture
def stub_api() -> StubAPI:
    return StubAPI()


@pytest_asyncio.fixture
async def http_client(stub_api):
    async with httpx.AsyncClient(transport=httpx.MockTransport(stub_api)) as client:
        yield client


@pytest.fixture
def rpc_ctx() -> RpcContext:
    return RpcContext(auth_header=AUTH_HEADER, base_origin=API_ORIGIN)
