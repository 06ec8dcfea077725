"""Unit tests for downstream fetching, pagination and fan-out."""

import httpx
import pytest

from cashcat_mcp.gateway.exceptions import UpstreamError
from cashcat_mcp.gateway.orchestrator import fetch_datasets
from cashcat_mcp.gateway.pagination import fetch_all_pages
from cashcat_mcp.gateway.proxy import build_endpoint_url, call_endpoint, flatten_query
from cashcat_mcp.gateway.schemas import DatasetRequest

from conftest import AUTH_HEADER


def _rows(count: int) -> list[dict]:
    return [{"id": i, "amount": i} for i in range(count)]


class TestFlattenQuery:
    """Tests for query flattening."""

    def test_drops_empty_values_and_objects(self):
        flattened = flatten_query(
            {"month": "2024-05", "as_of_date": None, "q": "", "nested": {"a": 1}}
        )
        assert flattened == {"month": "2024-05"}

    def test_stringifies_scalars(self):
        flattened = flatten_query({"include_zero": True, "archived": False, "limit": 50.0, "min": 1.5})
        assert flattened == {"include_zero": "true", "archived": "false", "limit": "50", "min": "1.5"}

    def test_joins_lists(self):
        assert flatten_query({"ids": ["a", " b ", ""], "empty": []}) == {"ids": "a,b"}

    def test_non_dict_yields_empty(self):
        assert flatten_query(None) == {}
        assert flatten_query(["month"]) == {}

    def test_build_endpoint_url(self):
        assert (
            build_endpoint_url("http://api.test/", "categories/budget-left")
            == "http://api.test/api/v1/categories/budget-left"
        )


class TestCallEndpoint:
    """Tests for single-page downstream reads."""

    @pytest.mark.asyncio
    async def test_forwards_caller_credentials(self, stub_api, http_client, rpc_ctx):
        stub_api.route("accounts", lambda r: httpx.Response(200, json={"data": [], "meta": {"total": 0}}))

        page = await call_endpoint(http_client, rpc_ctx, "accounts", {"include_balance": True})

        assert page.data == []
        assert page.meta == {"total": 0}
        request = stub_api.requests[0]
        assert request.headers["authorization"] == AUTH_HEADER
        assert request.headers["cache-control"] == "no-store"
        assert request.url.params["include_balance"] == "true"

    @pytest.mark.asyncio
    async def test_error_message_from_payload(self, stub_api, http_client, rpc_ctx):
        stub_api.route(
            "transactions",
            lambda r: httpx.Response(400, json={"error": {"message": "Invalid month"}}),
        )

        with pytest.raises(UpstreamError) as exc_info:
            await call_endpoint(http_client, rpc_ctx, "transactions")

        assert exc_info.value.message == "transactions: Invalid month"
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_error_message_fallback(self, stub_api, http_client, rpc_ctx):
        stub_api.route("groups", lambda r: httpx.Response(503, json={}))

        with pytest.raises(UpstreamError) as exc_info:
            await call_endpoint(http_client, rpc_ctx, "groups")

        assert exc_info.value.message == "groups: Request failed (503)"

    @pytest.mark.asyncio
    async def test_non_json_body(self, stub_api, http_client, rpc_ctx):
        stub_api.route("groups", lambda r: httpx.Response(502, text="<html>bad gateway</html>"))

        with pytest.raises(UpstreamError) as exc_info:
            await call_endpoint(http_client, rpc_ctx, "groups")

        assert exc_info.value.reason == "non-JSON response (502)"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("literal", [b"NaN", b"Infinity", b"-Infinity", b"1e400"])
    async def test_non_finite_numbers_rejected(self, stub_api, http_client, rpc_ctx, literal):
        body = b'{"data": [{"balance": ' + literal + b'}]}'
        stub_api.route(
            "accounts",
            lambda r: httpx.Response(200, content=body, headers={"Content-Type": "application/json"}),
        )

        with pytest.raises(UpstreamError) as exc_info:
            await call_endpoint(http_client, rpc_ctx, "accounts")

        assert exc_info.value.reason == "non-JSON response (200)"
        assert exc_info.value.status_code == 200

    @pytest.mark.asyncio
    async def test_non_object_body(self, stub_api, http_client, rpc_ctx):
        stub_api.route("groups", lambda r: httpx.Response(200, json=[1, 2]))

        with pytest.raises(UpstreamError) as exc_info:
            await call_endpoint(http_client, rpc_ctx, "groups")

        assert exc_info.value.reason == "unexpected response shape (200)"

    @pytest.mark.asyncio
    async def test_timeout(self, stub_api, http_client, rpc_ctx):
        def raise_timeout(request):
            raise httpx.ReadTimeout("slow", request=request)

        stub_api.route("transfers", raise_timeout)

        with pytest.raises(UpstreamError) as exc_info:
            await call_endpoint(http_client, rpc_ctx, "transfers", timeout=5.0)

        assert exc_info.value.message == "transfers: timed out after 5.0s"

    @pytest.mark.asyncio
    async def test_connection_failure(self, stub_api, http_client, rpc_ctx):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        stub_api.route("transfers", refuse)

        with pytest.raises(UpstreamError) as exc_info:
            await call_endpoint(http_client, rpc_ctx, "transfers")

        assert exc_info.value.reason.startswith("request failed:")


class TestFetchAllPages:
    """Tests for cursor-following accumulation."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "available,max_rows",
        [(0, 100), (300, 1000), (1000, 1000), (1200, 1000), (2500, 1200), (2500, 10000)],
    )
    async def test_returns_min_of_available_and_ceiling(
        self, stub_api, http_client, rpc_ctx, available, max_rows
    ):
        rows = _rows(available)
        stub_api.rows("transactions", rows)

        result = await fetch_all_pages(http_client, rpc_ctx, "transactions", {}, max_rows)

        assert len(result.rows) == min(available, max_rows)
        assert result.rows == rows[: min(available, max_rows)]
        assert result.truncated == (available > max_rows)

    @pytest.mark.asyncio
    async def test_page_size_capped_at_remaining_room(self, stub_api, http_client, rpc_ctx):
        stub_api.rows("transactions", _rows(2500))

        await fetch_all_pages(http_client, rpc_ctx, "transactions", {}, 1200)

        limits = [r.url.params["limit"] for r in stub_api.requests]
        cursors = [r.url.params.get("cursor") for r in stub_api.requests]
        assert limits == ["1000", "200"]
        assert cursors == [None, "1000"]

    @pytest.mark.asyncio
    async def test_strips_caller_paging_keys(self, stub_api, http_client, rpc_ctx):
        stub_api.rows("transactions", _rows(3))

        await fetch_all_pages(
            http_client,
            rpc_ctx,
            "transactions",
            {"month": "2024-05", "limit": 5, "offset": 10, "cursor": "abc"},
            100,
        )

        params = stub_api.requests[0].url.params
        assert params["month"] == "2024-05"
        assert params["limit"] == "100"
        assert "offset" not in params
        assert "cursor" not in params

    @pytest.mark.asyncio
    async def test_repeated_cursor_returns_first_page_only(self, stub_api, http_client, rpc_ctx):
        stub_api.route(
            "transfers",
            lambda r: httpx.Response(
                200, json={"data": [{"id": 1}, {"id": 2}], "meta": {"next_cursor": "same"}}
            ),
        )

        result = await fetch_all_pages(http_client, rpc_ctx, "transfers", {}, 5000)

        assert result.rows == [{"id": 1}, {"id": 2}]
        assert result.truncated is False
        assert len(stub_api.requests) == 2

    @pytest.mark.asyncio
    async def test_empty_page_stops(self, stub_api, http_client, rpc_ctx):
        stub_api.route(
            "accounts",
            lambda r: httpx.Response(200, json={"data": [], "meta": {"next_cursor": "more"}}),
        )

        result = await fetch_all_pages(http_client, rpc_ctx, "accounts", {}, 100)

        assert result.rows == []
        assert len(stub_api.requests) == 1

    @pytest.mark.asyncio
    async def test_ceiling_without_total_is_not_truncated(self, stub_api, http_client, rpc_ctx):
        stub_api.route(
            "accounts",
            lambda r: httpx.Response(200, json={"data": _rows(10), "meta": {"next_cursor": "x"}}),
        )

        result = await fetch_all_pages(http_client, rpc_ctx, "accounts", {}, 10)

        assert len(result.rows) == 10
        assert result.truncated is False

    @pytest.mark.asyncio
    async def test_mid_run_failure_discards_rows(self, stub_api, http_client, rpc_ctx):
        pages = cursor_first_page_then_error()
        stub_api.route("transactions", pages)

        with pytest.raises(UpstreamError) as exc_info:
            await fetch_all_pages(http_client, rpc_ctx, "transactions", {}, 5000)

        assert exc_info.value.message == "transactions: database unavailable"
        assert len(stub_api.requests) == 2

    @pytest.mark.asyncio
    async def test_malformed_data_fails(self, stub_api, http_client, rpc_ctx):
        stub_api.route("groups", lambda r: httpx.Response(200, json={"data": {"id": 1}}))

        with pytest.raises(UpstreamError) as exc_info:
            await fetch_all_pages(http_client, rpc_ctx, "groups", {}, 100)

        assert "malformed page" in exc_info.value.message


def cursor_first_page_then_error():
    def respond(request: httpx.Request) -> httpx.Response:
        if "cursor" not in request.url.params:
            return httpx.Response(200, json={"data": _rows(1000), "meta": {"next_cursor": "p2"}})
        return httpx.Response(500, json={"error": {"message": "database unavailable"}})

    return respond


class TestFetchDatasets:
    """Tests for the concurrent dataset fan-out."""

    @pytest.mark.asyncio
    async def test_bundle_keyed_in_request_order(self, stub_api, http_client, rpc_ctx):
        stub_api.rows("accounts", _rows(3))
        stub_api.rows("transactions", _rows(5))
        stub_api.rows("categories/budget-left", _rows(2))

        bundle = await fetch_datasets(
            http_client,
            rpc_ctx,
            {
                "transactions": DatasetRequest(endpoint="transactions", query={"month": "2024-05"}),
                "accounts": DatasetRequest(endpoint="accounts"),
                "budget_left": DatasetRequest(endpoint="categories/budget-left"),
            },
            100,
        )

        assert list(bundle) == ["transactions", "accounts", "budget_left"]
        assert [len(result.rows) for result in bundle.values()] == [5, 3, 2]
        assert stub_api.requests_for("transactions")[0].url.params["month"] == "2024-05"

    @pytest.mark.asyncio
    async def test_row_ceiling_applies_per_dataset(self, stub_api, http_client, rpc_ctx):
        stub_api.rows("accounts", _rows(150))
        stub_api.rows("transfers", _rows(150))

        bundle = await fetch_datasets(
            http_client,
            rpc_ctx,
            {
                "accounts": DatasetRequest(endpoint="accounts"),
                "transfers": DatasetRequest(endpoint="transfers"),
            },
            100,
        )

        assert all(len(result.rows) == 100 for result in bundle.values())
        assert all(result.truncated for result in bundle.values())

    @pytest.mark.asyncio
    async def test_one_failure_fails_the_bundle(self, stub_api, http_client, rpc_ctx):
        stub_api.rows("accounts", _rows(3))
        stub_api.route(
            "transfers",
            lambda r: httpx.Response(500, json={"error": {"message": "boom"}}),
        )

        with pytest.raises(UpstreamError) as exc_info:
            await fetch_datasets(
                http_client,
                rpc_ctx,
                {
                    "accounts": DatasetRequest(endpoint="accounts"),
                    "transfers": DatasetRequest(endpoint="transfers"),
                },
                100,
            )

        assert exc_info.value.message == "transfers: boom"

    @pytest.mark.asyncio
    async def test_empty_request_set(self, http_client, rpc_ctx):
        assert await fetch_datasets(http_client, rpc_ctx, {}, 100) == {}
