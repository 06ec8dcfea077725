"""The CashCat tool catalogue and the handlers behind it."""

from typing import Any

import httpx

from cashcat_mcp.gateway import rollups
from cashcat_mcp.gateway.exceptions import ToolArgumentError
from cashcat_mcp.gateway.orchestrator import fetch_datasets
from cashcat_mcp.gateway.pagination import fetch_all_pages
from cashcat_mcp.gateway.proxy import call_endpoint, flatten_query
from cashcat_mcp.gateway.schemas import DatasetRequest, RpcContext
from cashcat_mcp.utils import utc_now_iso

from .arguments import parse_date_arg, parse_month_arg
from .schemas import PropertySchema, ToolDefinition, ToolInputSchema
from .service import ToolRegistry


ALLOWED_GET_ENDPOINTS = (
    "accounts",
    "assignments",
    "categories",
    "categories/budget-left",
    "groups",
    "transactions",
    "transfers",
)

FULL_CONTEXT_DATASETS = (
    "accounts",
    "categories",
    "groups",
    "assignments",
    "transactions",
    "transfers",
    "budget_left",
)

_RECENT_SORT = {"sort": "date", "order": "desc"}


def _month_property() -> PropertySchema:
    return PropertySchema(type="string", description="Optional month in YYYY-MM.")


def _rows_property(default: int) -> PropertySchema:
    return PropertySchema(type="integer", minimum=100, maximum=10000, default=default)


CASHCAT_GET = ToolDefinition(
    name="cashcat_get",
    description=(
        "Read any CashCat REST GET endpoint (accounts, categories, groups, "
        "assignments, transactions, transfers, budget-left)."
    ),
    inputSchema=ToolInputSchema(
        required=["endpoint"],
        properties={
            "endpoint": PropertySchema(type="string", enum=list(ALLOWED_GET_ENDPOINTS)),
            "query": PropertySchema(
                type="object",
                description="Query params passed through to the selected endpoint.",
                additionalProperties={
                    "anyOf": [{"type": "string"}, {"type": "number"}, {"type": "boolean"}],
                },
            ),
            "paginate_all": PropertySchema(
                type="boolean",
                description="If true, keeps following cursor pagination until max_rows is reached.",
                default=False,
            ),
            "max_rows": PropertySchema(type="integer", minimum=1, maximum=10000, default=2000),
        },
    ),
)

CASHCAT_FINANCIAL_OVERVIEW = ToolDefinition(
    name="cashcat_financial_overview",
    description=(
        "Get an advisory-friendly snapshot: net worth, budget health, "
        "overspending, and monthly cashflow."
    ),
    inputSchema=ToolInputSchema(
        properties={
            "month": _month_property(),
            "as_of_date": PropertySchema(type="string", description="Optional as-of date in YYYY-MM-DD."),
            "max_rows_for_summaries": _rows_property(4000),
            "recent_items_limit": PropertySchema(type="integer", minimum=1, maximum=200, default=25),
        },
    ),
)

CASHCAT_FULL_CONTEXT = ToolDefinition(
    name="cashcat_full_context",
    description=(
        "Fetch a broad, structured financial context bundle across all major "
        "endpoints for deep analysis/advice."
    ),
    inputSchema=ToolInputSchema(
        properties={
            "month": _month_property(),
            "start_date": PropertySchema(
                type="string",
                description="Optional start date in YYYY-MM-DD for transaction/transfer windows.",
            ),
            "end_date": PropertySchema(
                type="string",
                description="Optional end date in YYYY-MM-DD for transaction/transfer windows.",
            ),
            "as_of_date": PropertySchema(
                type="string", description="Optional balance as-of date in YYYY-MM-DD."
            ),
            **{
                f"include_{key}": PropertySchema(type="boolean", default=True)
                for key in FULL_CONTEXT_DATASETS
            },
            "max_rows_per_endpoint": _rows_property(4000),
        },
    ),
)


async def cashcat_get(
    args: dict[str, Any], ctx: RpcContext, client: httpx.AsyncClient
) -> dict[str, Any]:
    endpoint = args.get("endpoint")
    if endpoint not in ALLOWED_GET_ENDPOINTS:
        raise ToolArgumentError(
            f"Invalid endpoint. Allowed: {', '.join(ALLOWED_GET_ENDPOINTS)}", field="endpoint"
        )

    query = flatten_query(args.get("query"))
    max_rows = args["max_rows"]

    if not args["paginate_all"]:
        page = await call_endpoint(client, ctx, endpoint, query)
        return {
            "endpoint": endpoint,
            "paginated": False,
            "data": page.data,
            "meta": page.meta,
        }

    result = await fetch_all_pages(client, ctx, endpoint, query, max_rows)
    return {
        "endpoint": endpoint,
        "paginated": True,
        "max_rows": max_rows,
        "returned": len(result.rows),
        "truncated": result.truncated,
        "data": result.rows,
        "meta": result.last_meta,
    }


async def cashcat_financial_overview(
    args: dict[str, Any], ctx: RpcContext, client: httpx.AsyncClient
) -> dict[str, Any]:
    """Single-month advisory snapshot built from five datasets."""
    month = parse_month_arg(args.get("month"), "month")
    as_of_date = parse_date_arg(args.get("as_of_date"), "as_of_date")
    context_month = rollups.resolve_context_month(month=month, as_of_date=as_of_date)

    if as_of_date and as_of_date[:7] != context_month:
        raise ToolArgumentError("as_of_date must be in the same month as month.", field="as_of_date")

    max_rows = args["max_rows_for_summaries"]
    recent_limit = args["recent_items_limit"]

    bundle = await fetch_datasets(
        client,
        ctx,
        {
            "accounts": DatasetRequest(
                endpoint="accounts",
                query={"include_balance": True, "as_of_date": as_of_date},
            ),
            "groups": DatasetRequest(
                endpoint="groups",
                query={
                    "include_budget_totals": True,
                    "include_category_count": True,
                    "month": context_month,
                },
            ),
            "budget_left": DatasetRequest(
                endpoint="categories/budget-left",
                query={"month": context_month, "as_of_date": as_of_date, "include_zero": True},
            ),
            "transactions": DatasetRequest(
                endpoint="transactions", query={"month": context_month, **_RECENT_SORT}
            ),
            "transfers": DatasetRequest(
                endpoint="transfers", query={"month": context_month, **_RECENT_SORT}
            ),
        },
        max_rows,
    )

    accounts = rollups.object_rows(bundle["accounts"].rows)
    groups = rollups.object_rows(bundle["groups"].rows)
    budget_rows = rollups.object_rows(bundle["budget_left"].rows)
    transactions = rollups.object_rows(bundle["transactions"].rows)
    transfers = rollups.object_rows(bundle["transfers"].rows)

    overspent = rollups.overspent_categories(budget_rows)

    return {
        "generated_at": utc_now_iso(),
        "month": context_month,
        "as_of_date": as_of_date,
        "summary": {
            "net_worth": rollups.net_worth(accounts),
            "account_count": len(accounts),
            "category_count": len(budget_rows),
            "group_count": len(groups),
            "totals": rollups.budget_totals(budget_rows),
            "cashflow": rollups.cashflow(transactions, transfers),
            "overspent_category_count": len(overspent),
        },
        "highlights": {
            "overspent_categories": overspent,
            "top_spending_categories": rollups.top_spending_categories(budget_rows),
            "groups_by_lowest_budget_left": rollups.groups_by_lowest_budget_left(groups),
        },
        "recent": {
            "transactions": transactions[:recent_limit],
            "transfers": transfers[:recent_limit],
        },
        "truncation": {
            **{key: result.truncated for key, result in bundle.items()},
            "max_rows_for_summaries": max_rows,
        },
    }


def _window_query(
    month: str | None, start_date: str | None, end_date: str | None
) -> dict[str, Any]:
    if month:
        return {"month": month, **_RECENT_SORT}
    return {"start_date": start_date, "end_date": end_date, **_RECENT_SORT}


def _full_context_requests(
    args: dict[str, Any],
    month: str | None,
    start_date: str | None,
    end_date: str | None,
    as_of_date: str | None,
    context_month: str,
) -> dict[str, DatasetRequest]:
    if month:
        assignment_query: dict[str, Any] = {"month": month}
    else:
        assignment_query = {
            "from_month": start_date[:7] if start_date else None,
            "to_month": end_date[:7] if end_date else None,
        }

    candidates = {
        "accounts": DatasetRequest(
            endpoint="accounts", query={"include_balance": True, "as_of_date": as_of_date}
        ),
        "categories": DatasetRequest(endpoint="categories"),
        "groups": DatasetRequest(
            endpoint="groups",
            query={
                "include_category_count": True,
                "include_budget_totals": True,
                "month": context_month,
            },
        ),
        "assignments": DatasetRequest(endpoint="assignments", query=assignment_query),
        "transactions": DatasetRequest(
            endpoint="transactions", query=_window_query(month, start_date, end_date)
        ),
        "transfers": DatasetRequest(
            endpoint="transfers", query=_window_query(month, start_date, end_date)
        ),
        "budget_left": DatasetRequest(
            endpoint="categories/budget-left",
            query={"month": context_month, "as_of_date": as_of_date, "include_zero": True},
        ),
    }
    return {key: request for key, request in candidates.items() if args[f"include_{key}"]}


async def cashcat_full_context(
    args: dict[str, Any], ctx: RpcContext, client: httpx.AsyncClient
) -> dict[str, Any]:
    """Caller-selected multi-dataset bundle with a light overview."""
    month = parse_month_arg(args.get("month"), "month")
    start_date = parse_date_arg(args.get("start_date"), "start_date")
    end_date = parse_date_arg(args.get("end_date"), "end_date")
    as_of_date = parse_date_arg(args.get("as_of_date"), "as_of_date")

    if month and (start_date or end_date):
        raise ToolArgumentError("Use either month or start_date/end_date, not both.")
    if start_date and end_date and start_date > end_date:
        raise ToolArgumentError("start_date cannot be after end_date.", field="start_date")

    max_rows = args["max_rows_per_endpoint"]
    context_month = rollups.resolve_context_month(
        month=month, as_of_date=as_of_date, start_date=start_date
    )

    requests = _full_context_requests(args, month, start_date, end_date, as_of_date, context_month)
    bundle = await fetch_datasets(client, ctx, requests, max_rows)

    def _rows(key: str) -> list[dict[str, Any]]:
        return rollups.object_rows(bundle[key].rows) if key in bundle else []

    budget_rows = _rows("budget_left")
    transactions = _rows("transactions")

    return {
        "generated_at": utc_now_iso(),
        "query": {
            "month": month,
            "start_date": start_date,
            "end_date": end_date,
            "as_of_date": as_of_date,
            "context_month": context_month,
            "max_rows_per_endpoint": max_rows,
        },
        "overview": {
            "net_worth": rollups.net_worth(_rows("accounts")),
            "budget_left_total": rollups.round_sum(
                rollups.number_field(row, "budget_left") for row in budget_rows
            ),
            "spending_total": rollups.payment_total(transactions),
            "income_total": rollups.income_total(transactions),
        },
        "counts": {key: len(result.rows) for key, result in bundle.items()},
        "truncation": {key: result.truncated for key, result in bundle.items()},
        "datasets": {key: result.as_dataset() for key, result in bundle.items()},
    }


def build_tool_registry() -> ToolRegistry:
    """Build the static CashCat catalogue."""
    return ToolRegistry(
        [
            (CASHCAT_GET, cashcat_get),
            (CASHCAT_FINANCIAL_OVERVIEW, cashcat_financial_overview),
            (CASHCAT_FULL_CONTEXT, cashcat_full_context),
        ]
    )
