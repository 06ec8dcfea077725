"""Pure aggregation helpers over already-fetched rows.

Sums are rounded to cents once per sum, half up
(``floor(x * 100 + 0.5) / 100``), never per addend.
Sorts are stable, so rows that tie keep their upstream order.
"""

import math
from datetime import date, datetime, timezone
from typing import Any, Iterable

TOP_N = 20


def object_rows(value: Any) -> list[dict[str, Any]]:
    """Keep only the object rows of a fetched dataset."""
    if not isinstance(value, list):
        return []
    return [row for row in value if isinstance(row, dict)]


def number_field(row: dict[str, Any], key: str) -> float:
    """Read ``row[key]`` as a finite number, falling back to 0."""
    value = row.get(key)
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        parsed = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            parsed = float(text)
        except ValueError:
            return 0.0
    else:
        return 0.0
    return parsed if math.isfinite(parsed) else 0.0


def round_sum(values: Iterable[float]) -> float:
    total = sum(values, 0.0)
    return math.floor(total * 100 + 0.5) / 100


def _row_type(row: dict[str, Any]) -> str:
    value = row.get("type")
    return str(value) if value else ""


def net_worth(accounts: list[dict[str, Any]]) -> float:
    return round_sum(number_field(account, "balance") for account in accounts)


def budget_totals(budget_rows: list[dict[str, Any]]) -> dict[str, float]:
    return {
        field: round_sum(number_field(row, field) for row in budget_rows)
        for field in ("assigned", "spent", "rollover", "budget_left")
    }


def payment_total(transactions: list[dict[str, Any]]) -> float:
    return round_sum(
        abs(number_field(row, "amount"))
        for row in transactions
        if _row_type(row) == "payment"
    )


def income_total(transactions: list[dict[str, Any]]) -> float:
    return round_sum(
        number_field(row, "amount")
        for row in transactions
        if _row_type(row) == "income"
    )


def cashflow(
    transactions: list[dict[str, Any]],
    transfers: list[dict[str, Any]],
) -> dict[str, float]:
    """Summarize signed transaction flows and transfer volume."""
    return {
        "income_total": income_total(transactions),
        "starting_total": round_sum(
            number_field(row, "amount")
            for row in transactions
            if _row_type(row) == "starting"
        ),
        "payment_total": payment_total(transactions),
        "net_transaction_cashflow": round_sum(
            number_field(row, "amount") for row in transactions
        ),
        "transfer_volume": round_sum(
            abs(number_field(row, "amount")) for row in transfers
        ),
    }


def overspent_categories(
    budget_rows: list[dict[str, Any]], limit: int = TOP_N
) -> list[dict[str, Any]]:
    overspent = [row for row in budget_rows if number_field(row, "budget_left") < 0]
    overspent.sort(key=lambda row: number_field(row, "budget_left"))
    return overspent[:limit]


def top_spending_categories(
    budget_rows: list[dict[str, Any]], limit: int = TOP_N
) -> list[dict[str, Any]]:
    ranked = sorted(budget_rows, key=lambda row: -number_field(row, "spent"))
    return ranked[:limit]


def groups_by_lowest_budget_left(
    groups: list[dict[str, Any]], limit: int = TOP_N
) -> list[dict[str, Any]]:
    ranked = sorted(groups, key=lambda row: number_field(row, "month_budget_left"))
    return ranked[:limit]


def current_month(today: date | None = None) -> str:
    if today is None:
        today = datetime.now(timezone.utc).date()
    return f"{today.year:04d}-{today.month:02d}"


def resolve_context_month(
    month: str | None = None,
    as_of_date: str | None = None,
    start_date: str | None = None,
    today: date | None = None,
) -> str:
    """Pick the month a summary is about.

    Precedence: explicit ``month``, then the month of ``as_of_date``, then
    the month of ``start_date``, then the current UTC calendar month.
    """
    if month:
        return month
    if as_of_date:
        return as_of_date[:7]
    if start_date:
        return start_date[:7]
    return current_month(today)
