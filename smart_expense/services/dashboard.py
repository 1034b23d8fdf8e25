"""
Dashboard aggregation over a user's receipts, categories and budgets.

All functions are pure: they take already-loaded rows plus `now` (naive
UTC) and return JSON-ready structures. A receipt belongs to a time window
when either its purchase_date or its created_at falls inside it, so
receipts with an old or odd purchase date still show up in the month
they were recorded.
"""

from calendar import monthrange
from collections import defaultdict
from datetime import datetime, timedelta, UTC
from typing import Iterable, Optional


def as_datetime(value) -> Optional[datetime]:
    """Parse a stored timestamp into a naive-UTC datetime."""
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is not None:
        value = value.astimezone(UTC).replace(tzinfo=None)
    return value


def start_of_month(moment: datetime) -> datetime:
    return datetime(moment.year, moment.month, 1)


def end_of_month(moment: datetime) -> datetime:
    last_day = monthrange(moment.year, moment.month)[1]
    return datetime(moment.year, moment.month, last_day, 23, 59, 59, 999999)


def start_of_week(moment: datetime) -> datetime:
    """Weeks start on Sunday."""
    days_since_sunday = (moment.weekday() + 1) % 7
    day = moment.date() - timedelta(days=days_since_sunday)
    return datetime(day.year, day.month, day.day)


def shift_month(moment: datetime, months: int) -> datetime:
    """First day of the month `months` away from `moment`'s month."""
    index = moment.year * 12 + (moment.month - 1) + months
    return datetime(index // 12, index % 12 + 1, 1)


def month_key(moment: datetime) -> str:
    return f"{moment.year}-{moment.month:02d}"


def in_window(receipt: dict, start: datetime, end: datetime) -> bool:
    purchase_date = as_datetime(receipt.get("purchase_date"))
    created_at = as_datetime(receipt.get("created_at"))
    return any(
        moment is not None and start <= moment <= end
        for moment in (purchase_date, created_at)
    )


def _amount(receipt: dict) -> float:
    return float(receipt.get("total_amount") or 0)


def _receipts_between(receipts: Iterable[dict], start: datetime, end: datetime) -> list[dict]:
    return [receipt for receipt in receipts if in_window(receipt, start, end)]


def compute_stats(receipts: list[dict], now: datetime) -> dict:
    this_month_start = start_of_month(now)
    this_month_end = end_of_month(now)
    last_month = shift_month(now, -1)

    this_month = _receipts_between(receipts, this_month_start, this_month_end)
    last_month_receipts = _receipts_between(
        receipts, start_of_month(last_month), end_of_month(last_month)
    )

    this_month_total = sum(_amount(r) for r in this_month)
    last_month_total = sum(_amount(r) for r in last_month_receipts)
    count = len(this_month)

    compared_to_last_month = 0.0
    if last_month_total > 0:
        compared_to_last_month = (this_month_total - last_month_total) / last_month_total * 100

    return {
        "total_spent_this_month": this_month_total,
        "total_receipts_this_month": count,
        "average_receipt_amount": this_month_total / count if count else 0.0,
        "receipts_this_week": len(_receipts_between(receipts, start_of_week(now), this_month_end)),
        "receipts_with_images": sum(1 for r in this_month if r.get("image_url")),
        "compared_to_last_month": compared_to_last_month,
    }


def _spending_by_category(receipts: list[dict]) -> dict[str, float]:
    spending: dict[str, float] = defaultdict(float)
    for receipt in receipts:
        spending[receipt.get("category_id") or "uncategorized"] += _amount(receipt)
    return spending


def _budgets_for_month(budgets: list[dict], now: datetime) -> dict[str, float]:
    return {
        budget["category_id"]: float(budget["monthly_limit"])
        for budget in budgets
        if budget["month"] == now.month and budget["year"] == now.year
    }


def category_spending(
    categories: list[dict],
    receipts: list[dict],
    budgets: list[dict],
    now: datetime,
) -> list[dict]:
    this_month = _receipts_between(receipts, start_of_month(now), end_of_month(now))
    spending = _spending_by_category(this_month)
    budget_by_category = _budgets_for_month(budgets, now)

    result = []
    for category in categories:
        spent = spending.get(category["id"], 0.0)
        budget = budget_by_category.get(category["id"])
        percentage = spent / budget * 100 if budget and budget > 0 else None
        result.append({
            "category": category,
            "spent": spent,
            "budget": budget,
            "percentage": percentage,
        })
    return result


def spending_over_time(receipts: list[dict], now: datetime, months: int = 12) -> list[dict]:
    """Monthly totals for the last `months` months, oldest first, zero-filled."""
    window_start = shift_month(now, -(months - 1))
    totals: dict[str, float] = defaultdict(float)

    for receipt in _receipts_between(receipts, window_start, now):
        purchase_date = as_datetime(receipt.get("purchase_date"))
        # purchase_date only counts when it lies inside the window
        if purchase_date is not None and window_start <= purchase_date <= now:
            bucket = purchase_date
        else:
            bucket = as_datetime(receipt.get("created_at"))
        totals[month_key(bucket)] += _amount(receipt)

    data = []
    for offset in range(months):
        key = month_key(shift_month(window_start, offset))
        data.append({"month": key, "total": totals.get(key, 0.0)})
    return data


def build_insights(
    categories: list[dict],
    receipts: list[dict],
    budgets: list[dict],
    now: datetime,
) -> list[dict]:
    this_month = _receipts_between(receipts, start_of_month(now), end_of_month(now))
    spending = _spending_by_category(r for r in this_month if r.get("category_id"))
    budget_by_category = _budgets_for_month(budgets, now)

    insights = []
    for category in categories:
        budget = budget_by_category.get(category["id"])
        if not budget or budget <= 0:
            continue

        percentage = spending.get(category["id"], 0.0) / budget * 100
        if percentage >= 100:
            insights.append({
                "type": "budget_warning",
                "message": f"You exceeded your budget for {category['name']}.",
                "category": category["name"],
                "percentage": percentage,
            })
        elif percentage >= 80:
            insights.append({
                "type": "tip",
                "message": f"You have used {percentage:.0f}% of your {category['name']} budget.",
                "category": category["name"],
                "percentage": percentage,
            })

    if not this_month:
        insights.append({
            "type": "tip",
            "message": "Add more receipts to get detailed spending insights.",
        })

    return insights
