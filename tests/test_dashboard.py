"""
Tests for dashboard aggregation.

The aggregation functions are pure, so most tests feed rows in directly
with a fixed `now`. The last few go through the API with `get_now`
overridden.
"""

import pytest
from datetime import datetime
from fastapi.testclient import TestClient
from smart_expense.api.deps import get_now
from smart_expense.api.main import app
from smart_expense.services import dashboard

client = TestClient(app)

# Wednesday
NOW = datetime(2025, 9, 17, 12, 0)

FOOD = {"id": "cat-food", "name": "Food"}
TRAVEL = {"id": "cat-travel", "name": "Travel"}
FUN = {"id": "cat-fun", "name": "Fun"}


def _row(amount, purchase_date, created_at=None, category_id=None, image_url=None):
    return {
        "total_amount": amount,
        "purchase_date": purchase_date,
        "created_at": created_at or purchase_date,
        "category_id": category_id,
        "image_url": image_url,
    }


def _budget(category, limit, month=9, year=2025):
    return {"category_id": category["id"], "monthly_limit": limit, "month": month, "year": year}


class TestDateHelpers:
    """Tests for the calendar helpers"""

    def test_month_bounds(self):
        assert dashboard.start_of_month(NOW) == datetime(2025, 9, 1)
        assert dashboard.end_of_month(NOW).date() == datetime(2025, 9, 30).date()
        assert dashboard.end_of_month(datetime(2024, 2, 10)).day == 29

    def test_week_starts_on_sunday(self):
        assert dashboard.start_of_week(NOW) == datetime(2025, 9, 14)
        assert dashboard.start_of_week(datetime(2025, 9, 14, 18)) == datetime(2025, 9, 14)

    def test_shift_month_crosses_years(self):
        assert dashboard.shift_month(datetime(2025, 1, 31), -1) == datetime(2024, 12, 1)
        assert dashboard.shift_month(datetime(2025, 12, 5), 1) == datetime(2026, 1, 1)
        assert dashboard.shift_month(NOW, -11) == datetime(2024, 10, 1)

    def test_as_datetime(self):
        assert dashboard.as_datetime(None) is None
        assert dashboard.as_datetime("2025-09-01T10:00:00+02:00") == datetime(2025, 9, 1, 8, 0)


class TestStats:
    """Tests for compute_stats"""

    def test_current_month_totals(self):
        receipts = [
            _row(30, "2025-09-15T10:00:00", image_url="https://img/1"),
            _row(10, "2025-09-02T10:00:00"),
            _row(20, "2025-08-20T10:00:00"),
        ]

        stats = dashboard.compute_stats(receipts, NOW)

        assert stats["total_spent_this_month"] == 40
        assert stats["total_receipts_this_month"] == 2
        assert stats["average_receipt_amount"] == 20
        assert stats["receipts_this_week"] == 1
        assert stats["receipts_with_images"] == 1
        assert stats["compared_to_last_month"] == pytest.approx(100.0)

    def test_no_receipts(self):
        stats = dashboard.compute_stats([], NOW)

        assert stats == {
            "total_spent_this_month": 0,
            "total_receipts_this_month": 0,
            "average_receipt_amount": 0.0,
            "receipts_this_week": 0,
            "receipts_with_images": 0,
            "compared_to_last_month": 0.0,
        }

    def test_recorded_this_month_counts_even_with_old_purchase_date(self):
        receipts = [_row(12, "2024-01-05T00:00:00", created_at="2025-09-10T09:00:00")]
        stats = dashboard.compute_stats(receipts, NOW)
        assert stats["total_receipts_this_month"] == 1

    def test_spending_dropped(self):
        receipts = [_row(50, "2025-09-03T00:00:00"), _row(100, "2025-08-03T00:00:00")]
        stats = dashboard.compute_stats(receipts, NOW)
        assert stats["compared_to_last_month"] == pytest.approx(-50.0)


def test_category_spending():
    receipts = [
        _row(80, "2025-09-05T00:00:00", category_id=FOOD["id"]),
        _row(20, "2025-09-06T00:00:00", category_id=FOOD["id"]),
        _row(999, "2025-08-06T00:00:00", category_id=FOOD["id"]),
        _row(40, "2025-09-07T00:00:00", category_id=TRAVEL["id"]),
    ]
    budgets = [_budget(FOOD, 200), _budget(TRAVEL, 100, month=8)]

    result = dashboard.category_spending([FOOD, TRAVEL, FUN], receipts, budgets, NOW)

    assert result[0] == {"category": FOOD, "spent": 100, "budget": 200, "percentage": 50.0}
    assert result[1] == {"category": TRAVEL, "spent": 40, "budget": None, "percentage": None}
    assert result[2] == {"category": FUN, "spent": 0.0, "budget": None, "percentage": None}


def test_spending_over_time():
    receipts = [
        _row(10, "2025-09-01T00:00:00"),
        _row(5, "2025-09-10T00:00:00"),
        _row(7, "2024-10-15T00:00:00"),
        _row(100, "2024-09-30T00:00:00"),
        # purchase date outside the window, recorded in July
        _row(3, "2019-01-01T00:00:00", created_at="2025-07-04T00:00:00"),
    ]

    data = dashboard.spending_over_time(receipts, NOW)

    assert len(data) == 12
    assert data[0] == {"month": "2024-10", "total": 7}
    assert data[-1] == {"month": "2025-09", "total": 15}
    assert {"month": "2025-07", "total": 3} in data
    assert sum(point["total"] for point in data) == 25
    assert [point["month"] for point in data] == sorted(point["month"] for point in data)


class TestInsights:
    """Tests for build_insights"""

    def test_exceeded_and_nearly_used_budgets(self):
        receipts = [
            _row(120, "2025-09-05T00:00:00", category_id=FOOD["id"]),
            _row(85, "2025-09-06T00:00:00", category_id=TRAVEL["id"]),
            _row(10, "2025-09-06T00:00:00", category_id=FUN["id"]),
        ]
        budgets = [_budget(FOOD, 100), _budget(TRAVEL, 100), _budget(FUN, 100)]

        insights = dashboard.build_insights([FOOD, TRAVEL, FUN], receipts, budgets, NOW)

        assert len(insights) == 2
        assert insights[0]["type"] == "budget_warning"
        assert insights[0]["category"] == "Food"
        assert insights[0]["message"] == "You exceeded your budget for Food."
        assert insights[1]["type"] == "tip"
        assert insights[1]["message"] == "You have used 85% of your Travel budget."

    def test_no_receipts_this_month(self):
        insights = dashboard.build_insights([FOOD], [], [_budget(FOOD, 100)], NOW)
        assert insights == [{
            "type": "tip",
            "message": "Add more receipts to get detailed spending insights.",
        }]

    def test_other_months_budgets_ignored(self):
        receipts = [_row(500, "2025-09-05T00:00:00", category_id=FOOD["id"])]
        insights = dashboard.build_insights([FOOD], receipts, [_budget(FOOD, 100, month=10)], NOW)
        assert insights == []


@pytest.fixture
def fixed_now():
    app.dependency_overrides[get_now] = lambda: NOW
    yield NOW
    app.dependency_overrides.pop(get_now, None)


def test_dashboard_endpoints(store, fixed_now):
    headers = {"X-User-Id": "alice"}
    food = store.create_category("alice", {"name": "Food"})
    store.create_budget("alice", {"category_id": food["id"], "monthly_limit": 50, "month": 9, "year": 2025})
    store.create_receipt("alice", {
        "vendor_name": "Fresh Market",
        "purchase_date": datetime(2025, 9, 15, 10),
        "total_amount": 45,
        "category_id": food["id"],
    })

    stats = client.get("/api/dashboard/stats", headers=headers).json()
    assert stats["total_spent_this_month"] == 45
    assert stats["total_receipts_this_month"] == 1

    spending = client.get("/api/dashboard/category-spending", headers=headers).json()
    assert spending[0]["category"]["name"] == "Food"
    assert spending[0]["percentage"] == pytest.approx(90.0)

    over_time = client.get("/api/dashboard/spending-over-time", headers=headers).json()
    assert over_time[-1] == {"month": "2025-09", "total": 45}

    insights = client.get("/api/dashboard/insights", headers=headers).json()
    assert insights[0]["type"] == "tip"
    assert insights[0]["message"] == "You have used 90% of your Food budget."


def test_dashboard_requires_identity(store):
    assert client.get("/api/dashboard/stats").status_code == 401
