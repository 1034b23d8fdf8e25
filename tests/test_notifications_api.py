"""
API tests for notifications and the caller's profile.
"""

from fastapi.testclient import TestClient
from smart_expense.api.main import app

client = TestClient(app)

ALICE = {"X-User-Id": "alice"}
BOB = {"X-User-Id": "bob"}


def _large_receipt(total=250.0):
    return {
        "vendor_name": "Appliance World",
        "purchase_date": "2025-10-02T12:00:00",
        "total_amount": total,
        "payment_method": "debit_card",
    }


def test_notifications_require_identity(store):
    assert client.get("/api/notifications").status_code == 401


def test_large_receipt_creates_notification(store):
    r = client.post("/api/receipts", json=_large_receipt(), headers=ALICE)
    assert r.status_code == 201

    r = client.get("/api/notifications", headers=ALICE)
    assert r.status_code == 200
    notifications = r.json()
    assert len(notifications) == 1
    assert notifications[0]["type"] == "large_expense"
    assert notifications[0]["is_read"] is False
    assert "Appliance World" in notifications[0]["message"]

    assert client.get("/api/notifications", headers=BOB).json() == []


def test_notifications_newest_first(store):
    older = store.create_notification("alice", {"type": "spending_tip", "title": "Old", "message": "m"})
    newer = store.create_notification("alice", {"type": "duplicate_warning", "title": "New", "message": "m"})

    r = client.get("/api/notifications", headers=ALICE)

    assert [n["id"] for n in r.json()] == [newer["id"], older["id"]]


def test_mark_notification_read(store):
    notification = store.create_notification("alice", {"type": "spending_tip", "title": "Tip", "message": "m"})

    r = client.patch(f"/api/notifications/{notification['id']}/read", headers=ALICE)
    assert r.status_code == 200
    assert r.json()["is_read"] is True

    r = client.patch(f"/api/notifications/{notification['id']}/read", headers=BOB)
    assert r.status_code == 404
    assert r.json() == {"detail": "Notification not found"}


def test_delete_notification(store):
    notification = store.create_notification("alice", {"type": "spending_tip", "title": "Tip", "message": "m"})

    assert client.delete(f"/api/notifications/{notification['id']}", headers=BOB).status_code == 404

    r = client.delete(f"/api/notifications/{notification['id']}", headers=ALICE)
    assert r.status_code == 200
    assert r.json() == {"success": True}

    r = client.delete(f"/api/notifications/{notification['id']}", headers=ALICE)
    assert r.status_code == 404
    assert r.json() == {"detail": "Notification not found"}


def test_profile_defaults(store):
    r = client.get("/api/profiles/me", headers=ALICE)

    assert r.status_code == 200
    profile = r.json()
    assert profile["id"] == "alice"
    assert profile["preferred_currency"] == "USD"
    assert profile["timezone"] == "UTC"
    assert profile["large_expense_threshold"] == 100


def test_update_profile(store):
    r = client.put(
        "/api/profiles/me",
        json={"name": "Alice", "preferred_currency": "EUR", "large_expense_threshold": 500},
        headers=ALICE,
    )
    assert r.status_code == 200
    assert r.json()["name"] == "Alice"
    assert r.json()["preferred_currency"] == "EUR"
    assert r.json()["timezone"] == "UTC"

    # A 250 receipt is below the raised threshold
    client.post("/api/receipts", json=_large_receipt(), headers=ALICE)
    assert client.get("/api/notifications", headers=ALICE).json() == []

    assert client.get("/api/profiles/me", headers=BOB).json()["preferred_currency"] == "USD"


def test_update_profile_validation(store):
    r = client.put("/api/profiles/me", json={"large_expense_threshold": -1}, headers=ALICE)
    assert r.status_code == 422
