"""
Abstract base class for expense storage implementations.

Defines the interface the API routers depend on, so the SQLite backend can
be swapped (PostgreSQL, an in-memory fake for tests, ...) without touching
route code. Every operation is scoped to a user id: rows owned by another
user behave exactly like rows that do not exist.
"""

from abc import ABC, abstractmethod
from datetime import datetime, UTC
from typing import Optional


class ExpenseStoreError(Exception):
    """Base class for storage errors the API maps to client errors."""


class DuplicateBudgetError(ExpenseStoreError):
    """A budget already exists for this user/category/month/year."""


class CategoryNotFoundError(ExpenseStoreError):
    """Referenced category does not exist for this user."""


NOTIFICATION_TYPES: tuple[str, ...] = (
    "budget_exceeded",
    "large_expense",
    "duplicate_warning",
    "spending_tip",
)

DEFAULT_LARGE_EXPENSE_THRESHOLD = 100.0


def to_storage_datetime(value: datetime | str | None) -> Optional[str]:
    """
    Normalize a timestamp to a naive-UTC ISO string.

    Stored timestamps share one format so they compare correctly as text.
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is not None:
        value = value.astimezone(UTC).replace(tzinfo=None)
    return value.isoformat()


def utc_now() -> str:
    return to_storage_datetime(datetime.now(UTC))


class ExpenseStoreBase(ABC):
    """
    Storage interface for receipts, categories, budgets, profiles and
    notifications.

    Receipt dictionaries contain the receipt columns plus:
        - items: list of item dictionaries
        - category_name / category_icon / category_color (or None)
    """

    # Receipts

    @abstractmethod
    def create_receipt(self, user_id: str, data: dict) -> dict:
        """
        Create a receipt (and its items) for a user.

        Args:
            user_id: Owner of the receipt
            data: Receipt fields; `items` is an optional list of item dicts

        Returns:
            The stored receipt dictionary

        Raises:
            CategoryNotFoundError: category_id does not belong to the user
        """
        pass

    @abstractmethod
    def get_receipt(self, user_id: str, receipt_id: str) -> Optional[dict]:
        pass

    @abstractmethod
    def list_receipts(self, user_id: str, filters: Optional[dict] = None) -> list[dict]:
        """
        List a user's receipts, newest purchase first.

        Supported filters: from_date, to_date, category_id, min_amount,
        max_amount, payment_method, search.
        """
        pass

    @abstractmethod
    def update_receipt(self, user_id: str, receipt_id: str, changes: dict) -> Optional[dict]:
        """
        Apply a partial update. An `items` list replaces all existing items.

        Returns:
            The updated receipt, or None if not found
        """
        pass

    @abstractmethod
    def delete_receipt(self, user_id: str, receipt_id: str) -> bool:
        pass

    # Categories

    @abstractmethod
    def list_categories(self, user_id: str) -> list[dict]:
        pass

    @abstractmethod
    def create_category(self, user_id: str, data: dict) -> dict:
        pass

    @abstractmethod
    def update_category(self, user_id: str, category_id: str, changes: dict) -> Optional[dict]:
        pass

    @abstractmethod
    def delete_category(self, user_id: str, category_id: str) -> bool:
        pass

    @abstractmethod
    def seed_default_categories(self, user_id: str) -> list[dict]:
        """Create the default category set for a user; returns all categories."""
        pass

    # Budgets

    @abstractmethod
    def list_budgets(
        self, user_id: str, month: Optional[int] = None, year: Optional[int] = None
    ) -> list[dict]:
        pass

    @abstractmethod
    def create_budget(self, user_id: str, data: dict) -> dict:
        """
        Raises:
            DuplicateBudgetError: budget exists for category/month/year
            CategoryNotFoundError: category_id does not belong to the user
        """
        pass

    @abstractmethod
    def update_budget(self, user_id: str, budget_id: str, changes: dict) -> Optional[dict]:
        pass

    @abstractmethod
    def delete_budget(self, user_id: str, budget_id: str) -> bool:
        pass

    # Profiles

    @abstractmethod
    def get_profile(self, user_id: str) -> dict:
        """Return the user's profile, creating it with defaults on first access."""
        pass

    @abstractmethod
    def update_profile(self, user_id: str, changes: dict) -> dict:
        pass

    # Notifications

    @abstractmethod
    def list_notifications(self, user_id: str) -> list[dict]:
        """Newest first."""
        pass

    @abstractmethod
    def create_notification(self, user_id: str, data: dict) -> dict:
        """
        Args:
            data: type (one of NOTIFICATION_TYPES), title, message
        """
        pass

    @abstractmethod
    def mark_notification_read(self, user_id: str, notification_id: str) -> Optional[dict]:
        pass

    @abstractmethod
    def delete_notification(self, user_id: str, notification_id: str) -> bool:
        pass
