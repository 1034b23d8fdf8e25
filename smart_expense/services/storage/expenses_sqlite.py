"""
SQLite-based expense storage.

Persists receipts (with line items), categories, monthly budgets, user
profiles and notifications.
Each operation opens a short-lived connection and runs in a single
transaction, so a failed multi-statement update leaves no partial writes.
"""

import sqlite3
import uuid
from contextlib import contextmanager
from typing import Iterator, Optional
from loguru import logger
from .expense_store_base import (
    CategoryNotFoundError,
    DEFAULT_LARGE_EXPENSE_THRESHOLD,
    DuplicateBudgetError,
    ExpenseStoreBase,
    NOTIFICATION_TYPES,
    to_storage_datetime,
    utc_now,
)
from ..default_categories import (
    DEFAULT_CATEGORIES,
    DEFAULT_CATEGORY_COLOR,
    DEFAULT_CATEGORY_ICON,
)
from ..payment_methods import DEFAULT_PAYMENT_METHOD, PAYMENT_METHODS

RECEIPT_COLUMNS = (
    "vendor_name",
    "purchase_date",
    "total_amount",
    "tax_amount",
    "currency",
    "payment_method",
    "category_id",
    "image_url",
    "notes",
    "ai_confidence",
)
CATEGORY_COLUMNS = ("name", "icon", "color", "is_tax_deductible")
BUDGET_COLUMNS = ("category_id", "monthly_limit", "month", "year")
PROFILE_COLUMNS = ("name", "email", "preferred_currency", "timezone", "large_expense_threshold")

_PAYMENT_METHOD_CHECK = ", ".join(f"'{method}'" for method in PAYMENT_METHODS)
_NOTIFICATION_TYPE_CHECK = ", ".join(f"'{kind}'" for kind in NOTIFICATION_TYPES)

SCHEMA = f"""
CREATE TABLE IF NOT EXISTS categories (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    name TEXT NOT NULL,
    icon TEXT NOT NULL DEFAULT '{DEFAULT_CATEGORY_ICON}',
    color TEXT NOT NULL DEFAULT '{DEFAULT_CATEGORY_COLOR}',
    is_tax_deductible INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS receipts (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    vendor_name TEXT NOT NULL,
    purchase_date TEXT NOT NULL,
    total_amount REAL NOT NULL,
    tax_amount REAL NOT NULL DEFAULT 0,
    currency TEXT NOT NULL DEFAULT 'USD',
    payment_method TEXT NOT NULL DEFAULT '{DEFAULT_PAYMENT_METHOD}',
    category_id TEXT REFERENCES categories(id) ON DELETE SET NULL,
    image_url TEXT,
    notes TEXT,
    ai_confidence REAL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    CHECK (payment_method IN ({_PAYMENT_METHOD_CHECK}))
);

CREATE TABLE IF NOT EXISTS receipt_items (
    id TEXT PRIMARY KEY,
    receipt_id TEXT NOT NULL REFERENCES receipts(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    quantity REAL NOT NULL DEFAULT 1,
    unit_price REAL NOT NULL,
    total REAL NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS budgets (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    category_id TEXT NOT NULL REFERENCES categories(id) ON DELETE CASCADE,
    monthly_limit REAL NOT NULL,
    month INTEGER NOT NULL,
    year INTEGER NOT NULL,
    created_at TEXT NOT NULL,
    UNIQUE (user_id, category_id, month, year)
);

CREATE TABLE IF NOT EXISTS profiles (
    id TEXT PRIMARY KEY,
    name TEXT,
    email TEXT,
    preferred_currency TEXT NOT NULL DEFAULT 'USD',
    timezone TEXT NOT NULL DEFAULT 'UTC',
    large_expense_threshold REAL NOT NULL DEFAULT {DEFAULT_LARGE_EXPENSE_THRESHOLD},
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS notifications (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    type TEXT NOT NULL,
    title TEXT NOT NULL,
    message TEXT NOT NULL,
    is_read INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    CHECK (type IN ({_NOTIFICATION_TYPE_CHECK}))
);

CREATE INDEX IF NOT EXISTS idx_receipts_user_date ON receipts(user_id, purchase_date);
CREATE INDEX IF NOT EXISTS idx_receipt_items_receipt ON receipt_items(receipt_id);
CREATE INDEX IF NOT EXISTS idx_categories_user ON categories(user_id);
CREATE INDEX IF NOT EXISTS idx_budgets_user_period ON budgets(user_id, year, month);
CREATE INDEX IF NOT EXISTS idx_notifications_user ON notifications(user_id, created_at);
"""

_RECEIPT_SELECT = """
    SELECT r.*,
           c.name AS category_name,
           c.icon AS category_icon,
           c.color AS category_color
    FROM receipts r
    LEFT JOIN categories c ON c.id = r.category_id
"""

_BUDGET_SELECT = """
    SELECT b.*,
           c.name AS category_name,
           c.icon AS icon,
           c.color AS color
    FROM budgets b
    JOIN categories c ON c.id = b.category_id
"""


def _category_to_dict(row: sqlite3.Row) -> dict:
    category = dict(row)
    category["is_tax_deductible"] = bool(category["is_tax_deductible"])
    return category


class SQLiteExpenseStore(ExpenseStoreBase):
    """
    SQLite-backed expense store with persistent storage.

    Features:
    - Foreign keys enforced (items cascade with receipts, budgets with
      categories, receipts lose their category when it is deleted)
    - One budget per user/category/month/year
    - Thread-safe operations (via SQLite's built-in locking)
    """

    def __init__(self, db_path: str = "expenses.db"):
        """
        Initialize store with database path.

        Args:
            db_path: Path to SQLite database file (default: expenses.db)
        """
        self.db_path = db_path
        self._init_database()

    def _init_database(self):
        """Create tables and indexes if they don't exist"""
        with self._connection() as conn:
            conn.executescript(SCHEMA)

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Connection with row factory and foreign keys; commits on success"""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    @staticmethod
    def _check_category(conn: sqlite3.Connection, user_id: str, category_id: Optional[str]):
        if category_id is None:
            return
        row = conn.execute(
            "SELECT 1 FROM categories WHERE id = ? AND user_id = ?",
            (category_id, user_id),
        ).fetchone()
        if row is None:
            raise CategoryNotFoundError(category_id)

    # ------------------------------------------------------------------
    # Receipts
    # ------------------------------------------------------------------

    @staticmethod
    def _insert_items(conn: sqlite3.Connection, receipt_id: str, items: list[dict], created_at: str):
        conn.executemany(
            """
            INSERT INTO receipt_items (id, receipt_id, name, quantity, unit_price, total, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    str(uuid.uuid4()),
                    receipt_id,
                    item["name"],
                    item["quantity"] if item.get("quantity") is not None else 1,
                    item["unit_price"],
                    item["total"],
                    created_at,
                )
                for item in items
            ],
        )

    @staticmethod
    def _attach_items(conn: sqlite3.Connection, receipts: list[dict]) -> list[dict]:
        if not receipts:
            return receipts

        by_id = {receipt["id"]: receipt for receipt in receipts}
        for receipt in receipts:
            receipt["items"] = []

        placeholders = ", ".join("?" for _ in by_id)
        rows = conn.execute(
            f"""
            SELECT * FROM receipt_items
            WHERE receipt_id IN ({placeholders})
            ORDER BY created_at ASC, rowid ASC
            """,
            tuple(by_id),
        ).fetchall()

        for row in rows:
            by_id[row["receipt_id"]]["items"].append(dict(row))

        return receipts

    def _fetch_receipt(self, conn: sqlite3.Connection, user_id: str, receipt_id: str) -> Optional[dict]:
        row = conn.execute(
            _RECEIPT_SELECT + " WHERE r.id = ? AND r.user_id = ?",
            (receipt_id, user_id),
        ).fetchone()
        if row is None:
            return None
        return self._attach_items(conn, [dict(row)])[0]

    def _notify_large_expense(self, conn: sqlite3.Connection, user_id: str, receipt: dict, created_at: str):
        row = conn.execute(
            "SELECT large_expense_threshold FROM profiles WHERE id = ?",
            (user_id,),
        ).fetchone()
        threshold = row["large_expense_threshold"] if row else DEFAULT_LARGE_EXPENSE_THRESHOLD

        if receipt["total_amount"] is None or receipt["total_amount"] < threshold:
            return

        self._insert_notification(conn, user_id, {
            "type": "large_expense",
            "title": "Large expense recorded",
            "message": (
                f"{receipt['vendor_name']}: {receipt['total_amount']:.2f} {receipt['currency']} "
                f"is above your {threshold:.2f} threshold."
            ),
        }, created_at)

    def create_receipt(self, user_id: str, data: dict) -> dict:
        receipt_id = str(uuid.uuid4())
        now = utc_now()

        values = {column: data.get(column) for column in RECEIPT_COLUMNS}
        values["purchase_date"] = to_storage_datetime(values["purchase_date"])
        if values["tax_amount"] is None:
            values["tax_amount"] = 0
        values["currency"] = values["currency"] or "USD"
        values["payment_method"] = values["payment_method"] or DEFAULT_PAYMENT_METHOD

        columns = ", ".join(RECEIPT_COLUMNS)
        placeholders = ", ".join("?" for _ in RECEIPT_COLUMNS)

        with self._connection() as conn:
            self._check_category(conn, user_id, values["category_id"])
            conn.execute(
                f"""
                INSERT INTO receipts (id, user_id, {columns}, created_at, updated_at)
                VALUES (?, ?, {placeholders}, ?, ?)
                """,
                (receipt_id, user_id, *values.values(), now, now),
            )
            self._insert_items(conn, receipt_id, data.get("items") or [], now)
            self._notify_large_expense(conn, user_id, values, now)
            receipt = self._fetch_receipt(conn, user_id, receipt_id)

        logger.info(
            "Receipt created",
            receipt_id=receipt_id,
            user_id=user_id,
            item_count=len(receipt["items"]),
        )
        return receipt

    def get_receipt(self, user_id: str, receipt_id: str) -> Optional[dict]:
        with self._connection() as conn:
            return self._fetch_receipt(conn, user_id, receipt_id)

    def list_receipts(self, user_id: str, filters: Optional[dict] = None) -> list[dict]:
        filters = filters or {}
        clauses = ["r.user_id = ?"]
        params: list = [user_id]

        if filters.get("from_date") is not None:
            clauses.append("r.purchase_date >= ?")
            params.append(to_storage_datetime(filters["from_date"]))
        if filters.get("to_date") is not None:
            clauses.append("r.purchase_date <= ?")
            params.append(to_storage_datetime(filters["to_date"]))
        if filters.get("category_id"):
            clauses.append("r.category_id = ?")
            params.append(filters["category_id"])
        if filters.get("min_amount") is not None:
            clauses.append("r.total_amount >= ?")
            params.append(filters["min_amount"])
        if filters.get("max_amount") is not None:
            clauses.append("r.total_amount <= ?")
            params.append(filters["max_amount"])
        if filters.get("payment_method"):
            clauses.append("r.payment_method = ?")
            params.append(filters["payment_method"])
        if filters.get("search"):
            # LIKE is case-insensitive for ASCII in SQLite
            pattern = f"%{filters['search']}%"
            clauses.append("(r.vendor_name LIKE ? OR r.notes LIKE ?)")
            params.extend([pattern, pattern])

        query = (
            _RECEIPT_SELECT
            + " WHERE " + " AND ".join(clauses)
            + " ORDER BY r.purchase_date DESC, r.created_at DESC"
        )

        with self._connection() as conn:
            receipts = [dict(row) for row in conn.execute(query, params).fetchall()]
            return self._attach_items(conn, receipts)

    def update_receipt(self, user_id: str, receipt_id: str, changes: dict) -> Optional[dict]:
        fields = {
            column: changes[column]
            for column in RECEIPT_COLUMNS
            if changes.get(column) is not None
        }
        if "purchase_date" in fields:
            fields["purchase_date"] = to_storage_datetime(fields["purchase_date"])

        now = utc_now()
        fields["updated_at"] = now

        with self._connection() as conn:
            if self._fetch_receipt(conn, user_id, receipt_id) is None:
                return None

            self._check_category(conn, user_id, fields.get("category_id"))

            set_clause = ", ".join(f"{column} = ?" for column in fields)
            conn.execute(
                f"UPDATE receipts SET {set_clause} WHERE id = ? AND user_id = ?",
                (*fields.values(), receipt_id, user_id),
            )

            items = changes.get("items")
            if isinstance(items, list):
                # Replace all items
                conn.execute("DELETE FROM receipt_items WHERE receipt_id = ?", (receipt_id,))
                self._insert_items(conn, receipt_id, items, now)

            receipt = self._fetch_receipt(conn, user_id, receipt_id)

        logger.info("Receipt updated", receipt_id=receipt_id, user_id=user_id)
        return receipt

    def delete_receipt(self, user_id: str, receipt_id: str) -> bool:
        with self._connection() as conn:
            cursor = conn.execute(
                "DELETE FROM receipts WHERE id = ? AND user_id = ?",
                (receipt_id, user_id),
            )
            return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def _fetch_category(self, conn: sqlite3.Connection, user_id: str, category_id: str) -> Optional[dict]:
        row = conn.execute(
            "SELECT * FROM categories WHERE id = ? AND user_id = ?",
            (category_id, user_id),
        ).fetchone()
        return _category_to_dict(row) if row else None

    @staticmethod
    def _insert_category(conn: sqlite3.Connection, user_id: str, data: dict, created_at: str) -> str:
        category_id = str(uuid.uuid4())
        conn.execute(
            """
            INSERT INTO categories (id, user_id, name, icon, color, is_tax_deductible, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                category_id,
                user_id,
                data["name"],
                data.get("icon") or DEFAULT_CATEGORY_ICON,
                data.get("color") or DEFAULT_CATEGORY_COLOR,
                bool(data.get("is_tax_deductible", False)),
                created_at,
            ),
        )
        return category_id

    def list_categories(self, user_id: str) -> list[dict]:
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT * FROM categories WHERE user_id = ? ORDER BY created_at ASC, rowid ASC",
                (user_id,),
            ).fetchall()
        return [_category_to_dict(row) for row in rows]

    def create_category(self, user_id: str, data: dict) -> dict:
        with self._connection() as conn:
            category_id = self._insert_category(conn, user_id, data, utc_now())
            return self._fetch_category(conn, user_id, category_id)

    def update_category(self, user_id: str, category_id: str, changes: dict) -> Optional[dict]:
        fields = {
            column: changes[column]
            for column in CATEGORY_COLUMNS
            if changes.get(column) is not None
        }

        with self._connection() as conn:
            if self._fetch_category(conn, user_id, category_id) is None:
                return None

            if fields:
                set_clause = ", ".join(f"{column} = ?" for column in fields)
                conn.execute(
                    f"UPDATE categories SET {set_clause} WHERE id = ? AND user_id = ?",
                    (*fields.values(), category_id, user_id),
                )
            return self._fetch_category(conn, user_id, category_id)

    def delete_category(self, user_id: str, category_id: str) -> bool:
        with self._connection() as conn:
            cursor = conn.execute(
                "DELETE FROM categories WHERE id = ? AND user_id = ?",
                (category_id, user_id),
            )
            return cursor.rowcount > 0

    def seed_default_categories(self, user_id: str) -> list[dict]:
        now = utc_now()
        with self._connection() as conn:
            for category in DEFAULT_CATEGORIES:
                self._insert_category(conn, user_id, category, now)

        logger.info("Seeded default categories", user_id=user_id, count=len(DEFAULT_CATEGORIES))
        return self.list_categories(user_id)

    # ------------------------------------------------------------------
    # Budgets
    # ------------------------------------------------------------------

    def _fetch_budget(self, conn: sqlite3.Connection, user_id: str, budget_id: str) -> Optional[dict]:
        row = conn.execute(
            "SELECT * FROM budgets WHERE id = ? AND user_id = ?",
            (budget_id, user_id),
        ).fetchone()
        return dict(row) if row else None

    def list_budgets(
        self, user_id: str, month: Optional[int] = None, year: Optional[int] = None
    ) -> list[dict]:
        clauses = ["b.user_id = ?"]
        params: list = [user_id]
        if month is not None:
            clauses.append("b.month = ?")
            params.append(month)
        if year is not None:
            clauses.append("b.year = ?")
            params.append(year)

        query = (
            _BUDGET_SELECT
            + " WHERE " + " AND ".join(clauses)
            + " ORDER BY b.created_at ASC, b.rowid ASC"
        )
        with self._connection() as conn:
            return [dict(row) for row in conn.execute(query, params).fetchall()]

    def create_budget(self, user_id: str, data: dict) -> dict:
        budget_id = str(uuid.uuid4())

        try:
            with self._connection() as conn:
                self._check_category(conn, user_id, data["category_id"])
                conn.execute(
                    """
                    INSERT INTO budgets (id, user_id, category_id, monthly_limit, month, year, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        budget_id,
                        user_id,
                        data["category_id"],
                        data["monthly_limit"],
                        data["month"],
                        data["year"],
                        utc_now(),
                    ),
                )
                budget = self._fetch_budget(conn, user_id, budget_id)
        except sqlite3.IntegrityError as e:
            raise DuplicateBudgetError("Budget already exists for this month/category") from e

        return budget

    def update_budget(self, user_id: str, budget_id: str, changes: dict) -> Optional[dict]:
        fields = {
            column: changes[column]
            for column in BUDGET_COLUMNS
            if changes.get(column) is not None
        }

        try:
            with self._connection() as conn:
                if self._fetch_budget(conn, user_id, budget_id) is None:
                    return None

                self._check_category(conn, user_id, fields.get("category_id"))

                if fields:
                    set_clause = ", ".join(f"{column} = ?" for column in fields)
                    conn.execute(
                        f"UPDATE budgets SET {set_clause} WHERE id = ? AND user_id = ?",
                        (*fields.values(), budget_id, user_id),
                    )
                budget = self._fetch_budget(conn, user_id, budget_id)
        except sqlite3.IntegrityError as e:
            raise DuplicateBudgetError("Budget already exists for this month/category") from e

        return budget

    def delete_budget(self, user_id: str, budget_id: str) -> bool:
        with self._connection() as conn:
            cursor = conn.execute(
                "DELETE FROM budgets WHERE id = ? AND user_id = ?",
                (budget_id, user_id),
            )
            return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    @staticmethod
    def _ensure_profile(conn: sqlite3.Connection, user_id: str) -> dict:
        # Registration happens upstream, so the profile row is created lazily
        now = utc_now()
        conn.execute(
            "INSERT OR IGNORE INTO profiles (id, created_at, updated_at) VALUES (?, ?, ?)",
            (user_id, now, now),
        )
        row = conn.execute("SELECT * FROM profiles WHERE id = ?", (user_id,)).fetchone()
        return dict(row)

    def get_profile(self, user_id: str) -> dict:
        with self._connection() as conn:
            return self._ensure_profile(conn, user_id)

    def update_profile(self, user_id: str, changes: dict) -> dict:
        fields = {
            column: changes[column]
            for column in PROFILE_COLUMNS
            if changes.get(column) is not None
        }
        fields["updated_at"] = utc_now()

        with self._connection() as conn:
            self._ensure_profile(conn, user_id)
            set_clause = ", ".join(f"{column} = ?" for column in fields)
            conn.execute(
                f"UPDATE profiles SET {set_clause} WHERE id = ?",
                (*fields.values(), user_id),
            )
            profile = self._ensure_profile(conn, user_id)

        logger.info("Profile updated", user_id=user_id, fields=sorted(fields))
        return profile

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    @staticmethod
    def _notification_to_dict(row: sqlite3.Row) -> dict:
        notification = dict(row)
        notification["is_read"] = bool(notification["is_read"])
        return notification

    @staticmethod
    def _insert_notification(conn: sqlite3.Connection, user_id: str, data: dict, created_at: str) -> str:
        notification_id = str(uuid.uuid4())
        conn.execute(
            """
            INSERT INTO notifications (id, user_id, type, title, message, is_read, created_at)
            VALUES (?, ?, ?, ?, ?, 0, ?)
            """,
            (notification_id, user_id, data["type"], data["title"], data["message"], created_at),
        )
        logger.info("Notification created", user_id=user_id, type=data["type"])
        return notification_id

    def _fetch_notification(self, conn: sqlite3.Connection, user_id: str, notification_id: str) -> Optional[dict]:
        row = conn.execute(
            "SELECT * FROM notifications WHERE id = ? AND user_id = ?",
            (notification_id, user_id),
        ).fetchone()
        return self._notification_to_dict(row) if row else None

    def list_notifications(self, user_id: str) -> list[dict]:
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT * FROM notifications WHERE user_id = ? ORDER BY created_at DESC, rowid DESC",
                (user_id,),
            ).fetchall()
        return [self._notification_to_dict(row) for row in rows]

    def create_notification(self, user_id: str, data: dict) -> dict:
        with self._connection() as conn:
            notification_id = self._insert_notification(conn, user_id, data, utc_now())
            return self._fetch_notification(conn, user_id, notification_id)

    def mark_notification_read(self, user_id: str, notification_id: str) -> Optional[dict]:
        with self._connection() as conn:
            cursor = conn.execute(
                "UPDATE notifications SET is_read = 1 WHERE id = ? AND user_id = ?",
                (notification_id, user_id),
            )
            if cursor.rowcount == 0:
                return None
            return self._fetch_notification(conn, user_id, notification_id)

    def delete_notification(self, user_id: str, notification_id: str) -> bool:
        with self._connection() as conn:
            cursor = conn.execute(
                "DELETE FROM notifications WHERE id = ? AND user_id = ?",
                (notification_id, user_id),
            )
            return cursor.rowcount > 0
