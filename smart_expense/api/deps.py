from datetime import datetime, UTC
from functools import lru_cache
from fastapi import Header, HTTPException
from pydantic import BaseModel
from ..core.config import settings
from ..services.receipt_analyzer import ReceiptAnalyzer, create_receipt_analyzer
from ..services.receipt_types import NormalizedReceipt, SplitReceipt
from ..services.storage.expense_store_base import ExpenseStoreBase
from ..services.storage.expenses_sqlite import SQLiteExpenseStore

class AnalyzeReceiptResponse(BaseModel):
    success: bool = True
    data: NormalizedReceipt
    split_receipt: SplitReceipt
    raw_text: str  # Untouched model answer, for display and debugging


class AnalysisFailureResponse(BaseModel):
    success: bool = False
    error: str
    details: str | None = None
    raw_text: str | None = None  # Only present when the model answer could not be parsed


def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Identity is established upstream (auth gateway) and forwarded as X-User-Id"""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing user identity")
    return x_user_id.strip()


@lru_cache
def get_expense_store() -> ExpenseStoreBase:
    return SQLiteExpenseStore(settings.database_path)


def get_receipt_analyzer() -> ReceiptAnalyzer:
    return create_receipt_analyzer()


def get_now() -> datetime:
    """Current time as naive UTC (matches stored timestamps)"""
    return datetime.now(UTC).replace(tzinfo=None)
