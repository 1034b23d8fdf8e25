from datetime import datetime
from fastapi import APIRouter, Depends
from ..deps import get_current_user_id, get_expense_store, get_now
from ...services import dashboard
from ...services.storage.expense_store_base import ExpenseStoreBase

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("/stats")
async def get_stats(
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStoreBase = Depends(get_expense_store),
    now: datetime = Depends(get_now),
):
    """Totals and counts for the current month, week and last month"""
    return dashboard.compute_stats(store.list_receipts(user_id), now)


@router.get("/category-spending")
async def get_category_spending(
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStoreBase = Depends(get_expense_store),
    now: datetime = Depends(get_now),
):
    return dashboard.category_spending(
        store.list_categories(user_id),
        store.list_receipts(user_id),
        store.list_budgets(user_id, month=now.month, year=now.year),
        now,
    )


@router.get("/spending-over-time")
async def get_spending_over_time(
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStoreBase = Depends(get_expense_store),
    now: datetime = Depends(get_now),
):
    """Monthly totals for the last 12 months (YYYY-MM, zero-filled)"""
    return dashboard.spending_over_time(store.list_receipts(user_id), now)


@router.get("/insights")
async def get_insights(
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStoreBase = Depends(get_expense_store),
    now: datetime = Depends(get_now),
):
    return dashboard.build_insights(
        store.list_categories(user_id),
        store.list_receipts(user_id),
        store.list_budgets(user_id, month=now.month, year=now.year),
        now,
    )
