from fastapi import APIRouter, Depends, HTTPException, Query
from ..deps import get_current_user_id, get_expense_store
from ...models.budget import BudgetCreate, BudgetUpdate
from ...services.storage.expense_store_base import (
    CategoryNotFoundError,
    DuplicateBudgetError,
    ExpenseStoreBase,
)

router = APIRouter(prefix="/api/budgets", tags=["budgets"])


@router.get("")
async def list_budgets(
    month: int | None = Query(default=None, ge=1, le=12),
    year: int | None = Query(default=None),
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStoreBase = Depends(get_expense_store),
):
    return store.list_budgets(user_id, month=month, year=year)


@router.post("", status_code=201)
async def create_budget(
    req: BudgetCreate,
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStoreBase = Depends(get_expense_store),
):
    try:
        return store.create_budget(user_id, req.model_dump())
    except DuplicateBudgetError:
        raise HTTPException(status_code=409, detail="Budget already exists for this month/category")
    except CategoryNotFoundError:
        raise HTTPException(status_code=400, detail="Category not found")


@router.put("/{budget_id}")
async def update_budget(
    budget_id: str,
    req: BudgetUpdate,
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStoreBase = Depends(get_expense_store),
):
    try:
        budget = store.update_budget(user_id, budget_id, req.model_dump(exclude_unset=True))
    except DuplicateBudgetError:
        raise HTTPException(status_code=409, detail="Budget already exists for this month/category")
    except CategoryNotFoundError:
        raise HTTPException(status_code=400, detail="Category not found")

    if not budget:
        raise HTTPException(status_code=404, detail="Budget not found")
    return budget


@router.delete("/{budget_id}")
async def delete_budget(
    budget_id: str,
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStoreBase = Depends(get_expense_store),
):
    if not store.delete_budget(user_id, budget_id):
        raise HTTPException(status_code=404, detail="Budget not found")
    return {"success": True}
