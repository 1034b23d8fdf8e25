from fastapi import APIRouter, Depends, HTTPException
from ..deps import get_current_user_id, get_expense_store
from ...models.category import CategoryCreate, CategoryUpdate
from ...services.storage.expense_store_base import ExpenseStoreBase

router = APIRouter(prefix="/api/categories", tags=["categories"])


@router.get("")
async def list_categories(
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStoreBase = Depends(get_expense_store),
):
    return store.list_categories(user_id)


@router.post("", status_code=201)
async def create_category(
    req: CategoryCreate,
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStoreBase = Depends(get_expense_store),
):
    return store.create_category(user_id, req.model_dump())


@router.post("/defaults", status_code=201)
async def seed_default_categories(
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStoreBase = Depends(get_expense_store),
):
    """Create the starter category set (run once for a new user)"""
    return store.seed_default_categories(user_id)


@router.put("/{category_id}")
async def update_category(
    category_id: str,
    req: CategoryUpdate,
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStoreBase = Depends(get_expense_store),
):
    category = store.update_category(user_id, category_id, req.model_dump(exclude_unset=True))
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return category


@router.delete("/{category_id}")
async def delete_category(
    category_id: str,
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStoreBase = Depends(get_expense_store),
):
    if not store.delete_category(user_id, category_id):
        raise HTTPException(status_code=404, detail="Category not found")
    return {"success": True}
