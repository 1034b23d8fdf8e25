from fastapi import APIRouter, Depends
from ..deps import get_current_user_id, get_expense_store
from ...models.profile import ProfileUpdate
from ...services.storage.expense_store_base import ExpenseStoreBase

router = APIRouter(prefix="/api/profiles", tags=["profiles"])


@router.get("/me")
async def get_my_profile(
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStoreBase = Depends(get_expense_store),
):
    return store.get_profile(user_id)


@router.put("/me")
async def update_my_profile(
    req: ProfileUpdate,
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStoreBase = Depends(get_expense_store),
):
    return store.update_profile(user_id, req.model_dump(exclude_unset=True))
