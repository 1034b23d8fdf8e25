from fastapi import APIRouter, Depends, HTTPException
from ..deps import get_current_user_id, get_expense_store
from ...services.storage.expense_store_base import ExpenseStoreBase

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("")
async def list_notifications(
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStoreBase = Depends(get_expense_store),
):
    return store.list_notifications(user_id)


@router.patch("/{notification_id}/read")
async def mark_notification_read(
    notification_id: str,
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStoreBase = Depends(get_expense_store),
):
    notification = store.mark_notification_read(user_id, notification_id)
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    return notification


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: str,
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStoreBase = Depends(get_expense_store),
):
    if not store.delete_notification(user_id, notification_id):
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"success": True}
