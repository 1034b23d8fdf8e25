from fastapi import APIRouter, Depends, HTTPException
from ..deps import get_current_user_id, get_expense_store
from ...models.receipt import ReceiptCreate, ReceiptFilters, ReceiptUpdate
from ...services.storage.expense_store_base import CategoryNotFoundError, ExpenseStoreBase

router = APIRouter(prefix="/api/receipts", tags=["receipts"])


@router.get("")
async def list_receipts(
    filters: ReceiptFilters = Depends(),
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStoreBase = Depends(get_expense_store),
):
    """
    List receipts, newest purchase first.

    Query filters: from_date, to_date, category_id, min_amount, max_amount,
    payment_method, search (vendor name or notes).
    """
    return store.list_receipts(user_id, filters.model_dump(exclude_none=True))


@router.get("/{receipt_id}")
async def get_receipt(
    receipt_id: str,
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStoreBase = Depends(get_expense_store),
):
    receipt = store.get_receipt(user_id, receipt_id)
    if not receipt:
        raise HTTPException(status_code=404, detail="Receipt not found")
    return receipt


@router.post("", status_code=201)
async def create_receipt(
    req: ReceiptCreate,
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStoreBase = Depends(get_expense_store),
):
    """Save a receipt, typically the `data` returned by the analyze-image endpoint after review"""
    try:
        return store.create_receipt(user_id, req.model_dump())
    except CategoryNotFoundError:
        raise HTTPException(status_code=400, detail="Category not found")


@router.put("/{receipt_id}")
async def update_receipt(
    receipt_id: str,
    req: ReceiptUpdate,
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStoreBase = Depends(get_expense_store),
):
    """Partial update; sending `items` replaces every item on the receipt"""
    try:
        receipt = store.update_receipt(user_id, receipt_id, req.model_dump(exclude_unset=True))
    except CategoryNotFoundError:
        raise HTTPException(status_code=400, detail="Category not found")

    if not receipt:
        raise HTTPException(status_code=404, detail="Receipt not found")
    return receipt


@router.delete("/{receipt_id}")
async def delete_receipt(
    receipt_id: str,
    user_id: str = Depends(get_current_user_id),
    store: ExpenseStoreBase = Depends(get_expense_store),
):
    if not store.delete_receipt(user_id, receipt_id):
        raise HTTPException(status_code=404, detail="Receipt not found")
    return {"success": True}
