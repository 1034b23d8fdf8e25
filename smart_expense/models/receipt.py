from datetime import datetime
from pydantic import BaseModel, Field, field_validator
from ..services.payment_methods import normalize_payment_method


class ReceiptItemInput(BaseModel):
    name: str
    quantity: float | None = Field(default=None)
    unit_price: float
    total: float


class ReceiptCreate(BaseModel):
    vendor_name: str
    purchase_date: datetime
    total_amount: float
    tax_amount: float | None = Field(default=None)
    currency: str | None = Field(default=None)
    payment_method: str | None = Field(default=None)
    category_id: str | None = Field(default=None)
    image_url: str | None = Field(default=None)
    notes: str | None = Field(default=None)
    ai_confidence: float | None = Field(default=None)
    items: list[ReceiptItemInput] | None = Field(default=None)

    @field_validator("payment_method")
    @classmethod
    def _normalize_payment_method(cls, value):
        return normalize_payment_method(value)


class ReceiptUpdate(BaseModel):
    """Partial update; null/missing fields are left unchanged."""
    vendor_name: str | None = Field(default=None)
    purchase_date: datetime | None = Field(default=None)
    total_amount: float | None = Field(default=None)
    tax_amount: float | None = Field(default=None)
    currency: str | None = Field(default=None)
    payment_method: str | None = Field(default=None)
    category_id: str | None = Field(default=None)
    image_url: str | None = Field(default=None)
    notes: str | None = Field(default=None)
    ai_confidence: float | None = Field(default=None)
    items: list[ReceiptItemInput] | None = Field(default=None)  # replaces all items when set

    @field_validator("payment_method")
    @classmethod
    def _normalize_payment_method(cls, value):
        return normalize_payment_method(value) if value else None


class ReceiptFilters(BaseModel):
    from_date: datetime | None = None
    to_date: datetime | None = None
    category_id: str | None = None
    min_amount: float | None = None
    max_amount: float | None = None
    payment_method: str | None = None
    search: str | None = None

    @field_validator("payment_method")
    @classmethod
    def _normalize_payment_method(cls, value):
        return normalize_payment_method(value) if value else None
