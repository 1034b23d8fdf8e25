from typing import Any
from pydantic import BaseModel, ConfigDict, Field, field_validator
from .payment_methods import PaymentMethod


def _as_text(value: Any) -> str | None:
    # Scalars the model put in a text slot are kept as text, containers are dropped
    if value is None or isinstance(value, (dict, list)):
        return None
    if isinstance(value, str):
        return value
    return str(value)


class LineItem(BaseModel):
    """One line item exactly as the model returned it (numbers not yet coerced)."""
    model_config = ConfigDict(extra="ignore")

    description: str = ""
    quantity: Any = None
    unit_price: Any = None
    total: Any = None

    @field_validator("description", mode="before")
    @classmethod
    def _description_text(cls, value):
        return _as_text(value) or ""


class ParsedReceipt(BaseModel):
    """Model answer after JSON parsing, before normalization."""
    model_config = ConfigDict(extra="ignore")

    merchant_name: str | None = None
    merchant_address: str | None = None
    purchase_date: str | None = None
    subtotal: Any = None
    tax: Any = None
    total: Any = None
    currency: str | None = None
    line_items: list[LineItem] = Field(default_factory=list)
    notes: str | None = None
    category: str | None = None
    payment_method: str | None = None

    @field_validator(
        "merchant_name", "merchant_address", "purchase_date",
        "currency", "notes", "category", "payment_method",
        mode="before",
    )
    @classmethod
    def _optional_text(cls, value):
        return _as_text(value)

    @field_validator("line_items", mode="before")
    @classmethod
    def _object_entries_only(cls, value):
        if not isinstance(value, list):
            return []
        return [entry for entry in value if isinstance(entry, dict)]


class NormalizedItem(BaseModel):
    name: str
    quantity: float | None = None
    unit_price: float | None = None
    total: float


class NormalizedReceipt(BaseModel):
    """Flat view: field names match the receipts table."""
    vendor_name: str | None = None
    purchase_date: str | None = None
    total_amount: float | None = None
    tax_amount: float | None = None
    currency: str | None = None
    payment_method: PaymentMethod = "other"
    suggested_category: str | None = None
    notes: str | None = None
    items: list[NormalizedItem] = Field(default_factory=list)
    confidence: float = 0.0


class SplitItem(BaseModel):
    id: str
    name: str
    quantity: float | None = None
    unit_price: float | None = None
    total: float  # always present and finite
    assigned_to: list[str] = Field(default_factory=list)


class SplitReceipt(BaseModel):
    """Itemized view used for dividing a bill between people."""
    merchant: str | None = None
    date: str | None = None
    currency: str | None = None
    subtotal: float | None = None
    tax_amount: float | None = None
    total_amount: float | None = None
    items: list[SplitItem] = Field(default_factory=list)


class ReceiptAnalysis(BaseModel):
    normalized: NormalizedReceipt
    split: SplitReceipt
    raw_text: str
