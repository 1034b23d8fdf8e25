"""
Turns the vision model's loosely-typed receipt JSON into clean receipt data.

Two views are produced from the same parsed answer:

- NormalizedReceipt: flat, matches the receipts table, ready to persist
- SplitReceipt: itemized and subtotal-aware, ready for bill splitting

Reconciliation rules:

Per line item (entries with no description and no numbers are dropped)
    quantity    -> reported quantity, else 1 when a unit price exists
    total       -> reported total, else quantity x unit price,
                   else unit price, else 0

Per receipt (split view only)
    subtotal    -> reported subtotal, else sum of item totals (if > 0),
                   else max(total - tax, 0), else unknown

When the model gave no items but a positive subtotal can be derived, the
split view gets a single "Items Subtotal" item so splitting UIs always
have something to assign.
"""

import uuid
from typing import Any, Callable, Optional
from loguru import logger
from pydantic import BaseModel
from .coercion import first_defined, is_finite_number, to_number
from .payment_methods import DEFAULT_PAYMENT_METHOD, classify_payment_method
from .receipt_types import (
    LineItem,
    NormalizedItem,
    NormalizedReceipt,
    ParsedReceipt,
    SplitItem,
    SplitReceipt,
)

PLACEHOLDER_ITEM_NAME = "Items Subtotal"


class NormalizerConfig(BaseModel):
    """Configuration for receipt normalization (loaded from environment by the factory)"""
    default_confidence: float = 0.85
    default_payment_method: str = DEFAULT_PAYMENT_METHOD
    placeholder_item_name: str = PLACEHOLDER_ITEM_NAME


def _finite_or_none(value: Optional[float]) -> Optional[float]:
    if value is None or not is_finite_number(value):
        return None
    return value


def is_usable_line_item(item: LineItem) -> bool:
    """An item with no description and no numbers carries nothing to keep."""
    if item.description.strip():
        return True
    return any(
        to_number(value) is not None
        for value in (item.quantity, item.unit_price, item.total)
    )


def usable_line_items(receipt: ParsedReceipt) -> list[LineItem]:
    return [item for item in receipt.line_items if is_usable_line_item(item)]


def reconcile_line_item(item: LineItem) -> tuple[Optional[float], Optional[float], float]:
    """
    Reconcile one line item.

    Returns:
        (effective_quantity, unit_price, total). The total is always a
        finite number.
    """
    quantity = to_number(item.quantity)
    unit_price = to_number(item.unit_price)
    reported_total = to_number(item.total)

    # Models tend to leave quantity out for one-off items
    effective_quantity = first_defined(
        quantity,
        1 if unit_price is not None else None,
    )

    computed_total = None
    if effective_quantity is not None and unit_price is not None:
        computed_total = _finite_or_none(effective_quantity * unit_price)

    total = first_defined(reported_total, computed_total, unit_price, 0)
    return effective_quantity, unit_price, total


def derive_subtotal(
    reported_subtotal: Any,
    item_totals: list[float],
    total: Optional[float],
    tax: Optional[float],
) -> Optional[float]:
    """
    Pick the working subtotal for a receipt, or None if nothing supports one.

    A reported subtotal of exactly zero counts as not reported.
    """
    reported = to_number(reported_subtotal)
    if reported == 0:
        reported = None

    items_sum = _finite_or_none(sum(item_totals))
    if items_sum is not None and items_sum <= 0:
        items_sum = None

    remainder = None
    if total is not None and tax is not None:
        remainder = _finite_or_none(max(total - tax, 0))

    return first_defined(reported, items_sum, remainder)


class ReceiptNormalizer:
    """
    Builds both receipt views from a ParsedReceipt.

    Pure: no I/O, no shared state. Item ids come from `id_factory`
    (uuid4 by default).
    """

    def __init__(
        self,
        config: NormalizerConfig = None,
        id_factory: Callable[[], str] = None,
    ):
        self.config = config or NormalizerConfig()
        self._new_id = id_factory or (lambda: str(uuid.uuid4()))

    @staticmethod
    def coerce(parsed: ParsedReceipt | dict) -> ParsedReceipt:
        if isinstance(parsed, ParsedReceipt):
            return parsed
        return ParsedReceipt.model_validate(parsed)

    def to_normalized(self, parsed: ParsedReceipt | dict) -> NormalizedReceipt:
        receipt = self.coerce(parsed)

        items = []
        for line_item in usable_line_items(receipt):
            quantity, unit_price, total = reconcile_line_item(line_item)
            items.append(NormalizedItem(
                name=line_item.description,
                quantity=quantity,
                unit_price=unit_price,
                total=total,
            ))

        return NormalizedReceipt(
            vendor_name=receipt.merchant_name,
            purchase_date=receipt.purchase_date,
            total_amount=to_number(receipt.total),
            tax_amount=to_number(receipt.tax),
            currency=receipt.currency,
            payment_method=first_defined(
                classify_payment_method(receipt.payment_method),
                self.config.default_payment_method,
            ),
            suggested_category=receipt.category,
            notes=receipt.notes,
            items=items,
            confidence=self.config.default_confidence,
        )

    def to_split(self, parsed: ParsedReceipt | dict) -> SplitReceipt:
        receipt = self.coerce(parsed)
        total = to_number(receipt.total)
        tax = to_number(receipt.tax)

        items = []
        for line_item in usable_line_items(receipt):
            quantity, unit_price, item_total = reconcile_line_item(line_item)
            items.append(SplitItem(
                id=self._new_id(),
                name=line_item.description,
                quantity=quantity,
                unit_price=unit_price,
                total=item_total,
            ))

        subtotal = derive_subtotal(
            receipt.subtotal,
            [item.total for item in items],
            total,
            tax,
        )

        if not items and subtotal is not None and subtotal > 0:
            items.append(SplitItem(
                id=self._new_id(),
                name=self.config.placeholder_item_name,
                quantity=1,
                unit_price=subtotal,
                total=subtotal,
            ))

        return SplitReceipt(
            merchant=receipt.merchant_name,
            date=receipt.purchase_date,
            currency=receipt.currency,
            subtotal=subtotal,
            tax_amount=tax,
            total_amount=total,
            items=items,
        )

    def normalize(self, parsed: ParsedReceipt | dict) -> tuple[NormalizedReceipt, SplitReceipt]:
        receipt = self.coerce(parsed)
        normalized = self.to_normalized(receipt)
        split = self.to_split(receipt)

        logger.debug(
            "Normalized receipt",
            vendor=normalized.vendor_name,
            item_count=len(normalized.items),
            split_item_count=len(split.items),
            subtotal=split.subtotal,
            total=split.total_amount,
        )
        return normalized, split


def create_receipt_normalizer(
    default_confidence: float = None,
    default_payment_method: str = None,
) -> ReceiptNormalizer:
    """
    Factory function to create a normalizer with optional overrides.

    Uses environment settings as defaults.
    """
    from ..core.config import settings

    config = NormalizerConfig(
        default_confidence=default_confidence if default_confidence is not None else settings.default_confidence,
        default_payment_method=default_payment_method or DEFAULT_PAYMENT_METHOD,
    )
    return ReceiptNormalizer(config)
