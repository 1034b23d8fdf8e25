"""
Payment method mapping.

Receipts are stored with one of a fixed set of payment methods. Two entry
points feed into it:

- free text from the vision model ("Visa credit", "Apple Pay", ...) goes
  through `classify_payment_method` (substring rules, first match wins)
- client-supplied values on the receipts API go through
  `normalize_payment_method` (exact tokens, anything else is "other")
"""

from typing import Literal, Optional

PaymentMethod = Literal[
    "cash", "credit_card", "debit_card", "mobile_payment", "bank_transfer", "other"
]

PAYMENT_METHODS: tuple[str, ...] = (
    "cash",
    "credit_card",
    "debit_card",
    "mobile_payment",
    "bank_transfer",
    "other",
)

DEFAULT_PAYMENT_METHOD = "other"

# Evaluated top to bottom; "credit" must stay ahead of "debit" so that
# "Credit card (debit backup)" is a credit card.
_CLASSIFICATION_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("cash", ("cash",)),
    ("credit_card", ("credit",)),
    ("debit_card", ("debit",)),
    ("mobile_payment", ("apple pay", "google pay", "wallet", "mobile")),
    ("bank_transfer", ("bank", "transfer")),
)

_TOKEN_ALIASES: dict[str, str] = {
    "cash": "cash",
    "credit_card": "credit_card",
    "credit-card": "credit_card",
    "card": "credit_card",
    "debit_card": "debit_card",
    "debit-card": "debit_card",
    "mobile_payment": "mobile_payment",
    "mobile-payment": "mobile_payment",
    "mobile": "mobile_payment",
    "bank_transfer": "bank_transfer",
    "bank-transfer": "bank_transfer",
    "transfer": "bank_transfer",
    "other": "other",
}


def classify_payment_method(raw: Optional[str]) -> Optional[str]:
    """
    Map a free-text payment description to a payment method.

    Returns None when there is nothing to classify; the caller picks the
    default in that case.
    """
    if not raw or not isinstance(raw, str):
        return None

    value = raw.lower().strip()
    if not value:
        return None

    for method, needles in _CLASSIFICATION_RULES:
        if any(needle in value for needle in needles):
            return method

    return "other"


def normalize_payment_method(method: Optional[str]) -> str:
    """Map a client-supplied payment method token onto the stored enum."""
    if not method:
        return DEFAULT_PAYMENT_METHOD
    return _TOKEN_ALIASES.get(method.lower().strip(), DEFAULT_PAYMENT_METHOD)
