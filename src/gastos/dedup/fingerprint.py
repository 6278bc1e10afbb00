"""Transaction fingerprints.

A fingerprint is a SHA-256 hex digest over the normalized date, amount,
description and account id of a transaction. Persisted transactions
carry it under a unique constraint, so re-importing the same statement
line is caught by the database even if the duplicate detector let it
through.
"""

from __future__ import annotations

import hashlib
import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

_CENT = Decimal("0.01")
_WHITESPACE = re.compile(r"\s+")
# Reference numbers (operation ids, card sequences) vary between exports.
_REFERENCE_NUMBER = re.compile(r"\b\d{6,}\b")


def normalize_date(value: date | datetime | str) -> str:
    """Render a date as ``YYYY-MM-DD``; ISO strings keep only their date part."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip()
    return date.fromisoformat(text.split("T")[0].split(" ")[0]).isoformat()


def normalize_amount(value: Decimal | int | float | str) -> str:
    """Quantize an amount to two decimals (half-up)."""
    amount = value if isinstance(value, Decimal) else Decimal(str(value))
    quantized = amount.quantize(_CENT, rounding=ROUND_HALF_UP)
    if quantized == 0:
        quantized = Decimal("0.00")
    return f"{quantized:.2f}"


def normalize_for_fingerprint(description: str | None) -> str:
    """Case-fold, trim, collapse whitespace and drop long reference numbers."""
    text = _WHITESPACE.sub(" ", (description or "").strip()).casefold()
    text = _REFERENCE_NUMBER.sub("", text)
    return _WHITESPACE.sub(" ", text).strip()


def fingerprint(
    transaction_date: date | datetime | str,
    amount: Decimal | int | float | str,
    description: str | None,
    account_id: str | None,
) -> str:
    """Compute the identity key of a transaction.

    Args:
        transaction_date: Booking date
        amount: Signed amount
        description: Free-text description
        account_id: Owning account

    Returns:
        64 character hex digest
    """
    key = "|".join(
        (
            normalize_date(transaction_date),
            normalize_amount(amount),
            normalize_for_fingerprint(description),
            account_id or "",
        )
    )
    return hashlib.sha256(key.encode("utf-8")).hexdigest()
