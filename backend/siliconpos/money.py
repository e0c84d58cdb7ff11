"""
Money handling.

All amounts are stored and computed as integer cents. Inputs arrive as JSON
numbers or strings ("15.99") and are converted through Decimal so that binary
float representation never leaks into totals.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from .validation import ValidationError


CENT = Decimal("0.01")

# Maximum amount: $9,999,999.99 (999,999,999 cents)
MAX_AMOUNT_CENTS = 999_999_999
MAX_AMOUNT = Decimal(MAX_AMOUNT_CENTS) / 100


def parse_money(value, field: str = "amount") -> int:
    """
    Convert a decimal amount into integer cents.

    Rejects booleans, non-finite values and anything with more than two
    decimal places. Sign checks are left to the caller.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} must be a decimal amount")

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float, str)):
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValidationError(f"{field} must be a decimal amount")
    else:
        raise ValidationError(f"{field} must be a decimal amount")

    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite amount")

    # quantize fails past the context precision, so bound the magnitude first
    if amount.copy_abs() > MAX_AMOUNT:
        raise ValidationError(f"{field} cannot exceed {format_cents(MAX_AMOUNT_CENTS)}")

    if amount != amount.quantize(CENT):
        raise ValidationError(f"{field} must have at most 2 decimal places")

    return int(amount.quantize(CENT) * 100)


def format_cents(cents: int | None) -> str | None:
    """Render integer cents as a two-decimal string ("1599" -> "15.99")."""
    if cents is None:
        return None
    return str((Decimal(cents) / 100).quantize(CENT))
