"""
Invoice pricing.

Fixed-point arithmetic for item amounts and invoice totals. Every value is a
Decimal rounded half-up to two fractional digits; floats never reach storage.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Union

from app.core.exceptions import ValidationError


TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

MIN_QUANTITY = Decimal("0.01")
MAX_TAX_RATE = Decimal("100")

Numeric = Union[Decimal, str, int, float]


@dataclass(frozen=True)
class InvoiceTotals:
    """Derived monetary fields of an invoice."""
    subtotal: Decimal
    tax_amount: Decimal
    total: Decimal

    def as_dict(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "tax_amount": self.tax_amount,
            "total": self.total,
        }


def quantize(value: Decimal) -> Decimal:
    """Round to two fractional digits (half-up)."""
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def to_decimal(value: Numeric, field: str = "value") -> Decimal:
    """
    Parse a decimal string, integer, Decimal or float.

    Floats go through their shortest repr and must not carry more than
    two fractional digits, otherwise they would silently lose precision.

    Raises:
        ValidationError: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")

    if isinstance(value, float):
        parsed = _parse(repr(value), field)
        if parsed.as_tuple().exponent < -2:
            raise ValidationError(
                f"{field} has more than 2 decimal places; send it as a decimal string"
            )
        return parsed

    if isinstance(value, Decimal):
        parsed = value
    elif isinstance(value, (int, str)):
        parsed = _parse(str(value).strip(), field)
    else:
        raise ValidationError(f"{field} must be a number")

    if not parsed.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    return parsed


def _parse(raw: str, field: str) -> Decimal:
    try:
        parsed = Decimal(raw)
    except InvalidOperation as exc:
        raise ValidationError(f"{field} is not a valid number") from exc
    if not parsed.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    return parsed


def _two_places(value: Decimal, field: str) -> Decimal:
    if value != quantize(value):
        raise ValidationError(f"{field} must not have more than 2 decimal places")
    return quantize(value)


def validate_quantity(quantity: Decimal) -> Decimal:
    if quantity < MIN_QUANTITY:
        raise ValidationError("Item quantity must be at least 0.01")
    return _two_places(quantity, "Item quantity")


def validate_rate(rate: Decimal) -> Decimal:
    if rate < 0:
        raise ValidationError("Item rate must not be negative")
    return _two_places(rate, "Item rate")


def validate_tax_rate(tax_rate: Decimal) -> Decimal:
    if tax_rate < 0 or tax_rate > MAX_TAX_RATE:
        raise ValidationError("Tax rate must be between 0 and 100")
    return _two_places(tax_rate, "Tax rate")


def line_amount(quantity: Decimal, rate: Decimal) -> Decimal:
    """amount = quantity * rate, rounded."""
    return quantize(quantity * rate)


def compute_totals(amounts: Iterable[Decimal], tax_rate: Decimal) -> InvoiceTotals:
    """
    Derive subtotal, tax amount and total from item amounts.

    Args:
        amounts: Item amounts
        tax_rate: Tax percentage (e.g. Decimal("8.50"))

    Returns:
        InvoiceTotals with total == subtotal + tax_amount
    """
    subtotal = quantize(sum(amounts, ZERO))
    tax_amount = quantize(subtotal * tax_rate / HUNDRED)
    return InvoiceTotals(
        subtotal=subtotal,
        tax_amount=tax_amount,
        total=subtotal + tax_amount,
    )


def format_amount(value: Numeric | None) -> str:
    """Format as a fixed two-decimal string ("0.00" when empty)."""
    if value is None:
        return "0.00"
    if isinstance(value, float):
        value = Decimal(repr(value))
    elif not isinstance(value, Decimal):
        value = Decimal(str(value))
    return str(quantize(value))
