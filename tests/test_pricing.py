"""
Pricing tests.
"""

from decimal import Decimal

import pytest

from app.core.exceptions import ValidationError
from app.services.pricing import (
    compute_totals,
    format_amount,
    line_amount,
    to_decimal,
    validate_quantity,
    validate_rate,
    validate_tax_rate,
)


def test_line_amount_multiplies_quantity_and_rate():
    assert line_amount(Decimal("2"), Decimal("10.00")) == Decimal("20.00")
    assert line_amount(Decimal("1.50"), Decimal("3.33")) == Decimal("5.00")


def test_line_amount_rounds_half_up():
    # 0.25 * 0.10 = 0.025
    assert line_amount(Decimal("0.25"), Decimal("0.10")) == Decimal("0.03")


def test_compute_totals():
    totals = compute_totals([Decimal("20.00"), Decimal("5.00")], Decimal("10"))

    assert totals.subtotal == Decimal("25.00")
    assert totals.tax_amount == Decimal("2.50")
    assert totals.total == Decimal("27.50")


def test_compute_totals_rounds_tax():
    totals = compute_totals([Decimal("10.05")], Decimal("8.25"))

    assert totals.tax_amount == Decimal("0.83")
    assert totals.total == totals.subtotal + totals.tax_amount


def test_compute_totals_without_items_is_zero():
    totals = compute_totals([], Decimal("20"))

    assert totals.as_dict() == {
        "subtotal": Decimal("0.00"),
        "tax_amount": Decimal("0.00"),
        "total": Decimal("0.00"),
    }


@pytest.mark.parametrize(
    "value,expected",
    [("12.5", "12.5"), (" 7 ", "7"), (12, "12"), (Decimal("12.50"), "12.50"), (12.5, "12.5")],
)
def test_to_decimal_accepts_numbers(value, expected):
    assert to_decimal(value) == Decimal(expected)


@pytest.mark.parametrize("value", ["abc", "NaN", "Infinity", True, None])
def test_to_decimal_rejects_non_numbers(value):
    with pytest.raises(ValidationError):
        to_decimal(value)


def test_to_decimal_rejects_imprecise_floats():
    with pytest.raises(ValidationError) as exc_info:
        to_decimal(0.125, field="rate")
    assert "decimal string" in exc_info.value.message


def test_validate_quantity():
    assert validate_quantity(Decimal("0.01")) == Decimal("0.01")
    assert validate_quantity(Decimal("3")) == Decimal("3.00")

    with pytest.raises(ValidationError):
        validate_quantity(Decimal("0"))
    with pytest.raises(ValidationError):
        validate_quantity(Decimal("1.005"))


def test_validate_rate():
    assert validate_rate(Decimal("0")) == Decimal("0.00")

    with pytest.raises(ValidationError):
        validate_rate(Decimal("-1"))


@pytest.mark.parametrize("tax_rate", ["-0.01", "100.01", "8.125"])
def test_validate_tax_rate_rejects(tax_rate):
    with pytest.raises(ValidationError):
        validate_tax_rate(Decimal(tax_rate))


def test_validate_tax_rate_bounds_are_inclusive():
    assert validate_tax_rate(Decimal("0")) == Decimal("0.00")
    assert validate_tax_rate(Decimal("100")) == Decimal("100.00")


def test_format_amount():
    assert format_amount(None) == "0.00"
    assert format_amount(Decimal("5")) == "5.00"
    assert format_amount(27.5) == "27.50"
    assert format_amount("1234.567") == "1234.57"
