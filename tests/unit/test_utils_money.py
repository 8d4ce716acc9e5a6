from decimal import Decimal

import pytest

from album_orders.utils.money import format_price, from_cents, to_cents, to_decimal


@pytest.mark.parametrize(
    "value, expected",
    [
        ("19.999", Decimal("20.00")),
        (0.1, Decimal("0.10")),
        (5, Decimal("5.00")),
        ("", Decimal("0.00")),
        (None, Decimal("0.00")),
        ("abc", Decimal("0.00")),
    ],
)
def test_to_decimal(value, expected):
    assert to_decimal(value) == expected


def test_cents_conversion():
    assert to_cents("12.34") == 1234
    assert to_cents(Decimal("0.1") + Decimal("0.2")) == 30
    assert from_cents(1234) == Decimal("12.34")
    # Pas de dérive: 0.1 + 0.2 en flottant
    assert from_cents(to_cents(0.1) + to_cents(0.2)) == Decimal("0.30")


def test_format_price():
    assert format_price("1225.5") == "$1,225.50"
    assert format_price(10, "eur") == "10.00 €"
    assert format_price(10, "chf") == "10.00 CHF"
