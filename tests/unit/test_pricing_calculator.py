from decimal import Decimal

import pytest

from album_orders.catalog.models import Design, EngravingOption, Material, Size
from album_orders.catalog.validator import ResolvedSelection
from album_orders.pricing.calculator import CreditAllowance, CreditType, calculate_price


def _resolved(design: Design, material_upcharge="0", size_upcharge="0", engraving=None, text=""):
    return ResolvedSelection(
        design=design,
        material=Material(id="m", name="M", upcharge=Decimal(material_upcharge), allow_engraving=engraving is not None),
        size=Size(id="s", name="S", upcharge=Decimal(size_upcharge)),
        engraving_option=engraving,
        engraving_text=text,
    )


def test_same_input_same_breakdown():
    resolved = _resolved(Design(index=0, name="D", base_price=Decimal("199.99"), dollar_credit=Decimal("25.5")), "10.10", "0.01")
    assert calculate_price(resolved) == calculate_price(resolved)


def test_free_credit_wins_over_dollar_credit():
    design = Design(index=0, name="D", base_price=Decimal("400"), free_album_credits=2, dollar_credit=Decimal("50"))
    price = calculate_price(_resolved(design, "120", "60"))
    assert price.credit_type is CreditType.FREE_ALBUM
    assert price.credit_amount == Decimal("400.00")
    assert price.total == Decimal("180.00")


def test_dollar_credit_is_capped_at_subtotal():
    design = Design(index=0, name="D", base_price=Decimal("50"), dollar_credit=Decimal("1000"))
    price = calculate_price(_resolved(design, "20", "10"))
    assert price.subtotal == Decimal("80.00")
    assert price.credit_type is CreditType.DOLLAR
    assert price.credit_amount == Decimal("80.00")
    assert price.total == Decimal("0.00")


def test_partial_dollar_credit():
    design = Design(index=0, name="D", base_price=Decimal("300"), dollar_credit=Decimal("100"))
    price = calculate_price(_resolved(design, "150"))
    assert price.credit_amount == Decimal("100.00")
    assert price.total == Decimal("350.00")


def test_end_to_end_free_album_with_engraving():
    engraving = EngravingOption(id="e", name="Dorure", upcharge=Decimal("49"), character_limit=50)
    design = Design(index=0, name="D", base_price=Decimal("500"), free_album_credits=1)
    price = calculate_price(_resolved(design, "150", "75", engraving, "Sarah & Michael"))
    assert price.base_price == Decimal("500.00")
    assert price.material_upcharge == Decimal("150.00")
    assert price.size_upcharge == Decimal("75.00")
    assert price.engraving_upcharge == Decimal("49.00")
    assert price.subtotal == Decimal("774.00")
    assert price.credit_amount == Decimal("500.00")
    assert price.total == Decimal("274.00")


def test_end_to_end_no_credit():
    price = calculate_price(_resolved(Design(index=0, name="D", base_price=Decimal("350"))))
    assert price.subtotal == Decimal("350.00")
    assert price.credit_amount == Decimal("0.00")
    assert price.credit_type is CreditType.NONE
    assert price.total == Decimal("350.00")


def test_cents_arithmetic_has_no_float_drift():
    design = Design(index=0, name="D", base_price=Decimal("0.10"))
    price = calculate_price(_resolved(design, "0.20"))
    assert price.subtotal == Decimal("0.30")
    assert str(price.total) == "0.30"


@pytest.mark.parametrize(
    "allowance, expected_type, expected_credit",
    [
        (CreditAllowance(), CreditType.NONE, Decimal("0.00")),
        (CreditAllowance(free_album_credits=1), CreditType.FREE_ALBUM, Decimal("500.00")),
        (CreditAllowance(dollar_credit=Decimal("30")), CreditType.DOLLAR, Decimal("30.00")),
    ],
)
def test_allowance_overrides_design_credits(allowance, expected_type, expected_credit):
    design = Design(index=0, name="D", base_price=Decimal("500"), free_album_credits=1)
    price = calculate_price(_resolved(design), allowance)
    assert price.credit_type is expected_type
    assert price.credit_amount == expected_credit
    assert price.total >= Decimal("0")
