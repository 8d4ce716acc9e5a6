"""
Calcul de prix pur (pas de DB, pas de Stripe).

    subtotal = base + matériau + taille + gravure
    crédit album gratuit (prioritaire) = prix de base uniquement
    sinon crédit en dollars = min(crédit, subtotal)
    total = max(0, subtotal - crédit)

Tout est calculé en centimes entiers puis restitué en Decimal à 2 décimales.
"""
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from album_orders.catalog.validator import ResolvedSelection
from album_orders.utils.money import from_cents, to_cents


class CreditType(str, Enum):
    NONE = "none"
    FREE_ALBUM = "free_album"
    DOLLAR = "dollar"


class CreditAllowance(BaseModel):
    """Crédits encore disponibles pour un design dans l'album (pool partagé)."""
    model_config = ConfigDict(frozen=True)

    free_album_credits: int = Field(default=0, ge=0)
    dollar_credit: Decimal = Field(default=Decimal("0"), ge=0)


class PriceBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    base_price: Decimal
    material_upcharge: Decimal
    size_upcharge: Decimal
    engraving_upcharge: Decimal
    subtotal: Decimal
    credit_amount: Decimal
    credit_type: CreditType
    total: Decimal


def calculate_price(resolved: ResolvedSelection, allowance: Optional[CreditAllowance] = None) -> PriceBreakdown:
    """
    Sans allowance, les crédits configurés sur le design s'appliquent tels quels.
    """
    design = resolved.design
    base = to_cents(design.base_price)
    material = to_cents(resolved.material.upcharge)
    size = to_cents(resolved.size.upcharge)
    engraving = to_cents(resolved.engraving_option.upcharge) if resolved.engraving_option else 0
    subtotal = base + material + size + engraving

    if allowance is None:
        allowance = CreditAllowance(
            free_album_credits=design.free_album_credits,
            dollar_credit=design.dollar_credit,
        )

    dollar_available = to_cents(allowance.dollar_credit)
    if allowance.free_album_credits > 0:
        # Le crédit album gratuit couvre le prix de base, jamais les suppléments
        credit, credit_type = base, CreditType.FREE_ALBUM
    elif dollar_available > 0:
        credit, credit_type = min(dollar_available, subtotal), CreditType.DOLLAR
    else:
        credit, credit_type = 0, CreditType.NONE

    return PriceBreakdown(
        base_price=from_cents(base),
        material_upcharge=from_cents(material),
        size_upcharge=from_cents(size),
        engraving_upcharge=from_cents(engraving),
        subtotal=from_cents(subtotal),
        credit_amount=from_cents(credit),
        credit_type=credit_type,
        total=from_cents(max(0, subtotal - credit)),
    )
