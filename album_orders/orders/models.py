# module album_orders.orders.models
"""
Modèles de commande (un article de panier EST une commande au statut 'submitted').
- OrderStatus: machine à états fermée submitted -> ordered -> shipped
- PaymentStatus: état du paiement associé à l'article
- ShippingAddress / Customer: saisies client validées (pydantic)
- CartItem: enregistrement canonique stocké par le CartStore
"""
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Dict, FrozenSet, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from album_orders.errors import InvalidTransition
from album_orders.pricing.calculator import CreditType
from album_orders.utils.validators import sanitize_phone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderStatus(str, Enum):
    SUBMITTED = "submitted"
    ORDERED = "ordered"
    SHIPPED = "shipped"


TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.SUBMITTED: frozenset({OrderStatus.ORDERED}),
    OrderStatus.ORDERED: frozenset({OrderStatus.SHIPPED}),
    OrderStatus.SHIPPED: frozenset(),
}


def ensure_transition(current: OrderStatus, target: OrderStatus) -> None:
    if target not in TRANSITIONS[current]:
        raise InvalidTransition(f"Transition {current.value} -> {target.value} non autorisée.")


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    FREE = "free"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"
    PARTIAL_REFUND = "partial_refund"


class ShippingAddress(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    name: str = Field(min_length=1, max_length=200)
    address1: str = Field(min_length=1, max_length=300)
    address2: str = Field(default="", max_length=300)
    city: str = Field(min_length=1, max_length=120)
    state: str = Field(min_length=1, max_length=120)
    zip: str = Field(min_length=1, max_length=20)


class Customer(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    phone: str = ""

    @field_validator("phone")
    @classmethod
    def _clean_phone(cls, v: str) -> str:
        return sanitize_phone(v)


class CartItem(BaseModel):
    """
    Commande/article de panier. Les noms (design_name, material_name, ...) sont
    des instantanés pris à l'ajout: un renommage du catalogue ne modifie pas
    les commandes existantes.
    """
    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    client_album_id: str
    cart_token: str
    album_name: str = ""

    # Sélection
    design_index: int
    material_id: str
    color_id: Optional[str] = None
    size_id: str
    engraving_option_id: Optional[str] = None
    engraving_text: str = ""
    engraving_font: str = ""

    # Instantanés d'affichage
    design_name: str = ""
    material_name: str = ""
    color_name: str = ""
    size_name: str = ""
    engraving_option_name: str = ""

    # Instantané de prix
    base_price: Decimal = Decimal("0.00")
    material_upcharge: Decimal = Decimal("0.00")
    size_upcharge: Decimal = Decimal("0.00")
    engraving_upcharge: Decimal = Decimal("0.00")
    subtotal: Decimal = Decimal("0.00")
    applied_credits: Decimal = Decimal("0.00")
    credit_type: CreditType = CreditType.NONE
    total: Decimal = Decimal("0.00")

    shipping: ShippingAddress

    customer_name: str = ""
    customer_email: str = ""
    customer_phone: str = ""
    client_notes: str = ""
    photographer_notes: str = ""

    status: OrderStatus = OrderStatus.SUBMITTED

    payment_status: PaymentStatus = PaymentStatus.UNPAID
    payment_intent_id: Optional[str] = None
    payment_amount: Decimal = Decimal("0.00")
    charge_id: Optional[str] = None
    payment_error: str = ""
    refund_amount: Decimal = Decimal("0.00")

    created_at: datetime = Field(default_factory=utcnow)
    ordered_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    reminder_sent_at: Optional[datetime] = None

    def advance(self, to: OrderStatus, at: Optional[datetime] = None) -> "CartItem":
        """Retourne une copie transitionnée; lève InvalidTransition hors table."""
        ensure_transition(self.status, to)
        at = at or utcnow()
        changes: Dict[str, object] = {"status": to}
        if to is OrderStatus.ORDERED:
            changes["ordered_at"] = at
        elif to is OrderStatus.SHIPPED:
            changes["shipped_at"] = at
        return self.model_copy(update=changes)

    def to_row(self) -> Dict[str, object]:
        """Ligne plate pour la table 'album_orders' (JSON-compatible)."""
        row = self.model_dump(mode="json", exclude={"shipping"})
        for key, value in self.shipping.model_dump().items():
            row[f"shipping_{key}"] = value
        return row

    @classmethod
    def from_row(cls, row: Dict[str, object]) -> "CartItem":
        data = dict(row)
        shipping = {}
        for key in ShippingAddress.model_fields:
            shipping[key] = data.pop(f"shipping_{key}", "") or ""
        data["shipping"] = shipping
        return cls.model_validate(data)
