import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from album_orders import config
from album_orders.app_setup.dependencies import get_orchestrator
from album_orders.checkout.service import CheckoutOrchestrator
from album_orders.orders.models import Customer
from album_orders.utils.money import format_price
from album_orders.utils.rate_limit import optional_rate_limit
from album_orders.utils.security import require_cart_token

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/albums/{album_id}/checkout", tags=["Checkout API"])


class CheckoutIn(BaseModel):
    customer: Customer
    notes: str = Field(default="", max_length=2000)
    payment_intent_id: Optional[str] = None


class PaymentIntentIn(BaseModel):
    customer: Customer
    album_title: str = ""


# module album_orders.checkout.views
@router.post("", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def checkout(
    album_id: str,
    payload: CheckoutIn,
    cart_token: str = Depends(require_cart_token),
    orchestrator: CheckoutOrchestrator = Depends(get_orchestrator),
):
    """
    Finalise le panier du token.
    - {"status": "payment_required", "amount_due": ...}: obtenir un paiement
      (POST /payment-intent puis confirmation Stripe.js) et rappeler avec payment_intent_id
    - {"status": "ok", "order_ids": [...], "redirect_url": ...}: commande passée
    """
    outcome = orchestrator.checkout(
        album_id,
        cart_token,
        payload.customer,
        notes=payload.notes,
        payment_confirmation=payload.payment_intent_id,
    )
    if outcome.payment_required:
        return {
            "status": "payment_required",
            "order_ids": outcome.order_ids,
            "amount_due": str(outcome.amount_due),
            "amount_due_display": format_price(outcome.amount_due, config.CURRENCY),
        }
    return {
        "status": "ok",
        "order_ids": outcome.order_ids,
        "redirect_url": outcome.redirect_info,
        "payment_status": outcome.payment_status.value if outcome.payment_status else None,
    }


@router.post("/payment-intent", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_payment_intent(
    album_id: str,
    payload: PaymentIntentIn,
    cart_token: str = Depends(require_cart_token),
    orchestrator: CheckoutOrchestrator = Depends(get_orchestrator),
):
    outcome = orchestrator.create_payment_intent(album_id, cart_token, payload.customer, album_title=payload.album_title)
    return {
        "payment_required": outcome.payment_required,
        "amount": str(outcome.amount),
        "intent_id": outcome.intent_id,
        "client_secret": outcome.client_secret,
        "publishable_key": config.STRIPE_PUBLIC_KEY if outcome.payment_required else None,
    }
