import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from album_orders.app_setup.dependencies import get_orchestrator
from album_orders.checkout.service import CheckoutOrchestrator
from album_orders.errors import InvalidWebhook

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/payments", tags=["Payments API"])


# module album_orders.payments.views
@router.post("/webhook", include_in_schema=False)
async def webhook_stripe(request: Request, orchestrator: CheckoutOrchestrator = Depends(get_orchestrator)):
    """
    Webhook Stripe: payment_intent.succeeded, payment_intent.payment_failed, charge.refunded.
    - Signature: Stripe-Signature + STRIPE_WEBHOOK_SECRET (400 si invalide)
    - Réponses: {"status": "ok"|"ignored", "event": <type>, "updated": <int>}
    """
    if orchestrator.gateway is None:
        return JSONResponse({"status": "ignored", "event": None, "updated": 0})
    payload = await request.body()
    signature = request.headers.get("stripe-signature") or ""
    try:
        event = orchestrator.gateway.construct_event(payload, signature)
    except ValueError:
        raise InvalidWebhook()
    # Service synchrone (verrous threading): exécuté hors de la boucle d'événements
    result = await run_in_threadpool(orchestrator.handle_event, event)
    logger.info("payments.webhook event=%s result=%s", event.get("type"), result)
    return JSONResponse(result)
