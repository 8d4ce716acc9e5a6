"""
Adaptateur Stripe (PaymentIntents, Refunds, webhooks).

- require_stripe(): configure le module stripe (clé, client HTTP avec timeout, pas de retry)
- StripeGateway: seul point d'appel à Stripe; montants en Decimal côté service,
  en centimes côté Stripe
- Erreurs Stripe -> GatewayError(kind) (message sûr + détail brut pour les logs);
  réseau/timeout -> GatewayUnavailable
"""
import json
import logging
from decimal import Decimal
from typing import Any, Dict, Optional, Protocol, Union

import stripe
from pydantic import BaseModel, ConfigDict, Field

from album_orders.config import (
    CURRENCY,
    STRIPE_SECRET_KEY,
    STRIPE_STATEMENT_DESCRIPTOR,
    STRIPE_TIMEOUT_SECONDS,
    STRIPE_WEBHOOK_SECRET,
)
from album_orders.errors import GatewayError, GatewayUnavailable, InvalidWebhook
from album_orders.utils.money import from_cents, to_cents

logger = logging.getLogger(__name__)

# Messages présentables au client, par type d'erreur Stripe
SAFE_MESSAGES = {
    "card_error": "Votre carte a été refusée.",
    "rate_limit": "Trop de requêtes vers le service de paiement. Veuillez réessayer.",
    "invalid_request": "Requête de paiement invalide.",
    "authentication_error": "Le paiement est momentanément indisponible.",
    "stripe_error": "Le paiement a échoué.",
    "invalid_amount": "Montant de paiement invalide.",
}


class PaymentIntentHandle(BaseModel):
    model_config = ConfigDict(frozen=True)

    intent_id: str
    client_secret: str
    amount: Decimal


class PaymentConfirmation(BaseModel):
    model_config = ConfigDict(frozen=True)

    intent_id: str
    succeeded: bool
    amount_captured: Decimal = Decimal("0.00")
    charge_id: Optional[str] = None
    status: str = ""
    metadata: Dict[str, str] = Field(default_factory=dict)


class RefundResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    refund_id: str
    amount: Decimal
    status: str


class PaymentGateway(Protocol):
    def create_intent(
        self, amount: Decimal, currency: str, metadata: Dict[str, str], receipt_email: Optional[str] = None
    ) -> PaymentIntentHandle: ...
    def confirmation(self, intent_id: str) -> PaymentConfirmation: ...
    def refund(self, charge_id: str, amount: Optional[Decimal] = None) -> RefundResult: ...
    def construct_event(self, payload: bytes, signature: str) -> Dict[str, Any]: ...


# module album_orders.payments.gateway
def require_stripe(api_key: str = STRIPE_SECRET_KEY, timeout: float = STRIPE_TIMEOUT_SECONDS):
    """
    Prépare et retourne le module stripe prêt à l'emploi.
    - Configure stripe.api_key si disponible
    - Client HTTP requests borné par timeout, aucune relance automatique
    """
    if api_key:
        stripe.api_key = api_key
    stripe.max_network_retries = 0
    stripe.default_http_client = stripe.RequestsClient(timeout=timeout)
    return stripe


def _field(obj: Any, name: str, default: Any = None) -> Any:
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def _object_id(value: Any) -> Optional[str]:
    # latest_charge peut être un id ou un objet Charge étendu
    if value is None or isinstance(value, str):
        return value
    return _field(value, "id")


def _map_stripe_error(op: str, e: Exception) -> Exception:
    if isinstance(e, stripe.CardError):
        kind = "card_error"
    elif isinstance(e, stripe.RateLimitError):
        kind = "rate_limit"
    elif isinstance(e, stripe.InvalidRequestError):
        kind = "invalid_request"
    elif isinstance(e, stripe.AuthenticationError):
        kind = "authentication_error"
    elif isinstance(e, stripe.APIConnectionError):
        logger.warning("payments.gateway.%s stripe injoignable: %s", op, e)
        return GatewayUnavailable()
    else:
        kind = "stripe_error"
    detail = getattr(e, "user_message", None) or str(e)
    logger.error("payments.gateway.%s failed kind=%s detail=%s", op, kind, detail)
    message = SAFE_MESSAGES[kind]
    if kind == "card_error" and getattr(e, "user_message", None):
        # Message de carte Stripe (ex: fonds insuffisants): destiné au titulaire
        message = e.user_message
    return GatewayError(kind, message, detail=detail)


class StripeGateway:
    def __init__(
        self,
        api_key: str = STRIPE_SECRET_KEY,
        webhook_secret: str = STRIPE_WEBHOOK_SECRET,
        timeout: float = STRIPE_TIMEOUT_SECONDS,
        statement_descriptor: str = STRIPE_STATEMENT_DESCRIPTOR,
    ):
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        self.timeout = timeout
        self.statement_descriptor = statement_descriptor

    def _stripe(self):
        return require_stripe(self.api_key, self.timeout)

    def create_intent(
        self,
        amount: Decimal,
        currency: str = CURRENCY,
        metadata: Optional[Dict[str, str]] = None,
        receipt_email: Optional[str] = None,
    ) -> PaymentIntentHandle:
        cents = to_cents(amount)
        if cents <= 0:
            raise GatewayError("invalid_amount", SAFE_MESSAGES["invalid_amount"])
        params: Dict[str, Any] = {
            "amount": cents,
            "currency": (currency or CURRENCY).lower(),
            "metadata": metadata or {},
            "automatic_payment_methods": {"enabled": True},
        }
        if receipt_email:
            params["receipt_email"] = receipt_email
        if self.statement_descriptor:
            params["statement_descriptor_suffix"] = self.statement_descriptor
        try:
            intent = self._stripe().PaymentIntent.create(**params)
        except stripe.StripeError as e:
            raise _map_stripe_error("create_intent", e) from e
        return PaymentIntentHandle(
            intent_id=_field(intent, "id"),
            client_secret=_field(intent, "client_secret") or "",
            amount=from_cents(_field(intent, "amount") or cents),
        )

    def confirmation(self, intent_id: str) -> PaymentConfirmation:
        if not intent_id or not str(intent_id).startswith("pi_"):
            raise GatewayError("invalid_request", SAFE_MESSAGES["invalid_request"], detail=f"intent_id={intent_id}")
        try:
            intent = self._stripe().PaymentIntent.retrieve(intent_id)
        except stripe.StripeError as e:
            raise _map_stripe_error("confirmation", e) from e
        status = _field(intent, "status") or ""
        metadata = _field(intent, "metadata") or {}
        return PaymentConfirmation(
            intent_id=_field(intent, "id") or intent_id,
            succeeded=status == "succeeded",
            amount_captured=from_cents(_field(intent, "amount_received") or 0),
            charge_id=_object_id(_field(intent, "latest_charge")),
            status=status,
            metadata={str(k): str(v) for k, v in dict(metadata).items()},
        )

    def refund(self, charge_id: str, amount: Optional[Decimal] = None) -> RefundResult:
        """amount=None: remboursement total; sinon partiel (plafonné par Stripe au montant débité)."""
        if not charge_id or not str(charge_id).startswith("ch_"):
            raise GatewayError("invalid_request", SAFE_MESSAGES["invalid_request"], detail=f"charge_id={charge_id}")
        params: Dict[str, Any] = {"charge": charge_id}
        if amount is not None:
            cents = to_cents(amount)
            if cents <= 0:
                raise GatewayError("invalid_amount", SAFE_MESSAGES["invalid_amount"])
            params["amount"] = cents
        try:
            refund = self._stripe().Refund.create(**params)
        except stripe.StripeError as e:
            raise _map_stripe_error("refund", e) from e
        return RefundResult(
            refund_id=_field(refund, "id"),
            amount=from_cents(_field(refund, "amount") or 0),
            status=_field(refund, "status") or "",
        )

    def construct_event(self, payload: Union[bytes, str], signature: str) -> Dict[str, Any]:
        """
        Valide la signature (Stripe-Signature + secret webhook) puis retourne
        l'événement sous forme de dict.
        """
        try:
            self._stripe().Webhook.construct_event(payload, signature or "", self.webhook_secret or "")
        except (ValueError, stripe.SignatureVerificationError) as e:
            logger.warning("payments.gateway.construct_event signature invalide: %s", e)
            raise InvalidWebhook()
        if isinstance(payload, bytes):
            payload = payload.decode("utf-8")
        return json.loads(payload)
