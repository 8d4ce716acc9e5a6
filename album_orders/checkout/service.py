"""
Cas d'usage 'checkout': finalise le panier d'un token (submitted -> ordered).

Étapes de checkout():
  1) charger les articles 'submitted' du token (aucun -> EmptyCart)
  2) paiement requis si une passerelle est configurée et le total > 0:
     - sans confirmation: résultat payment_required (pas une erreur)
     - avec confirmation: l'intent doit être celui enregistré sur les articles,
       réussi, et d'un montant >= total du panier, sinon PaymentNotConfirmed
  3) passage atomique de tous les articles à 'ordered' (même horodatage)
  4) émission de checkout_completed (et payment_completed si payé)

Les étapes 1-2 ne modifient rien: un échec laisse le panier intact.
Aussi: création du PaymentIntent, réconciliation des webhooks Stripe,
expédition et remboursement côté photographe.
"""
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional
import logging

from pydantic import BaseModel, Field

from album_orders.cart.locks import KeyedLocks, cart_key
from album_orders.config import ALBUM_PAGE_PATH, BASE_URL, CURRENCY
from album_orders.errors import EmptyCart, InvalidState, NotFound, PaymentNotConfirmed
from album_orders.events import bus
from album_orders.events.bus import EventSink
from album_orders.orders.models import CartItem, Customer, OrderStatus, PaymentStatus, utcnow
from album_orders.orders.repository import OrderRepository
from album_orders.payments import metadata as meta
from album_orders.payments.gateway import PaymentGateway
from album_orders.utils.money import from_cents, to_cents

logger = logging.getLogger(__name__)

UNDERPAID_MESSAGE = "Montant reçu inférieur au total du panier."


class CheckoutOutcome(BaseModel):
    order_ids: List[str] = Field(default_factory=list)
    redirect_info: Optional[str] = None
    payment_required: bool = False
    amount_due: Decimal = Decimal("0.00")
    payment_status: Optional[PaymentStatus] = None


class PaymentIntentOutcome(BaseModel):
    payment_required: bool
    amount: Decimal
    intent_id: Optional[str] = None
    client_secret: Optional[str] = None


def _cents_total(items: List[CartItem]) -> int:
    return sum(to_cents(i.total) for i in items)


def album_page_url(client_album_id: str) -> str:
    return BASE_URL + ALBUM_PAGE_PATH.format(client_album_id=client_album_id) + "?order=success"


class CheckoutOrchestrator:
    def __init__(
        self,
        repository: OrderRepository,
        gateway: Optional[PaymentGateway],
        events: EventSink,
        locks: Optional[KeyedLocks] = None,
        clock: Callable[[], datetime] = utcnow,
        currency: str = CURRENCY,
    ):
        self.repository = repository
        self.gateway = gateway
        self.events = events
        self.locks = locks or KeyedLocks()
        self.clock = clock
        self.currency = currency

    # --- checkout -------------------------------------------------------

    def checkout(
        self,
        client_album_id: str,
        cart_token: str,
        customer: Customer,
        notes: str = "",
        payment_confirmation: Optional[str] = None,
    ) -> CheckoutOutcome:
        client_album_id = str(client_album_id)
        if not cart_token:
            raise EmptyCart()
        with self.locks.hold(cart_key(client_album_id, cart_token)):
            items = self.repository.find(
                client_album_id=client_album_id, cart_token=cart_token, status=OrderStatus.SUBMITTED
            )
            if not items:
                raise EmptyCart()
            ids = [i.id for i in items]
            total = _cents_total(items)
            now = self.clock()

            if self.gateway is not None and total > 0:
                if not payment_confirmation:
                    return CheckoutOutcome(order_ids=ids, payment_required=True, amount_due=from_cents(total))
                payment_fields = self._verify_payment(items, payment_confirmation, total, now)
            else:
                payment_fields = {
                    "payment_status": PaymentStatus.FREE if total == 0 else PaymentStatus.UNPAID,
                }

            fields: Dict[str, Any] = {
                "status": OrderStatus.ORDERED,
                "ordered_at": now,
                "customer_name": customer.name,
                "customer_email": str(customer.email),
                "customer_phone": customer.phone,
                "client_notes": notes or "",
                **payment_fields,
            }
            updated = self.repository.update_many(ids, fields, expected_status=OrderStatus.SUBMITTED)

        status = payment_fields["payment_status"]
        logger.info(
            "checkout.completed album=%s orders=%s total=%s payment=%s",
            client_album_id, ids, from_cents(total), status.value,
        )
        payload = {"order_ids": ids, "client_album_id": client_album_id}
        self.events.emit(bus.CHECKOUT_COMPLETED, payload)
        if status is PaymentStatus.PAID:
            self.events.emit(bus.PAYMENT_COMPLETED, {**payload, "amount": str(from_cents(total))})
        return CheckoutOutcome(
            order_ids=[i.id for i in updated],
            redirect_info=album_page_url(client_album_id),
            amount_due=Decimal("0.00"),
            payment_status=status,
        )

    def _verify_payment(self, items: List[CartItem], intent_id: str, total: int, now: datetime) -> Dict[str, Any]:
        recorded = {i.payment_intent_id for i in items}
        if recorded != {intent_id}:
            logger.warning("checkout: intent inattendu intent=%s recorded=%s", intent_id, recorded)
            raise PaymentNotConfirmed()
        # GatewayUnavailable / GatewayError remontent tels quels (rien n'a été modifié)
        confirmation = self.gateway.confirmation(intent_id)
        if not confirmation.succeeded or to_cents(confirmation.amount_captured) < total:
            logger.warning(
                "checkout: paiement non confirmé intent=%s status=%s captured=%s due=%s",
                intent_id, confirmation.status, confirmation.amount_captured, from_cents(total),
            )
            raise PaymentNotConfirmed()
        return {
            "payment_status": PaymentStatus.PAID,
            "payment_intent_id": intent_id,
            "charge_id": confirmation.charge_id,
            "payment_amount": confirmation.amount_captured,
            "paid_at": now,
            "payment_error": "",
        }

    # --- PaymentIntent --------------------------------------------------

    def create_payment_intent(
        self, client_album_id: str, cart_token: str, customer: Customer, album_title: str = ""
    ) -> PaymentIntentOutcome:
        client_album_id = str(client_album_id)
        if not cart_token:
            raise EmptyCart()
        with self.locks.hold(cart_key(client_album_id, cart_token)):
            items = self.repository.find(
                client_album_id=client_album_id, cart_token=cart_token, status=OrderStatus.SUBMITTED
            )
            if not items:
                raise EmptyCart()
            total = _cents_total(items)
            if self.gateway is None or total <= 0:
                return PaymentIntentOutcome(payment_required=False, amount=from_cents(total))
            ids = [i.id for i in items]
            metadata = meta.build_intent_metadata(
                client_album_id=client_album_id,
                cart_token=cart_token,
                order_ids=ids,
                customer_name=customer.name,
                customer_email=str(customer.email),
                album_title=album_title or items[0].album_name,
            )
            handle = self.gateway.create_intent(from_cents(total), self.currency, metadata, str(customer.email))
            self.repository.update_many(ids, {"payment_intent_id": handle.intent_id}, expected_status=OrderStatus.SUBMITTED)
        logger.info("checkout.payment_intent album=%s intent=%s amount=%s", client_album_id, handle.intent_id, handle.amount)
        return PaymentIntentOutcome(
            payment_required=True,
            amount=handle.amount,
            intent_id=handle.intent_id,
            client_secret=handle.client_secret,
        )

    # --- webhooks -------------------------------------------------------

    def handle_event(self, event: Dict[str, Any]) -> Dict[str, Any]:
        """
        Réconciliation idempotente des événements Stripe.
        Retour: {"status": "ok"|"ignored", "event": type, "updated": n}
        """
        event_type = (event or {}).get("type") or ""
        obj = meta.event_object(event)
        if event_type == "payment_intent.succeeded":
            updated = self._on_intent_succeeded(obj)
        elif event_type == "payment_intent.payment_failed":
            updated = self._on_intent_failed(obj)
        elif event_type == "charge.refunded":
            updated = self._on_charge_refunded(obj)
        else:
            return {"status": "ignored", "event": event_type, "updated": 0}
        return {"status": "ok" if updated else "ignored", "event": event_type, "updated": updated}

    def _intent_items(self, obj: Dict[str, Any]) -> List[CartItem]:
        items = self.repository.find_by_intent(obj.get("id") or "")
        if items:
            return items
        # Repli: ids de commandes transportés dans les métadonnées de l'intent
        found = [self.repository.get(i) for i in meta.extract_order_ids(obj.get("metadata"))]
        return [i for i in found if i is not None]

    def _on_intent_succeeded(self, obj: Dict[str, Any]) -> int:
        """
        Finalise les articles 'submitted' de l'intent si le montant reçu couvre
        leur total; sinon ils restent 'submitted' avec une erreur de paiement.
        """
        intent_id = obj.get("id") or ""
        pending = [i for i in self._intent_items(obj) if i.payment_status != PaymentStatus.PAID]
        if not pending:
            return 0
        now = self.clock()
        metadata = obj.get("metadata") or {}
        charge_id = obj.get("latest_charge")
        if isinstance(charge_id, dict):
            charge_id = charge_id.get("id")
        received = int(obj.get("amount_received") or 0)
        payment = {
            "payment_status": PaymentStatus.PAID,
            "payment_intent_id": intent_id,
            "charge_id": charge_id,
            "payment_amount": from_cents(received),
            "paid_at": now,
            "payment_error": "",
        }
        first = pending[0]
        with self.locks.hold(cart_key(first.client_album_id, first.cart_token)):
            # Relecture sous verrou: le panier a pu changer depuis la recherche
            current = [self.repository.get(i.id) for i in pending]
            current = [i for i in current if i is not None and i.payment_status != PaymentStatus.PAID]
            submitted = [i for i in current if i.status == OrderStatus.SUBMITTED]
            others = [i for i in current if i.status != OrderStatus.SUBMITTED]
            due = _cents_total(submitted)
            underpaid = bool(submitted) and received < due

            if underpaid:
                self.repository.update_many(
                    [i.id for i in submitted],
                    {"payment_error": UNDERPAID_MESSAGE},
                    expected_status=OrderStatus.SUBMITTED,
                )
            elif submitted:
                self.repository.update_many(
                    [i.id for i in submitted],
                    {
                        **payment,
                        "status": OrderStatus.ORDERED,
                        "ordered_at": now,
                        "customer_name": submitted[0].customer_name or metadata.get("customer_name", ""),
                        "customer_email": submitted[0].customer_email or metadata.get("customer_email", ""),
                    },
                    expected_status=OrderStatus.SUBMITTED,
                )
            if others:
                self.repository.update_many([i.id for i in others], payment)

        client_album_id = first.client_album_id
        if underpaid:
            short_ids = [i.id for i in submitted]
            logger.warning(
                "payments.webhook intent=%s montant insuffisant received=%s due=%s orders=%s",
                intent_id, from_cents(received), from_cents(due), short_ids,
            )
            self.events.emit(bus.PAYMENT_FAILED, {
                "order_ids": short_ids, "client_album_id": client_album_id, "error": UNDERPAID_MESSAGE,
            })
        finalized = [] if underpaid else [i.id for i in submitted]
        paid = [i.id for i in others] + finalized
        logger.info("payments.webhook intent=%s paid=%s finalized=%s", intent_id, paid, finalized)
        if paid:
            self.events.emit(bus.PAYMENT_COMPLETED, {
                "order_ids": paid, "client_album_id": client_album_id, "amount": str(from_cents(received)),
            })
        if finalized:
            self.events.emit(bus.CHECKOUT_COMPLETED, {"order_ids": finalized, "client_album_id": client_album_id})
        return len(current)

    def _on_intent_failed(self, obj: Dict[str, Any]) -> int:
        error = obj.get("last_payment_error") or {}
        message = (error.get("message") if isinstance(error, dict) else "") or "Paiement refusé"
        items = [i for i in self._intent_items(obj) if i.payment_status != PaymentStatus.PAID]
        if not items:
            return 0
        ids = [i.id for i in items]
        self.repository.update_many(ids, {"payment_status": PaymentStatus.FAILED, "payment_error": message})
        logger.warning("payments.webhook intent=%s failed orders=%s error=%s", obj.get("id"), ids, message)
        self.events.emit(bus.PAYMENT_FAILED, {
            "order_ids": ids, "client_album_id": items[0].client_album_id, "error": message,
        })
        return len(ids)

    def _on_charge_refunded(self, obj: Dict[str, Any]) -> int:
        items = self.repository.find_by_charge(obj.get("id") or "")
        if not items and obj.get("payment_intent"):
            items = self.repository.find_by_intent(obj.get("payment_intent"))
        if not items:
            return 0
        return self.record_refund(items, int(obj.get("amount_refunded") or 0), int(obj.get("amount") or 0))

    def record_refund(self, items: List[CartItem], refunded_cents: int, charged_cents: int) -> int:
        """
        Le remboursement porte sur la charge entière: chaque article de la charge
        reçoit le montant remboursé cumulé et le même statut.
        """
        status = PaymentStatus.REFUNDED if refunded_cents >= charged_cents else PaymentStatus.PARTIAL_REFUND
        ids = [i.id for i in items]
        self.repository.update_many(ids, {"payment_status": status, "refund_amount": from_cents(refunded_cents)})
        logger.info("payments.refund orders=%s refunded=%s charged=%s status=%s",
                    ids, from_cents(refunded_cents), from_cents(charged_cents), status.value)
        self.events.emit(bus.PAYMENT_REFUNDED, {
            "order_ids": ids,
            "client_album_id": items[0].client_album_id,
            "amount": str(from_cents(refunded_cents)),
            "status": status.value,
        })
        return len(ids)

    # --- opérations photographe ----------------------------------------

    def mark_shipped(self, order_id: str, at: Optional[datetime] = None) -> CartItem:
        item = self.repository.get(order_id)
        if item is None:
            raise NotFound()
        shipped = item.advance(OrderStatus.SHIPPED, at or self.clock())
        shipped = self.repository.replace(shipped, expected_status=item.status)
        self.events.emit(bus.ORDER_STATUS_UPDATED, {
            "order_id": shipped.id,
            "client_album_id": shipped.client_album_id,
            "old_status": item.status.value,
            "new_status": shipped.status.value,
        })
        return shipped

    def refund_order(self, order_id: str, amount: Optional[Decimal] = None) -> CartItem:
        """
        Remboursement via la passerelle (amount=None: solde restant de la charge).
        """
        item = self.repository.get(order_id)
        if item is None:
            raise NotFound()
        refundable = (PaymentStatus.PAID, PaymentStatus.PARTIAL_REFUND)
        if self.gateway is None or item.payment_status not in refundable or not item.charge_id:
            raise InvalidState("Cette commande n'a pas de paiement remboursable.")
        result = self.gateway.refund(item.charge_id, amount)
        siblings = self.repository.find_by_charge(item.charge_id) or [item]
        charged = max(to_cents(i.payment_amount) for i in siblings)
        already = max(to_cents(i.refund_amount) for i in siblings)
        self.record_refund(siblings, already + to_cents(result.amount), charged)
        return self.repository.get(order_id)
