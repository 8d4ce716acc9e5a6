"""
Cas d'usage 'cart': panier anonyme identifié par (client_album_id, cart_token).

- add/update: valide la sélection (catalog.validator), calcule le prix
  (pricing.calculator) avec les crédits encore disponibles dans l'album
- remove/list/get_total/get: lectures et suppression limitées au panier du token
- quote: prix en direct sans persistance (aperçu côté client)
- pending_reminders/mark_reminder_sent: accès en lecture/écriture pour la
  relance externe des paniers abandonnés

Verrous: panier (token) puis crédits (album), toujours dans cet ordre.
"""
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional
import logging

from album_orders.cart.locks import KeyedLocks, cart_key, credit_key
from album_orders.catalog.service import CatalogService
from album_orders.catalog.validator import ResolvedSelection, Selection, validate_selection
from album_orders.config import CART_REMINDER_DAYS
from album_orders.errors import Forbidden, InvalidState, NotFound
from album_orders.orders.models import CartItem, OrderStatus, ShippingAddress, utcnow
from album_orders.orders.repository import OrderRepository
from album_orders.pricing.calculator import CreditAllowance, CreditType, PriceBreakdown, calculate_price
from album_orders.utils.money import from_cents, to_cents

logger = logging.getLogger(__name__)


class CartStore:
    def __init__(
        self,
        repository: OrderRepository,
        catalog: CatalogService,
        locks: Optional[KeyedLocks] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repository = repository
        self.catalog = catalog
        self.locks = locks or KeyedLocks()
        self.clock = clock

    # --- crédits --------------------------------------------------------

    def credit_allowance(
        self, client_album_id: str, resolved: ResolvedSelection, exclude_id: Optional[str] = None
    ) -> CreditAllowance:
        """
        Crédits restants pour ce design dans l'album (tous paniers confondus).
        L'article en cours d'édition (exclude_id) ne consomme pas son propre crédit.
        """
        design = resolved.design
        if design.free_album_credits <= 0 and design.dollar_credit <= 0:
            return CreditAllowance()
        others = [
            i for i in self.repository.find(client_album_id=client_album_id)
            if i.design_index == design.index and i.id != exclude_id
        ]
        free_used = sum(1 for i in others if i.credit_type == CreditType.FREE_ALBUM)
        dollar_used = sum(to_cents(i.applied_credits) for i in others if i.credit_type == CreditType.DOLLAR)
        return CreditAllowance(
            free_album_credits=max(0, design.free_album_credits - free_used),
            dollar_credit=from_cents(max(0, to_cents(design.dollar_credit) - dollar_used)),
        )

    def _price(
        self, client_album_id: str, selection: Selection, exclude_id: Optional[str] = None
    ):
        catalog = self.catalog.load_catalog(client_album_id)
        resolved = validate_selection(selection, catalog)
        allowance = self.credit_allowance(client_album_id, resolved, exclude_id=exclude_id)
        return resolved, calculate_price(resolved, allowance)

    # --- lectures -------------------------------------------------------

    def list(self, client_album_id: str, cart_token: str) -> List[CartItem]:
        if not cart_token:
            return []
        return self.repository.find(
            client_album_id=str(client_album_id), cart_token=cart_token, status=OrderStatus.SUBMITTED
        )

    def get_total(self, client_album_id: str, cart_token: str) -> Decimal:
        cents = sum(to_cents(i.total) for i in self.list(client_album_id, cart_token))
        return from_cents(cents)

    def get(self, client_album_id: str, cart_token: str, order_id: str) -> CartItem:
        return self._owned(client_album_id, cart_token, order_id)

    def quote(
        self, client_album_id: str, selection: Selection, order_id: Optional[str] = None
    ) -> PriceBreakdown:
        _, price = self._price(str(client_album_id), selection, exclude_id=order_id)
        return price

    # --- écritures ------------------------------------------------------

    def add(
        self, client_album_id: str, cart_token: str, selection: Selection, shipping: ShippingAddress
    ) -> CartItem:
        client_album_id = str(client_album_id)
        if not cart_token:
            raise Forbidden()
        with self.locks.hold(cart_key(client_album_id, cart_token)):
            with self.locks.hold(credit_key(client_album_id)):
                resolved, price = self._price(client_album_id, selection)
                item = CartItem(
                    client_album_id=client_album_id,
                    cart_token=cart_token,
                    shipping=shipping,
                    created_at=self.clock(),
                    **_item_fields(selection, resolved, price),
                )
                item = self.repository.create(item)
        logger.info("cart.add id=%s album=%s total=%s", item.id, client_album_id, item.total)
        return item

    def update(
        self,
        client_album_id: str,
        cart_token: str,
        order_id: str,
        selection: Selection,
        shipping: ShippingAddress,
    ) -> CartItem:
        client_album_id = str(client_album_id)
        with self.locks.hold(cart_key(client_album_id, cart_token)):
            current = self._owned(client_album_id, cart_token, order_id)
            with self.locks.hold(credit_key(client_album_id)):
                resolved, price = self._price(client_album_id, selection, exclude_id=current.id)
                changes = _item_fields(selection, resolved, price)
                changes["shipping"] = shipping
                # Prix modifié: l'intent existant ne couvre plus l'article
                changes["payment_intent_id"] = None
                item = self.repository.replace(
                    current.model_copy(update=changes), expected_status=OrderStatus.SUBMITTED
                )
        logger.info("cart.update id=%s album=%s total=%s", item.id, client_album_id, item.total)
        return item

    def remove(self, client_album_id: str, cart_token: str, order_id: str) -> None:
        client_album_id = str(client_album_id)
        with self.locks.hold(cart_key(client_album_id, cart_token)):
            current = self._owned(client_album_id, cart_token, order_id)
            self.repository.delete(current.id, expected_status=OrderStatus.SUBMITTED)
        logger.info("cart.remove id=%s album=%s", order_id, client_album_id)

    def _owned(self, client_album_id: str, cart_token: str, order_id: str) -> CartItem:
        """
        Article modifiable du panier: appartenance d'abord (sans révéler
        l'existence d'un article d'un autre panier), statut ensuite.
        """
        item = self.repository.get(order_id)
        if item is None or item.client_album_id != str(client_album_id):
            raise NotFound()
        if not cart_token or item.cart_token != cart_token:
            raise Forbidden()
        if item.status != OrderStatus.SUBMITTED:
            raise InvalidState()
        return item

    # --- relances -------------------------------------------------------

    def pending_reminders(self, older_than_days: Optional[int] = None, now: Optional[datetime] = None) -> List[CartItem]:
        days = older_than_days if older_than_days is not None else CART_REMINDER_DAYS
        before = (now or self.clock()) - timedelta(days=days)
        return self.repository.find_stale_submitted(before)

    def mark_reminder_sent(self, order_ids: Iterable[str], at: Optional[datetime] = None) -> List[CartItem]:
        ids = [str(i) for i in order_ids if i]
        if not ids:
            return []
        return self.repository.update_many(ids, {"reminder_sent_at": at or self.clock()})


def _item_fields(selection: Selection, resolved: ResolvedSelection, price: PriceBreakdown) -> Dict[str, Any]:
    return {
        "album_name": selection.album_name,
        "design_index": resolved.design.index,
        "material_id": resolved.material.id,
        "color_id": resolved.color.id if resolved.color else None,
        "size_id": resolved.size.id,
        "engraving_option_id": resolved.engraving_option.id if resolved.engraving_option else None,
        "engraving_text": resolved.engraving_text,
        "engraving_font": resolved.engraving_font,
        "design_name": resolved.design.name,
        "material_name": resolved.material.name,
        "color_name": resolved.color.name if resolved.color else "",
        "size_name": resolved.size.name,
        "engraving_option_name": resolved.engraving_option.name if resolved.engraving_option else "",
        "base_price": price.base_price,
        "material_upcharge": price.material_upcharge,
        "size_upcharge": price.size_upcharge,
        "engraving_upcharge": price.engraving_upcharge,
        "subtotal": price.subtotal,
        "applied_credits": price.credit_amount,
        "credit_type": price.credit_type,
        "total": price.total,
    }
