"""
Accès aux données pour la feature 'orders' (table 'album_orders').

- OrderRepository: interface attendue par CartStore / CheckoutOrchestrator
- InMemoryOrderRepository: tests et ORDER_STORE=memory
- SupabaseOrderRepository: production (client service-role, le panier est anonyme)

Écritures conditionnelles: replace/delete/update_many prennent un expected_status
et échouent (InvalidState) si l'enregistrement a changé de statut entre-temps.
"""
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Protocol
import logging
import threading

import album_orders.infra.supabase_client as supabase_client
from album_orders.errors import InvalidState, NotFound, StorageUnavailable
from album_orders.orders.models import CartItem, OrderStatus

logger = logging.getLogger(__name__)

TABLE = "album_orders"


class OrderRepository(Protocol):
    def create(self, item: CartItem) -> CartItem: ...
    def get(self, order_id: str) -> Optional[CartItem]: ...
    def replace(self, item: CartItem, expected_status: OrderStatus) -> CartItem: ...
    def delete(self, order_id: str, expected_status: OrderStatus) -> None: ...
    def find(
        self,
        client_album_id: Optional[str] = None,
        cart_token: Optional[str] = None,
        status: Optional[OrderStatus] = None,
    ) -> List[CartItem]: ...
    def update_many(
        self,
        ids: Iterable[str],
        fields: Dict[str, Any],
        expected_status: Optional[OrderStatus] = None,
    ) -> List[CartItem]: ...
    def find_by_intent(self, intent_id: str) -> List[CartItem]: ...
    def find_by_charge(self, charge_id: str) -> List[CartItem]: ...
    def find_stale_submitted(self, before: datetime) -> List[CartItem]: ...


# module album_orders.orders.repository (mémoire)
class InMemoryOrderRepository:
    def __init__(self, items: Iterable[CartItem] = ()):
        self._lock = threading.Lock()
        # dict: conserve l'ordre d'insertion
        self._items: Dict[str, CartItem] = {i.id: i for i in items}

    def create(self, item: CartItem) -> CartItem:
        with self._lock:
            self._items[item.id] = item
        return item

    def get(self, order_id: str) -> Optional[CartItem]:
        with self._lock:
            return self._items.get(str(order_id))

    def replace(self, item: CartItem, expected_status: OrderStatus) -> CartItem:
        with self._lock:
            current = self._items.get(item.id)
            if current is None:
                raise NotFound()
            if current.status != expected_status:
                raise InvalidState()
            self._items[item.id] = item
        return item

    def delete(self, order_id: str, expected_status: OrderStatus) -> None:
        with self._lock:
            current = self._items.get(str(order_id))
            if current is None:
                raise NotFound()
            if current.status != expected_status:
                raise InvalidState()
            del self._items[current.id]

    def find(self, client_album_id=None, cart_token=None, status=None) -> List[CartItem]:
        with self._lock:
            items = list(self._items.values())
        return [
            i for i in items
            if (client_album_id is None or i.client_album_id == str(client_album_id))
            and (cart_token is None or i.cart_token == cart_token)
            and (status is None or i.status == status)
        ]

    def update_many(self, ids, fields, expected_status=None) -> List[CartItem]:
        ids = [str(i) for i in ids]
        with self._lock:
            # Tout ou rien: on vérifie l'ensemble avant d'écrire
            current = []
            for order_id in ids:
                item = self._items.get(order_id)
                if item is None:
                    raise NotFound()
                if expected_status is not None and item.status != expected_status:
                    raise InvalidState()
                current.append(item)
            updated = [i.model_copy(update=fields) for i in current]
            for item in updated:
                self._items[item.id] = item
        return updated

    def find_by_intent(self, intent_id: str) -> List[CartItem]:
        return [i for i in self.find() if intent_id and i.payment_intent_id == intent_id]

    def find_by_charge(self, charge_id: str) -> List[CartItem]:
        return [i for i in self.find() if charge_id and i.charge_id == charge_id]

    def find_stale_submitted(self, before: datetime) -> List[CartItem]:
        return [
            i for i in self.find(status=OrderStatus.SUBMITTED)
            if i.created_at < before and i.reminder_sent_at is None
        ]


# module album_orders.orders.repository (supabase)
def _serialize(fields: Dict[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key, value in fields.items():
        if hasattr(value, "value"):
            value = value.value
        elif isinstance(value, datetime):
            value = value.isoformat()
        elif value is not None and not isinstance(value, (str, int, float, bool)):
            value = str(value)
        out[key] = value
    return out


class SupabaseOrderRepository:
    def _table(self):
        return supabase_client.get_service_supabase().table(TABLE)

    def _rows(self, op: str, query, **ids) -> List[CartItem]:
        try:
            res = query.execute()
        except Exception:
            logger.exception("orders.repository.%s failed %s", op, ids)
            raise StorageUnavailable()
        return [CartItem.from_row(r) for r in (res.data or [])]

    def create(self, item: CartItem) -> CartItem:
        rows = self._rows("create", self._table().insert(item.to_row()), order_id=item.id)
        return rows[0] if rows else item

    def get(self, order_id: str) -> Optional[CartItem]:
        rows = self._rows("get", self._table().select("*").eq("id", str(order_id)).limit(1), order_id=order_id)
        return rows[0] if rows else None

    def replace(self, item: CartItem, expected_status: OrderStatus) -> CartItem:
        query = self._table().update(item.to_row()).eq("id", item.id).eq("status", expected_status.value)
        rows = self._rows("replace", query, order_id=item.id)
        if not rows:
            self._raise_conflict(item.id)
        return rows[0]

    def delete(self, order_id: str, expected_status: OrderStatus) -> None:
        query = self._table().delete().eq("id", str(order_id)).eq("status", expected_status.value)
        rows = self._rows("delete", query, order_id=order_id)
        if not rows:
            self._raise_conflict(order_id)

    def _raise_conflict(self, order_id: str) -> None:
        # Aucune ligne touchée: soit l'article n'existe plus, soit son statut a changé
        if self.get(order_id) is None:
            raise NotFound()
        raise InvalidState()

    def find(self, client_album_id=None, cart_token=None, status=None) -> List[CartItem]:
        query = self._table().select("*")
        if client_album_id is not None:
            query = query.eq("client_album_id", str(client_album_id))
        if cart_token is not None:
            query = query.eq("cart_token", cart_token)
        if status is not None:
            query = query.eq("status", status.value)
        return self._rows("find", query.order("created_at"), client_album_id=client_album_id)

    def update_many(self, ids, fields, expected_status=None) -> List[CartItem]:
        ids = [str(i) for i in ids]
        if not ids:
            return []
        if expected_status is not None:
            rows = self._raw("update_many.check", self._table().select("id, status").in_("id", ids), ids=ids)
            if len(rows) != len(ids):
                raise NotFound()
            if any(r.get("status") != expected_status.value for r in rows):
                raise InvalidState()
        query = self._table().update(_serialize(fields)).in_("id", ids)
        if expected_status is not None:
            query = query.eq("status", expected_status.value)
        updated = self._rows("update_many", query, ids=ids)
        if len(updated) != len(ids):
            logger.warning("orders.repository.update_many partiel ids=%s updated=%s", ids, [i.id for i in updated])
            raise InvalidState()
        return updated

    def _raw(self, op: str, query, **ids) -> List[Dict[str, Any]]:
        try:
            return query.execute().data or []
        except Exception:
            logger.exception("orders.repository.%s failed %s", op, ids)
            raise StorageUnavailable()

    def find_by_intent(self, intent_id: str) -> List[CartItem]:
        if not intent_id:
            return []
        return self._rows("find_by_intent", self._table().select("*").eq("payment_intent_id", intent_id), intent_id=intent_id)

    def find_by_charge(self, charge_id: str) -> List[CartItem]:
        if not charge_id:
            return []
        return self._rows("find_by_charge", self._table().select("*").eq("charge_id", charge_id), charge_id=charge_id)

    def find_stale_submitted(self, before: datetime) -> List[CartItem]:
        query = (
            self._table()
            .select("*")
            .eq("status", OrderStatus.SUBMITTED.value)
            .lt("created_at", before.isoformat())
            .is_("reminder_sent_at", "null")
            .order("created_at")
        )
        return self._rows("find_stale_submitted", query, before=before.isoformat())
