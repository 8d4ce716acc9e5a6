# module album_orders.admin.service
"""
Cas d'usage photographe: liste des commandes, expédition, remboursement,
notes internes, rapports de ventes et flux de relances panier.
"""
from collections import Counter, OrderedDict
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from album_orders.cart.service import CartStore
from album_orders.checkout.service import CheckoutOrchestrator
from album_orders.errors import InvalidSelection, NotFound
from album_orders.orders.models import CartItem, OrderStatus, utcnow
from album_orders.orders.repository import OrderRepository
from album_orders.utils.money import from_cents, to_cents
import logging

logger = logging.getLogger(__name__)

REPORT_RANGES = ("today", "7days", "30days", "this_month", "last_month", "this_quarter", "this_year", "all_time")
REVENUE_STATUSES = (OrderStatus.ORDERED, OrderStatus.SHIPPED)


def _month_start(dt: datetime) -> datetime:
    return dt.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def date_range(key: str, now: datetime) -> Tuple[Optional[datetime], datetime]:
    """
    Bornes [start, end) d'une période de rapport; start=None pour all_time.
    Lève InvalidSelection("range") si la clé est inconnue.
    """
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if key == "today":
        return today, now
    if key == "7days":
        return now - timedelta(days=7), now
    if key == "30days":
        return now - timedelta(days=30), now
    if key == "this_month":
        return _month_start(now), now
    if key == "last_month":
        end = _month_start(now)
        return _month_start(end - timedelta(days=1)), end
    if key == "this_quarter":
        month = 3 * ((now.month - 1) // 3) + 1
        return _month_start(now).replace(month=month), now
    if key == "this_year":
        return _month_start(now).replace(month=1), now
    if key == "all_time":
        return None, now
    raise InvalidSelection("range", f"Période inconnue: {key}")


def _in_range(dt: Optional[datetime], start: Optional[datetime], end: datetime) -> bool:
    if dt is None:
        return False
    return (start is None or dt >= start) and dt < end


def _top(counter: Counter, limit: int = 5) -> List[Dict[str, Any]]:
    return [{"name": name, "count": count} for name, count in counter.most_common(limit)]


class AdminService:
    def __init__(self, repository: OrderRepository, orchestrator: CheckoutOrchestrator, cart: CartStore):
        self.repository = repository
        self.orchestrator = orchestrator
        self.cart = cart

    def list_orders(
        self,
        status: Optional[OrderStatus] = None,
        client_album_id: Optional[str] = None,
        limit: int = 100,
    ) -> List[CartItem]:
        items = self.repository.find(client_album_id=client_album_id, status=status)
        items.sort(key=lambda i: i.created_at, reverse=True)
        return items[: max(1, limit)]

    def ship(self, order_id: str) -> CartItem:
        return self.orchestrator.mark_shipped(order_id)

    def refund(self, order_id: str, amount: Optional[Decimal] = None) -> CartItem:
        return self.orchestrator.refund_order(order_id, amount)

    def set_notes(self, order_id: str, notes: str) -> CartItem:
        if self.repository.get(order_id) is None:
            raise NotFound("Commande introuvable.")
        return self.repository.update_many([order_id], {"photographer_notes": notes or ""})[0]

    def report(self, range_key: str = "30days", now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or utcnow()
        start, end = date_range(range_key, now)
        items = self.repository.find()

        sold = [i for i in items if i.status in REVENUE_STATUSES and _in_range(i.ordered_at, start, end)]
        revenue = sum(to_cents(i.total) for i in sold)
        by_day: "OrderedDict[str, int]" = OrderedDict()
        for item in sorted(sold, key=lambda i: i.ordered_at):
            day = item.ordered_at.date().isoformat()
            by_day[day] = by_day.get(day, 0) + to_cents(item.total)

        created = [i for i in items if _in_range(i.created_at, start, end)]
        status_counts = {s.value: 0 for s in OrderStatus}
        status_counts.update(Counter(i.status.value for i in created))

        return {
            "range": range_key,
            "start": start.isoformat() if start else None,
            "end": end.isoformat(),
            "total_revenue": from_cents(revenue),
            "total_orders": len(sold),
            "avg_order_value": from_cents(revenue // len(sold)) if sold else Decimal("0.00"),
            "status_counts": status_counts,
            "revenue_by_day": [{"date": d, "revenue": from_cents(c)} for d, c in by_day.items()],
            "top_materials": _top(Counter(i.material_name or i.material_id for i in sold)),
            "top_sizes": _top(Counter(i.size_name or i.size_id for i in sold)),
        }

    def reminders(self, older_than_days: Optional[int] = None) -> List[CartItem]:
        return self.cart.pending_reminders(older_than_days)

    def mark_reminders_sent(self, order_ids: List[str]) -> List[CartItem]:
        updated = self.cart.mark_reminder_sent(order_ids)
        logger.info("admin.reminders marked=%s", [i.id for i in updated])
        return updated
