from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from album_orders.admin.service import REPORT_RANGES, AdminService
from album_orders.app_setup.dependencies import get_admin_service
from album_orders.orders.models import CartItem, OrderStatus
from album_orders.utils.security import require_admin

# module album_orders.admin.views
router = APIRouter(prefix="/admin/api", tags=["Admin"], dependencies=[Depends(require_admin)])


class RefundIn(BaseModel):
    # None: remboursement total du solde de la charge
    amount: Optional[Decimal] = Field(default=None, gt=0)


class NotesIn(BaseModel):
    notes: str = Field(default="", max_length=5000)


class OrderIdsIn(BaseModel):
    order_ids: List[str]


def _order_out(item: CartItem) -> dict:
    return item.model_dump(mode="json", exclude={"cart_token"})


@router.get("/orders")
def list_orders(
    status: Optional[OrderStatus] = None,
    album_id: Optional[str] = None,
    limit: int = Query(default=100, ge=1, le=500),
    admin: AdminService = Depends(get_admin_service),
):
    items = admin.list_orders(status=status, client_album_id=album_id, limit=limit)
    return {"orders": [_order_out(i) for i in items], "count": len(items)}


@router.post("/orders/{order_id}/ship")
def ship_order(order_id: str, admin: AdminService = Depends(get_admin_service)):
    return _order_out(admin.ship(order_id))


@router.post("/orders/{order_id}/refund")
def refund_order(order_id: str, payload: RefundIn, admin: AdminService = Depends(get_admin_service)):
    return _order_out(admin.refund(order_id, payload.amount))


@router.post("/orders/{order_id}/notes")
def update_notes(order_id: str, payload: NotesIn, admin: AdminService = Depends(get_admin_service)):
    return _order_out(admin.set_notes(order_id, payload.notes))


@router.get("/reports")
def reports(
    range: str = Query(default="30days", description=" | ".join(REPORT_RANGES)),
    admin: AdminService = Depends(get_admin_service),
):
    report = admin.report(range)
    # Decimal -> str pour un JSON stable
    report["total_revenue"] = str(report["total_revenue"])
    report["avg_order_value"] = str(report["avg_order_value"])
    report["revenue_by_day"] = [{"date": r["date"], "revenue": str(r["revenue"])} for r in report["revenue_by_day"]]
    return report


@router.get("/reminders")
def pending_reminders(
    days: Optional[int] = Query(default=None, ge=1),
    admin: AdminService = Depends(get_admin_service),
):
    """Articles 'submitted' plus anciens que N jours, sans relance envoyée (consommé par l'envoi d'emails)."""
    items = admin.reminders(days)
    return {"orders": [_order_out(i) for i in items], "count": len(items)}


@router.post("/reminders/mark-sent")
def mark_reminders_sent(payload: OrderIdsIn, admin: AdminService = Depends(get_admin_service)):
    updated = admin.mark_reminders_sent(payload.order_ids)
    return {"status": "ok", "updated": len(updated)}
