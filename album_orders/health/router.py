from fastapi import APIRouter, Request

from album_orders import config
from album_orders.utils.rate_limit import rate_limit_health_info

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
def health_root():
    return {"ok": True, "order_store": config.ORDER_STORE, "payments": config.STRIPE_ENABLED}


@router.get("/rate-limit")
def health_rate_limit(request: Request):
    return rate_limit_health_info(request)
