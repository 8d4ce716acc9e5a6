import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from album_orders import config
from album_orders.addresses.service import AddressBook
from album_orders.app_setup.dependencies import get_address_book, get_cart_store
from album_orders.cart.service import CartStore
from album_orders.catalog.validator import Selection
from album_orders.orders.models import CartItem, ShippingAddress
from album_orders.utils.money import format_price
from album_orders.utils.rate_limit import optional_rate_limit
from album_orders.utils.security import require_cart_token

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/albums/{album_id}/cart", tags=["Cart API"])


class CartItemIn(BaseModel):
    selection: Selection
    shipping: ShippingAddress
    save_address: bool = False


def item_out(item: CartItem) -> Dict[str, Any]:
    # Le token et les notes internes du photographe ne sont jamais renvoyés au client
    data = item.model_dump(mode="json", exclude={"cart_token", "photographer_notes"})
    data["total_display"] = format_price(item.total, config.CURRENCY)
    return data


# module album_orders.cart.views
@router.post("/quote")
def quote(
    album_id: str,
    selection: Selection,
    order_id: Optional[str] = None,
    cart: CartStore = Depends(get_cart_store),
):
    """
    Prix en direct d'une sélection (aucune écriture).
    - order_id: article en cours d'édition (son crédit reste disponible)
    """
    price = cart.quote(album_id, selection, order_id=order_id)
    data = price.model_dump(mode="json")
    data["total_display"] = format_price(price.total, config.CURRENCY)
    return data


@router.get("")
def list_cart(album_id: str, cart_token: str = Depends(require_cart_token), cart: CartStore = Depends(get_cart_store)):
    items = cart.list(album_id, cart_token)
    total = cart.get_total(album_id, cart_token)
    return {
        "items": [item_out(i) for i in items],
        "count": len(items),
        "total": str(total),
        "total_display": format_price(total, config.CURRENCY),
    }


@router.post("", status_code=201, dependencies=[Depends(optional_rate_limit(times=30, seconds=60))])
def add_to_cart(
    album_id: str,
    payload: CartItemIn,
    cart_token: str = Depends(require_cart_token),
    cart: CartStore = Depends(get_cart_store),
    addresses: AddressBook = Depends(get_address_book),
):
    item = cart.add(album_id, cart_token, payload.selection, payload.shipping)
    if payload.save_address:
        addresses.save(album_id, payload.shipping)
    return item_out(item)


@router.get("/{order_id}")
def get_cart_item(
    album_id: str, order_id: str, cart_token: str = Depends(require_cart_token), cart: CartStore = Depends(get_cart_store)
):
    """Chargement d'un article pour édition (mêmes contrôles que la mise à jour)."""
    return item_out(cart.get(album_id, cart_token, order_id))


@router.put("/{order_id}", dependencies=[Depends(optional_rate_limit(times=30, seconds=60))])
def update_cart_item(
    album_id: str,
    order_id: str,
    payload: CartItemIn,
    cart_token: str = Depends(require_cart_token),
    cart: CartStore = Depends(get_cart_store),
    addresses: AddressBook = Depends(get_address_book),
):
    item = cart.update(album_id, cart_token, order_id, payload.selection, payload.shipping)
    if payload.save_address:
        addresses.save(album_id, payload.shipping)
    return item_out(item)


@router.delete("/{order_id}", dependencies=[Depends(optional_rate_limit(times=30, seconds=60))])
def remove_cart_item(
    album_id: str, order_id: str, cart_token: str = Depends(require_cart_token), cart: CartStore = Depends(get_cart_store)
):
    cart.remove(album_id, cart_token, order_id)
    total = cart.get_total(album_id, cart_token)
    return {"status": "ok", "total": str(total), "total_display": format_price(total, config.CURRENCY)}
