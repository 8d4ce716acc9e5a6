from fastapi import APIRouter, Depends

from album_orders.addresses.service import AddressBook
from album_orders.app_setup.dependencies import get_address_book
from album_orders.orders.models import ShippingAddress
from album_orders.utils.rate_limit import optional_rate_limit
from album_orders.utils.security import require_cart_token

router = APIRouter(prefix="/api/v1/albums/{album_id}/addresses", tags=["Addresses API"])


# module album_orders.addresses.views
# Le carnet appartient à l'album client; un token de panier est exigé pour y accéder
@router.get("")
def list_addresses(album_id: str, _token: str = Depends(require_cart_token), book: AddressBook = Depends(get_address_book)):
    return {"addresses": [a.model_dump(mode="json") for a in book.list(album_id)]}


@router.post("", status_code=201, dependencies=[Depends(optional_rate_limit(times=20, seconds=60))])
def save_address(
    album_id: str,
    address: ShippingAddress,
    _token: str = Depends(require_cart_token),
    book: AddressBook = Depends(get_address_book),
):
    return book.save(album_id, address).model_dump(mode="json")


@router.delete("/{address_id}")
def delete_address(
    album_id: str, address_id: str, _token: str = Depends(require_cart_token), book: AddressBook = Depends(get_address_book)
):
    book.delete(album_id, address_id)
    return {"status": "ok"}
