"""
Carnet d'adresses de livraison par album client (table 'saved_addresses').
Une adresse identique à une adresse déjà enregistrée n'est pas dupliquée.
"""
from datetime import datetime
from typing import Dict, List, Optional, Protocol
from uuid import uuid4
import logging
import threading

from pydantic import BaseModel, Field

import album_orders.infra.supabase_client as supabase_client
from album_orders.cart.locks import KeyedLocks
from album_orders.errors import NotFound, StorageUnavailable
from album_orders.orders.models import ShippingAddress, utcnow
from album_orders.utils.validators import sanitize_key

logger = logging.getLogger(__name__)


class SavedAddress(BaseModel):
    id: str = Field(default_factory=lambda: "addr_" + uuid4().hex[:13])
    client_album_id: str
    address: ShippingAddress
    created_at: datetime = Field(default_factory=utcnow)


class AddressRepository(Protocol):
    def list(self, client_album_id: str) -> List[SavedAddress]: ...
    def add(self, saved: SavedAddress) -> SavedAddress: ...
    def delete(self, client_album_id: str, address_id: str) -> bool: ...


class InMemoryAddressRepository:
    def __init__(self):
        self._lock = threading.Lock()
        self._rows: Dict[str, SavedAddress] = {}

    def list(self, client_album_id: str) -> List[SavedAddress]:
        with self._lock:
            return [a for a in self._rows.values() if a.client_album_id == str(client_album_id)]

    def add(self, saved: SavedAddress) -> SavedAddress:
        with self._lock:
            self._rows[saved.id] = saved
        return saved

    def delete(self, client_album_id: str, address_id: str) -> bool:
        with self._lock:
            saved = self._rows.get(address_id)
            if saved is None or saved.client_album_id != str(client_album_id):
                return False
            del self._rows[address_id]
            return True


# module album_orders.addresses (supabase)
class SupabaseAddressRepository:
    def _table(self):
        return supabase_client.get_service_supabase().table("saved_addresses")

    def list(self, client_album_id: str) -> List[SavedAddress]:
        try:
            res = self._table().select("*").eq("client_album_id", str(client_album_id)).order("created_at").execute()
        except Exception:
            logger.exception("addresses.list failed client_album_id=%s", client_album_id)
            raise StorageUnavailable()
        return [
            SavedAddress(
                id=r["id"],
                client_album_id=r["client_album_id"],
                address=ShippingAddress.model_validate(r.get("address") or {}),
                created_at=r.get("created_at") or utcnow(),
            )
            for r in (res.data or [])
        ]

    def add(self, saved: SavedAddress) -> SavedAddress:
        try:
            self._table().insert(saved.model_dump(mode="json")).execute()
        except Exception:
            logger.exception("addresses.add failed client_album_id=%s", saved.client_album_id)
            raise StorageUnavailable()
        return saved

    def delete(self, client_album_id: str, address_id: str) -> bool:
        try:
            res = (
                self._table()
                .delete()
                .eq("id", address_id)
                .eq("client_album_id", str(client_album_id))
                .execute()
            )
        except Exception:
            logger.exception("addresses.delete failed id=%s", address_id)
            raise StorageUnavailable()
        return bool(res.data)


def address_key(client_album_id: str) -> tuple:
    return ("addresses", str(client_album_id))


class AddressBook:
    def __init__(self, repository: AddressRepository, locks: Optional[KeyedLocks] = None):
        self.repository = repository
        self.locks = locks or KeyedLocks()

    def list(self, client_album_id: str) -> List[SavedAddress]:
        return self.repository.list(str(client_album_id))

    def save(self, client_album_id: str, address: ShippingAddress) -> SavedAddress:
        # Recherche du doublon et insertion sous le même verrou (double envoi du formulaire)
        with self.locks.hold(address_key(client_album_id)):
            for existing in self.list(client_album_id):
                if existing.address == address:
                    return existing
            return self.repository.add(SavedAddress(client_album_id=str(client_album_id), address=address))

    def delete(self, client_album_id: str, address_id: str) -> None:
        address_id = sanitize_key(address_id)
        if not address_id or not self.repository.delete(str(client_album_id), address_id):
            raise NotFound("Adresse introuvable.")

