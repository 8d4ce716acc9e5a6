"""
Fournisseurs de dépendances FastAPI (services et stockages partagés).
- ORDER_STORE=memory: commandes et adresses en mémoire (dev/tests)
- STRIPE_ENABLED: passerelle Stripe, sinon aucun paiement exigé
Les tests remplacent ces fournisseurs via app.dependency_overrides.
"""
from functools import lru_cache
from typing import Optional

from fastapi import Depends

from album_orders import config
from album_orders.addresses.service import (
    AddressBook,
    AddressRepository,
    InMemoryAddressRepository,
    SupabaseAddressRepository,
)
from album_orders.admin.service import AdminService
from album_orders.cart.locks import KeyedLocks
from album_orders.cart.service import CartStore
from album_orders.catalog.repository import SupabaseCatalogSource
from album_orders.catalog.service import CatalogService
from album_orders.checkout.service import CheckoutOrchestrator
from album_orders.events.bus import EventSink, InProcessEventBus
from album_orders.orders.repository import InMemoryOrderRepository, OrderRepository, SupabaseOrderRepository
from album_orders.payments.gateway import PaymentGateway, StripeGateway


@lru_cache(maxsize=1)
def get_order_repository() -> OrderRepository:
    if config.ORDER_STORE == "memory":
        return InMemoryOrderRepository()
    return SupabaseOrderRepository()


@lru_cache(maxsize=1)
def get_address_repository() -> AddressRepository:
    if config.ORDER_STORE == "memory":
        return InMemoryAddressRepository()
    return SupabaseAddressRepository()


@lru_cache(maxsize=1)
def get_catalog_service() -> CatalogService:
    return CatalogService(SupabaseCatalogSource())


@lru_cache(maxsize=1)
def get_locks() -> KeyedLocks:
    return KeyedLocks()


@lru_cache(maxsize=1)
def get_event_bus() -> EventSink:
    return InProcessEventBus()


def get_gateway() -> Optional[PaymentGateway]:
    return StripeGateway() if config.STRIPE_ENABLED else None


def get_cart_store(
    repository: OrderRepository = Depends(get_order_repository),
    catalog: CatalogService = Depends(get_catalog_service),
    locks: KeyedLocks = Depends(get_locks),
) -> CartStore:
    return CartStore(repository, catalog, locks=locks)


def get_orchestrator(
    repository: OrderRepository = Depends(get_order_repository),
    gateway: Optional[PaymentGateway] = Depends(get_gateway),
    events: EventSink = Depends(get_event_bus),
    locks: KeyedLocks = Depends(get_locks),
) -> CheckoutOrchestrator:
    return CheckoutOrchestrator(repository, gateway, events, locks=locks)


def get_address_book(
    repository: AddressRepository = Depends(get_address_repository),
    locks: KeyedLocks = Depends(get_locks),
) -> AddressBook:
    return AddressBook(repository, locks=locks)


def get_admin_service(
    repository: OrderRepository = Depends(get_order_repository),
    orchestrator: CheckoutOrchestrator = Depends(get_orchestrator),
    cart: CartStore = Depends(get_cart_store),
) -> AdminService:
    return AdminService(repository, orchestrator, cart)
