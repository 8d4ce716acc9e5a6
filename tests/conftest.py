import os

# Avant tout import de album_orders: pas de Redis, commandes en mémoire, Stripe désactivé
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")
os.environ.setdefault("ORDER_STORE", "memory")
os.environ.setdefault("STRIPE_ENABLED", "false")

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, Generator, List, Optional
from unittest.mock import MagicMock

import bcrypt
import pytest
from fastapi.testclient import TestClient

from album_orders import config
from album_orders.addresses.service import InMemoryAddressRepository
from album_orders.app_setup import dependencies as deps
from album_orders.app_setup.factory import create_app
from album_orders.cart.locks import KeyedLocks
from album_orders.cart.service import CartStore
from album_orders.catalog.models import Color, Design, EngravingOption, Material, Size
from album_orders.catalog.repository import StaticCatalogSource
from album_orders.catalog.service import CatalogService
from album_orders.catalog.validator import Selection
from album_orders.checkout.service import CheckoutOrchestrator
from album_orders.errors import GatewayUnavailable
from album_orders.events.bus import RecordingEventSink
from album_orders.orders.models import Customer, ShippingAddress
from album_orders.orders.repository import InMemoryOrderRepository
from album_orders.payments.gateway import PaymentConfirmation, PaymentIntentHandle, RefundResult

ALBUM_ID = "alb-1"
TOKEN_A = "token-a"
TOKEN_B = "token-b"
ADMIN_SECRET = "Session_Admin_12$"

SHIPPING = {
    "name": "Sarah Martin",
    "address1": "12 rue des Lilas",
    "address2": "",
    "city": "Lyon",
    "state": "Rhône",
    "zip": "69003",
}


# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)
        elif "tests/functional/" in nodeid:
            item.add_marker(pytest.mark.functional)


def make_selection(**overrides) -> Selection:
    data: Dict[str, Any] = {
        "design_index": 1,
        "material_id": "linen",
        "size_id": "8x8",
        "album_name": "Mariage Sarah & Michael",
    }
    data.update(overrides)
    return Selection(**data)


def make_shipping(**overrides) -> ShippingAddress:
    return ShippingAddress(**{**SHIPPING, **overrides})


def make_customer(**overrides) -> Customer:
    data = {"name": "Sarah Martin", "email": "sarah@example.com", "phone": "+33 6 12 34 56 78"}
    data.update(overrides)
    return Customer(**data)


class FakeGateway:
    """Passerelle de paiement en mémoire: intents créés, confirmations programmables, remboursements."""

    def __init__(self):
        self.created: List[Dict[str, Any]] = []
        self.refunds: List[Dict[str, Any]] = []
        self.confirmations: Dict[str, PaymentConfirmation] = {}
        self.unavailable = False
        self.events: Dict[str, Dict[str, Any]] = {}

    def create_intent(self, amount, currency="usd", metadata=None, receipt_email=None) -> PaymentIntentHandle:
        intent_id = f"pi_test_{len(self.created) + 1}"
        self.created.append({
            "intent_id": intent_id, "amount": amount, "currency": currency,
            "metadata": metadata or {}, "receipt_email": receipt_email,
        })
        return PaymentIntentHandle(intent_id=intent_id, client_secret=f"{intent_id}_secret", amount=amount)

    def succeed(self, intent_id: str, amount: Decimal, charge_id: str = "ch_test_1") -> None:
        self.confirmations[intent_id] = PaymentConfirmation(
            intent_id=intent_id, succeeded=True, amount_captured=amount, charge_id=charge_id, status="succeeded",
        )

    def confirmation(self, intent_id: str) -> PaymentConfirmation:
        if self.unavailable:
            raise GatewayUnavailable()
        return self.confirmations.get(
            intent_id,
            PaymentConfirmation(intent_id=intent_id, succeeded=False, status="requires_payment_method"),
        )

    def refund(self, charge_id: str, amount: Optional[Decimal] = None) -> RefundResult:
        self.refunds.append({"charge_id": charge_id, "amount": amount})
        return RefundResult(refund_id=f"re_{len(self.refunds)}", amount=amount or Decimal("0.00"), status="succeeded")

    def construct_event(self, payload, signature):
        import json
        if signature != "valid":
            from album_orders.errors import InvalidWebhook
            raise InvalidWebhook()
        return json.loads(payload)


@pytest.fixture
def catalog_source() -> StaticCatalogSource:
    leather = Material(
        id="leather",
        name="Cuir",
        upcharge=Decimal("150"),
        allow_engraving=True,
        colors=(
            Color(id="black", name="Noir", kind="solid", value="#000000"),
            Color(id="walnut", name="Noyer", kind="texture", texture_image="walnut.jpg",
                  texture_region='{"x": 30, "y": 40, "zoom": 1.5}'),
        ),
        restricted_sizes=frozenset({"10x10", "12x12"}),
    )
    linen = Material(id="linen", name="Lin", upcharge=Decimal("0"), colors=(Color(id="sand", name="Sable"),))
    return StaticCatalogSource(
        materials=[leather, linen],
        sizes=[
            Size(id="8x8", name="8x8", dimensions="20x20 cm", upcharge=Decimal("0")),
            Size(id="10x10", name="10x10", dimensions="25x25 cm", upcharge=Decimal("75")),
            Size(id="12x12", name="12x12", dimensions="30x30 cm", upcharge=Decimal("100")),
        ],
        engraving_options=[
            EngravingOption(id="gold", name="Dorure", upcharge=Decimal("49"), character_limit=50,
                            fonts=("Garamond", "Script")),
            EngravingOption(id="blind", name="À sec", upcharge=Decimal("0"), character_limit=10),
        ],
        designs_by_album={
            ALBUM_ID: [
                Design(index=0, name="Classique", base_price=Decimal("500"), free_album_credits=1),
                Design(index=1, name="Moderne", base_price=Decimal("350")),
                Design(index=2, name="Cadeau", base_price=Decimal("300"), dollar_credit=Decimal("100")),
            ]
        },
    )


@pytest.fixture
def catalog_service(catalog_source) -> CatalogService:
    return CatalogService(catalog_source)


@pytest.fixture
def repository() -> InMemoryOrderRepository:
    return InMemoryOrderRepository()


@pytest.fixture
def events() -> RecordingEventSink:
    return RecordingEventSink()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def locks() -> KeyedLocks:
    return KeyedLocks()


@pytest.fixture
def now() -> datetime:
    return datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def cart_store(repository, catalog_service, locks) -> CartStore:
    return CartStore(repository, catalog_service, locks=locks)


@pytest.fixture
def orchestrator(repository, gateway, events, locks) -> CheckoutOrchestrator:
    return CheckoutOrchestrator(repository, gateway, events, locks=locks)


@pytest.fixture
def free_orchestrator(repository, events, locks) -> CheckoutOrchestrator:
    # Aucune passerelle configurée: pas de paiement exigé
    return CheckoutOrchestrator(repository, None, events, locks=locks)


@pytest.fixture
def app(repository, catalog_service, gateway, events, locks):
    fastapi_app = create_app()
    addresses = InMemoryAddressRepository()
    fastapi_app.dependency_overrides[deps.get_order_repository] = lambda: repository
    fastapi_app.dependency_overrides[deps.get_catalog_service] = lambda: catalog_service
    fastapi_app.dependency_overrides[deps.get_gateway] = lambda: gateway
    fastapi_app.dependency_overrides[deps.get_event_bus] = lambda: events
    fastapi_app.dependency_overrides[deps.get_locks] = lambda: locks
    fastapi_app.dependency_overrides[deps.get_address_repository] = lambda: addresses
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c


@pytest.fixture
def cart_headers() -> Dict[str, str]:
    return {"X-Cart-Token": TOKEN_A}


@pytest.fixture
def admin_headers(monkeypatch) -> Dict[str, str]:
    # rounds=4: hash rapide pour les tests
    hashed = bcrypt.hashpw(ADMIN_SECRET.encode("utf-8"), bcrypt.gensalt(rounds=4)).decode("utf-8")
    monkeypatch.setattr(config, "ADMIN_SECRET_HASH", hashed)
    return {"X-Admin-Key": ADMIN_SECRET}


@pytest.fixture(autouse=True)
def _no_supabase(monkeypatch):
    # Aucun test ne doit joindre Supabase
    monkeypatch.setattr("album_orders.infra.supabase_client.get_supabase", lambda: MagicMock())
    monkeypatch.setattr("album_orders.infra.supabase_client.get_service_supabase", lambda: MagicMock())


def days_ago(now: datetime, days: int) -> datetime:
    return now - timedelta(days=days)
