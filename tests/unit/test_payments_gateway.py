from decimal import Decimal
from types import SimpleNamespace
import json

import pytest
import stripe

from album_orders.errors import GatewayError, GatewayUnavailable, InvalidWebhook
from album_orders.payments.gateway import SAFE_MESSAGES, StripeGateway, require_stripe


@pytest.fixture(autouse=True)
def _restore_stripe_globals(monkeypatch):
    # require_stripe() modifie l'état global du module stripe
    monkeypatch.setattr(stripe, "api_key", None)
    monkeypatch.setattr(stripe, "max_network_retries", stripe.max_network_retries)
    monkeypatch.setattr(stripe, "default_http_client", None)


@pytest.fixture
def gw() -> StripeGateway:
    return StripeGateway(api_key="sk_test_x", webhook_secret="whsec_x", timeout=5, statement_descriptor="ALBUMS")


def test_require_stripe_configures_client():
    mod = require_stripe("sk_test_abc", timeout=3)
    assert mod.api_key == "sk_test_abc"
    assert mod.max_network_retries == 0
    assert isinstance(mod.default_http_client, stripe.RequestsClient)


def test_create_intent_sends_cents(monkeypatch, gw):
    captured = {}

    def fake_create(**params):
        captured.update(params)
        return {"id": "pi_123", "client_secret": "pi_123_secret", "amount": params["amount"]}

    monkeypatch.setattr(stripe.PaymentIntent, "create", fake_create)
    handle = gw.create_intent(Decimal("1225.50"), "USD", {"order_ids": "a,b"}, "sarah@example.com")

    assert handle.intent_id == "pi_123"
    assert handle.amount == Decimal("1225.50")
    assert captured["amount"] == 122550
    assert captured["currency"] == "usd"
    assert captured["automatic_payment_methods"] == {"enabled": True}
    assert captured["receipt_email"] == "sarah@example.com"
    assert captured["statement_descriptor_suffix"] == "ALBUMS"


def test_create_intent_rejects_non_positive_amount(monkeypatch, gw):
    monkeypatch.setattr(stripe.PaymentIntent, "create", lambda **p: pytest.fail("Stripe ne doit pas être appelé"))
    with pytest.raises(GatewayError) as exc:
        gw.create_intent(Decimal("0"), "usd", {})
    assert exc.value.kind == "invalid_amount"


def test_confirmation_reads_captured_amount_and_charge(monkeypatch, gw):
    intent = SimpleNamespace(
        id="pi_123", status="succeeded", amount_received=50000,
        latest_charge=SimpleNamespace(id="ch_999"), metadata={"client_album_id": "alb-1"},
    )
    monkeypatch.setattr(stripe.PaymentIntent, "retrieve", lambda intent_id: intent)
    confirmation = gw.confirmation("pi_123")
    assert confirmation.succeeded is True
    assert confirmation.amount_captured == Decimal("500.00")
    assert confirmation.charge_id == "ch_999"
    assert confirmation.metadata == {"client_album_id": "alb-1"}


def test_confirmation_pending_intent_is_not_succeeded(monkeypatch, gw):
    intent = {"id": "pi_1", "status": "requires_payment_method", "amount_received": 0, "latest_charge": None}
    monkeypatch.setattr(stripe.PaymentIntent, "retrieve", lambda intent_id: intent)
    confirmation = gw.confirmation("pi_1")
    assert confirmation.succeeded is False
    assert confirmation.charge_id is None


@pytest.mark.parametrize("bad_id", ["", "cs_123", "ch_123"])
def test_confirmation_rejects_malformed_intent_id(gw, bad_id):
    with pytest.raises(GatewayError) as exc:
        gw.confirmation(bad_id)
    assert exc.value.kind == "invalid_request"


@pytest.mark.parametrize(
    "error, kind",
    [
        (stripe.RateLimitError("slow down"), "rate_limit"),
        (stripe.InvalidRequestError("No such payment_intent", "id"), "invalid_request"),
        (stripe.AuthenticationError("bad key"), "authentication_error"),
        (stripe.APIError("boom"), "stripe_error"),
    ],
)
def test_stripe_errors_are_mapped(monkeypatch, gw, error, kind):
    def _raise(intent_id):
        raise error

    monkeypatch.setattr(stripe.PaymentIntent, "retrieve", _raise)
    with pytest.raises(GatewayError) as exc:
        gw.confirmation("pi_123")
    assert exc.value.kind == kind
    assert exc.value.message == SAFE_MESSAGES[kind]
    assert exc.value.__cause__ is error


def test_card_error_keeps_card_message(monkeypatch, gw):
    def _raise(**params):
        raise stripe.CardError("Your card has insufficient funds.", None, "card_declined")

    monkeypatch.setattr(stripe.PaymentIntent, "create", _raise)
    with pytest.raises(GatewayError) as exc:
        gw.create_intent(Decimal("10"), "usd", {})
    assert exc.value.kind == "card_error"
    assert exc.value.status_code == 402


def test_connection_error_is_gateway_unavailable(monkeypatch, gw):
    def _raise(intent_id):
        raise stripe.APIConnectionError("timeout")

    monkeypatch.setattr(stripe.PaymentIntent, "retrieve", _raise)
    with pytest.raises(GatewayUnavailable):
        gw.confirmation("pi_123")


def test_refund_full_and_partial(monkeypatch, gw):
    calls = []

    def fake_refund(**params):
        calls.append(params)
        return {"id": "re_1", "amount": params.get("amount", 122500), "status": "succeeded"}

    monkeypatch.setattr(stripe.Refund, "create", fake_refund)
    assert gw.refund("ch_abc").amount == Decimal("1225.00")
    assert gw.refund("ch_abc", Decimal("100")).amount == Decimal("100.00")
    assert calls == [{"charge": "ch_abc"}, {"charge": "ch_abc", "amount": 10000}]

    with pytest.raises(GatewayError):
        gw.refund("pi_abc")
    with pytest.raises(GatewayError) as exc:
        gw.refund("ch_abc", Decimal("-1"))
    assert exc.value.kind == "invalid_amount"


def test_construct_event_returns_dict(monkeypatch, gw):
    payload = json.dumps({"type": "payment_intent.succeeded", "data": {"object": {"id": "pi_1"}}}).encode("utf-8")
    seen = {}

    def fake_construct(body, sig, secret):
        seen.update(sig=sig, secret=secret)
        return object()

    monkeypatch.setattr(stripe.Webhook, "construct_event", fake_construct)
    event = gw.construct_event(payload, "t=1,v1=abc")
    assert event["type"] == "payment_intent.succeeded"
    assert seen == {"sig": "t=1,v1=abc", "secret": "whsec_x"}


def test_construct_event_bad_signature(monkeypatch, gw):
    def _raise(body, sig, secret):
        raise stripe.SignatureVerificationError("bad signature", sig)

    monkeypatch.setattr(stripe.Webhook, "construct_event", _raise)
    with pytest.raises(InvalidWebhook):
        gw.construct_event(b"{}", "nope")
