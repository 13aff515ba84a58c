import types
from decimal import Decimal

import pytest
import stripe

from payments.services import gateway


def test_minor_unit_conversion():
    assert gateway.to_minor_units(Decimal("15.00")) == 1500
    assert gateway.to_minor_units(Decimal("0.07")) == 7
    assert gateway.from_minor_units(1275) == Decimal("12.75")


def test_stub_intent_has_test_identifiers(settings):
    settings.STRIPE_USE_STUB = True

    intent = gateway.create_payment_intent(amount=Decimal("15.00"), metadata={"booking_id": 1})

    assert isinstance(intent, gateway.PaymentIntentStub)
    assert intent.id.startswith("pi_test_")
    assert intent.client_secret.startswith(f"{intent.id}_secret_")
    assert intent.amount == 1500
    assert intent.currency == "gbp"
    assert intent.status == "requires_payment_method"


def test_stub_retrieve_reports_success(settings):
    settings.STRIPE_USE_STUB = True

    intent = gateway.retrieve_payment_intent("pi_test_abc", amount=Decimal("4.50"))

    assert intent.status == "succeeded"
    assert intent.amount == 450
    assert intent.latest_charge.startswith("ch_test_")


def test_missing_secret_key_falls_back_to_stub_in_debug(settings):
    settings.DEBUG = True
    settings.STRIPE_USE_STUB = False
    settings.STRIPE_SECRET_KEY = ""

    assert gateway.is_stubbed()
    refund = gateway.create_refund(intent_id="pi_test_abc", amount=Decimal("2.00"))
    transfer = gateway.create_transfer(amount=Decimal("20.00"), destination="acct_1", metadata={})

    assert refund.id.startswith("re_test_")
    assert refund.amount == 200
    assert transfer.id.startswith("tr_test_")


def test_missing_secret_key_outside_debug_is_an_error(settings):
    settings.DEBUG = False
    settings.STRIPE_USE_STUB = False
    settings.STRIPE_SECRET_KEY = ""

    assert not gateway.is_stubbed()
    with pytest.raises(RuntimeError):
        gateway.create_refund(intent_id="pi_live_abc", amount=Decimal("2.00"))
    with pytest.raises(RuntimeError):
        gateway.retrieve_payment_intent("pi_live_abc")


def test_intent_uses_stripe_when_configured(monkeypatch, settings):
    settings.STRIPE_USE_STUB = False
    settings.STRIPE_SECRET_KEY = "sk_test_123"

    captured = {}
    original_api_key = stripe.api_key

    def fake_create(**kwargs):
        captured["kwargs"] = kwargs
        return types.SimpleNamespace(
            id="pi_real_123",
            client_secret="pi_real_123_secret",
            status="requires_payment_method",
            amount=kwargs["amount"],
        )

    monkeypatch.setattr(stripe.PaymentIntent, "create", staticmethod(fake_create))

    try:
        intent = gateway.create_payment_intent(
            amount=Decimal("15.00"),
            metadata={"booking_type": "space", "booking_id": 7},
            description="Driveway 03 Jun",
            customer="cus_123",
        )
        assert intent.id == "pi_real_123"
        assert stripe.api_key == "sk_test_123"
        kwargs = captured["kwargs"]
        assert kwargs["amount"] == 1500
        assert kwargs["currency"] == "gbp"
        assert kwargs["customer"] == "cus_123"
        assert kwargs["metadata"] == {"booking_type": "space", "booking_id": "7"}
    finally:
        stripe.api_key = original_api_key


def test_refund_uses_stripe_when_configured(monkeypatch, settings):
    settings.STRIPE_USE_STUB = False
    settings.STRIPE_SECRET_KEY = "sk_test_123"

    captured = {}
    original_api_key = stripe.api_key

    def fake_create(**kwargs):
        captured.update(kwargs)
        return types.SimpleNamespace(id="re_real_1", status="succeeded", amount=kwargs["amount"])

    monkeypatch.setattr(stripe.Refund, "create", staticmethod(fake_create))

    try:
        refund = gateway.create_refund(intent_id="pi_real_123", amount=Decimal("7.50"), reason="duplicate")
        assert refund.id == "re_real_1"
        assert captured == {"payment_intent": "pi_real_123", "amount": 750, "reason": "duplicate"}
    finally:
        stripe.api_key = original_api_key


def test_configure_without_key_raises(settings):
    settings.STRIPE_SECRET_KEY = ""

    with pytest.raises(RuntimeError):
        gateway.configure_stripe()


def test_stub_connect_onboarding(settings):
    settings.STRIPE_USE_STUB = True

    account = gateway.create_connect_account(email="owner@example.com")
    link = gateway.create_account_link(account.id)
    customer = gateway.create_customer(email="renter@example.com")

    assert account.id.startswith("acct_test_")
    assert account.id in link.url
    assert link.expires_at > 0
    assert customer.id.startswith("cus_test_")


def test_connect_account_uses_stripe_when_configured(monkeypatch, settings):
    settings.STRIPE_USE_STUB = False
    settings.STRIPE_SECRET_KEY = "sk_test_123"
    settings.STRIPE_CONNECT_RETURN_URL = "https://app.parkalot.test/account/payouts?onboarded=1"
    settings.STRIPE_CONNECT_REFRESH_URL = "https://app.parkalot.test/account/payouts"

    calls = {}
    original_api_key = stripe.api_key

    def fake_account_create(**kwargs):
        calls["account"] = kwargs
        return types.SimpleNamespace(id="acct_real_1")

    def fake_link_create(**kwargs):
        calls["link"] = kwargs
        return types.SimpleNamespace(url="https://connect.stripe.com/setup/e/acct_real_1", expires_at=1700000000)

    monkeypatch.setattr(stripe.Account, "create", staticmethod(fake_account_create))
    monkeypatch.setattr(stripe.AccountLink, "create", staticmethod(fake_link_create))

    try:
        account = gateway.create_connect_account(email="owner@example.com")
        gateway.create_account_link(account.id)
    finally:
        stripe.api_key = original_api_key

    assert calls["account"]["type"] == "express"
    assert calls["account"]["email"] == "owner@example.com"
    assert calls["link"] == {
        "account": "acct_real_1",
        "type": "account_onboarding",
        "refresh_url": "https://app.parkalot.test/account/payouts",
        "return_url": "https://app.parkalot.test/account/payouts?onboarded=1",
    }
