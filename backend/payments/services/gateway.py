from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import Optional
from uuid import uuid4

import stripe
from django.conf import settings
from django.utils import timezone

logger = logging.getLogger(__name__)


@dataclass
class PaymentIntentStub:
    """
    Lightweight stand-in for stripe.PaymentIntent when running in stub mode.

    Tests and local development do not hit Stripe; intents get predictable
    ``pi_test_`` identifiers and confirm immediately so bookings can move
    through the whole lifecycle offline.
    """

    id: str
    client_secret: str
    status: str
    amount: int
    currency: str
    latest_charge: Optional[str] = None


@dataclass
class RefundStub:
    id: str
    status: str
    amount: int
    payment_intent: str


@dataclass
class TransferStub:
    id: str
    amount: int
    currency: str
    destination: str


@dataclass
class CustomerStub:
    id: str
    email: str


@dataclass
class ConnectAccountStub:
    id: str
    details_submitted: bool = True
    payouts_enabled: bool = True


@dataclass
class AccountLinkStub:
    url: str
    expires_at: int


def to_minor_units(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).to_integral_value())


def from_minor_units(amount: int) -> Decimal:
    return (Decimal(amount) / Decimal(100)).quantize(Decimal("0.01"))


def _get_stripe_api_key() -> Optional[str]:
    key = getattr(settings, "STRIPE_SECRET_KEY", "")
    return key or None


def _should_use_stub() -> bool:
    if getattr(settings, "STRIPE_USE_STUB", False):
        return True
    if _get_stripe_api_key() is None and settings.DEBUG:
        logger.warning("STRIPE_SECRET_KEY is not set; using the Stripe stub while DEBUG is on.")
        return True
    return False



def is_stubbed() -> bool:
    return _should_use_stub()


def configure_stripe():
    api_key = _get_stripe_api_key()
    if not api_key:
        raise RuntimeError("STRIPE_SECRET_KEY is not configured.")
    stripe.api_key = api_key


def _currency() -> str:
    return getattr(settings, "STRIPE_CURRENCY", "gbp")


def create_payment_intent(*, amount: Decimal, metadata: dict, description: str = "", customer: str = ""):
    """
    Create a Stripe PaymentIntent (or stub equivalent) for ``amount``.

    Returns an object exposing ``id``, ``client_secret``, ``status`` and
    ``amount`` (minor units).
    """
    amount_minor = to_minor_units(amount)
    if _should_use_stub():
        intent_id = f"pi_test_{uuid4().hex}"
        return PaymentIntentStub(
            id=intent_id,
            client_secret=f"{intent_id}_secret_{uuid4().hex[:12]}",
            status="requires_payment_method",
            amount=amount_minor,
            currency=_currency(),
        )

    configure_stripe()
    kwargs = {}
    if customer:
        kwargs["customer"] = customer
    intent = stripe.PaymentIntent.create(
        amount=amount_minor,
        currency=_currency(),
        automatic_payment_methods={"enabled": True},
        description=description,
        metadata={key: str(value) for key, value in metadata.items()},
        **kwargs,
    )
    logger.info("Created payment intent %s for %s", intent.id, metadata)
    return intent


def retrieve_payment_intent(intent_id: str, *, amount: Optional[Decimal] = None):
    """Fetch the current state of an intent; stubbed intents always report success."""
    if _should_use_stub():
        return PaymentIntentStub(
            id=intent_id,
            client_secret="",
            status="succeeded",
            amount=to_minor_units(amount) if amount is not None else 0,
            currency=_currency(),
            latest_charge=f"ch_test_{uuid4().hex}",
        )

    configure_stripe()
    return stripe.PaymentIntent.retrieve(intent_id)


def create_refund(*, intent_id: str, amount: Decimal, reason: str = "requested_by_customer"):
    amount_minor = to_minor_units(amount)
    if _should_use_stub():
        return RefundStub(
            id=f"re_test_{uuid4().hex}",
            status="succeeded",
            amount=amount_minor,
            payment_intent=intent_id,
        )

    configure_stripe()
    refund = stripe.Refund.create(payment_intent=intent_id, amount=amount_minor, reason=reason)
    logger.info("Created refund %s for %s (%s)", refund.id, intent_id, amount)
    return refund


def create_transfer(*, amount: Decimal, destination: str, metadata: dict):
    amount_minor = to_minor_units(amount)
    if _should_use_stub():
        return TransferStub(
            id=f"tr_test_{uuid4().hex}",
            amount=amount_minor,
            currency=_currency(),
            destination=destination,
        )

    configure_stripe()
    return stripe.Transfer.create(
        amount=amount_minor,
        currency=_currency(),
        destination=destination,
        metadata={key: str(value) for key, value in metadata.items()},
    )


def create_customer(*, email: str, name: str = "", user_id: Optional[int] = None):
    if _should_use_stub():
        return CustomerStub(id=f"cus_test_{uuid4().hex[:14]}", email=email)

    configure_stripe()
    customer = stripe.Customer.create(
        email=email,
        name=name or None,
        metadata={"user_id": str(user_id)} if user_id else {},
    )
    logger.info("Created Stripe customer %s for user %s", customer.id, user_id)
    return customer


def create_connect_account(*, email: str):
    """Open an Express account that owner payouts are transferred to."""
    if _should_use_stub():
        return ConnectAccountStub(id=f"acct_test_{uuid4().hex[:16]}")

    configure_stripe()
    return stripe.Account.create(
        type="express",
        email=email or None,
        capabilities={"transfers": {"requested": True}},
    )


def retrieve_connect_account(account_id: str):
    if _should_use_stub():
        return ConnectAccountStub(id=account_id)

    configure_stripe()
    return stripe.Account.retrieve(account_id)


def create_account_link(account_id: str):
    """Hosted onboarding link for a connected account; it expires after a few minutes."""
    refresh_url = settings.STRIPE_CONNECT_REFRESH_URL
    return_url = settings.STRIPE_CONNECT_RETURN_URL
    if _should_use_stub():
        expires_at = int((timezone.now() + timedelta(minutes=5)).timestamp())
        return AccountLinkStub(url=f"https://connect.stripe.test/setup/{account_id}", expires_at=expires_at)

    configure_stripe()
    return stripe.AccountLink.create(
        account=account_id,
        type="account_onboarding",
        refresh_url=refresh_url,
        return_url=return_url,
    )


def delete_connect_account(account_id: str) -> None:
    if _should_use_stub():
        return

    configure_stripe()
    stripe.Account.delete(account_id)
    logger.info("Deleted connected account %s", account_id)
