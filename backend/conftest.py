from datetime import timedelta
from decimal import Decimal

import pytest
from django.conf import settings
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient

from bookings.services.reservations import reserve_space
from core.context import RequestContext
from payments.services.intents import start_payment
from payments.services.reconciler import reconcile_intent
from spaces.models import Garage, Space

User = get_user_model()


def _create_user(email, **extra):
    return User.objects.create_user(username=email, email=email, password="examplepass", **extra)


@pytest.fixture
def make_user(db):
    return _create_user


@pytest.fixture
def owner(db):
    return _create_user("owner@example.com", display_name="Olivia Owner", stripe_connect_id="acct_owner")


@pytest.fixture
def renter(db):
    return _create_user("renter@example.com", display_name="Rory Renter")


@pytest.fixture
def staff(db):
    return _create_user("staff@example.com", is_staff=True)


@pytest.fixture
def space(owner):
    return Space.objects.create(
        owner=owner,
        name="Driveway off Elms Crescent",
        address_line1="14 Elms Crescent",
        city="London",
        postcode="SW4 8QE",
        price_per_hour=Decimal("5.00"),
        price_per_day=Decimal("30.00"),
        amenities=["covered"],
        access_instructions="Gate code 4821.",
        status=Space.ACTIVE,
    )


@pytest.fixture
def garage(db):
    return Garage.objects.create(
        name="Piccadilly Multi-Storey",
        location="Manchester",
        total_spaces=2,
        price_per_hour=Decimal("2.50"),
    )


@pytest.fixture
def day():
    """Midnight three days from now, so every window built from it lies in the future."""
    return (timezone.now() + timedelta(days=3)).replace(hour=0, minute=0, second=0, microsecond=0)


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def client_for():
    def _client(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    return _client


@pytest.fixture
def book():
    """Reserve a window and optionally push its payment through, like the booking endpoint does."""

    def _book(user, space, start, end, *, paid=True, **details):
        booking = reserve_space(RequestContext(user=user), space, start, end, **details)
        payment, _ = start_payment(booking, user=user)
        if paid:
            reconcile_intent(payment.stripe_payment_intent_id, "succeeded")
            booking.refresh_from_db()
            payment.refresh_from_db()
        return booking, payment

    return _book


@pytest.fixture
def expire_hold():
    """Age a pending booking past its hold so its window opens up again."""

    def _expire(booking):
        type(booking).objects.filter(pk=booking.pk).update(
            created_at=timezone.now() - timedelta(minutes=settings.PENDING_HOLD_MINUTES + 1)
        )

    return _expire
