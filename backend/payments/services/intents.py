from __future__ import annotations

import logging

from django.conf import settings
from django.contrib.contenttypes.models import ContentType
from django.db import transaction

from bookings.models import Booking, GarageReservation
from payments.exceptions import PaymentNotRequired
from payments.models import Payment
from payments.services import gateway
from payments.services.reconciler import normalize_provider_status

logger = logging.getLogger(__name__)


def resolve_booking(booking_type: str, booking_id):
    """Look up the booked object behind a ``booking_type``/``booking_id`` pair."""
    model_label = Payment.BOOKING_TYPES.get(booking_type)
    if model_label is None:
        return None
    app_label, model_name = model_label.split(".")
    model = ContentType.objects.get_by_natural_key(app_label, model_name).model_class()
    return model.objects.filter(pk=booking_id).first()


def booking_type_for(booking) -> str:
    if isinstance(booking, GarageReservation):
        return "garage"
    return "space"


def customer_id_for(user) -> str:
    """The renter's Stripe customer, created on their first payment so saved cards follow them."""
    if user.stripe_customer_id:
        return user.stripe_customer_id
    customer = gateway.create_customer(email=user.email, name=user.display_name, user_id=user.pk)
    type(user).objects.filter(pk=user.pk).update(stripe_customer_id=customer.id)
    user.stripe_customer_id = customer.id
    return customer.id


def _describe(booking) -> str:
    if isinstance(booking, Booking):
        return f"{booking.space.name} {booking.start_time:%d %b %Y %H:%M}"
    return f"{booking.garage.name} {booking.start_time:%d %b %Y %H:%M}"


def start_payment(booking, *, user) -> tuple[Payment, object]:
    """
    Open a provider payment for the booking's total and record it as pending.

    Returns the Payment row and the provider intent (whose ``client_secret``
    the front end needs to collect card details).
    """
    if booking.payment_status != booking.PAYMENT_PENDING or booking.booking_status != booking.PENDING:
        raise PaymentNotRequired()

    booking_type = booking_type_for(booking)
    customer = customer_id_for(user)
    intent = gateway.create_payment_intent(
        amount=booking.total_price,
        metadata={
            "booking_type": booking_type,
            "booking_id": booking.pk,
            "user_id": user.pk,
        },
        description=_describe(booking),
        customer=customer,
    )

    with transaction.atomic():
        payment = Payment.objects.create(
            user=user,
            booking=booking,
            amount=booking.total_price,
            currency=settings.STRIPE_CURRENCY,
            stripe_payment_intent_id=intent.id,
            stripe_customer_id=customer,
            status=normalize_provider_status(intent.status),
            metadata={"booking_type": booking_type},
        )
        if isinstance(booking, Booking):
            booking.stripe_payment_intent_id = intent.id
            booking.save(update_fields=["stripe_payment_intent_id", "updated_at"])

    logger.info("Payment %s opened for %s #%s", payment.pk, booking_type, booking.pk)
    return payment, intent
