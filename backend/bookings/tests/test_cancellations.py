from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from bookings.exceptions import InvalidTransition
from bookings.models import Booking
from bookings.services.cancellations import cancel_booking, refund_percent_for
from core.context import RequestContext
from payments.models import Payment, PayoutLine


@pytest.fixture
def paid_booking(renter, space, day, book):
    booking, _ = book(renter, space, day + timedelta(hours=10), day + timedelta(hours=13))
    return booking


@pytest.mark.django_db
def test_renter_with_a_days_notice_gets_everything_back(renter, paid_booking, mailoutbox):
    now = paid_booking.start_time - timedelta(hours=30)

    result = cancel_booking(RequestContext(user=renter), paid_booking, reason="Plans changed", now=now)

    assert result.refund_percent == 100
    assert result.refund_amount == Decimal("15.00")
    booking = Booking.objects.get(pk=paid_booking.pk)
    assert booking.booking_status == Booking.CANCELLED
    assert booking.payment_status == Booking.PAYMENT_REFUNDED
    assert booking.cancelled_by == Booking.RENTER
    assert booking.cancellation_reason == "Plans changed"
    assert booking.cancelled_at == now
    assert PayoutLine.objects.get(booking=booking).status == PayoutLine.VOID
    payment = Payment.for_booking(booking).get()
    assert payment.status == Payment.REFUNDED
    assert payment.refund_amount == Decimal("15.00")
    assert mailoutbox[-1].subject == f"Booking #{booking.pk} cancelled"
    assert "£15.00" in mailoutbox[-1].body


@pytest.mark.django_db
def test_renter_with_short_notice_gets_half_back(renter, paid_booking):
    now = paid_booking.start_time - timedelta(hours=12)

    result = cancel_booking(RequestContext(user=renter), paid_booking, now=now)

    assert result.refund_percent == 50
    assert result.refund_amount == Decimal("7.50")
    booking = Booking.objects.get(pk=paid_booking.pk)
    assert booking.payment_status == Booking.PAYMENT_PARTIAL_REFUND
    line = PayoutLine.objects.get(booking=booking)
    assert line.status == PayoutLine.OPEN
    assert line.amount == Decimal("6.38")


@pytest.mark.django_db
def test_renter_cancelling_at_the_last_minute_gets_nothing(renter, paid_booking, mailoutbox):
    now = paid_booking.start_time - timedelta(hours=2)

    result = cancel_booking(RequestContext(user=renter), paid_booking, now=now)

    assert result.refund_percent == 0
    assert result.refund_amount == Decimal("0.00")
    booking = Booking.objects.get(pk=paid_booking.pk)
    assert booking.booking_status == Booking.CANCELLED
    assert booking.payment_status == Booking.PAYMENT_PAID
    assert PayoutLine.objects.get(booking=booking).amount == Decimal("12.75")
    assert "No refund is due" in mailoutbox[-1].body


@pytest.mark.django_db
def test_owner_cancellation_is_always_refunded_in_full(owner, paid_booking):
    now = paid_booking.start_time - timedelta(hours=1)

    result = cancel_booking(RequestContext(user=owner), paid_booking, now=now)

    assert result.refund_percent == 100
    assert Booking.objects.get(pk=paid_booking.pk).cancelled_by == Booking.OWNER


@pytest.mark.django_db
def test_staff_cancellation_counts_as_system(staff, paid_booking):
    result = cancel_booking(RequestContext(user=staff), paid_booking, now=paid_booking.start_time)

    assert result.refund_percent == 100
    assert Booking.objects.get(pk=paid_booking.pk).cancelled_by == Booking.SYSTEM


@pytest.mark.django_db
def test_unpaid_booking_cancels_without_refund(renter, space, day, book):
    booking, payment = book(renter, space, day + timedelta(hours=10), day + timedelta(hours=12), paid=False)

    result = cancel_booking(RequestContext(user=renter), booking)

    assert result.refund_amount == Decimal("0.00")
    payment.refresh_from_db()
    assert payment.status == Payment.PENDING
    assert Booking.objects.get(pk=booking.pk).booking_status == Booking.CANCELLED


@pytest.mark.django_db
def test_cancelling_twice_is_rejected(renter, paid_booking):
    cancel_booking(RequestContext(user=renter), paid_booking)

    with pytest.raises(InvalidTransition):
        cancel_booking(RequestContext(user=renter), paid_booking)


@pytest.mark.django_db
def test_cancel_endpoint_reports_refund(client_for, renter, paid_booking):
    response = client_for(renter).post(
        f"/api/bookings/{paid_booking.id}/cancel/",
        {"reason": "No longer needed"},
        format="json",
    )

    assert response.status_code == 200
    body = response.json()
    assert body["refund_percent"] == 100
    assert body["refund_amount"] == "15.00"
    assert body["booking"]["booking_status"] == "cancelled"
    assert body["booking"]["payment_status"] == "refunded"


@pytest.mark.parametrize(
    "hours_before,expected",
    [(48, 100), (24, 100), (23, 50), (6, 50), (5, 0), (-1, 0)],
)
def test_refund_percent_boundaries(hours_before, expected):
    start = timezone.now()
    booking = Booking(start_time=start)
    now = start - timedelta(hours=hours_before)

    assert refund_percent_for(booking, Booking.RENTER, now) == expected
