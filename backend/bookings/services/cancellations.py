from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from bookings.models import Booking
from bookings.pricing import to_money
from bookings.services.emails import send_booking_cancellation_email
from bookings.services.lifecycle import transition_booking
from core.context import RequestContext
from payments.services.settlement import refund_booking

logger = logging.getLogger(__name__)


@dataclass
class CancellationResult:
    booking: object
    refund_percent: int
    refund_amount: Decimal


def refund_percent_for(booking, cancelled_by: str, now: datetime) -> int:
    """
    Share of the price returned on cancellation.

    Renters get everything back with at least a day's notice, half with a
    few hours' notice and nothing after that. Cancellations by the owner,
    staff or the system are always refunded in full.
    """
    if cancelled_by != Booking.RENTER:
        return 100
    notice = booking.start_time - now
    if notice >= timedelta(hours=settings.REFUND_FULL_NOTICE_HOURS):
        return 100
    if notice >= timedelta(hours=settings.REFUND_PARTIAL_NOTICE_HOURS):
        return settings.REFUND_PARTIAL_PERCENT
    return 0


def cancel_booking(
    ctx: RequestContext,
    booking,
    *,
    reason: str = "",
    now: Optional[datetime] = None,
) -> CancellationResult:
    now = now or timezone.now()
    model = type(booking)

    with transaction.atomic():
        booking = model.objects.select_for_update().get(pk=booking.pk)
        if isinstance(booking, Booking):
            cancelled_by = booking.party_for(ctx.user)
            booking.cancelled_by = cancelled_by
            booking.cancellation_reason = reason
            booking.save(update_fields=["cancelled_by", "cancellation_reason", "updated_at"])
        else:
            cancelled_by = Booking.RENTER if booking.user_id == ctx.user_id else Booking.SYSTEM
        transition_booking(booking, model.CANCELLED, at=now)

    refund_percent = 0
    refund_amount = Decimal("0.00")
    if booking.payment_status == booking.PAYMENT_PAID:
        refund_percent = refund_percent_for(booking, cancelled_by, now)
        refund_amount = to_money(booking.total_price * refund_percent / 100)
        if refund_amount > 0:
            outcome = refund_booking(booking, refund_amount)
            if outcome is not None:
                booking = outcome.booking
            else:
                refund_amount = Decimal("0.00")

    logger.info(
        "%s #%s cancelled by %s (refund %s%%, %s)",
        model.__name__,
        booking.pk,
        cancelled_by,
        refund_percent,
        refund_amount,
    )
    send_booking_cancellation_email(booking=booking, refund_amount=refund_amount)
    return CancellationResult(booking=booking, refund_percent=refund_percent, refund_amount=refund_amount)
