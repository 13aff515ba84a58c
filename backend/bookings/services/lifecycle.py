from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Optional

from django.db import transaction
from django.db.models import F
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied

from bookings.exceptions import InvalidTransition
from bookings.models import Booking, GarageReservation
from core.context import RequestContext
from spaces.models import Space

logger = logging.getLogger(__name__)


def transition_booking(booking, status: str, *, at: Optional[datetime] = None):
    """
    Move a booking (or garage reservation) to ``status``.

    Check-in/out timestamps follow the move, and completing a space booking
    credits the owner's payout to the space statistics.
    """
    if not booking.can_transition_to(status):
        raise InvalidTransition(
            f"Cannot move from {booking.booking_status} to {status}."
        )

    now = at or timezone.now()
    previous = booking.booking_status
    booking.booking_status = status
    fields = ["booking_status", "updated_at"]

    if status == booking.ACTIVE:
        booking.check_in_time = now
        fields.append("check_in_time")
    elif status == booking.COMPLETED:
        booking.check_out_time = now
        fields.append("check_out_time")
        if isinstance(booking, Booking):
            Space.objects.filter(pk=booking.space_id).update(
                total_earnings=F("total_earnings") + booking.owner_payout,
                total_bookings=F("total_bookings") + 1,
            )
    elif status == booking.CANCELLED:
        booking.cancelled_at = now
        fields.append("cancelled_at")

    booking.save(update_fields=fields)
    logger.info(
        "%s #%s moved from %s to %s",
        booking.__class__.__name__,
        booking.pk,
        previous,
        status,
    )
    return booking


def request_transition(
    ctx: RequestContext,
    booking: Booking,
    status: str,
    *,
    owner_notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Booking:
    """
    Apply a status change asked for by one of the booking's parties.

    Renters and owners can check in once the window has started and check
    out once it has ended. Staff may move a booking at any time.
    """
    if ctx.user_id not in (booking.renter_id, booking.owner_id) and not ctx.is_staff:
        raise PermissionDenied("Not permitted.")

    now = now or timezone.now()
    with transaction.atomic():
        booking = Booking.objects.select_for_update().get(pk=booking.pk)
        if booking.can_transition_to(status) and not ctx.is_staff:
            if status == Booking.ACTIVE and now < booking.start_time:
                raise InvalidTransition("This booking has not started yet.")
            if status == Booking.COMPLETED and now < booking.end_time:
                raise InvalidTransition("This booking has not ended yet.")
        if owner_notes is not None and ctx.user_id == booking.owner_id:
            booking.owner_notes = owner_notes
            booking.save(update_fields=["owner_notes", "updated_at"])
        return transition_booking(booking, status, at=now)


def advance_bookings(now: Optional[datetime] = None) -> Dict[str, int]:
    """Apply the time-driven moves: confirmed -> active at start, active -> completed at end."""
    now = now or timezone.now()
    counts = {"activated": 0, "completed": 0}

    for model in (Booking, GarageReservation):
        with transaction.atomic():
            due = model.objects.select_for_update().filter(
                booking_status=model.CONFIRMED,
                start_time__lte=now,
            )
            for booking in due:
                transition_booking(booking, model.ACTIVE, at=booking.start_time)
                counts["activated"] += 1

        with transaction.atomic():
            ended = model.objects.select_for_update().filter(
                booking_status=model.ACTIVE,
                end_time__lte=now,
            )
            for booking in ended:
                transition_booking(booking, model.COMPLETED, at=booking.end_time)
                counts["completed"] += 1

    return counts
