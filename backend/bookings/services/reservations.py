from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from bookings.exceptions import (
    DurationOutOfRange,
    InvalidWindow,
    SelfBooking,
    SlotUnavailable,
    SpaceUnavailable,
)
from bookings.models import Booking, GarageReservation
from bookings.pricing import (
    BookingQuote,
    check_window,
    evaluate_booking,
    evaluate_garage_reservation,
)
from core.context import RequestContext
from spaces.models import Garage, Space

logger = logging.getLogger(__name__)


def hold_cutoff(now: Optional[datetime] = None) -> datetime:
    """Pending bookings created after this moment still hold their window."""
    return (now or timezone.now()) - timedelta(minutes=settings.PENDING_HOLD_MINUTES)


def _holding(model, now: Optional[datetime]) -> Q:
    return Q(booking_status__in=model.BLOCKING_STATUSES) | Q(
        booking_status=model.PENDING,
        created_at__gte=hold_cutoff(now),
    )


def _blocking_bookings(space_id: int, start: datetime, end: datetime, *, exclude_id: Optional[int] = None):
    qs = Booking.objects.filter(
        space_id=space_id,
        booking_status__in=Booking.BLOCKING_STATUSES,
        start_time__lt=end,
        end_time__gt=start,
    )
    if exclude_id is not None:
        qs = qs.exclude(pk=exclude_id)
    return qs


def _held_bookings(space_id: int, start: datetime, end: datetime, now: Optional[datetime] = None):
    return Booking.objects.filter(
        space_id=space_id,
        booking_status=Booking.PENDING,
        created_at__gte=hold_cutoff(now),
        start_time__lt=end,
        end_time__gt=start,
    )


def _occupied_bays(
    garage_id: int,
    start: datetime,
    end: datetime,
    *,
    exclude_id: Optional[int] = None,
    include_holds: bool = False,
    now: Optional[datetime] = None,
) -> int:
    taken = _holding(GarageReservation, now) if include_holds else Q(
        booking_status__in=GarageReservation.BLOCKING_STATUSES
    )
    qs = GarageReservation.objects.filter(
        taken,
        garage_id=garage_id,
        start_time__lt=end,
        end_time__gt=start,
    )
    if exclude_id is not None:
        qs = qs.exclude(pk=exclude_id)
    return qs.count()


def blocked_windows(space: Space, now: Optional[datetime] = None):
    """Upcoming windows nobody else can book: confirmed or active, plus pending bookings still on hold."""
    now = now or timezone.now()
    return (
        Booking.objects.filter(_holding(Booking, now), space_id=space.pk, end_time__gt=now)
        .order_by("start_time")
        .values("start_time", "end_time")
    )


def _check_requested_window(start: datetime, end: datetime, now: Optional[datetime]):
    check_window(start, end)
    if start < (now or timezone.now()):
        raise InvalidWindow("Start time cannot be in the past.")


def quote_space(space: Space, start: datetime, end: datetime, *, daily: bool = False) -> BookingQuote:
    """Price a window against the current bookings without reserving anything."""
    existing = list(_blocking_bookings(space.pk, start, end)) if end > start else []
    quote = evaluate_booking(
        space,
        start,
        end,
        existing,
        daily=daily,
        fee_percent=settings.PLATFORM_FEE_PERCENT,
    )
    if _held_bookings(space.pk, start, end).exists():
        raise SlotUnavailable("Someone is completing a booking for this time.")
    return quote


def reserve_space(
    ctx: RequestContext,
    space: Space,
    start: datetime,
    end: datetime,
    *,
    daily: bool = False,
    now: Optional[datetime] = None,
    **details,
) -> Booking:
    """
    Create a pending booking for ``[start, end)`` on ``space``.

    The space row stays locked from the overlap check until the insert
    commits, so a concurrent request for the same space waits and then sees
    this booking. A pending booking holds its window for
    ``PENDING_HOLD_MINUTES`` while the renter pays.
    """
    _check_requested_window(start, end, now)

    with transaction.atomic():
        locked = Space.objects.select_for_update().get(pk=space.pk)
        if not locked.is_bookable:
            raise SpaceUnavailable()
        if locked.owner_id == ctx.user_id:
            raise SelfBooking()

        existing = list(_blocking_bookings(locked.pk, start, end))
        try:
            quote = evaluate_booking(
                locked,
                start,
                end,
                existing,
                daily=daily,
                fee_percent=settings.PLATFORM_FEE_PERCENT,
            )
            if _held_bookings(locked.pk, start, end).exists():
                raise SlotUnavailable("Someone is completing a booking for this time.")
        except (InvalidWindow, DurationOutOfRange, SlotUnavailable) as exc:
            logger.info("Booking request on space %s rejected: %s", locked.pk, exc)
            raise

        booking = Booking.objects.create(
            space=locked,
            renter=ctx.user,
            owner_id=locked.owner_id,
            start_time=start,
            end_time=end,
            pricing_mode=quote.pricing_mode,
            billable_hours=quote.billable_hours,
            total_price=quote.total_price,
            platform_fee=quote.platform_fee,
            owner_payout=quote.owner_payout,
            **details,
        )

    logger.info(
        "Booking #%s created on space %s by user %s (%s, %sh)",
        booking.pk,
        space.pk,
        ctx.user_id,
        booking.total_price,
        booking.billable_hours,
    )
    return booking


def reserve_garage(
    ctx: RequestContext,
    garage: Garage,
    start: datetime,
    end: datetime,
    *,
    now: Optional[datetime] = None,
    vehicle_registration: str = "",
) -> GarageReservation:
    _check_requested_window(start, end, now)

    with transaction.atomic():
        locked = Garage.objects.select_for_update().get(pk=garage.pk)
        if not locked.is_active:
            raise SpaceUnavailable("This garage is not taking reservations.")
        quote = evaluate_garage_reservation(
            locked,
            start,
            end,
            occupied=_occupied_bays(locked.pk, start, end, include_holds=True),
            overbooking_rate=settings.GARAGE_OVERBOOKING_RATE,
        )
        reservation = GarageReservation.objects.create(
            garage=locked,
            user=ctx.user,
            start_time=start,
            end_time=end,
            billable_hours=quote.billable_hours,
            total_price=quote.total_price,
            vehicle_registration=vehicle_registration,
        )

    logger.info("Garage reservation #%s created at garage %s", reservation.pk, garage.pk)
    return reservation


def slot_still_free(booking) -> bool:
    """
    Re-check a pending booking's window under lock before confirming it.

    A pending booking's hold lapses after ``PENDING_HOLD_MINUTES``, so another
    booking may have been confirmed while this one waited for payment.
    """
    if isinstance(booking, Booking):
        Space.objects.select_for_update().filter(pk=booking.space_id).first()
        return not _blocking_bookings(
            booking.space_id, booking.start_time, booking.end_time, exclude_id=booking.pk
        ).exists()

    garage = Garage.objects.select_for_update().get(pk=booking.garage_id)
    try:
        evaluate_garage_reservation(
            garage,
            booking.start_time,
            booking.end_time,
            occupied=_occupied_bays(garage.pk, booking.start_time, booking.end_time, exclude_id=booking.pk),
            overbooking_rate=settings.GARAGE_OVERBOOKING_RATE,
        )
    except SlotUnavailable:
        return False
    return True
