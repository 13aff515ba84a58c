from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from .exceptions import DurationOutOfRange, InvalidWindow, SlotUnavailable

HOURLY = "hourly"
DAILY = "daily"
PRICING_MODES = [
    (HOURLY, "Hourly"),
    (DAILY, "Daily"),
]

DEFAULT_FEE_PERCENT = 15
BLOCKING_STATUSES = frozenset({"confirmed", "active"})

CENT = Decimal("0.01")
SECONDS_PER_HOUR = 3600


@dataclass(frozen=True)
class BookingQuote:
    billable_hours: int
    pricing_mode: str
    unit_price: Decimal
    total_price: Decimal
    platform_fee: Decimal
    owner_payout: Decimal

    def as_dict(self) -> dict:
        return {
            "billable_hours": self.billable_hours,
            "pricing_mode": self.pricing_mode,
            "unit_price": f"{self.unit_price:.2f}",
            "total_price": f"{self.total_price:.2f}",
            "platform_fee": f"{self.platform_fee:.2f}",
            "owner_payout": f"{self.owner_payout:.2f}",
        }


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def check_window(start: datetime, end: datetime) -> float:
    """Return the window length in seconds, rejecting empty or inverted windows."""
    if end <= start:
        raise InvalidWindow()
    return (end - start).total_seconds()


def billable_hours(start: datetime, end: datetime) -> int:
    """Whole hours covered by ``[start, end)``; any partial hour counts as a full one."""
    seconds = check_window(start, end)
    return math.ceil(seconds / SECONDS_PER_HOUR)


def check_duration(start: datetime, end: datetime, *, min_hours: int, max_days: int) -> None:
    # Bounds use the exact length so a 30 minute request fails a 1 hour minimum.
    seconds = check_window(start, end)
    if seconds < min_hours * SECONDS_PER_HOUR:
        raise DurationOutOfRange(
            f"Bookings for this space must be at least {min_hours} hour(s)."
        )
    if seconds > max_days * 24 * SECONDS_PER_HOUR:
        raise DurationOutOfRange(
            f"Bookings for this space cannot be longer than {max_days} day(s)."
        )


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    return start_a < end_b and start_b < end_a


def find_conflict(start: datetime, end: datetime, existing: Iterable) -> Optional[object]:
    """
    Return the first blocking booking that intersects ``[start, end)``.

    ``existing`` may hold any objects exposing ``start_time``, ``end_time`` and
    ``booking_status``; only confirmed and active bookings block a window.
    """
    for booking in existing:
        if booking.booking_status not in BLOCKING_STATUSES:
            continue
        if overlaps(booking.start_time, booking.end_time, start, end):
            return booking
    return None


def split_fee(total_price: Decimal, fee_percent=DEFAULT_FEE_PERCENT) -> tuple[Decimal, Decimal]:
    """Split a total into (platform_fee, owner_payout) so the two always add back up."""
    total = to_money(total_price)
    fee = to_money(total * Decimal(str(fee_percent)) / Decimal("100"))
    return fee, total - fee


def evaluate_booking(
    space,
    start: datetime,
    end: datetime,
    existing: Iterable = (),
    *,
    daily: bool = False,
    fee_percent=DEFAULT_FEE_PERCENT,
) -> BookingQuote:
    """
    Validate a requested window against ``space`` and price it.

    Raises ``InvalidWindow``, ``DurationOutOfRange`` or ``SlotUnavailable``.
    Nothing is read from or written to the database; callers must run this
    and the insert inside the same transaction.
    """
    hours = billable_hours(start, end)
    check_duration(
        start,
        end,
        min_hours=space.min_booking_hours,
        max_days=space.max_booking_days,
    )
    if find_conflict(start, end, existing) is not None:
        raise SlotUnavailable()

    if daily and space.price_per_day:
        days = math.ceil(hours / 24)
        unit_price = to_money(space.price_per_day)
        total = to_money(unit_price * days)
        mode = DAILY
    else:
        unit_price = to_money(space.price_per_hour)
        total = to_money(unit_price * hours)
        mode = HOURLY

    fee, payout = split_fee(total, fee_percent)
    return BookingQuote(
        billable_hours=hours,
        pricing_mode=mode,
        unit_price=unit_price,
        total_price=total,
        platform_fee=fee,
        owner_payout=payout,
    )


def evaluate_garage_reservation(
    garage,
    start: datetime,
    end: datetime,
    *,
    occupied: int,
    overbooking_rate: float = 1.1,
) -> BookingQuote:
    """
    Price a garage reservation; ``occupied`` counts bays already taken in the window.

    Garages are run by the platform, so the whole charge is platform revenue.
    """
    hours = billable_hours(start, end)
    capacity = math.floor(garage.total_spaces * overbooking_rate)
    if occupied >= capacity:
        raise SlotUnavailable("This garage is fully booked for the requested time.")

    unit_price = to_money(garage.price_per_hour)
    total = to_money(unit_price * hours)
    return BookingQuote(
        billable_hours=hours,
        pricing_mode=HOURLY,
        unit_price=unit_price,
        total_price=total,
        platform_fee=total,
        owner_payout=Decimal("0.00"),
    )
