from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import List

import stripe
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from bookings.models import Booking
from payments.models import Payout, PayoutLine
from payments.services import gateway

logger = logging.getLogger(__name__)

PAYABLE_BOOKING_STATUSES = (Booking.COMPLETED, Booking.CANCELLED)


def _period_bounds(period_start: date, period_end: date):
    tz = timezone.get_current_timezone()
    start = timezone.make_aware(datetime.combine(period_start, time.min), tz)
    end = timezone.make_aware(datetime.combine(period_end + timedelta(days=1), time.min), tz)
    return start, end


def build_payouts(period_start: date, period_end: date) -> List[Payout]:
    """
    Group open payout lines per owner into pending payouts for the period.

    A line is payable once its booking has finished (completed, or cancelled
    with part of the money kept) and the booking ended inside the period.
    Owners below the minimum payout keep their lines open for a later run.
    """
    if period_end < period_start:
        raise ValueError("period_end must not be before period_start")

    start, end = _period_bounds(period_start, period_end)
    minimum = Decimal(str(settings.MIN_PAYOUT_AMOUNT))
    payouts: List[Payout] = []

    with transaction.atomic():
        lines = (
            PayoutLine.objects.select_for_update()
            .filter(
                status=PayoutLine.OPEN,
                payout__isnull=True,
                booking__booking_status__in=PAYABLE_BOOKING_STATUSES,
                booking__end_time__gte=start,
                booking__end_time__lt=end,
            )
            .order_by("owner_id", "id")
        )
        by_owner = defaultdict(list)
        for line in lines:
            by_owner[line.owner_id].append(line)

        for owner_id, owner_lines in by_owner.items():
            amount = sum((line.amount for line in owner_lines), Decimal("0.00"))
            if amount < minimum:
                logger.info("Owner %s below minimum payout (%s < %s)", owner_id, amount, minimum)
                continue
            payout = Payout.objects.create(
                owner_id=owner_id,
                amount=amount,
                currency=settings.STRIPE_CURRENCY,
                period_start=period_start,
                period_end=period_end,
                bookings_count=len(owner_lines),
            )
            PayoutLine.objects.filter(pk__in=[line.pk for line in owner_lines]).update(
                payout=payout,
                status=PayoutLine.PAID,
            )
            payouts.append(payout)
            logger.info("Payout %s of %s created for owner %s", payout.pk, amount, owner_id)

    return payouts


def send_payout(payout: Payout) -> Payout:
    """Transfer a pending payout to the owner's connected account."""
    if payout.status not in (Payout.PENDING, Payout.FAILED):
        return payout

    owner = payout.owner
    if not owner.stripe_connect_id:
        payout.status = Payout.FAILED
        payout.failure_reason = "Owner has no connected payout account."
        payout.save(update_fields=["status", "failure_reason"])
        logger.warning("Payout %s failed: owner %s has no connected account", payout.pk, owner.pk)
        return payout

    payout.status = Payout.PROCESSING
    payout.save(update_fields=["status"])
    try:
        transfer = gateway.create_transfer(
            amount=payout.amount,
            destination=owner.stripe_connect_id,
            metadata={"payout_id": payout.pk, "owner_id": owner.pk},
        )
    except stripe.StripeError as exc:
        payout.status = Payout.FAILED
        payout.failure_reason = str(exc)
        payout.save(update_fields=["status", "failure_reason"])
        logger.exception("Transfer for payout %s failed", payout.pk)
        return payout

    payout.status = Payout.COMPLETED
    payout.stripe_transfer_id = transfer.id
    payout.processed_at = timezone.now()
    payout.failure_reason = ""
    payout.save(update_fields=["status", "stripe_transfer_id", "processed_at", "failure_reason"])
    logger.info("Payout %s sent as transfer %s", payout.pk, transfer.id)
    return payout
