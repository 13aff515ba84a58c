from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from django.db import transaction
from django.utils import timezone

from bookings.models import Booking
from bookings.pricing import to_money
from bookings.services.lifecycle import transition_booking
from bookings.services.reservations import slot_still_free
from payments.exceptions import PaymentMismatch
from payments.models import Payment, PayoutLine

logger = logging.getLogger(__name__)

PROVIDER_STATUSES = {
    "pending": Payment.PENDING,
    "requires_payment_method": Payment.PENDING,
    "requires_confirmation": Payment.PENDING,
    "requires_action": Payment.PENDING,
    "requires_capture": Payment.PENDING,
    "processing": Payment.PROCESSING,
    "succeeded": Payment.SUCCEEDED,
    "failed": Payment.FAILED,
    "canceled": Payment.CANCELLED,
    "cancelled": Payment.CANCELLED,
    "refunded": Payment.REFUNDED,
}

SETTLED_STATUSES = (Payment.SUCCEEDED, Payment.REFUNDED)


@dataclass
class ReconcileOutcome:
    payment: Payment
    booking: object
    changed: bool = False
    confirmed: bool = False
    refund_due: Optional[Decimal] = None


def normalize_provider_status(raw: str) -> str:
    status = PROVIDER_STATUSES.get((raw or "").strip().lower())
    if status is None:
        raise PaymentMismatch(f"Unknown payment status '{raw}'.")
    return status


def reconcile_intent(intent_id: str, provider_status: str, **kwargs) -> ReconcileOutcome:
    """Apply a provider status to the payment identified by its intent id."""
    with transaction.atomic():
        try:
            payment = Payment.objects.select_for_update().get(stripe_payment_intent_id=intent_id)
        except Payment.DoesNotExist:
            logger.warning("Provider status %s for unknown intent %s", provider_status, intent_id)
            raise PaymentMismatch(f"No payment found for intent {intent_id}.")
        return _apply(payment, provider_status, **kwargs)


def apply_payment_status(payment: Payment, provider_status: str, **kwargs) -> ReconcileOutcome:
    with transaction.atomic():
        payment = Payment.objects.select_for_update().get(pk=payment.pk)
        return _apply(payment, provider_status, **kwargs)


def _apply(
    payment: Payment,
    provider_status: str,
    *,
    amount: Optional[Decimal] = None,
    refunded_amount: Optional[Decimal] = None,
    failure_reason: str = "",
    charge_id: str = "",
    cancel_on_failure: bool = False,
) -> ReconcileOutcome:
    status = normalize_provider_status(provider_status)
    booking = payment.booking
    if booking is None:
        raise PaymentMismatch("Payment is not linked to a booking.")
    if amount is not None and to_money(amount) != payment.amount:
        logger.warning(
            "Payment %s amount mismatch: provider %s, recorded %s",
            payment.pk,
            amount,
            payment.amount,
        )
        raise PaymentMismatch("Reported amount does not match the payment.")

    # The booking row is locked too so lifecycle moves do not interleave.
    booking = type(booking).objects.select_for_update().get(pk=booking.pk)
    outcome = ReconcileOutcome(payment=payment, booking=booking)

    if status == Payment.SUCCEEDED:
        _apply_succeeded(outcome, charge_id)
    elif status in (Payment.FAILED, Payment.CANCELLED):
        _apply_failed(outcome, status, failure_reason, cancel_on_failure)
    elif status == Payment.REFUNDED:
        _apply_refunded(outcome, payment.amount if refunded_amount is None else refunded_amount)
    else:
        _apply_in_flight(outcome, status)

    if outcome.changed:
        logger.info(
            "Payment %s now %s; booking %s is %s/%s",
            payment.pk,
            payment.status,
            booking.pk,
            booking.booking_status,
            booking.payment_status,
        )
    return outcome


def _apply_succeeded(outcome: ReconcileOutcome, charge_id: str):
    payment, booking = outcome.payment, outcome.booking
    if payment.status == Payment.REFUNDED:
        logger.info("Ignoring stale success for refunded payment %s", payment.pk)
        return

    if payment.status != Payment.SUCCEEDED:
        payment.status = Payment.SUCCEEDED
        payment.failure_reason = ""
        if charge_id:
            payment.stripe_charge_id = charge_id
        payment.save(update_fields=["status", "failure_reason", "stripe_charge_id", "updated_at"])
        outcome.changed = True

    if booking.payment_status == booking.PAYMENT_PENDING:
        booking.payment_status = booking.PAYMENT_PAID
        booking.save(update_fields=["payment_status", "updated_at"])
        outcome.changed = True

    if booking.booking_status == booking.PENDING:
        if slot_still_free(booking):
            transition_booking(booking, booking.CONFIRMED)
            outcome.confirmed = True
        else:
            logger.warning("Booking %s lost its slot before payment cleared", booking.pk)
            if isinstance(booking, Booking):
                booking.cancelled_by = Booking.SYSTEM
                booking.cancellation_reason = "The slot was taken before payment completed."
                booking.save(update_fields=["cancelled_by", "cancellation_reason", "updated_at"])
            transition_booking(booking, booking.CANCELLED)
        outcome.changed = True

    if booking.booking_status == booking.CANCELLED:
        if booking.payment_status == booking.PAYMENT_PAID and outcome.changed:
            outcome.refund_due = payment.amount - payment.refund_amount
        return

    if isinstance(booking, Booking):
        _, created = PayoutLine.objects.get_or_create(
            booking=booking,
            defaults={
                "owner_id": booking.owner_id,
                "payment": payment,
                "amount": booking.owner_payout,
            },
        )
        if created:
            outcome.changed = True


def _apply_failed(outcome: ReconcileOutcome, status: str, failure_reason: str, cancel_on_failure: bool):
    payment, booking = outcome.payment, outcome.booking
    if payment.status in SETTLED_STATUSES:
        logger.info("Ignoring %s for settled payment %s", status, payment.pk)
        return

    if payment.status != status or (failure_reason and payment.failure_reason != failure_reason):
        payment.status = status
        payment.failure_reason = failure_reason or payment.failure_reason
        payment.save(update_fields=["status", "failure_reason", "updated_at"])
        outcome.changed = True

    if cancel_on_failure and booking.booking_status == booking.PENDING:
        if isinstance(booking, Booking):
            booking.cancelled_by = Booking.SYSTEM
            booking.cancellation_reason = "Payment was not completed."
            booking.save(update_fields=["cancelled_by", "cancellation_reason", "updated_at"])
        transition_booking(booking, booking.CANCELLED)
        outcome.changed = True


def _apply_refunded(outcome: ReconcileOutcome, refunded_amount: Decimal):
    payment, booking = outcome.payment, outcome.booking
    refunded_amount = to_money(refunded_amount)

    if payment.status not in SETTLED_STATUSES:
        raise PaymentMismatch("A refund was reported for a payment that never succeeded.")
    if refunded_amount <= 0 or refunded_amount > payment.amount:
        raise PaymentMismatch("Reported refund amount is out of range.")
    if payment.status == Payment.REFUNDED and refunded_amount <= payment.refund_amount:
        return

    payment.status = Payment.REFUNDED
    payment.refund_amount = refunded_amount
    payment.refunded_at = timezone.now()
    payment.save(update_fields=["status", "refund_amount", "refunded_at", "updated_at"])

    full = refunded_amount >= payment.amount
    booking.payment_status = booking.PAYMENT_REFUNDED if full else booking.PAYMENT_PARTIAL_REFUND
    booking.save(update_fields=["payment_status", "updated_at"])
    outcome.changed = True

    if isinstance(booking, Booking):
        _adjust_payout_line(booking, payment, refunded_amount, full)


def _adjust_payout_line(booking: Booking, payment: Payment, refunded_amount: Decimal, full: bool):
    line = PayoutLine.objects.filter(booking=booking).first()
    if line is None:
        return
    if line.status != PayoutLine.OPEN:
        logger.warning(
            "Refund on booking %s after its payout line was %s", booking.pk, line.status
        )
        return
    if full:
        line.status = PayoutLine.VOID
        line.save(update_fields=["status"])
        return
    kept = (payment.amount - refunded_amount) / payment.amount
    line.amount = to_money(booking.owner_payout * kept)
    line.save(update_fields=["amount"])


def _apply_in_flight(outcome: ReconcileOutcome, status: str):
    payment = outcome.payment
    if payment.status in (Payment.PENDING, Payment.PROCESSING) and payment.status != status:
        payment.status = status
        payment.save(update_fields=["status", "updated_at"])
        outcome.changed = True
