from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from rest_framework.exceptions import ValidationError

from bookings.pricing import to_money
from bookings.services.emails import send_booking_confirmation_email
from payments.exceptions import PaymentMismatch
from payments.models import Payment
from payments.services import gateway
from payments.services.reconciler import ReconcileOutcome, apply_payment_status

logger = logging.getLogger(__name__)


def refundable_amount(payment: Payment) -> Decimal:
    if payment.status not in (Payment.SUCCEEDED, Payment.REFUNDED):
        return Decimal("0.00")
    return payment.amount - payment.refund_amount


def refund_payment(payment: Payment, amount: Optional[Decimal] = None, *, reason: str = "requested_by_customer") -> ReconcileOutcome:
    """Send a refund to the provider and fold the result back into the payment and booking."""
    remaining = refundable_amount(payment)
    if remaining <= 0:
        raise PaymentMismatch("This payment has nothing left to refund.")

    amount = remaining if amount is None else to_money(amount)
    if amount <= 0 or amount > remaining:
        raise ValidationError({"amount": f"Refund must be between 0.01 and {remaining}."})

    refund = gateway.create_refund(
        intent_id=payment.stripe_payment_intent_id,
        amount=amount,
        reason=reason,
    )
    logger.info("Refund %s of %s issued for payment %s", refund.id, amount, payment.pk)
    return apply_payment_status(
        payment,
        "refunded",
        refunded_amount=payment.refund_amount + amount,
    )


def latest_settled_payment(booking) -> Optional[Payment]:
    return (
        Payment.for_booking(booking)
        .filter(status__in=[Payment.SUCCEEDED, Payment.REFUNDED])
        .order_by("-created_at")
        .first()
    )


def refund_booking(booking, amount: Decimal) -> Optional[ReconcileOutcome]:
    payment = latest_settled_payment(booking)
    if payment is None:
        logger.warning("No settled payment to refund for booking %s", booking.pk)
        return None
    return refund_payment(payment, amount)


def settle_outcome(outcome: ReconcileOutcome) -> ReconcileOutcome:
    """Run the side effects a reconciliation asks for: confirmation mail and owed refunds."""
    if outcome.confirmed:
        send_booking_confirmation_email(booking=outcome.booking)
    if outcome.refund_due:
        refund_payment(outcome.payment, outcome.refund_due, reason="duplicate")
    return outcome
