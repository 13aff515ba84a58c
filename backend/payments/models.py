from decimal import Decimal

from django.conf import settings
from django.contrib.contenttypes.fields import GenericForeignKey
from django.contrib.contenttypes.models import ContentType
from django.db import models


class Payment(models.Model):
    """Money collected from a user for a space booking or a garage reservation."""

    PENDING = "pending"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    STATUSES = [
        (PENDING, "Pending"),
        (PROCESSING, "Processing"),
        (SUCCEEDED, "Succeeded"),
        (FAILED, "Failed"),
        (CANCELLED, "Cancelled"),
        (REFUNDED, "Refunded"),
    ]

    STRIPE = "stripe"
    PAYPAL = "paypal"
    BANK_TRANSFER = "bank_transfer"
    METHODS = [
        (STRIPE, "Stripe"),
        (PAYPAL, "PayPal"),
        (BANK_TRANSFER, "Bank transfer"),
    ]

    # booking_type -> "app_label.model" of the booked object
    BOOKING_TYPES = {
        "space": "bookings.booking",
        "garage": "bookings.garagereservation",
    }

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="payments",
    )
    content_type = models.ForeignKey(ContentType, on_delete=models.CASCADE)
    object_id = models.PositiveBigIntegerField()
    booking = GenericForeignKey("content_type", "object_id")
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3, default="gbp")
    payment_method = models.CharField(max_length=20, choices=METHODS, default=STRIPE)
    stripe_payment_intent_id = models.CharField(max_length=255, unique=True, null=True, blank=True)
    stripe_charge_id = models.CharField(max_length=255, blank=True)
    stripe_customer_id = models.CharField(max_length=255, blank=True)
    status = models.CharField(max_length=12, choices=STATUSES, default=PENDING)
    failure_reason = models.TextField(blank=True)
    refund_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    refunded_at = models.DateTimeField(null=True, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["content_type", "object_id"], name="payment_booking_idx"),
            models.Index(fields=["status"], name="payment_status_idx"),
        ]

    def __str__(self):
        return f"Payment {self.stripe_payment_intent_id or self.pk} ({self.status})"

    @property
    def booking_type(self) -> str:
        label = f"{self.content_type.app_label}.{self.content_type.model}"
        for name, model_label in self.BOOKING_TYPES.items():
            if model_label == label:
                return name
        return label

    @classmethod
    def for_booking(cls, booking):
        content_type = ContentType.objects.get_for_model(booking)
        return cls.objects.filter(content_type=content_type, object_id=booking.pk)


class Payout(models.Model):
    """One transfer to an owner covering the completed bookings of a period."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    STATUSES = [
        (PENDING, "Pending"),
        (PROCESSING, "Processing"),
        (COMPLETED, "Completed"),
        (FAILED, "Failed"),
    ]

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="payouts",
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default="gbp")
    status = models.CharField(max_length=12, choices=STATUSES, default=PENDING)
    stripe_transfer_id = models.CharField(max_length=255, blank=True)
    period_start = models.DateField()
    period_end = models.DateField()
    bookings_count = models.PositiveIntegerField(default=0)
    processed_at = models.DateTimeField(null=True, blank=True)
    failure_reason = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-period_end", "-created_at"]

    def __str__(self):
        return f"Payout {self.amount} to {self.owner} ({self.period_start} - {self.period_end})"


class PayoutLine(models.Model):
    """The owner's share of one paid booking, waiting to be paid out."""

    OPEN = "open"
    PAID = "paid"
    VOID = "void"
    STATUSES = [
        (OPEN, "Open"),
        (PAID, "Paid out"),
        (VOID, "Void"),
    ]

    booking = models.OneToOneField(
        "bookings.Booking",
        on_delete=models.CASCADE,
        related_name="payout_line",
    )
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="payout_lines",
    )
    payment = models.ForeignKey(
        "Payment",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="payout_lines",
    )
    payout = models.ForeignKey(
        "Payout",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="lines",
    )
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    status = models.CharField(max_length=8, choices=STATUSES, default=OPEN)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]

    def __str__(self):
        return f"{self.amount} for booking #{self.booking_id} ({self.status})"
