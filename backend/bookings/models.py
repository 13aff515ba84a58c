from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import F, Q

from .pricing import HOURLY, PRICING_MODES


class BookingStatusMixin(models.Model):
    """Booking and payment lifecycle shared by space bookings and garage reservations."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DISPUTED = "disputed"
    BOOKING_STATUSES = [
        (PENDING, "Pending"),
        (CONFIRMED, "Confirmed"),
        (ACTIVE, "Active"),
        (COMPLETED, "Completed"),
        (CANCELLED, "Cancelled"),
        (DISPUTED, "Disputed"),
    ]
    TRANSITIONS = {
        PENDING: frozenset({CONFIRMED, CANCELLED}),
        CONFIRMED: frozenset({ACTIVE, CANCELLED}),
        ACTIVE: frozenset({COMPLETED, CANCELLED, DISPUTED}),
        COMPLETED: frozenset(),
        CANCELLED: frozenset(),
        DISPUTED: frozenset(),
    }
    BLOCKING_STATUSES = (CONFIRMED, ACTIVE)
    OPEN_STATUSES = (PENDING, CONFIRMED, ACTIVE)

    PAYMENT_PENDING = "pending"
    PAYMENT_PAID = "paid"
    PAYMENT_REFUNDED = "refunded"
    PAYMENT_PARTIAL_REFUND = "partial_refund"
    PAYMENT_STATUSES = [
        (PAYMENT_PENDING, "Pending"),
        (PAYMENT_PAID, "Paid"),
        (PAYMENT_REFUNDED, "Refunded"),
        (PAYMENT_PARTIAL_REFUND, "Partially refunded"),
    ]

    start_time = models.DateTimeField()
    end_time = models.DateTimeField()
    billable_hours = models.PositiveIntegerField()
    total_price = models.DecimalField(max_digits=10, decimal_places=2)
    booking_status = models.CharField(max_length=12, choices=BOOKING_STATUSES, default=PENDING)
    payment_status = models.CharField(max_length=16, choices=PAYMENT_STATUSES, default=PAYMENT_PENDING)
    check_in_time = models.DateTimeField(null=True, blank=True)
    check_out_time = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    @property
    def is_terminal(self) -> bool:
        return not self.TRANSITIONS[self.booking_status]

    def can_transition_to(self, status: str) -> bool:
        return status in self.TRANSITIONS.get(self.booking_status, ())


class Booking(BookingStatusMixin):
    """Reservation of an owner's space for ``[start_time, end_time)``."""

    RENTER = "renter"
    OWNER = "owner"
    SYSTEM = "system"
    CANCELLED_BY = [
        (RENTER, "Renter"),
        (OWNER, "Owner"),
        (SYSTEM, "System"),
    ]

    space = models.ForeignKey("spaces.Space", on_delete=models.CASCADE, related_name="bookings")
    renter = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="bookings",
    )
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="owner_bookings",
    )
    pricing_mode = models.CharField(max_length=10, choices=PRICING_MODES, default=HOURLY)
    platform_fee = models.DecimalField(max_digits=10, decimal_places=2)
    owner_payout = models.DecimalField(max_digits=10, decimal_places=2)
    stripe_payment_intent_id = models.CharField(max_length=255, blank=True)
    vehicle_registration = models.CharField(max_length=20, blank=True)
    vehicle_make = models.CharField(max_length=50, blank=True)
    vehicle_model = models.CharField(max_length=50, blank=True)
    vehicle_color = models.CharField(max_length=30, blank=True)
    cancellation_reason = models.TextField(blank=True)
    cancelled_by = models.CharField(max_length=10, choices=CANCELLED_BY, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    renter_notes = models.TextField(blank=True)
    owner_notes = models.TextField(blank=True)

    class Meta:
        ordering = ["-start_time", "id"]
        indexes = [
            models.Index(fields=["space", "start_time", "end_time"], name="booking_space_window_idx"),
            models.Index(fields=["booking_status"], name="booking_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(end_time__gt=F("start_time")),
                name="booking_end_after_start",
            ),
            models.CheckConstraint(
                condition=Q(total_price=F("platform_fee") + F("owner_payout")),
                name="booking_price_split_balances",
            ),
        ]

    def __str__(self):
        return f"Booking #{self.pk} for {self.space}"

    def party_for(self, user) -> str:
        if user is None:
            return self.SYSTEM
        if user.pk == self.renter_id:
            return self.RENTER
        if user.pk == self.owner_id:
            return self.OWNER
        return self.SYSTEM


class GarageReservation(BookingStatusMixin):
    """Hourly reservation of one bay in a platform garage."""

    garage = models.ForeignKey("spaces.Garage", on_delete=models.CASCADE, related_name="reservations")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="garage_reservations",
    )
    vehicle_registration = models.CharField(max_length=20, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-start_time", "id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(end_time__gt=F("start_time")),
                name="garage_reservation_end_after_start",
            ),
        ]

    def __str__(self):
        return f"Reservation #{self.pk} at {self.garage}"


class Review(models.Model):
    booking = models.OneToOneField("Booking", on_delete=models.CASCADE, related_name="review")
    space = models.ForeignKey("spaces.Space", on_delete=models.CASCADE, related_name="reviews")
    reviewer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="reviews",
    )
    rating = models.PositiveSmallIntegerField(validators=[MinValueValidator(1), MaxValueValidator(5)])
    review_text = models.TextField(blank=True)
    response_text = models.TextField(blank=True)
    responded_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.rating}/5 for {self.space}"
