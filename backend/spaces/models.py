from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from .validators import validate_amenities, validate_photo_urls


class Space(models.Model):
    """A parking listing offered by one owner."""

    DRIVEWAY = "driveway"
    GARAGE = "garage"
    PARKING_SPOT = "parking_spot"
    CAR_PARK = "car_park"
    SPACE_TYPES = [
        (DRIVEWAY, "Driveway"),
        (GARAGE, "Garage"),
        (PARKING_SPOT, "Parking spot"),
        (CAR_PARK, "Car park"),
    ]

    PENDING = "pending"
    ACTIVE = "active"
    PAUSED = "paused"
    REJECTED = "rejected"
    STATUSES = [
        (PENDING, "Pending approval"),
        (ACTIVE, "Active"),
        (PAUSED, "Paused"),
        (REJECTED, "Rejected"),
    ]

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="spaces",
    )
    name = models.CharField(max_length=255)
    space_type = models.CharField(max_length=20, choices=SPACE_TYPES, default=DRIVEWAY)
    address_line1 = models.CharField(max_length=255)
    address_line2 = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=100)
    postcode = models.CharField(max_length=20)
    latitude = models.DecimalField(max_digits=10, decimal_places=8, null=True, blank=True)
    longitude = models.DecimalField(max_digits=11, decimal_places=8, null=True, blank=True)
    description = models.TextField(blank=True)
    amenities = models.JSONField(default=list, blank=True, validators=[validate_amenities])
    access_instructions = models.TextField(blank=True)
    photos = models.JSONField(default=list, blank=True, validators=[validate_photo_urls])
    price_per_hour = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    price_per_day = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    min_booking_hours = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    max_booking_days = models.PositiveIntegerField(default=30, validators=[MinValueValidator(1)])
    status = models.CharField(max_length=12, choices=STATUSES, default=PENDING)
    rejection_reason = models.TextField(blank=True)
    total_earnings = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total_bookings = models.PositiveIntegerField(default=0)
    average_rating = models.DecimalField(max_digits=3, decimal_places=2, default=Decimal("0.00"))
    review_count = models.PositiveIntegerField(default=0)
    verified_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "city"], name="space_status_city_idx"),
            models.Index(fields=["postcode"], name="space_postcode_idx"),
        ]

    def __str__(self):
        return f"{self.name} ({self.city})"

    def clean(self):
        super().clean()
        if self.min_booking_hours and self.max_booking_days:
            if self.min_booking_hours > self.max_booking_days * 24:
                raise ValidationError(
                    {"min_booking_hours": "Minimum booking length cannot exceed the maximum."}
                )

    @property
    def is_bookable(self) -> bool:
        return self.status == self.ACTIVE

    def approve(self):
        self.status = self.ACTIVE
        self.rejection_reason = ""
        self.verified_at = timezone.now()
        self.save(update_fields=["status", "rejection_reason", "verified_at", "updated_at"])

    def reject(self, reason: str):
        self.status = self.REJECTED
        self.rejection_reason = reason
        self.save(update_fields=["status", "rejection_reason", "updated_at"])

    def set_status(self, status: str):
        self.status = status
        self.save(update_fields=["status", "updated_at"])


class Garage(models.Model):
    """Platform-operated garage with a fixed number of bays."""

    name = models.CharField(max_length=255)
    location = models.CharField(max_length=255)
    total_spaces = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    price_per_hour = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    rating = models.DecimalField(max_digits=3, decimal_places=2, default=Decimal("0.00"))
    amenities = models.JSONField(default=list, blank=True, validators=[validate_amenities])
    image_url = models.URLField(max_length=500, blank=True)
    latitude = models.DecimalField(max_digits=10, decimal_places=8, null=True, blank=True)
    longitude = models.DecimalField(max_digits=11, decimal_places=8, null=True, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name
