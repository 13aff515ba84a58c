from __future__ import annotations

from decimal import Decimal

from django.db import transaction
from django.db.models import Avg, Count
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied, ValidationError

from bookings.models import Booking, Review
from core.context import RequestContext
from spaces.models import Space


def _refresh_space_rating(space_id: int):
    stats = Review.objects.filter(space_id=space_id).aggregate(avg=Avg("rating"), count=Count("id"))
    average = Decimal(str(stats["avg"] or 0)).quantize(Decimal("0.01"))
    Space.objects.filter(pk=space_id).update(average_rating=average, review_count=stats["count"])


def leave_review(ctx: RequestContext, booking: Booking, *, rating: int, review_text: str = "") -> Review:
    if booking.renter_id != ctx.user_id:
        raise PermissionDenied("Only the renter can review this booking.")
    if booking.booking_status != Booking.COMPLETED:
        raise ValidationError({"detail": "Only completed bookings can be reviewed."})
    if Review.objects.filter(booking=booking).exists():
        raise ValidationError({"detail": "This booking has already been reviewed."})

    with transaction.atomic():
        review = Review.objects.create(
            booking=booking,
            space_id=booking.space_id,
            reviewer=ctx.user,
            rating=rating,
            review_text=review_text,
        )
        _refresh_space_rating(booking.space_id)
    return review


def respond_to_review(ctx: RequestContext, review: Review, *, response_text: str) -> Review:
    if review.booking.owner_id != ctx.user_id:
        raise PermissionDenied("Only the space owner can respond to this review.")
    review.response_text = response_text
    review.responded_at = timezone.now()
    review.save(update_fields=["response_text", "responded_at"])
    return review
