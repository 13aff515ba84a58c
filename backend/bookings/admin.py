from django.contrib import admin

from .models import Booking, GarageReservation, Review


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ("id", "space", "renter", "start_time", "end_time", "total_price", "booking_status", "payment_status")
    list_filter = ("booking_status", "payment_status", "pricing_mode")
    search_fields = ("space__name", "renter__email", "owner__email", "vehicle_registration")
    date_hierarchy = "start_time"
    readonly_fields = ("total_price", "platform_fee", "owner_payout", "billable_hours", "stripe_payment_intent_id")


@admin.register(GarageReservation)
class GarageReservationAdmin(admin.ModelAdmin):
    list_display = ("id", "garage", "user", "start_time", "end_time", "total_price", "booking_status", "payment_status")
    list_filter = ("booking_status", "payment_status")
    search_fields = ("garage__name", "user__email", "vehicle_registration")


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ("space", "reviewer", "rating", "created_at")
    list_filter = ("rating",)
    search_fields = ("space__name", "reviewer__email")
