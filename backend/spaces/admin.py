from django.contrib import admin

from .models import Garage, Space


@admin.register(Space)
class SpaceAdmin(admin.ModelAdmin):
    list_display = ("name", "owner", "city", "postcode", "space_type", "price_per_hour", "status", "created_at")
    list_filter = ("status", "space_type", "city")
    search_fields = ("name", "postcode", "owner__email")
    readonly_fields = ("total_earnings", "total_bookings", "average_rating", "review_count", "verified_at")
    actions = ["approve_spaces", "reject_spaces"]

    @admin.action(description="Approve selected spaces")
    def approve_spaces(self, request, queryset):
        for space in queryset.exclude(status=Space.ACTIVE):
            space.approve()

    @admin.action(description="Reject selected spaces")
    def reject_spaces(self, request, queryset):
        for space in queryset.exclude(status=Space.REJECTED):
            space.reject("Rejected by moderation.")


@admin.register(Garage)
class GarageAdmin(admin.ModelAdmin):
    list_display = ("name", "location", "total_spaces", "price_per_hour", "is_active")
    list_filter = ("is_active",)
    search_fields = ("name", "location")
