from rest_framework import serializers

from accounts.serializers import PublicProfileSerializer
from .models import Garage, Space
from .validators import AMENITIES, MAX_PHOTOS, normalize_amenities


class SpaceSerializer(serializers.ModelSerializer):
    """Public view of a listing."""

    owner = PublicProfileSerializer(read_only=True)
    amenities = serializers.ListField(
        child=serializers.ChoiceField(choices=AMENITIES),
        required=False,
    )
    photos = serializers.ListField(
        child=serializers.URLField(max_length=500),
        max_length=MAX_PHOTOS,
        required=False,
    )

    class Meta:
        model = Space
        fields = [
            "id",
            "owner",
            "name",
            "space_type",
            "address_line1",
            "address_line2",
            "city",
            "postcode",
            "latitude",
            "longitude",
            "description",
            "amenities",
            "photos",
            "price_per_hour",
            "price_per_day",
            "min_booking_hours",
            "max_booking_days",
            "status",
            "average_rating",
            "review_count",
            "created_at",
        ]
        read_only_fields = [
            "status",
            "average_rating",
            "review_count",
            "created_at",
        ]

    def validate_amenities(self, value):
        return normalize_amenities(value)

    def validate(self, attrs):
        min_hours = attrs.get("min_booking_hours", getattr(self.instance, "min_booking_hours", 1))
        max_days = attrs.get("max_booking_days", getattr(self.instance, "max_booking_days", 30))
        if min_hours > max_days * 24:
            raise serializers.ValidationError(
                {"min_booking_hours": "Minimum booking length cannot exceed the maximum."}
            )
        return attrs


class OwnerSpaceSerializer(SpaceSerializer):
    """Listing as its owner sees it, with moderation and earnings fields."""

    class Meta(SpaceSerializer.Meta):
        fields = SpaceSerializer.Meta.fields + [
            "access_instructions",
            "rejection_reason",
            "total_earnings",
            "total_bookings",
            "verified_at",
            "updated_at",
        ]
        read_only_fields = SpaceSerializer.Meta.read_only_fields + [
            "rejection_reason",
            "total_earnings",
            "total_bookings",
            "verified_at",
            "updated_at",
        ]


class SpaceRejectSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=1000)


class QuoteRequestSerializer(serializers.Serializer):
    start = serializers.DateTimeField()
    end = serializers.DateTimeField()
    pricing = serializers.ChoiceField(choices=["hourly", "daily"], default="hourly")


class GarageSerializer(serializers.ModelSerializer):
    class Meta:
        model = Garage
        fields = [
            "id",
            "name",
            "location",
            "total_spaces",
            "price_per_hour",
            "rating",
            "amenities",
            "image_url",
            "latitude",
            "longitude",
        ]
        read_only_fields = fields
