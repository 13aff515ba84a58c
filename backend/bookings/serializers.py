from rest_framework import serializers

from accounts.serializers import BookingPartySerializer, PublicProfileSerializer
from bookings.models import Booking, GarageReservation, Review
from spaces.models import Garage, Space


class SpaceSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Space
        fields = ["id", "name", "address_line1", "city", "postcode", "space_type"]


class ReviewSerializer(serializers.ModelSerializer):
    reviewer = PublicProfileSerializer(read_only=True)

    class Meta:
        model = Review
        fields = [
            "id",
            "booking",
            "space",
            "reviewer",
            "rating",
            "review_text",
            "response_text",
            "responded_at",
            "created_at",
        ]
        read_only_fields = fields


class BookingSerializer(serializers.ModelSerializer):
    space = SpaceSummarySerializer(read_only=True)
    renter = BookingPartySerializer(read_only=True)
    owner = BookingPartySerializer(read_only=True)
    access_instructions = serializers.SerializerMethodField()
    has_review = serializers.SerializerMethodField()

    class Meta:
        model = Booking
        fields = [
            "id",
            "space",
            "renter",
            "owner",
            "start_time",
            "end_time",
            "pricing_mode",
            "billable_hours",
            "total_price",
            "platform_fee",
            "owner_payout",
            "booking_status",
            "payment_status",
            "vehicle_registration",
            "vehicle_make",
            "vehicle_model",
            "vehicle_color",
            "renter_notes",
            "owner_notes",
            "check_in_time",
            "check_out_time",
            "cancelled_by",
            "cancellation_reason",
            "cancelled_at",
            "access_instructions",
            "has_review",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_access_instructions(self, obj: Booking) -> str:
        # Only shared once the booking is paid for.
        if obj.booking_status in (Booking.CONFIRMED, Booking.ACTIVE):
            return obj.space.access_instructions
        return ""

    def get_has_review(self, obj: Booking) -> bool:
        return Review.objects.filter(booking_id=obj.pk).exists()


class BookingCreateSerializer(serializers.Serializer):
    space_id = serializers.PrimaryKeyRelatedField(queryset=Space.objects.all(), source="space")
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField()
    pricing = serializers.ChoiceField(choices=["hourly", "daily"], default="hourly")
    vehicle_registration = serializers.CharField(max_length=20, required=False, allow_blank=True)
    vehicle_make = serializers.CharField(max_length=50, required=False, allow_blank=True)
    vehicle_model = serializers.CharField(max_length=50, required=False, allow_blank=True)
    vehicle_color = serializers.CharField(max_length=30, required=False, allow_blank=True)
    renter_notes = serializers.CharField(required=False, allow_blank=True)

    def validate_vehicle_registration(self, value: str) -> str:
        return value.replace(" ", "").upper()


class BookingCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class BookingStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[Booking.ACTIVE, Booking.COMPLETED, Booking.DISPUTED])
    owner_notes = serializers.CharField(required=False, allow_blank=True)


class ReviewCreateSerializer(serializers.Serializer):
    rating = serializers.IntegerField(min_value=1, max_value=5)
    review_text = serializers.CharField(required=False, allow_blank=True, default="")


class ReviewResponseSerializer(serializers.Serializer):
    response_text = serializers.CharField()


class GarageReservationSerializer(serializers.ModelSerializer):
    garage_name = serializers.CharField(source="garage.name", read_only=True)
    garage_location = serializers.CharField(source="garage.location", read_only=True)

    class Meta:
        model = GarageReservation
        fields = [
            "id",
            "garage",
            "garage_name",
            "garage_location",
            "start_time",
            "end_time",
            "billable_hours",
            "total_price",
            "booking_status",
            "payment_status",
            "vehicle_registration",
            "check_in_time",
            "check_out_time",
            "cancelled_at",
            "created_at",
        ]
        read_only_fields = fields


class GarageReservationCreateSerializer(serializers.Serializer):
    garage_id = serializers.PrimaryKeyRelatedField(queryset=Garage.objects.all(), source="garage")
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField()
    vehicle_registration = serializers.CharField(max_length=20, required=False, allow_blank=True, default="")

    def validate_vehicle_registration(self, value: str) -> str:
        return value.replace(" ", "").upper()
