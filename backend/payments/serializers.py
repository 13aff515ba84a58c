from rest_framework import serializers

from .models import Payment, Payout, PayoutLine


class PaymentSerializer(serializers.ModelSerializer):
    booking_type = serializers.CharField(read_only=True)
    booking_id = serializers.IntegerField(source="object_id", read_only=True)

    class Meta:
        model = Payment
        fields = [
            "id",
            "booking_type",
            "booking_id",
            "amount",
            "currency",
            "payment_method",
            "status",
            "stripe_payment_intent_id",
            "failure_reason",
            "refund_amount",
            "refunded_at",
            "created_at",
        ]
        read_only_fields = fields


class PaymentIntentSerializer(serializers.Serializer):
    """Returned when a payment is started; ``client_secret`` goes to the card form."""

    payment_id = serializers.IntegerField(source="payment.pk")
    intent_id = serializers.CharField(source="intent.id")
    client_secret = serializers.CharField(source="intent.client_secret")
    amount = serializers.DecimalField(source="payment.amount", max_digits=10, decimal_places=2)
    currency = serializers.CharField(source="payment.currency")
    status = serializers.CharField(source="payment.status")


class PaymentStartSerializer(serializers.Serializer):
    booking_type = serializers.ChoiceField(choices=list(Payment.BOOKING_TYPES))
    booking_id = serializers.IntegerField(min_value=1)


class PaymentConfirmSerializer(serializers.Serializer):
    payment_intent_id = serializers.CharField(max_length=255)


class RefundRequestSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, min_value=0)
    reason = serializers.ChoiceField(
        choices=["requested_by_customer", "duplicate", "fraudulent"],
        default="requested_by_customer",
    )


class PayoutLineSerializer(serializers.ModelSerializer):
    class Meta:
        model = PayoutLine
        fields = ["id", "booking", "amount", "status", "created_at"]
        read_only_fields = fields


class PayoutSerializer(serializers.ModelSerializer):
    lines = PayoutLineSerializer(many=True, read_only=True)

    class Meta:
        model = Payout
        fields = [
            "id",
            "amount",
            "currency",
            "status",
            "stripe_transfer_id",
            "period_start",
            "period_end",
            "bookings_count",
            "processed_at",
            "failure_reason",
            "created_at",
            "lines",
        ]
        read_only_fields = fields
