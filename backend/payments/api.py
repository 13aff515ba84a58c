import logging

import stripe
from django.conf import settings
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound
from rest_framework.response import Response
from rest_framework.views import APIView

from bookings.models import Booking
from .models import Payment, Payout
from .serializers import (
    PaymentConfirmSerializer,
    PaymentIntentSerializer,
    PaymentSerializer,
    PaymentStartSerializer,
    PayoutSerializer,
    RefundRequestSerializer,
)
from .services import gateway
from .services.intents import resolve_booking, start_payment
from .services.reconciler import reconcile_intent
from .services.settlement import refund_payment, settle_outcome

logger = logging.getLogger(__name__)


def _payer_of(booking):
    return booking.renter_id if isinstance(booking, Booking) else booking.user_id


def _charge_id(intent) -> str:
    if isinstance(intent, dict):
        charge = intent.get("latest_charge") or ""
    else:
        charge = getattr(intent, "latest_charge", None) or ""
    if isinstance(charge, dict):
        charge = charge.get("id", "")
    return charge


class PaymentViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    serializer_class = PaymentSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ["status"]

    def get_queryset(self):
        queryset = Payment.objects.select_related("content_type")
        if self.action == "refund" or self.request.user.is_staff:
            return queryset
        return queryset.filter(user=self.request.user)

    def get_permissions(self):
        if self.action == "refund":
            return [permissions.IsAdminUser()]
        return super().get_permissions()

    @action(detail=False, methods=["post"])
    def intent(self, request):
        serializer = PaymentStartSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = resolve_booking(
            serializer.validated_data["booking_type"],
            serializer.validated_data["booking_id"],
        )
        if booking is None or _payer_of(booking) != request.user.pk:
            raise NotFound("Booking not found.")
        payment, intent = start_payment(booking, user=request.user)
        return Response(
            PaymentIntentSerializer({"payment": payment, "intent": intent}).data,
            status=status.HTTP_201_CREATED,
        )

    @action(detail=False, methods=["post"])
    def confirm(self, request):
        """Ask the provider for the intent's current state and reconcile it."""
        serializer = PaymentConfirmSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        intent_id = serializer.validated_data["payment_intent_id"]
        payment = Payment.objects.filter(stripe_payment_intent_id=intent_id).first()
        if payment is None or (payment.user_id != request.user.pk and not request.user.is_staff):
            raise NotFound("Payment not found.")

        intent = gateway.retrieve_payment_intent(intent_id, amount=payment.amount)
        outcome = settle_outcome(
            reconcile_intent(
                intent_id,
                intent.status,
                amount=gateway.from_minor_units(intent.amount),
                charge_id=_charge_id(intent),
            )
        )
        booking = outcome.booking
        return Response(
            {
                "payment": PaymentSerializer(outcome.payment).data,
                "booking_status": booking.booking_status,
                "payment_status": booking.payment_status,
            }
        )

    @action(detail=True, methods=["post"])
    def refund(self, request, pk=None):
        payment = self.get_object()
        serializer = RefundRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        outcome = refund_payment(
            payment,
            serializer.validated_data.get("amount"),
            reason=serializer.validated_data["reason"],
        )
        logger.info("Staff user %s refunded payment %s", request.user.pk, payment.pk)
        return Response(PaymentSerializer(outcome.payment).data)


class PayoutViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = PayoutSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ["status"]

    def get_queryset(self):
        queryset = Payout.objects.prefetch_related("lines")
        if self.request.user.is_staff:
            return queryset
        return queryset.filter(owner=self.request.user)


class StripeWebhookView(APIView):
    """Receive Stripe payment events and fold them into payments and bookings."""

    permission_classes: list = []
    authentication_classes: list = []

    def post(self, request, *args, **kwargs):
        payload = request.body
        sig_header = request.META.get("HTTP_STRIPE_SIGNATURE")
        if not settings.STRIPE_WEBHOOK_SECRET:
            logger.error("Stripe webhook secret not configured.")
            return Response(status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        try:
            event = stripe.Webhook.construct_event(
                payload, sig_header, settings.STRIPE_WEBHOOK_SECRET
            )
        except ValueError:
            logger.warning("Invalid payload received on Stripe webhook.")
            return Response(status=status.HTTP_400_BAD_REQUEST)
        except stripe.SignatureVerificationError:
            logger.warning("Invalid Stripe signature.")
            return Response(status=status.HTTP_400_BAD_REQUEST)

        event_type = event["type"]
        data_object = event["data"]["object"]

        if event_type == "payment_intent.succeeded":
            outcome = reconcile_intent(
                data_object["id"],
                "succeeded",
                amount=gateway.from_minor_units(data_object["amount"]) if "amount" in data_object else None,
                charge_id=_charge_id(data_object),
            )
        elif event_type == "payment_intent.payment_failed":
            error = data_object.get("last_payment_error") or {}
            outcome = reconcile_intent(
                data_object["id"],
                "failed",
                failure_reason=error.get("message", "") or "",
            )
        elif event_type == "payment_intent.canceled":
            outcome = reconcile_intent(data_object["id"], "canceled", cancel_on_failure=True)
        elif event_type == "payment_intent.processing":
            outcome = reconcile_intent(data_object["id"], "processing")
        elif event_type == "charge.refunded":
            intent_id = data_object.get("payment_intent")
            if not intent_id:
                logger.info("Ignoring refund for charge %s with no payment intent", data_object.get("id"))
                return Response(status=status.HTTP_200_OK)
            outcome = reconcile_intent(
                intent_id,
                "refunded",
                refunded_amount=gateway.from_minor_units(data_object.get("amount_refunded", 0)),
            )
        else:
            logger.debug("Ignoring Stripe event %s", event_type)
            return Response(status=status.HTTP_200_OK)

        settle_outcome(outcome)
        return Response(status=status.HTTP_200_OK)
