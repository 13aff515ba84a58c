import logging
from decimal import Decimal

from django.db.models import Q
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound
from rest_framework.response import Response

from bookings.models import Booking, GarageReservation, Review
from bookings.serializers import (
    BookingCancelSerializer,
    BookingCreateSerializer,
    BookingSerializer,
    BookingStatusSerializer,
    GarageReservationCreateSerializer,
    GarageReservationSerializer,
    ReviewCreateSerializer,
    ReviewResponseSerializer,
    ReviewSerializer,
)
from bookings.services.cancellations import cancel_booking
from bookings.services.lifecycle import request_transition
from bookings.services.reservations import reserve_garage, reserve_space
from bookings.services.reviews import leave_review, respond_to_review
from core.context import RequestContext
from payments.models import Payment
from payments.serializers import PaymentIntentSerializer
from payments.services.intents import start_payment

logger = logging.getLogger(__name__)


def _cancellation_payload(result, serializer_class):
    return {
        "booking": serializer_class(result.booking).data,
        "refund_percent": result.refund_percent,
        "refund_amount": f"{result.refund_amount:.2f}",
    }


class BookingViewSet(
    mixins.CreateModelMixin,
    mixins.RetrieveModelMixin,
    mixins.ListModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ["booking_status", "payment_status", "space"]
    ordering_fields = ["start_time", "created_at", "total_price"]

    def get_queryset(self):
        user = self.request.user
        queryset = Booking.objects.select_related("space", "renter", "owner")
        role = self.request.query_params.get("role", "")
        if role == "renter":
            return queryset.filter(renter=user)
        if role == "owner":
            return queryset.filter(owner=user)
        if user.is_staff:
            return queryset
        return queryset.filter(Q(renter=user) | Q(owner=user))

    def create(self, request, *args, **kwargs):
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        space = data.pop("space")
        start = data.pop("start_time")
        end = data.pop("end_time")
        daily = data.pop("pricing") == "daily"

        ctx = RequestContext.from_request(request)
        booking = reserve_space(ctx, space, start, end, daily=daily, **data)
        payment, intent = start_payment(booking, user=request.user)
        return Response(
            {
                "booking": BookingSerializer(booking).data,
                "payment": PaymentIntentSerializer({"payment": payment, "intent": intent}).data,
            },
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        booking = self.get_object()
        serializer = BookingCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = cancel_booking(
            RequestContext.from_request(request),
            booking,
            reason=serializer.validated_data["reason"],
        )
        return Response(_cancellation_payload(result, BookingSerializer))

    @action(detail=True, methods=["post"], url_path="status")
    def change_status(self, request, pk=None):
        booking = self.get_object()
        serializer = BookingStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = request_transition(
            RequestContext.from_request(request),
            booking,
            serializer.validated_data["status"],
            owner_notes=serializer.validated_data.get("owner_notes"),
        )
        return Response(BookingSerializer(booking).data)

    @action(detail=True, methods=["post"], url_path="review")
    def review(self, request, pk=None):
        booking = self.get_object()
        serializer = ReviewCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        review = leave_review(
            RequestContext.from_request(request),
            booking,
            rating=serializer.validated_data["rating"],
            review_text=serializer.validated_data["review_text"],
        )
        return Response(ReviewSerializer(review).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="review/respond")
    def respond(self, request, pk=None):
        booking = self.get_object()
        try:
            review = booking.review
        except Review.DoesNotExist:
            raise NotFound("This booking has no review yet.")
        serializer = ReviewResponseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        review = respond_to_review(
            RequestContext.from_request(request),
            review,
            response_text=serializer.validated_data["response_text"],
        )
        return Response(ReviewSerializer(review).data)

    @action(detail=False, methods=["get"])
    def invoice(self, request):
        """Everything the current user has been charged for, with refunds netted off."""
        user = request.user
        items = []
        for booking in Booking.objects.filter(renter=user).select_related("space").order_by("start_time"):
            items.append(self._invoice_line("space", booking, booking.space.name))
        for reservation in GarageReservation.objects.filter(user=user).select_related("garage").order_by("start_time"):
            items.append(self._invoice_line("garage", reservation, reservation.garage.name))

        charged = sum((item["_charged"] for item in items), Decimal("0.00"))
        refunded = sum((item["_refunded"] for item in items), Decimal("0.00"))
        for item in items:
            item["charged"] = f"{item.pop('_charged'):.2f}"
            item["refunded"] = f"{item.pop('_refunded'):.2f}"
        return Response(
            {
                "items": items,
                "total_charged": f"{charged:.2f}",
                "total_refunded": f"{refunded:.2f}",
                "net_total": f"{charged - refunded:.2f}",
            }
        )

    @staticmethod
    def _invoice_line(booking_type, booking, place):
        payments = Payment.for_booking(booking).filter(status__in=[Payment.SUCCEEDED, Payment.REFUNDED])
        charged = sum((payment.amount for payment in payments), Decimal("0.00"))
        refunded = sum((payment.refund_amount for payment in payments), Decimal("0.00"))
        return {
            "booking_type": booking_type,
            "booking_id": booking.pk,
            "place": place,
            "start_time": booking.start_time,
            "end_time": booking.end_time,
            "booking_status": booking.booking_status,
            "payment_status": booking.payment_status,
            "_charged": charged,
            "_refunded": refunded,
        }


class GarageReservationViewSet(
    mixins.CreateModelMixin,
    mixins.RetrieveModelMixin,
    mixins.ListModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = GarageReservationSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ["booking_status", "garage"]

    def get_queryset(self):
        queryset = GarageReservation.objects.select_related("garage")
        if self.request.user.is_staff:
            return queryset
        return queryset.filter(user=self.request.user)

    def create(self, request, *args, **kwargs):
        serializer = GarageReservationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        reservation = reserve_garage(
            RequestContext.from_request(request),
            data["garage"],
            data["start_time"],
            data["end_time"],
            vehicle_registration=data["vehicle_registration"],
        )
        payment, intent = start_payment(reservation, user=request.user)
        return Response(
            {
                "reservation": GarageReservationSerializer(reservation).data,
                "payment": PaymentIntentSerializer({"payment": payment, "intent": intent}).data,
            },
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        reservation = self.get_object()
        result = cancel_booking(RequestContext.from_request(request), reservation)
        return Response(_cancellation_payload(result, GarageReservationSerializer))
