import logging
from decimal import Decimal

from django.db.models import Count, Q, Sum
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response

from bookings.models import Booking, Review
from bookings.serializers import ReviewSerializer
from bookings.services.reservations import blocked_windows, quote_space
from payments.models import Payout, PayoutLine
from .filters import SpaceFilter
from .models import Garage, Space
from .serializers import (
    GarageSerializer,
    OwnerSpaceSerializer,
    QuoteRequestSerializer,
    SpaceRejectSerializer,
    SpaceSerializer,
)

logger = logging.getLogger(__name__)

PUBLIC_ACTIONS = {"list", "retrieve", "quote", "availability", "reviews"}
STAFF_ACTIONS = {"approve", "reject"}


class SpaceViewSet(
    mixins.CreateModelMixin,
    mixins.RetrieveModelMixin,
    mixins.UpdateModelMixin,
    mixins.ListModelMixin,
    viewsets.GenericViewSet,
):
    """Search, list and manage parking spaces. Spaces are never deleted, only paused."""

    serializer_class = SpaceSerializer
    filterset_class = SpaceFilter
    search_fields = ["name", "description", "address_line1", "city", "postcode"]
    ordering_fields = ["price_per_hour", "average_rating", "created_at"]

    def get_permissions(self):
        if self.action in PUBLIC_ACTIONS:
            return [permissions.AllowAny()]
        if self.action in STAFF_ACTIONS:
            return [permissions.IsAdminUser()]
        return [permissions.IsAuthenticated()]

    def get_queryset(self):
        user = self.request.user
        queryset = Space.objects.select_related("owner")
        if self.action == "list":
            return queryset.filter(status=Space.ACTIVE)
        if self.action == "mine":
            return queryset.filter(owner=user)
        if user.is_authenticated and user.is_staff:
            return queryset
        if user.is_authenticated:
            return queryset.filter(Q(status=Space.ACTIVE) | Q(owner=user))
        return queryset.filter(status=Space.ACTIVE)

    def get_serializer_class(self):
        if self.action in {"create", "update", "partial_update", "mine", "pause", "resume", "approve", "reject"}:
            return OwnerSpaceSerializer
        if self.action == "retrieve":
            space = getattr(self, "_object", None)
            user = self.request.user
            if space is not None and (space.owner_id == user.pk or user.is_staff):
                return OwnerSpaceSerializer
        return super().get_serializer_class()

    def get_object(self):
        self._object = super().get_object()
        return self._object

    def _require_owner(self, space: Space):
        if space.owner_id != self.request.user.pk:
            raise PermissionDenied("Only the owner can manage this space.")

    def perform_create(self, serializer):
        space = serializer.save(owner=self.request.user, status=Space.PENDING)
        logger.info("Space %s listed by user %s, awaiting approval", space.pk, space.owner_id)

    def perform_update(self, serializer):
        self._require_owner(serializer.instance)
        serializer.save()

    @action(detail=False, methods=["get"])
    def mine(self, request):
        queryset = self.filter_queryset(self.get_queryset())
        serializer = self.get_serializer(queryset, many=True)
        return Response(serializer.data)

    @action(detail=True, methods=["post"])
    def pause(self, request, pk=None):
        space = self.get_object()
        self._require_owner(space)
        if space.status != Space.ACTIVE:
            return Response({"detail": "Only active spaces can be paused."}, status=status.HTTP_409_CONFLICT)
        space.set_status(Space.PAUSED)
        return Response(self.get_serializer(space).data)

    @action(detail=True, methods=["post"])
    def resume(self, request, pk=None):
        space = self.get_object()
        self._require_owner(space)
        if space.status != Space.PAUSED:
            return Response({"detail": "Only paused spaces can be resumed."}, status=status.HTTP_409_CONFLICT)
        space.set_status(Space.ACTIVE)
        return Response(self.get_serializer(space).data)

    @action(detail=True, methods=["post"])
    def approve(self, request, pk=None):
        space = self.get_object()
        space.approve()
        logger.info("Space %s approved by %s", space.pk, request.user.pk)
        return Response(self.get_serializer(space).data)

    @action(detail=True, methods=["post"])
    def reject(self, request, pk=None):
        space = self.get_object()
        serializer = SpaceRejectSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        space.reject(serializer.validated_data["reason"])
        logger.info("Space %s rejected by %s", space.pk, request.user.pk)
        return Response(self.get_serializer(space).data)

    @action(detail=True, methods=["get"])
    def quote(self, request, pk=None):
        space = self.get_object()
        params = QuoteRequestSerializer(data=request.query_params)
        params.is_valid(raise_exception=True)
        quote = quote_space(
            space,
            params.validated_data["start"],
            params.validated_data["end"],
            daily=params.validated_data["pricing"] == "daily",
        )
        return Response(quote.as_dict())

    @action(detail=True, methods=["get"])
    def availability(self, request, pk=None):
        space = self.get_object()
        blocked = blocked_windows(space)
        return Response(
            {
                "space_id": space.pk,
                "bookable": space.is_bookable,
                "blocked": [
                    {"start": window["start_time"], "end": window["end_time"]}
                    for window in blocked
                ],
            }
        )

    @action(detail=True, methods=["get"])
    def reviews(self, request, pk=None):
        space = self.get_object()
        reviews = Review.objects.filter(space=space).select_related("reviewer")
        return Response(ReviewSerializer(reviews, many=True).data)

    @action(detail=False, methods=["get"])
    def earnings(self, request):
        user = request.user
        spaces = Space.objects.filter(owner=user)
        totals = spaces.aggregate(earned=Sum("total_earnings"), completed=Sum("total_bookings"))
        upcoming = Booking.objects.filter(
            owner=user,
            booking_status__in=Booking.BLOCKING_STATUSES,
        ).aggregate(amount=Sum("owner_payout"), count=Count("id"))
        unpaid = PayoutLine.objects.filter(owner=user, status=PayoutLine.OPEN).aggregate(amount=Sum("amount"))
        paid = Payout.objects.filter(owner=user, status=Payout.COMPLETED).aggregate(amount=Sum("amount"))

        zero = Decimal("0.00")
        return Response(
            {
                "spaces": spaces.count(),
                "total_earnings": f"{totals['earned'] or zero:.2f}",
                "completed_bookings": totals["completed"] or 0,
                "upcoming_bookings": upcoming["count"],
                "upcoming_payout": f"{upcoming['amount'] or zero:.2f}",
                "awaiting_payout": f"{unpaid['amount'] or zero:.2f}",
                "paid_out": f"{paid['amount'] or zero:.2f}",
            }
        )


class GarageViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = GarageSerializer
    permission_classes = [permissions.AllowAny]
    search_fields = ["name", "location"]
    ordering_fields = ["price_per_hour", "rating", "name"]

    def get_queryset(self):
        return Garage.objects.filter(is_active=True)
