import logging
from datetime import datetime, timezone

import stripe
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenObtainPairView

from payments.models import Payout
from payments.services import gateway

from .models import User
from .serializers import (
    EmailLoginSerializer,
    OnboardingLinkSerializer,
    PasswordChangeSerializer,
    PayoutAccountSerializer,
    ProfileUpdateSerializer,
    RegisterSerializer,
    UserSerializer,
)

logger = logging.getLogger(__name__)


def _token_payload(user) -> dict:
    refresh = RefreshToken.for_user(user)
    return {
        "user": UserSerializer(user).data,
        "access": str(refresh.access_token),
        "refresh": str(refresh),
    }


class RegisterView(APIView):
    """Sign up as a driver; listing a space later needs no separate account."""

    permission_classes = [AllowAny]

    def post(self, request, *args, **kwargs):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        logger.info("Registered user %s", user.pk)
        return Response(_token_payload(user), status=status.HTTP_201_CREATED)


class LoginView(TokenObtainPairView):
    serializer_class = EmailLoginSerializer


class MeView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        return Response(UserSerializer(request.user).data)

    def patch(self, request, *args, **kwargs):
        serializer = ProfileUpdateSerializer(instance=request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        return Response(UserSerializer(serializer.save()).data)


class ChangePasswordView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, *args, **kwargs):
        serializer = PasswordChangeSerializer(data=request.data, context={"request": request})
        serializer.is_valid(raise_exception=True)
        serializer.save()
        logger.info("User %s changed their password", request.user.pk)
        return Response(status=status.HTTP_204_NO_CONTENT)


class PayoutAccountView(APIView):
    """
    The Stripe Express account a space owner is paid into.

    GET reports the connection, POST connects (or resumes onboarding) and
    returns a hosted onboarding link, DELETE disconnects.
    """

    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        user = request.user
        stripe_account = None
        if user.stripe_connect_id:
            try:
                stripe_account = gateway.retrieve_connect_account(user.stripe_connect_id)
            except (stripe.StripeError, RuntimeError) as exc:
                logger.warning("Could not refresh payout account %s: %s", user.stripe_connect_id, exc)
        return Response(PayoutAccountSerializer.from_account(user, stripe_account))

    def post(self, request, *args, **kwargs):
        user = request.user
        try:
            if not user.stripe_connect_id:
                account = gateway.create_connect_account(email=user.email)
                User.objects.filter(pk=user.pk).update(stripe_connect_id=account.id)
                user.stripe_connect_id = account.id
                logger.info("Connected payout account %s for user %s", account.id, user.pk)
            link = gateway.create_account_link(user.stripe_connect_id)
        except RuntimeError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        except stripe.StripeError as exc:
            logger.exception("Failed to create payout onboarding link: %s", exc)
            return Response({"detail": str(exc)}, status=status.HTTP_502_BAD_GATEWAY)

        expires_at = datetime.fromtimestamp(link.expires_at, tz=timezone.utc)
        serializer = OnboardingLinkSerializer({"url": link.url, "expires_at": expires_at})
        return Response(serializer.data, status=status.HTTP_201_CREATED)

    def delete(self, request, *args, **kwargs):
        user = request.user
        if not user.stripe_connect_id:
            return Response(status=status.HTTP_204_NO_CONTENT)
        if Payout.objects.filter(owner=user, status__in=[Payout.PENDING, Payout.PROCESSING]).exists():
            return Response(
                {"detail": "A payout is on its way to this account.", "code": "payout_in_flight"},
                status=status.HTTP_409_CONFLICT,
            )

        try:
            gateway.delete_connect_account(user.stripe_connect_id)
        except RuntimeError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        except stripe.StripeError as exc:
            logger.exception("Failed to disconnect payout account: %s", exc)
            return Response({"detail": str(exc)}, status=status.HTTP_502_BAD_GATEWAY)

        User.objects.filter(pk=user.pk).update(stripe_connect_id="")
        logger.info("Disconnected payout account for user %s", user.pk)
        return Response(status=status.HTTP_204_NO_CONTENT)
