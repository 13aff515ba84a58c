from django.contrib import admin
from django.urls import include, path
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView

from accounts.api import ChangePasswordView, LoginView, MeView, PayoutAccountView, RegisterView
from bookings.api import BookingViewSet, GarageReservationViewSet
from payments.api import PaymentViewSet, PayoutViewSet, StripeWebhookView
from spaces.api import GarageViewSet, SpaceViewSet

router = DefaultRouter()
router.register(r"spaces", SpaceViewSet, basename="space")
router.register(r"garages", GarageViewSet, basename="garage")
router.register(r"bookings", BookingViewSet, basename="booking")
router.register(r"garage-reservations", GarageReservationViewSet, basename="garage-reservation")
router.register(r"payments", PaymentViewSet, basename="payment")
router.register(r"payouts", PayoutViewSet, basename="payout")

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/auth/register/", RegisterView.as_view(), name="auth-register"),
    path("api/auth/login/", LoginView.as_view(), name="auth-login"),
    path("api/auth/refresh/", TokenRefreshView.as_view(), name="auth-refresh"),
    path(
        "api/auth/change-password/",
        ChangePasswordView.as_view(),
        name="auth-change-password",
    ),
    path("api/auth/me/", MeView.as_view(), name="auth-me"),
    path("api/auth/payout-account/", PayoutAccountView.as_view(), name="auth-payout-account"),
    path("api/webhooks/stripe/", StripeWebhookView.as_view(), name="stripe-webhook"),
    path("api/", include(router.urls)),
]
