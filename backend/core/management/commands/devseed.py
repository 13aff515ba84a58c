from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.contrib.contenttypes.models import ContentType
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.utils import timezone

from accounts.models import User
from bookings.models import Booking
from bookings.services.reservations import reserve_space
from core.context import RequestContext
from payments.models import Payment
from payments.services import gateway
from payments.services.intents import start_payment
from payments.services.reconciler import reconcile_intent
from spaces.models import Garage, Space


SEED_PASSWORD = "ParkaLot123!"
SUPERUSER_EMAIL = "admin@parkalot.test"
SUPERUSER_PASSWORD = "AdminParkaLot123!"

SPACES = [
    {
        "name": "Covered driveway near Clapham Common",
        "space_type": Space.DRIVEWAY,
        "address_line1": "14 Elms Crescent",
        "city": "London",
        "postcode": "SW4 8QE",
        "price_per_hour": Decimal("3.50"),
        "price_per_day": Decimal("22.00"),
        "amenities": ["covered", "security_lighting"],
        "access_instructions": "Park on the left side; the gate code is 4821.",
    },
    {
        "name": "Secure garage in the Northern Quarter",
        "space_type": Space.GARAGE,
        "address_line1": "3 Thomas Street",
        "city": "Manchester",
        "postcode": "M4 1EU",
        "price_per_hour": Decimal("5.00"),
        "price_per_day": None,
        "amenities": ["covered", "cctv", "ev_charging"],
        "access_instructions": "Collect the fob from the key safe (code 1190).",
    },
    {
        "name": "Spot by Temple Meads",
        "space_type": Space.PARKING_SPOT,
        "address_line1": "22 Cattle Market Road",
        "city": "Bristol",
        "postcode": "BS1 6QF",
        "price_per_hour": Decimal("2.00"),
        "price_per_day": Decimal("12.00"),
        "amenities": ["24_7_access"],
        "access_instructions": "Bay 7, marked with a blue P.",
    },
]


class Command(BaseCommand):
    help = "Populate the local development database with sample data."

    def handle(self, *args, **options):
        if not settings.DEBUG:
            raise CommandError("Refusing to seed data while DEBUG is False.")

        with transaction.atomic():
            self.stdout.write(self.style.MIGRATE_HEADING("Creating users"))
            owner = self._ensure_user(
                email="owner@parkalot.test",
                first_name="Olivia",
                last_name="Owner",
                display_name="Olivia Owner",
            )
            renter = self._ensure_user(
                email="renter@parkalot.test",
                first_name="Rory",
                last_name="Renter",
                display_name="Rory Renter",
            )

            self.stdout.write(self.style.MIGRATE_HEADING("Ensuring admin superuser"))
            self._ensure_superuser()

            self.stdout.write(self.style.MIGRATE_HEADING("Creating spaces & garages"))
            spaces = [self._ensure_space(owner, data) for data in SPACES]
            Garage.objects.update_or_create(
                name="Piccadilly Multi-Storey",
                defaults={
                    "location": "Manchester M1 2PF",
                    "total_spaces": 40,
                    "price_per_hour": Decimal("2.50"),
                    "amenities": ["covered", "cctv", "disabled_access"],
                },
            )

            self.stdout.write(self.style.MIGRATE_HEADING("Creating bookings"))
            stale = Booking.objects.filter(renter=renter, space__in=spaces)
            Payment.objects.filter(
                content_type=ContentType.objects.get_for_model(Booking),
                object_id__in=stale.values("pk"),
            ).delete()
            stale.delete()
            start = (timezone.now() + timedelta(days=2)).replace(minute=0, second=0, microsecond=0)
            ctx = RequestContext(user=renter)
            for offset, space in enumerate(spaces[:2]):
                booking_start = start + timedelta(days=offset)
                booking = reserve_space(
                    ctx,
                    space,
                    booking_start,
                    booking_start + timedelta(hours=3),
                    vehicle_registration="AB12CDE",
                )
                if gateway.is_stubbed():
                    payment, _ = start_payment(booking, user=renter)
                    reconcile_intent(payment.stripe_payment_intent_id, "succeeded")

        self.stdout.write(self.style.SUCCESS("Development seed data created."))
        self.stdout.write(self.style.NOTICE(f"Sample login accounts use password: {SEED_PASSWORD}"))
        self.stdout.write(self.style.NOTICE(f"Admin superuser {SUPERUSER_EMAIL} password: {SUPERUSER_PASSWORD}"))

    def _ensure_user(self, email: str, first_name: str, last_name: str, display_name: str) -> User:
        user, created = User.objects.get_or_create(
            email=email,
            defaults={
                "username": email,
                "first_name": first_name,
                "last_name": last_name,
                "display_name": display_name,
            },
        )
        if created:
            user.set_password(SEED_PASSWORD)
            user.save()
            self.stdout.write(f"  created {email}")
        return user

    def _ensure_space(self, owner: User, data: dict) -> Space:
        space, created = Space.objects.get_or_create(
            owner=owner,
            name=data["name"],
            defaults={key: value for key, value in data.items() if key != "name"},
        )
        if space.status != Space.ACTIVE:
            space.approve()
        if created:
            self.stdout.write(f"  listed {space}")
        return space

    def _ensure_superuser(self) -> User:
        user, created = User.objects.get_or_create(
            email=SUPERUSER_EMAIL,
            defaults={
                "username": SUPERUSER_EMAIL,
                "first_name": "Admin",
                "last_name": "User",
                "display_name": "Admin User",
                "is_staff": True,
                "is_superuser": True,
            },
        )
        flag_updates = {}
        if not user.is_staff:
            flag_updates["is_staff"] = True
        if not user.is_superuser:
            flag_updates["is_superuser"] = True
        if flag_updates:
            for attr, value in flag_updates.items():
                setattr(user, attr, value)
            user.save(update_fields=list(flag_updates.keys()))
        if created or not user.has_usable_password():
            user.set_password(SUPERUSER_PASSWORD)
            user.save(update_fields=["password"])
        return user
