from django.conf import settings
from django.db import migrations, models
import django.core.validators
import django.db.models.deletion


BOOKING_STATUS_CHOICES = [
    ("pending", "Pending"),
    ("confirmed", "Confirmed"),
    ("active", "Active"),
    ("completed", "Completed"),
    ("cancelled", "Cancelled"),
    ("disputed", "Disputed"),
]
PAYMENT_STATUS_CHOICES = [
    ("pending", "Pending"),
    ("paid", "Paid"),
    ("refunded", "Refunded"),
    ("partial_refund", "Partially refunded"),
]


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("spaces", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("start_time", models.DateTimeField()),
                ("end_time", models.DateTimeField()),
                ("billable_hours", models.PositiveIntegerField()),
                ("total_price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("booking_status", models.CharField(choices=BOOKING_STATUS_CHOICES, default="pending", max_length=12)),
                ("payment_status", models.CharField(choices=PAYMENT_STATUS_CHOICES, default="pending", max_length=16)),
                ("check_in_time", models.DateTimeField(blank=True, null=True)),
                ("check_out_time", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("pricing_mode", models.CharField(choices=[("hourly", "Hourly"), ("daily", "Daily")], default="hourly", max_length=10)),
                ("platform_fee", models.DecimalField(decimal_places=2, max_digits=10)),
                ("owner_payout", models.DecimalField(decimal_places=2, max_digits=10)),
                ("stripe_payment_intent_id", models.CharField(blank=True, max_length=255)),
                ("vehicle_registration", models.CharField(blank=True, max_length=20)),
                ("vehicle_make", models.CharField(blank=True, max_length=50)),
                ("vehicle_model", models.CharField(blank=True, max_length=50)),
                ("vehicle_color", models.CharField(blank=True, max_length=30)),
                ("cancellation_reason", models.TextField(blank=True)),
                ("cancelled_by", models.CharField(blank=True, choices=[("renter", "Renter"), ("owner", "Owner"), ("system", "System")], max_length=10)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("renter_notes", models.TextField(blank=True)),
                ("owner_notes", models.TextField(blank=True)),
                ("owner", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="owner_bookings", to=settings.AUTH_USER_MODEL)),
                ("renter", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="bookings", to=settings.AUTH_USER_MODEL)),
                ("space", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="bookings", to="spaces.space")),
            ],
            options={
                "ordering": ["-start_time", "id"],
                "indexes": [
                    models.Index(fields=["space", "start_time", "end_time"], name="booking_space_window_idx"),
                    models.Index(fields=["booking_status"], name="booking_status_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("end_time__gt", models.F("start_time"))), name="booking_end_after_start"),
                    models.CheckConstraint(condition=models.Q(("total_price", models.F("platform_fee") + models.F("owner_payout"))), name="booking_price_split_balances"),
                ],
            },
        ),
        migrations.CreateModel(
            name="GarageReservation",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("start_time", models.DateTimeField()),
                ("end_time", models.DateTimeField()),
                ("billable_hours", models.PositiveIntegerField()),
                ("total_price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("booking_status", models.CharField(choices=BOOKING_STATUS_CHOICES, default="pending", max_length=12)),
                ("payment_status", models.CharField(choices=PAYMENT_STATUS_CHOICES, default="pending", max_length=16)),
                ("check_in_time", models.DateTimeField(blank=True, null=True)),
                ("check_out_time", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("vehicle_registration", models.CharField(blank=True, max_length=20)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("garage", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="reservations", to="spaces.garage")),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="garage_reservations", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-start_time", "id"],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("end_time__gt", models.F("start_time"))), name="garage_reservation_end_after_start"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Review",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("rating", models.PositiveSmallIntegerField(validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(5)])),
                ("review_text", models.TextField(blank=True)),
                ("response_text", models.TextField(blank=True)),
                ("responded_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("booking", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="review", to="bookings.booking")),
                ("reviewer", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="reviews", to=settings.AUTH_USER_MODEL)),
                ("space", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="reviews", to="spaces.space")),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
    ]
