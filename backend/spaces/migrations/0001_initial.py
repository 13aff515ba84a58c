from decimal import Decimal

from django.conf import settings
from django.db import migrations, models
import django.core.validators
import django.db.models.deletion

import spaces.validators


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Garage",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255)),
                ("location", models.CharField(max_length=255)),
                ("total_spaces", models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ("price_per_hour", models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal("0.01"))])),
                ("rating", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=3)),
                ("amenities", models.JSONField(blank=True, default=list, validators=[spaces.validators.validate_amenities])),
                ("image_url", models.URLField(blank=True, max_length=500)),
                ("latitude", models.DecimalField(blank=True, decimal_places=8, max_digits=10, null=True)),
                ("longitude", models.DecimalField(blank=True, decimal_places=8, max_digits=11, null=True)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Space",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255)),
                ("space_type", models.CharField(choices=[("driveway", "Driveway"), ("garage", "Garage"), ("parking_spot", "Parking spot"), ("car_park", "Car park")], default="driveway", max_length=20)),
                ("address_line1", models.CharField(max_length=255)),
                ("address_line2", models.CharField(blank=True, max_length=255)),
                ("city", models.CharField(max_length=100)),
                ("postcode", models.CharField(max_length=20)),
                ("latitude", models.DecimalField(blank=True, decimal_places=8, max_digits=10, null=True)),
                ("longitude", models.DecimalField(blank=True, decimal_places=8, max_digits=11, null=True)),
                ("description", models.TextField(blank=True)),
                ("amenities", models.JSONField(blank=True, default=list, validators=[spaces.validators.validate_amenities])),
                ("access_instructions", models.TextField(blank=True)),
                ("photos", models.JSONField(blank=True, default=list, validators=[spaces.validators.validate_photo_urls])),
                ("price_per_hour", models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal("0.01"))])),
                ("price_per_day", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True, validators=[django.core.validators.MinValueValidator(Decimal("0.01"))])),
                ("min_booking_hours", models.PositiveIntegerField(default=1, validators=[django.core.validators.MinValueValidator(1)])),
                ("max_booking_days", models.PositiveIntegerField(default=30, validators=[django.core.validators.MinValueValidator(1)])),
                ("status", models.CharField(choices=[("pending", "Pending approval"), ("active", "Active"), ("paused", "Paused"), ("rejected", "Rejected")], default="pending", max_length=12)),
                ("rejection_reason", models.TextField(blank=True)),
                ("total_earnings", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("total_bookings", models.PositiveIntegerField(default=0)),
                ("average_rating", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=3)),
                ("review_count", models.PositiveIntegerField(default=0)),
                ("verified_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("owner", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="spaces", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status", "city"], name="space_status_city_idx"),
                    models.Index(fields=["postcode"], name="space_postcode_idx"),
                ],
            },
        ),
    ]
