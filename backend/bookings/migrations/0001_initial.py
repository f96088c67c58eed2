import uuid

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("properties", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("kind", models.CharField(choices=[("stay", "Stay"), ("event", "Event")], max_length=10)),
                ("mode", models.CharField(choices=[("instant", "Instant book"), ("request", "Request to book")], default="request", max_length=10)),
                ("status", models.CharField(choices=[("draft", "Draft"), ("pending_review", "Pending host review"), ("awaiting_payment", "Awaiting payment"), ("confirmed", "Confirmed"), ("declined", "Declined"), ("cancelled", "Cancelled")], default="draft", max_length=20)),
                ("version", models.PositiveIntegerField(default=0)),
                ("start_at", models.DateTimeField()),
                ("end_at", models.DateTimeField()),
                ("check_in", models.DateField(blank=True, null=True)),
                ("check_out", models.DateField(blank=True, null=True)),
                ("guest_count", models.PositiveIntegerField(default=1, validators=[django.core.validators.MinValueValidator(1)])),
                ("estimated_vehicles", models.PositiveIntegerField(default=0)),
                ("addons", models.JSONField(blank=True, default=list)),
                ("currency", models.CharField(default="usd", max_length=10)),
                ("subtotal_cents", models.PositiveIntegerField(default=0)),
                ("fees_cents", models.PositiveIntegerField(default=0)),
                ("addons_total_cents", models.PositiveIntegerField(default=0)),
                ("deposit_cents", models.PositiveIntegerField(default=0)),
                ("total_cents", models.PositiveIntegerField(default=0)),
                ("pricing_snapshot", models.JSONField(blank=True, default=dict)),
                ("risk_flags", models.JSONField(blank=True, default=list)),
                ("submitted_at", models.DateTimeField(blank=True, null=True)),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
                ("confirmed_at", models.DateTimeField(blank=True, null=True)),
                ("declined_at", models.DateTimeField(blank=True, null=True)),
                ("decline_reason", models.CharField(blank=True, max_length=500)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("cancelled_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="cancelled_bookings", to=settings.AUTH_USER_MODEL)),
                ("guest", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="bookings", to=settings.AUTH_USER_MODEL)),
                ("property", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="bookings", to="properties.property")),
            ],
            options={
                "ordering": ["start_at", "created_at"],
                "indexes": [models.Index(fields=["property", "status", "start_at", "end_at"], name="booking_property_window_idx")],
                "constraints": [models.CheckConstraint(condition=models.Q(("end_at__gt", models.F("start_at"))), name="booking_window_positive")],
            },
        ),
        migrations.CreateModel(
            name="EventBookingDetails",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("event_type", models.CharField(choices=[("corporate", "Corporate"), ("private_celebration", "Private celebration"), ("intimate_wedding", "Intimate wedding"), ("production", "Production"), ("other", "Other")], default="other", max_length=30)),
                ("description", models.TextField(blank=True)),
                ("alcohol", models.BooleanField(default=False)),
                ("amplified_sound", models.BooleanField(default=False)),
                ("vendors", models.JSONField(blank=True, default=list)),
                ("estimated_vehicle_count", models.PositiveIntegerField(blank=True, null=True)),
                ("production_details", models.JSONField(blank=True, null=True)),
                ("booking", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="event_details", to="bookings.booking")),
            ],
        ),
        migrations.CreateModel(
            name="StayBookingDetails",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("adults", models.PositiveIntegerField(blank=True, null=True)),
                ("children", models.PositiveIntegerField(blank=True, null=True)),
                ("infants", models.PositiveIntegerField(blank=True, null=True)),
                ("pets", models.BooleanField(default=False)),
                ("special_requests", models.TextField(blank=True)),
                ("booking", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="stay_details", to="bookings.booking")),
            ],
        ),
    ]
