import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Property",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=200)),
                ("timezone", models.CharField(default="UTC", max_length=64)),
                ("currency", models.CharField(blank=True, default="usd", help_text="Falls back to BOOKING_CURRENCY when blank.", max_length=10)),
                ("allow_instant_book", models.BooleanField(default=False)),
                ("max_guests", models.PositiveIntegerField(default=12, validators=[django.core.validators.MinValueValidator(1)])),
                ("parking_capacity", models.PositiveIntegerField(blank=True, null=True)),
                ("curfew_time", models.TimeField(blank=True, null=True)),
                ("nightly_rate_cents", models.PositiveIntegerField(default=0)),
                ("stay_cleaning_fee_cents", models.PositiveIntegerField(default=0)),
                ("hourly_rate_cents", models.PositiveIntegerField(default=0)),
                ("min_hours", models.PositiveIntegerField(blank=True, null=True)),
                ("day_rate_cents", models.PositiveIntegerField(blank=True, null=True)),
                ("day_rate_hours", models.PositiveIntegerField(blank=True, null=True)),
                ("cleaning_fee_cents", models.PositiveIntegerField(blank=True, null=True)),
                ("deposit_cents", models.PositiveIntegerField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="created_properties", to=settings.AUTH_USER_MODEL)),
                ("owner", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="owned_properties", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["title", "id"],
                "verbose_name_plural": "properties",
            },
        ),
        migrations.CreateModel(
            name="PropertyAddon",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.SlugField(max_length=60)),
                ("label", models.CharField(max_length=120)),
                ("price_cents", models.PositiveIntegerField()),
                ("is_active", models.BooleanField(default=True)),
                ("property", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="addons", to="properties.property")),
            ],
            options={
                "ordering": ["label", "id"],
                "unique_together": {("property", "code")},
            },
        ),
    ]
