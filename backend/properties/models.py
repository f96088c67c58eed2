from zoneinfo import ZoneInfo

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models


class Property(models.Model):
    """A rentable venue. Pricing and booking policy fields feed the quote engine."""

    title = models.CharField(max_length=200)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="owned_properties",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_properties",
    )
    timezone = models.CharField(max_length=64, default="UTC")
    currency = models.CharField(max_length=10, default="usd", blank=True, help_text="Falls back to BOOKING_CURRENCY when blank.")

    allow_instant_book = models.BooleanField(default=False)
    max_guests = models.PositiveIntegerField(default=12, validators=[MinValueValidator(1)])
    parking_capacity = models.PositiveIntegerField(null=True, blank=True)
    curfew_time = models.TimeField(null=True, blank=True)

    nightly_rate_cents = models.PositiveIntegerField(default=0)
    stay_cleaning_fee_cents = models.PositiveIntegerField(default=0)

    hourly_rate_cents = models.PositiveIntegerField(default=0)
    min_hours = models.PositiveIntegerField(null=True, blank=True)
    day_rate_cents = models.PositiveIntegerField(null=True, blank=True)
    day_rate_hours = models.PositiveIntegerField(null=True, blank=True)
    cleaning_fee_cents = models.PositiveIntegerField(null=True, blank=True)
    deposit_cents = models.PositiveIntegerField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["title", "id"]
        verbose_name_plural = "properties"

    def __str__(self):
        return self.title

    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone or "UTC")

    def is_host(self, user) -> bool:
        if user is None or not getattr(user, "pk", None):
            return False
        return user.pk in {self.owner_id, self.created_by_id}


class PropertyAddon(models.Model):
    property = models.ForeignKey("Property", on_delete=models.CASCADE, related_name="addons")
    code = models.SlugField(max_length=60)
    label = models.CharField(max_length=120)
    price_cents = models.PositiveIntegerField()
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["label", "id"]
        unique_together = ("property", "code")

    def __str__(self):
        return f"{self.label} ({self.property.title})"
