import uuid
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models


class BookingKind(models.TextChoices):
    STAY = "stay", "Stay"
    EVENT = "event", "Event"


class BookingMode(models.TextChoices):
    INSTANT = "instant", "Instant book"
    REQUEST = "request", "Request to book"


class BookingStatus(models.TextChoices):
    DRAFT = "draft", "Draft"
    PENDING_REVIEW = "pending_review", "Pending host review"
    AWAITING_PAYMENT = "awaiting_payment", "Awaiting payment"
    CONFIRMED = "confirmed", "Confirmed"
    DECLINED = "declined", "Declined"
    CANCELLED = "cancelled", "Cancelled"


# Statuses that hold the property's calendar for the booking window.
SLOT_CLAIMING_STATUSES = (
    BookingStatus.PENDING_REVIEW,
    BookingStatus.AWAITING_PAYMENT,
    BookingStatus.CONFIRMED,
)


class EventType(models.TextChoices):
    CORPORATE = "corporate", "Corporate"
    PRIVATE_CELEBRATION = "private_celebration", "Private celebration"
    INTIMATE_WEDDING = "intimate_wedding", "Intimate wedding"
    PRODUCTION = "production", "Production"
    OTHER = "other", "Other"


class Booking(models.Model):
    """
    A guest's reservation of a property for a stay or an event.

    `start_at`/`end_at` hold the window used for overlap checks. For stays they
    are derived from `check_in`/`check_out` (midnight in the property's
    timezone), which remain the authoritative dates.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    property = models.ForeignKey("properties.Property", on_delete=models.PROTECT, related_name="bookings")
    guest = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="bookings")
    kind = models.CharField(max_length=10, choices=BookingKind.choices)
    mode = models.CharField(max_length=10, choices=BookingMode.choices, default=BookingMode.REQUEST)
    status = models.CharField(max_length=20, choices=BookingStatus.choices, default=BookingStatus.DRAFT)
    version = models.PositiveIntegerField(default=0)

    start_at = models.DateTimeField()
    end_at = models.DateTimeField()
    check_in = models.DateField(null=True, blank=True)
    check_out = models.DateField(null=True, blank=True)
    guest_count = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    estimated_vehicles = models.PositiveIntegerField(default=0)
    addons = models.JSONField(default=list, blank=True)

    currency = models.CharField(max_length=10, default="usd")
    subtotal_cents = models.PositiveIntegerField(default=0)
    fees_cents = models.PositiveIntegerField(default=0)
    addons_total_cents = models.PositiveIntegerField(default=0)
    deposit_cents = models.PositiveIntegerField(default=0)
    total_cents = models.PositiveIntegerField(default=0)
    pricing_snapshot = models.JSONField(default=dict, blank=True)
    risk_flags = models.JSONField(default=list, blank=True)

    submitted_at = models.DateTimeField(null=True, blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    declined_at = models.DateTimeField(null=True, blank=True)
    decline_reason = models.CharField(max_length=500, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancelled_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="cancelled_bookings",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["start_at", "created_at"]
        indexes = [
            models.Index(fields=["property", "status", "start_at", "end_at"], name="booking_property_window_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_at__gt=models.F("start_at")),
                name="booking_window_positive",
            ),
        ]

    def __str__(self):
        return f"{self.get_kind_display()} at {self.property.title} ({self.status})"

    def total_amount(self) -> Decimal:
        return (Decimal(self.total_cents) / Decimal(100)).quantize(Decimal("0.01"))


class EventBookingDetails(models.Model):
    booking = models.OneToOneField("Booking", on_delete=models.CASCADE, related_name="event_details")
    event_type = models.CharField(max_length=30, choices=EventType.choices, default=EventType.OTHER)
    description = models.TextField(blank=True)
    alcohol = models.BooleanField(default=False)
    amplified_sound = models.BooleanField(default=False)
    vendors = models.JSONField(default=list, blank=True)
    estimated_vehicle_count = models.PositiveIntegerField(null=True, blank=True)
    production_details = models.JSONField(null=True, blank=True)

    def __str__(self):
        return f"{self.get_event_type_display()} for {self.booking_id}"


class StayBookingDetails(models.Model):
    booking = models.OneToOneField("Booking", on_delete=models.CASCADE, related_name="stay_details")
    adults = models.PositiveIntegerField(null=True, blank=True)
    children = models.PositiveIntegerField(null=True, blank=True)
    infants = models.PositiveIntegerField(null=True, blank=True)
    pets = models.BooleanField(default=False)
    special_requests = models.TextField(blank=True)

    def __str__(self):
        return f"Stay details for {self.booking_id}"
