from django.db import models


class PaymentPurpose(models.TextChoices):
    BOOKING_TOTAL = "booking_total", "Booking total"
    DEPOSIT_HOLD = "deposit_hold", "Deposit hold"


class CaptureMethod(models.TextChoices):
    AUTOMATIC = "automatic", "Automatic"
    MANUAL = "manual", "Manual"


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    REQUIRES_ACTION = "requires_action", "Requires action"
    SUCCEEDED = "succeeded", "Succeeded"
    CANCELLED = "cancelled", "Cancelled"


class Payment(models.Model):
    """Local mirror of one provider payment intent attached to a booking."""

    booking = models.ForeignKey("bookings.Booking", on_delete=models.PROTECT, related_name="payments")
    purpose = models.CharField(max_length=20, choices=PaymentPurpose.choices)
    stripe_payment_intent_id = models.CharField(max_length=200, unique=True)
    stripe_charge_id = models.CharField(max_length=200, blank=True)
    amount_cents = models.PositiveIntegerField()
    currency = models.CharField(max_length=10, default="usd")
    capture_method = models.CharField(max_length=10, choices=CaptureMethod.choices, default=CaptureMethod.AUTOMATIC)
    status = models.CharField(max_length=30, choices=PaymentStatus.choices, default=PaymentStatus.PENDING)
    authorized_at = models.DateTimeField(null=True, blank=True)
    released_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["created_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["booking", "purpose"],
                condition=~models.Q(status="cancelled"),
                name="one_open_payment_per_purpose",
            ),
        ]

    def __str__(self):
        return f"{self.get_purpose_display()} {self.amount_cents} {self.currency} ({self.status})"
