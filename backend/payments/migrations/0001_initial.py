import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("bookings", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Payment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("purpose", models.CharField(choices=[("booking_total", "Booking total"), ("deposit_hold", "Deposit hold")], max_length=20)),
                ("stripe_payment_intent_id", models.CharField(max_length=200, unique=True)),
                ("stripe_charge_id", models.CharField(blank=True, max_length=200)),
                ("amount_cents", models.PositiveIntegerField()),
                ("currency", models.CharField(default="usd", max_length=10)),
                ("capture_method", models.CharField(choices=[("automatic", "Automatic"), ("manual", "Manual")], default="automatic", max_length=10)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("requires_action", "Requires action"), ("succeeded", "Succeeded"), ("cancelled", "Cancelled")], default="pending", max_length=30)),
                ("authorized_at", models.DateTimeField(blank=True, null=True)),
                ("released_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("booking", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="payments", to="bookings.booking")),
            ],
            options={
                "ordering": ["created_at", "id"],
                "constraints": [models.UniqueConstraint(condition=models.Q(("status", "cancelled"), _negated=True), fields=("booking", "purpose"), name="one_open_payment_per_purpose")],
            },
        ),
    ]
