import types
from datetime import datetime, time, timedelta
from zoneinfo import ZoneInfo

import pytest

from accounts.models import User
from bookings.models import Booking, BookingKind, BookingMode, BookingStatus, EventBookingDetails
from payments.models import CaptureMethod, Payment, PaymentPurpose, PaymentStatus
from properties.models import Property, PropertyAddon

PACIFIC = ZoneInfo("America/Los_Angeles")


def _user(username, **extra):
    return User.objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password="password123",
        **extra,
    )


@pytest.fixture
def owner(db):
    return _user("owner-1", first_name="Olive", last_name="Owner")


@pytest.fixture
def creator(db):
    return _user("creator-1", first_name="Cora", last_name="Creator")


@pytest.fixture
def guest(db):
    return _user("g1", first_name="Greta", last_name="Guest", display_name="Greta")


@pytest.fixture
def other_guest(db):
    return _user("g2", first_name="Gus", last_name="Other")


@pytest.fixture
def venue(db, owner, creator):
    prop = Property.objects.create(
        title="Barn at Willow Creek",
        owner=owner,
        created_by=creator,
        timezone="America/Los_Angeles",
        currency="usd",
        allow_instant_book=True,
        max_guests=40,
        parking_capacity=10,
        curfew_time=time(22, 0),
        nightly_rate_cents=30000,
        stay_cleaning_fee_cents=12000,
        hourly_rate_cents=15000,
        min_hours=4,
        day_rate_cents=100000,
        day_rate_hours=8,
        cleaning_fee_cents=25000,
        deposit_cents=50000,
    )
    PropertyAddon.objects.create(property=prop, code="tables", label="Tables & chairs", price_cents=8000)
    PropertyAddon.objects.create(property=prop, code="firepit", label="Fire pit", price_cents=3500)
    return prop


@pytest.fixture
def event_window():
    start = datetime(2031, 6, 14, 12, 0, tzinfo=PACIFIC)
    return start, start + timedelta(hours=5)


@pytest.fixture
def make_booking(venue, guest, event_window):
    def factory(**overrides):
        start_at, end_at = event_window
        fields = {
            "property": venue,
            "guest": guest,
            "kind": BookingKind.EVENT,
            "mode": BookingMode.REQUEST,
            "status": BookingStatus.DRAFT,
            "start_at": start_at,
            "end_at": end_at,
            "guest_count": 20,
            "subtotal_cents": 75000,
            "fees_cents": 25000,
            "deposit_cents": 50000,
            "total_cents": 100000,
        }
        fields.update(overrides)
        booking = Booking.objects.create(**fields)
        if booking.kind == BookingKind.EVENT:
            EventBookingDetails.objects.create(booking=booking)
        return booking

    return factory


@pytest.fixture
def make_payment():
    def factory(booking, intent_id, *, purpose=PaymentPurpose.BOOKING_TOTAL, status=PaymentStatus.PENDING, amount_cents=None):
        return Payment.objects.create(
            booking=booking,
            purpose=purpose,
            stripe_payment_intent_id=intent_id,
            amount_cents=amount_cents if amount_cents is not None else booking.total_cents,
            currency=booking.currency,
            capture_method=CaptureMethod.MANUAL if purpose == PaymentPurpose.DEPOSIT_HOLD else CaptureMethod.AUTOMATIC,
            status=status,
        )

    return factory


class FakePaymentIntents:
    """In-memory stand-in for the stripe.PaymentIntent API resource."""

    def __init__(self):
        self.intents = {}
        self.calls = []

    def add(self, intent_id, status, *, amount=100000, currency="usd", capture_method="automatic"):
        self.intents[intent_id] = types.SimpleNamespace(
            id=intent_id,
            status=status,
            amount=amount,
            currency=currency,
            capture_method=capture_method,
            client_secret=f"{intent_id}_secret",
            latest_charge=None,
        )
        return self.intents[intent_id]

    def create(self, **kwargs):
        self.calls.append(("create", kwargs))
        intent_id = f"pi_fake_{len(self.intents) + 1}"
        return self.add(
            intent_id,
            "requires_payment_method",
            amount=kwargs["amount"],
            currency=kwargs["currency"],
            capture_method=kwargs["capture_method"],
        )

    def retrieve(self, intent_id, **kwargs):
        self.calls.append(("retrieve", intent_id))
        return self.intents[intent_id]

    def capture(self, intent_id, **kwargs):
        self.calls.append(("capture", intent_id))
        intent = self.intents[intent_id]
        intent.status = "succeeded"
        intent.latest_charge = f"ch_{intent_id}"
        return intent

    def cancel(self, intent_id, **kwargs):
        self.calls.append(("cancel", intent_id))
        intent = self.intents[intent_id]
        intent.status = "canceled"
        return intent

    def called(self, name):
        return [args for call, args in self.calls if call == name]


@pytest.fixture
def fake_stripe(monkeypatch):
    fake = FakePaymentIntents()
    for name in ("create", "retrieve", "capture", "cancel"):
        monkeypatch.setattr(f"payments.gateway.stripe.PaymentIntent.{name}", getattr(fake, name))
    return fake
