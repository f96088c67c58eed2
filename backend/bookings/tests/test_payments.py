import pytest
import stripe
from django.db import connection
from django.test.utils import CaptureQueriesContext
from django.urls import reverse
from rest_framework.test import APIClient

from bookings.context import BookingContext
from bookings.exceptions import ProviderError, ProviderErrorKind
from bookings.models import BookingStatus
from bookings.services import payments
from payments.gateway import PaymentGateway, PaymentIntentStub, classify_stripe_error
from payments.models import CaptureMethod, Payment, PaymentPurpose, PaymentStatus


def _client(user):
    client = APIClient()
    client.force_authenticate(user)
    return client


def _writes(queries):
    return [q["sql"] for q in queries if q["sql"].lstrip().upper().startswith(("UPDATE", "INSERT", "DELETE"))]


@pytest.fixture
def awaiting(make_booking):
    return make_booking(status=BookingStatus.AWAITING_PAYMENT)


@pytest.mark.parametrize(
    "provider_status, current, expected",
    [
        ("succeeded", PaymentStatus.PENDING, PaymentStatus.SUCCEEDED),
        ("requires_action", PaymentStatus.PENDING, PaymentStatus.REQUIRES_ACTION),
        ("requires_confirmation", PaymentStatus.PENDING, PaymentStatus.REQUIRES_ACTION),
        ("canceled", PaymentStatus.REQUIRES_ACTION, PaymentStatus.CANCELLED),
        ("processing", PaymentStatus.REQUIRES_ACTION, PaymentStatus.REQUIRES_ACTION),
        ("requires_capture", PaymentStatus.PENDING, PaymentStatus.PENDING),
    ],
)
def test_map_intent_status(provider_status, current, expected):
    assert payments.map_intent_status(provider_status, current) == expected


@pytest.mark.django_db
def test_payment_session_reconciles_each_payment_once(guest, awaiting, make_payment, fake_stripe):
    fake_stripe.add("pi_pay_1", "succeeded")
    fake_stripe.add("pi_pay_2", "requires_action", amount=50000, capture_method="manual")
    make_payment(awaiting, "pi_pay_1")
    make_payment(awaiting, "pi_pay_2", purpose=PaymentPurpose.DEPOSIT_HOLD, amount_cents=50000)
    client = _client(guest)

    with CaptureQueriesContext(connection) as first:
        response = client.get(reverse("booking-payment-session"), {"booking_id": str(awaiting.id)})

    assert response.status_code == 200
    assert [p["status"] for p in response.data["payments"]] == ["succeeded", "requires_action"]
    assert [p["client_secret"] for p in response.data["payments"]] == ["pi_pay_1_secret", "pi_pay_2_secret"]
    assert response.data["booking"]["status"] == "awaiting_payment"
    assert len(_writes(first.captured_queries)) == 2
    stored = dict(Payment.objects.values_list("stripe_payment_intent_id", "status"))
    assert stored == {"pi_pay_1": PaymentStatus.SUCCEEDED, "pi_pay_2": PaymentStatus.REQUIRES_ACTION}

    with CaptureQueriesContext(connection) as second:
        again = client.get(reverse("booking-payment-session"), {"booking_id": str(awaiting.id)})

    assert [p["status"] for p in again.data["payments"]] == ["succeeded", "requires_action"]
    assert _writes(second.captured_queries) == []


@pytest.mark.django_db
def test_payment_session_confirms_fully_paid_booking(guest, awaiting, make_payment, fake_stripe):
    fake_stripe.add("pi_total", "succeeded")
    fake_stripe.add("pi_hold", "requires_capture", amount=50000, capture_method="manual")
    make_payment(awaiting, "pi_total")
    make_payment(awaiting, "pi_hold", purpose=PaymentPurpose.DEPOSIT_HOLD, amount_cents=50000)

    response = _client(guest).get(reverse("booking-payment-session"), {"booking_id": str(awaiting.id)})

    assert response.data["booking"]["status"] == "confirmed"
    hold = Payment.objects.get(stripe_payment_intent_id="pi_hold")
    assert hold.status == PaymentStatus.PENDING
    assert hold.authorized_at is not None


@pytest.mark.django_db
def test_payment_session_is_guest_only(owner, other_guest, awaiting, make_payment, fake_stripe):
    fake_stripe.add("pi_total", "succeeded")
    make_payment(awaiting, "pi_total")

    for user in (owner, other_guest):
        response = _client(user).get(reverse("booking-payment-session"), {"booking_id": str(awaiting.id)})
        assert response.status_code == 403

    assert fake_stripe.calls == []
    assert Payment.objects.get().status == PaymentStatus.PENDING


@pytest.mark.django_db
def test_payment_session_requires_booking_id(guest):
    response = _client(guest).get(reverse("booking-payment-session"))

    assert response.status_code == 400
    assert "booking_id" in response.data["details"]


@pytest.mark.django_db
def test_capture_by_another_guest_is_forbidden(other_guest, awaiting, make_payment, fake_stripe):
    fake_stripe.add("pi_total", "requires_capture")
    payment = make_payment(awaiting, "pi_total")

    response = _client(other_guest).post(reverse("booking-capture"), {"booking_id": str(awaiting.id)}, format="json")

    assert response.status_code == 403
    assert fake_stripe.calls == []
    payment.refresh_from_db()
    assert payment.status == PaymentStatus.PENDING
    awaiting.refresh_from_db()
    assert awaiting.status == BookingStatus.AWAITING_PAYMENT


@pytest.mark.django_db
def test_capture_confirms_booking_without_capturing_deposit(guest, awaiting, make_payment, fake_stripe):
    fake_stripe.add("pi_total", "succeeded")
    fake_stripe.add("pi_hold", "requires_capture", amount=50000, capture_method="manual")
    make_payment(awaiting, "pi_total")
    make_payment(awaiting, "pi_hold", purpose=PaymentPurpose.DEPOSIT_HOLD, amount_cents=50000)

    response = _client(guest).post(reverse("booking-capture"), {"booking_id": str(awaiting.id)}, format="json")

    assert response.status_code == 200
    assert response.data["booking"]["status"] == "confirmed"
    assert response.data["booking"]["confirmed_at"] is not None
    assert response.data["payment"]["status"] == "succeeded"
    assert fake_stripe.called("capture") == []


@pytest.mark.django_db
def test_capture_settles_manual_total_intent(guest, make_booking, make_payment, fake_stripe):
    booking = make_booking(status=BookingStatus.AWAITING_PAYMENT, deposit_cents=0)
    fake_stripe.add("pi_total", "requires_capture", capture_method="manual")
    payment = make_payment(booking, "pi_total")
    Payment.objects.filter(pk=payment.pk).update(capture_method=CaptureMethod.MANUAL)

    response = _client(guest).post(reverse("booking-capture"), {"booking_id": str(booking.id)}, format="json")

    assert response.status_code == 200
    assert fake_stripe.called("capture") == ["pi_total"]
    payment.refresh_from_db()
    assert payment.status == PaymentStatus.SUCCEEDED
    assert payment.stripe_charge_id == "ch_pi_total"


@pytest.mark.django_db
def test_capture_conflicts_while_payment_needs_action(guest, awaiting, make_payment, fake_stripe):
    fake_stripe.add("pi_total", "requires_action")
    payment = make_payment(awaiting, "pi_total")

    response = _client(guest).post(reverse("booking-capture"), {"booking_id": str(awaiting.id)}, format="json")

    assert response.status_code == 409
    assert response.data["error"] == "Payment not complete: requires_action."
    payment.refresh_from_db()
    assert payment.status == PaymentStatus.REQUIRES_ACTION
    awaiting.refresh_from_db()
    assert awaiting.status == BookingStatus.AWAITING_PAYMENT


@pytest.mark.django_db
def test_capture_waits_for_deposit_authorization(guest, awaiting, make_payment, fake_stripe):
    fake_stripe.add("pi_total", "succeeded")
    fake_stripe.add("pi_hold", "requires_payment_method", amount=50000, capture_method="manual")
    make_payment(awaiting, "pi_total")
    make_payment(awaiting, "pi_hold", purpose=PaymentPurpose.DEPOSIT_HOLD, amount_cents=50000)

    response = _client(guest).post(reverse("booking-capture"), {"booking_id": str(awaiting.id)}, format="json")

    assert response.status_code == 409
    awaiting.refresh_from_db()
    assert awaiting.status == BookingStatus.AWAITING_PAYMENT


@pytest.mark.django_db
def test_capture_outside_awaiting_payment_conflicts(guest, make_booking, fake_stripe):
    booking = make_booking(status=BookingStatus.PENDING_REVIEW)

    response = _client(guest).post(reverse("booking-capture"), {"booking_id": str(booking.id)}, format="json")

    assert response.status_code == 409
    assert fake_stripe.calls == []


@pytest.mark.django_db
def test_card_decline_is_reported_with_fixed_message(guest, awaiting, make_payment, monkeypatch):
    make_payment(awaiting, "pi_total")

    def declined(intent_id, **kwargs):
        raise stripe.CardError("Your card has insufficient funds.", "card", "card_declined")

    monkeypatch.setattr("payments.gateway.stripe.PaymentIntent.retrieve", declined)

    response = _client(guest).post(reverse("booking-capture"), {"booking_id": str(awaiting.id)}, format="json")

    assert response.status_code == 400
    assert response.data == {
        "error": "Your card was declined. Please use a different payment method.",
        "code": "provider_error",
    }


@pytest.mark.django_db
def test_provider_configuration_errors_are_not_leaked(guest, awaiting, make_payment, monkeypatch):
    make_payment(awaiting, "pi_total")

    def unauthorized(intent_id, **kwargs):
        raise stripe.AuthenticationError("Invalid API Key provided: sk_live_****1234 (permission denied)")

    monkeypatch.setattr("payments.gateway.stripe.PaymentIntent.retrieve", unauthorized)

    response = _client(guest).get(reverse("booking-payment-session"), {"booking_id": str(awaiting.id)})

    assert response.status_code == 400
    assert response.data["error"] == "Payments are temporarily unavailable. Please try again shortly."
    assert "sk_live" not in str(response.data)
    assert "permission denied" not in str(response.data)


@pytest.mark.parametrize(
    "error, kind",
    [
        (stripe.CardError("declined", "card", "card_declined"), ProviderErrorKind.CARD_DECLINED),
        (stripe.RateLimitError("slow down"), ProviderErrorKind.RATE_LIMITED),
        (stripe.APIConnectionError("timeout"), ProviderErrorKind.NETWORK),
        (stripe.AuthenticationError("bad key"), ProviderErrorKind.CONFIGURATION),
        (stripe.PermissionError("restricted key"), ProviderErrorKind.CONFIGURATION),
        (stripe.InvalidRequestError("No such payment_intent", "intent"), ProviderErrorKind.INVALID_REQUEST),
        (stripe.StripeError("boom"), ProviderErrorKind.UNKNOWN),
    ],
)
def test_classify_stripe_error(error, kind):
    assert classify_stripe_error(error) == kind


@pytest.mark.django_db
def test_gateway_without_secret_key_reports_configuration(settings):
    settings.STRIPE_SECRET_KEY = ""

    with pytest.raises(ProviderError) as excinfo:
        PaymentGateway(use_stub=False).retrieve_intent("pi_123")

    assert excinfo.value.kind == ProviderErrorKind.CONFIGURATION


@pytest.mark.django_db
def test_stub_gateway_behaves_like_a_paid_intent(settings, awaiting):
    settings.STRIPE_USE_STUB = True
    gateway = PaymentGateway()

    intent = gateway.create_intent(
        booking_id=awaiting.id,
        purpose=PaymentPurpose.DEPOSIT_HOLD,
        amount_cents=50000,
        currency="usd",
        capture_method=CaptureMethod.MANUAL,
    )
    Payment.objects.create(
        booking=awaiting,
        purpose=PaymentPurpose.DEPOSIT_HOLD,
        stripe_payment_intent_id=intent.id,
        amount_cents=50000,
        capture_method=CaptureMethod.MANUAL,
    )

    assert isinstance(intent, PaymentIntentStub)
    assert intent.id.startswith("pi_test_")
    assert gateway.retrieve_intent(intent.id).status == "requires_capture"
    assert gateway.cancel_intent(intent.id).status == "canceled"


@pytest.mark.django_db
def test_ensure_payment_reuses_matching_intent(awaiting, make_payment, fake_stripe):
    fake_stripe.add("pi_total", "requires_payment_method", amount=100000)
    existing = make_payment(awaiting, "pi_total")

    payment, intent = payments.ensure_payment(
        BookingContext(principal=None), awaiting, PaymentPurpose.BOOKING_TOTAL, 100000
    )

    assert payment == existing
    assert intent.id == "pi_total"
    assert fake_stripe.called("create") == []


@pytest.mark.django_db
def test_ensure_payment_replaces_intent_when_amount_changes(awaiting, make_payment, fake_stripe):
    fake_stripe.add("pi_total", "requires_payment_method", amount=90000)
    existing = make_payment(awaiting, "pi_total", amount_cents=90000)

    payment, intent = payments.ensure_payment(
        BookingContext(principal=None), awaiting, PaymentPurpose.BOOKING_TOTAL, 100000
    )

    existing.refresh_from_db()
    assert existing.status == PaymentStatus.CANCELLED
    assert fake_stripe.called("cancel") == ["pi_total"]
    assert payment.pk != existing.pk
    assert payment.amount_cents == 100000
    assert intent.amount == 100000


@pytest.mark.django_db
def test_compare_and_set_loses_to_concurrent_writer(awaiting, make_payment):
    payment = make_payment(awaiting, "pi_total")
    stale = Payment.objects.get(pk=payment.pk)

    assert payments.compare_and_set_status(payment, PaymentStatus.SUCCEEDED) is True
    assert payments.compare_and_set_status(stale, PaymentStatus.REQUIRES_ACTION) is False
    assert stale.status == PaymentStatus.SUCCEEDED


@pytest.mark.django_db
def test_owner_releases_deposit_hold(owner, make_booking, make_payment, fake_stripe):
    booking = make_booking(status=BookingStatus.CONFIRMED)
    fake_stripe.add("pi_hold", "requires_capture", amount=50000, capture_method="manual")
    hold = make_payment(booking, "pi_hold", purpose=PaymentPurpose.DEPOSIT_HOLD, amount_cents=50000)
    client = _client(owner)

    response = client.post(reverse("booking-deposit-release"), {"booking_id": str(booking.id)}, format="json")

    assert response.status_code == 200
    assert response.data["payment"]["status"] == "cancelled"
    assert fake_stripe.called("cancel") == ["pi_hold"]
    hold.refresh_from_db()
    assert hold.released_at is not None
    booking.refresh_from_db()
    assert booking.status == BookingStatus.CONFIRMED

    again = client.post(reverse("booking-deposit-release"), {"booking_id": str(booking.id)}, format="json")
    assert again.status_code == 409


@pytest.mark.django_db
def test_guest_cannot_release_deposit(guest, make_booking, make_payment, fake_stripe):
    booking = make_booking(status=BookingStatus.CONFIRMED)
    make_payment(booking, "pi_hold", purpose=PaymentPurpose.DEPOSIT_HOLD, amount_cents=50000)

    response = _client(guest).post(reverse("booking-deposit-release"), {"booking_id": str(booking.id)}, format="json")

    assert response.status_code == 403
    assert fake_stripe.calls == []


@pytest.mark.django_db
def test_deposit_cannot_be_released_before_confirmation(owner, awaiting, make_payment, fake_stripe):
    fake_stripe.add("pi_total", "requires_payment_method")
    fake_stripe.add("pi_hold", "requires_capture", amount=50000, capture_method="manual")
    make_payment(awaiting, "pi_total")
    hold = make_payment(awaiting, "pi_hold", purpose=PaymentPurpose.DEPOSIT_HOLD, amount_cents=50000)

    response = _client(owner).post(reverse("booking-deposit-release"), {"booking_id": str(awaiting.id)}, format="json")

    assert response.status_code == 409
    assert fake_stripe.calls == []
    hold.refresh_from_db()
    assert hold.status == PaymentStatus.PENDING
    assert hold.released_at is None


@pytest.mark.django_db
def test_capture_and_payment_session_agree_when_deposit_hold_is_gone(guest, awaiting, make_payment, fake_stripe):
    fake_stripe.add("pi_total", "succeeded")
    fake_stripe.add("pi_hold", "canceled", amount=50000, capture_method="manual")
    make_payment(awaiting, "pi_total")
    make_payment(
        awaiting,
        "pi_hold",
        purpose=PaymentPurpose.DEPOSIT_HOLD,
        amount_cents=50000,
        status=PaymentStatus.CANCELLED,
    )
    client = _client(guest)

    session = client.get(reverse("booking-payment-session"), {"booking_id": str(awaiting.id)})
    capture = client.post(reverse("booking-capture"), {"booking_id": str(awaiting.id)}, format="json")

    assert session.status_code == 200
    assert session.data["booking"]["status"] == "awaiting_payment"
    assert capture.status_code == 409
    awaiting.refresh_from_db()
    assert awaiting.status == BookingStatus.AWAITING_PAYMENT
