from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Optional
from uuid import uuid4

import stripe
from django.conf import settings

from bookings.exceptions import ProviderError, ProviderErrorKind
from payments.models import CaptureMethod, Payment, PaymentStatus

logger = logging.getLogger(__name__)

AUTOMATIC_PAYMENT_METHODS_CONFIG = {"enabled": True, "allow_redirects": "never"}


@dataclass
class PaymentIntentStub:
    """
    Lightweight stand-in for stripe.PaymentIntent when running in stub mode.

    Local development does not hit Stripe; stubbed intents behave as if the
    guest completed payment, so automatic intents read back as `succeeded` and
    manual (deposit) intents as an authorised `requires_capture` hold.
    """

    id: str
    status: str
    client_secret: str
    amount: int
    currency: str
    capture_method: str
    latest_charge: Optional[str] = None


def _get_stripe_api_key() -> Optional[str]:
    key = getattr(settings, "STRIPE_SECRET_KEY", "")
    return key or None


def _should_use_stub() -> bool:
    if getattr(settings, "STRIPE_USE_STUB", False):
        return True
    return _get_stripe_api_key() is None


def classify_stripe_error(exc: stripe.StripeError) -> ProviderErrorKind:
    if isinstance(exc, stripe.CardError):
        return ProviderErrorKind.CARD_DECLINED
    if isinstance(exc, stripe.RateLimitError):
        return ProviderErrorKind.RATE_LIMITED
    if isinstance(exc, (stripe.APIConnectionError, stripe.APIError)):
        return ProviderErrorKind.NETWORK
    if isinstance(exc, (stripe.AuthenticationError, stripe.PermissionError)):
        return ProviderErrorKind.CONFIGURATION
    if isinstance(exc, stripe.InvalidRequestError):
        return ProviderErrorKind.INVALID_REQUEST
    return ProviderErrorKind.UNKNOWN


class PaymentGateway:
    """Thin adapter over Stripe PaymentIntents that only ever raises ProviderError."""

    def __init__(self, *, use_stub: Optional[bool] = None):
        self.use_stub = _should_use_stub() if use_stub is None else use_stub

    def _configure(self):
        api_key = _get_stripe_api_key()
        if not api_key:
            logger.error("Stripe secret key is not configured.")
            raise ProviderError(ProviderErrorKind.CONFIGURATION)
        stripe.api_key = api_key

    @contextmanager
    def _provider_call(self, operation: str, reference: str):
        self._configure()
        try:
            yield
        except stripe.StripeError as exc:
            kind = classify_stripe_error(exc)
            logger.warning("Stripe %s failed for %s (%s): %s", operation, reference, kind.value, exc)
            raise ProviderError(kind) from exc

    def create_intent(
        self,
        *,
        booking_id,
        purpose: str,
        amount_cents: int,
        currency: str,
        capture_method: str,
        idempotency_key: Optional[str] = None,
    ):
        if self.use_stub:
            intent_id = f"pi_test_{uuid4().hex}"
            return PaymentIntentStub(
                id=intent_id,
                status="requires_payment_method",
                client_secret=f"{intent_id}_secret_{uuid4().hex[:12]}",
                amount=amount_cents,
                currency=currency,
                capture_method=capture_method,
            )

        options = {"idempotency_key": idempotency_key} if idempotency_key else {}
        with self._provider_call("create", f"booking {booking_id}"):
            return stripe.PaymentIntent.create(
                amount=amount_cents,
                currency=currency,
                capture_method=capture_method,
                automatic_payment_methods=AUTOMATIC_PAYMENT_METHODS_CONFIG,
                metadata={"booking_id": str(booking_id), "purpose": purpose},
                **options,
            )

    def retrieve_intent(self, intent_id: str):
        if self.use_stub:
            return self._stub_intent(intent_id)
        with self._provider_call("retrieve", intent_id):
            return stripe.PaymentIntent.retrieve(intent_id)

    def capture_intent(self, intent_id: str):
        if self.use_stub:
            intent = self._stub_intent(intent_id)
            intent.status = "succeeded"
            intent.latest_charge = f"ch_test_{uuid4().hex}"
            return intent
        with self._provider_call("capture", intent_id):
            return stripe.PaymentIntent.capture(intent_id)

    def cancel_intent(self, intent_id: str, *, reason: str = "requested_by_customer"):
        if self.use_stub:
            intent = self._stub_intent(intent_id)
            intent.status = "canceled"
            return intent
        with self._provider_call("cancel", intent_id):
            return stripe.PaymentIntent.cancel(intent_id, cancellation_reason=reason)

    def _stub_intent(self, intent_id: str) -> PaymentIntentStub:
        payment = Payment.objects.filter(stripe_payment_intent_id=intent_id).first()
        if payment is None:
            raise ProviderError(ProviderErrorKind.INVALID_REQUEST)
        if payment.status == PaymentStatus.CANCELLED:
            status = "canceled"
        elif payment.capture_method == CaptureMethod.MANUAL:
            status = "requires_capture"
        else:
            status = "succeeded"
        return PaymentIntentStub(
            id=intent_id,
            status=status,
            client_secret=f"{intent_id}_secret_stub",
            amount=payment.amount_cents,
            currency=payment.currency,
            capture_method=payment.capture_method,
        )
