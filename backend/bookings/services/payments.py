from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from django.utils import timezone

from bookings.context import BookingContext
from bookings.exceptions import Conflict
from bookings.models import Booking, BookingStatus
from bookings.transitions import BookingEvent, apply_transition
from payments.models import CaptureMethod, Payment, PaymentPurpose, PaymentStatus

logger = logging.getLogger(__name__)

INTENT_STATUS_MAP = {
    "succeeded": PaymentStatus.SUCCEEDED,
    "requires_action": PaymentStatus.REQUIRES_ACTION,
    "requires_confirmation": PaymentStatus.REQUIRES_ACTION,
    "canceled": PaymentStatus.CANCELLED,
}

DEPOSIT_AUTHORIZED_STATUSES = ("requires_capture", "succeeded")
CANCELLABLE_INTENT_STATUSES = (
    "requires_payment_method",
    "requires_confirmation",
    "requires_action",
    "requires_capture",
    "processing",
)
OPEN_PAYMENT_STATUSES = (PaymentStatus.PENDING, PaymentStatus.REQUIRES_ACTION)


def map_intent_status(intent_status: str, current: str) -> str:
    """Map a provider intent status onto the local status; unknown values keep `current`."""
    return INTENT_STATUS_MAP.get(intent_status, current)


def capture_method_for(purpose: str) -> str:
    if purpose == PaymentPurpose.DEPOSIT_HOLD:
        return CaptureMethod.MANUAL
    return CaptureMethod.AUTOMATIC


def compare_and_set_status(payment: Payment, new_status: str, **extra_fields) -> bool:
    """
    Move `payment` to `new_status` only if its stored status is still the one we read.

    Returns True when this call performed the write. A lost race refreshes the
    instance so callers continue from whatever the winner stored.
    """
    if payment.status == new_status and not extra_fields:
        return False

    updated = Payment.objects.filter(pk=payment.pk, status=payment.status).update(
        status=new_status,
        updated_at=timezone.now(),
        **extra_fields,
    )
    if not updated:
        logger.info("Payment %s changed concurrently; keeping stored status.", payment.pk)
        payment.refresh_from_db()
        return False

    logger.info("Payment %s status %s -> %s", payment.pk, payment.status, new_status)
    payment.status = new_status
    for name, value in extra_fields.items():
        setattr(payment, name, value)
    return True


def reconcile_payment(payment: Payment, intent) -> Payment:
    new_status = map_intent_status(intent.status, payment.status)
    if new_status != payment.status:
        extra = {}
        if new_status == PaymentStatus.SUCCEEDED and getattr(intent, "latest_charge", None):
            extra["stripe_charge_id"] = str(intent.latest_charge)
        compare_and_set_status(payment, new_status, **extra)
    elif intent.status == "requires_capture" and payment.authorized_at is None:
        authorized_at = timezone.now()
        if Payment.objects.filter(pk=payment.pk, authorized_at__isnull=True).update(authorized_at=authorized_at):
            payment.authorized_at = authorized_at
    return payment


def open_payment(booking: Booking, purpose: str) -> Optional[Payment]:
    return (
        booking.payments.filter(purpose=purpose)
        .exclude(status=PaymentStatus.CANCELLED)
        .order_by("-created_at")
        .first()
    )


def _intent_matches(intent, amount_cents: int, currency: str) -> bool:
    return intent.amount == amount_cents and str(intent.currency).lower() == currency.lower()


def ensure_payment(ctx: BookingContext, booking: Booking, purpose: str, amount_cents: int):
    """
    Return the open payment for `purpose`, creating the provider intent if needed.

    An existing intent is reused while it is still live and matches the amount
    and currency; otherwise it is voided and replaced.
    """
    currency = booking.currency
    existing = open_payment(booking, purpose)
    if existing is not None:
        intent = ctx.gateway.retrieve_intent(existing.stripe_payment_intent_id)
        if intent.status == "succeeded" or (
            intent.status != "canceled" and _intent_matches(intent, amount_cents, currency)
        ):
            return existing, intent
        if intent.status in CANCELLABLE_INTENT_STATUSES:
            ctx.gateway.cancel_intent(existing.stripe_payment_intent_id, reason="abandoned")
        compare_and_set_status(existing, PaymentStatus.CANCELLED)
        logger.info("Replacing payment %s for booking %s (%s).", existing.pk, booking.pk, purpose)

    replaces = existing.pk if existing is not None else "initial"
    intent = ctx.gateway.create_intent(
        booking_id=booking.pk,
        purpose=purpose,
        amount_cents=amount_cents,
        currency=currency,
        capture_method=capture_method_for(purpose),
        idempotency_key=f"booking-{booking.pk}-{purpose}-{amount_cents}-{currency}-{replaces}",
    )
    payment = Payment.objects.create(
        booking=booking,
        purpose=purpose,
        stripe_payment_intent_id=intent.id,
        amount_cents=amount_cents,
        currency=currency,
        capture_method=capture_method_for(purpose),
        status=map_intent_status(intent.status, PaymentStatus.PENDING),
    )
    logger.info("Created %s payment %s for booking %s (%s).", purpose, payment.pk, booking.pk, intent.id)
    return payment, intent


def ensure_booking_payments(ctx: BookingContext, booking: Booking) -> Dict[str, tuple]:
    """Create or reuse the provider intents a booking needs while awaiting payment."""
    payments = {}
    if booking.total_cents > 0:
        payments[PaymentPurpose.BOOKING_TOTAL] = ensure_payment(
            ctx, booking, PaymentPurpose.BOOKING_TOTAL, booking.total_cents
        )
    if booking.deposit_cents > 0:
        payments[PaymentPurpose.DEPOSIT_HOLD] = ensure_payment(
            ctx, booking, PaymentPurpose.DEPOSIT_HOLD, booking.deposit_cents
        )
    return payments


@dataclass
class PaymentSnapshot:
    payment: Payment
    intent_status: str
    client_secret: Optional[str] = None


@dataclass
class PaymentSession:
    booking: Booking
    payments: List[PaymentSnapshot] = field(default_factory=list)


def _deposit_ready(ctx: BookingContext, booking: Booking, known_intents: Dict[str, object]) -> bool:
    deposit = open_payment(booking, PaymentPurpose.DEPOSIT_HOLD)
    if deposit is None:
        return booking.deposit_cents <= 0
    intent = known_intents.get(deposit.stripe_payment_intent_id)
    if intent is None:
        intent = ctx.gateway.retrieve_intent(deposit.stripe_payment_intent_id)
        reconcile_payment(deposit, intent)
    return intent.status in DEPOSIT_AUTHORIZED_STATUSES


def confirm_if_paid(ctx: BookingContext, booking: Booking, known_intents: Optional[Dict[str, object]] = None) -> Booking:
    """Confirm an awaiting-payment booking once every required payment is in place."""
    if booking.status != BookingStatus.AWAITING_PAYMENT:
        return booking
    total = open_payment(booking, PaymentPurpose.BOOKING_TOTAL)
    if total is None or total.status != PaymentStatus.SUCCEEDED:
        return booking
    if not _deposit_ready(ctx, booking, known_intents or {}):
        return booking

    try:
        return apply_transition(
            booking,
            BookingEvent.PAYMENT_SUCCEEDED,
            actor=ctx.principal,
            confirmed_at=timezone.now(),
        )
    except Conflict:
        booking.refresh_from_db()
        logger.info("Booking %s was confirmed by a concurrent reconciliation.", booking.pk)
        return booking


def build_payment_session(ctx: BookingContext, booking: Booking) -> PaymentSession:
    """
    Reconcile every live payment on `booking` with the provider.

    Each payment's stored status is rewritten only when the provider reports a
    different mapped status, so repeated polling performs no writes.
    """
    session = PaymentSession(booking=booking)
    known_intents = {}
    payments = booking.payments.exclude(status=PaymentStatus.CANCELLED).order_by("created_at", "id")
    for payment in payments:
        intent = ctx.gateway.retrieve_intent(payment.stripe_payment_intent_id)
        known_intents[payment.stripe_payment_intent_id] = intent
        reconcile_payment(payment, intent)
        session.payments.append(
            PaymentSnapshot(
                payment=payment,
                intent_status=intent.status,
                client_secret=getattr(intent, "client_secret", None),
            )
        )
    session.booking = confirm_if_paid(ctx, booking, known_intents)
    return session


@dataclass
class CaptureResult:
    booking: Booking
    payment: Payment
    deposit: Optional[Payment] = None


def capture_booking_payment(ctx: BookingContext, booking: Booking) -> CaptureResult:
    """
    Settle the booking-total intent and confirm the booking.

    A manual booking-total intent awaiting capture is captured here; automatic
    intents are only verified. The deposit hold is never captured by this flow.
    """
    if booking.status != BookingStatus.AWAITING_PAYMENT:
        raise Conflict(f"Cannot capture payment for a booking that is {booking.get_status_display().lower()}.")

    payment = open_payment(booking, PaymentPurpose.BOOKING_TOTAL)
    if payment is None:
        raise Conflict("No payment has been started for this booking.")

    intent = ctx.gateway.retrieve_intent(payment.stripe_payment_intent_id)
    if intent.status == "requires_capture" and payment.capture_method == CaptureMethod.MANUAL:
        intent = ctx.gateway.capture_intent(payment.stripe_payment_intent_id)
    reconcile_payment(payment, intent)
    if intent.status != "succeeded":
        raise Conflict(f"Payment not complete: {intent.status}.")

    if not _deposit_ready(ctx, booking, {}):
        raise Conflict("The security deposit hold has not been authorized yet.")
    deposit = open_payment(booking, PaymentPurpose.DEPOSIT_HOLD)

    booking = apply_transition(
        booking,
        BookingEvent.PAYMENT_SUCCEEDED,
        actor=ctx.principal,
        confirmed_at=timezone.now(),
    )
    return CaptureResult(booking=booking, payment=payment, deposit=deposit)


def release_deposit_hold(ctx: BookingContext, booking: Booking) -> Payment:
    """Cancel the deposit hold of a confirmed booking at the provider."""
    if booking.status != BookingStatus.CONFIRMED:
        raise Conflict(f"Cannot release the deposit of a booking that is {booking.get_status_display().lower()}.")
    deposit = open_payment(booking, PaymentPurpose.DEPOSIT_HOLD)
    if deposit is None:
        raise Conflict("This booking has no active deposit hold.")
    if deposit.status == PaymentStatus.SUCCEEDED:
        raise Conflict("The deposit has already been captured and cannot be released.")

    intent = ctx.gateway.retrieve_intent(deposit.stripe_payment_intent_id)
    if intent.status in CANCELLABLE_INTENT_STATUSES:
        ctx.gateway.cancel_intent(deposit.stripe_payment_intent_id)
    elif intent.status == "succeeded":
        reconcile_payment(deposit, intent)
        raise Conflict("The deposit has already been captured and cannot be released.")

    if not compare_and_set_status(deposit, PaymentStatus.CANCELLED, released_at=timezone.now()):
        raise Conflict("The deposit hold changed while it was being released.")
    logger.info("Released deposit hold %s for booking %s.", deposit.pk, booking.pk)
    return deposit


def void_open_payments(ctx: BookingContext, booking: Booking) -> list[Payment]:
    """Cancel every provider intent on `booking` that has not settled."""
    voided = []
    for payment in booking.payments.filter(status__in=OPEN_PAYMENT_STATUSES):
        intent = ctx.gateway.retrieve_intent(payment.stripe_payment_intent_id)
        if intent.status == "succeeded":
            reconcile_payment(payment, intent)
            logger.warning(
                "Payment %s on cancelled booking %s already succeeded; refund must be handled manually.",
                payment.pk,
                booking.pk,
            )
            continue
        if intent.status in CANCELLABLE_INTENT_STATUSES:
            ctx.gateway.cancel_intent(payment.stripe_payment_intent_id)
        if compare_and_set_status(payment, PaymentStatus.CANCELLED):
            voided.append(payment)
    return voided
