from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, Optional

from django.core.mail import BadHeaderError
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from bookings.context import BookingContext
from bookings.exceptions import Conflict
from bookings.models import (
    Booking,
    BookingKind,
    BookingMode,
    BookingStatus,
    EventBookingDetails,
    EventType,
    StayBookingDetails,
)
from bookings.services.availability import find_conflict, stay_window
from bookings.services.emails import payment_url_for, send_booking_approval_payment_email
from bookings.services.payments import ensure_booking_payments, void_open_payments
from bookings.services.quotes import Quote, quote_for_booking, quote_for_property
from bookings.transitions import BookingEvent, apply_transition, next_status
from properties.models import Property

logger = logging.getLogger(__name__)

SLOT_TAKEN_MESSAGE = "The selected dates are no longer available."
STALE_QUOTE_MESSAGE = "The quote is out of date. Please request a new quote."


def resolve_mode(requested: Optional[str], quoted: str) -> str:
    """A guest may ask for review instead of instant booking, never the reverse."""
    if BookingMode.REQUEST in (requested, quoted):
        return BookingMode.REQUEST
    return BookingMode.INSTANT


def quote_fields(quote: Quote) -> Dict[str, Any]:
    return {
        "currency": quote.currency,
        "subtotal_cents": quote.subtotal_cents,
        "fees_cents": quote.fees_cents,
        "addons_total_cents": quote.addons_total_cents,
        "deposit_cents": quote.deposit_cents,
        "total_cents": quote.total_cents,
        "pricing_snapshot": quote.pricing_snapshot,
        "risk_flags": quote.risk_flag_codes(),
    }


def ensure_quote_matches(client_quote: Optional[Dict[str, Any]], quote: Quote) -> None:
    if not client_quote:
        return
    client_flags = sorted(client_quote.get("risk_flags") or [])
    if client_quote.get("total_cents") != quote.total_cents or client_flags != quote.risk_flag_codes():
        raise ValidationError({"quote": STALE_QUOTE_MESSAGE})


def create_draft(
    ctx: BookingContext,
    *,
    prop: Property,
    kind: str,
    guest_count: int,
    start_at: Optional[datetime] = None,
    end_at: Optional[datetime] = None,
    check_in: Optional[date] = None,
    check_out: Optional[date] = None,
    mode: Optional[str] = None,
    estimated_vehicles: int = 0,
    addons: Iterable[str] = (),
    event_details: Optional[Dict[str, Any]] = None,
    stay_details: Optional[Dict[str, Any]] = None,
    client_quote: Optional[Dict[str, Any]] = None,
) -> Booking:
    event_details = dict(event_details or {})
    addons = list(dict.fromkeys(addons or []))

    quote = quote_for_property(
        prop,
        kind=kind,
        guest_count=guest_count,
        start_at=start_at,
        end_at=end_at,
        check_in=check_in,
        check_out=check_out,
        estimated_vehicles=estimated_vehicles,
        addons=addons,
        event_type=event_details.get("event_type", EventType.OTHER),
        alcohol=event_details.get("alcohol", False),
        amplified_sound=event_details.get("amplified_sound", False),
    )
    ensure_quote_matches(client_quote, quote)

    if kind == BookingKind.STAY:
        start_at, end_at = stay_window(check_in, check_out, prop.tzinfo())
    if find_conflict(prop.pk, start_at, end_at) is not None:
        raise Conflict(SLOT_TAKEN_MESSAGE)

    with transaction.atomic():
        booking = Booking.objects.create(
            property=prop,
            guest=ctx.principal,
            kind=kind,
            mode=resolve_mode(mode, quote.mode),
            start_at=start_at,
            end_at=end_at,
            check_in=check_in if kind == BookingKind.STAY else None,
            check_out=check_out if kind == BookingKind.STAY else None,
            guest_count=guest_count,
            estimated_vehicles=estimated_vehicles,
            addons=addons,
            **quote_fields(quote),
        )
        if kind == BookingKind.EVENT:
            event_details.setdefault("estimated_vehicle_count", estimated_vehicles)
            EventBookingDetails.objects.create(booking=booking, **event_details)
        else:
            StayBookingDetails.objects.create(booking=booking, **(stay_details or {}))

    logger.info("Draft booking %s created for property %s by user %s", booking.pk, prop.pk, ctx.principal_id)
    return booking


def submit_booking(
    ctx: BookingContext,
    booking: Booking,
    *,
    mode: Optional[str] = None,
    client_quote: Optional[Dict[str, Any]] = None,
) -> Booking:
    """
    Submit a draft for instant payment or host review.

    The quote is recomputed from the stored parameters, and availability is
    re-checked while the property row is locked so two guests cannot claim
    overlapping windows. Any failure leaves the booking as a draft.
    """
    next_status(booking.status, BookingEvent.SUBMIT_REQUEST)

    quote = quote_for_booking(booking)
    ensure_quote_matches(client_quote, quote)
    final_mode = resolve_mode(mode or booking.mode, quote.mode)
    event = BookingEvent.SUBMIT_INSTANT if final_mode == BookingMode.INSTANT else BookingEvent.SUBMIT_REQUEST

    with transaction.atomic():
        Property.objects.select_for_update().get(pk=booking.property_id)
        conflict = find_conflict(booking.property_id, booking.start_at, booking.end_at, exclude_booking_id=booking.pk)
        if conflict is not None:
            logger.warning("Booking %s lost its slot to booking %s at submit.", booking.pk, conflict.pk)
            raise Conflict(SLOT_TAKEN_MESSAGE)

        booking = apply_transition(
            booking,
            event,
            actor=ctx.principal,
            mode=final_mode,
            submitted_at=timezone.now(),
            **quote_fields(quote),
        )
        if booking.status == BookingStatus.AWAITING_PAYMENT:
            ensure_booking_payments(ctx, booking)

    return booking


def approve_booking(ctx: BookingContext, booking: Booking) -> Booking:
    with transaction.atomic():
        booking = apply_transition(
            booking,
            BookingEvent.APPROVE,
            actor=ctx.principal,
            approved_at=timezone.now(),
        )
        ensure_booking_payments(ctx, booking)

    try:
        send_booking_approval_payment_email(booking=booking, payment_url=payment_url_for(booking))
    except (OSError, BadHeaderError):
        logger.exception("Failed to send approval email for booking %s", booking.pk)
    return booking


def decline_booking(ctx: BookingContext, booking: Booking, *, reason: str = "") -> Booking:
    return apply_transition(
        booking,
        BookingEvent.DECLINE,
        actor=ctx.principal,
        declined_at=timezone.now(),
        decline_reason=reason,
    )


def cancel_booking(ctx: BookingContext, booking: Booking) -> Booking:
    next_status(booking.status, BookingEvent.CANCEL)

    with transaction.atomic():
        voided = void_open_payments(ctx, booking)
        booking = apply_transition(
            booking,
            BookingEvent.CANCEL,
            actor=ctx.principal,
            cancelled_at=timezone.now(),
            cancelled_by=ctx.principal,
        )

    if voided:
        logger.info("Voided %d open payment(s) for cancelled booking %s", len(voided), booking.pk)
    return booking
