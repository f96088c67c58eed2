from __future__ import annotations

import enum
import logging
from functools import partial

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from bookings.exceptions import Conflict
from bookings.models import Booking, BookingStatus

logger = logging.getLogger(__name__)


class BookingEvent(str, enum.Enum):
    SUBMIT_INSTANT = "submit_instant"
    SUBMIT_REQUEST = "submit_request"
    APPROVE = "approve"
    DECLINE = "decline"
    PAYMENT_SUCCEEDED = "payment_succeeded"
    CANCEL = "cancel"


def allowed_transitions(status: str) -> dict[BookingEvent, BookingStatus]:
    """Outgoing edges of the booking lifecycle graph for one status."""
    match BookingStatus(status):
        case BookingStatus.DRAFT:
            return {
                BookingEvent.SUBMIT_INSTANT: BookingStatus.AWAITING_PAYMENT,
                BookingEvent.SUBMIT_REQUEST: BookingStatus.PENDING_REVIEW,
                BookingEvent.CANCEL: BookingStatus.CANCELLED,
            }
        case BookingStatus.PENDING_REVIEW:
            return {
                BookingEvent.APPROVE: BookingStatus.AWAITING_PAYMENT,
                BookingEvent.DECLINE: BookingStatus.DECLINED,
                BookingEvent.CANCEL: BookingStatus.CANCELLED,
            }
        case BookingStatus.AWAITING_PAYMENT:
            return {
                BookingEvent.PAYMENT_SUCCEEDED: BookingStatus.CONFIRMED,
                BookingEvent.CANCEL: BookingStatus.CANCELLED,
            }
        case BookingStatus.CONFIRMED | BookingStatus.DECLINED | BookingStatus.CANCELLED:
            return {}
        case unhandled:
            raise AssertionError(f"No transitions defined for booking status {unhandled!r}")


def next_status(status: str, event: BookingEvent) -> BookingStatus:
    try:
        return allowed_transitions(status)[event]
    except KeyError:
        label = BookingStatus(status).label.lower()
        raise Conflict(f"Cannot {event.value.replace('_', ' ')} a booking that is {label}.") from None


def apply_transition(booking: Booking, event: BookingEvent, *, actor=None, **changes) -> Booking:
    """
    Move `booking` along `event`, guarded by the status and version it was read at.

    The update only matches when nobody else transitioned the row in between;
    otherwise the caller gets a Conflict and the stored booking is untouched.
    """
    target = next_status(booking.status, event)
    updated = Booking.objects.filter(
        pk=booking.pk,
        status=booking.status,
        version=booking.version,
    ).update(
        status=target,
        version=F("version") + 1,
        updated_at=timezone.now(),
        **changes,
    )
    if not updated:
        logger.info("Booking %s changed before %s could be applied.", booking.pk, event.value)
        raise Conflict("This booking was updated by someone else. Refresh and try again.")

    transaction.on_commit(
        partial(
            logger.info,
            "Booking %s %s -> %s via %s (actor=%s)",
            booking.pk,
            booking.status,
            target.value,
            event.value,
            getattr(actor, "pk", None),
        )
    )
    booking.refresh_from_db()
    return booking
