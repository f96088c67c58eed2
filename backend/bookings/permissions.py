from __future__ import annotations

import enum

from rest_framework.permissions import BasePermission


class BookingAction(str, enum.Enum):
    VIEW = "view"
    SUBMIT = "submit"
    CANCEL = "cancel"
    CAPTURE = "capture"
    VIEW_PAYMENT_SESSION = "view_payment_session"
    APPROVE = "approve"
    DECLINE = "decline"
    RELEASE_DEPOSIT = "release_deposit"


GUEST_ACTIONS = frozenset(
    {
        BookingAction.VIEW,
        BookingAction.SUBMIT,
        BookingAction.CANCEL,
        BookingAction.CAPTURE,
        BookingAction.VIEW_PAYMENT_SESSION,
    }
)
HOST_ACTIONS = frozenset(
    {
        BookingAction.VIEW,
        BookingAction.APPROVE,
        BookingAction.DECLINE,
        BookingAction.RELEASE_DEPOSIT,
        BookingAction.CANCEL,
    }
)


def is_booking_guest(principal, booking) -> bool:
    return principal is not None and principal.pk == booking.guest_id


def is_booking_host(principal, booking) -> bool:
    return principal is not None and booking.property.is_host(principal)


def authorize(principal, booking, action: BookingAction) -> bool:
    """Decide whether `principal` may perform `action` on `booking`."""
    if principal is None:
        return False
    if action in GUEST_ACTIONS and is_booking_guest(principal, booking):
        return True
    if action in HOST_ACTIONS and is_booking_host(principal, booking):
        return True
    return False


class BookingActionPermission(BasePermission):
    """
    Object-level check driven by the view's `booking_action` attribute.

    Unauthenticated callers are rejected by `IsAuthenticated` earlier in the
    permission chain, so a failure here always renders as 403.
    """

    message = "Forbidden"

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated)

    def has_object_permission(self, request, view, obj):
        action = getattr(view, "booking_action", None)
        if action is None:
            return False
        return authorize(request.user, obj, action)
