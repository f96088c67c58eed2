from __future__ import annotations

from datetime import date, datetime, time, tzinfo
from typing import Optional

from bookings.models import SLOT_CLAIMING_STATUSES, Booking


def stay_window(check_in: date, check_out: date, tz: tzinfo) -> tuple[datetime, datetime]:
    return (
        datetime.combine(check_in, time.min, tzinfo=tz),
        datetime.combine(check_out, time.min, tzinfo=tz),
    )


def find_conflict(
    property_id,
    start_at: datetime,
    end_at: datetime,
    *,
    exclude_booking_id=None,
) -> Optional[Booking]:
    """First slot-claiming booking whose half-open window [start, end) overlaps the given one."""
    queryset = Booking.objects.filter(
        property_id=property_id,
        status__in=SLOT_CLAIMING_STATUSES,
        start_at__lt=end_at,
        end_at__gt=start_at,
    )
    if exclude_booking_id is not None:
        queryset = queryset.exclude(pk=exclude_booking_id)
    return queryset.order_by("start_at").first()


def is_available(property_id, start_at: datetime, end_at: datetime, *, exclude_booking_id=None) -> bool:
    """
    Pre-flight check only. The authoritative check runs again inside the
    submit transition while the property row is locked.
    """
    return find_conflict(property_id, start_at, end_at, exclude_booking_id=exclude_booking_id) is None
