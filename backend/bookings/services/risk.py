from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, time, tzinfo
from typing import FrozenSet, Optional

from django.utils import timezone

from bookings.models import BookingMode, EventType

DEFAULT_PARKING_CAPACITY = 8


class RiskFlag(str, enum.Enum):
    ALCOHOL = "ALCOHOL"
    AMPLIFIED_SOUND = "AMPLIFIED_SOUND"
    OVER_PARKING = "OVER_PARKING"
    LATE_END = "LATE_END"
    WEDDING = "WEDDING"
    PRODUCTION = "PRODUCTION"


@dataclass(frozen=True)
class EventRiskParams:
    event_type: str
    start_at: datetime
    end_at: datetime
    alcohol: bool = False
    amplified_sound: bool = False
    estimated_vehicles: int = 0
    parking_capacity: Optional[int] = None
    curfew_time: Optional[time] = None
    tz: Optional[tzinfo] = None


@dataclass(frozen=True)
class RiskAssessment:
    flags: FrozenSet[RiskFlag]

    @property
    def recommended_mode(self) -> str:
        return BookingMode.REQUEST if self.flags else BookingMode.INSTANT


def ends_after_curfew(start_at: datetime, end_at: datetime, curfew: Optional[time], tz: Optional[tzinfo] = None) -> bool:
    """True when the event runs past the curfew in the property's local time."""
    if curfew is None:
        return False
    local_start = timezone.localtime(start_at, tz)
    local_end = timezone.localtime(end_at, tz)
    if local_end.date() > local_start.date():
        return True
    return (local_end.hour, local_end.minute) > (curfew.hour, curfew.minute)


def assess_event_risk(params: EventRiskParams) -> RiskAssessment:
    flags: set[RiskFlag] = set()
    capacity = params.parking_capacity if params.parking_capacity is not None else DEFAULT_PARKING_CAPACITY

    if params.alcohol:
        flags.add(RiskFlag.ALCOHOL)
    if params.amplified_sound:
        flags.add(RiskFlag.AMPLIFIED_SOUND)
    if params.estimated_vehicles > capacity:
        flags.add(RiskFlag.OVER_PARKING)
    if ends_after_curfew(params.start_at, params.end_at, params.curfew_time, params.tz):
        flags.add(RiskFlag.LATE_END)
    if params.event_type == EventType.INTIMATE_WEDDING:
        flags.add(RiskFlag.WEDDING)
    if params.event_type == EventType.PRODUCTION:
        flags.add(RiskFlag.PRODUCTION)

    return RiskAssessment(flags=frozenset(flags))
