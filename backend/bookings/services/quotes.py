from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime, time, tzinfo
from typing import Any, Dict, FrozenSet, Iterable, Optional

from django.conf import settings
from rest_framework.exceptions import ValidationError

from bookings.models import Booking, BookingKind, BookingMode, EventType
from properties.models import Property

from .risk import EventRiskParams, RiskFlag, assess_event_risk

SECONDS_PER_HOUR = 60 * 60

DEFAULT_MIN_HOURS = 4
DEFAULT_DAY_RATE_HOURS = 8
DEFAULT_EVENT_CLEANING_FEE_CENTS = 25000
DEFAULT_EVENT_DEPOSIT_CENTS = 75000


def _clamp_cents(value: Optional[int]) -> int:
    return max(0, int(round(value or 0)))


@dataclass(frozen=True)
class Quote:
    kind: str
    mode: str
    currency: str
    subtotal_cents: int
    fees_cents: int
    addons_total_cents: int
    deposit_cents: int
    total_cents: int
    risk_flags: FrozenSet[RiskFlag] = frozenset()
    pricing_snapshot: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)
    duration_hours: Optional[int] = None
    nights: Optional[int] = None

    def risk_flag_codes(self) -> list[str]:
        return sorted(flag.value for flag in self.risk_flags)


@dataclass(frozen=True)
class EventQuoteInput:
    start_at: datetime
    end_at: datetime
    guest_count: int
    hourly_rate_cents: int
    event_type: str = EventType.OTHER
    estimated_vehicles: int = 0
    max_guests: Optional[int] = None
    min_hours: Optional[int] = None
    day_rate_cents: Optional[int] = None
    day_rate_hours: Optional[int] = None
    cleaning_fee_cents: Optional[int] = None
    deposit_cents: Optional[int] = None
    addons_total_cents: int = 0
    allow_instant_book: bool = False
    curfew_time: Optional[time] = None
    parking_capacity: Optional[int] = None
    alcohol: bool = False
    amplified_sound: bool = False
    currency: str = "usd"
    tz: Optional[tzinfo] = None


@dataclass(frozen=True)
class StayQuoteInput:
    check_in: date
    check_out: date
    guest_count: int
    nightly_rate_cents: int
    max_guests: Optional[int] = None
    cleaning_fee_cents: int = 0
    addons_total_cents: int = 0
    allow_instant_book: bool = False
    currency: str = "usd"


def _validate_party(guest_count: int, max_guests: Optional[int], estimated_vehicles: int = 0) -> None:
    errors = {}
    if guest_count < 1:
        errors["guest_count"] = "Guest count must be at least 1."
    elif max_guests is not None and guest_count > max_guests:
        errors["guest_count"] = f"Guest count must not exceed {max_guests}."
    if estimated_vehicles < 0:
        errors["estimated_vehicles"] = "Vehicle count cannot be negative."
    if errors:
        raise ValidationError(errors)


def compute_event_quote(data: EventQuoteInput) -> Quote:
    """
    Price an event booking.

    Billable hours are the rounded-up duration, floored at the minimum hours.
    When a day rate is configured and the event lasts at least
    `day_rate_hours`, the day rate replaces the hourly subtotal.
    """
    _validate_party(data.guest_count, data.max_guests, data.estimated_vehicles)
    seconds = (data.end_at - data.start_at).total_seconds()
    if seconds <= 0:
        raise ValidationError({"end_at": "End time must be after the start time."})

    duration_hours = math.ceil(seconds / SECONDS_PER_HOUR)
    min_hours = max(1, DEFAULT_MIN_HOURS if data.min_hours is None else data.min_hours)
    billable_hours = max(duration_hours, min_hours)
    day_rate_hours = max(1, DEFAULT_DAY_RATE_HOURS if data.day_rate_hours is None else data.day_rate_hours)
    hourly_rate_cents = _clamp_cents(data.hourly_rate_cents)
    day_rate_cents = _clamp_cents(data.day_rate_cents) if data.day_rate_cents else None

    if day_rate_cents is not None and duration_hours >= day_rate_hours:
        subtotal_cents = day_rate_cents
    else:
        subtotal_cents = billable_hours * hourly_rate_cents

    cleaning = DEFAULT_EVENT_CLEANING_FEE_CENTS if data.cleaning_fee_cents is None else data.cleaning_fee_cents
    deposit = DEFAULT_EVENT_DEPOSIT_CENTS if data.deposit_cents is None else data.deposit_cents
    fees_cents = _clamp_cents(cleaning)
    deposit_cents = _clamp_cents(deposit)
    addons_total_cents = _clamp_cents(data.addons_total_cents)

    assessment = assess_event_risk(
        EventRiskParams(
            event_type=data.event_type,
            start_at=data.start_at,
            end_at=data.end_at,
            alcohol=data.alcohol,
            amplified_sound=data.amplified_sound,
            estimated_vehicles=data.estimated_vehicles,
            parking_capacity=data.parking_capacity,
            curfew_time=data.curfew_time,
            tz=data.tz,
        )
    )

    return Quote(
        kind=BookingKind.EVENT,
        mode=assessment.recommended_mode if data.allow_instant_book else BookingMode.REQUEST,
        currency=data.currency,
        subtotal_cents=subtotal_cents,
        fees_cents=fees_cents,
        addons_total_cents=addons_total_cents,
        deposit_cents=deposit_cents,
        total_cents=subtotal_cents + fees_cents + addons_total_cents,
        risk_flags=assessment.flags,
        duration_hours=duration_hours,
        pricing_snapshot={
            "kind": BookingKind.EVENT.value,
            "event_type": str(data.event_type),
            "duration_hours": duration_hours,
            "billable_hours": billable_hours,
            "hourly_rate_cents": hourly_rate_cents,
            "min_hours": min_hours,
            "day_rate_cents": day_rate_cents,
            "day_rate_hours": day_rate_hours,
            "cleaning_fee_cents": fees_cents,
            "deposit_cents": deposit_cents,
            "estimated_vehicles": data.estimated_vehicles,
        },
    )


def compute_stay_quote(data: StayQuoteInput) -> Quote:
    _validate_party(data.guest_count, data.max_guests)
    nights = (data.check_out - data.check_in).days
    if nights <= 0:
        raise ValidationError({"check_out": "Check-out must be after check-in."})

    nightly_rate_cents = _clamp_cents(data.nightly_rate_cents)
    subtotal_cents = nightly_rate_cents * nights
    fees_cents = _clamp_cents(data.cleaning_fee_cents)
    addons_total_cents = _clamp_cents(data.addons_total_cents)

    return Quote(
        kind=BookingKind.STAY,
        mode=BookingMode.INSTANT if data.allow_instant_book else BookingMode.REQUEST,
        currency=data.currency,
        subtotal_cents=subtotal_cents,
        fees_cents=fees_cents,
        addons_total_cents=addons_total_cents,
        deposit_cents=0,
        total_cents=subtotal_cents + fees_cents + addons_total_cents,
        nights=nights,
        pricing_snapshot={
            "kind": BookingKind.STAY.value,
            "nights": nights,
            "nightly_rate_cents": nightly_rate_cents,
            "cleaning_fee_cents": fees_cents,
        },
    )


def currency_for(prop: Property) -> str:
    return (prop.currency or settings.BOOKING_CURRENCY).lower()


def addons_total_for(prop: Property, codes: Iterable[str]) -> int:
    codes = list(dict.fromkeys(codes or []))
    if not codes:
        return 0
    prices = dict(
        prop.addons.filter(is_active=True, code__in=codes).values_list("code", "price_cents")
    )
    unknown = [code for code in codes if code not in prices]
    if unknown:
        raise ValidationError({"addons": f"Unknown add-ons: {', '.join(unknown)}"})
    return sum(prices[code] for code in codes)


def quote_for_property(
    prop: Property,
    *,
    kind: str,
    guest_count: int,
    start_at: Optional[datetime] = None,
    end_at: Optional[datetime] = None,
    check_in: Optional[date] = None,
    check_out: Optional[date] = None,
    estimated_vehicles: int = 0,
    addons: Iterable[str] = (),
    event_type: str = EventType.OTHER,
    alcohol: bool = False,
    amplified_sound: bool = False,
) -> Quote:
    """Quote a booking using the property's rates and booking policy."""
    addons_total_cents = addons_total_for(prop, addons)

    if kind == BookingKind.STAY:
        return compute_stay_quote(
            StayQuoteInput(
                check_in=check_in,
                check_out=check_out,
                guest_count=guest_count,
                nightly_rate_cents=prop.nightly_rate_cents,
                max_guests=prop.max_guests,
                cleaning_fee_cents=prop.stay_cleaning_fee_cents,
                addons_total_cents=addons_total_cents,
                allow_instant_book=prop.allow_instant_book,
                currency=currency_for(prop),
            )
        )

    return compute_event_quote(
        EventQuoteInput(
            start_at=start_at,
            end_at=end_at,
            guest_count=guest_count,
            hourly_rate_cents=prop.hourly_rate_cents,
            event_type=event_type,
            estimated_vehicles=estimated_vehicles,
            max_guests=prop.max_guests,
            min_hours=prop.min_hours,
            day_rate_cents=prop.day_rate_cents,
            day_rate_hours=prop.day_rate_hours,
            cleaning_fee_cents=prop.cleaning_fee_cents,
            deposit_cents=prop.deposit_cents,
            addons_total_cents=addons_total_cents,
            allow_instant_book=prop.allow_instant_book,
            curfew_time=prop.curfew_time,
            parking_capacity=prop.parking_capacity,
            alcohol=alcohol,
            amplified_sound=amplified_sound,
            currency=currency_for(prop),
            tz=prop.tzinfo(),
        )
    )


def quote_for_booking(booking: Booking) -> Quote:
    """Re-quote a stored booking from its own parameters."""
    details = getattr(booking, "event_details", None) if booking.kind == BookingKind.EVENT else None
    return quote_for_property(
        booking.property,
        kind=booking.kind,
        guest_count=booking.guest_count,
        start_at=booking.start_at,
        end_at=booking.end_at,
        check_in=booking.check_in,
        check_out=booking.check_out,
        estimated_vehicles=booking.estimated_vehicles,
        addons=booking.addons,
        event_type=details.event_type if details else EventType.OTHER,
        alcohol=details.alcohol if details else False,
        amplified_sound=details.amplified_sound if details else False,
    )
