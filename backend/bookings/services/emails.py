from __future__ import annotations

from django.conf import settings
from django.core.mail import send_mail

from bookings.models import Booking, BookingKind


def _format_from_email(property_title: str) -> str:
    default_from = settings.DEFAULT_FROM_EMAIL
    email_addr = default_from
    if '<' in default_from and default_from.endswith('>'):
        email_addr = default_from.split('<', 1)[1].rstrip('>')
    return f"{property_title} via Hearth <{email_addr}>"


def payment_url_for(booking: Booking) -> str:
    base_url = getattr(settings, "FRONTEND_URL", "").rstrip("/")
    return f"{base_url}/bookings/{booking.pk}/pay"


def _booking_dates(booking: Booking) -> str:
    if booking.kind == BookingKind.STAY:
        return f"{booking.check_in:%B %d, %Y} to {booking.check_out:%B %d, %Y}"
    tz = booking.property.tzinfo()
    start = booking.start_at.astimezone(tz)
    end = booking.end_at.astimezone(tz)
    return f"{start:%B %d, %Y %H:%M} to {end:%H:%M}"


def send_booking_approval_payment_email(*, booking: Booking, payment_url: str):
    guest = booking.guest
    if not guest.email:
        return

    prop = booking.property
    subject = f"Your request for {prop.title} was approved"
    body_lines = [
        f"Hi {guest.display_name or guest.get_full_name() or guest.email},",
        "",
        f"Good news: your host approved your booking at {prop.title}.",
        f"Dates: {_booking_dates(booking)}.",
        f"Total due: {booking.total_amount():.2f} {booking.currency.upper()}.",
        "",
        f"Complete payment to confirm your booking: {payment_url}",
        "",
        "Your dates are held while payment is pending.",
        "",
        "The Hearth Team",
    ]
    send_mail(
        subject,
        "\n".join(body_lines),
        _format_from_email(prop.title),
        [guest.email],
        fail_silently=False,
    )
