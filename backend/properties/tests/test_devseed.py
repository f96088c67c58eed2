import pytest
from django.core.management import CommandError, call_command

from bookings.models import Booking, BookingStatus
from properties.models import Property


@pytest.mark.django_db
def test_devseed_is_repeatable(settings):
    settings.DEBUG = True

    call_command("devseed")
    call_command("devseed")

    assert Property.objects.count() == 2
    statuses = sorted(Booking.objects.values_list("status", flat=True))
    assert statuses == [BookingStatus.DRAFT, BookingStatus.PENDING_REVIEW]


@pytest.mark.django_db
def test_devseed_refuses_outside_debug(settings):
    settings.DEBUG = False

    with pytest.raises(CommandError):
        call_command("devseed")
