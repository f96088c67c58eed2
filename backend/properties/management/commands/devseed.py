from datetime import datetime, time, timedelta

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from accounts.models import User
from bookings.context import BookingContext
from bookings.models import Booking, BookingKind, EventType
from bookings.services.lifecycle import create_draft, submit_booking
from properties.models import Property, PropertyAddon

SEED_PASSWORD = "Hearth123!"
SUPERUSER_EMAIL = "admin@hearth.test"
SUPERUSER_PASSWORD = "AdminHearth123!"


class Command(BaseCommand):
    help = "Populate the local development database with sample hosts, venues and bookings."

    def handle(self, *args, **options):
        if not settings.DEBUG:
            raise CommandError("Refusing to seed data while DEBUG is False.")

        with transaction.atomic():
            self.stdout.write(self.style.MIGRATE_HEADING("Ensuring admin superuser"))
            self._ensure_superuser()

            self.stdout.write(self.style.MIGRATE_HEADING("Creating hosts & guests"))
            host = self._ensure_user("host@hearth.test", "Hana", "Host")
            guest = self._ensure_user("guest@hearth.test", "Greta", "Guest")

            self.stdout.write(self.style.MIGRATE_HEADING("Creating properties"))
            barn = self._ensure_property(
                title="Barn at Willow Creek",
                owner=host,
                timezone="America/Los_Angeles",
                allow_instant_book=True,
                max_guests=60,
                parking_capacity=15,
                curfew_time=time(22, 0),
                hourly_rate_cents=15000,
                min_hours=4,
                day_rate_cents=100000,
                day_rate_hours=8,
                nightly_rate_cents=30000,
                stay_cleaning_fee_cents=12000,
            )
            self._ensure_addon(barn, "tables", "Tables & chairs", 8000)
            self._ensure_addon(barn, "firepit", "Fire pit", 3500)
            loft = self._ensure_property(
                title="Harbor Loft",
                owner=host,
                timezone="America/New_York",
                allow_instant_book=False,
                max_guests=8,
                nightly_rate_cents=22000,
                stay_cleaning_fee_cents=9000,
            )

            self.stdout.write(self.style.MIGRATE_HEADING("Cleaning old bookings"))
            seeded = Booking.objects.filter(property__in=[barn, loft])
            for booking in seeded:
                booking.payments.all().delete()
            seeded.delete()

            self.stdout.write(self.style.MIGRATE_HEADING("Creating sample bookings"))
            ctx = BookingContext(principal=guest)
            start_at = datetime.combine(
                datetime.now(barn.tzinfo()).date() + timedelta(days=21),
                time(17, 0),
                tzinfo=barn.tzinfo(),
            )
            party = create_draft(
                ctx,
                prop=barn,
                kind=BookingKind.EVENT,
                guest_count=45,
                start_at=start_at,
                end_at=start_at + timedelta(hours=4),
                estimated_vehicles=12,
                addons=["tables"],
                event_details={
                    "event_type": EventType.PRIVATE_CELEBRATION,
                    "alcohol": True,
                    "description": "Fortieth birthday dinner",
                },
            )
            submit_booking(ctx, party)
            check_in = start_at.date() + timedelta(days=7)
            create_draft(
                ctx,
                prop=loft,
                kind=BookingKind.STAY,
                guest_count=2,
                check_in=check_in,
                check_out=check_in + timedelta(days=3),
                stay_details={"adults": 2},
            )

        self.stdout.write(self.style.SUCCESS("Development seed data created."))
        self.stdout.write(self.style.NOTICE(f"Sample login accounts use password: {SEED_PASSWORD}"))
        self.stdout.write(self.style.NOTICE(f"Admin superuser {SUPERUSER_EMAIL} password: {SUPERUSER_PASSWORD}"))

    def _ensure_user(self, email: str, first_name: str, last_name: str) -> User:
        user, created = User.objects.get_or_create(
            email=email,
            defaults={
                "username": email,
                "first_name": first_name,
                "last_name": last_name,
                "display_name": f"{first_name} {last_name}",
            },
        )
        if created:
            user.set_password(SEED_PASSWORD)
            user.save()
        return user

    def _ensure_property(self, title: str, owner: User, **fields) -> Property:
        prop, _ = Property.objects.update_or_create(
            title=title,
            owner=owner,
            defaults={"created_by": owner, **fields},
        )
        return prop

    def _ensure_addon(self, prop: Property, code: str, label: str, price_cents: int) -> PropertyAddon:
        addon, _ = PropertyAddon.objects.update_or_create(
            property=prop,
            code=code,
            defaults={"label": label, "price_cents": price_cents, "is_active": True},
        )
        return addon

    def _ensure_superuser(self) -> User:
        user, created = User.objects.get_or_create(
            email=SUPERUSER_EMAIL,
            defaults={
                "username": SUPERUSER_EMAIL,
                "display_name": "Hearth Admin",
                "is_staff": True,
                "is_superuser": True,
            },
        )
        if created or not user.has_usable_password():
            user.set_password(SUPERUSER_PASSWORD)
            user.save(update_fields=["password"])
        return user
