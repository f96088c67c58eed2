from django.contrib import admin

from payments.models import Payment

from .models import Booking, EventBookingDetails, StayBookingDetails


class EventBookingDetailsInline(admin.StackedInline):
    model = EventBookingDetails
    extra = 0


class StayBookingDetailsInline(admin.StackedInline):
    model = StayBookingDetails
    extra = 0


class PaymentInline(admin.TabularInline):
    model = Payment
    extra = 0
    fields = ("purpose", "status", "amount_cents", "currency", "stripe_payment_intent_id", "released_at")
    readonly_fields = fields
    can_delete = False


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ("id", "property", "guest", "kind", "mode", "status", "start_at", "end_at", "total_cents")
    list_filter = ("status", "kind", "mode")
    search_fields = ("property__title", "guest__email")
    readonly_fields = ("version", "pricing_snapshot", "risk_flags", "created_at", "updated_at")
    inlines = [EventBookingDetailsInline, StayBookingDetailsInline, PaymentInline]
