from django.contrib import admin

from .models import Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("stripe_payment_intent_id", "booking", "purpose", "status", "amount_cents", "currency", "created_at")
    list_filter = ("purpose", "status", "capture_method")
    search_fields = ("stripe_payment_intent_id", "booking__id")
