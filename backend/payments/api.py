import logging

import stripe
from django.conf import settings
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from bookings.context import BookingContext
from bookings.services.payments import confirm_if_paid, reconcile_payment

from .models import Payment

logger = logging.getLogger(__name__)

PAYMENT_INTENT_EVENTS = {
    "payment_intent.succeeded",
    "payment_intent.requires_action",
    "payment_intent.amount_capturable_updated",
    "payment_intent.payment_failed",
    "payment_intent.canceled",
    "payment_intent.processing",
}


class StripeWebhookView(APIView):
    """Receive Stripe PaymentIntent events and reconcile the matching local payment."""

    permission_classes: list = []
    authentication_classes: list = []

    def post(self, request, *args, **kwargs):
        payload = request.body
        sig_header = request.META.get("HTTP_STRIPE_SIGNATURE")
        if not settings.STRIPE_WEBHOOK_SECRET:
            logger.error("Stripe webhook secret not configured.")
            return Response(status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        try:
            event = stripe.Webhook.construct_event(payload, sig_header, settings.STRIPE_WEBHOOK_SECRET)
        except ValueError:
            logger.warning("Invalid payload received on Stripe webhook.")
            return Response(status=status.HTTP_400_BAD_REQUEST)
        except stripe.SignatureVerificationError:
            logger.warning("Invalid Stripe signature.")
            return Response(status=status.HTTP_400_BAD_REQUEST)

        if event["type"] not in PAYMENT_INTENT_EVENTS:
            logger.debug("Ignoring Stripe event %s.", event["type"])
            return Response({"received": True})

        intent_id = event["data"]["object"].get("id")
        payment = (
            Payment.objects.select_related("booking", "booking__property")
            .filter(stripe_payment_intent_id=intent_id)
            .first()
        )
        if payment is None:
            logger.info("Ignoring %s for unknown payment intent %s.", event["type"], intent_id)
            return Response({"received": True})

        ctx = BookingContext(principal=None)
        intent = ctx.gateway.retrieve_intent(intent_id)
        reconcile_payment(payment, intent)
        if event["type"] == "payment_intent.payment_failed":
            logger.warning("Payment %s for booking %s failed at the provider.", payment.pk, payment.booking_id)

        booking = confirm_if_paid(ctx, payment.booking, {intent_id: intent})
        return Response({"received": True, "booking_status": booking.status})
