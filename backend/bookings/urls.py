from django.urls import path

from .api import (
    ApproveView,
    AvailabilityView,
    CancelView,
    CaptureView,
    DeclineView,
    DepositReleaseView,
    DraftView,
    PaymentSessionView,
    QuoteView,
    SubmitRequestView,
)

urlpatterns = [
    path("quote/", QuoteView.as_view(), name="booking-quote"),
    path("availability/", AvailabilityView.as_view(), name="booking-availability"),
    path("draft/", DraftView.as_view(), name="booking-draft"),
    path("submit-request/", SubmitRequestView.as_view(), name="booking-submit-request"),
    path("approve/", ApproveView.as_view(), name="booking-approve"),
    path("decline/", DeclineView.as_view(), name="booking-decline"),
    path("cancel/", CancelView.as_view(), name="booking-cancel"),
    path("capture/", CaptureView.as_view(), name="booking-capture"),
    path("payment-session/", PaymentSessionView.as_view(), name="booking-payment-session"),
    path("deposit/release/", DepositReleaseView.as_view(), name="booking-deposit-release"),
]
