from django.contrib import admin
from django.urls import include, path
from rest_framework.routers import DefaultRouter

from bookings.api import BookingViewSet
from payments.api import StripeWebhookView

router = DefaultRouter()
router.register(r"bookings", BookingViewSet, basename="booking")

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/bookings/", include("bookings.urls")),
    path("api/", include(router.urls)),
    path("api/webhooks/stripe/", StripeWebhookView.as_view(), name="stripe-webhook"),
]
