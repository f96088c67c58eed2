from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import status, viewsets
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from properties.models import Property

from .context import BookingContext
from .models import Booking, BookingKind
from .permissions import BookingAction, BookingActionPermission
from .serializers import (
    BookingIdSerializer,
    BookingSerializer,
    BookingWindowSerializer,
    DeclineSerializer,
    DraftCreateSerializer,
    PaymentSerializer,
    PaymentSessionSerializer,
    QuoteRequestSerializer,
    QuoteSerializer,
    SubmitRequestSerializer,
)
from .services.availability import is_available, stay_window
from .services.lifecycle import (
    approve_booking,
    cancel_booking,
    create_draft,
    decline_booking,
    submit_booking,
)
from .services.payments import build_payment_session, capture_booking_payment, release_deposit_hold
from .services.quotes import quote_for_property


def _with_sequence(payload: dict, validated_data: dict) -> dict:
    if validated_data.get("sequence") is not None:
        payload["sequence"] = validated_data["sequence"]
    return payload


class QuoteView(APIView):
    """Price a prospective booking. Side-effect free and open to anonymous callers."""

    permission_classes = [AllowAny]

    def post(self, request, *args, **kwargs):
        serializer = QuoteRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        prop = get_object_or_404(Property, pk=data["property_id"])

        quote = quote_for_property(
            prop,
            kind=data["kind"],
            guest_count=data["guest_count"],
            start_at=data.get("start_at"),
            end_at=data.get("end_at"),
            check_in=data.get("check_in"),
            check_out=data.get("check_out"),
            estimated_vehicles=data["estimated_vehicles"],
            addons=data["addons"],
            event_type=data["event_type"],
            alcohol=data["alcohol"],
            amplified_sound=data["amplified_sound"],
        )
        return Response(_with_sequence(QuoteSerializer(quote).data, data))


class AvailabilityView(APIView):
    permission_classes = [AllowAny]

    def post(self, request, *args, **kwargs):
        serializer = BookingWindowSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        prop = get_object_or_404(Property, pk=data["property_id"])

        if data["kind"] == BookingKind.STAY:
            start_at, end_at = stay_window(data["check_in"], data["check_out"], prop.tzinfo())
        else:
            start_at, end_at = data["start_at"], data["end_at"]
        if end_at <= start_at:
            return Response(_with_sequence({"available": False}, data))
        return Response(_with_sequence({"available": is_available(prop.pk, start_at, end_at)}, data))


class DraftView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, *args, **kwargs):
        serializer = DraftCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        prop = get_object_or_404(Property, pk=data["property_id"])

        event_details = None
        if data["kind"] == BookingKind.EVENT:
            event_details = {
                **data.get("event_details", {}),
                "event_type": data["event_type"],
                "alcohol": data["alcohol"],
                "amplified_sound": data["amplified_sound"],
            }
        booking = create_draft(
            BookingContext.from_request(request),
            prop=prop,
            kind=data["kind"],
            guest_count=data["guest_count"],
            start_at=data.get("start_at"),
            end_at=data.get("end_at"),
            check_in=data.get("check_in"),
            check_out=data.get("check_out"),
            mode=data.get("mode"),
            estimated_vehicles=data["estimated_vehicles"],
            addons=data["addons"],
            event_details=event_details,
            stay_details=data.get("stay_details") if data["kind"] == BookingKind.STAY else None,
            client_quote=data.get("quote"),
        )
        return Response(BookingSerializer(booking).data, status=status.HTTP_201_CREATED)


class BookingActionView(APIView):
    """
    Base for endpoints that act on one booking identified by `booking_id`.

    Subclasses set `booking_action`, which the object permission check uses to
    decide between the booking's guest and the property's hosts.
    """

    permission_classes = [IsAuthenticated, BookingActionPermission]
    input_serializer_class = BookingIdSerializer
    booking_action: BookingAction

    def get_booking(self, booking_id) -> Booking:
        booking = get_object_or_404(Booking.objects.select_related("property", "guest"), pk=booking_id)
        self.check_object_permissions(self.request, booking)
        return booking

    def get_input(self, request):
        serializer = self.input_serializer_class(data=request.data)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data

    def post(self, request, *args, **kwargs):
        data = self.get_input(request)
        booking = self.get_booking(data["booking_id"])
        return self.perform_action(BookingContext.from_request(request), booking, data)

    def perform_action(self, ctx, booking, data):
        raise NotImplementedError


class SubmitRequestView(BookingActionView):
    booking_action = BookingAction.SUBMIT
    input_serializer_class = SubmitRequestSerializer

    def perform_action(self, ctx, booking, data):
        booking = submit_booking(ctx, booking, mode=data.get("mode"), client_quote=data.get("quote"))
        return Response(BookingSerializer(booking).data)


class ApproveView(BookingActionView):
    booking_action = BookingAction.APPROVE

    def perform_action(self, ctx, booking, data):
        return Response(BookingSerializer(approve_booking(ctx, booking)).data)


class DeclineView(BookingActionView):
    booking_action = BookingAction.DECLINE
    input_serializer_class = DeclineSerializer

    def perform_action(self, ctx, booking, data):
        booking = decline_booking(ctx, booking, reason=data["reason"])
        return Response(BookingSerializer(booking).data)


class CancelView(BookingActionView):
    booking_action = BookingAction.CANCEL

    def perform_action(self, ctx, booking, data):
        return Response(BookingSerializer(cancel_booking(ctx, booking)).data)


class CaptureView(BookingActionView):
    booking_action = BookingAction.CAPTURE

    def perform_action(self, ctx, booking, data):
        result = capture_booking_payment(ctx, booking)
        return Response(
            {
                "booking": BookingSerializer(result.booking).data,
                "payment": PaymentSerializer(result.payment).data,
            }
        )


class DepositReleaseView(BookingActionView):
    booking_action = BookingAction.RELEASE_DEPOSIT

    def perform_action(self, ctx, booking, data):
        deposit = release_deposit_hold(ctx, booking)
        return Response(
            {
                "booking": BookingSerializer(booking).data,
                "payment": PaymentSerializer(deposit).data,
            }
        )


class PaymentSessionView(BookingActionView):
    """Reconcile the booking's payments with Stripe and hand back client secrets."""

    booking_action = BookingAction.VIEW_PAYMENT_SESSION

    def get(self, request, *args, **kwargs):
        serializer = self.input_serializer_class(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        booking = self.get_booking(serializer.validated_data["booking_id"])
        session = build_payment_session(BookingContext.from_request(request), booking)
        return Response(PaymentSessionSerializer(session).data)

    def post(self, request, *args, **kwargs):
        return self.http_method_not_allowed(request, *args, **kwargs)


class BookingViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = BookingSerializer
    permission_classes = [IsAuthenticated, BookingActionPermission]
    booking_action = BookingAction.VIEW
    filterset_fields = ["status", "kind", "property"]
    ordering_fields = ["start_at", "created_at", "updated_at"]
    ordering = ["start_at"]

    def get_queryset(self):
        queryset = Booking.objects.select_related(
            "property",
            "event_details",
            "stay_details",
        )
        if self.action != "list":
            return queryset
        user = self.request.user
        return queryset.filter(
            Q(guest=user) | Q(property__owner=user) | Q(property__created_by=user)
        ).distinct()
