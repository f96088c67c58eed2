from rest_framework import serializers

from bookings.models import (
    Booking,
    BookingKind,
    BookingMode,
    EventBookingDetails,
    EventType,
    StayBookingDetails,
)
from payments.models import Payment


class BookingWindowSerializer(serializers.Serializer):
    kind = serializers.ChoiceField(choices=BookingKind.choices, default=BookingKind.EVENT)
    property_id = serializers.IntegerField(min_value=1)
    start_at = serializers.DateTimeField(required=False)
    end_at = serializers.DateTimeField(required=False)
    check_in = serializers.DateField(required=False)
    check_out = serializers.DateField(required=False)
    sequence = serializers.IntegerField(required=False, min_value=0)

    def validate(self, attrs):
        errors = {}
        if attrs["kind"] == BookingKind.STAY:
            required = ("check_in", "check_out")
        else:
            required = ("start_at", "end_at")
        for name in required:
            if attrs.get(name) is None:
                errors[name] = "This field is required."
        if errors:
            raise serializers.ValidationError(errors)
        return attrs


class QuoteRequestSerializer(BookingWindowSerializer):
    guest_count = serializers.IntegerField()
    estimated_vehicles = serializers.IntegerField(default=0)
    addons = serializers.ListField(child=serializers.SlugField(), required=False, default=list)
    event_type = serializers.ChoiceField(choices=EventType.choices, default=EventType.OTHER)
    alcohol = serializers.BooleanField(default=False)
    amplified_sound = serializers.BooleanField(default=False)


class ClientQuoteSerializer(serializers.Serializer):
    total_cents = serializers.IntegerField()
    risk_flags = serializers.ListField(child=serializers.CharField(), required=False, default=list)


class EventDetailsInputSerializer(serializers.ModelSerializer):
    class Meta:
        model = EventBookingDetails
        fields = ["description", "vendors", "production_details"]


class StayDetailsInputSerializer(serializers.ModelSerializer):
    class Meta:
        model = StayBookingDetails
        fields = ["adults", "children", "infants", "pets", "special_requests"]


class DraftCreateSerializer(QuoteRequestSerializer):
    mode = serializers.ChoiceField(choices=BookingMode.choices, required=False)
    quote = ClientQuoteSerializer(required=False)
    event_details = EventDetailsInputSerializer(required=False)
    stay_details = StayDetailsInputSerializer(required=False)


class BookingIdSerializer(serializers.Serializer):
    booking_id = serializers.UUIDField()


class SubmitRequestSerializer(BookingIdSerializer):
    mode = serializers.ChoiceField(choices=BookingMode.choices, required=False)
    quote = ClientQuoteSerializer(required=False)


class DeclineSerializer(BookingIdSerializer):
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")


class QuoteSerializer(serializers.Serializer):
    kind = serializers.CharField()
    mode = serializers.CharField()
    currency = serializers.CharField()
    subtotal_cents = serializers.IntegerField()
    fees_cents = serializers.IntegerField()
    addons_total_cents = serializers.IntegerField()
    deposit_cents = serializers.IntegerField()
    total_cents = serializers.IntegerField()
    risk_flags = serializers.SerializerMethodField()
    duration_hours = serializers.IntegerField(allow_null=True)
    nights = serializers.IntegerField(allow_null=True)
    pricing_snapshot = serializers.DictField()

    def get_risk_flags(self, quote):
        return quote.risk_flag_codes()


class EventDetailsSerializer(serializers.ModelSerializer):
    class Meta:
        model = EventBookingDetails
        exclude = ["id", "booking"]


class StayDetailsSerializer(serializers.ModelSerializer):
    class Meta:
        model = StayBookingDetails
        exclude = ["id", "booking"]


class BookingSerializer(serializers.ModelSerializer):
    property_id = serializers.IntegerField(read_only=True)
    property_title = serializers.CharField(source="property.title", read_only=True)
    guest_id = serializers.IntegerField(read_only=True)
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    event_details = EventDetailsSerializer(read_only=True)
    stay_details = StayDetailsSerializer(read_only=True)

    class Meta:
        model = Booking
        fields = [
            "id",
            "property_id",
            "property_title",
            "guest_id",
            "kind",
            "mode",
            "status",
            "version",
            "start_at",
            "end_at",
            "check_in",
            "check_out",
            "guest_count",
            "estimated_vehicles",
            "addons",
            "currency",
            "subtotal_cents",
            "fees_cents",
            "addons_total_cents",
            "deposit_cents",
            "total_cents",
            "total_amount",
            "pricing_snapshot",
            "risk_flags",
            "submitted_at",
            "approved_at",
            "confirmed_at",
            "declined_at",
            "decline_reason",
            "cancelled_at",
            "event_details",
            "stay_details",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def to_representation(self, instance):
        data = super().to_representation(instance)
        if instance.kind == BookingKind.EVENT:
            data.pop("stay_details", None)
        else:
            data.pop("event_details", None)
        return data


class PaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Payment
        fields = [
            "id",
            "purpose",
            "status",
            "amount_cents",
            "currency",
            "capture_method",
            "stripe_payment_intent_id",
            "authorized_at",
            "released_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class PaymentSnapshotSerializer(serializers.Serializer):
    payment = PaymentSerializer()
    provider_status = serializers.CharField(source="intent_status")
    client_secret = serializers.CharField(allow_null=True)

    def to_representation(self, instance):
        data = super().to_representation(instance)
        payment = data.pop("payment")
        return {**payment, "provider_status": data["provider_status"], "client_secret": data["client_secret"]}


class PaymentSessionSerializer(serializers.Serializer):
    booking = BookingSerializer()
    payments = PaymentSnapshotSerializer(many=True)
