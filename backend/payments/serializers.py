from rest_framework import serializers

from bookings.models import Booking


class CreatePaymentIntentSerializer(serializers.Serializer):
    booking_id = serializers.IntegerField(min_value=1)
    amount = serializers.IntegerField(
        min_value=1,
        help_text="Amount in the currency's minor unit (e.g. cents).",
    )
    payment_method_id = serializers.CharField(required=False, allow_blank=True, max_length=255)


class ConfirmPaymentIntentSerializer(serializers.Serializer):
    payment_intent_id = serializers.CharField(max_length=255)
    payment_method_id = serializers.CharField(max_length=255)


class VerifyPaymentSerializer(serializers.Serializer):
    payment_intent_id = serializers.CharField(max_length=255)


class PaymentBookingSerializer(serializers.ModelSerializer):
    """Booking fields shown alongside a payment confirmation."""

    property_title = serializers.CharField(source="property.title", read_only=True)
    address = serializers.CharField(source="property.address", read_only=True)
    guest_email = serializers.EmailField(source="email", read_only=True)

    class Meta:
        model = Booking
        fields = [
            "id",
            "property_title",
            "address",
            "check_in",
            "check_out",
            "guest_name",
            "guest_email",
            "advance_amount",
            "total_amount",
            "currency",
            "status",
            "payment_status",
            "payment_amount_cents",
            "payment_confirmed_at",
        ]
        read_only_fields = fields


class BookingPaymentStatusSerializer(serializers.ModelSerializer):
    booking_status = serializers.CharField(source="status", read_only=True)

    class Meta:
        model = Booking
        fields = [
            "payment_method",
            "booking_status",
            "payment_status",
            "stripe_payment_intent_id",
            "payment_error_message",
            "payment_submitted_at",
            "payment_confirmed_at",
            "payment_failed_at",
            "payment_canceled_at",
        ]
        read_only_fields = fields
