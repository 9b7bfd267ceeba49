import math
from decimal import Decimal

from rest_framework import serializers

from properties.models import Property

from .models import Booking


class BookingSerializer(serializers.ModelSerializer):
    property_title = serializers.CharField(source="property.title", read_only=True)

    class Meta:
        model = Booking
        fields = [
            "id",
            "property",
            "property_title",
            "renter",
            "property_owner",
            "guest_name",
            "email",
            "phone",
            "check_in",
            "check_out",
            "guests",
            "message",
            "advance_amount",
            "total_amount",
            "currency",
            "status",
            "payment_method",
            "payment_status",
            "stripe_payment_intent_id",
            "payment_confirmed_at",
            "created_at",
        ]
        read_only_fields = fields


class BookingCreateSerializer(serializers.ModelSerializer):
    """Validate a renter's booking request and price it from the listing."""

    property = serializers.PrimaryKeyRelatedField(queryset=Property.objects.all())

    class Meta:
        model = Booking
        fields = [
            "property",
            "guest_name",
            "email",
            "phone",
            "check_in",
            "check_out",
            "guests",
            "message",
            "payment_method",
        ]

    def validate_property(self, value: Property) -> Property:
        if not value.is_bookable:
            raise serializers.ValidationError("This property is not available for booking.")
        request = self.context.get("request")
        if request is not None and value.owner_id == request.user.id:
            raise serializers.ValidationError("You cannot book your own property.")
        return value

    def validate(self, attrs):
        if attrs["check_out"] <= attrs["check_in"]:
            raise serializers.ValidationError({"check_out": "Check-out must be after check-in."})
        return attrs

    def create(self, validated_data):
        listing = validated_data["property"]
        nights = (validated_data["check_out"] - validated_data["check_in"]).days
        # Listings are priced per month; the first month is due in advance.
        months = max(math.ceil(nights / 30), 1)
        validated_data["advance_amount"] = listing.price
        validated_data["total_amount"] = listing.price * Decimal(months)
        validated_data["currency"] = listing.currency
        validated_data["property_owner_id"] = listing.owner_id
        return super().create(validated_data)


class BookingStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=[Booking.APPROVED, Booking.REJECTED, Booking.CANCELLED]
    )
