from rest_framework import serializers

from .models import Property


class PropertySerializer(serializers.ModelSerializer):
    owner_name = serializers.SerializerMethodField()

    class Meta:
        model = Property
        fields = [
            "id",
            "owner",
            "owner_name",
            "title",
            "property_type",
            "unit_type",
            "address",
            "description",
            "price",
            "currency",
            "bedrooms",
            "bathrooms",
            "amenities",
            "facilities",
            "available_from",
            "available_to",
            "approval_status",
            "approval_reason",
            "approved_at",
            "is_active",
            "views_count",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_owner_name(self, obj):
        owner = obj.owner
        return owner.display_name or owner.get_full_name() or owner.email


class PropertyWriteSerializer(serializers.ModelSerializer):
    """
    Validate an owner's listing.

    New listings always start pending; approval fields are never writable here.
    A missing title is derived from the unit type and address.
    """

    title = serializers.CharField(max_length=200, required=False, allow_blank=True)
    unit_type = serializers.CharField(max_length=50)
    amenities = serializers.ListField(child=serializers.CharField(max_length=100), required=False)
    facilities = serializers.ListField(child=serializers.CharField(max_length=100), required=False)

    class Meta:
        model = Property
        fields = [
            "title",
            "property_type",
            "unit_type",
            "address",
            "description",
            "price",
            "currency",
            "bedrooms",
            "bathrooms",
            "amenities",
            "facilities",
            "available_from",
            "available_to",
        ]

    def validate_price(self, value):
        if value <= 0:
            raise serializers.ValidationError("Price must be a positive number.")
        return value

    def validate(self, attrs):
        available_from = attrs.get("available_from", getattr(self.instance, "available_from", None))
        available_to = attrs.get("available_to", getattr(self.instance, "available_to", None))
        if available_from and available_to and available_to < available_from:
            raise serializers.ValidationError(
                {"available_to": "Must be on or after available_from."}
            )
        if self.instance is None and not attrs.get("title"):
            attrs["title"] = f"{attrs['unit_type']} at {attrs['address']}"[:200]
        elif "title" in attrs and not attrs["title"]:
            attrs.pop("title")
        return attrs


class PropertyStatusSerializer(serializers.Serializer):
    is_active = serializers.BooleanField(required=False)
    approval_status = serializers.ChoiceField(
        choices=[choice for choice, _ in Property.APPROVAL_STATUSES], required=False
    )

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("Provide is_active or approval_status.")
        return attrs


class PropertyReviewSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, max_length=1000)
