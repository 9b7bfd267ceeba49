from rest_framework import serializers

from properties.serializers import PropertySerializer

from .models import Complaint, Favorite, Rating


class PropertyReferenceSerializer(serializers.Serializer):
    property_id = serializers.IntegerField(min_value=1)


class FavoriteSerializer(serializers.ModelSerializer):
    property = PropertySerializer(read_only=True)
    favorited_at = serializers.DateTimeField(source="created_at", read_only=True)

    class Meta:
        model = Favorite
        fields = ["id", "property", "favorited_at"]
        read_only_fields = fields


class RatingSerializer(serializers.ModelSerializer):
    property_title = serializers.CharField(source="property.title", read_only=True)

    class Meta:
        model = Rating
        fields = ["id", "property", "property_title", "score", "comment", "created_at", "updated_at"]
        read_only_fields = fields


class RatingSubmitSerializer(PropertyReferenceSerializer):
    rating = serializers.IntegerField(min_value=1, max_value=5)
    comment = serializers.CharField(required=False, allow_blank=True, max_length=2000)


class ComplaintSerializer(serializers.ModelSerializer):
    property_title = serializers.CharField(source="property.title", read_only=True)
    reporter_email = serializers.EmailField(source="user.email", read_only=True)

    class Meta:
        model = Complaint
        fields = [
            "id",
            "property",
            "property_title",
            "reporter_email",
            "category",
            "description",
            "status",
            "admin_notes",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ComplaintCreateSerializer(PropertyReferenceSerializer):
    category = serializers.ChoiceField(choices=[choice for choice, _ in Complaint.CATEGORIES])
    description = serializers.CharField(min_length=10, max_length=5000)


class ComplaintStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[choice for choice, _ in Complaint.STATUSES])
    admin_notes = serializers.CharField(required=False, allow_blank=True, max_length=5000)


class PropertyViewSerializer(PropertyReferenceSerializer):
    view_duration = serializers.IntegerField(required=False, min_value=0, allow_null=True)
