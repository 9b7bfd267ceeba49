import logging

from django.db.models import Avg, Count, F
from django.shortcuts import get_object_or_404
from rest_framework import generics, status
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.permissions import IsMarketplaceAdmin
from properties.api import can_manage_property
from properties.models import Property

from .models import Complaint, Favorite, PropertyView, Rating
from .serializers import (
    ComplaintCreateSerializer,
    ComplaintSerializer,
    ComplaintStatusSerializer,
    FavoriteSerializer,
    PropertyReferenceSerializer,
    PropertyViewSerializer,
    RatingSerializer,
    RatingSubmitSerializer,
)

logger = logging.getLogger(__name__)


def _listing_for_interaction(property_id: int, user, *, verb: str, require_bookable: bool = True) -> Property:
    listing = Property.objects.filter(pk=property_id).first()
    if listing is None:
        raise NotFound("Property not found.")
    if require_bookable and not listing.is_bookable:
        raise ValidationError({"property_id": f"Property is not available for {verb}."})
    if listing.owner_id == user.id:
        raise ValidationError({"property_id": f"Property owners cannot {verb} their own properties."})
    return listing


class FavoriteView(APIView):
    """List the user's favorite listings or toggle one on and off."""

    def get(self, request, *args, **kwargs):
        favorites = (
            Favorite.objects.filter(
                user=request.user,
                property__approval_status=Property.APPROVED,
                property__is_active=True,
            )
            .select_related("property__owner")
        )
        return Response(FavoriteSerializer(favorites, many=True).data)

    def post(self, request, *args, **kwargs):
        serializer = PropertyReferenceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        listing = _listing_for_interaction(
            serializer.validated_data["property_id"], request.user, verb="favorite"
        )

        deleted, _ = Favorite.objects.filter(user=request.user, property=listing).delete()
        if deleted:
            action = "removed"
        else:
            Favorite.objects.get_or_create(user=request.user, property=listing)
            action = "added"
        return Response({"action": action, "property_id": listing.pk})


class RatingView(APIView):
    """List the user's ratings or rate a listing from 1 to 5."""

    def get(self, request, *args, **kwargs):
        ratings = Rating.objects.filter(user=request.user).select_related("property")
        return Response(RatingSerializer(ratings, many=True).data)

    def post(self, request, *args, **kwargs):
        serializer = RatingSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        listing = _listing_for_interaction(data["property_id"], request.user, verb="rate")

        rating, created = Rating.objects.update_or_create(
            user=request.user,
            property=listing,
            defaults={"score": data["rating"], "comment": data.get("comment", "")},
        )
        return Response(
            {
                "action": "created" if created else "updated",
                "rating": rating.score,
                "property_id": listing.pk,
            },
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )


class RatingDeleteView(APIView):
    def delete(self, request, property_id, *args, **kwargs):
        deleted, _ = Rating.objects.filter(user=request.user, property_id=property_id).delete()
        if not deleted:
            raise NotFound("Rating not found.")
        return Response(status=status.HTTP_204_NO_CONTENT)


class ComplaintView(APIView):
    """List the user's complaints or report a listing."""

    def get(self, request, *args, **kwargs):
        complaints = Complaint.objects.filter(user=request.user).select_related("property", "user")
        return Response(ComplaintSerializer(complaints, many=True).data)

    def post(self, request, *args, **kwargs):
        serializer = ComplaintCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        listing = _listing_for_interaction(
            data["property_id"], request.user, verb="complain about", require_bookable=False
        )

        complaint = Complaint.objects.create(
            user=request.user,
            property=listing,
            category=data["category"],
            description=data["description"],
        )
        logger.info("Complaint %s filed against property %s.", complaint.pk, listing.pk)
        return Response(ComplaintSerializer(complaint).data, status=status.HTTP_201_CREATED)


class PropertyViewTrackView(APIView):
    """Count a view of a public listing; signed-in viewers are also recorded."""

    permission_classes = [AllowAny]

    def post(self, request, *args, **kwargs):
        serializer = PropertyViewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        updated = Property.objects.filter(
            pk=data["property_id"],
            approval_status=Property.APPROVED,
            is_active=True,
        ).update(views_count=F("views_count") + 1)
        if not updated:
            raise NotFound("Property not found or not available.")

        if request.user and request.user.is_authenticated:
            PropertyView.objects.create(
                user=request.user,
                property_id=data["property_id"],
                duration_seconds=data.get("view_duration"),
            )
        views_count = Property.objects.values_list("views_count", flat=True).get(pk=data["property_id"])
        return Response({"property_id": data["property_id"], "new_views_count": views_count})


class PropertyStatsView(APIView):
    """Engagement figures for a listing, visible to its owner and to admins."""

    def get(self, request, property_id, *args, **kwargs):
        listing = get_object_or_404(Property, pk=property_id)
        if not can_manage_property(request.user, listing):
            raise PermissionDenied("You can only view statistics for your own properties.")

        ratings = Rating.objects.filter(property=listing)
        rating_summary = ratings.aggregate(total=Count("id"), average=Avg("score"))
        rating_distribution = {str(score): 0 for score in range(1, 6)}
        for row in ratings.values("score").annotate(count=Count("id")):
            rating_distribution[str(row["score"])] = row["count"]

        complaints = Complaint.objects.filter(property=listing)
        complaint_status_breakdown = {choice: 0 for choice, _ in Complaint.STATUSES}
        for row in complaints.values("status").annotate(count=Count("id")):
            complaint_status_breakdown[row["status"]] = row["count"]

        average = rating_summary["average"]
        return Response(
            {
                "property_id": listing.pk,
                "total_views": listing.views_count,
                "total_tracked_views": PropertyView.objects.filter(property=listing).count(),
                "total_favorites": Favorite.objects.filter(property=listing).count(),
                "total_ratings": rating_summary["total"],
                "average_rating": round(float(average), 2) if average is not None else 0,
                "rating_distribution": rating_distribution,
                "total_complaints": sum(complaint_status_breakdown.values()),
                "complaint_status_breakdown": complaint_status_breakdown,
            }
        )


class AdminComplaintListView(generics.ListAPIView):
    serializer_class = ComplaintSerializer
    permission_classes = [IsMarketplaceAdmin]

    def get_queryset(self):
        queryset = Complaint.objects.select_related("property", "user")
        status_filter = self.request.query_params.get("status")
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        return queryset


class AdminComplaintStatusView(APIView):
    permission_classes = [IsMarketplaceAdmin]

    def put(self, request, complaint_id, *args, **kwargs):
        complaint = get_object_or_404(Complaint.objects.select_related("property", "user"), pk=complaint_id)
        serializer = ComplaintStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        complaint.status = data["status"]
        update_fields = ["status", "reviewed_by", "updated_at"]
        if "admin_notes" in data:
            complaint.admin_notes = data["admin_notes"]
            update_fields.append("admin_notes")
        complaint.reviewed_by = request.user
        complaint.save(update_fields=update_fields)
        logger.info("Complaint %s marked %s by admin %s.", complaint.pk, complaint.status, request.user.pk)
        return Response(ComplaintSerializer(complaint).data)
