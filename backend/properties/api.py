import logging

from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError
from rest_framework.response import Response

from accounts.permissions import CanListProperties, IsMarketplaceAdmin

from .models import Property
from .serializers import (
    PropertyReviewSerializer,
    PropertySerializer,
    PropertyStatusSerializer,
    PropertyWriteSerializer,
)

logger = logging.getLogger(__name__)


def can_manage_property(user, listing: Property) -> bool:
    if not user or not user.is_authenticated:
        return False
    return user.is_marketplace_admin or listing.owner_id == user.id


class PropertyViewSet(viewsets.ModelViewSet):
    """
    Rental listings.

    Anyone may browse approved, active listings. Owners manage their own
    listings, which stay hidden from the public until an admin approves them.
    """

    serializer_class = PropertySerializer

    def get_permissions(self):
        if self.action in ("list", "retrieve"):
            return [permissions.AllowAny()]
        if self.action == "create":
            return [CanListProperties()]
        if self.action in ("pending", "approve", "reject"):
            return [IsMarketplaceAdmin()]
        return [permissions.IsAuthenticated()]

    def get_queryset(self):
        queryset = Property.objects.select_related("owner")
        if self.action == "list":
            return queryset.filter(approval_status=Property.APPROVED, is_active=True)
        return queryset

    def get_serializer_class(self):
        if self.action in ("create", "update", "partial_update"):
            return PropertyWriteSerializer
        return super().get_serializer_class()

    def get_object(self):
        listing = super().get_object()
        if self.action == "retrieve":
            if not listing.is_bookable and not can_manage_property(self.request.user, listing):
                raise NotFound("Property not found.")
        elif self.action not in ("approve", "reject"):
            if not can_manage_property(self.request.user, listing):
                raise PermissionDenied("You can only manage your own properties.")
        return listing

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        listing = serializer.save(owner=request.user, approval_status=Property.PENDING)
        logger.info("Property %s submitted for approval by user %s.", listing.pk, request.user.pk)
        return Response(PropertySerializer(listing).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop("partial", False)
        listing = self.get_object()
        serializer = self.get_serializer(listing, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        listing = serializer.save()
        return Response(PropertySerializer(listing).data)

    def destroy(self, request, *args, **kwargs):
        listing = self.get_object()
        if listing.bookings.exists():
            return Response(
                {"detail": "Properties with bookings cannot be deleted; deactivate them instead."},
                status=status.HTTP_409_CONFLICT,
            )
        listing_id = listing.pk
        listing.delete()
        logger.info("Property %s deleted by user %s.", listing_id, request.user.pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=["get"], url_path="mine")
    def mine(self, request):
        listings = Property.objects.filter(owner=request.user).select_related("owner")
        approval_status = request.query_params.get("approval_status")
        if approval_status:
            listings = listings.filter(approval_status=approval_status)
        return Response(PropertySerializer(listings, many=True).data)

    @action(detail=True, methods=["patch"], url_path="status")
    def set_status(self, request, pk=None):
        listing = self.get_object()
        serializer = PropertyStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if "approval_status" in data and not request.user.is_marketplace_admin:
            raise PermissionDenied("Only admins can change approval status.")

        update_fields = ["updated_at"]
        if "is_active" in data:
            listing.is_active = data["is_active"]
            update_fields.append("is_active")
        if "approval_status" in data:
            listing.approval_status = data["approval_status"]
            update_fields.append("approval_status")
        listing.save(update_fields=update_fields)
        return Response(PropertySerializer(listing).data)

    @action(detail=False, methods=["get"], url_path="pending")
    def pending(self, request):
        listings = Property.objects.filter(approval_status=Property.PENDING).select_related("owner")
        return Response(PropertySerializer(listings, many=True).data)

    def _review(self, request, decide):
        listing = self.get_object()
        if listing.approval_status != Property.PENDING:
            raise ValidationError(
                {"approval_status": f"Property is already {listing.approval_status}."}
            )
        serializer = PropertyReviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        decide(listing, by=request.user, reason=serializer.validated_data.get("reason", ""))
        logger.info(
            "Property %s %s by admin %s.", listing.pk, listing.approval_status, request.user.pk
        )
        return Response(PropertySerializer(listing).data)

    @action(detail=True, methods=["put"], url_path="approve")
    def approve(self, request, pk=None):
        return self._review(request, Property.approve)

    @action(detail=True, methods=["put"], url_path="reject")
    def reject(self, request, pk=None):
        return self._review(request, Property.reject)
