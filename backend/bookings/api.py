import logging

from django.db.models import Q
from rest_framework import generics, status
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.permissions import IsMarketplaceAdmin
from notifications.models import Notification
from notifications.services import notify

from .models import Booking
from .serializers import BookingCreateSerializer, BookingSerializer, BookingStatusSerializer

logger = logging.getLogger(__name__)


class BookingListCreateView(generics.ListCreateAPIView):
    """List the renter's bookings or submit a new booking request."""

    def get_serializer_class(self):
        if self.request.method == "POST":
            return BookingCreateSerializer
        return BookingSerializer

    def get_queryset(self):
        return Booking.objects.filter(renter=self.request.user).select_related("property")

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = serializer.save(renter=request.user)
        notify(
            user_id=booking.property_owner_id,
            type=Notification.BOOKING_REQUESTED,
            title="New Booking Request",
            message=f"{booking.guest_name} requested to book {booking.property.title}.",
            booking_id=booking.pk,
        )
        logger.info("Booking %s requested for property %s.", booking.pk, booking.property_id)
        return Response(BookingSerializer(booking).data, status=status.HTTP_201_CREATED)


class OwnerBookingListView(generics.ListAPIView):
    """Bookings made on the current user's properties."""

    serializer_class = BookingSerializer

    def get_queryset(self):
        queryset = Booking.objects.filter(property_owner=self.request.user).select_related("property")
        status_filter = self.request.query_params.get("status")
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        return queryset


class BookingStatusView(APIView):
    """
    Move a booking through its lifecycle.

    The property owner approves or rejects a pending request; the renter may
    cancel while the request is pending or approved. Payment fields are left
    alone; they belong to the payments app.
    """

    def put(self, request, booking_id, *args, **kwargs):
        booking = (
            Booking.objects.select_related("property")
            .filter(Q(renter=request.user) | Q(property_owner=request.user), pk=booking_id)
            .first()
        )
        if booking is None:
            raise NotFound("Booking not found.")

        serializer = BookingStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        new_status = serializer.validated_data["status"]

        if new_status == Booking.CANCELLED:
            if booking.renter_id != request.user.id:
                raise PermissionDenied("Only the renter can cancel a booking.")
            if booking.status not in (Booking.PENDING, Booking.APPROVED):
                raise ValidationError({"status": f"Cannot cancel a {booking.status} booking."})
            recipient_id = booking.property_owner_id
        else:
            if booking.property_owner_id != request.user.id:
                raise PermissionDenied("Only the property owner can approve or reject.")
            if booking.status != Booking.PENDING:
                raise ValidationError({"status": f"Booking is already {booking.status}."})
            recipient_id = booking.renter_id

        booking.status = new_status
        booking.save(update_fields=["status", "updated_at"])
        notify(
            user_id=recipient_id,
            type=Notification.BOOKING_STATUS,
            title=f"Booking {new_status.title()}",
            message=f"Booking #{booking.pk} for {booking.property.title} is now {new_status}.",
            booking_id=booking.pk,
        )
        return Response(BookingSerializer(booking).data)


class AdminBookingListView(generics.ListAPIView):
    """Every booking on the marketplace, optionally narrowed by status."""

    serializer_class = BookingSerializer
    permission_classes = [IsMarketplaceAdmin]

    def get_queryset(self):
        queryset = Booking.objects.select_related("property")
        status_filter = self.request.query_params.get("status")
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        payment_status = self.request.query_params.get("payment_status")
        if payment_status:
            queryset = queryset.filter(payment_status=payment_status)
        return queryset
