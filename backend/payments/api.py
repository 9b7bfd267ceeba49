import logging

from django.conf import settings
from django.db.models import Q
from rest_framework import status
from rest_framework.exceptions import NotFound
from rest_framework.response import Response
from rest_framework.views import APIView

from bookings.models import Booking

from .exceptions import (
    GatewayError,
    GatewayUnavailable,
    IntentNotFound,
    PaymentDeclined,
    PaymentError,
    SignatureInvalid,
    StateConflict,
)
from .gateway import IntentDetails, get_gateway
from .reconciliation import (
    apply_outcome,
    begin_payment,
    ensure_can_create_intent,
    remember_intent_status,
)
from .serializers import (
    BookingPaymentStatusSerializer,
    ConfirmPaymentIntentSerializer,
    CreatePaymentIntentSerializer,
    PaymentBookingSerializer,
    VerifyPaymentSerializer,
)
from .state import PaymentStatus, is_open_intent, outcome_for_intent_status
from .webhooks import handle_event, parse_event, verify_event

logger = logging.getLogger(__name__)

_ERROR_STATUS = {
    GatewayUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
    PaymentDeclined: status.HTTP_402_PAYMENT_REQUIRED,
    IntentNotFound: status.HTTP_404_NOT_FOUND,
    StateConflict: status.HTTP_409_CONFLICT,
    GatewayError: status.HTTP_502_BAD_GATEWAY,
}

_ERROR_DETAIL = {
    GatewayUnavailable: "Payment service temporarily unavailable.",
    IntentNotFound: "Payment intent not found.",
    GatewayError: "Payment processing failed.",
}


def payment_error_response(exc: PaymentError) -> Response:
    """Translate an internal payment error into a client-safe response."""
    exc_type = type(exc)
    body = {
        "error": getattr(exc, "code", "payment_error"),
        "detail": _ERROR_DETAIL.get(exc_type, str(exc)),
    }
    if isinstance(exc, PaymentDeclined) and exc.intent_status:
        body["status"] = exc.intent_status
    return Response(body, status=_ERROR_STATUS.get(exc_type, status.HTTP_400_BAD_REQUEST))


def _renter_booking_for_intent(user, payment_intent_id: str) -> Booking:
    booking = (
        Booking.objects.select_related("property")
        .filter(stripe_payment_intent_id=payment_intent_id, renter=user)
        .first()
    )
    if booking is None:
        raise NotFound("Payment not found.")
    return booking


def _reconcile_from_intent(booking: Booking, details: IntentDetails) -> None:
    """Feed a polled intent status into the same path the webhook uses."""
    remember_intent_status(details.intent_id, details.status)
    outcome = outcome_for_intent_status(details.status)
    if outcome is None:
        return
    apply_outcome(
        booking.pk,
        details.intent_id,
        outcome,
        details.amount,
        error_message=details.last_error or "",
    )
    booking.refresh_from_db()


def _abandoned_intent(gateway, booking: Booking) -> IntentDetails | None:
    """
    Return the stored intent of a submitted booking if the payer can still use it.

    Raises ``StateConflict`` when the booking is not eligible for a new intent
    and its current one is already in flight.
    """
    if booking.payment_status != PaymentStatus.SUBMITTED or not booking.stripe_payment_intent_id:
        ensure_can_create_intent(booking)
        return None
    try:
        details = gateway.retrieve_intent(booking.stripe_payment_intent_id)
    except IntentNotFound:
        details = None
    if details is None or not is_open_intent(details.status):
        raise StateConflict(
            f"Payment for booking {booking.pk} is already {booking.payment_status}."
        )
    return details


def _cancel_quietly(gateway, intent_id: str) -> None:
    try:
        details = gateway.cancel_intent(intent_id)
    except PaymentError as exc:
        logger.warning("Unable to cancel payment intent %s: %s", intent_id, exc)
        return
    remember_intent_status(intent_id, details.status)


class CreatePaymentIntentView(APIView):
    """
    Create a Stripe PaymentIntent for the renter's booking.

    A booking left submitted by an intent the renter never completed is not
    locked out: the same intent is handed back when it still matches the
    request, otherwise it is replaced by a new one and cancelled.
    """

    def post(self, request, *args, **kwargs):
        serializer = CreatePaymentIntentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        booking = Booking.objects.filter(pk=data["booking_id"], renter=request.user).first()
        if booking is None:
            raise NotFound("Booking not found.")

        payment_method_id = data.get("payment_method_id") or None
        try:
            if booking.status in (Booking.REJECTED, Booking.CANCELLED):
                raise StateConflict(f"Booking {booking.pk} is {booking.status}.")

            gateway = get_gateway()
            previous = _abandoned_intent(gateway, booking)
            if (
                previous is not None
                and previous.client_secret
                and previous.amount == data["amount"]
                and not payment_method_id
            ):
                logger.info(
                    "Reusing open payment intent %s for booking %s.",
                    previous.intent_id,
                    booking.pk,
                )
                return Response(
                    {
                        "client_secret": previous.client_secret,
                        "payment_intent_id": previous.intent_id,
                    },
                    status=status.HTTP_200_OK,
                )

            handle = gateway.create_intent(
                amount=data["amount"],
                booking_id=booking.pk,
                payer_email=booking.email or request.user.email,
                payment_method_id=payment_method_id,
            )
            try:
                begin_payment(
                    booking.pk,
                    intent_id=handle.intent_id,
                    amount=handle.amount,
                    currency=gateway.config.currency,
                    intent_status=handle.status,
                    supersedes=previous.intent_id if previous is not None else None,
                )
            except StateConflict:
                _cancel_quietly(gateway, handle.intent_id)
                raise
        except PaymentError as exc:
            return payment_error_response(exc)

        if previous is not None:
            _cancel_quietly(gateway, previous.intent_id)

        return Response(
            {
                "client_secret": handle.client_secret,
                "payment_intent_id": handle.intent_id,
            },
            status=status.HTTP_201_CREATED,
        )


class ConfirmPaymentIntentView(APIView):
    """Confirm an intent server-side; advisory, the webhook remains authoritative."""

    def post(self, request, *args, **kwargs):
        serializer = ConfirmPaymentIntentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        booking = _renter_booking_for_intent(request.user, data["payment_intent_id"])
        try:
            details = get_gateway().confirm_intent(
                data["payment_intent_id"], data["payment_method_id"]
            )
        except PaymentError as exc:
            return payment_error_response(exc)

        _reconcile_from_intent(booking, details)
        return Response(
            {
                "success": details.succeeded,
                "status": details.status,
                "amount": details.amount,
                "currency": details.currency,
                "payment_intent_id": details.intent_id,
                "payment_status": booking.payment_status,
            }
        )


class VerifyPaymentView(APIView):
    """Report the live Stripe status of the renter's payment intent."""

    def post(self, request, *args, **kwargs):
        serializer = VerifyPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        intent_id = serializer.validated_data["payment_intent_id"]

        booking = _renter_booking_for_intent(request.user, intent_id)
        try:
            details = get_gateway().retrieve_intent(intent_id)
        except PaymentError as exc:
            return payment_error_response(exc)

        _reconcile_from_intent(booking, details)
        return Response(
            {
                "success": details.succeeded,
                "status": details.status,
                "amount": details.amount,
                "currency": details.currency,
                "payment_status": booking.payment_status,
            }
        )


def _live_intent(intent_id: str) -> IntentDetails | None:
    try:
        return get_gateway().retrieve_intent(intent_id)
    except PaymentError as exc:
        logger.warning("Unable to retrieve payment intent %s: %s", intent_id, exc)
        return None


class PaymentConfirmationView(APIView):
    """Booking details plus live Stripe payment details for a confirmation page."""

    def get(self, request, payment_intent_id, *args, **kwargs):
        booking = _renter_booking_for_intent(request.user, payment_intent_id)
        details = _live_intent(payment_intent_id)
        payment = None
        if details is not None:
            payment = {
                "id": details.intent_id,
                "status": details.status,
                "amount": details.amount,
                "currency": details.currency,
                "created": details.created,
                "payment_method": details.payment_method,
                "latest_charge": details.latest_charge,
            }
        return Response(
            {
                "booking": PaymentBookingSerializer(booking).data,
                "payment": payment,
            }
        )


class BookingPaymentStatusView(APIView):
    """Payment status of a booking, visible to its renter and its property owner."""

    def get(self, request, booking_id, *args, **kwargs):
        booking = Booking.objects.filter(
            Q(renter=request.user) | Q(property_owner=request.user),
            pk=booking_id,
        ).first()
        if booking is None:
            raise NotFound("Booking not found.")

        data = dict(BookingPaymentStatusSerializer(booking).data)
        if booking.stripe_payment_intent_id:
            details = _live_intent(booking.stripe_payment_intent_id)
            if details is not None:
                data["stripe_status"] = details.status
                data["stripe_amount"] = details.amount
                data["stripe_currency"] = details.currency
        return Response(data)


class StripeWebhookView(APIView):
    """Receive Stripe PaymentIntent events."""

    permission_classes: list = []
    authentication_classes: list = []

    def post(self, request, *args, **kwargs):
        payload = request.body
        sig_header = request.META.get("HTTP_STRIPE_SIGNATURE")
        if not settings.STRIPE_WEBHOOK_SECRET:
            logger.error("Stripe webhook secret not configured.")
            return Response(status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        try:
            event = verify_event(payload, sig_header, settings.STRIPE_WEBHOOK_SECRET)
        except SignatureInvalid as exc:
            logger.warning("Rejected Stripe webhook: %s", exc)
            return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        try:
            payment_event = parse_event(event)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            logger.warning("Malformed Stripe event payload: %s", exc)
            return Response(status=status.HTTP_400_BAD_REQUEST)

        try:
            handle_event(payment_event)
        except Exception as exc:
            logger.exception(
                "Error processing Stripe event %s (%s): %s",
                payment_event.event_id,
                payment_event.event_type,
                exc,
            )
            return Response(
                {"error": "Webhook processing failed"},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        return Response({"received": True}, status=status.HTTP_200_OK)
