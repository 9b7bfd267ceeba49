"""
Stripe PaymentIntent adapter.

``StripeGateway`` is the only place that talks to Stripe's PaymentIntent API or
holds the secret key. It never touches bookings: callers decide what an intent
means for a booking (see ``payments.reconciliation``).

When ``STRIPE_USE_STUB`` is set (the default for local development) or no
secret key is configured, the gateway answers from an in-process stub so the
rest of the flow behaves as if Stripe responded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional
from uuid import uuid4

import stripe
from django.conf import settings

from .exceptions import (
    GatewayError,
    GatewayUnavailable,
    IntentNotFound,
    PaymentDeclined,
)

logger = logging.getLogger(__name__)

PAYMENT_TYPE_BOOKING_ADVANCE = "booking_advance_payment"

# Stripe test payment methods that the stub treats as declined.
STUB_DECLINED_PAYMENT_METHODS = {
    "pm_card_chargeDeclined",
    "pm_card_visa_chargeDeclined",
    "pm_card_chargeDeclinedInsufficientFunds",
}


@dataclass(frozen=True)
class GatewayConfig:
    api_key: str = ""
    currency: str = "usd"
    timeout: int = 20
    max_network_retries: int = 2
    use_stub: bool = False

    @property
    def stubbed(self) -> bool:
        return self.use_stub or not self.api_key

    @classmethod
    def from_settings(cls) -> "GatewayConfig":
        return cls(
            api_key=getattr(settings, "STRIPE_SECRET_KEY", ""),
            currency=getattr(settings, "STRIPE_CURRENCY", "usd"),
            timeout=getattr(settings, "STRIPE_TIMEOUT_SECONDS", 20),
            max_network_retries=getattr(settings, "STRIPE_MAX_NETWORK_RETRIES", 2),
            use_stub=getattr(settings, "STRIPE_USE_STUB", False),
        )


@dataclass(frozen=True)
class IntentHandle:
    intent_id: str
    client_secret: str
    status: str
    amount: int


@dataclass(frozen=True)
class IntentDetails:
    intent_id: str
    status: str
    amount: int
    currency: str
    booking_id: Optional[int] = None
    payment_method: Optional[str] = None
    latest_charge: Optional[str] = None
    created: Optional[int] = None
    last_error: Optional[str] = None
    client_secret: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"


def booking_id_from_metadata(metadata) -> Optional[int]:
    """Return the booking id stored in intent metadata, or None if absent/garbled."""
    # Subscript only: StripeObject stopped subclassing dict in recent releases.
    if metadata is None:
        return None
    try:
        return int(metadata["booking_id"])
    except (KeyError, TypeError, ValueError):
        return None


def _last_error_message(intent) -> Optional[str]:
    error = getattr(intent, "last_payment_error", None)
    if error is None:
        return None
    if isinstance(error, dict):
        return error.get("message")
    return getattr(error, "message", None)


def _to_details(intent) -> IntentDetails:
    payment_method = getattr(intent, "payment_method", None)
    if payment_method is not None and not isinstance(payment_method, str):
        payment_method = getattr(payment_method, "id", None)
    latest_charge = getattr(intent, "latest_charge", None)
    if latest_charge is not None and not isinstance(latest_charge, str):
        latest_charge = getattr(latest_charge, "id", None)
    return IntentDetails(
        intent_id=intent.id,
        status=intent.status,
        amount=intent.amount,
        currency=getattr(intent, "currency", ""),
        booking_id=booking_id_from_metadata(getattr(intent, "metadata", None)),
        payment_method=payment_method,
        latest_charge=latest_charge,
        created=getattr(intent, "created", None),
        last_error=_last_error_message(intent),
        client_secret=getattr(intent, "client_secret", None),
    )


def configure_stripe(config: GatewayConfig) -> None:
    stripe.max_network_retries = config.max_network_retries
    stripe.default_http_client = stripe.RequestsClient(timeout=config.timeout)


class StripeGateway:
    def __init__(self, config: GatewayConfig):
        self.config = config
        if not config.stubbed:
            configure_stripe(config)

    def create_intent(
        self,
        *,
        amount: int,
        booking_id: int,
        payer_email: str,
        payment_method_id: str | None = None,
    ) -> IntentHandle:
        """
        Create a PaymentIntent for a booking's advance payment.

        ``amount`` is in the currency's minor unit. With ``payment_method_id``
        the intent is left for server-side confirmation through
        ``confirm_intent``; otherwise any automatic payment method that does not
        need a redirect is accepted, since we have no return endpoint.
        """

        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValueError("amount must be a positive integer in minor units")

        params: dict[str, Any] = {
            "amount": amount,
            "currency": self.config.currency,
            "metadata": {
                "booking_id": str(booking_id),
                "type": PAYMENT_TYPE_BOOKING_ADVANCE,
            },
            "receipt_email": payer_email or None,
        }
        if payment_method_id:
            params["payment_method"] = payment_method_id
            params["confirmation_method"] = "manual"
        else:
            params["automatic_payment_methods"] = {
                "enabled": True,
                "allow_redirects": "never",
            }

        if self.config.stubbed:
            return _stub.create(params)

        intent = self._call("create payment intent", stripe.PaymentIntent.create, **params)
        return IntentHandle(
            intent_id=intent.id,
            client_secret=intent.client_secret,
            status=intent.status,
            amount=intent.amount,
        )

    def confirm_intent(self, intent_id: str, payment_method_id: str) -> IntentDetails:
        if self.config.stubbed:
            return _stub.confirm(intent_id, payment_method_id)
        intent = self._call(
            "confirm payment intent",
            stripe.PaymentIntent.confirm,
            intent_id,
            payment_method=payment_method_id,
        )
        return _to_details(intent)

    def retrieve_intent(self, intent_id: str) -> IntentDetails:
        if self.config.stubbed:
            return _stub.retrieve(intent_id)
        intent = self._call("retrieve payment intent", stripe.PaymentIntent.retrieve, intent_id)
        return _to_details(intent)

    def cancel_intent(self, intent_id: str) -> IntentDetails:
        """Cancel an intent that was abandoned before payment."""
        if self.config.stubbed:
            return _stub.cancel(intent_id)
        intent = self._call(
            "cancel payment intent",
            stripe.PaymentIntent.cancel,
            intent_id,
            cancellation_reason="abandoned",
        )
        return _to_details(intent)

    def _call(self, action: str, method, *args, **kwargs):
        try:
            return method(*args, api_key=self.config.api_key, **kwargs)
        except stripe.CardError as exc:
            logger.info("Stripe declined payment during %s: %s", action, exc)
            intent_status = None
            payment_intent = getattr(exc.error, "payment_intent", None) if exc.error is not None else None
            if payment_intent is not None:
                intent_status = getattr(payment_intent, "status", None)
            raise PaymentDeclined(
                exc.user_message or "Your card was declined.",
                decline_code=getattr(exc.error, "decline_code", None) if exc.error is not None else None,
                intent_status=intent_status,
            ) from exc
        except stripe.InvalidRequestError as exc:
            if exc.code == "resource_missing":
                raise IntentNotFound(str(exc)) from exc
            logger.exception("Stripe rejected request to %s: %s", action, exc)
            raise GatewayError(f"Unable to {action}.") from exc
        except (
            stripe.AuthenticationError,
            stripe.PermissionError,
            stripe.APIConnectionError,
            stripe.RateLimitError,
        ) as exc:
            logger.error("Stripe unavailable during %s: %s", action, exc)
            raise GatewayUnavailable("Payment service temporarily unavailable.") from exc
        except stripe.StripeError as exc:
            logger.exception("Stripe error during %s: %s", action, exc)
            raise GatewayError(f"Unable to {action}.") from exc


@dataclass
class _StubIntents:
    """In-process stand-in for Stripe used in stub mode."""

    intents: dict[str, dict] = field(default_factory=dict)

    def create(self, params: dict) -> IntentHandle:
        intent_id = f"pi_test_{uuid4().hex}"
        record = {
            "id": intent_id,
            "client_secret": f"{intent_id}_secret_{uuid4().hex[:12]}",
            "status": "requires_confirmation" if params.get("payment_method") else "requires_payment_method",
            "amount": params["amount"],
            "currency": params["currency"],
            "metadata": dict(params["metadata"]),
            "payment_method": params.get("payment_method"),
        }
        self.intents[intent_id] = record
        return IntentHandle(
            intent_id=intent_id,
            client_secret=record["client_secret"],
            status=record["status"],
            amount=record["amount"],
        )

    def _get(self, intent_id: str) -> dict:
        try:
            return self.intents[intent_id]
        except KeyError:
            raise IntentNotFound(f"No such payment_intent: '{intent_id}'") from None

    def confirm(self, intent_id: str, payment_method_id: str) -> IntentDetails:
        record = self._get(intent_id)
        record["payment_method"] = payment_method_id
        if payment_method_id in STUB_DECLINED_PAYMENT_METHODS:
            record["status"] = "requires_payment_method"
            raise PaymentDeclined(
                "Your card was declined.",
                decline_code="generic_decline",
                intent_status=record["status"],
            )
        record["status"] = "succeeded"
        return self._details(record)

    def retrieve(self, intent_id: str) -> IntentDetails:
        return self._details(self._get(intent_id))

    def cancel(self, intent_id: str) -> IntentDetails:
        record = self._get(intent_id)
        if record["status"] in ("succeeded", "canceled"):
            raise GatewayError("Unable to cancel payment intent.")
        record["status"] = "canceled"
        return self._details(record)

    @staticmethod
    def _details(record: dict) -> IntentDetails:
        return IntentDetails(
            intent_id=record["id"],
            status=record["status"],
            amount=record["amount"],
            currency=record["currency"],
            booking_id=booking_id_from_metadata(record["metadata"]),
            payment_method=record["payment_method"],
            client_secret=record["client_secret"],
        )


_stub = _StubIntents()


def get_gateway() -> StripeGateway:
    return StripeGateway(GatewayConfig.from_settings())
