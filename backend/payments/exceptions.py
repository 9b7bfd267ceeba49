class PaymentError(Exception):
    """Base class for payment subsystem errors."""


class GatewayUnavailable(PaymentError):
    """Stripe rejected our credentials or could not be reached."""

    code = "payment_gateway_unavailable"


class GatewayError(PaymentError):
    """Stripe answered, but with an error we have no specific handling for."""

    code = "payment_gateway_error"


class PaymentDeclined(PaymentError):
    """The payment method was declined; not an outage."""

    code = "payment_declined"

    def __init__(self, message: str, *, decline_code: str | None = None, intent_status: str | None = None):
        super().__init__(message)
        self.decline_code = decline_code
        self.intent_status = intent_status


class IntentNotFound(PaymentError):
    code = "payment_intent_not_found"


class SignatureInvalid(PaymentError):
    """Webhook payload failed authenticity verification."""


class StateConflict(PaymentError):
    """A payment outcome contradicts the booking's current payment state."""

    code = "payment_state_conflict"
