from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import stripe
from django.utils import timezone as django_timezone

from .exceptions import SignatureInvalid
from .gateway import booking_id_from_metadata
from .models import StripeEvent
from .reconciliation import ApplyResult, apply_outcome
from .state import PaymentOutcome

logger = logging.getLogger(__name__)

EVENT_OUTCOMES = {
    "payment_intent.succeeded": PaymentOutcome.SUCCEEDED,
    "payment_intent.payment_failed": PaymentOutcome.FAILED,
    "payment_intent.canceled": PaymentOutcome.CANCELED,
}


@dataclass(frozen=True)
class PaymentEvent:
    event_id: Optional[str]
    event_type: str
    outcome: Optional[PaymentOutcome]
    intent_id: Optional[str]
    booking_id: Optional[int]
    amount: Optional[int]
    currency: str = ""
    error_message: str = ""
    created: Optional[datetime] = None

    @property
    def tracked(self) -> bool:
        return self.outcome is not None


def verify_event(payload: bytes, sig_header: Optional[str], secret: str) -> dict:
    """
    Check the Stripe signature over the raw body and return the event as plain JSON.

    Only the signature check is delegated to the library: ``StripeObject`` is
    not a mapping on current releases, so the verified body is decoded here
    and handed on as ordinary dicts.
    """
    if not sig_header:
        raise SignatureInvalid("Missing Stripe-Signature header.")
    try:
        body = payload.decode("utf-8")
        stripe.WebhookSignature.verify_header(
            body, sig_header, secret, stripe.Webhook.DEFAULT_TOLERANCE
        )
        return json.loads(body)
    except ValueError as exc:
        raise SignatureInvalid("Invalid webhook payload.") from exc
    except stripe.SignatureVerificationError as exc:
        raise SignatureInvalid("Invalid Stripe signature.") from exc


def parse_event(event: dict) -> PaymentEvent:
    event_type = event["type"]
    outcome = EVENT_OUTCOMES.get(event_type)
    data_object = event["data"]["object"]

    created = event.get("created")
    if created:
        created = datetime.fromtimestamp(int(created), tz=timezone.utc)

    error_message = ""
    last_error = data_object.get("last_payment_error")
    if last_error:
        error_message = last_error.get("message") or ""

    return PaymentEvent(
        event_id=event.get("id"),
        event_type=event_type,
        outcome=outcome,
        intent_id=data_object.get("id"),
        booking_id=booking_id_from_metadata(data_object.get("metadata")),
        amount=data_object.get("amount"),
        currency=data_object.get("currency") or "",
        error_message=error_message,
        created=created or None,
    )


def _ledger_entry(event: PaymentEvent) -> Optional[StripeEvent]:
    if not event.event_id:
        return None
    entry, _ = StripeEvent.objects.get_or_create(
        event_id=event.event_id,
        defaults={
            "event_type": event.event_type,
            "payment_intent_id": event.intent_id or "",
            "booking_id": event.booking_id,
        },
    )
    return entry


def handle_event(event: PaymentEvent) -> Optional[ApplyResult]:
    """
    Apply a verified payment event.

    Returns None when the event needs no state change (untracked type, no
    booking reference, or an already processed delivery). Errors from
    ``apply_outcome`` propagate so the delivery is not acknowledged.
    """

    if not event.tracked:
        logger.info("Unhandled Stripe event type %s.", event.event_type)
        return None

    entry = _ledger_entry(event)
    if entry is not None and entry.status == StripeEvent.PROCESSED:
        logger.info("Stripe event %s already processed.", event.event_id)
        return None

    if event.booking_id is None or not event.intent_id:
        logger.error(
            "Stripe event %s for intent %s has no booking_id metadata.",
            event.event_id,
            event.intent_id,
        )
        if entry is not None:
            entry.status = StripeEvent.IGNORED
            entry.error_message = "Missing booking_id metadata"
            entry.processed_at = django_timezone.now()
            entry.save(update_fields=["status", "error_message", "processed_at"])
        return None

    if entry is not None:
        entry.attempts += 1
        entry.save(update_fields=["attempts"])

    try:
        result = apply_outcome(
            event.booking_id,
            event.intent_id,
            event.outcome,
            event.amount,
            event.created,
            error_message=event.error_message,
        )
    except Exception as exc:
        if entry is not None:
            entry.status = StripeEvent.FAILED
            entry.error_message = str(exc)
            entry.save(update_fields=["status", "error_message"])
        raise

    if entry is not None:
        entry.status = StripeEvent.PROCESSED
        entry.result = result.decision.value
        entry.error_message = ""
        entry.processed_at = django_timezone.now()
        entry.save(update_fields=["status", "result", "error_message", "processed_at"])
    return result
