"""
Booking payment state machine.

A booking's payment moves ``unset -> submitted -> confirmed | failed | canceled``;
``failed`` may go back to ``submitted`` when the renter retries with a new
intent. ``decide`` is the single transition function: it looks at the
booking's current payment status and stored intent reference and tells the
caller what to do with an incoming outcome. It never touches the database.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from django.db import models


class PaymentStatus(models.TextChoices):
    UNSET = "unset", "Unset"
    SUBMITTED = "submitted", "Submitted"
    CONFIRMED = "confirmed", "Confirmed"
    FAILED = "failed", "Failed"
    CANCELED = "canceled", "Canceled"


TERMINAL_STATUSES = frozenset(
    {PaymentStatus.CONFIRMED, PaymentStatus.FAILED, PaymentStatus.CANCELED}
)

# Statuses from which a fresh payment intent may be created.
INTENT_ELIGIBLE_STATUSES = frozenset({PaymentStatus.UNSET, PaymentStatus.FAILED})


class PaymentOutcome(enum.Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"

    @property
    def status(self) -> PaymentStatus:
        return _OUTCOME_STATUS[self]


_OUTCOME_STATUS = {
    PaymentOutcome.SUCCEEDED: PaymentStatus.CONFIRMED,
    PaymentOutcome.FAILED: PaymentStatus.FAILED,
    PaymentOutcome.CANCELED: PaymentStatus.CANCELED,
}

# Stripe PaymentIntent.status values that settle the intent. ``requires_action``
# and ``processing`` are deliberately absent: they leave the booking submitted.
_INTENT_STATUS_OUTCOMES = {
    "succeeded": PaymentOutcome.SUCCEEDED,
    "canceled": PaymentOutcome.CANCELED,
}


# Stripe PaymentIntent.status values for an intent the payer can still complete
# or that we can still cancel.
OPEN_INTENT_STATUSES = frozenset(
    {"requires_payment_method", "requires_confirmation", "requires_action"}
)


def is_open_intent(intent_status: str | None) -> bool:
    return intent_status in OPEN_INTENT_STATUSES


def outcome_for_intent_status(intent_status: str | None) -> PaymentOutcome | None:
    """Map a processor-side intent status to a settled outcome, if it is one."""
    if not intent_status:
        return None
    return _INTENT_STATUS_OUTCOMES.get(intent_status)


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def can_create_intent(status: str) -> bool:
    return status in INTENT_ELIGIBLE_STATUSES


class Decision(enum.Enum):
    APPLY = "applied"
    DUPLICATE = "duplicate"
    STALE = "stale"
    CONFLICT = "conflict"
    MISSING = "missing"


@dataclass(frozen=True)
class Transition:
    decision: Decision
    current: PaymentStatus
    target: PaymentStatus

    @property
    def mutates(self) -> bool:
        return self.decision in (Decision.APPLY, Decision.DUPLICATE)

    @property
    def notifies(self) -> bool:
        return self.decision is Decision.APPLY


def decide(
    current_status: str,
    stored_intent_id: str | None,
    intent_id: str,
    outcome: PaymentOutcome,
) -> Transition:
    current = PaymentStatus(current_status)
    target = outcome.status

    if not stored_intent_id or stored_intent_id != intent_id:
        return Transition(Decision.STALE, current, target)

    if is_terminal(current):
        if current == target:
            return Transition(Decision.DUPLICATE, current, target)
        return Transition(Decision.CONFLICT, current, target)

    return Transition(Decision.APPLY, current, target)
