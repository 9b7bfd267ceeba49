"""
Apply payment outcomes to bookings.

Every writer of a booking's payment fields goes through this module: intent
creation (``begin_payment``) and outcome reconciliation (``apply_outcome``),
whether the outcome came from a webhook delivery or from an advisory
confirm/verify call made by the client.

Persistence sits behind ``BookingPaymentStore`` so the transition rules can be
exercised without a database. ``DjangoBookingPaymentStore`` holds a row lock on
the booking for the whole read-decide-write sequence.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, ContextManager, Iterator, Optional, Protocol

from django.db import transaction
from django.utils import timezone

from bookings.models import Booking
from notifications.models import Notification
from notifications.services import notify

from .exceptions import StateConflict
from .models import Payment
from .state import (
    Decision,
    PaymentOutcome,
    PaymentStatus,
    can_create_intent,
    decide,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentRecord:
    booking_id: int
    payment_status: str
    intent_id: Optional[str]
    renter_id: int
    owner_id: int
    property_title: str
    amount_cents: Optional[int] = None


@dataclass(frozen=True)
class ApplyResult:
    booking_id: int
    decision: Decision
    payment_status: Optional[str]

    @property
    def applied(self) -> bool:
        return self.decision is Decision.APPLY


class BookingPaymentStore(Protocol):
    def locked(self, booking_id: int) -> ContextManager[Optional[PaymentRecord]]:
        """Hold exclusive access to the booking's payment fields for the block."""

    def write_outcome(
        self,
        booking_id: int,
        *,
        status: PaymentStatus,
        intent_id: str,
        amount: Optional[int],
        timestamp: Optional[datetime],
        error_message: str,
    ) -> None:
        """Persist a settled status; ``timestamp`` None leaves the existing one."""

    def write_submission(
        self,
        booking_id: int,
        *,
        intent_id: str,
        amount: int,
        currency: str,
        intent_status: str,
        timestamp: datetime,
    ) -> None:
        ...


_TIMESTAMP_FIELDS = {
    PaymentStatus.CONFIRMED: "payment_confirmed_at",
    PaymentStatus.FAILED: "payment_failed_at",
    PaymentStatus.CANCELED: "payment_canceled_at",
}


class DjangoBookingPaymentStore:
    @contextmanager
    def locked(self, booking_id: int) -> Iterator[Optional[PaymentRecord]]:
        with transaction.atomic():
            booking = (
                Booking.objects.select_for_update()
                .filter(pk=booking_id)
                .first()
            )
            if booking is None:
                yield None
                return
            yield PaymentRecord(
                booking_id=booking.pk,
                payment_status=booking.payment_status,
                intent_id=booking.stripe_payment_intent_id,
                renter_id=booking.renter_id,
                owner_id=booking.property_owner_id,
                property_title=booking.property.title,
                amount_cents=booking.payment_amount_cents,
            )

    def write_outcome(self, booking_id, *, status, intent_id, amount, timestamp, error_message):
        fields = {
            "payment_status": status,
            "stripe_payment_intent_id": intent_id,
            "updated_at": timezone.now(),
        }
        if timestamp is not None:
            fields[_TIMESTAMP_FIELDS[status]] = timestamp
        if amount is not None:
            fields["payment_amount_cents"] = amount
        if status == PaymentStatus.FAILED:
            fields["payment_error_message"] = error_message or "Payment failed"
        Booking.objects.filter(pk=booking_id).update(**fields)

        payment_fields = {"status": status_to_intent_status(status), "updated_at": timezone.now()}
        if amount is not None:
            payment_fields["amount_cents"] = amount
        Payment.objects.filter(stripe_payment_intent=intent_id).update(**payment_fields)

    def write_submission(self, booking_id, *, intent_id, amount, currency, intent_status, timestamp):
        Booking.objects.filter(pk=booking_id).update(
            payment_status=PaymentStatus.SUBMITTED,
            stripe_payment_intent_id=intent_id,
            payment_amount_cents=amount,
            payment_submitted_at=timestamp,
            payment_error_message="",
            updated_at=timezone.now(),
        )
        Payment.objects.update_or_create(
            stripe_payment_intent=intent_id,
            defaults={
                "booking_id": booking_id,
                "amount_cents": amount,
                "currency": currency,
                "status": intent_status,
            },
        )


def status_to_intent_status(status: PaymentStatus) -> str:
    return {
        PaymentStatus.CONFIRMED: PaymentOutcome.SUCCEEDED.value,
        PaymentStatus.FAILED: PaymentOutcome.FAILED.value,
        PaymentStatus.CANCELED: PaymentOutcome.CANCELED.value,
    }.get(status, status.value)


Notifier = Callable[[PaymentRecord, PaymentOutcome, str], None]


def notify_payment_outcome(record: PaymentRecord, outcome: PaymentOutcome, error_message: str = "") -> None:
    if outcome is PaymentOutcome.SUCCEEDED:
        notify(
            user_id=record.owner_id,
            type=Notification.PAYMENT_CONFIRMED,
            title="Payment Confirmed",
            message=f"Payment has been confirmed for booking at {record.property_title}.",
            booking_id=record.booking_id,
        )
    elif outcome is PaymentOutcome.FAILED:
        notify(
            user_id=record.renter_id,
            type=Notification.PAYMENT_FAILED,
            title="Payment Failed",
            message=(
                f"Your payment for booking at {record.property_title} has failed. "
                "Please try again."
            ),
            booking_id=record.booking_id,
        )


def apply_outcome(
    booking_id: int,
    intent_id: str,
    outcome: PaymentOutcome,
    amount: Optional[int],
    timestamp: Optional[datetime] = None,
    *,
    error_message: str = "",
    store: Optional[BookingPaymentStore] = None,
    notifier: Optional[Notifier] = None,
) -> ApplyResult:
    """
    Reconcile a settled payment intent with its booking.

    Safe to call any number of times for the same event: a repeat delivery is
    recognised as a duplicate and produces no second notification, an event
    for a superseded intent is ignored, and a terminal status is never
    replaced by a different terminal status.
    """

    store = store or DjangoBookingPaymentStore()
    notifier = notifier or notify_payment_outcome
    timestamp = timestamp or timezone.now()

    with store.locked(booking_id) as record:
        if record is None:
            logger.warning(
                "Payment intent %s (%s) references unknown booking %s.",
                intent_id,
                outcome.value,
                booking_id,
            )
            return ApplyResult(booking_id, Decision.MISSING, None)

        transition = decide(record.payment_status, record.intent_id, intent_id, outcome)

        if not transition.mutates:
            if transition.decision is Decision.STALE:
                logger.info(
                    "Ignoring %s for intent %s on booking %s; current intent is %s.",
                    outcome.value,
                    intent_id,
                    booking_id,
                    record.intent_id,
                )
            else:
                conflict = StateConflict(
                    f"booking {booking_id} intent {intent_id} is {transition.current.value}, "
                    f"refusing {transition.target.value}"
                )
                logger.warning("Payment state conflict: %s", conflict)
            return ApplyResult(booking_id, transition.decision, record.payment_status)

        # A duplicate keeps the timestamp recorded when the status first settled.
        store.write_outcome(
            booking_id,
            status=transition.target,
            intent_id=intent_id,
            amount=amount,
            timestamp=timestamp if transition.notifies else None,
            error_message=error_message,
        )

    if transition.notifies:
        logger.info(
            "Booking %s payment %s -> %s via intent %s.",
            booking_id,
            transition.current.value,
            transition.target.value,
            intent_id,
        )
        try:
            notifier(record, outcome, error_message)
        except Exception as exc:
            logger.exception(
                "Payment notification for booking %s failed: %s", booking_id, exc
            )
    else:
        logger.info(
            "Duplicate %s for intent %s on booking %s.", outcome.value, intent_id, booking_id
        )

    return ApplyResult(booking_id, transition.decision, transition.target.value)


def ensure_can_create_intent(booking: Booking) -> None:
    if not can_create_intent(booking.payment_status):
        raise StateConflict(
            f"Payment for booking {booking.pk} is already {booking.payment_status}."
        )


def begin_payment(
    booking_id: int,
    *,
    intent_id: str,
    amount: int,
    currency: str,
    intent_status: str = "requires_payment_method",
    timestamp: Optional[datetime] = None,
    supersedes: Optional[str] = None,
    store: Optional[BookingPaymentStore] = None,
) -> None:
    """
    Record a freshly created intent against its booking and mark it submitted.

    Eligibility is checked again under the row lock: a concurrent request may
    have attached another intent while Stripe was being called. ``supersedes``
    names an abandoned intent of a submitted booking that the new one replaces;
    the replacement is refused if the stored intent has changed meanwhile.
    """

    store = store or DjangoBookingPaymentStore()
    with store.locked(booking_id) as record:
        if record is None:
            raise StateConflict(f"Booking {booking_id} no longer exists.")
        replacing = (
            supersedes is not None
            and record.payment_status == PaymentStatus.SUBMITTED
            and record.intent_id == supersedes
        )
        if not replacing and not can_create_intent(record.payment_status):
            raise StateConflict(
                f"Payment for booking {booking_id} is already {record.payment_status}."
            )
        store.write_submission(
            booking_id,
            intent_id=intent_id,
            amount=amount,
            currency=currency,
            intent_status=intent_status,
            timestamp=timestamp or timezone.now(),
        )
    if supersedes:
        logger.info(
            "Booking %s payment resubmitted with intent %s replacing %s.",
            booking_id,
            intent_id,
            supersedes,
        )
    else:
        logger.info("Booking %s payment submitted with intent %s.", booking_id, intent_id)


def remember_intent_status(intent_id: str, intent_status: str) -> None:
    """Update the last known processor-side status of an intent."""
    Payment.objects.filter(stripe_payment_intent=intent_id).exclude(status=intent_status).update(
        status=intent_status, updated_at=timezone.now()
    )
