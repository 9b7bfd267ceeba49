import threading
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest
from django.db import connection

from bookings.models import Booking
from notifications.models import Notification
from payments.exceptions import StateConflict
from payments.models import Payment
from payments.reconciliation import (
    DjangoBookingPaymentStore,
    PaymentRecord,
    apply_outcome,
    begin_payment,
)
from payments.state import Decision, PaymentOutcome, PaymentStatus

T1 = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
T2 = T1 + timedelta(minutes=5)


class InMemoryStore:
    def __init__(self, *records: PaymentRecord):
        self.records = {record.booking_id: record for record in records}
        self.timestamps = defaultdict(dict)
        self.writes = []
        self._locks = {record.booking_id: threading.Lock() for record in records}

    @contextmanager
    def locked(self, booking_id):
        lock = self._locks.get(booking_id)
        if lock is None:
            yield None
            return
        with lock:
            yield self.records[booking_id]

    def write_outcome(self, booking_id, *, status, intent_id, amount, timestamp, error_message):
        self.records[booking_id] = replace(
            self.records[booking_id],
            payment_status=status,
            intent_id=intent_id,
            amount_cents=amount,
        )
        if timestamp is not None:
            self.timestamps[booking_id][status] = timestamp
        self.writes.append((booking_id, status, amount, timestamp))

    def write_submission(self, booking_id, *, intent_id, amount, currency, intent_status, timestamp):
        self.records[booking_id] = replace(
            self.records[booking_id],
            payment_status=PaymentStatus.SUBMITTED,
            intent_id=intent_id,
            amount_cents=amount,
        )


def _record(booking_id=42, status=PaymentStatus.SUBMITTED, intent_id="pi_abc"):
    return PaymentRecord(
        booking_id=booking_id,
        payment_status=status,
        intent_id=intent_id,
        renter_id=1,
        owner_id=2,
        property_title="Lakeside Annex",
    )


@pytest.fixture
def sent():
    return []


@pytest.fixture
def notifier(sent):
    def _notify(record, outcome, error_message):
        sent.append((record.booking_id, outcome))

    return _notify


def test_success_then_identical_replay_notifies_once(notifier, sent):
    store = InMemoryStore(_record())

    first = apply_outcome(42, "pi_abc", PaymentOutcome.SUCCEEDED, 5000, T1, store=store, notifier=notifier)
    second = apply_outcome(42, "pi_abc", PaymentOutcome.SUCCEEDED, 5000, T1, store=store, notifier=notifier)

    assert first.decision is Decision.APPLY
    assert second.decision is Decision.DUPLICATE
    assert store.records[42].payment_status == PaymentStatus.CONFIRMED
    assert store.timestamps[42][PaymentStatus.CONFIRMED] == T1
    assert sent == [(42, PaymentOutcome.SUCCEEDED)]


def test_event_for_newer_intent_leaves_booking_untouched(notifier, sent):
    store = InMemoryStore(_record(booking_id=7, intent_id="pi_old"))

    result = apply_outcome(7, "pi_new", PaymentOutcome.SUCCEEDED, 5000, T1, store=store, notifier=notifier)

    assert result.decision is Decision.STALE
    assert store.writes == []
    assert store.records[7].payment_status == PaymentStatus.SUBMITTED
    assert sent == []


@pytest.mark.parametrize("late", [PaymentOutcome.FAILED, PaymentOutcome.CANCELED])
def test_confirmed_booking_never_regresses(notifier, sent, late):
    store = InMemoryStore(_record(status=PaymentStatus.CONFIRMED))

    result = apply_outcome(42, "pi_abc", late, 5000, T2, store=store, notifier=notifier)

    assert result.decision is Decision.CONFLICT
    assert result.payment_status == PaymentStatus.CONFIRMED
    assert store.writes == []
    assert sent == []


def test_unknown_booking_is_reported_as_missing(notifier):
    store = InMemoryStore()

    result = apply_outcome(99, "pi_abc", PaymentOutcome.SUCCEEDED, 5000, T1, store=store, notifier=notifier)

    assert result.decision is Decision.MISSING
    assert result.payment_status is None


def test_notifier_failure_does_not_undo_transition():
    store = InMemoryStore(_record())

    def broken_notifier(record, outcome, error_message):
        raise RuntimeError("smtp down")

    result = apply_outcome(42, "pi_abc", PaymentOutcome.FAILED, 5000, T1, store=store, notifier=broken_notifier)

    assert result.applied
    assert store.records[42].payment_status == PaymentStatus.FAILED


def test_failed_booking_can_retry_with_new_intent(notifier, sent):
    store = InMemoryStore(_record(status=PaymentStatus.FAILED, intent_id="pi_first"))

    begin_payment(42, intent_id="pi_second", amount=5000, currency="usd", store=store)
    stale = apply_outcome(42, "pi_first", PaymentOutcome.FAILED, 5000, T1, store=store, notifier=notifier)
    result = apply_outcome(42, "pi_second", PaymentOutcome.SUCCEEDED, 5000, T2, store=store, notifier=notifier)

    assert stale.decision is Decision.STALE
    assert result.applied
    assert store.records[42].payment_status == PaymentStatus.CONFIRMED
    assert store.records[42].intent_id == "pi_second"
    assert sent == [(42, PaymentOutcome.SUCCEEDED)]


@pytest.mark.parametrize(
    "status", [PaymentStatus.SUBMITTED, PaymentStatus.CONFIRMED, PaymentStatus.CANCELED]
)
def test_new_intent_refused_unless_unset_or_failed(status):
    store = InMemoryStore(_record(status=status))

    with pytest.raises(StateConflict):
        begin_payment(42, intent_id="pi_other", amount=5000, currency="usd", store=store)
    assert store.records[42].intent_id == "pi_abc"


def test_concurrent_conflicting_outcomes_apply_exactly_one(notifier, sent):
    store = InMemoryStore(_record())
    barrier = threading.Barrier(2)
    results = []

    def deliver(outcome, amount, timestamp):
        barrier.wait()
        results.append(
            apply_outcome(42, "pi_abc", outcome, amount, timestamp, store=store, notifier=notifier)
        )

    threads = [
        threading.Thread(target=deliver, args=(PaymentOutcome.SUCCEEDED, 5000, T1)),
        threading.Thread(target=deliver, args=(PaymentOutcome.CANCELED, 4000, T2)),
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    decisions = sorted(result.decision.value for result in results)
    assert decisions == ["applied", "conflict"]
    assert len(store.writes) == 1
    _, status, amount, timestamp = store.writes[0]
    assert (amount, timestamp) in {(5000, T1), (4000, T2)}
    assert (status, amount) in {(PaymentStatus.CONFIRMED, 5000), (PaymentStatus.CANCELED, 4000)}
    assert len(sent) <= 1


# Database-backed store


def _submit(booking, intent_id="pi_abc", amount=5000):
    begin_payment(booking.pk, intent_id=intent_id, amount=amount, currency="usd")
    booking.refresh_from_db()
    return booking


@pytest.mark.django_db
def test_begin_payment_marks_booking_submitted(booking):
    _submit(booking)

    assert booking.payment_status == PaymentStatus.SUBMITTED
    assert booking.stripe_payment_intent_id == "pi_abc"
    assert booking.payment_amount_cents == 5000
    assert booking.payment_submitted_at is not None
    payment = Payment.objects.get(stripe_payment_intent="pi_abc")
    assert payment.booking_id == booking.pk
    assert payment.status == "requires_payment_method"


@pytest.mark.django_db
def test_confirmed_payment_notifies_owner_once(booking, owner):
    _submit(booking)

    apply_outcome(booking.pk, "pi_abc", PaymentOutcome.SUCCEEDED, 5000, T1)
    apply_outcome(booking.pk, "pi_abc", PaymentOutcome.SUCCEEDED, 5000, T1)

    booking.refresh_from_db()
    assert booking.payment_status == PaymentStatus.CONFIRMED
    assert booking.payment_confirmed_at == T1
    assert booking.payment_amount_cents == 5000
    notifications = Notification.objects.filter(booking=booking)
    assert notifications.count() == 1
    assert notifications.get().user == owner
    assert notifications.get().type == Notification.PAYMENT_CONFIRMED
    assert Payment.objects.get(stripe_payment_intent="pi_abc").status == "succeeded"


@pytest.mark.django_db
def test_failed_payment_notifies_renter_with_reason(booking, renter):
    _submit(booking)

    apply_outcome(
        booking.pk,
        "pi_abc",
        PaymentOutcome.FAILED,
        5000,
        T1,
        error_message="Your card has insufficient funds.",
    )

    booking.refresh_from_db()
    assert booking.payment_status == PaymentStatus.FAILED
    assert booking.payment_failed_at == T1
    assert booking.payment_error_message == "Your card has insufficient funds."
    notification = Notification.objects.get(booking=booking)
    assert notification.user == renter
    assert notification.type == Notification.PAYMENT_FAILED


@pytest.mark.django_db
def test_canceled_payment_sends_no_notification(booking):
    _submit(booking)

    result = apply_outcome(booking.pk, "pi_abc", PaymentOutcome.CANCELED, 5000, T1)

    booking.refresh_from_db()
    assert result.applied
    assert booking.payment_status == PaymentStatus.CANCELED
    assert booking.payment_canceled_at == T1
    assert Notification.objects.filter(booking=booking).exists() is False


@pytest.mark.django_db
def test_stale_intent_event_does_not_touch_booking(booking):
    _submit(booking, intent_id="pi_old")
    before = booking.updated_at

    result = apply_outcome(booking.pk, "pi_new", PaymentOutcome.SUCCEEDED, 5000, T1)

    booking.refresh_from_db()
    assert result.decision is Decision.STALE
    assert booking.payment_status == PaymentStatus.SUBMITTED
    assert booking.stripe_payment_intent_id == "pi_old"
    assert booking.updated_at == before


@pytest.mark.django_db
def test_retry_after_failure_confirms_new_intent(booking):
    _submit(booking, intent_id="pi_first")
    apply_outcome(booking.pk, "pi_first", PaymentOutcome.FAILED, 5000, T1)

    _submit(booking, intent_id="pi_second")
    assert booking.payment_error_message == ""
    apply_outcome(booking.pk, "pi_second", PaymentOutcome.SUCCEEDED, 5000, T2)

    booking.refresh_from_db()
    assert booking.payment_status == PaymentStatus.CONFIRMED
    assert booking.stripe_payment_intent_id == "pi_second"
    assert booking.payment_confirmed_at == T2
    assert booking.payments.count() == 2


@pytest.mark.django_db
def test_duplicate_keeps_first_settlement_time(booking):
    _submit(booking)
    apply_outcome(booking.pk, "pi_abc", PaymentOutcome.SUCCEEDED, 5000, T1)

    result = apply_outcome(booking.pk, "pi_abc", PaymentOutcome.SUCCEEDED, 5000, T2)

    booking.refresh_from_db()
    assert result.decision is Decision.DUPLICATE
    assert booking.payment_confirmed_at == T1


def test_superseding_an_abandoned_intent_resubmits():
    store = InMemoryStore(_record(intent_id="pi_abandoned"))

    begin_payment(
        42, intent_id="pi_fresh", amount=6000, currency="usd", supersedes="pi_abandoned", store=store
    )

    assert store.records[42].payment_status == PaymentStatus.SUBMITTED
    assert store.records[42].intent_id == "pi_fresh"
    assert store.records[42].amount_cents == 6000


def test_superseding_refused_when_stored_intent_moved_on():
    store = InMemoryStore(_record(intent_id="pi_other"))

    with pytest.raises(StateConflict):
        begin_payment(
            42, intent_id="pi_fresh", amount=6000, currency="usd", supersedes="pi_abandoned", store=store
        )
    assert store.records[42].intent_id == "pi_other"


def test_superseding_refused_once_confirmed():
    store = InMemoryStore(_record(status=PaymentStatus.CONFIRMED, intent_id="pi_abandoned"))

    with pytest.raises(StateConflict):
        begin_payment(
            42, intent_id="pi_fresh", amount=6000, currency="usd", supersedes="pi_abandoned", store=store
        )


@pytest.mark.django_db
def test_store_lock_is_held_inside_a_transaction(booking, monkeypatch):
    seen = {}
    store = DjangoBookingPaymentStore()
    original = Booking.objects.select_for_update

    def spy(*args, **kwargs):
        seen["select_for_update"] = True
        return original(*args, **kwargs)

    monkeypatch.setattr(Booking.objects, "select_for_update", spy)
    depth = len(connection.atomic_blocks)

    with store.locked(booking.pk) as record:
        seen["in_atomic_block"] = len(connection.atomic_blocks) > depth
        seen["booking_id"] = record.booking_id

    assert seen == {"select_for_update": True, "in_atomic_block": True, "booking_id": booking.pk}


@pytest.mark.django_db(transaction=True)
@pytest.mark.skipif(
    connection.vendor != "postgresql", reason="row locks need a database that enforces them"
)
def test_concurrent_webhook_and_confirm_settle_once(booking):
    _submit(booking)
    barrier = threading.Barrier(2)
    results = []

    def deliver(outcome, timestamp):
        barrier.wait()
        try:
            results.append(apply_outcome(booking.pk, "pi_abc", outcome, 5000, timestamp))
        finally:
            connection.close()

    threads = [
        threading.Thread(target=deliver, args=(PaymentOutcome.SUCCEEDED, T1)),
        threading.Thread(target=deliver, args=(PaymentOutcome.CANCELED, T2)),
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(result.decision.value for result in results) == ["applied", "conflict"]
    booking.refresh_from_db()
    assert booking.payment_status in (PaymentStatus.CONFIRMED, PaymentStatus.CANCELED)
    assert Notification.objects.filter(booking=booking).count() <= 1
