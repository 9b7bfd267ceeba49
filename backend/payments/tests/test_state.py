import pytest

from payments.state import (
    Decision,
    PaymentOutcome,
    PaymentStatus,
    can_create_intent,
    decide,
    outcome_for_intent_status,
)


def test_submitted_booking_accepts_matching_outcome():
    transition = decide(PaymentStatus.SUBMITTED, "pi_abc", "pi_abc", PaymentOutcome.SUCCEEDED)

    assert transition.decision is Decision.APPLY
    assert transition.target == PaymentStatus.CONFIRMED
    assert transition.notifies is True


@pytest.mark.parametrize(
    "stored",
    [None, "", "pi_old"],
)
def test_event_for_other_intent_is_stale(stored):
    transition = decide(PaymentStatus.SUBMITTED, stored, "pi_new", PaymentOutcome.FAILED)

    assert transition.decision is Decision.STALE
    assert transition.mutates is False


@pytest.mark.parametrize(
    "status,outcome",
    [
        (PaymentStatus.CONFIRMED, PaymentOutcome.SUCCEEDED),
        (PaymentStatus.FAILED, PaymentOutcome.FAILED),
        (PaymentStatus.CANCELED, PaymentOutcome.CANCELED),
    ],
)
def test_repeated_terminal_outcome_is_duplicate(status, outcome):
    transition = decide(status, "pi_abc", "pi_abc", outcome)

    assert transition.decision is Decision.DUPLICATE
    assert transition.mutates is True
    assert transition.notifies is False


@pytest.mark.parametrize(
    "status,outcome",
    [
        (PaymentStatus.CONFIRMED, PaymentOutcome.FAILED),
        (PaymentStatus.CONFIRMED, PaymentOutcome.CANCELED),
        (PaymentStatus.FAILED, PaymentOutcome.SUCCEEDED),
        (PaymentStatus.CANCELED, PaymentOutcome.SUCCEEDED),
    ],
)
def test_different_terminal_outcome_is_conflict(status, outcome):
    transition = decide(status, "pi_abc", "pi_abc", outcome)

    assert transition.decision is Decision.CONFLICT
    assert transition.mutates is False


def test_plain_string_status_is_accepted():
    transition = decide("submitted", "pi_abc", "pi_abc", PaymentOutcome.CANCELED)

    assert transition.current is PaymentStatus.SUBMITTED
    assert transition.target is PaymentStatus.CANCELED


def test_intent_creation_eligibility():
    assert can_create_intent(PaymentStatus.UNSET)
    assert can_create_intent(PaymentStatus.FAILED)
    assert not can_create_intent(PaymentStatus.SUBMITTED)
    assert not can_create_intent(PaymentStatus.CONFIRMED)
    assert not can_create_intent(PaymentStatus.CANCELED)


def test_only_settled_intent_statuses_map_to_outcomes():
    assert outcome_for_intent_status("succeeded") is PaymentOutcome.SUCCEEDED
    assert outcome_for_intent_status("canceled") is PaymentOutcome.CANCELED
    assert outcome_for_intent_status("requires_action") is None
    assert outcome_for_intent_status("processing") is None
    assert outcome_for_intent_status(None) is None
