"""
Unit Tests: Transaction and Payout Lifecycles

Test cases:
- Legal transaction transitions stamp their timestamps
- Illegal transitions raise InvalidTransition (409)
- Repeated reports are no-ops
- Payout failures require a reason
"""

from datetime import timedelta

import pytest

from ticketflow.payments import InvalidTransition, Payout, transition_payout, transition_transaction
from ticketflow.payments.lifecycle import can_transition_payout, can_transition_transaction

from factories import NOW, completed_transaction


def pending_transaction():
    return completed_transaction("creator_a", 1000).model_copy(
        update={"status": "pending", "completed_at": None}
    )


def pending_payout():
    return Payout(creator_id="creator_a", amount=1000, transaction_ids=["txn_1"], scheduled_at=NOW)


def test_pending_to_completed_records_reference():
    tx = pending_transaction()

    settled = transition_transaction(tx, "completed", NOW, reference="MOMO-123")

    assert settled.status == "completed"
    assert settled.completed_at == NOW
    assert settled.gateway_reference == "MOMO-123"
    assert tx.status == "pending"


def test_pending_to_failed_records_reason():
    failed = transition_transaction(pending_transaction(), "failed", NOW, reason="insufficient funds")

    assert failed.status == "failed"
    assert failed.failed_at == NOW
    assert failed.failure_reason == "insufficient funds"


def test_completed_to_refunded_keeps_payout_id():
    tx = completed_transaction("creator_a", 1000).model_copy(update={"payout_id": "po_1"})

    refunded = transition_transaction(tx, "refunded", NOW + timedelta(days=1))

    assert refunded.status == "refunded"
    assert refunded.refunded_at == NOW + timedelta(days=1)
    assert refunded.payout_id == "po_1"


@pytest.mark.parametrize(
    "start,target",
    [
        ("pending", "refunded"),
        ("failed", "completed"),
        ("refunded", "completed"),
        ("completed", "pending"),
        ("completed", "failed"),
    ],
)
def test_illegal_transaction_transitions(start, target):
    tx = pending_transaction().model_copy(update={"status": start})

    with pytest.raises(InvalidTransition) as exc_info:
        transition_transaction(tx, target, NOW)

    assert exc_info.value.status_code == 409
    assert exc_info.value.old_status == start
    assert not can_transition_transaction(start, target)


def test_repeated_transaction_report_is_noop():
    tx = completed_transaction("creator_a", 1000)
    assert transition_transaction(tx, "completed", NOW + timedelta(hours=1)) is tx


def test_payout_processing_then_completed():
    processing = transition_payout(pending_payout(), "processing", NOW)
    assert processing.status == "processing"
    assert processing.processed_at is None

    completed = transition_payout(processing, "completed", NOW + timedelta(minutes=5))
    assert completed.status == "completed"
    assert completed.processed_at == NOW + timedelta(minutes=5)


def test_payout_can_complete_directly():
    assert can_transition_payout("pending", "completed")
    assert transition_payout(pending_payout(), "completed", NOW).status == "completed"


def test_payout_failure_requires_reason():
    with pytest.raises(ValueError):
        transition_payout(pending_payout(), "failed", NOW)
    with pytest.raises(ValueError):
        transition_payout(pending_payout(), "failed", NOW, reason="   ")

    failed = transition_payout(pending_payout(), "failed", NOW, reason="wallet closed")
    assert failed.failure_reason == "wallet closed"
    assert failed.processed_at == NOW


def test_terminal_payout_cannot_change():
    completed = transition_payout(pending_payout(), "completed", NOW)

    with pytest.raises(InvalidTransition):
        transition_payout(completed, "failed", NOW, reason="late bounce")
    with pytest.raises(InvalidTransition):
        transition_payout(completed, "processing", NOW)
