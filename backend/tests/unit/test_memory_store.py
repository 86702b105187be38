"""
Unit Tests: In-Memory Payment Store

Test cases:
- Duplicate sales rejected
- create_payout_atomic applies all writes or none
- Profile updates cannot touch scheduler-owned fields
- Status updates go through the lifecycle
- Refunds record reconciliation issues in the same write
"""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from ticketflow.payments import (
    ConcurrentPayoutConflict,
    CreatorPaymentProfile,
    DuplicateRecord,
    InvalidTransition,
    Payout,
    PayoutIntegrityError,
    RecordNotFound,
)

from factories import NOW, completed_transaction


def make_payout(creator_id, txs, amount=None):
    return Payout(
        creator_id=creator_id,
        amount=sum(tx.split.net_payout for tx in txs) if amount is None else amount,
        transaction_ids=[tx.id for tx in txs],
        scheduled_at=NOW,
    )


def test_duplicate_sale_rejected(store, seed_creator):
    (tx,) = seed_creator(store, "creator_a", [1000])

    with pytest.raises(DuplicateRecord):
        store.create_transaction(tx.model_copy(update={"id": "txn_other"}))
    with pytest.raises(DuplicateRecord):
        store.create_transaction(tx.model_copy(update={"sale_id": "sale_other"}))

    assert store.find_transaction_by_sale("creator_a", tx.sale_id).id == tx.id


def test_create_payout_atomic_consumes_transactions(store, seed_creator):
    txs = seed_creator(store, "creator_a", [1000, 2000])
    payout = make_payout("creator_a", txs)

    store.create_payout_atomic(payout, [tx.id for tx in reversed(txs)])

    assert store.get_payout(payout.id) == payout
    assert store.list_ungrouped_completed_transactions("creator_a") == []
    assert store.get_profile("creator_a").last_payout_at == NOW


def test_amount_mismatch_writes_nothing(store, seed_creator):
    txs = seed_creator(store, "creator_a", [1000, 2000])

    with pytest.raises(PayoutIntegrityError):
        store.create_payout_atomic(make_payout("creator_a", txs, amount=2999), [tx.id for tx in txs])

    assert store.list_payouts() == []
    assert len(store.list_ungrouped_completed_transactions("creator_a")) == 2
    assert store.get_profile("creator_a").last_payout_at is None


def test_foreign_transaction_rejected(store, seed_creator):
    own = seed_creator(store, "creator_a", [1000])
    foreign = seed_creator(store, "creator_b", [500])

    with pytest.raises(PayoutIntegrityError):
        store.create_payout_atomic(
            make_payout("creator_a", own + foreign), [tx.id for tx in own + foreign]
        )

    assert store.get_transaction(own[0].id).payout_id is None


def test_grouped_transaction_conflicts(store, seed_creator):
    txs = seed_creator(store, "creator_a", [1000])
    store.create_payout_atomic(make_payout("creator_a", txs), [txs[0].id])

    with pytest.raises(ConcurrentPayoutConflict) as exc_info:
        store.create_payout_atomic(make_payout("creator_a", txs), [txs[0].id])

    assert exc_info.value.transaction_ids == [txs[0].id]
    assert len(store.list_payouts("creator_a")) == 1


def test_transaction_ids_must_match_payout(store, seed_creator):
    txs = seed_creator(store, "creator_a", [1000, 2000])

    with pytest.raises(PayoutIntegrityError):
        store.create_payout_atomic(make_payout("creator_a", txs), [txs[0].id])


def test_payout_for_unknown_creator(store):
    tx = store.create_transaction(completed_transaction("ghost", 1000))

    with pytest.raises(RecordNotFound):
        store.create_payout_atomic(make_payout("ghost", [tx]), [tx.id])


def test_payout_requires_transactions():
    with pytest.raises(ValidationError):
        Payout(creator_id="creator_a", amount=0, transaction_ids=[], scheduled_at=NOW)
    with pytest.raises(ValidationError):
        Payout(creator_id="creator_a", amount=0, transaction_ids=["a", "a"], scheduled_at=NOW)


def test_save_profile_keeps_last_payout_at(store, seed_creator):
    txs = seed_creator(store, "creator_a", [1000])
    store.create_payout_atomic(make_payout("creator_a", txs), [txs[0].id])

    saved = store.save_profile(
        CreatorPaymentProfile(creator_id="creator_a", payout_cadence="daily", verified=True)
    )

    assert saved.payout_cadence == "daily"
    assert saved.last_payout_at == NOW


def test_update_profile(store, seed_creator):
    seed_creator(store, "creator_a", [])

    updated = store.update_profile("creator_a", {"minimum_payout_amount": 5000})
    assert updated.minimum_payout_amount == 5000

    with pytest.raises(ValueError):
        store.update_profile("creator_a", {"last_payout_at": NOW})
    with pytest.raises(ValidationError):
        store.update_profile("creator_a", {"payout_cadence": "hourly"})
    with pytest.raises(RecordNotFound):
        store.update_profile("ghost", {"verified": True})


def test_status_updates_follow_lifecycle(store, seed_creator):
    (tx,) = seed_creator(store, "creator_a", [1000])

    refunded = store.update_transaction_status(tx.id, "refunded", NOW + timedelta(days=1))
    assert store.get_transaction(tx.id) == refunded

    with pytest.raises(InvalidTransition):
        store.update_transaction_status(tx.id, "completed", NOW)
    with pytest.raises(RecordNotFound):
        store.update_transaction_status("txn_missing", "completed", NOW)
    with pytest.raises(RecordNotFound):
        store.update_payout_status("po_missing", "completed", NOW)


def test_lists_are_ordered(store, seed_creator):
    seed_creator(store, "creator_b", [])
    seed_creator(store, "creator_a", [])
    late = completed_transaction("creator_a", 100, created_at=NOW + timedelta(hours=1))
    early = completed_transaction("creator_a", 200, created_at=NOW)
    store.create_transaction(late)
    store.create_transaction(early)

    assert [p.creator_id for p in store.list_profiles()] == ["creator_a", "creator_b"]
    assert [tx.id for tx in store.list_transactions("creator_a")] == [early.id, late.id]
    assert store.get_info() == {"backend_type": "InMemoryPaymentStore", "available": True}


def test_refund_of_grouped_transaction_records_issue(store, seed_creator):
    txs = seed_creator(store, "creator_a", [1000, 2000])
    payout = make_payout("creator_a", txs[:1])
    store.create_payout_atomic(payout, [txs[0].id])

    grouped, issue = store.refund_transaction(txs[0].id, NOW + timedelta(days=1))
    ungrouped, no_issue = store.refund_transaction(txs[1].id, NOW + timedelta(days=1))
    repeated, repeated_issue = store.refund_transaction(txs[0].id, NOW + timedelta(days=2))

    assert grouped.status == "refunded"
    assert (issue.transaction_id, issue.payout_id, issue.amount) == (txs[0].id, payout.id, 1000)
    assert ungrouped.status == "refunded"
    assert no_issue is None
    assert repeated == grouped
    assert repeated_issue is None
    assert store.list_issues() == [issue]
