"""
Integration Tests: YAML Ledger Store

Test cases:
1. A payout batch survives a reload from disk
2. Failed writes leave the previous ledger intact
3. Corrupted ledgers surface as StoreUnavailable
4. A failed serialisation leaves no temp file behind
"""

from datetime import timedelta
from decimal import Decimal

import pytest
import yaml

from ticketflow.payments import CreatorPaymentProfile, StoreUnavailable
from ticketflow.payouts import PayoutScheduler
from ticketflow.storage import YamlPaymentStore

from factories import NOW, completed_transaction


@pytest.fixture
def ledger_path(tmp_path):
    return tmp_path / "data" / "ledger.yaml"


@pytest.fixture
def store(ledger_path):
    return YamlPaymentStore(ledger_path)


def test_missing_ledger_is_empty(store, ledger_path):
    assert store.list_profiles() == []
    assert store.list_payouts() == []
    assert not ledger_path.exists()


def test_batch_survives_reload(store, ledger_path, settings, seed_creator):
    txs = seed_creator(
        store,
        "creator_a",
        [1000, 1500, 800],
        minimum_payout_amount=2000,
        commission_tier="Custom",
        custom_commission_rate=Decimal("0.025"),
    )
    result = PayoutScheduler(store, settings).run_batch(NOW)

    reloaded = YamlPaymentStore(ledger_path)

    (payout,) = reloaded.list_payouts("creator_a")
    assert payout == result.payouts[0]
    assert payout.amount == 3300
    assert all(reloaded.get_transaction(tx.id).payout_id == payout.id for tx in txs)

    profile = reloaded.get_profile("creator_a")
    assert profile.last_payout_at == NOW
    assert profile.custom_commission_rate == Decimal("0.025")


def test_writes_leave_no_temp_files(store, ledger_path, seed_creator):
    seed_creator(store, "creator_a", [1000, 2000])

    assert [p.name for p in ledger_path.parent.iterdir()] == ["ledger.yaml"]


def test_failed_write_keeps_previous_ledger(store, ledger_path, seed_creator, monkeypatch):
    seed_creator(store, "creator_a", [1000])
    before = ledger_path.read_text()

    def failing_move(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("ticketflow.storage.ledger.shutil.move", failing_move)

    with pytest.raises(StoreUnavailable):
        store.create_transaction(completed_transaction("creator_a", 500))

    assert ledger_path.read_text() == before
    assert [p.name for p in ledger_path.parent.iterdir()] == ["ledger.yaml"]
    assert len(store.list_transactions("creator_a")) == 1


def test_corrupted_ledger_is_unavailable(store, ledger_path):
    ledger_path.parent.mkdir(parents=True)
    ledger_path.write_text("profiles: [unclosed\n")

    assert store.is_available() is False
    with pytest.raises(StoreUnavailable):
        store.list_profiles()


def test_invalid_record_is_unavailable(store, ledger_path):
    ledger_path.parent.mkdir(parents=True)
    ledger_path.write_text("profiles:\n  - creator_id: creator_a\n    payout_cadence: hourly\n")

    with pytest.raises(StoreUnavailable):
        store.get_profile("creator_a")


def test_two_handles_share_state(ledger_path):
    first = YamlPaymentStore(ledger_path)
    second = YamlPaymentStore(ledger_path)

    first.save_profile(CreatorPaymentProfile(creator_id="creator_a", verified=True))
    second.update_profile("creator_a", {"payout_cadence": "daily"})
    tx = first.create_transaction(completed_transaction("creator_a", 700))
    second.update_transaction_status(tx.id, "refunded", NOW + timedelta(days=1))

    assert first.get_profile("creator_a").payout_cadence == "daily"
    assert first.get_transaction(tx.id).status == "refunded"


def test_failed_serialisation_leaves_no_temp_file(store, ledger_path, seed_creator, monkeypatch):
    seed_creator(store, "creator_a", [1000])

    def failing_dump(*args, **kwargs):
        raise yaml.YAMLError("cannot represent object")

    monkeypatch.setattr("ticketflow.storage.ledger.yaml.dump", failing_dump)

    with pytest.raises(StoreUnavailable):
        store.create_transaction(completed_transaction("creator_a", 500))

    assert [p.name for p in ledger_path.parent.iterdir()] == ["ledger.yaml"]
