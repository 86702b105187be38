"""Shared fixtures for the payout test suite."""

import sys
from datetime import datetime
from pathlib import Path

import pytest

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from ticketflow.config import SchedulerConfig, Settings, StorageConfig
from ticketflow.payments.models import CreatorPaymentProfile, Transaction
from ticketflow.settlement import SettlementService
from ticketflow.storage import InMemoryPaymentStore

from factories import NOW, completed_transaction


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        data_dir=tmp_path,
        cron_secret="test-cron-secret",
        storage=StorageConfig(backend="memory"),
        scheduler=SchedulerConfig(max_workers=2),
    )


@pytest.fixture
def store() -> InMemoryPaymentStore:
    return InMemoryPaymentStore()


@pytest.fixture
def service(store, settings) -> SettlementService:
    return SettlementService(store, settings)


@pytest.fixture
def seed_creator():
    """Save a verified profile and its completed transactions into a store."""

    def _seed(store, creator_id: str, nets: list[int], **profile_fields) -> list[Transaction]:
        profile_fields.setdefault("verified", True)
        store.save_profile(CreatorPaymentProfile(creator_id=creator_id, **profile_fields))
        return [store.create_transaction(completed_transaction(creator_id, net)) for net in nets]

    return _seed
