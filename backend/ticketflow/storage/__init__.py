"""Storage layer for TicketFlow payouts.

This package provides:
- PaymentStore: the interface the settlement service and payout scheduler consume
- InMemoryPaymentStore: lock-guarded in-process store
- YamlPaymentStore: ledger persisted to data/ledger.yaml with atomic writes
- create_store: build the store selected in configuration
"""

from ticketflow.config import Settings, get_settings

from .base import PaymentStore
from .ledger import YamlPaymentStore
from .memory import InMemoryPaymentStore


def create_store(settings: Settings | None = None) -> PaymentStore:
    """Build the payment store configured under storage.backend."""
    settings = settings or get_settings()
    if settings.storage.backend == "memory":
        return InMemoryPaymentStore()
    return YamlPaymentStore(settings.ledger_path)


__all__ = [
    "PaymentStore",
    "InMemoryPaymentStore",
    "YamlPaymentStore",
    "create_store",
]
