"""In-process payment store.

Every operation runs under one re-entrant lock and validates all of its
writes before applying any of them, so readers never observe a
half-applied payout. Subclasses persist the same state elsewhere by
overriding _load() and _commit().
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Any

from ticketflow.payments.exceptions import (
    ConcurrentPayoutConflict,
    DuplicateRecord,
    PayoutIntegrityError,
    RecordNotFound,
)
from ticketflow.payments.lifecycle import transition_payout, transition_transaction
from ticketflow.payments.models import (
    CreatorPaymentProfile,
    Payout,
    PayoutStatus,
    ReconciliationIssue,
    Transaction,
    TransactionStatus,
)

from .base import PaymentStore

logger = logging.getLogger(__name__)

# Fields owned by the scheduler or fixed at creation
_PROTECTED_PROFILE_FIELDS = {"creator_id", "last_payout_at", "created_at"}


class InMemoryPaymentStore(PaymentStore):
    """Dictionary-backed store guarded by a lock."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._profiles: dict[str, CreatorPaymentProfile] = {}
        self._transactions: dict[str, Transaction] = {}
        self._payouts: dict[str, Payout] = {}
        self._issues: dict[str, ReconciliationIssue] = {}

    # Persistence hooks

    def _load(self) -> None:
        """Refresh state from the backing medium. No-op in memory."""

    def _commit(self) -> None:
        """Persist state to the backing medium. No-op in memory."""

    # Profiles

    def get_profile(self, creator_id: str) -> CreatorPaymentProfile | None:
        with self._lock:
            self._load()
            return self._profiles.get(creator_id)

    def list_profiles(self) -> list[CreatorPaymentProfile]:
        with self._lock:
            self._load()
            return sorted(self._profiles.values(), key=lambda p: p.creator_id)

    def save_profile(self, profile: CreatorPaymentProfile) -> CreatorPaymentProfile:
        with self._lock:
            self._load()
            existing = self._profiles.get(profile.creator_id)
            if existing is not None:
                profile = profile.model_copy(
                    update={
                        "last_payout_at": existing.last_payout_at,
                        "created_at": existing.created_at,
                        "updated_at": datetime.now(timezone.utc),
                    }
                )
            self._profiles[profile.creator_id] = profile
            self._commit()
            return profile

    def update_profile(self, creator_id: str, fields: dict[str, Any]) -> CreatorPaymentProfile:
        with self._lock:
            self._load()
            profile = self._profiles.get(creator_id)
            if profile is None:
                raise RecordNotFound("Payment profile", creator_id)

            protected = _PROTECTED_PROFILE_FIELDS & set(fields)
            if protected:
                raise ValueError(f"Profile fields cannot be updated directly: {sorted(protected)}")

            data = profile.model_dump()
            data.update(fields)
            data["updated_at"] = datetime.now(timezone.utc)
            updated = CreatorPaymentProfile.model_validate(data)

            self._profiles[creator_id] = updated
            self._commit()
            return updated

    # Transactions

    def create_transaction(self, tx: Transaction) -> Transaction:
        with self._lock:
            self._load()
            if tx.id in self._transactions:
                raise DuplicateRecord(f"Transaction {tx.id} already exists")
            if self._find_by_sale(tx.creator_id, tx.sale_id) is not None:
                raise DuplicateRecord(
                    f"Sale {tx.sale_id} already recorded for creator {tx.creator_id}"
                )
            self._transactions[tx.id] = tx
            self._commit()
            return tx

    def get_transaction(self, transaction_id: str) -> Transaction | None:
        with self._lock:
            self._load()
            return self._transactions.get(transaction_id)

    def find_transaction_by_sale(self, creator_id: str, sale_id: str) -> Transaction | None:
        with self._lock:
            self._load()
            return self._find_by_sale(creator_id, sale_id)

    def _find_by_sale(self, creator_id: str, sale_id: str) -> Transaction | None:
        for tx in self._transactions.values():
            if tx.creator_id == creator_id and tx.sale_id == sale_id:
                return tx
        return None

    def list_transactions(self, creator_id: str) -> list[Transaction]:
        with self._lock:
            self._load()
            return sorted(
                (tx for tx in self._transactions.values() if tx.creator_id == creator_id),
                key=lambda tx: tx.created_at,
            )

    def list_ungrouped_completed_transactions(self, creator_id: str) -> list[Transaction]:
        with self._lock:
            self._load()
            return [
                tx
                for tx in self._transactions.values()
                if tx.creator_id == creator_id
                and tx.status == "completed"
                and tx.payout_id is None
            ]

    def update_transaction_status(
        self,
        transaction_id: str,
        status: TransactionStatus,
        at: datetime,
        *,
        reference: str | None = None,
        reason: str | None = None,
    ) -> Transaction:
        with self._lock:
            self._load()
            tx = self._transactions.get(transaction_id)
            if tx is None:
                raise RecordNotFound("Transaction", transaction_id)

            updated = transition_transaction(tx, status, at, reference=reference, reason=reason)
            if updated is tx:
                return tx

            self._transactions[transaction_id] = updated
            self._commit()
            return updated

    def refund_transaction(
        self,
        transaction_id: str,
        at: datetime,
    ) -> tuple[Transaction, ReconciliationIssue | None]:
        with self._lock:
            self._load()
            tx = self._transactions.get(transaction_id)
            if tx is None:
                raise RecordNotFound("Transaction", transaction_id)

            updated = transition_transaction(tx, "refunded", at)
            if updated is tx:
                return tx, None

            issue = None
            if updated.payout_id is not None:
                issue = ReconciliationIssue(
                    creator_id=updated.creator_id,
                    transaction_id=updated.id,
                    payout_id=updated.payout_id,
                    amount=updated.split.net_payout,
                    detected_at=at,
                )
                self._issues[issue.id] = issue

            self._transactions[transaction_id] = updated
            self._commit()
            return updated, issue

    # Payouts

    def create_payout_atomic(self, payout: Payout, transaction_ids: list[str]) -> Payout:
        with self._lock:
            self._load()

            profile = self._profiles.get(payout.creator_id)
            if profile is None:
                raise RecordNotFound("Payment profile", payout.creator_id)
            if payout.id in self._payouts:
                raise DuplicateRecord(f"Payout {payout.id} already exists")
            if sorted(set(transaction_ids)) != sorted(payout.transaction_ids):
                raise PayoutIntegrityError(
                    f"Payout {payout.id} transaction ids do not match the batch"
                )

            batch: list[Transaction] = []
            conflicts: list[str] = []
            for transaction_id in payout.transaction_ids:
                tx = self._transactions.get(transaction_id)
                if tx is None:
                    raise RecordNotFound("Transaction", transaction_id)
                if tx.creator_id != payout.creator_id:
                    raise PayoutIntegrityError(
                        f"Transaction {transaction_id} belongs to {tx.creator_id}, "
                        f"not {payout.creator_id}"
                    )
                if tx.status != "completed" or tx.payout_id is not None:
                    conflicts.append(transaction_id)
                batch.append(tx)

            if conflicts:
                raise ConcurrentPayoutConflict(payout.creator_id, conflicts)

            total = sum(tx.split.net_payout for tx in batch)
            if total != payout.amount:
                raise PayoutIntegrityError(
                    f"Payout {payout.id} amount {payout.amount} != transaction total {total}"
                )

            # All checks passed; apply every write together
            for tx in batch:
                self._transactions[tx.id] = tx.model_copy(update={"payout_id": payout.id})
            self._payouts[payout.id] = payout
            self._profiles[profile.creator_id] = profile.model_copy(
                update={"last_payout_at": payout.scheduled_at}
            )
            self._commit()

            logger.debug(
                f"Committed payout {payout.id} for {payout.creator_id} "
                f"({len(batch)} transactions)"
            )
            return payout

    def get_payout(self, payout_id: str) -> Payout | None:
        with self._lock:
            self._load()
            return self._payouts.get(payout_id)

    def list_payouts(self, creator_id: str | None = None) -> list[Payout]:
        with self._lock:
            self._load()
            payouts = [
                payout
                for payout in self._payouts.values()
                if creator_id is None or payout.creator_id == creator_id
            ]
            return sorted(payouts, key=lambda p: p.scheduled_at)

    def update_payout_status(
        self,
        payout_id: str,
        status: PayoutStatus,
        at: datetime,
        *,
        reason: str | None = None,
    ) -> Payout:
        with self._lock:
            self._load()
            payout = self._payouts.get(payout_id)
            if payout is None:
                raise RecordNotFound("Payout", payout_id)

            updated = transition_payout(payout, status, at, reason=reason)
            if updated is payout:
                return payout

            self._payouts[payout_id] = updated
            self._commit()
            return updated

    # Reconciliation

    def record_issue(self, issue: ReconciliationIssue) -> ReconciliationIssue:
        with self._lock:
            self._load()
            self._issues[issue.id] = issue
            self._commit()
            return issue

    def list_issues(self, unresolved_only: bool = False) -> list[ReconciliationIssue]:
        with self._lock:
            self._load()
            issues = [
                issue
                for issue in self._issues.values()
                if not (unresolved_only and issue.resolved)
            ]
            return sorted(issues, key=lambda i: i.detected_at)

    def is_available(self) -> bool:
        return True
