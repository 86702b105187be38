"""
Abstract base class for payment stores.

This module defines the interface the settlement service and the payout
scheduler consume. Implementations must honour one contract above all
others: create_payout_atomic() either applies every write (payout record,
payout_id on each transaction, last_payout_at on the profile) or none.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from ticketflow.payments.models import (
    CreatorPaymentProfile,
    Payout,
    PayoutStatus,
    ReconciliationIssue,
    Transaction,
    TransactionStatus,
)


class PaymentStore(ABC):
    """Persistence boundary for profiles, transactions, payouts and issues."""

    # Profiles

    @abstractmethod
    def get_profile(self, creator_id: str) -> CreatorPaymentProfile | None:
        pass

    @abstractmethod
    def list_profiles(self) -> list[CreatorPaymentProfile]:
        pass

    @abstractmethod
    def save_profile(self, profile: CreatorPaymentProfile) -> CreatorPaymentProfile:
        """Create or replace a profile. last_payout_at of a stored profile is kept."""
        pass

    @abstractmethod
    def update_profile(self, creator_id: str, fields: dict[str, Any]) -> CreatorPaymentProfile:
        """
        Raises:
            RecordNotFound: If the profile does not exist
        """
        pass

    # Transactions

    @abstractmethod
    def create_transaction(self, tx: Transaction) -> Transaction:
        """
        Raises:
            DuplicateRecord: If the id or the (creator_id, sale_id) pair exists
        """
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: str) -> Transaction | None:
        pass

    @abstractmethod
    def find_transaction_by_sale(self, creator_id: str, sale_id: str) -> Transaction | None:
        pass

    @abstractmethod
    def list_transactions(self, creator_id: str) -> list[Transaction]:
        pass

    @abstractmethod
    def list_ungrouped_completed_transactions(self, creator_id: str) -> list[Transaction]:
        """Transactions with status completed and no payout_id."""
        pass

    @abstractmethod
    def update_transaction_status(
        self,
        transaction_id: str,
        status: TransactionStatus,
        at: datetime,
        *,
        reference: str | None = None,
        reason: str | None = None,
    ) -> Transaction:
        """
        Raises:
            RecordNotFound: If the transaction does not exist
            InvalidTransition: If the lifecycle forbids the change
        """
        pass

    @abstractmethod
    def refund_transaction(
        self,
        transaction_id: str,
        at: datetime,
    ) -> tuple[Transaction, ReconciliationIssue | None]:
        """Mark a transaction refunded in one commit.

        When the transaction already belongs to a payout, the
        ReconciliationIssue is written in the same commit and returned.
        A repeated refund report returns (tx, None) and writes nothing.

        Raises:
            RecordNotFound: If the transaction does not exist
            InvalidTransition: If the lifecycle forbids the change
        """
        pass

    # Payouts

    @abstractmethod
    def create_payout_atomic(self, payout: Payout, transaction_ids: list[str]) -> Payout:
        """Create a payout and consume its transactions in one commit.

        Sets payout_id on every listed transaction and stamps the creator
        profile's last_payout_at with payout.scheduled_at.

        Raises:
            ConcurrentPayoutConflict: If any transaction is no longer completed and ungrouped
            PayoutIntegrityError: If ids or amount do not match the payout
            RecordNotFound: If the profile or a transaction does not exist
        """
        pass

    @abstractmethod
    def get_payout(self, payout_id: str) -> Payout | None:
        pass

    @abstractmethod
    def list_payouts(self, creator_id: str | None = None) -> list[Payout]:
        pass

    @abstractmethod
    def update_payout_status(
        self,
        payout_id: str,
        status: PayoutStatus,
        at: datetime,
        *,
        reason: str | None = None,
    ) -> Payout:
        pass

    # Reconciliation

    @abstractmethod
    def record_issue(self, issue: ReconciliationIssue) -> ReconciliationIssue:
        pass

    @abstractmethod
    def list_issues(self, unresolved_only: bool = False) -> list[ReconciliationIssue]:
        pass

    @abstractmethod
    def is_available(self) -> bool:
        pass

    def get_info(self) -> dict[str, Any]:
        """Backend type and availability."""
        return {
            "backend_type": self.__class__.__name__,
            "available": self.is_available(),
        }
