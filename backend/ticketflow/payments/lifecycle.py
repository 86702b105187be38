"""Transaction and payout state machines.

Transactions: pending -> completed | failed; completed -> refunded.
Payouts: pending -> processing | completed | failed; processing -> completed | failed.

Functions here never mutate their input. They return an updated copy, or the
same object when the reported status is the one already recorded.
"""

import logging
from datetime import datetime

from .exceptions import InvalidTransition
from .models import Payout, PayoutStatus, Transaction, TransactionStatus

logger = logging.getLogger(__name__)

TRANSACTION_TRANSITIONS: dict[str, set[str]] = {
    "pending": {"completed", "failed"},
    "completed": {"refunded"},
    "failed": set(),
    "refunded": set(),
}

PAYOUT_TRANSITIONS: dict[str, set[str]] = {
    "pending": {"processing", "completed", "failed"},
    "processing": {"completed", "failed"},
    "completed": set(),
    "failed": set(),
}


def can_transition_transaction(old: str, new: str) -> bool:
    return new in TRANSACTION_TRANSITIONS.get(old, set())


def can_transition_payout(old: str, new: str) -> bool:
    return new in PAYOUT_TRANSITIONS.get(old, set())


def transition_transaction(
    tx: Transaction,
    new_status: TransactionStatus,
    at: datetime,
    *,
    reference: str | None = None,
    reason: str | None = None,
) -> Transaction:
    """Apply a collaborator status report to a transaction.

    Args:
        tx: Current transaction record
        new_status: Reported status
        at: When the collaborator observed the change
        reference: Gateway reference for the settlement, if any
        reason: Failure reason, for failed reports

    Returns:
        Updated transaction copy (or tx itself for a repeated report)

    Raises:
        InvalidTransition: If the lifecycle does not allow the change
    """
    if tx.status == new_status:
        logger.debug(f"Transaction {tx.id} already {new_status}, ignoring repeated report")
        return tx

    if not can_transition_transaction(tx.status, new_status):
        raise InvalidTransition("transaction", tx.id, tx.status, new_status)

    updates: dict[str, object] = {"status": new_status}
    if new_status == "completed":
        updates["completed_at"] = at
        if reference:
            updates["gateway_reference"] = reference
    elif new_status == "failed":
        updates["failed_at"] = at
        updates["failure_reason"] = reason
        if reference:
            updates["gateway_reference"] = reference
    elif new_status == "refunded":
        updates["refunded_at"] = at

    # payout_id is never part of a status update
    return tx.model_copy(update=updates)


def transition_payout(
    payout: Payout,
    new_status: PayoutStatus,
    at: datetime,
    *,
    reason: str | None = None,
) -> Payout:
    """Apply a money-transfer status report to a payout.

    Raises:
        InvalidTransition: If the lifecycle does not allow the change
        ValueError: If a failure is reported without a reason
    """
    if payout.status == new_status:
        logger.debug(f"Payout {payout.id} already {new_status}, ignoring repeated report")
        return payout

    if not can_transition_payout(payout.status, new_status):
        raise InvalidTransition("payout", payout.id, payout.status, new_status)

    updates: dict[str, object] = {"status": new_status}
    if new_status == "failed":
        if not reason or not reason.strip():
            raise ValueError(f"Payout {payout.id} cannot fail without a failure reason")
        updates["failure_reason"] = reason.strip()
    if new_status in ("completed", "failed"):
        updates["processed_at"] = at

    return payout.model_copy(update=updates)
