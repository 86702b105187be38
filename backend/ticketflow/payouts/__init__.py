"""Payout batching package."""

from .models import BatchError, BatchResult, CreatorOutcome
from .scheduler import (
    PayoutScheduler,
    is_payout_due,
    next_payout_due,
    payout_batch_job,
    run_payout_batch,
)

__all__ = [
    "PayoutScheduler",
    "run_payout_batch",
    "payout_batch_job",
    "next_payout_due",
    "is_payout_due",
    "BatchResult",
    "BatchError",
    "CreatorOutcome",
]
