"""Data models for payout batch runs."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from ticketflow.payments.models import Payout

CreatorOutcomeKind = Literal[
    "processed",
    "not_due",
    "nothing_to_pay",
    "below_minimum",
    "unverified",
    "conflict",
    "budget_exhausted",
]


class CreatorOutcome(BaseModel):
    """What the batch decided for one creator."""

    creator_id: str
    outcome: CreatorOutcomeKind
    payout_id: str | None = None
    amount: int = 0
    transaction_count: int = 0
    due_at: datetime | None = None


class BatchError(BaseModel):
    """A creator whose unit of work raised. creator_id is None for batch-level failures."""

    creator_id: str | None
    error_type: str
    message: str


class BatchResult(BaseModel):
    """Result of a payout batch run."""

    run_at: datetime
    processed_creators: list[CreatorOutcome] = Field(default_factory=list)
    skipped_creators: list[CreatorOutcome] = Field(default_factory=list)
    errors: list[BatchError] = Field(default_factory=list)
    payouts: list[Payout] = Field(default_factory=list)
    timed_out: bool = False

    @property
    def total_amount(self) -> int:
        return sum(payout.amount for payout in self.payouts)

    def summary(self) -> dict[str, object]:
        """Compact counts for logs and HTTP responses."""
        return {
            "run_at": self.run_at.isoformat(),
            "processed": len(self.processed_creators),
            "skipped": len(self.skipped_creators),
            "errors": len(self.errors),
            "payouts_created": len(self.payouts),
            "total_amount": self.total_amount,
            "timed_out": self.timed_out,
        }
