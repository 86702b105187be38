"""Payment records: fee splits, transactions, payouts and creator profiles."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

CommissionTier = Literal["Free", "Essential", "Pro", "Custom"]
PayoutCadence = Literal["daily", "weekly", "monthly"]
PayoutMethod = Literal["momo", "bank_transfer"]
TransactionStatus = Literal["pending", "completed", "failed", "refunded"]
PayoutStatus = Literal["pending", "processing", "completed", "failed"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def generate_transaction_id() -> str:
    """Generate unique transaction ID with txn_ prefix."""
    return f"txn_{uuid4().hex[:12]}"


def generate_payout_id() -> str:
    """Generate unique payout ID with po_ prefix."""
    return f"po_{uuid4().hex[:12]}"


def generate_issue_id() -> str:
    """Generate unique reconciliation issue ID with rec_ prefix."""
    return f"rec_{uuid4().hex[:12]}"


class GatewayFeeSchedule(BaseModel):
    """Fee charged by a payment gateway for processing one transaction."""

    id: str
    name: str = ""
    enabled: bool = True
    percent_fee: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Percentage of gross, e.g. 1.8 for 1.8%",
    )
    fixed_fee: int = Field(default=0, ge=0, description="Fixed fee in minor units")
    currencies: list[str] = Field(default_factory=lambda: ["GHS"])


class FeeSplit(BaseModel):
    """Itemised breakdown of a gross amount. Frozen once computed."""

    model_config = ConfigDict(frozen=True)

    gross_amount: int
    processing_fee: int = Field(ge=0)
    platform_fee: int = Field(ge=0)
    commission_fee: int = Field(ge=0)
    net_payout: int = Field(ge=0)
    gateway_id: str

    @model_validator(mode="after")
    def check_conservation(self) -> "FeeSplit":
        total = self.processing_fee + self.platform_fee + self.commission_fee + self.net_payout
        if total != self.gross_amount:
            raise ValueError(
                f"Fee split does not reconcile: {total} != gross {self.gross_amount}"
            )
        return self

    @property
    def total_fees(self) -> int:
        return self.processing_fee + self.platform_fee + self.commission_fee


class CustomerCharge(BaseModel):
    """What the buyer pays for one ticket."""

    base_price: int
    processing_fee: int
    platform_fee: int
    total_amount: int
    currency: str
    gateway_id: str
    fees_passed_to_customer: bool


class CreatorPaymentProfile(BaseModel):
    """Per-creator payout configuration consumed by the payout scheduler."""

    creator_id: str
    commission_tier: CommissionTier = "Free"
    custom_commission_rate: Decimal | None = Field(default=None, ge=0, le=1)
    payout_cadence: PayoutCadence = "weekly"
    minimum_payout_amount: int = Field(default=0, ge=0)
    last_payout_at: datetime | None = None
    verified: bool = False
    preferred_gateway: str = "mtn-momo"
    payout_method: PayoutMethod = "momo"
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class Transaction(BaseModel):
    """One ticket sale tracked through settlement."""

    id: str = Field(default_factory=generate_transaction_id)
    creator_id: str
    sale_id: str
    gross_amount: int = Field(gt=0)
    currency: str = "GHS"
    gateway_id: str
    gateway_reference: str | None = None
    split: FeeSplit
    status: TransactionStatus = "pending"
    payout_id: str | None = None
    failure_reason: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    completed_at: datetime | None = None
    failed_at: datetime | None = None
    refunded_at: datetime | None = None

    @model_validator(mode="after")
    def check_split_matches_gross(self) -> "Transaction":
        if self.split.gross_amount != self.gross_amount:
            raise ValueError(
                f"Split gross {self.split.gross_amount} does not match "
                f"transaction gross {self.gross_amount}"
            )
        return self

    @property
    def net_payout(self) -> int:
        return self.split.net_payout


class Payout(BaseModel):
    """A batch of completed transactions disbursed to one creator."""

    id: str = Field(default_factory=generate_payout_id)
    creator_id: str
    amount: int = Field(ge=0)
    currency: str = "GHS"
    payment_method: PayoutMethod = "momo"
    transaction_ids: list[str]
    status: PayoutStatus = "pending"
    scheduled_at: datetime
    processed_at: datetime | None = None
    failure_reason: str | None = None

    @field_validator("transaction_ids")
    @classmethod
    def check_transaction_ids(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("Payout must include at least one transaction")
        if len(set(v)) != len(v):
            raise ValueError("Payout transaction ids must be unique")
        return v


class ReconciliationIssue(BaseModel):
    """Money already allocated to a payout that is no longer backed by a sale."""

    id: str = Field(default_factory=generate_issue_id)
    kind: Literal["orphaned_refund"] = "orphaned_refund"
    creator_id: str
    transaction_id: str
    payout_id: str
    amount: int
    detected_at: datetime
    resolved: bool = False
