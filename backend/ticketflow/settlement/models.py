"""Reporting models for creator balances and payment analytics."""

from datetime import datetime

from pydantic import BaseModel, Field


class CreatorBalance(BaseModel):
    """Where a creator's net earnings currently sit (minor units)."""

    creator_id: str
    unpaid: int = 0
    pending_settlement: int = 0
    in_flight: int = 0
    paid_out: int = 0
    total_earned: int = 0


class GatewayVolume(BaseModel):
    """Per-gateway totals within an analytics period."""

    volume: int = 0
    transactions: int = 0
    fees: int = 0


class PaymentAnalytics(BaseModel):
    """Fee and revenue totals for one creator over a period."""

    creator_id: str
    period_start: datetime
    period_end: datetime
    total_revenue: int = 0
    processing_fees: int = 0
    platform_fees: int = 0
    commission_fees: int = 0
    creator_payouts: int = 0
    refunds: int = 0
    transaction_count: int = 0
    gateway_breakdown: dict[str, GatewayVolume] = Field(default_factory=dict)
