"""Record builders shared across test modules."""

from datetime import datetime, timezone
from uuid import uuid4

from ticketflow.payments.models import FeeSplit, Transaction

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


def completed_transaction(creator_id: str, net: int, created_at: datetime = NOW) -> Transaction:
    """A settled sale whose whole gross is the creator's net."""
    split = FeeSplit(
        gross_amount=net,
        processing_fee=0,
        platform_fee=0,
        commission_fee=0,
        net_payout=net,
        gateway_id="mtn-momo",
    )
    return Transaction(
        creator_id=creator_id,
        sale_id=f"sale_{uuid4().hex[:8]}",
        gross_amount=net,
        gateway_id="mtn-momo",
        split=split,
        status="completed",
        created_at=created_at,
        completed_at=created_at,
    )
