from .calculator import (
    commission_rate_for,
    compute_customer_total,
    compute_split,
    format_currency,
)
from .exceptions import (
    ConcurrentPayoutConflict,
    DuplicateRecord,
    InvalidAmount,
    InvalidTransition,
    OrphanedRefund,
    PaymentError,
    PayoutIntegrityError,
    RecordNotFound,
    StoreUnavailable,
    UnknownGateway,
)
from .gateways import GatewayRegistry
from .lifecycle import transition_payout, transition_transaction
from .models import (
    CommissionTier,
    CreatorPaymentProfile,
    CustomerCharge,
    FeeSplit,
    GatewayFeeSchedule,
    Payout,
    PayoutCadence,
    ReconciliationIssue,
    Transaction,
)

__all__ = [
    "compute_split",
    "compute_customer_total",
    "commission_rate_for",
    "format_currency",
    "GatewayRegistry",
    "transition_transaction",
    "transition_payout",
    "PaymentError",
    "InvalidAmount",
    "UnknownGateway",
    "InvalidTransition",
    "RecordNotFound",
    "DuplicateRecord",
    "PayoutIntegrityError",
    "StoreUnavailable",
    "ConcurrentPayoutConflict",
    "OrphanedRefund",
    "CommissionTier",
    "CreatorPaymentProfile",
    "CustomerCharge",
    "FeeSplit",
    "GatewayFeeSchedule",
    "Payout",
    "PayoutCadence",
    "ReconciliationIssue",
    "Transaction",
]
