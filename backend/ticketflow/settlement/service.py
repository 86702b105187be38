"""Settlement service: records sales and applies collaborator status reports."""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from ticketflow.config import Settings, get_settings
from ticketflow.payments.calculator import (
    commission_rate_for,
    compute_customer_total,
    compute_split,
)
from ticketflow.payments.exceptions import OrphanedRefund, RecordNotFound
from ticketflow.payments.gateways import GatewayRegistry
from ticketflow.payments.models import (
    CommissionTier,
    CreatorPaymentProfile,
    CustomerCharge,
    FeeSplit,
    Payout,
    PayoutStatus,
    Transaction,
    TransactionStatus,
    as_utc,
)
from ticketflow.storage import PaymentStore

from .models import CreatorBalance, GatewayVolume, PaymentAnalytics

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SettlementService:
    """
    Entry point for everything that happens to a sale after checkout.

    Sales become pending transactions with a frozen fee split. The
    money-transfer collaborator then reports settlement, failure and
    refunds, plus payout progress, through the methods below.
    """

    def __init__(
        self,
        store: PaymentStore,
        settings: Settings | None = None,
        gateways: GatewayRegistry | None = None,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.gateways = gateways or GatewayRegistry(self.settings.gateways)

    # Profiles

    def setup_profile(self, creator_id: str, **fields: Any) -> CreatorPaymentProfile:
        """Create or replace a creator's payment profile."""
        profile = CreatorPaymentProfile(creator_id=creator_id, **fields)
        saved = self.store.save_profile(profile)
        logger.info(f"Saved payment profile for {creator_id} ({saved.payout_cadence})")
        return saved

    def require_profile(self, creator_id: str) -> CreatorPaymentProfile:
        profile = self.store.get_profile(creator_id)
        if profile is None:
            raise RecordNotFound("Payment profile", creator_id)
        return profile

    # Quotes

    def commission_rate(self, tier: CommissionTier, custom_rate: Decimal | None = None) -> Decimal:
        return commission_rate_for(tier, self.settings.fees.commission_rates, custom_rate)

    def quote_split(
        self,
        gross_amount: int,
        gateway_id: str,
        tier: CommissionTier = "Free",
        custom_rate: Decimal | None = None,
    ) -> FeeSplit:
        """Fee split for a prospective sale. Raises UnknownGateway or InvalidAmount."""
        gateway = self.gateways.get_fee_schedule(gateway_id)
        return compute_split(
            gross_amount,
            gateway,
            self.commission_rate(tier, custom_rate),
            self.settings.fees.platform_fee_rate,
        )

    def quote_customer_total(
        self,
        base_price: int,
        gateway_id: str,
        pass_fees_to_customer: bool | None = None,
    ) -> CustomerCharge:
        gateway = self.gateways.get_fee_schedule(gateway_id)
        if pass_fees_to_customer is None:
            pass_fees_to_customer = self.settings.fees.pass_fees_to_customer
        return compute_customer_total(
            base_price,
            gateway,
            self.settings.fees.platform_fee_rate,
            pass_fees_to_customer=pass_fees_to_customer,
            currency=self.settings.fees.currency,
        )

    # Transactions

    def record_sale(
        self,
        creator_id: str,
        sale_id: str,
        gross_amount: int,
        gateway_id: str | None = None,
        at: datetime | None = None,
    ) -> Transaction:
        """Create a pending transaction for a sale with its split frozen.

        Raises:
            RecordNotFound: If the creator has no payment profile
            UnknownGateway: If the gateway has no fee schedule
            InvalidAmount: If gross_amount is not a positive integer
            DuplicateRecord: If the sale was already recorded
        """
        profile = self.require_profile(creator_id)
        gateway_id = gateway_id or profile.preferred_gateway
        split = self.quote_split(
            gross_amount,
            gateway_id,
            profile.commission_tier,
            profile.custom_commission_rate,
        )

        tx = Transaction(
            creator_id=creator_id,
            sale_id=sale_id,
            gross_amount=gross_amount,
            currency=self.settings.fees.currency,
            gateway_id=gateway_id,
            split=split,
            created_at=at or _now(),
        )
        tx = self.store.create_transaction(tx)
        logger.info(
            f"Recorded sale {sale_id} for {creator_id} as {tx.id}: "
            f"gross={split.gross_amount} net={split.net_payout}"
        )
        return tx

    def update_transaction_status(
        self,
        transaction_id: str,
        status: TransactionStatus,
        at: datetime | None = None,
        *,
        reference: str | None = None,
        reason: str | None = None,
    ) -> Transaction:
        """Apply a collaborator report. Refunds go through orphan detection."""
        if status == "refunded":
            return self.refund_transaction(transaction_id, at)
        return self.store.update_transaction_status(
            transaction_id, status, at or _now(), reference=reference, reason=reason
        )

    def confirm_transaction(
        self,
        transaction_id: str,
        at: datetime | None = None,
        reference: str | None = None,
    ) -> Transaction:
        tx = self.store.update_transaction_status(
            transaction_id, "completed", at or _now(), reference=reference
        )
        logger.info(f"Transaction {transaction_id} settled")
        return tx

    def fail_transaction(
        self,
        transaction_id: str,
        at: datetime | None = None,
        reason: str | None = None,
        reference: str | None = None,
    ) -> Transaction:
        tx = self.store.update_transaction_status(
            transaction_id, "failed", at or _now(), reference=reference, reason=reason
        )
        logger.info(f"Transaction {transaction_id} failed: {reason or 'no reason given'}")
        return tx

    def refund_transaction(self, transaction_id: str, at: datetime | None = None) -> Transaction:
        """Mark a completed transaction refunded.

        Raises:
            OrphanedRefund: If the transaction was already grouped into a payout.
                The refund and the ReconciliationIssue are committed together.
        """
        tx, issue = self.store.refund_transaction(transaction_id, at or _now())

        if issue is not None:
            logger.error(
                f"ORPHANED REFUND: transaction {tx.id} refunded after inclusion in payout "
                f"{tx.payout_id}; {tx.split.net_payout} no longer backed by a sale "
                f"(issue {issue.id})"
            )
            raise OrphanedRefund(tx.id, tx.payout_id, tx.split.net_payout)

        logger.info(f"Transaction {transaction_id} refunded")
        return tx

    # Payouts

    def update_payout_status(
        self,
        payout_id: str,
        status: PayoutStatus,
        at: datetime | None = None,
        *,
        reason: str | None = None,
    ) -> Payout:
        payout = self.store.update_payout_status(payout_id, status, at or _now(), reason=reason)
        if payout.status == "failed":
            logger.warning(f"Payout {payout_id} failed: {payout.failure_reason}")
        else:
            logger.info(f"Payout {payout_id} is {payout.status}")
        return payout

    def mark_payout_processing(self, payout_id: str, at: datetime | None = None) -> Payout:
        return self.update_payout_status(payout_id, "processing", at)

    def mark_payout_completed(self, payout_id: str, at: datetime | None = None) -> Payout:
        return self.update_payout_status(payout_id, "completed", at)

    def mark_payout_failed(
        self,
        payout_id: str,
        reason: str,
        at: datetime | None = None,
    ) -> Payout:
        return self.update_payout_status(payout_id, "failed", at, reason=reason)

    # Reporting

    def get_creator_balance(self, creator_id: str) -> CreatorBalance:
        """Split a creator's net earnings by where the money currently is."""
        balance = CreatorBalance(creator_id=creator_id)

        for tx in self.store.list_transactions(creator_id):
            net = tx.split.net_payout
            if tx.status == "pending":
                balance.pending_settlement += net
            elif tx.status == "completed":
                balance.total_earned += net
                if tx.payout_id is None:
                    balance.unpaid += net

        for payout in self.store.list_payouts(creator_id):
            if payout.status in ("pending", "processing"):
                balance.in_flight += payout.amount
            elif payout.status == "completed":
                balance.paid_out += payout.amount

        return balance

    def get_creator_analytics(
        self,
        creator_id: str,
        start: datetime,
        end: datetime,
    ) -> PaymentAnalytics:
        """Totals for completed sales created within [start, end]; refunds counted separately."""
        start, end = as_utc(start), as_utc(end)
        analytics = PaymentAnalytics(creator_id=creator_id, period_start=start, period_end=end)

        for tx in self.store.list_transactions(creator_id):
            if not (start <= as_utc(tx.created_at) <= end):
                continue
            split = tx.split

            if tx.status == "refunded":
                analytics.refunds += split.gross_amount
                continue
            if tx.status != "completed":
                continue

            analytics.total_revenue += split.gross_amount
            analytics.processing_fees += split.processing_fee
            analytics.platform_fees += split.platform_fee
            analytics.commission_fees += split.commission_fee
            analytics.creator_payouts += split.net_payout
            analytics.transaction_count += 1

            gateway = analytics.gateway_breakdown.setdefault(tx.gateway_id, GatewayVolume())
            gateway.volume += split.gross_amount
            gateway.transactions += 1
            gateway.fees += split.processing_fee

        return analytics
