"""Payout Scheduler: batches each creator's settled sales into payouts."""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from typing import Callable

from dateutil.relativedelta import relativedelta

from ticketflow.config import Settings, get_settings
from ticketflow.payments.calculator import format_currency
from ticketflow.payments.exceptions import ConcurrentPayoutConflict
from ticketflow.payments.models import CreatorPaymentProfile, Payout, as_utc
from ticketflow.storage import PaymentStore, create_store

from .models import BatchError, BatchResult, CreatorOutcome

logger = logging.getLogger(__name__)

CADENCE_INTERVALS: dict[str, timedelta | relativedelta] = {
    "daily": timedelta(days=1),
    "weekly": timedelta(weeks=1),
    "monthly": relativedelta(months=1),
}


def next_payout_due(profile: CreatorPaymentProfile) -> datetime | None:
    """Return when the creator's next payout falls due, or None if never paid out."""
    if profile.last_payout_at is None:
        return None
    return as_utc(profile.last_payout_at) + CADENCE_INTERVALS[profile.payout_cadence]


def is_payout_due(profile: CreatorPaymentProfile, now: datetime) -> bool:
    due_at = next_payout_due(profile)
    return due_at is None or as_utc(now) >= due_at


class PayoutScheduler:
    """
    Runs payout batches over every creator payment profile.

    Each creator is an independent unit of work: it reads its own profile and
    transactions and commits through one atomic store call. A failing creator
    is recorded in BatchResult.errors and never stops the others.
    """

    def __init__(
        self,
        store: PaymentStore,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self._clock = clock

    def run_batch(self, now: datetime) -> BatchResult:
        """Run one payout batch as of `now`.

        Process per creator:
        1. Skip unless the cadence window since last_payout_at has elapsed
        2. Gather completed transactions not yet in a payout
        3. Sum their net payouts
        4. Defer if the sum is below the creator's minimum
        5. Create the payout and consume the transactions atomically
        """
        now = as_utc(now)
        result = BatchResult(run_at=now)
        config = self.settings.scheduler

        try:
            profiles = self.store.list_profiles()
        except Exception as exc:
            logger.error(f"Payout batch could not list profiles: {exc}", exc_info=True)
            result.errors.append(
                BatchError(creator_id=None, error_type=type(exc).__name__, message=str(exc))
            )
            return result

        logger.info(f"Payout batch starting at {now.isoformat()} for {len(profiles)} creators")
        deadline = self._clock() + config.batch_time_budget_seconds

        futures: list[tuple[CreatorPaymentProfile, Future]] = []
        with ThreadPoolExecutor(
            max_workers=config.max_workers,
            thread_name_prefix="payout-batch",
        ) as executor:
            for profile in profiles:
                futures.append(
                    (profile, executor.submit(self._run_unit, profile, now, deadline))
                )

        payouts: dict[str, Payout] = {}
        for profile, future in futures:
            try:
                outcome, payout = future.result()
            except Exception as exc:
                logger.error(
                    f"Payout failed for creator {profile.creator_id}: {exc}",
                    exc_info=True,
                )
                result.errors.append(
                    BatchError(
                        creator_id=profile.creator_id,
                        error_type=type(exc).__name__,
                        message=str(exc),
                    )
                )
                continue

            if outcome.outcome == "processed":
                result.processed_creators.append(outcome)
                if payout is not None:
                    payouts[payout.id] = payout
            else:
                result.skipped_creators.append(outcome)
                if outcome.outcome == "budget_exhausted":
                    result.timed_out = True

        result.payouts = list(payouts.values())

        if result.timed_out:
            logger.warning(
                f"Payout batch time budget of {config.batch_time_budget_seconds}s exhausted; "
                "remaining creators deferred to the next run"
            )
        logger.info(
            f"Payout batch finished. Processed: {len(result.processed_creators)}, "
            f"Skipped: {len(result.skipped_creators)}, Errors: {len(result.errors)}"
        )
        return result

    def _run_unit(
        self,
        profile: CreatorPaymentProfile,
        now: datetime,
        deadline: float,
    ) -> tuple[CreatorOutcome, Payout | None]:
        if self._clock() > deadline:
            return CreatorOutcome(creator_id=profile.creator_id, outcome="budget_exhausted"), None
        return self.process_creator(profile, now)

    def process_creator(
        self,
        profile: CreatorPaymentProfile,
        now: datetime,
    ) -> tuple[CreatorOutcome, Payout | None]:
        """Decide and, when due, create the payout for a single creator."""
        now = as_utc(now)
        creator_id = profile.creator_id

        if self.settings.scheduler.require_verified_profile and not profile.verified:
            logger.debug(f"Skipping payout for {creator_id}: profile not verified")
            return CreatorOutcome(creator_id=creator_id, outcome="unverified"), None

        due_at = next_payout_due(profile)
        if due_at is not None and now < due_at:
            return CreatorOutcome(creator_id=creator_id, outcome="not_due", due_at=due_at), None

        unpaid = self.store.list_ungrouped_completed_transactions(creator_id)
        if not unpaid:
            return CreatorOutcome(creator_id=creator_id, outcome="nothing_to_pay"), None

        amount = sum(tx.split.net_payout for tx in unpaid)
        currency = self.settings.fees.currency

        if amount < profile.minimum_payout_amount:
            logger.info(
                f"Skipping payout for {creator_id}: below minimum of "
                f"{format_currency(profile.minimum_payout_amount, currency)}. "
                f"Current: {format_currency(amount, currency)}"
            )
            return (
                CreatorOutcome(
                    creator_id=creator_id,
                    outcome="below_minimum",
                    amount=amount,
                    transaction_count=len(unpaid),
                ),
                None,
            )

        transaction_ids = [tx.id for tx in unpaid]
        payout = Payout(
            creator_id=creator_id,
            amount=amount,
            currency=currency,
            payment_method=profile.payout_method,
            transaction_ids=transaction_ids,
            scheduled_at=now,
        )

        try:
            payout = self.store.create_payout_atomic(payout, transaction_ids)
        except ConcurrentPayoutConflict as exc:
            logger.warning(f"Payout for {creator_id} already handled by another run: {exc}")
            return CreatorOutcome(creator_id=creator_id, outcome="conflict"), None

        logger.info(
            f"Created payout {payout.id} for creator {creator_id} amounting to "
            f"{format_currency(amount, currency)} ({len(transaction_ids)} transactions)"
        )
        return (
            CreatorOutcome(
                creator_id=creator_id,
                outcome="processed",
                payout_id=payout.id,
                amount=amount,
                transaction_count=len(transaction_ids),
            ),
            payout,
        )


def run_payout_batch(
    now: datetime | None = None,
    settings: Settings | None = None,
    store: PaymentStore | None = None,
) -> BatchResult:
    """Run a payout batch against the configured store."""
    settings = settings or get_settings()
    store = store or create_store(settings)
    now = now or datetime.now(timezone.utc)
    return PayoutScheduler(store, settings).run_batch(now)


def payout_batch_job() -> None:
    """Scheduler job wrapper for the payout batch."""
    try:
        result = run_payout_batch()
        logger.info(
            "Payout batch: %d payouts created, %d skipped, %d errors",
            len(result.payouts),
            len(result.skipped_creators),
            len(result.errors),
        )
    except Exception as exc:
        logger.error("Payout batch run failed: %s", exc, exc_info=True)
