"""FastAPI server exposing fee quotes, the payout batch trigger and collaborator callbacks."""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ticketflow import __version__
from ticketflow.config import Settings, get_settings
from ticketflow.payments.exceptions import PaymentError
from ticketflow.payments.models import CommissionTier, PayoutStatus, TransactionStatus
from ticketflow.payouts import PayoutScheduler
from ticketflow.settlement import SettlementService
from ticketflow.storage import PaymentStore, create_store

logger = logging.getLogger(__name__)


class CalculateRequest(BaseModel):
    amount: int
    gateway_id: str
    commission_tier: CommissionTier = "Free"


class CustomerTotalRequest(BaseModel):
    amount: int
    gateway_id: str
    pass_fees_to_customer: bool | None = None


class BatchTriggerRequest(BaseModel):
    now: datetime | None = None


class TransactionStatusRequest(BaseModel):
    status: TransactionStatus
    reference: str | None = None
    reason: str | None = None
    at: datetime | None = None


class PayoutStatusRequest(BaseModel):
    status: PayoutStatus
    reason: str | None = None
    at: datetime | None = None


def create_app(settings: Settings | None = None, store: PaymentStore | None = None) -> FastAPI:
    """Build the API around one store and settlement service."""
    settings = settings or get_settings()
    store = store or create_store(settings)
    service = SettlementService(store, settings)

    app = FastAPI(title="TicketFlow Payouts API", version=__version__)
    app.state.settings = settings
    app.state.store = store
    app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(PaymentError)
    async def handle_payment_error(request: Request, exc: PaymentError) -> JSONResponse:
        logger.warning(f"{request.method} {request.url.path} -> {type(exc).__name__}: {exc}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": type(exc).__name__, "detail": str(exc)},
        )

    @app.exception_handler(ValueError)
    async def handle_value_error(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": "ValueError", "detail": str(exc)})

    @app.post("/api/payments/calculate")
    async def calculate_split(body: CalculateRequest) -> dict[str, Any]:
        """Return the fee split for a prospective sale."""
        split = service.quote_split(body.amount, body.gateway_id, body.commission_tier)
        return {"success": True, **split.model_dump(mode="json")}

    @app.post("/api/payments/customer-total")
    async def customer_total(body: CustomerTotalRequest) -> dict[str, Any]:
        """Return what the buyer is charged."""
        charge = service.quote_customer_total(
            body.amount, body.gateway_id, body.pass_fees_to_customer
        )
        return {"success": True, **charge.model_dump(mode="json")}

    @app.post("/api/cron/process-payouts")
    def process_payouts(
        body: BatchTriggerRequest | None = None,
        authorization: str | None = Header(default=None),
    ) -> dict[str, Any]:
        """Run the payout batch on demand. Requires the cron bearer secret."""
        expected = f"Bearer {settings.cron_secret}"
        if not settings.cron_secret or not authorization or not secrets.compare_digest(
            authorization, expected
        ):
            raise HTTPException(status_code=401, detail="Unauthorized")

        now = body.now if body and body.now else datetime.now(timezone.utc)
        result = PayoutScheduler(store, settings).run_batch(now)
        return {
            "success": True,
            **result.summary(),
            "payout_ids": [payout.id for payout in result.payouts],
            "errors": [error.model_dump() for error in result.errors],
        }

    @app.post("/api/transactions/{transaction_id}/status")
    def report_transaction_status(
        transaction_id: str,
        body: TransactionStatusRequest,
    ) -> dict[str, Any]:
        """Money-transfer collaborator callback for a sale."""
        tx = service.update_transaction_status(
            transaction_id,
            body.status,
            body.at,
            reference=body.reference,
            reason=body.reason,
        )
        return tx.model_dump(mode="json")

    @app.post("/api/payouts/{payout_id}/status")
    def report_payout_status(payout_id: str, body: PayoutStatusRequest) -> dict[str, Any]:
        """Money-transfer collaborator callback for a payout."""
        payout = service.update_payout_status(payout_id, body.status, body.at, reason=body.reason)
        return payout.model_dump(mode="json")

    @app.get("/api/creators/{creator_id}/balance")
    def creator_balance(creator_id: str) -> dict[str, Any]:
        service.require_profile(creator_id)
        return service.get_creator_balance(creator_id).model_dump()

    @app.get("/api/creators/{creator_id}/analytics")
    def creator_analytics(
        creator_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> dict[str, Any]:
        """Fee and revenue totals for a period. Defaults to the last 30 days."""
        service.require_profile(creator_id)
        end = end or datetime.now(timezone.utc)
        start = start or end - timedelta(days=30)
        return service.get_creator_analytics(creator_id, start, end).model_dump(mode="json")

    @app.get("/api/reconciliation/issues")
    def reconciliation_issues(unresolved_only: bool = True) -> list[dict[str, Any]]:
        return [issue.model_dump(mode="json") for issue in store.list_issues(unresolved_only)]

    return app
