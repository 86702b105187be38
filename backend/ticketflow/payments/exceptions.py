class PaymentError(Exception):
    """Base exception for settlement and payout errors."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class InvalidAmount(PaymentError):
    """Gross amount is not a positive integer."""

    pass


class UnknownGateway(PaymentError):
    """No fee schedule is configured for the gateway id."""

    def __init__(self, gateway_id: str):
        super().__init__(f"Unknown payment gateway: {gateway_id}", status_code=400)
        self.gateway_id = gateway_id


class InvalidTransition(PaymentError):
    """Status change not allowed by the lifecycle."""

    def __init__(self, kind: str, record_id: str, old: str, new: str):
        super().__init__(
            f"Illegal {kind} transition for {record_id}: {old} -> {new}",
            status_code=409,
        )
        self.record_id = record_id
        self.old_status = old
        self.new_status = new


class RecordNotFound(PaymentError):
    """Profile, transaction or payout does not exist."""

    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} {record_id} not found", status_code=404)
        self.record_id = record_id


class DuplicateRecord(PaymentError):
    """Record with the same key already exists."""

    def __init__(self, message: str):
        super().__init__(message, status_code=409)


class PayoutIntegrityError(PaymentError):
    """Payout amount or transaction set does not reconcile."""

    pass


class StoreUnavailable(PaymentError):
    """Backing store could not be read or written."""

    def __init__(self, message: str):
        super().__init__(message, status_code=503)


class ConcurrentPayoutConflict(PaymentError):
    """A transaction was grouped by another batch after it was fetched."""

    def __init__(self, creator_id: str, transaction_ids: list[str]):
        super().__init__(
            f"Transactions for {creator_id} already grouped: {', '.join(transaction_ids)}",
            status_code=409,
        )
        self.creator_id = creator_id
        self.transaction_ids = transaction_ids


class OrphanedRefund(PaymentError):
    """A transaction was refunded after its net payout was grouped into a payout."""

    def __init__(self, transaction_id: str, payout_id: str, amount: int):
        super().__init__(
            f"Transaction {transaction_id} refunded after inclusion in payout "
            f"{payout_id} ({amount} already allocated to the creator)",
            status_code=409,
        )
        self.transaction_id = transaction_id
        self.payout_id = payout_id
        self.amount = amount
