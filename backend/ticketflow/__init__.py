"""TicketFlow Payouts: fee splits, settlement tracking and creator payout batching."""

__version__ = "0.1.0"
__author__ = "TicketFlow Team"

__all__ = ["__version__", "__author__"]
