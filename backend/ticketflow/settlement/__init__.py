"""Settlement package."""

from .models import CreatorBalance, GatewayVolume, PaymentAnalytics
from .service import SettlementService

__all__ = ["SettlementService", "CreatorBalance", "GatewayVolume", "PaymentAnalytics"]
