"""Gateway fee schedule lookup."""

import logging
from typing import Iterable

from .exceptions import UnknownGateway
from .models import GatewayFeeSchedule

logger = logging.getLogger(__name__)


class GatewayRegistry:
    """Resolves gateway ids to their configured fee schedules."""

    def __init__(self, gateways: Iterable[GatewayFeeSchedule]):
        self._gateways = {gateway.id: gateway for gateway in gateways}

    def get_fee_schedule(self, gateway_id: str) -> GatewayFeeSchedule:
        """Return the fee schedule for gateway_id.

        Raises:
            UnknownGateway: If the gateway is not configured or is disabled
        """
        gateway = self._gateways.get(gateway_id)
        if gateway is None:
            raise UnknownGateway(gateway_id)
        if not gateway.enabled:
            logger.warning(f"Gateway {gateway_id} is configured but disabled")
            raise UnknownGateway(gateway_id)
        return gateway

    def enabled(self) -> list[GatewayFeeSchedule]:
        return [gateway for gateway in self._gateways.values() if gateway.enabled]

    def __contains__(self, gateway_id: str) -> bool:
        gateway = self._gateways.get(gateway_id)
        return gateway is not None and gateway.enabled
