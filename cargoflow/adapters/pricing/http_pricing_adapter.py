"""HTTP pricing adapter — implements PricingPort against an external service."""

from __future__ import annotations

import logging
from decimal import Decimal

import httpx

from cargoflow.application.ports.pricing_port import PricingPort
from cargoflow.config import settings

logger = logging.getLogger(__name__)


class HttpPricingAdapter(PricingPort):
    """POSTs the shipment figures and reads back ``{"price": "..."}``."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = base_url or settings.pricing_url
        self._timeout = timeout if timeout is not None else settings.pricing_timeout_seconds
        self._transport = transport

    async def estimate(
        self, weight_kg: Decimal, distance_km: Decimal, category: str | None
    ) -> Decimal:
        async with httpx.AsyncClient(
            base_url=self._base_url, timeout=self._timeout, transport=self._transport
        ) as client:
            response = await client.post(
                "/estimate",
                json={
                    "weight_kg": str(weight_kg),
                    "distance_km": str(distance_km),
                    "category": category,
                },
            )
            response.raise_for_status()
            price = Decimal(str(response.json()["price"]))
        logger.info(
            "Pricing %s kg over %s km (%s) → %s", weight_kg, distance_km, category, price
        )
        return price
