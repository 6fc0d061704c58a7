"""Port interface for the external pricing/invoicing collaborator."""

from abc import ABC, abstractmethod
from decimal import Decimal


class PricingPort(ABC):
    @abstractmethod
    async def estimate(
        self, weight_kg: Decimal, distance_km: Decimal, category: str | None
    ) -> Decimal:
        """Price of a delivery. The engine never computes prices itself."""
        ...
