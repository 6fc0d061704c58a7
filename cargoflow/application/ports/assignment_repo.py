"""Port interface for delivery assignment persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from cargoflow.domain.entities.assignment import DeliveryAssignment
from cargoflow.domain.value_objects.enums import AssignmentStatus


class AssignmentRepository(ABC):
    @abstractmethod
    async def save(self, assignment: DeliveryAssignment) -> DeliveryAssignment:
        ...

    @abstractmethod
    async def update(
        self, assignment: DeliveryAssignment, expected_version: int
    ) -> DeliveryAssignment:
        """Compare-and-set update; raises ConflictError on a version mismatch."""
        ...

    @abstractmethod
    async def get_by_id(self, assignment_id: str) -> DeliveryAssignment | None:
        ...

    @abstractmethod
    async def get_current_for_cargo(self, cargo_id: str) -> DeliveryAssignment | None:
        """Most recently assigned assignment of the cargo, whatever its status."""
        ...

    @abstractmethod
    async def list_for_cargo(self, cargo_id: str) -> list[DeliveryAssignment]:
        ...

    @abstractmethod
    async def list(
        self,
        status: AssignmentStatus | None = None,
        driver_id: str | None = None,
        vehicle_id: str | None = None,
    ) -> list[DeliveryAssignment]:
        """Filter by *stored* status."""
        ...

    @abstractmethod
    async def get_stale_pending(self, now: datetime) -> list[DeliveryAssignment]:
        """Stored-pending assignments whose deadline is before *now*."""
        ...
