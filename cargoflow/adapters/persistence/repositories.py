"""SQLAlchemy repository implementations."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from cargoflow.adapters.persistence.models import (
    CargoEventModel,
    CargoModel,
    DeliveryAssignmentModel,
)
from cargoflow.application.ports.assignment_repo import AssignmentRepository
from cargoflow.application.ports.cargo_repo import CargoRepository
from cargoflow.application.ports.event_publisher import EventPublisher
from cargoflow.domain.entities.assignment import DeliveryAssignment
from cargoflow.domain.entities.cargo import Cargo
from cargoflow.domain.entities.events import DomainEvent
from cargoflow.domain.errors import ConflictError
from cargoflow.domain.value_objects.enums import AssignmentStatus, CargoPriority, CargoStatus

# ─── Mappers ─────────────────────────────────────────────────────────


def _cargo_to_domain(m: CargoModel) -> Cargo:
    return Cargo(
        id=m.id,
        client_id=m.client_id,
        weight_kg=m.weight_kg,
        distance_km=m.distance_km,
        status=CargoStatus(m.status),
        priority=CargoPriority(m.priority),
        category=m.category,
        driver_id=m.driver_id,
        vehicle_id=m.vehicle_id,
        client_phone=m.client_phone,
        driver_phone=m.driver_phone,
        version=m.version,
        updated_at=m.updated_at,
    )


def _cargo_values(cargo: Cargo) -> dict:
    return {
        "client_id": cargo.client_id,
        "weight_kg": cargo.weight_kg,
        "distance_km": cargo.distance_km,
        "status": cargo.status.value,
        "priority": cargo.priority.value,
        "category": cargo.category,
        "driver_id": cargo.driver_id,
        "vehicle_id": cargo.vehicle_id,
        "client_phone": cargo.client_phone,
        "driver_phone": cargo.driver_phone,
        "version": cargo.version,
        "updated_at": cargo.updated_at,
    }


def _assignment_to_domain(m: DeliveryAssignmentModel) -> DeliveryAssignment:
    return DeliveryAssignment(
        id=m.id,
        cargo_id=m.cargo_id,
        driver_id=m.driver_id,
        vehicle_id=m.vehicle_id,
        assigned_at=m.assigned_at,
        expires_at=m.expires_at,
        assignment_status=AssignmentStatus(m.assignment_status),
        driver_responded_at=m.driver_responded_at,
        rejection_reason=m.rejection_reason,
        notes=m.notes,
        created_by=m.created_by,
        version=m.version,
    )


def _assignment_values(a: DeliveryAssignment) -> dict:
    return {
        "cargo_id": a.cargo_id,
        "driver_id": a.driver_id,
        "vehicle_id": a.vehicle_id,
        "assignment_status": a.assignment_status.value,
        "assigned_at": a.assigned_at,
        "expires_at": a.expires_at,
        "driver_responded_at": a.driver_responded_at,
        "rejection_reason": a.rejection_reason,
        "notes": a.notes,
        "created_by": a.created_by,
        "version": a.version,
    }


# ─── Repositories ────────────────────────────────────────────────────


class SqlCargoRepository(CargoRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def save(self, cargo: Cargo) -> Cargo:
        self._s.add(CargoModel(id=cargo.id, **_cargo_values(cargo)))
        await self._s.flush()
        return cargo

    async def get_by_id(self, cargo_id: str) -> Cargo | None:
        m = await self._s.get(CargoModel, cargo_id, populate_existing=True)
        return _cargo_to_domain(m) if m else None

    async def update(self, cargo: Cargo, expected_version: int) -> Cargo:
        result = await self._s.execute(
            update(CargoModel)
            .where(CargoModel.id == cargo.id, CargoModel.version == expected_version)
            .values(**_cargo_values(cargo))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ConflictError(
                f"Cargo {cargo.id} was modified concurrently (expected version {expected_version})",
                {"cargo_id": cargo.id},
            )
        await self._s.flush()
        return cargo

    async def list_by_client(self, client_id: str) -> list[Cargo]:
        result = await self._s.execute(
            select(CargoModel)
            .where(CargoModel.client_id == client_id)
            .order_by(CargoModel.created_at)
        )
        return [_cargo_to_domain(m) for m in result.scalars()]


class SqlAssignmentRepository(AssignmentRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def save(self, assignment: DeliveryAssignment) -> DeliveryAssignment:
        self._s.add(DeliveryAssignmentModel(id=assignment.id, **_assignment_values(assignment)))
        try:
            await self._s.flush()
        except IntegrityError as e:
            raise ConflictError(
                f"Cargo {assignment.cargo_id} already has an active assignment",
                {"cargo_id": assignment.cargo_id},
            ) from e
        return assignment

    async def update(
        self, assignment: DeliveryAssignment, expected_version: int
    ) -> DeliveryAssignment:
        result = await self._s.execute(
            update(DeliveryAssignmentModel)
            .where(
                DeliveryAssignmentModel.id == assignment.id,
                DeliveryAssignmentModel.version == expected_version,
            )
            .values(**_assignment_values(assignment))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ConflictError(
                f"Assignment {assignment.id} was modified concurrently "
                f"(expected version {expected_version})",
                {"assignment_id": assignment.id},
            )
        await self._s.flush()
        return assignment

    async def get_by_id(self, assignment_id: str) -> DeliveryAssignment | None:
        m = await self._s.get(DeliveryAssignmentModel, assignment_id, populate_existing=True)
        return _assignment_to_domain(m) if m else None

    async def get_current_for_cargo(self, cargo_id: str) -> DeliveryAssignment | None:
        result = await self._s.execute(
            select(DeliveryAssignmentModel)
            .where(DeliveryAssignmentModel.cargo_id == cargo_id)
            .order_by(DeliveryAssignmentModel.assigned_at.desc())
            .limit(1)
        )
        m = result.scalar_one_or_none()
        return _assignment_to_domain(m) if m else None

    async def list_for_cargo(self, cargo_id: str) -> list[DeliveryAssignment]:
        result = await self._s.execute(
            select(DeliveryAssignmentModel)
            .where(DeliveryAssignmentModel.cargo_id == cargo_id)
            .order_by(DeliveryAssignmentModel.assigned_at)
        )
        return [_assignment_to_domain(m) for m in result.scalars()]

    async def list(
        self,
        status: AssignmentStatus | None = None,
        driver_id: str | None = None,
        vehicle_id: str | None = None,
    ) -> list[DeliveryAssignment]:
        stmt = select(DeliveryAssignmentModel)
        if status is not None:
            stmt = stmt.where(DeliveryAssignmentModel.assignment_status == status.value)
        if driver_id is not None:
            stmt = stmt.where(DeliveryAssignmentModel.driver_id == driver_id)
        if vehicle_id is not None:
            stmt = stmt.where(DeliveryAssignmentModel.vehicle_id == vehicle_id)
        result = await self._s.execute(stmt.order_by(DeliveryAssignmentModel.assigned_at))
        return [_assignment_to_domain(m) for m in result.scalars()]

    async def get_stale_pending(self, now: datetime) -> list[DeliveryAssignment]:
        result = await self._s.execute(
            select(DeliveryAssignmentModel)
            .where(
                DeliveryAssignmentModel.assignment_status == AssignmentStatus.PENDING.value,
                DeliveryAssignmentModel.expires_at < now,
            )
            .order_by(DeliveryAssignmentModel.expires_at)
        )
        return [_assignment_to_domain(m) for m in result.scalars()]


class SqlEventPublisher(EventPublisher):
    """Writes events to the ``cargo_events`` outbox; a relay dispatches them later."""

    def __init__(self, session: AsyncSession):
        self._s = session

    async def publish(self, events: Sequence[DomainEvent]) -> None:
        for event in events:
            self._s.add(
                CargoEventModel(
                    cargo_id=event.cargo_id,
                    event_type=event.name,
                    payload=event.to_payload(),
                    occurred_at=event.occurred_at,
                )
            )
        await self._s.flush()
