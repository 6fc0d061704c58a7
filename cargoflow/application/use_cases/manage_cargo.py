"""Cargo creation and read-side use cases."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation

from cargoflow.application.errors import NotFoundError
from cargoflow.application.ports.assignment_repo import AssignmentRepository
from cargoflow.application.ports.cargo_repo import CargoRepository
from cargoflow.domain.entities.actor import Actor
from cargoflow.domain.entities.assignment import DeliveryAssignment
from cargoflow.domain.entities.cargo import Cargo
from cargoflow.domain.errors import ForbiddenError, ValidationError
from cargoflow.domain.policies.action_resolver import Action, resolve_actions
from cargoflow.domain.value_objects.clock import utc_now
from cargoflow.domain.value_objects.enums import AssignmentStatus, CargoPriority, Role

logger = logging.getLogger(__name__)


def _to_decimal(value, field_name: str) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field_name} must be a decimal", {"field": field_name}) from None


@dataclass
class CargoView:
    """A cargo as one actor sees it right now."""

    cargo: Cargo
    assignment: DeliveryAssignment | None
    assignment_status: AssignmentStatus | None
    actions: list[Action]


class CreateCargoUseCase:
    """Clients create their own cargo; admins create on behalf of a client."""

    def __init__(self, cargo_repo: CargoRepository):
        self._cargos = cargo_repo

    async def execute(
        self,
        actor: Actor,
        weight_kg,
        distance_km,
        client_id: str | None = None,
        priority: CargoPriority | str = CargoPriority.NORMAL,
        category: str | None = None,
        client_phone: str | None = None,
        now: datetime | None = None,
    ) -> Cargo:
        role = actor.known_role
        if role == Role.CLIENT:
            if client_id is not None and client_id != actor.id:
                raise ForbiddenError("Clients may only create cargo for themselves")
            client_id = actor.id
        elif role != Role.ADMIN:
            raise ForbiddenError(f"Role '{getattr(actor.role, 'value', actor.role)}' may not create cargo")

        if not client_id:
            raise ValidationError("client_id is required", {"field": "client_id"})
        try:
            priority = CargoPriority(priority)
        except ValueError:
            raise ValidationError(f"Unknown priority: {priority!r}", {"field": "priority"}) from None

        cargo = Cargo(
            id=str(uuid.uuid4()),
            client_id=client_id,
            weight_kg=_to_decimal(weight_kg, "weight_kg"),
            distance_km=_to_decimal(distance_km, "distance_km"),
            priority=priority,
            category=category,
            client_phone=client_phone,
            updated_at=now or utc_now(),
        )
        saved = await self._cargos.save(cargo)
        logger.info("Cargo %s created for client %s by %s", saved.id, client_id, actor.id)
        return saved


class GetCargoUseCase:
    """Cargo, its current assignment (effective status) and the actor's actions."""

    def __init__(self, cargo_repo: CargoRepository, assignment_repo: AssignmentRepository):
        self._cargos = cargo_repo
        self._assignments = assignment_repo

    async def execute(self, cargo_id: str, actor: Actor, now: datetime | None = None) -> CargoView:
        now = now or utc_now()
        cargo = await self._cargos.get_by_id(cargo_id)
        if cargo is None:
            raise NotFoundError("Cargo", cargo_id)
        if actor.known_role == Role.CLIENT and not cargo.is_owned_by(actor.id):
            raise ForbiddenError(f"Cargo {cargo_id} does not belong to client {actor.id}")

        assignment = await self._assignments.get_current_for_cargo(cargo.id)
        return CargoView(
            cargo=cargo,
            assignment=assignment,
            assignment_status=assignment.status_at(now) if assignment else None,
            actions=resolve_actions(cargo, assignment, actor, now),
        )

    async def history(self, cargo_id: str, actor: Actor) -> list[DeliveryAssignment]:
        """Every assignment ever made for the cargo, oldest first."""
        cargo = await self._cargos.get_by_id(cargo_id)
        if cargo is None:
            raise NotFoundError("Cargo", cargo_id)
        if actor.known_role == Role.CLIENT and not cargo.is_owned_by(actor.id):
            raise ForbiddenError(f"Cargo {cargo_id} does not belong to client {actor.id}")
        return await self._assignments.list_for_cargo(cargo.id)


class ListAssignmentsUseCase:
    """Assignment listing filtered by effective status, driver and vehicle."""

    def __init__(self, assignment_repo: AssignmentRepository):
        self._assignments = assignment_repo

    async def execute(
        self,
        actor: Actor,
        status: AssignmentStatus | str | None = None,
        driver_id: str | None = None,
        vehicle_id: str | None = None,
        now: datetime | None = None,
    ) -> list[DeliveryAssignment]:
        now = now or utc_now()
        role = actor.known_role
        if role == Role.DRIVER:
            if driver_id is not None and driver_id != actor.id:
                raise ForbiddenError("Drivers may only list their own assignments")
            driver_id = actor.id
        elif role != Role.ADMIN:
            raise ForbiddenError("Only admins and drivers may list assignments")

        if status is not None:
            try:
                status = AssignmentStatus(status)
            except ValueError:
                raise ValidationError(f"Unknown assignment status: {status!r}", {"field": "status"}) from None

        # Stored pending rows may already read as expired
        stored_filter = AssignmentStatus.PENDING if status == AssignmentStatus.EXPIRED else status
        rows = await self._assignments.list(
            status=stored_filter, driver_id=driver_id, vehicle_id=vehicle_id
        )
        if status == AssignmentStatus.EXPIRED:
            rows += await self._assignments.list(
                status=AssignmentStatus.EXPIRED, driver_id=driver_id, vehicle_id=vehicle_id
            )
            rows.sort(key=lambda a: a.assigned_at)
        if status is None:
            return rows
        return [a for a in rows if a.status_at(now) == status]
