"""ApplyActionUseCase — load snapshots → orchestrator → persist → publish."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from cargoflow.application.errors import NotFoundError
from cargoflow.application.ports.assignment_repo import AssignmentRepository
from cargoflow.application.ports.cargo_repo import CargoRepository
from cargoflow.application.ports.event_publisher import EventPublisher
from cargoflow.application.ports.pricing_port import PricingPort
from cargoflow.domain.entities.actor import Actor
from cargoflow.domain.entities.assignment import DeliveryAssignment
from cargoflow.domain.entities.cargo import Cargo
from cargoflow.domain.entities.events import DomainEvent, InvoiceEligible
from cargoflow.domain.policies.action_resolver import Action, resolve_actions
from cargoflow.domain.services.lifecycle_orchestrator import (
    ActionRequest,
    ApplyResult,
    LifecycleOrchestrator,
)
from cargoflow.domain.value_objects.clock import utc_now

logger = logging.getLogger(__name__)


@dataclass
class ActionOutcome:
    """What the caller gets back after a committed action."""

    cargo: Cargo
    assignment: DeliveryAssignment | None
    events: list[DomainEvent]
    actions: list[Action]
    price_estimate: Decimal | None = None


class ApplyActionUseCase:
    """Applies one action to a stored cargo with optimistic locking."""

    def __init__(
        self,
        orchestrator: LifecycleOrchestrator,
        cargo_repo: CargoRepository,
        assignment_repo: AssignmentRepository,
        publisher: EventPublisher,
        pricing: PricingPort | None = None,
    ):
        self._orchestrator = orchestrator
        self._cargos = cargo_repo
        self._assignments = assignment_repo
        self._publisher = publisher
        self._pricing = pricing

    async def execute(
        self,
        cargo_id: str,
        actor: Actor,
        request: ActionRequest,
        assignment_id: str | None = None,
        now: datetime | None = None,
    ) -> ActionOutcome:
        """Apply *request* to cargo *cargo_id*.

        When *assignment_id* is given that assignment is acted upon instead of
        the cargo's current one.

        Raises:
            NotFoundError: cargo or assignment missing.
            LifecycleError: the engine refused; nothing was written.
        """
        now = now or utc_now()
        cargo = await self._cargos.get_by_id(cargo_id)
        if cargo is None:
            raise NotFoundError("Cargo", cargo_id)

        if assignment_id is not None:
            assignment = await self._assignments.get_by_id(assignment_id)
            if assignment is None:
                raise NotFoundError("Assignment", assignment_id)
        else:
            assignment = await self._assignments.get_current_for_cargo(cargo.id)

        result = self._orchestrator.apply(actor, cargo, assignment, request, now)
        await self._persist(cargo, assignment, result)
        if result.events:
            await self._publisher.publish(result.events)

        price = None
        if any(isinstance(e, InvoiceEligible) for e in result.events):
            price = await self._estimate_price(result.cargo)

        return ActionOutcome(
            cargo=result.cargo,
            assignment=result.assignment,
            events=list(result.events),
            actions=resolve_actions(result.cargo, result.assignment, actor, now),
            price_estimate=price,
        )

    async def _persist(
        self,
        cargo: Cargo,
        assignment: DeliveryAssignment | None,
        result: ApplyResult,
    ) -> None:
        # Cargo first: the aggregate root carries the version check
        if result.cargo.version != cargo.version:
            await self._cargos.update(result.cargo, expected_version=cargo.version)

        # A superseded assignment must be closed before the new one is inserted
        if result.closed_assignment is not None:
            await self._assignments.update(
                result.closed_assignment, expected_version=assignment.version
            )

        current = result.assignment
        if current is None:
            return
        if assignment is not None and current.id == assignment.id:
            if current.version != assignment.version:
                await self._assignments.update(current, expected_version=assignment.version)
        else:
            await self._assignments.save(current)

    async def _estimate_price(self, cargo: Cargo) -> Decimal | None:
        if self._pricing is None:
            return None
        try:
            price = await self._pricing.estimate(
                cargo.weight_kg, cargo.distance_km, cargo.category
            )
        except Exception:
            logger.exception("Pricing failed for delivered cargo %s", cargo.id)
            return None
        logger.info("Cargo %s delivered, price estimate %s", cargo.id, price)
        return price
