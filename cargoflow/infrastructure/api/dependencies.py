"""FastAPI dependency injection — wires adapters into use cases."""

from __future__ import annotations

import logging
from datetime import timedelta

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from cargoflow.adapters.persistence.database import get_session
from cargoflow.adapters.persistence.repositories import (
    SqlAssignmentRepository,
    SqlCargoRepository,
    SqlEventPublisher,
)
from cargoflow.adapters.pricing.http_pricing_adapter import HttpPricingAdapter
from cargoflow.application.use_cases.apply_action import ApplyActionUseCase
from cargoflow.application.use_cases.manage_cargo import (
    CreateCargoUseCase,
    GetCargoUseCase,
    ListAssignmentsUseCase,
)
from cargoflow.application.use_cases.sweep_assignments import SweepExpiredAssignmentsUseCase
from cargoflow.config import settings
from cargoflow.domain.entities.actor import Actor
from cargoflow.domain.services.lifecycle_orchestrator import LifecycleOrchestrator

logger = logging.getLogger(__name__)

# Singletons (stateless)
_orchestrator = LifecycleOrchestrator(
    assignment_ttl=timedelta(minutes=settings.assignment_ttl_minutes),
    rejection_reason_min_length=settings.rejection_reason_min_length,
    strict=settings.debug,
)

if settings.pricing_url:
    _pricing_adapter = HttpPricingAdapter()
    logger.info("Using pricing service at %s", settings.pricing_url)
else:
    _pricing_adapter = None


def get_actor(
    x_actor_role: str | None = Header(default=None),
    x_actor_id: str | None = Header(default=None),
) -> Actor:
    """The caller, as already authenticated by the gateway."""
    if not x_actor_role:
        raise HTTPException(status_code=401, detail="X-Actor-Role header is required")
    return Actor(role=x_actor_role.strip().lower(), id=x_actor_id)


def get_orchestrator() -> LifecycleOrchestrator:
    return _orchestrator


def get_apply_action_uc(
    session: AsyncSession = Depends(get_session),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
) -> ApplyActionUseCase:
    return ApplyActionUseCase(
        orchestrator=orchestrator,
        cargo_repo=SqlCargoRepository(session),
        assignment_repo=SqlAssignmentRepository(session),
        publisher=SqlEventPublisher(session),
        pricing=_pricing_adapter,
    )


def get_create_cargo_uc(session: AsyncSession = Depends(get_session)) -> CreateCargoUseCase:
    return CreateCargoUseCase(cargo_repo=SqlCargoRepository(session))


def get_cargo_uc(session: AsyncSession = Depends(get_session)) -> GetCargoUseCase:
    return GetCargoUseCase(
        cargo_repo=SqlCargoRepository(session),
        assignment_repo=SqlAssignmentRepository(session),
    )


def get_list_assignments_uc(
    session: AsyncSession = Depends(get_session),
) -> ListAssignmentsUseCase:
    return ListAssignmentsUseCase(assignment_repo=SqlAssignmentRepository(session))


def get_sweep_uc(
    session: AsyncSession = Depends(get_session),
    apply_action: ApplyActionUseCase = Depends(get_apply_action_uc),
) -> SweepExpiredAssignmentsUseCase:
    return SweepExpiredAssignmentsUseCase(
        apply_action=apply_action,
        assignment_repo=SqlAssignmentRepository(session),
        system_actor_id=settings.system_actor_id,
    )
