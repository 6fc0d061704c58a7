"""Cargo endpoints — create, view with resolved actions, apply an action."""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from cargoflow.application.use_cases.apply_action import ApplyActionUseCase
from cargoflow.application.use_cases.manage_cargo import CreateCargoUseCase, GetCargoUseCase
from cargoflow.domain.entities.actor import Actor
from cargoflow.domain.policies.role_policy import capabilities_for
from cargoflow.domain.services.lifecycle_orchestrator import ActionRequest
from cargoflow.domain.value_objects.clock import utc_now
from cargoflow.infrastructure.api.dependencies import (
    get_actor,
    get_apply_action_uc,
    get_cargo_uc,
    get_create_cargo_uc,
)
from cargoflow.infrastructure.api.serializers import (
    serialize_action,
    serialize_assignment,
    serialize_cargo,
    serialize_event,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["cargos"])


class CargoCreateRequest(BaseModel):
    weight_kg: Decimal
    distance_km: Decimal
    client_id: str | None = None
    priority: str = "normal"
    category: str | None = None
    client_phone: str | None = None


class ActionRequestBody(BaseModel):
    action_id: str
    target_status: str | None = None
    expected_version: int | None = None
    driver_id: str | None = None
    vehicle_id: str | None = None
    expires_at: datetime | None = None
    reason: str | None = None
    notes: str | None = None
    contact_phone: str | None = None
    assignment_id: str | None = None


@router.post("/cargos", status_code=201)
async def create_cargo(
    body: CargoCreateRequest,
    actor: Actor = Depends(get_actor),
    uc: CreateCargoUseCase = Depends(get_create_cargo_uc),
):
    """Create a cargo in ``pending``."""
    cargo = await uc.execute(
        actor,
        weight_kg=body.weight_kg,
        distance_km=body.distance_km,
        client_id=body.client_id,
        priority=body.priority,
        category=body.category,
        client_phone=body.client_phone,
    )
    return serialize_cargo(cargo)


@router.get("/cargos/{cargo_id}")
async def get_cargo(
    cargo_id: str,
    actor: Actor = Depends(get_actor),
    uc: GetCargoUseCase = Depends(get_cargo_uc),
):
    """Cargo, its current assignment and the actions the caller may take."""
    now = utc_now()
    view = await uc.execute(cargo_id, actor, now)
    return {
        "cargo": serialize_cargo(view.cargo),
        "assignment": serialize_assignment(view.assignment, now) if view.assignment else None,
        "actions": [serialize_action(a) for a in view.actions],
    }


@router.get("/cargos/{cargo_id}/assignments")
async def list_cargo_assignments(
    cargo_id: str,
    actor: Actor = Depends(get_actor),
    uc: GetCargoUseCase = Depends(get_cargo_uc),
):
    """Assignment history of one cargo, oldest first."""
    now = utc_now()
    assignments = await uc.history(cargo_id, actor)
    return {
        "total": len(assignments),
        "assignments": [serialize_assignment(a, now) for a in assignments],
    }


@router.post("/cargos/{cargo_id}/actions")
async def apply_action(
    cargo_id: str,
    body: ActionRequestBody,
    actor: Actor = Depends(get_actor),
    uc: ApplyActionUseCase = Depends(get_apply_action_uc),
):
    """Apply one action; the response carries the new state and next actions."""
    now = utc_now()
    request = ActionRequest(
        action_id=body.action_id,
        target_status=body.target_status,
        expected_version=body.expected_version,
        driver_id=body.driver_id,
        vehicle_id=body.vehicle_id,
        expires_at=body.expires_at,
        reason=body.reason,
        notes=body.notes,
        contact_phone=body.contact_phone,
    )
    outcome = await uc.execute(
        cargo_id, actor, request, assignment_id=body.assignment_id, now=now
    )
    return {
        "cargo": serialize_cargo(outcome.cargo),
        "assignment": (
            serialize_assignment(outcome.assignment, now) if outcome.assignment else None
        ),
        "events": [serialize_event(e) for e in outcome.events],
        "actions": [serialize_action(a) for a in outcome.actions],
        "price_estimate": (
            str(outcome.price_estimate) if outcome.price_estimate is not None else None
        ),
    }


@router.get("/capabilities/{role}")
async def list_capabilities(role: str):
    """Static capability set of a role (empty for unknown roles)."""
    return {
        "role": role,
        "capabilities": sorted(c.value for c in capabilities_for(role)),
    }
