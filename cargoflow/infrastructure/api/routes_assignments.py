"""Assignment endpoints — filtered listing and the expiry sweep."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from cargoflow.application.use_cases.manage_cargo import ListAssignmentsUseCase
from cargoflow.application.use_cases.sweep_assignments import SweepExpiredAssignmentsUseCase
from cargoflow.domain.entities.actor import Actor
from cargoflow.domain.errors import ForbiddenError
from cargoflow.domain.policies.role_policy import has_capability
from cargoflow.domain.value_objects.clock import utc_now
from cargoflow.domain.value_objects.enums import Capability
from cargoflow.infrastructure.api.dependencies import (
    get_actor,
    get_list_assignments_uc,
    get_sweep_uc,
)
from cargoflow.infrastructure.api.serializers import serialize_assignment

router = APIRouter(prefix="/assignments", tags=["assignments"])


@router.get("")
async def list_assignments(
    status: str | None = None,
    driver_id: str | None = None,
    vehicle_id: str | None = None,
    actor: Actor = Depends(get_actor),
    uc: ListAssignmentsUseCase = Depends(get_list_assignments_uc),
):
    """List assignments; ``status`` filters on the effective status."""
    now = utc_now()
    assignments = await uc.execute(
        actor, status=status, driver_id=driver_id, vehicle_id=vehicle_id, now=now
    )
    return {
        "total": len(assignments),
        "assignments": [serialize_assignment(a, now) for a in assignments],
    }


@router.post("/expire")
async def expire_assignments(
    actor: Actor = Depends(get_actor),
    uc: SweepExpiredAssignmentsUseCase = Depends(get_sweep_uc),
):
    """Persist expiry of every pending assignment past its deadline."""
    if not has_capability(actor.role, Capability.MANAGE_ASSIGNMENTS):
        raise ForbiddenError("Only admins may run the expiry sweep")

    results = await uc.execute()
    return {
        "total": len(results),
        "expired": sum(1 for r in results if r.expired),
        "results": [
            {
                "assignment_id": r.assignment_id,
                "cargo_id": r.cargo_id,
                "expired": r.expired,
                "error": r.error,
            }
            for r in results
        ],
    }
