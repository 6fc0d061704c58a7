"""AssignmentNegotiation — the accept/reject/cancel/expire protocol for one assignment.

Expiry is lazy: ``DeliveryAssignment.status_at(now)`` reports a stale pending
assignment as expired, and ``expire_assignment`` materialises that on the
next write path. No timer lives in the engine.
"""

from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import datetime

from cargoflow.domain.entities.actor import Actor
from cargoflow.domain.entities.assignment import DeliveryAssignment
from cargoflow.domain.entities.cargo import Cargo
from cargoflow.domain.errors import (
    ForbiddenError,
    IllegalTransitionError,
    InvalidStateError,
    ValidationError,
)
from cargoflow.domain.policies.role_policy import capabilities_for
from cargoflow.domain.value_objects.clock import as_utc, utc_now
from cargoflow.domain.value_objects.enums import (
    AssignmentStatus,
    Capability,
    CargoStatus,
    DriverDecision,
)

ASSIGNABLE_STATUSES = frozenset({
    CargoStatus.ACCEPTED,
    CargoStatus.PARTIALLY_ASSIGNED,
    CargoStatus.FULLY_ASSIGNED,
})

DEFAULT_REJECTION_REASON_MIN_LENGTH = 10


def _require_pending(assignment: DeliveryAssignment, now: datetime) -> None:
    effective = assignment.status_at(now)
    if effective != AssignmentStatus.PENDING:
        raise IllegalTransitionError(
            f"Assignment {assignment.id} is {effective.value}",
            {"assignment_status": effective.value},
        )


def _require_manager(actor: Actor) -> None:
    if Capability.MANAGE_ASSIGNMENTS not in capabilities_for(actor.role):
        raise ForbiddenError("Managing assignments requires the admin role")


def _close(
    assignment: DeliveryAssignment,
    status: AssignmentStatus,
    **changes,
) -> DeliveryAssignment:
    return replace(
        assignment,
        assignment_status=status,
        version=assignment.version + 1,
        **changes,
    )


# ─── Proposal ────────────────────────────────────────────────────────


def check_can_propose(
    cargo: Cargo,
    current: DeliveryAssignment | None,
    now: datetime | None = None,
) -> None:
    """Write-time check for the single-active-assignment invariant."""
    now = now or utc_now()
    if cargo.status not in ASSIGNABLE_STATUSES:
        raise InvalidStateError(
            f"Cargo {cargo.id} is {cargo.status.value} and cannot be assigned",
        )
    if cargo.has_driver():
        raise InvalidStateError(f"Cargo {cargo.id} already has driver {cargo.driver_id}")
    if current is not None and current.cargo_id == cargo.id and current.is_active_at(now):
        raise InvalidStateError(
            f"Cargo {cargo.id} already has an active assignment {current.id}",
            {"assignment_id": current.id},
        )


def propose_assignment(
    cargo: Cargo,
    current: DeliveryAssignment | None,
    driver_id: str | None,
    vehicle_id: str | None,
    expires_at: datetime | None,
    now: datetime | None = None,
    notes: str | None = None,
    created_by: str | None = None,
    assignment_id: str | None = None,
) -> DeliveryAssignment:
    """Create a pending assignment binding *cargo* to a (driver, vehicle) candidate."""
    now = now or utc_now()
    check_can_propose(cargo, current, now)

    if not driver_id:
        raise ValidationError("driver_id is required", {"field": "driver_id"})
    if not vehicle_id:
        raise ValidationError("vehicle_id is required", {"field": "vehicle_id"})
    if expires_at is not None:
        expires_at = as_utc(expires_at)
    if expires_at is None or expires_at <= now:
        raise ValidationError("expires_at must be in the future", {"field": "expires_at"})

    return DeliveryAssignment(
        id=assignment_id or str(uuid.uuid4()),
        cargo_id=cargo.id,
        driver_id=driver_id,
        vehicle_id=vehicle_id,
        assigned_at=now,
        expires_at=expires_at,
        notes=notes,
        created_by=created_by,
    )


def check_can_update(assignment: DeliveryAssignment, actor: Actor, now: datetime) -> None:
    _require_manager(actor)
    _require_pending(assignment, now)


def update_assignment(
    assignment: DeliveryAssignment,
    actor: Actor,
    driver_id: str | None = None,
    vehicle_id: str | None = None,
    notes: str | None = None,
    now: datetime | None = None,
) -> DeliveryAssignment:
    """Swap driver, vehicle or notes of a still pending assignment."""
    now = now or utc_now()
    check_can_update(assignment, actor, now)
    if not any((driver_id, vehicle_id, notes)):
        raise ValidationError("Nothing to update: give driver_id, vehicle_id or notes")

    return replace(
        assignment,
        driver_id=driver_id or assignment.driver_id,
        vehicle_id=vehicle_id or assignment.vehicle_id,
        notes=notes if notes is not None else assignment.notes,
        version=assignment.version + 1,
    )


# ─── Driver response ─────────────────────────────────────────────────


def check_can_respond(assignment: DeliveryAssignment, actor: Actor, now: datetime) -> None:
    if Capability.ACCEPT_CARGO not in capabilities_for(actor.role):
        raise ForbiddenError("Only drivers may respond to an assignment")
    if not assignment.belongs_to_driver(actor.id):
        raise ForbiddenError(f"Assignment {assignment.id} is not addressed to driver {actor.id}")
    _require_pending(assignment, now)


def check_can_accept(
    assignment: DeliveryAssignment,
    cargo: Cargo,
    actor: Actor,
    now: datetime,
) -> None:
    check_can_respond(assignment, actor, now)
    if cargo.status not in ASSIGNABLE_STATUSES:
        raise InvalidStateError(
            f"Cargo {cargo.id} is {cargo.status.value} and can no longer be assigned",
        )


def driver_respond(
    assignment: DeliveryAssignment,
    cargo: Cargo,
    actor: Actor,
    decision: DriverDecision | str,
    reason: str | None = None,
    now: datetime | None = None,
    min_reason_length: int = DEFAULT_REJECTION_REASON_MIN_LENGTH,
) -> tuple[DeliveryAssignment, Cargo]:
    """Accept or reject a pending assignment.

    Accepting binds the driver and vehicle onto the cargo, which is what later
    lets the cargo move to ``picked_up``. The cargo status itself is not
    changed here. Rejecting requires a reason of at least *min_reason_length*
    characters.

    Returns:
        (updated_assignment, cargo) where cargo is unchanged on reject.
    """
    now = now or utc_now()
    try:
        decision = DriverDecision(decision)
    except ValueError:
        raise ValidationError(f"Unknown decision: {decision!r}", {"field": "decision"}) from None

    if assignment.cargo_id != cargo.id:
        raise InvalidStateError(f"Assignment {assignment.id} is not for cargo {cargo.id}")
    check_can_respond(assignment, actor, now)

    if decision == DriverDecision.REJECT:
        reason = (reason or "").strip()
        if len(reason) < min_reason_length:
            raise ValidationError(
                f"A rejection reason of at least {min_reason_length} characters is required",
                {"field": "reason"},
            )
        rejected = _close(
            assignment, AssignmentStatus.REJECTED,
            driver_responded_at=now, rejection_reason=reason,
        )
        return rejected, cargo

    check_can_accept(assignment, cargo, actor, now)
    accepted = _close(assignment, AssignmentStatus.ACCEPTED, driver_responded_at=now)
    bound = replace(
        cargo,
        driver_id=assignment.driver_id,
        vehicle_id=assignment.vehicle_id,
        version=cargo.version + 1,
        updated_at=now,
    )
    return accepted, bound


# ─── Cancellation & expiry ───────────────────────────────────────────


def check_can_cancel(assignment: DeliveryAssignment, actor: Actor, now: datetime) -> None:
    _require_manager(actor)
    _require_pending(assignment, now)


def cancel_assignment(
    assignment: DeliveryAssignment,
    actor: Actor,
    now: datetime | None = None,
) -> DeliveryAssignment:
    """Withdraw a pending assignment. Cargo status is not affected."""
    now = now or utc_now()
    check_can_cancel(assignment, actor, now)
    return _close(assignment, AssignmentStatus.CANCELLED)


def check_can_expire(assignment: DeliveryAssignment, now: datetime) -> None:
    if not assignment.is_stale_pending(now):
        raise IllegalTransitionError(
            f"Assignment {assignment.id} is not past its deadline while pending",
            {"assignment_status": assignment.status_at(now).value},
        )


def expire_assignment(
    assignment: DeliveryAssignment,
    now: datetime | None = None,
) -> DeliveryAssignment:
    """Persistable form of lazy expiry for a pending assignment past its deadline."""
    now = now or utc_now()
    check_can_expire(assignment, now)
    return _close(assignment, AssignmentStatus.EXPIRED)


def close_for_cancelled_cargo(
    assignment: DeliveryAssignment,
    now: datetime,
) -> DeliveryAssignment | None:
    """Terminalise a stored-pending assignment whose cargo was cancelled.

    Returns None when there is nothing to close.
    """
    if assignment.assignment_status != AssignmentStatus.PENDING:
        return None
    if assignment.is_stale_pending(now):
        return _close(assignment, AssignmentStatus.EXPIRED)
    return _close(assignment, AssignmentStatus.CANCELLED)
