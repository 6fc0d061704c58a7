"""CargoStateMachine — the cargo lifecycle and its single legal edge table."""

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
from cargoflow.domain.value_objects.clock import utc_now
from cargoflow.domain.value_objects.enums import AssignmentStatus, Capability, CargoStatus

# Ordered: the resolver renders targets in this order
CARGO_TRANSITIONS: dict[CargoStatus, tuple[CargoStatus, ...]] = {
    CargoStatus.PENDING: (CargoStatus.QUOTED, CargoStatus.CANCELLED),
    CargoStatus.QUOTED: (CargoStatus.ACCEPTED, CargoStatus.CANCELLED),
    CargoStatus.ACCEPTED: (
        CargoStatus.PARTIALLY_ASSIGNED,
        CargoStatus.FULLY_ASSIGNED,
        CargoStatus.CANCELLED,
    ),
    CargoStatus.PARTIALLY_ASSIGNED: (CargoStatus.FULLY_ASSIGNED, CargoStatus.CANCELLED),
    CargoStatus.FULLY_ASSIGNED: (CargoStatus.PICKED_UP, CargoStatus.CANCELLED),
    CargoStatus.PICKED_UP: (CargoStatus.IN_TRANSIT, CargoStatus.CANCELLED),
    CargoStatus.IN_TRANSIT: (CargoStatus.DELIVERED, CargoStatus.CANCELLED),
    CargoStatus.DELIVERED: (),
    CargoStatus.CANCELLED: (),
    # Entered only from outside the engine (e.g. a reported issue)
    CargoStatus.DISPUTED: (CargoStatus.DELIVERED, CargoStatus.CANCELLED),
}

TERMINAL_STATUSES = frozenset({CargoStatus.DELIVERED, CargoStatus.CANCELLED})

# Entering these requires an accepted assignment for the cargo
ASSIGNMENT_REQUIRED_STATUSES = frozenset({CargoStatus.FULLY_ASSIGNED, CargoStatus.PICKED_UP})

DRIVER_EDGES = frozenset({
    (CargoStatus.FULLY_ASSIGNED, CargoStatus.PICKED_UP),
    (CargoStatus.PICKED_UP, CargoStatus.IN_TRANSIT),
    (CargoStatus.IN_TRANSIT, CargoStatus.DELIVERED),
})

CLIENT_CANCELLABLE_STATUSES = frozenset({
    CargoStatus.PENDING,
    CargoStatus.QUOTED,
    CargoStatus.ACCEPTED,
    CargoStatus.FULLY_ASSIGNED,
})

# Where a driver claim leaves the cargo, keyed by the status it is claimed from
CLAIM_TARGETS: dict[CargoStatus, CargoStatus] = {
    CargoStatus.PENDING: CargoStatus.ACCEPTED,
    CargoStatus.ACCEPTED: CargoStatus.FULLY_ASSIGNED,
    CargoStatus.PARTIALLY_ASSIGNED: CargoStatus.FULLY_ASSIGNED,
}

DRIVER_CLAIMABLE_STATUSES = frozenset(CLAIM_TARGETS)


def allowed_targets(status: CargoStatus) -> tuple[CargoStatus, ...]:
    return CARGO_TRANSITIONS.get(status, ())


def is_edge(from_status: CargoStatus, to_status: CargoStatus) -> bool:
    return to_status in allowed_targets(from_status)


def parse_status(value: CargoStatus | str) -> CargoStatus:
    try:
        return CargoStatus(value)
    except ValueError:
        raise ValidationError(
            f"Unknown cargo status: {value!r}", {"field": "target_status"}
        ) from None


def has_accepted_assignment(
    cargo: Cargo,
    assignment: DeliveryAssignment | None,
    now: datetime,
) -> bool:
    return (
        assignment is not None
        and assignment.cargo_id == cargo.id
        and assignment.status_at(now) == AssignmentStatus.ACCEPTED
    )


def check_transition(
    cargo: Cargo,
    target_status: CargoStatus | str,
    actor: Actor,
    assignment: DeliveryAssignment | None = None,
    now: datetime | None = None,
) -> CargoStatus:
    """Validate a status change without applying it.

    The edge table is consulted first, so a non-edge is always an
    ``IllegalTransitionError`` whatever the role. Role context decides next:
    admins may take any edge, drivers only the pickup/transit/deliver edges of
    cargo whose accepted assignment they own, clients only cancellation of
    their own cargo before pickup.

    Returns:
        The parsed target status.
    """
    now = now or utc_now()
    target = parse_status(target_status)

    if not is_edge(cargo.status, target):
        raise IllegalTransitionError(
            f"Cargo {cargo.id} cannot move from {cargo.status.value} to {target.value}",
            {"from": cargo.status.value, "to": target.value},
        )

    capabilities = capabilities_for(actor.role)

    if Capability.TRANSITION_CARGO in capabilities:
        if target in ASSIGNMENT_REQUIRED_STATUSES and not has_accepted_assignment(
            cargo, assignment, now
        ):
            raise InvalidStateError(
                f"Cargo {cargo.id} needs an accepted assignment before {target.value}",
            )
        return target

    if (
        Capability.ADVANCE_OWN_DELIVERY in capabilities
        and (cargo.status, target) in DRIVER_EDGES
    ):
        if not (
            has_accepted_assignment(cargo, assignment, now)
            and assignment.belongs_to_driver(actor.id)
        ):
            raise ForbiddenError(
                f"Driver {actor.id} does not hold the accepted assignment for cargo {cargo.id}",
            )
        return target

    if Capability.CANCEL_OWN_CARGO in capabilities and target == CargoStatus.CANCELLED:
        if not cargo.is_owned_by(actor.id):
            raise ForbiddenError(f"Cargo {cargo.id} does not belong to client {actor.id}")
        if cargo.status not in CLIENT_CANCELLABLE_STATUSES:
            raise ForbiddenError(
                f"Cargo {cargo.id} is {cargo.status.value}; "
                "cargo in physical transit cannot be cancelled by the client",
            )
        return target

    raise ForbiddenError(
        f"Role '{getattr(actor.role, 'value', actor.role)}' may not move cargo "
        f"from {cargo.status.value} to {target.value}",
    )


def request_transition(
    cargo: Cargo,
    target_status: CargoStatus | str,
    actor: Actor,
    assignment: DeliveryAssignment | None = None,
    now: datetime | None = None,
) -> Cargo:
    """Apply a status change and return the updated cargo snapshot."""
    now = now or utc_now()
    target = check_transition(cargo, target_status, actor, assignment, now)
    return replace(cargo, status=target, version=cargo.version + 1, updated_at=now)


# ─── Driver "accept cargo" shortcut ──────────────────────────────────


def check_claim(
    cargo: Cargo,
    actor: Actor,
    assignment: DeliveryAssignment | None = None,
    now: datetime | None = None,
) -> None:
    """Validate that a driver may accept an available cargo directly."""
    now = now or utc_now()
    if Capability.ACCEPT_CARGO not in capabilities_for(actor.role):
        raise ForbiddenError("Only drivers may accept cargo")
    if cargo.status not in DRIVER_CLAIMABLE_STATUSES:
        raise IllegalTransitionError(
            f"Cargo {cargo.id} is {cargo.status.value} and not open for drivers",
        )
    if cargo.has_driver() or (
        assignment is not None
        and assignment.cargo_id == cargo.id
        and assignment.is_active_at(now)
    ):
        raise InvalidStateError(f"Cargo {cargo.id} already has an active assignment")


def claim_cargo(
    cargo: Cargo,
    actor: Actor,
    vehicle_id: str | None,
    assignment: DeliveryAssignment | None = None,
    now: datetime | None = None,
    assignment_id: str | None = None,
) -> tuple[Cargo, DeliveryAssignment]:
    """Combined operation: accepted assignment for the driver plus a cargo status step.

    A pending cargo is accepted on the spot; an accepted or partially
    assigned cargo becomes fully assigned.

    Returns:
        (updated_cargo, accepted_assignment)
    """
    now = now or utc_now()
    check_claim(cargo, actor, assignment, now)
    if not vehicle_id:
        raise ValidationError("vehicle_id is required to accept cargo", {"field": "vehicle_id"})

    accepted = DeliveryAssignment(
        id=assignment_id or str(uuid.uuid4()),
        cargo_id=cargo.id,
        driver_id=actor.id,
        vehicle_id=vehicle_id,
        assigned_at=now,
        expires_at=now,
        assignment_status=AssignmentStatus.ACCEPTED,
        driver_responded_at=now,
        created_by=actor.id,
    )
    updated = replace(
        cargo,
        status=CLAIM_TARGETS[cargo.status],
        driver_id=actor.id,
        vehicle_id=vehicle_id,
        version=cargo.version + 1,
        updated_at=now,
    )
    return updated, accepted
