"""ActionResolver — the ordered list of actions an actor may invoke right now.

Each role has a catalogue of action specs in display order: status-changing
actions first, then negotiation and communication, destructive actions last.
An entry is listed when the role holds its capability and its guard passes; it
is listed *disabled* when only a data-presence predicate (e.g. a phone
number) is missing. ``check_action`` runs the very same guards and raises the
precise error, so what is rendered and what is enforced cannot drift apart.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime

from cargoflow.domain.entities.actor import Actor
from cargoflow.domain.entities.assignment import DeliveryAssignment
from cargoflow.domain.entities.cargo import Cargo
from cargoflow.domain.errors import (
    ForbiddenError,
    IllegalTransitionError,
    InvalidStateError,
    LifecycleError,
    ValidationError,
)
from cargoflow.domain.policies import assignment_negotiation as negotiation
from cargoflow.domain.policies import cargo_state_machine as machine
from cargoflow.domain.policies.role_policy import capabilities_for
from cargoflow.domain.value_objects.clock import utc_now
from cargoflow.domain.value_objects.enums import ActionId, Capability, CargoStatus, Role

ACTION_LABELS: dict[ActionId, str] = {
    ActionId.ACCEPT_CARGO: "Accept",
    ActionId.PICK_UP: "Pick Up",
    ActionId.START_TRANSIT: "Start Transit",
    ActionId.MARK_DELIVERED: "Mark Delivered",
    ActionId.CANCEL_CARGO: "Cancel",
    ActionId.PROPOSE_ASSIGNMENT: "Assign Driver",
    ActionId.UPDATE_ASSIGNMENT: "Edit Assignment",
    ActionId.CANCEL_ASSIGNMENT: "Cancel Assignment",
    ActionId.EXPIRE_ASSIGNMENT: "Mark Assignment Expired",
    ActionId.ACCEPT_ASSIGNMENT: "Accept Assignment",
    ActionId.REJECT_ASSIGNMENT: "Reject Assignment",
    ActionId.CALL_CLIENT: "Call Client",
    ActionId.CALL_DRIVER: "Call Driver",
    ActionId.TRACK_CARGO: "Track",
    ActionId.DOWNLOAD_RECEIPT: "Download Receipt",
    ActionId.UPLOAD_PROOF: "Upload Photo",
    ActionId.REPORT_ISSUE: "Report Issue",
}

TRACKABLE_STATUSES = frozenset({
    CargoStatus.FULLY_ASSIGNED,
    CargoStatus.PICKED_UP,
    CargoStatus.IN_TRANSIT,
})

PROOF_STATUSES = frozenset({
    CargoStatus.PICKED_UP,
    CargoStatus.IN_TRANSIT,
    CargoStatus.DELIVERED,
})


@dataclass(frozen=True)
class Action:
    """One renderable, invocable action."""

    action_id: ActionId
    label: str
    enabled: bool = True
    target_status: CargoStatus | None = None

    def matches(self, action_id: ActionId, target_status: CargoStatus | None = None) -> bool:
        if self.action_id != action_id:
            return False
        return target_status is None or target_status == self.target_status


@dataclass(frozen=True)
class ActionContext:
    actor: Actor
    cargo: Cargo
    assignment: DeliveryAssignment | None
    now: datetime


Guard = Callable[[ActionContext, CargoStatus | None], None]


@dataclass(frozen=True)
class ActionSpec:
    action_id: ActionId
    capability: Capability
    guard: Guard
    target: CargoStatus | None = None
    dynamic_targets: Callable[[ActionContext], Iterable[CargoStatus]] | None = None
    ready: Callable[[ActionContext], bool] | None = None
    unready_reason: str = ""

    def targets_for(self, ctx: ActionContext) -> Iterable[CargoStatus | None]:
        if self.dynamic_targets is not None:
            return self.dynamic_targets(ctx)
        return (self.target,)

    def is_ready(self, ctx: ActionContext) -> bool:
        return self.ready is None or self.ready(ctx)

    def label_for(self, target: CargoStatus | None) -> str:
        if self.action_id == ActionId.TRANSITION_CARGO and target is not None:
            return f"Change to {target.display_name}"
        return ACTION_LABELS[self.action_id]


# ─── Guards ──────────────────────────────────────────────────────────


def _require_assignment(ctx: ActionContext) -> DeliveryAssignment:
    if ctx.assignment is None:
        raise InvalidStateError(f"Cargo {ctx.cargo.id} has no current assignment")
    return ctx.assignment


def _require_own_cargo(ctx: ActionContext) -> None:
    if not ctx.cargo.is_owned_by(ctx.actor.id):
        raise ForbiddenError(f"Cargo {ctx.cargo.id} does not belong to {ctx.actor.id}")


def _guard_transition(ctx: ActionContext, target: CargoStatus | None) -> None:
    if target is None:
        raise ValidationError("target_status is required", {"field": "target_status"})
    machine.check_transition(ctx.cargo, target, ctx.actor, ctx.assignment, ctx.now)


def _guard_claim(ctx: ActionContext, target: CargoStatus | None) -> None:
    machine.check_claim(ctx.cargo, ctx.actor, ctx.assignment, ctx.now)


def _guard_propose(ctx: ActionContext, target: CargoStatus | None) -> None:
    negotiation.check_can_propose(ctx.cargo, ctx.assignment, ctx.now)


def _guard_update(ctx: ActionContext, target: CargoStatus | None) -> None:
    negotiation.check_can_update(_require_assignment(ctx), ctx.actor, ctx.now)


def _guard_cancel_assignment(ctx: ActionContext, target: CargoStatus | None) -> None:
    negotiation.check_can_cancel(_require_assignment(ctx), ctx.actor, ctx.now)


def _guard_expire(ctx: ActionContext, target: CargoStatus | None) -> None:
    negotiation.check_can_expire(_require_assignment(ctx), ctx.now)


def _guard_accept_assignment(ctx: ActionContext, target: CargoStatus | None) -> None:
    negotiation.check_can_accept(_require_assignment(ctx), ctx.cargo, ctx.actor, ctx.now)


def _guard_reject_assignment(ctx: ActionContext, target: CargoStatus | None) -> None:
    negotiation.check_can_respond(_require_assignment(ctx), ctx.actor, ctx.now)


def _guard_always(ctx: ActionContext, target: CargoStatus | None) -> None:
    return None


def _guard_has_driver(ctx: ActionContext, target: CargoStatus | None) -> None:
    if not ctx.cargo.has_driver():
        raise InvalidStateError(f"Cargo {ctx.cargo.id} has no driver yet")


def _guard_delivered(ctx: ActionContext, target: CargoStatus | None) -> None:
    if ctx.cargo.status != CargoStatus.DELIVERED:
        raise IllegalTransitionError(f"Cargo {ctx.cargo.id} is not delivered yet")


def _guard_proof_window(ctx: ActionContext, target: CargoStatus | None) -> None:
    if ctx.cargo.status not in PROOF_STATUSES:
        raise IllegalTransitionError(f"Cargo {ctx.cargo.id} has not been picked up")


def _guard_not_cancelled(ctx: ActionContext, target: CargoStatus | None) -> None:
    if ctx.cargo.status == CargoStatus.CANCELLED:
        raise IllegalTransitionError(f"Cargo {ctx.cargo.id} is cancelled")


def _guard_driver_involved(ctx: ActionContext, target: CargoStatus | None) -> None:
    if ctx.cargo.is_driven_by(ctx.actor.id):
        return
    a = ctx.assignment
    if a is not None and a.belongs_to_driver(ctx.actor.id) and a.is_active_at(ctx.now):
        return
    raise ForbiddenError(f"Driver {ctx.actor.id} is not involved with cargo {ctx.cargo.id}")


def _guard_client_track(ctx: ActionContext, target: CargoStatus | None) -> None:
    _require_own_cargo(ctx)
    if ctx.cargo.status not in TRACKABLE_STATUSES:
        raise IllegalTransitionError(f"Cargo {ctx.cargo.id} is not on the road")


def _guard_client_call_driver(ctx: ActionContext, target: CargoStatus | None) -> None:
    _require_own_cargo(ctx)
    _guard_has_driver(ctx, target)


def _guard_client_receipt(ctx: ActionContext, target: CargoStatus | None) -> None:
    _require_own_cargo(ctx)
    _guard_delivered(ctx, target)


def _forward_targets(ctx: ActionContext) -> Iterable[CargoStatus]:
    return [t for t in machine.allowed_targets(ctx.cargo.status) if t != CargoStatus.CANCELLED]


def _client_reachable(ctx: ActionContext) -> bool:
    return bool(ctx.cargo.client_phone and ctx.cargo.client_phone.strip())


def _driver_reachable(ctx: ActionContext) -> bool:
    return ctx.cargo.has_driver() and bool(
        ctx.cargo.driver_phone and ctx.cargo.driver_phone.strip()
    )


# ─── Catalogues ──────────────────────────────────────────────────────

_ADMIN_CATALOGUE: tuple[ActionSpec, ...] = (
    ActionSpec(
        ActionId.TRANSITION_CARGO, Capability.TRANSITION_CARGO, _guard_transition,
        dynamic_targets=_forward_targets,
    ),
    ActionSpec(ActionId.PROPOSE_ASSIGNMENT, Capability.MANAGE_ASSIGNMENTS, _guard_propose),
    ActionSpec(ActionId.UPDATE_ASSIGNMENT, Capability.MANAGE_ASSIGNMENTS, _guard_update),
    ActionSpec(ActionId.EXPIRE_ASSIGNMENT, Capability.MANAGE_ASSIGNMENTS, _guard_expire),
    ActionSpec(
        ActionId.CALL_CLIENT, Capability.CALL_CLIENT, _guard_always,
        ready=_client_reachable, unready_reason="client phone number is missing",
    ),
    ActionSpec(
        ActionId.CALL_DRIVER, Capability.CALL_DRIVER, _guard_has_driver,
        ready=_driver_reachable, unready_reason="driver phone number is missing",
    ),
    ActionSpec(ActionId.DOWNLOAD_RECEIPT, Capability.DOWNLOAD_RECEIPT, _guard_delivered),
    ActionSpec(ActionId.UPLOAD_PROOF, Capability.UPLOAD_PROOF, _guard_proof_window),
    ActionSpec(ActionId.REPORT_ISSUE, Capability.REPORT_ISSUE, _guard_not_cancelled),
    ActionSpec(
        ActionId.CANCEL_ASSIGNMENT, Capability.MANAGE_ASSIGNMENTS, _guard_cancel_assignment,
    ),
    ActionSpec(
        ActionId.TRANSITION_CARGO, Capability.TRANSITION_CARGO, _guard_transition,
        target=CargoStatus.CANCELLED,
    ),
)

_DRIVER_CATALOGUE: tuple[ActionSpec, ...] = (
    ActionSpec(ActionId.ACCEPT_ASSIGNMENT, Capability.ACCEPT_CARGO, _guard_accept_assignment),
    ActionSpec(ActionId.ACCEPT_CARGO, Capability.ACCEPT_CARGO, _guard_claim),
    ActionSpec(
        ActionId.PICK_UP, Capability.ADVANCE_OWN_DELIVERY, _guard_transition,
        target=CargoStatus.PICKED_UP,
    ),
    ActionSpec(
        ActionId.START_TRANSIT, Capability.ADVANCE_OWN_DELIVERY, _guard_transition,
        target=CargoStatus.IN_TRANSIT,
    ),
    ActionSpec(
        ActionId.MARK_DELIVERED, Capability.ADVANCE_OWN_DELIVERY, _guard_transition,
        target=CargoStatus.DELIVERED,
    ),
    ActionSpec(
        ActionId.CALL_CLIENT, Capability.CALL_CLIENT, _guard_driver_involved,
        ready=_client_reachable, unready_reason="client phone number is missing",
    ),
    ActionSpec(ActionId.REJECT_ASSIGNMENT, Capability.ACCEPT_CARGO, _guard_reject_assignment),
)

_CLIENT_CATALOGUE: tuple[ActionSpec, ...] = (
    ActionSpec(ActionId.TRACK_CARGO, Capability.TRACK_OWN_CARGO, _guard_client_track),
    ActionSpec(
        ActionId.CALL_DRIVER, Capability.CALL_DRIVER, _guard_client_call_driver,
        ready=_driver_reachable, unready_reason="driver phone number is missing",
    ),
    ActionSpec(ActionId.DOWNLOAD_RECEIPT, Capability.DOWNLOAD_RECEIPT, _guard_client_receipt),
    ActionSpec(
        ActionId.CANCEL_CARGO, Capability.CANCEL_OWN_CARGO, _guard_transition,
        target=CargoStatus.CANCELLED,
    ),
)

CATALOGUES: dict[Role, tuple[ActionSpec, ...]] = {
    Role.ADMIN: _ADMIN_CATALOGUE,
    Role.DRIVER: _DRIVER_CATALOGUE,
    Role.CLIENT: _CLIENT_CATALOGUE,
}


def _catalogue_for(actor: Actor) -> tuple[ActionSpec, ...]:
    role = actor.known_role
    return CATALOGUES.get(role, ()) if role is not None else ()


def _context(
    cargo: Cargo,
    assignment: DeliveryAssignment | None,
    actor: Actor,
    now: datetime | None,
) -> ActionContext:
    # An assignment for another cargo is no assignment at all here
    if assignment is not None and assignment.cargo_id != cargo.id:
        assignment = None
    return ActionContext(actor=actor, cargo=cargo, assignment=assignment, now=now or utc_now())


def resolve_actions(
    cargo: Cargo,
    assignment: DeliveryAssignment | None,
    actor: Actor,
    now: datetime | None = None,
) -> list[Action]:
    """Ordered actions *actor* may take on *cargo* right now.

    Total: never raises; returns an empty list when nothing is permitted.
    """
    ctx = _context(cargo, assignment, actor, now)
    capabilities = capabilities_for(actor.role)

    actions: list[Action] = []
    for spec in _catalogue_for(actor):
        if spec.capability not in capabilities:
            continue
        for target in spec.targets_for(ctx):
            try:
                spec.guard(ctx, target)
            except LifecycleError:
                continue
            actions.append(
                Action(
                    action_id=spec.action_id,
                    label=spec.label_for(target),
                    enabled=spec.is_ready(ctx),
                    target_status=target,
                )
            )
    return actions


def check_action(
    cargo: Cargo,
    assignment: DeliveryAssignment | None,
    actor: Actor,
    action_id: ActionId,
    target_status: CargoStatus | None = None,
    now: datetime | None = None,
) -> CargoStatus | None:
    """Raise the precise error that keeps *action_id* from being permitted.

    Returns:
        The resolved target status (fixed-target actions fill it in).
    """
    ctx = _context(cargo, assignment, actor, now)
    spec = next((s for s in _catalogue_for(actor) if s.action_id == action_id), None)
    if spec is None or spec.capability not in capabilities_for(actor.role):
        raise ForbiddenError(
            f"Role '{getattr(actor.role, 'value', actor.role)}' may not {action_id.value}",
        )

    if spec.dynamic_targets is None:
        if target_status is not None and target_status != spec.target:
            raise IllegalTransitionError(
                f"{action_id.value} cannot target {target_status.value}",
            )
        target_status = spec.target

    spec.guard(ctx, target_status)
    if not spec.is_ready(ctx):
        raise ValidationError(f"{action_id.value} is unavailable: {spec.unready_reason}")
    return target_status
