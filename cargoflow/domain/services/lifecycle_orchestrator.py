"""LifecycleOrchestrator — the façade that applies one requested action.

Pure and synchronous: it takes immutable snapshots and returns new ones plus
the ordered events for notification and invoicing collaborators. Persistence
and optimistic locking belong to the caller.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta

from cargoflow.domain.entities.actor import Actor
from cargoflow.domain.entities.assignment import DeliveryAssignment
from cargoflow.domain.entities.cargo import Cargo
from cargoflow.domain.entities.events import (
    AssignmentAccepted,
    AssignmentClosed,
    AssignmentProposed,
    CargoStatusChanged,
    DomainEvent,
    InvoiceEligible,
    IssueReported,
)
from cargoflow.domain.errors import (
    ConflictError,
    IllegalTransitionError,
    InvalidStateError,
    UnknownActionError,
    ValidationError,
)
from cargoflow.domain.policies import assignment_negotiation as negotiation
from cargoflow.domain.policies import cargo_state_machine as machine
from cargoflow.domain.policies.action_resolver import check_action, resolve_actions
from cargoflow.domain.value_objects.clock import utc_now
from cargoflow.domain.value_objects.enums import ActionId, CargoStatus, DriverDecision

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActionRequest:
    """What the actor asks for, plus the inputs some actions need."""

    action_id: ActionId | str
    target_status: CargoStatus | str | None = None
    expected_version: int | None = None
    driver_id: str | None = None
    vehicle_id: str | None = None
    expires_at: datetime | None = None
    reason: str | None = None
    notes: str | None = None
    contact_phone: str | None = None


@dataclass(frozen=True)
class ApplyResult:
    """New snapshots and the events emitted, in order.

    ``assignment`` is the cargo's current assignment after the action;
    ``closed_assignment`` is a previous one terminalised on the way (a lazily
    expired assignment replaced by a new proposal).
    """

    cargo: Cargo
    assignment: DeliveryAssignment | None
    events: tuple[DomainEvent, ...] = ()
    closed_assignment: DeliveryAssignment | None = None

    @property
    def event_names(self) -> list[str]:
        return [e.name for e in self.events]


@dataclass
class _Step:
    actor: Actor
    cargo: Cargo
    assignment: DeliveryAssignment | None
    request: ActionRequest
    target: CargoStatus | None
    now: datetime
    events: list[DomainEvent] = field(default_factory=list)


_FIXED_TARGETS: dict[ActionId, CargoStatus] = {
    ActionId.PICK_UP: CargoStatus.PICKED_UP,
    ActionId.START_TRANSIT: CargoStatus.IN_TRANSIT,
    ActionId.MARK_DELIVERED: CargoStatus.DELIVERED,
    ActionId.CANCEL_CARGO: CargoStatus.CANCELLED,
}


def _with_driver_phone(cargo: Cargo, phone: str | None) -> Cargo:
    if not phone or not phone.strip():
        return cargo
    return replace(cargo, driver_phone=phone.strip())


class LifecycleOrchestrator:
    """Validates a requested action against the resolver and dispatches it."""

    def __init__(
        self,
        assignment_ttl: timedelta = timedelta(minutes=30),
        rejection_reason_min_length: int = negotiation.DEFAULT_REJECTION_REASON_MIN_LENGTH,
        strict: bool = False,
        id_factory: Callable[[], str] | None = None,
    ):
        self._ttl = assignment_ttl
        self._min_reason = rejection_reason_min_length
        self._strict = strict
        self._new_id = id_factory or (lambda: str(uuid.uuid4()))
        self._handlers: dict[ActionId, Callable[[_Step], ApplyResult]] = {
            ActionId.TRANSITION_CARGO: self._transition,
            ActionId.PICK_UP: self._transition,
            ActionId.START_TRANSIT: self._transition,
            ActionId.MARK_DELIVERED: self._transition,
            ActionId.CANCEL_CARGO: self._transition,
            ActionId.ACCEPT_CARGO: self._claim,
            ActionId.PROPOSE_ASSIGNMENT: self._propose,
            ActionId.UPDATE_ASSIGNMENT: self._update,
            ActionId.CANCEL_ASSIGNMENT: self._cancel_assignment,
            ActionId.EXPIRE_ASSIGNMENT: self._expire,
            ActionId.ACCEPT_ASSIGNMENT: self._accept,
            ActionId.REJECT_ASSIGNMENT: self._reject,
            ActionId.REPORT_ISSUE: self._report_issue,
            ActionId.CALL_CLIENT: self._no_change,
            ActionId.CALL_DRIVER: self._no_change,
            ActionId.TRACK_CARGO: self._no_change,
            ActionId.DOWNLOAD_RECEIPT: self._no_change,
            ActionId.UPLOAD_PROOF: self._no_change,
        }

    def apply(
        self,
        actor: Actor,
        cargo: Cargo,
        assignment: DeliveryAssignment | None,
        request: ActionRequest,
        now: datetime | None = None,
    ) -> ApplyResult:
        """Apply *request* for *actor* and return the new state.

        Steps:
        1. Parse the action id (unknown ids are a programming error).
        2. Reject stale snapshots (``expected_version`` mismatch).
        3. Re-check the action against ``resolve_actions`` for these exact
           inputs; if absent, raise the precise reason.
        4. Dispatch to the cargo state machine or the negotiation machine.

        Raises:
            LifecycleError subclasses for every expected refusal.
            UnknownActionError in strict mode for an unknown action id.
        """
        now = now or utc_now()
        action_id = self._parse_action(request.action_id)
        target = (
            machine.parse_status(request.target_status)
            if request.target_status is not None
            else None
        )
        if action_id == ActionId.TRANSITION_CARGO and target is None:
            raise ValidationError("target_status is required", {"field": "target_status"})

        if assignment is not None and assignment.cargo_id != cargo.id:
            raise InvalidStateError(
                f"Assignment {assignment.id} does not belong to cargo {cargo.id}",
            )
        if request.expected_version is not None and request.expected_version != cargo.version:
            raise ConflictError(
                f"Cargo {cargo.id} is at version {cargo.version}, "
                f"request expected {request.expected_version}",
                {"current_version": cargo.version},
            )

        permitted = resolve_actions(cargo, assignment, actor, now)
        if not any(a.enabled and a.matches(action_id, target) for a in permitted):
            logger.warning(
                "Rejected %s on cargo %s for %s %s (status=%s)",
                action_id.value, cargo.id, actor.role, actor.id, cargo.status.value,
            )
            check_action(cargo, assignment, actor, action_id, target, now)
            raise IllegalTransitionError(f"{action_id.value} is not available")

        step = _Step(
            actor=actor,
            cargo=cargo,
            assignment=assignment,
            request=request,
            target=target or _FIXED_TARGETS.get(action_id),
            now=now,
        )
        result = self._handlers[action_id](step)
        logger.info(
            "Applied %s on cargo %s by %s %s → status=%s, events=%s",
            action_id.value, cargo.id, actor.role, actor.id,
            result.cargo.status.value, result.event_names,
        )
        return result

    def _parse_action(self, raw: ActionId | str) -> ActionId:
        try:
            action_id = ActionId(raw)
        except ValueError:
            if self._strict:
                raise UnknownActionError(f"Unknown action id: {raw!r}") from None
            logger.error("Unknown action id requested: %r", raw)
            raise IllegalTransitionError(f"Unknown action: {raw}") from None
        if action_id not in self._handlers:
            raise UnknownActionError(f"No handler registered for {action_id.value}")
        return action_id

    # ─── Handlers ────────────────────────────────────────────────────

    def _transition(self, s: _Step) -> ApplyResult:
        cargo = machine.request_transition(s.cargo, s.target, s.actor, s.assignment, s.now)
        s.events.append(
            CargoStatusChanged(
                cargo_id=cargo.id, occurred_at=s.now,
                from_status=s.cargo.status, to_status=cargo.status, actor_id=s.actor.id,
            )
        )

        assignment = s.assignment
        if cargo.status == CargoStatus.CANCELLED and assignment is not None:
            closed = negotiation.close_for_cancelled_cargo(assignment, s.now)
            if closed is not None:
                assignment = closed
                s.events.append(
                    AssignmentClosed(
                        cargo_id=cargo.id, occurred_at=s.now, assignment_id=closed.id,
                        outcome=closed.assignment_status, reason="cargo cancelled",
                    )
                )
        if cargo.status == CargoStatus.DELIVERED:
            s.events.append(InvoiceEligible(cargo_id=cargo.id, occurred_at=s.now))

        return ApplyResult(cargo=cargo, assignment=assignment, events=tuple(s.events))

    def _claim(self, s: _Step) -> ApplyResult:
        cargo, accepted = machine.claim_cargo(
            s.cargo, s.actor, s.request.vehicle_id, s.assignment, s.now,
            assignment_id=self._new_id(),
        )
        closed = self._superseded(s)
        cargo = _with_driver_phone(cargo, s.request.contact_phone)
        s.events.extend([
            AssignmentAccepted(
                cargo_id=cargo.id, occurred_at=s.now, assignment_id=accepted.id,
                driver_id=accepted.driver_id, vehicle_id=accepted.vehicle_id,
            ),
            CargoStatusChanged(
                cargo_id=cargo.id, occurred_at=s.now,
                from_status=s.cargo.status, to_status=cargo.status, actor_id=s.actor.id,
            ),
        ])
        return ApplyResult(
            cargo=cargo, assignment=accepted, events=tuple(s.events),
            closed_assignment=closed,
        )

    def _propose(self, s: _Step) -> ApplyResult:
        closed = self._superseded(s)
        expires_at = s.request.expires_at or s.now + self._ttl
        proposed = negotiation.propose_assignment(
            s.cargo, s.assignment, s.request.driver_id, s.request.vehicle_id, expires_at,
            now=s.now, notes=s.request.notes, created_by=s.actor.id,
            assignment_id=self._new_id(),
        )
        s.events.append(
            AssignmentProposed(
                cargo_id=s.cargo.id, occurred_at=s.now, assignment_id=proposed.id,
                driver_id=proposed.driver_id, vehicle_id=proposed.vehicle_id,
                expires_at=proposed.expires_at,
            )
        )
        return ApplyResult(
            cargo=s.cargo, assignment=proposed, events=tuple(s.events),
            closed_assignment=closed,
        )

    def _superseded(self, s: _Step) -> DeliveryAssignment | None:
        """Materialise a lazily expired current assignment before replacing it."""
        if s.assignment is None or not s.assignment.is_stale_pending(s.now):
            return None
        expired = negotiation.expire_assignment(s.assignment, s.now)
        s.events.append(
            AssignmentClosed(
                cargo_id=s.cargo.id, occurred_at=s.now, assignment_id=expired.id,
                outcome=expired.assignment_status,
            )
        )
        return expired

    def _update(self, s: _Step) -> ApplyResult:
        updated = negotiation.update_assignment(
            s.assignment, s.actor, s.request.driver_id, s.request.vehicle_id,
            s.request.notes, s.now,
        )
        if (updated.driver_id, updated.vehicle_id) != (
            s.assignment.driver_id, s.assignment.vehicle_id,
        ):
            s.events.append(
                AssignmentProposed(
                    cargo_id=s.cargo.id, occurred_at=s.now, assignment_id=updated.id,
                    driver_id=updated.driver_id, vehicle_id=updated.vehicle_id,
                    expires_at=updated.expires_at,
                )
            )
        return ApplyResult(cargo=s.cargo, assignment=updated, events=tuple(s.events))

    def _cancel_assignment(self, s: _Step) -> ApplyResult:
        cancelled = negotiation.cancel_assignment(s.assignment, s.actor, s.now)
        return self._closed(s, cancelled, s.request.reason)

    def _expire(self, s: _Step) -> ApplyResult:
        expired = negotiation.expire_assignment(s.assignment, s.now)
        return self._closed(s, expired, None)

    def _reject(self, s: _Step) -> ApplyResult:
        rejected, _ = negotiation.driver_respond(
            s.assignment, s.cargo, s.actor, DriverDecision.REJECT, s.request.reason,
            s.now, min_reason_length=self._min_reason,
        )
        return self._closed(s, rejected, rejected.rejection_reason)

    def _closed(
        self,
        s: _Step,
        assignment: DeliveryAssignment,
        reason: str | None,
    ) -> ApplyResult:
        s.events.append(
            AssignmentClosed(
                cargo_id=s.cargo.id, occurred_at=s.now, assignment_id=assignment.id,
                outcome=assignment.assignment_status, reason=reason,
            )
        )
        return ApplyResult(cargo=s.cargo, assignment=assignment, events=tuple(s.events))

    def _accept(self, s: _Step) -> ApplyResult:
        accepted, cargo = negotiation.driver_respond(
            s.assignment, s.cargo, s.actor, DriverDecision.ACCEPT, now=s.now,
        )
        cargo = _with_driver_phone(cargo, s.request.contact_phone)
        s.events.append(
            AssignmentAccepted(
                cargo_id=cargo.id, occurred_at=s.now, assignment_id=accepted.id,
                driver_id=accepted.driver_id, vehicle_id=accepted.vehicle_id,
            )
        )
        return ApplyResult(cargo=cargo, assignment=accepted, events=tuple(s.events))

    def _report_issue(self, s: _Step) -> ApplyResult:
        s.events.append(
            IssueReported(
                cargo_id=s.cargo.id, occurred_at=s.now, actor_id=s.actor.id,
                notes=s.request.notes or s.request.reason,
            )
        )
        return ApplyResult(cargo=s.cargo, assignment=s.assignment, events=tuple(s.events))

    def _no_change(self, s: _Step) -> ApplyResult:
        return ApplyResult(cargo=s.cargo, assignment=s.assignment)
