"""Tests for the LifecycleOrchestrator."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from itertools import count, product

import pytest

from cargoflow.domain.entities.actor import Actor
from cargoflow.domain.entities.assignment import DeliveryAssignment
from cargoflow.domain.entities.cargo import Cargo
from cargoflow.domain.errors import (
    ConflictError,
    ForbiddenError,
    IllegalTransitionError,
    InvalidStateError,
    LifecycleError,
    UnknownActionError,
    ValidationError,
)
from cargoflow.domain.policies.action_resolver import resolve_actions
from cargoflow.domain.services.lifecycle_orchestrator import ActionRequest, LifecycleOrchestrator
from cargoflow.domain.value_objects.enums import ActionId, AssignmentStatus, CargoStatus, Role

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
ADMIN = Actor(role=Role.ADMIN, id="admin-1")
DRIVER = Actor(role=Role.DRIVER, id="driver-1")
CLIENT = Actor(role=Role.CLIENT, id="client-1")
REASON = "Truck is in the workshop"


def _orchestrator(**kw) -> LifecycleOrchestrator:
    ids = count(1)
    return LifecycleOrchestrator(id_factory=lambda: f"new-{next(ids)}", **kw)


def _cargo(status=CargoStatus.PENDING, **kw) -> Cargo:
    kw.setdefault("client_phone", "+7 701 000 0001")
    return Cargo(
        id="c1", client_id="client-1", weight_kg=Decimal("100"),
        distance_km=Decimal("42"), status=status, **kw,
    )


def _assignment(status=AssignmentStatus.PENDING, expires_in=timedelta(minutes=30)):
    return DeliveryAssignment(
        id="a1", cargo_id="c1", driver_id="driver-1", vehicle_id="v1",
        assigned_at=NOW - timedelta(minutes=1), expires_at=NOW + expires_in,
        assignment_status=status,
    )


# ─── Dispatch & events ──────────────────────────────────────────────


def test_admin_transition_emits_status_changed():
    result = _orchestrator().apply(
        ADMIN, _cargo(), None,
        ActionRequest(ActionId.TRANSITION_CARGO, target_status="quoted"), NOW,
    )
    assert result.cargo.status == CargoStatus.QUOTED
    assert result.event_names == ["CargoStatusChanged"]
    assert result.events[0].from_status == CargoStatus.PENDING
    assert result.events[0].actor_id == "admin-1"


def test_transition_requires_target():
    with pytest.raises(ValidationError):
        _orchestrator().apply(ADMIN, _cargo(), None, ActionRequest("transition_cargo"), NOW)


def test_propose_uses_default_ttl():
    result = _orchestrator(assignment_ttl=timedelta(minutes=15)).apply(
        ADMIN, _cargo(CargoStatus.ACCEPTED), None,
        ActionRequest("propose_assignment", driver_id="driver-1", vehicle_id="v1"), NOW,
    )
    assert result.assignment.id == "new-1"
    assert result.assignment.expires_at == NOW + timedelta(minutes=15)
    assert result.assignment.created_by == "admin-1"
    assert result.event_names == ["AssignmentProposed"]
    assert result.closed_assignment is None


def test_propose_over_stale_assignment_closes_it_first():
    stale = _assignment(expires_in=timedelta(seconds=-1))
    result = _orchestrator().apply(
        ADMIN, _cargo(CargoStatus.ACCEPTED), stale,
        ActionRequest("propose_assignment", driver_id="driver-2", vehicle_id="v2"), NOW,
    )
    assert result.closed_assignment.id == "a1"
    assert result.closed_assignment.assignment_status == AssignmentStatus.EXPIRED
    assert result.assignment.driver_id == "driver-2"
    assert result.event_names == ["AssignmentClosed", "AssignmentProposed"]


def test_driver_accepts_offer():
    result = _orchestrator().apply(
        DRIVER, _cargo(CargoStatus.ACCEPTED), _assignment(),
        ActionRequest("accept_assignment", contact_phone="+7 702 000 0002"), NOW,
    )
    assert result.assignment.assignment_status == AssignmentStatus.ACCEPTED
    assert result.cargo.driver_id == "driver-1"
    assert result.cargo.driver_phone == "+7 702 000 0002"
    assert result.cargo.status == CargoStatus.ACCEPTED
    assert result.event_names == ["AssignmentAccepted"]


def test_driver_rejects_offer():
    result = _orchestrator().apply(
        DRIVER, _cargo(CargoStatus.ACCEPTED), _assignment(),
        ActionRequest("reject_assignment", reason=REASON), NOW,
    )
    assert result.assignment.assignment_status == AssignmentStatus.REJECTED
    assert result.events[0].reason == REASON


def test_reject_reason_length_is_configured():
    with pytest.raises(ValidationError):
        _orchestrator(rejection_reason_min_length=40).apply(
            DRIVER, _cargo(CargoStatus.ACCEPTED), _assignment(),
            ActionRequest("reject_assignment", reason=REASON), NOW,
        )


def test_driver_claims_cargo():
    result = _orchestrator().apply(
        DRIVER, _cargo(CargoStatus.PARTIALLY_ASSIGNED), None,
        ActionRequest("accept_cargo", vehicle_id="truck-7"), NOW,
    )
    assert result.cargo.status == CargoStatus.FULLY_ASSIGNED
    assert result.assignment.assignment_status == AssignmentStatus.ACCEPTED
    assert result.event_names == ["AssignmentAccepted", "CargoStatusChanged"]


def test_driver_claims_pending_cargo():
    result = _orchestrator().apply(
        DRIVER, _cargo(), None,
        ActionRequest("accept_cargo", vehicle_id="truck-7", contact_phone="+7 702 000 0002"), NOW,
    )
    assert result.cargo.status == CargoStatus.ACCEPTED
    assert result.cargo.driver_phone == "+7 702 000 0002"
    assert result.assignment.driver_id == "driver-1"
    assert result.event_names == ["AssignmentAccepted", "CargoStatusChanged"]

    # The accepted assignment lets the admin finish the assignment step
    follow_up = _orchestrator().apply(
        ADMIN, result.cargo, result.assignment,
        ActionRequest("transition_cargo", target_status="fully_assigned"), NOW,
    )
    assert follow_up.cargo.status == CargoStatus.FULLY_ASSIGNED


def test_propose_with_naive_deadline():
    result = _orchestrator().apply(
        ADMIN, _cargo(CargoStatus.ACCEPTED), None,
        ActionRequest("propose_assignment", driver_id="d1", vehicle_id="v1",
                      expires_at=datetime(2030, 1, 1)),
        NOW,
    )
    assert result.assignment.expires_at == datetime(2030, 1, 1, tzinfo=timezone.utc)


def test_delivery_emits_invoice_eligible():
    cargo = _cargo(CargoStatus.IN_TRANSIT, driver_id="driver-1", vehicle_id="v1")
    result = _orchestrator().apply(
        DRIVER, cargo, _assignment(AssignmentStatus.ACCEPTED), ActionRequest("mark_delivered"), NOW,
    )
    assert result.cargo.status == CargoStatus.DELIVERED
    assert result.event_names == ["CargoStatusChanged", "InvoiceEligible"]


def test_cancel_cargo_closes_pending_assignment():
    result = _orchestrator().apply(
        ADMIN, _cargo(CargoStatus.ACCEPTED), _assignment(),
        ActionRequest("transition_cargo", target_status="cancelled"), NOW,
    )
    assert result.cargo.status == CargoStatus.CANCELLED
    assert result.assignment.assignment_status == AssignmentStatus.CANCELLED
    assert result.event_names == ["CargoStatusChanged", "AssignmentClosed"]


def test_client_cancels_via_own_action():
    result = _orchestrator().apply(CLIENT, _cargo(), None, ActionRequest("cancel_cargo"), NOW)
    assert result.cargo.status == CargoStatus.CANCELLED


def test_report_issue_changes_nothing_but_emits():
    cargo = _cargo(CargoStatus.IN_TRANSIT)
    result = _orchestrator().apply(
        ADMIN, cargo, None, ActionRequest("report_issue", notes="Pallet damaged"), NOW,
    )
    assert result.cargo == cargo
    assert result.events[0].notes == "Pallet damaged"


def test_call_is_a_no_op():
    cargo = _cargo()
    result = _orchestrator().apply(ADMIN, cargo, None, ActionRequest("call_client"), NOW)
    assert result.cargo is cargo
    assert result.events == ()


# ─── Refusals ───────────────────────────────────────────────────────


def test_stale_expected_version_conflicts():
    with pytest.raises(ConflictError):
        _orchestrator().apply(
            ADMIN, _cargo(), None,
            ActionRequest("transition_cargo", target_status="quoted", expected_version=3), NOW,
        )


def test_scenario_b_through_orchestrator():
    with pytest.raises(ForbiddenError):
        _orchestrator().apply(
            CLIENT, _cargo(CargoStatus.PICKED_UP), None, ActionRequest("cancel_cargo"), NOW,
        )


def test_scenario_c_through_orchestrator():
    stale = _assignment(expires_in=timedelta(seconds=-1))
    with pytest.raises(IllegalTransitionError):
        _orchestrator().apply(
            DRIVER, _cargo(CargoStatus.ACCEPTED), stale, ActionRequest("accept_assignment"), NOW,
        )


def test_illegal_edge_through_orchestrator():
    with pytest.raises(IllegalTransitionError):
        _orchestrator().apply(
            ADMIN, _cargo(), None,
            ActionRequest("transition_cargo", target_status="delivered"), NOW,
        )


def test_assignment_of_other_cargo_is_invalid_state():
    foreign = DeliveryAssignment(
        id="a2", cargo_id="c2", driver_id="driver-1", vehicle_id="v1",
        assigned_at=NOW, expires_at=NOW + timedelta(minutes=5),
    )
    with pytest.raises(InvalidStateError):
        _orchestrator().apply(DRIVER, _cargo(CargoStatus.ACCEPTED), foreign,
                              ActionRequest("accept_assignment"), NOW)


def test_unknown_action_lenient_mode():
    with pytest.raises(IllegalTransitionError):
        _orchestrator().apply(ADMIN, _cargo(), None, ActionRequest("teleport"), NOW)


def test_unknown_action_strict_mode():
    with pytest.raises(UnknownActionError):
        _orchestrator(strict=True).apply(ADMIN, _cargo(), None, ActionRequest("teleport"), NOW)


# ─── Resolver/orchestrator agreement ───────────────────────────────

ACTORS = [
    ADMIN, DRIVER, CLIENT,
    Actor(role=Role.DRIVER, id="driver-2"),
    Actor(role=Role.CLIENT, id="client-2"),
    Actor(role="auditor", id="x"),
]
ASSIGNMENTS = [
    None,
    _assignment(),
    _assignment(expires_in=timedelta(seconds=-1)),
    _assignment(AssignmentStatus.ACCEPTED),
]


def _request(action_id, target=None) -> ActionRequest:
    return ActionRequest(
        action_id, target_status=target, driver_id="driver-2", vehicle_id="v9",
        reason=REASON, notes="note",
    )


@pytest.mark.parametrize("status,assignment", list(product(CargoStatus, ASSIGNMENTS)))
def test_resolver_and_orchestrator_agree(status, assignment):
    orchestrator = _orchestrator()
    driver_bound = assignment is not None and assignment.assignment_status == AssignmentStatus.ACCEPTED
    cargo = _cargo(status, driver_id="driver-1" if driver_bound else None)

    for actor in ACTORS:
        permitted = resolve_actions(cargo, assignment, actor, NOW)
        enabled = {(a.action_id, a.target_status) for a in permitted if a.enabled}

        for action_id, target in enabled:
            orchestrator.apply(actor, cargo, assignment, _request(action_id, target), NOW)

        for action_id in ActionId:
            targets = list(CargoStatus) if action_id == ActionId.TRANSITION_CARGO else [None]
            for target in targets:
                if any(a.enabled and a.matches(action_id, target) for a in permitted):
                    continue
                with pytest.raises(LifecycleError):
                    orchestrator.apply(actor, cargo, assignment, _request(action_id, target), NOW)
