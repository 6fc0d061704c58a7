"""Tests for domain entities."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from cargoflow.domain.entities.actor import Actor
from cargoflow.domain.entities.assignment import DeliveryAssignment
from cargoflow.domain.entities.cargo import Cargo
from cargoflow.domain.entities.events import AssignmentClosed, CargoStatusChanged
from cargoflow.domain.errors import ValidationError
from cargoflow.domain.value_objects.enums import AssignmentStatus, CargoStatus, Role

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def _assignment(status=AssignmentStatus.PENDING, expires_in=timedelta(minutes=30)):
    return DeliveryAssignment(
        id="a1", cargo_id="c1", driver_id="d1", vehicle_id="v1",
        assigned_at=NOW, expires_at=NOW + expires_in, assignment_status=status,
    )


def test_cargo_defaults():
    c = Cargo(id="c1", client_id="u1", weight_kg=Decimal("10"), distance_km=Decimal("5"))
    assert c.status == CargoStatus.PENDING
    assert c.version == 0
    assert not c.has_driver()


@pytest.mark.parametrize("weight,distance", [
    (Decimal("0"), Decimal("5")),
    (Decimal("-1"), Decimal("5")),
    (Decimal("10"), Decimal("0")),
    (None, Decimal("5")),
    (Decimal("Infinity"), Decimal("5")),
    (Decimal("NaN"), Decimal("5")),
    (Decimal("10"), Decimal("-Infinity")),
])
def test_cargo_rejects_invalid_measures(weight, distance):
    with pytest.raises(ValidationError):
        Cargo(id="c1", client_id="u1", weight_kg=weight, distance_km=distance)


def test_cargo_ownership():
    c = Cargo(id="c1", client_id="u1", weight_kg=Decimal("1"), distance_km=Decimal("1"),
              driver_id="d1")
    assert c.is_owned_by("u1")
    assert not c.is_owned_by(None)
    assert c.is_driven_by("d1")
    assert not c.is_driven_by("d2")


def test_pending_reads_as_expired_after_deadline():
    a = _assignment(expires_in=timedelta(seconds=-1))
    assert a.assignment_status == AssignmentStatus.PENDING
    assert a.status_at(NOW) == AssignmentStatus.EXPIRED
    assert a.is_stale_pending(NOW)
    assert not a.is_active_at(NOW)


def test_deadline_itself_is_still_pending():
    a = _assignment(expires_in=timedelta(0))
    assert a.status_at(NOW) == AssignmentStatus.PENDING


def test_terminal_status_returned_as_stored():
    a = _assignment(status=AssignmentStatus.REJECTED, expires_in=timedelta(seconds=-1))
    assert a.status_at(NOW) == AssignmentStatus.REJECTED
    assert not a.is_stale_pending(NOW)


def test_accepted_is_active_past_deadline():
    a = _assignment(status=AssignmentStatus.ACCEPTED, expires_in=timedelta(seconds=-1))
    assert a.is_active_at(NOW)


def test_actor_known_role():
    assert Actor(role="driver", id="d1").known_role is Role.DRIVER
    assert Actor(role="auditor").known_role is None


def test_event_payload_is_json_friendly():
    e = CargoStatusChanged(
        cargo_id="c1", occurred_at=NOW,
        from_status=CargoStatus.PENDING, to_status=CargoStatus.QUOTED, actor_id="admin-1",
    )
    assert e.name == "CargoStatusChanged"
    assert e.to_payload() == {
        "cargo_id": "c1",
        "occurred_at": NOW.isoformat(),
        "from_status": "pending",
        "to_status": "quoted",
        "actor_id": "admin-1",
    }


def test_closed_event_carries_outcome():
    e = AssignmentClosed(cargo_id="c1", occurred_at=NOW, assignment_id="a1",
                         outcome=AssignmentStatus.EXPIRED)
    assert e.to_payload()["outcome"] == "expired"
    assert e.to_payload()["reason"] is None
