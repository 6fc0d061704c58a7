"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from cargoflow.application.ports.assignment_repo import AssignmentRepository
from cargoflow.application.ports.cargo_repo import CargoRepository
from cargoflow.application.ports.event_publisher import EventPublisher
from cargoflow.application.ports.pricing_port import PricingPort
from cargoflow.domain.entities.actor import Actor
from cargoflow.domain.errors import ConflictError
from cargoflow.domain.value_objects.enums import AssignmentStatus, Role

# ─── In-memory fakes ────────────────────────────────────────────────


class FakeCargoRepo(CargoRepository):
    def __init__(self, cargos=()):
        self.cargos = {c.id: c for c in cargos}

    async def save(self, cargo):
        self.cargos[cargo.id] = cargo
        return cargo

    async def get_by_id(self, cargo_id):
        return self.cargos.get(cargo_id)

    async def update(self, cargo, expected_version):
        stored = self.cargos.get(cargo.id)
        if stored is None or stored.version != expected_version:
            raise ConflictError(f"Cargo {cargo.id} was modified concurrently")
        self.cargos[cargo.id] = cargo
        return cargo

    async def list_by_client(self, client_id):
        return [c for c in self.cargos.values() if c.client_id == client_id]


class FakeAssignmentRepo(AssignmentRepository):
    def __init__(self, assignments=()):
        self.assignments = {a.id: a for a in assignments}

    async def save(self, assignment):
        live = (AssignmentStatus.PENDING, AssignmentStatus.ACCEPTED)
        active = assignment.assignment_status in live and [
            a for a in self.assignments.values()
            if a.cargo_id == assignment.cargo_id
            and a.assignment_status in live
        ]
        if active:
            raise ConflictError(f"Cargo {assignment.cargo_id} already has an active assignment")
        self.assignments[assignment.id] = assignment
        return assignment

    async def update(self, assignment, expected_version):
        stored = self.assignments.get(assignment.id)
        if stored is None or stored.version != expected_version:
            raise ConflictError(f"Assignment {assignment.id} was modified concurrently")
        self.assignments[assignment.id] = assignment
        return assignment

    async def get_by_id(self, assignment_id):
        return self.assignments.get(assignment_id)

    async def get_current_for_cargo(self, cargo_id):
        mine = [a for a in self.assignments.values() if a.cargo_id == cargo_id]
        return max(mine, key=lambda a: a.assigned_at) if mine else None

    async def list_for_cargo(self, cargo_id):
        return sorted(
            (a for a in self.assignments.values() if a.cargo_id == cargo_id),
            key=lambda a: a.assigned_at,
        )

    async def list(self, status=None, driver_id=None, vehicle_id=None):
        rows = list(self.assignments.values())
        if status is not None:
            rows = [a for a in rows if a.assignment_status == status]
        if driver_id is not None:
            rows = [a for a in rows if a.driver_id == driver_id]
        if vehicle_id is not None:
            rows = [a for a in rows if a.vehicle_id == vehicle_id]
        return sorted(rows, key=lambda a: a.assigned_at)

    async def get_stale_pending(self, now):
        return [a for a in self.assignments.values() if a.is_stale_pending(now)]


class FakePublisher(EventPublisher):
    def __init__(self):
        self.published = []

    async def publish(self, events):
        self.published.extend(events)


class FakePricing(PricingPort):
    def __init__(self, price="125.50", fail=False):
        self.price = price
        self.fail = fail
        self.calls = []

    async def estimate(self, weight_kg, distance_km, category):
        self.calls.append((weight_kg, distance_km, category))
        if self.fail:
            raise RuntimeError("pricing service down")
        return Decimal(self.price)


# ─── Fixtures ───────────────────────────────────────────────────────


@pytest.fixture
def now():
    return datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def admin():
    return Actor(role=Role.ADMIN, id="admin-1")


@pytest.fixture
def driver():
    return Actor(role=Role.DRIVER, id="driver-1")


@pytest.fixture
def other_driver():
    return Actor(role=Role.DRIVER, id="driver-2")


@pytest.fixture
def client():
    return Actor(role=Role.CLIENT, id="client-1")



@pytest.fixture
def cargo_repo():
    return FakeCargoRepo()


@pytest.fixture
def assignment_repo():
    return FakeAssignmentRepo()


@pytest.fixture
def publisher():
    return FakePublisher()


@pytest.fixture
def pricing():
    return FakePricing()
