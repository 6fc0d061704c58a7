"""Tests for SweepExpiredAssignmentsUseCase."""

from __future__ import annotations

from dataclasses import replace
from datetime import timedelta
from decimal import Decimal

import pytest

from cargoflow.application.use_cases.apply_action import ApplyActionUseCase
from cargoflow.application.use_cases.sweep_assignments import SweepExpiredAssignmentsUseCase
from cargoflow.domain.entities.assignment import DeliveryAssignment
from cargoflow.domain.entities.cargo import Cargo
from cargoflow.domain.services.lifecycle_orchestrator import LifecycleOrchestrator
from cargoflow.domain.value_objects.enums import AssignmentStatus, CargoStatus


def _cargo(cid) -> Cargo:
    return Cargo(
        id=cid, client_id="client-1", weight_kg=Decimal("1"),
        distance_km=Decimal("1"), status=CargoStatus.ACCEPTED,
    )


def _pending(aid, cargo_id, now, expires_in) -> DeliveryAssignment:
    return DeliveryAssignment(
        id=aid, cargo_id=cargo_id, driver_id="driver-1", vehicle_id="v1",
        assigned_at=now - timedelta(hours=1), expires_at=now + expires_in,
    )


@pytest.fixture
def sweep(cargo_repo, assignment_repo, publisher):
    apply_action = ApplyActionUseCase(
        orchestrator=LifecycleOrchestrator(),
        cargo_repo=cargo_repo,
        assignment_repo=assignment_repo,
        publisher=publisher,
    )
    return SweepExpiredAssignmentsUseCase(apply_action, assignment_repo, system_actor_id="cron")


@pytest.mark.asyncio
async def test_sweep_expires_only_stale(sweep, cargo_repo, assignment_repo, publisher, now):
    for cid in ("c1", "c2"):
        await cargo_repo.save(_cargo(cid))
    await assignment_repo.save(_pending("stale", "c1", now, timedelta(minutes=-1)))
    await assignment_repo.save(_pending("fresh", "c2", now, timedelta(minutes=10)))

    results = await sweep.execute(now)

    assert [(r.assignment_id, r.expired) for r in results] == [("stale", True)]
    assert assignment_repo.assignments["stale"].assignment_status == AssignmentStatus.EXPIRED
    assert assignment_repo.assignments["fresh"].assignment_status == AssignmentStatus.PENDING
    assert [e.name for e in publisher.published] == ["AssignmentClosed"]


@pytest.mark.asyncio
async def test_sweep_is_idempotent(sweep, cargo_repo, assignment_repo, now):
    await cargo_repo.save(_cargo("c1"))
    await assignment_repo.save(_pending("stale", "c1", now, timedelta(minutes=-1)))

    await sweep.execute(now)
    assert await sweep.execute(now) == []


@pytest.mark.asyncio
async def test_sweep_continues_after_conflict(sweep, cargo_repo, assignment_repo, now):
    for cid in ("c1", "c2"):
        await cargo_repo.save(_cargo(cid))
    await assignment_repo.save(_pending("raced", "c1", now, timedelta(minutes=-2)))
    await assignment_repo.save(_pending("stale", "c2", now, timedelta(minutes=-1)))

    # A concurrent writer bumps the first assignment between load and write
    original_get = assignment_repo.get_by_id

    async def racing_get(assignment_id):
        a = await original_get(assignment_id)
        if assignment_id == "raced":
            assignment_repo.assignments[a.id] = replace(a, version=a.version + 1)
        return a

    assignment_repo.get_by_id = racing_get

    results = {r.assignment_id: r for r in await sweep.execute(now)}

    assert results["raced"].expired is False
    assert results["raced"].error
    assert results["stale"].expired is True


@pytest.mark.asyncio
async def test_sweep_reports_missing_cargo(sweep, assignment_repo, now):
    await assignment_repo.save(_pending("orphan", "gone", now, timedelta(minutes=-1)))

    results = await sweep.execute(now)

    assert results[0].expired is False
    assert "not found" in results[0].error
