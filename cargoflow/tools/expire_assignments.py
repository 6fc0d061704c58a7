"""Expire pending assignments that are past their deadline.

Lazy expiry already makes them read as expired; this job persists it and
emits the ``AssignmentClosed`` events. Meant to run from cron.

Usage:
    python -m cargoflow.tools.expire_assignments
    python -m cargoflow.tools.expire_assignments --dry-run
    python -m cargoflow.tools.expire_assignments --as-of 2025-03-01T12:00:00+00:00
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import datetime, timedelta

from cargoflow.adapters.persistence.database import async_session_factory, engine
from cargoflow.adapters.persistence.repositories import (
    SqlAssignmentRepository,
    SqlCargoRepository,
    SqlEventPublisher,
)
from cargoflow.application.use_cases.apply_action import ApplyActionUseCase
from cargoflow.application.use_cases.sweep_assignments import (
    SweepExpiredAssignmentsUseCase,
    SweepResult,
)
from cargoflow.config import settings
from cargoflow.domain.services.lifecycle_orchestrator import LifecycleOrchestrator
from cargoflow.domain.value_objects.clock import as_utc, utc_now

logging.basicConfig(level=logging.INFO, format="%(levelname)s | %(message)s")
logger = logging.getLogger(__name__)


def _parse_as_of(raw: str | None) -> datetime:
    if not raw:
        return utc_now()
    return as_utc(datetime.fromisoformat(raw))


async def sweep(now: datetime, dry_run: bool = False) -> list[SweepResult]:
    async with async_session_factory() as session:
        assignments = SqlAssignmentRepository(session)

        if dry_run:
            stale = await assignments.get_stale_pending(now)
            for a in stale:
                logger.info(
                    "Would expire %s (cargo %s, driver %s, deadline %s)",
                    a.id, a.cargo_id, a.driver_id, a.expires_at.isoformat(),
                )
            return [SweepResult(a.id, a.cargo_id, expired=False) for a in stale]

        orchestrator = LifecycleOrchestrator(
            assignment_ttl=timedelta(minutes=settings.assignment_ttl_minutes),
            rejection_reason_min_length=settings.rejection_reason_min_length,
            strict=settings.debug,
        )
        apply_action = ApplyActionUseCase(
            orchestrator=orchestrator,
            cargo_repo=SqlCargoRepository(session),
            assignment_repo=assignments,
            publisher=SqlEventPublisher(session),
        )
        use_case = SweepExpiredAssignmentsUseCase(
            apply_action=apply_action,
            assignment_repo=assignments,
            system_actor_id=settings.system_actor_id,
        )
        results = await use_case.execute(now)
        await session.commit()
        return results


def main():
    parser = argparse.ArgumentParser(description="Expire stale pending delivery assignments")
    parser.add_argument(
        "--dry-run", action="store_true",
        help="Only list what would be expired",
    )
    parser.add_argument(
        "--as-of", type=str, default=None,
        help="Reference time in ISO 8601 (default: now, UTC)",
    )
    args = parser.parse_args()

    try:
        now = _parse_as_of(args.as_of)
    except ValueError:
        logger.error("Invalid --as-of value: %s", args.as_of)
        sys.exit(1)

    async def run_all():
        try:
            return await sweep(now, dry_run=args.dry_run)
        finally:
            await engine.dispose()

    results = asyncio.run(run_all())
    failed = [r for r in results if r.error]
    print(f"Stale assignments: {len(results)}, failed: {len(failed)}")
    if failed:
        sys.exit(2)


if __name__ == "__main__":
    main()
