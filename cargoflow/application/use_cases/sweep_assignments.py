"""SweepExpiredAssignmentsUseCase — materialise lazy expiry in bulk."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from cargoflow.application.ports.assignment_repo import AssignmentRepository
from cargoflow.application.use_cases.apply_action import ApplyActionUseCase
from cargoflow.domain.entities.actor import Actor
from cargoflow.domain.errors import ConflictError, LifecycleError
from cargoflow.domain.services.lifecycle_orchestrator import ActionRequest
from cargoflow.domain.value_objects.clock import utc_now
from cargoflow.domain.value_objects.enums import ActionId, Role

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    """Outcome for one stale assignment."""

    assignment_id: str
    cargo_id: str
    expired: bool
    error: str | None = None


class SweepExpiredAssignmentsUseCase:
    """Apply ``expire_assignment`` to every stored-pending assignment past its deadline.

    Runs as the system actor (admin role). One failure never stops the batch.
    """

    def __init__(
        self,
        apply_action: ApplyActionUseCase,
        assignment_repo: AssignmentRepository,
        system_actor_id: str = "system",
    ):
        self._apply = apply_action
        self._assignments = assignment_repo
        self._actor = Actor(role=Role.ADMIN, id=system_actor_id)

    async def execute(self, now: datetime | None = None) -> list[SweepResult]:
        now = now or utc_now()
        stale = await self._assignments.get_stale_pending(now)
        logger.info("Sweeping %d stale pending assignments", len(stale))

        results = []
        for assignment in stale:
            try:
                await self._apply.execute(
                    assignment.cargo_id,
                    self._actor,
                    ActionRequest(action_id=ActionId.EXPIRE_ASSIGNMENT),
                    assignment_id=assignment.id,
                    now=now,
                )
                results.append(SweepResult(assignment.id, assignment.cargo_id, expired=True))
            except ConflictError as e:
                # Someone else closed or replaced it meanwhile
                logger.warning("Assignment %s changed during sweep: %s", assignment.id, e.message)
                results.append(
                    SweepResult(assignment.id, assignment.cargo_id, expired=False, error=e.message)
                )
            except LifecycleError as e:
                logger.warning("Assignment %s not expired: %s", assignment.id, e.message)
                results.append(
                    SweepResult(assignment.id, assignment.cargo_id, expired=False, error=e.message)
                )
            except Exception as e:
                logger.exception("Error expiring assignment %s", assignment.id)
                results.append(
                    SweepResult(assignment.id, assignment.cargo_id, expired=False, error=str(e))
                )

        expired = sum(1 for r in results if r.expired)
        logger.info("Sweep complete: %d/%d expired", expired, len(results))
        return results
