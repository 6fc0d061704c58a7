"""DeliveryAssignment entity — one proposed (driver, vehicle) pairing for a cargo."""

from dataclasses import dataclass
from datetime import datetime

from cargoflow.domain.value_objects.enums import AssignmentStatus


@dataclass(frozen=True)
class DeliveryAssignment:
    id: str
    cargo_id: str
    driver_id: str
    vehicle_id: str
    assigned_at: datetime
    expires_at: datetime
    assignment_status: AssignmentStatus = AssignmentStatus.PENDING
    driver_responded_at: datetime | None = None
    rejection_reason: str | None = None
    notes: str | None = None
    created_by: str | None = None
    version: int = 0

    def status_at(self, now: datetime) -> AssignmentStatus:
        """Effective status at *now*.

        A stored ``pending`` past its deadline reads as ``expired`` without
        touching stored state; terminal statuses are returned as stored.
        """
        if self.assignment_status == AssignmentStatus.PENDING and now > self.expires_at:
            return AssignmentStatus.EXPIRED
        return self.assignment_status

    def is_active_at(self, now: datetime) -> bool:
        """Pending (and not expired) or accepted: blocks a new proposal."""
        return self.status_at(now) in (AssignmentStatus.PENDING, AssignmentStatus.ACCEPTED)

    def is_stale_pending(self, now: datetime) -> bool:
        return (
            self.assignment_status == AssignmentStatus.PENDING
            and self.status_at(now) == AssignmentStatus.EXPIRED
        )

    def belongs_to_driver(self, driver_id: str | None) -> bool:
        return driver_id is not None and self.driver_id == driver_id
