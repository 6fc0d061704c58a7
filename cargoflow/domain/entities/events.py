"""Domain events emitted by the lifecycle engine for external collaborators."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum

from cargoflow.domain.value_objects.enums import AssignmentStatus, CargoStatus


@dataclass(frozen=True)
class DomainEvent:
    cargo_id: str
    occurred_at: datetime

    @property
    def name(self) -> str:
        return type(self).__name__

    def to_payload(self) -> dict:
        """JSON-friendly dict (enums as values, datetimes as ISO strings)."""
        payload = {}
        for key, value in asdict(self).items():
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, datetime):
                value = value.isoformat()
            payload[key] = value
        return payload


@dataclass(frozen=True)
class CargoStatusChanged(DomainEvent):
    from_status: CargoStatus
    to_status: CargoStatus
    actor_id: str | None = None


@dataclass(frozen=True)
class AssignmentProposed(DomainEvent):
    assignment_id: str
    driver_id: str
    vehicle_id: str
    expires_at: datetime


@dataclass(frozen=True)
class AssignmentAccepted(DomainEvent):
    assignment_id: str
    driver_id: str
    vehicle_id: str


@dataclass(frozen=True)
class AssignmentClosed(DomainEvent):
    assignment_id: str
    outcome: AssignmentStatus
    reason: str | None = None


@dataclass(frozen=True)
class InvoiceEligible(DomainEvent):
    """Cargo reached ``delivered``; pricing may now be computed."""


@dataclass(frozen=True)
class IssueReported(DomainEvent):
    actor_id: str | None = None
    notes: str | None = None
