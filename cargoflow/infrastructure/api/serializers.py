"""Domain objects → API response dicts."""

from __future__ import annotations

from datetime import datetime

from cargoflow.domain.entities.assignment import DeliveryAssignment
from cargoflow.domain.entities.cargo import Cargo
from cargoflow.domain.entities.events import DomainEvent
from cargoflow.domain.policies.action_resolver import Action


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def serialize_cargo(c: Cargo) -> dict:
    return {
        "id": c.id,
        "client_id": c.client_id,
        "weight_kg": str(c.weight_kg),
        "distance_km": str(c.distance_km),
        "status": c.status.value,
        "status_label": c.status.display_name,
        "priority": c.priority.value,
        "category": c.category,
        "driver_id": c.driver_id,
        "vehicle_id": c.vehicle_id,
        "client_phone": c.client_phone,
        "driver_phone": c.driver_phone,
        "version": c.version,
        "updated_at": _iso(c.updated_at),
    }


def serialize_assignment(a: DeliveryAssignment, now: datetime) -> dict:
    """Stored fields plus the effective status at *now*."""
    return {
        "id": a.id,
        "cargo_id": a.cargo_id,
        "driver_id": a.driver_id,
        "vehicle_id": a.vehicle_id,
        "status": a.status_at(now).value,
        "stored_status": a.assignment_status.value,
        "assigned_at": _iso(a.assigned_at),
        "expires_at": _iso(a.expires_at),
        "driver_responded_at": _iso(a.driver_responded_at),
        "rejection_reason": a.rejection_reason,
        "notes": a.notes,
        "created_by": a.created_by,
        "version": a.version,
    }


def serialize_action(a: Action) -> dict:
    return {
        "action_id": a.action_id.value,
        "label": a.label,
        "enabled": a.enabled,
        "target_status": a.target_status.value if a.target_status else None,
    }


def serialize_event(e: DomainEvent) -> dict:
    return {"type": e.name, **e.to_payload()}
