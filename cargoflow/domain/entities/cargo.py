"""Cargo entity — one shipment request tracked through its delivery lifecycle."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from cargoflow.domain.errors import ValidationError
from cargoflow.domain.value_objects.enums import CargoPriority, CargoStatus


@dataclass(frozen=True)
class Cargo:
    id: str
    client_id: str
    weight_kg: Decimal
    distance_km: Decimal
    status: CargoStatus = CargoStatus.PENDING
    priority: CargoPriority = CargoPriority.NORMAL
    category: str | None = None
    driver_id: str | None = None
    vehicle_id: str | None = None
    client_phone: str | None = None
    driver_phone: str | None = None
    version: int = 0
    updated_at: datetime | None = None

    def __post_init__(self):
        for name in ("weight_kg", "distance_km"):
            value = getattr(self, name)
            if value is None or not Decimal(value).is_finite() or Decimal(value) <= 0:
                raise ValidationError(f"{name} must be a finite positive decimal", {"field": name})

    def is_owned_by(self, client_id: str | None) -> bool:
        return client_id is not None and self.client_id == client_id

    def is_driven_by(self, driver_id: str | None) -> bool:
        return driver_id is not None and self.driver_id == driver_id

    def has_driver(self) -> bool:
        return bool(self.driver_id)
