"""SQLAlchemy ORM models — maps to PostgreSQL tables."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cargoflow.adapters.persistence.database import Base


class CargoModel(Base):
    __tablename__ = "cargos"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    client_id: Mapped[str] = mapped_column(String(100), nullable=False)
    weight_kg: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    distance_km: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="pending")
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default="normal")
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    driver_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    vehicle_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    client_phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    driver_phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    assignments: Mapped[list["DeliveryAssignmentModel"]] = relationship(back_populates="cargo")

    __table_args__ = (
        Index("idx_cargos_client", "client_id"),
        Index("idx_cargos_status", "status"),
    )


class DeliveryAssignmentModel(Base):
    __tablename__ = "delivery_assignments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    cargo_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("cargos.id", ondelete="CASCADE"), nullable=False
    )
    driver_id: Mapped[str] = mapped_column(String(100), nullable=False)
    vehicle_id: Mapped[str] = mapped_column(String(100), nullable=False)
    assignment_status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    assigned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    driver_responded_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    cargo: Mapped["CargoModel"] = relationship(back_populates="assignments")

    __table_args__ = (
        Index("idx_assignments_cargo", "cargo_id"),
        Index("idx_assignments_driver", "driver_id"),
        Index("idx_assignments_status_expires", "assignment_status", "expires_at"),
        # At most one pending-or-accepted assignment per cargo
        Index(
            "uq_assignments_active_cargo",
            "cargo_id",
            unique=True,
            postgresql_where=text("assignment_status IN ('pending', 'accepted')"),
        ),
    )


class CargoEventModel(Base):
    """Outbox of domain events, written in the same transaction as the change."""

    __tablename__ = "cargo_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    cargo_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("cargos.id", ondelete="CASCADE"), nullable=False
    )
    event_type: Mapped[str] = mapped_column(String(50), nullable=False)
    payload: Mapped[dict] = mapped_column(JSONB, nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    dispatched_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_cargo_events_cargo", "cargo_id"),
        Index("idx_cargo_events_undispatched", "dispatched_at"),
    )
