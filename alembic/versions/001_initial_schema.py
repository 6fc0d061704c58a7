"""Initial schema — cargos, delivery assignments, event outbox.

Revision ID: 001
Revises: None
Create Date: 2025-03-01
"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Cargos
    op.create_table(
        "cargos",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("client_id", sa.String(100), nullable=False),
        sa.Column("weight_kg", sa.Numeric(12, 3), nullable=False),
        sa.Column("distance_km", sa.Numeric(12, 3), nullable=False),
        sa.Column("status", sa.String(30), nullable=False, server_default="pending"),
        sa.Column("priority", sa.String(20), nullable=False, server_default="normal"),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("driver_id", sa.String(100), nullable=True),
        sa.Column("vehicle_id", sa.String(100), nullable=True),
        sa.Column("client_phone", sa.String(30), nullable=True),
        sa.Column("driver_phone", sa.String(30), nullable=True),
        sa.Column("version", sa.Integer, nullable=False, server_default="0"),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("weight_kg > 0", name="ck_cargos_weight_positive"),
        sa.CheckConstraint("distance_km > 0", name="ck_cargos_distance_positive"),
    )
    op.create_index("idx_cargos_client", "cargos", ["client_id"])
    op.create_index("idx_cargos_status", "cargos", ["status"])

    # Delivery assignments
    op.create_table(
        "delivery_assignments",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "cargo_id",
            sa.String(36),
            sa.ForeignKey("cargos.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("driver_id", sa.String(100), nullable=False),
        sa.Column("vehicle_id", sa.String(100), nullable=False),
        sa.Column("assignment_status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("driver_responded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text, nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("created_by", sa.String(100), nullable=True),
        sa.Column("version", sa.Integer, nullable=False, server_default="0"),
    )
    op.create_index("idx_assignments_cargo", "delivery_assignments", ["cargo_id"])
    op.create_index("idx_assignments_driver", "delivery_assignments", ["driver_id"])
    op.create_index(
        "idx_assignments_status_expires",
        "delivery_assignments",
        ["assignment_status", "expires_at"],
    )
    op.create_index(
        "uq_assignments_active_cargo",
        "delivery_assignments",
        ["cargo_id"],
        unique=True,
        postgresql_where=sa.text("assignment_status IN ('pending', 'accepted')"),
    )

    # Event outbox
    op.create_table(
        "cargo_events",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "cargo_id",
            sa.String(36),
            sa.ForeignKey("cargos.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("event_type", sa.String(50), nullable=False),
        sa.Column("payload", JSONB, nullable=False),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("dispatched_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("idx_cargo_events_cargo", "cargo_events", ["cargo_id"])
    op.create_index("idx_cargo_events_undispatched", "cargo_events", ["dispatched_at"])


def downgrade() -> None:
    op.drop_table("cargo_events")
    op.drop_table("delivery_assignments")
    op.drop_table("cargos")
