"""Health check endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cargoflow.adapters.persistence.database import get_session
from cargoflow.adapters.persistence.models import DeliveryAssignmentModel
from cargoflow.config import settings
from cargoflow.domain.value_objects.clock import utc_now

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(session: AsyncSession = Depends(get_session)):
    """Database connectivity plus the expiry backlog the sweep job has not caught up with."""
    stale_pending = None
    try:
        stale_pending = await session.scalar(
            select(func.count())
            .select_from(DeliveryAssignmentModel)
            .where(
                DeliveryAssignmentModel.assignment_status == "pending",
                DeliveryAssignmentModel.expires_at < utc_now(),
            )
        )
        db_status = "connected"
    except Exception as e:
        db_status = f"error: {e}"

    return {
        "status": "ok" if db_status == "connected" else "degraded",
        "database": db_status,
        "stale_pending_assignments": stale_pending,
        "strict_actions": settings.debug,
        "service": "CargoFlow - Cargo Lifecycle Engine",
    }
