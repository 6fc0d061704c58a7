"""CargoFlow — FastAPI application factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cargoflow.adapters.persistence.database import engine
from cargoflow.config import settings
from cargoflow.infrastructure.api.errors import register_error_handlers
from cargoflow.infrastructure.api.routes_assignments import router as assignments_router
from cargoflow.infrastructure.api.routes_cargos import router as cargos_router
from cargoflow.infrastructure.api.routes_health import router as health_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    try:
        async with engine.begin():
            pass
        logger.info("Database connection established")
    except Exception as e:
        logger.warning("Database not available on startup: %s", e)
    yield
    await engine.dispose()


def create_app() -> FastAPI:
    app = FastAPI(
        title="CargoFlow — Cargo Lifecycle Engine",
        description="Cargo status lifecycle, delivery-assignment negotiation and role-based actions",
        version="0.1.0",
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    app.include_router(health_router, prefix="/api")
    app.include_router(cargos_router, prefix="/api")
    app.include_router(assignments_router, prefix="/api")

    return app


app = create_app()
