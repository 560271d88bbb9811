"""Casework — FastAPI application factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from casework.adapters.persistence.database import engine
from casework.config import settings
from casework.infrastructure.api.errors import register_exception_handlers
from casework.infrastructure.api.routes_assignments import router as assignments_router
from casework.infrastructure.api.routes_health import router as health_router
from casework.infrastructure.api.routes_rules import router as rules_router
from casework.infrastructure.api.routes_team import router as team_router
from casework.infrastructure.scheduler import WorkloadBalancerScheduler

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    try:
        async with engine.begin():
            pass  # Connection pool warmed up
        logger.info("Database connection established")
    except (SQLAlchemyError, OSError) as e:
        logger.warning("Database not available on startup: %s", e)

    scheduler = WorkloadBalancerScheduler(settings.rebalance_interval_seconds)
    if settings.rebalance_enabled:
        scheduler.start()
    app.state.balancer = scheduler

    yield

    await scheduler.stop()
    await engine.dispose()


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(
        title="Casework — Case Assignment Engine",
        description="Rule-based case routing, handler workload tracking and rebalancing",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Register routers
    app.include_router(health_router, prefix="/api")
    app.include_router(assignments_router, prefix="/api")
    app.include_router(team_router, prefix="/api")
    app.include_router(rules_router, prefix="/api")

    return app


app = create_app()
