"""
FastAPI application factory.

* Registers the vehicle and admin routers.
* Disposes the database engine and Redis pool on shutdown.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from fleet_service.api.middleware import limiter
from fleet_service.api.routes import admin, vehicles
from fleet_service.config import settings
from fleet_service.infrastructure import redis_client
from fleet_service.infrastructure.database import engine

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Fleet service starting (spatial backend: %s)", settings.spatial_backend)
    yield
    await redis_client.close_pool()
    await engine.dispose()
    logger.info("Fleet service stopped")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Fleet Service API",
        description=(
            "Tracks rentable vehicles: position, operational status and "
            "role-gated status transitions with optimistic concurrency "
            "control.  Identity is supplied by the upstream gateway."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Routers
    app.include_router(vehicles.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
