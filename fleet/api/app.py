"""
FastAPI application factory.

* Registers routes for vehicles, users, trips, maintenance, fuel, routing
  and admin.
* Starts / stops the background reconciliation worker via lifespan events.
* Maps core errors to HTTP responses.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from fleet.api.errors import register_exception_handlers
from fleet.api.middleware import limiter
from fleet.api.routes import admin, fuel, maintenance, routing, trips, users, vehicles
from fleet.config import settings
from fleet.workers import reconciler as _reconciler

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the reconcile worker on startup; stop on shutdown."""
    await _reconciler.start_reconcile_loop()
    yield
    await _reconciler.stop_reconcile_loop()


def create_app(run_worker: bool = True) -> FastAPI:
    app = FastAPI(
        title="Fleet Allocation & Trip Lifecycle API",
        description=(
            "Allocates fleet vehicles to drivers and records trips, "
            "maintenance and fuel workflows without double-assignment, "
            "under concurrent requests from several processes."
        ),
        version="1.0.0",
        lifespan=lifespan if run_worker else None,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    register_exception_handlers(app)

    # Routers
    for module in (vehicles, users, trips, maintenance, fuel, routing, admin):
        app.include_router(module.router, prefix="/api/v1")

    return app
