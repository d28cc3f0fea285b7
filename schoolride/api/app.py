"""
FastAPI application factory.

* Registers routes for ride requests, rides, account and admin.
* Maps engine errors to a uniform JSON error envelope.
* Applies rate-limiting middleware.
* Closes DB and Redis pools via lifespan events.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from schoolride.api.errors import register_exception_handlers
from schoolride.api.middleware import limiter
from schoolride.api.routes import account, admin, requests, rides
from schoolride.config import settings
from schoolride.infrastructure.database import engine as db_engine
from schoolride.infrastructure.redis_client import close_redis_pool

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Release pooled connections on shutdown."""
    logger.info("School ride API starting")
    yield
    await db_engine.dispose()
    await close_redis_pool()
    logger.info("School ride API stopped")


def create_app() -> FastAPI:
    app = FastAPI(
        title="School Ride Booking API",
        description=(
            "Connects parents and drivers for school transport.  Parents "
            "request rides for their children, drivers accept them, trips "
            "start on OTP verification and completed rides settle to the "
            "driver's wallet exactly once."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    register_exception_handlers(app)

    # Routers
    app.include_router(requests.router, prefix="/api/v1")
    app.include_router(rides.router, prefix="/api/v1")
    app.include_router(account.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
