"""TeamReady — FastAPI application factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from teamready import __version__
from teamready.absences.router import router as absences_router
from teamready.checkins.router import router as checkins_router
from teamready.common.exceptions import register_exception_handlers
from teamready.common.rate_limit import limiter
from teamready.config import settings
from teamready.database import engine
from teamready.grading.router import router as grading_router
from teamready.leave.router import router as leave_router
from teamready.organization.router import router as holidays_router
from teamready.summaries.router import router as summaries_router

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

ROUTERS = (
    (checkins_router, "/checkins", "checkins"),
    (leave_router, "/leave", "leave"),
    (absences_router, "/absences", "absences"),
    (summaries_router, "/summaries", "summaries"),
    (grading_router, "/grades", "grades"),
    (holidays_router, "/holidays", "holidays"),
)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "TeamReady %s starting (%s, default tz %s)",
        __version__, settings.ENVIRONMENT, settings.DEFAULT_TIMEZONE,
    )
    yield
    await engine.dispose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    docs_enabled = settings.ENVIRONMENT != "production"
    app = FastAPI(
        title="TeamReady",
        description="Workforce readiness check-ins and attendance compliance",
        version=__version__,
        docs_url=f"{API_PREFIX}/docs" if docs_enabled else None,
        redoc_url=f"{API_PREFIX}/redoc" if docs_enabled else None,
        lifespan=lifespan,
    )

    register_exception_handlers(app)

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get(f"{API_PREFIX}/health", tags=["system"])
    async def health_check():
        return {
            "status": "healthy",
            "version": __version__,
            "environment": settings.ENVIRONMENT,
        }

    for router, prefix, tag in ROUTERS:
        app.include_router(router, prefix=f"{API_PREFIX}{prefix}", tags=[tag])

    return app


configure_logging()
app = create_app()
