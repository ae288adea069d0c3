"""FastAPI application entry point.

Wires together: middleware, exception handlers, routes, metrics.
Validates config at startup.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from caffeine.api import router as scores_router
from shared.config import settings
from shared.exceptions import ProblemDetailError
from shared.logging import configure_logging
from shared.metrics import create_metrics_app
from shared.middleware import (
    RequestIdMiddleware,
    RequestMetricsMiddleware,
    http_exception_handler,
    problem_detail_handler,
    request_validation_handler,
)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    configure_logging(json_output=settings.log_json)
    logger.info(
        "app_starting",
        cache_ttl_seconds=settings.cache_ttl_seconds,
        intake_window_hours=settings.intake_window_hours,
        timezone=settings.timezone,
    )
    yield
    logger.info("app_shutting_down")


app = FastAPI(
    title="CaffScore Engine API",
    description=(
        "Computes personalized focus (CaffScore) and crash-risk scores from a "
        "user profile, recent caffeine intake and sleep history."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(RequestMetricsMiddleware)
app.add_middleware(RequestIdMiddleware)

# All errors emit application/problem+json (RFC 9457)
app.add_exception_handler(ProblemDetailError, problem_detail_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)

app.include_router(scores_router)

metrics_app = create_metrics_app()
app.mount("/metrics", metrics_app)


@app.get("/health")
async def health():
    return {"status": "ok"}
