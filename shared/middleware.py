"""FastAPI middleware for request IDs, request metrics and error handling."""

import time
from collections.abc import Callable
from contextvars import ContextVar
from uuid import uuid4

import structlog
from fastapi import Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from shared.exceptions import ProblemDetailError, ValidationError
from shared.metrics import api_requests_total, api_response_duration_seconds

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

logger = structlog.get_logger()


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Inject a unique request ID into every request and response.

    Header name: X-Request-ID. Default format: UUID v4.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Callable[..., Response]]
    ):
        rid = request.headers.get("X-Request-ID", str(uuid4()))
        request_id_var.set(rid)
        structlog.contextvars.bind_contextvars(request_id=rid)

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = rid
            return response
        finally:
            structlog.contextvars.unbind_contextvars("request_id")


class RequestMetricsMiddleware(BaseHTTPMiddleware):
    """Record request counts and latency labelled by route template.

    The route template (e.g. /api/v1/users/{user_id}/scores/focus) keeps
    label cardinality bounded regardless of how many users call in.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Callable[..., Response]]
    ):
        start_time = time.monotonic()
        response = await call_next(request)

        route = request.scope.get("route")
        endpoint = getattr(route, "path", None) or "unmatched"
        api_requests_total.labels(
            endpoint=endpoint, method=request.method, status_code=str(response.status_code)
        ).inc()
        api_response_duration_seconds.labels(endpoint=endpoint).observe(
            time.monotonic() - start_time
        )
        return response


def _problem_response(request: Request, exc: ProblemDetailError) -> JSONResponse:
    body: dict = {
        "type": exc.type_uri,
        "title": exc.title,
        "status": exc.status,
        "detail": exc.detail,
        "instance": str(request.url.path),
    }
    if exc.violations:
        body["violations"] = exc.violations
    logger.info("problem_response", status=exc.status, type=exc.type_uri, path=body["instance"])
    return JSONResponse(
        status_code=exc.status,
        content=body,
        media_type="application/problem+json",
    )


async def problem_detail_handler(request: Request, exc: ProblemDetailError) -> JSONResponse:
    """Convert ProblemDetailError exceptions into RFC 9457 responses."""
    return _problem_response(request, exc)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report request-shape errors as the same validation problem the API raises.

    Intake records that are out of range do not end up here: they pass the
    request model and are dropped later by the validation gate.
    """
    violations = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body")
            or "(root)",
            "message": err.get("msg", "Validation error"),
            "constraint": err.get("type", "validation"),
        }
        for err in exc.errors()
    ]
    return _problem_response(request, ValidationError(violations))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Convert routing and framework HTTP errors into RFC 9457 format."""
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    problem = ProblemDetailError(
        type_uri="about:blank",
        title=detail if isinstance(exc.detail, str) else "Error",
        status=exc.status_code,
        detail=detail,
    )
    return _problem_response(request, problem)
