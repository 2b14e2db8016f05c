"""
Shared API Middleware
======================

Request middleware and exception handlers for the FastAPI application.

Every request gets a correlation id; request counts and latencies are kept
per API module and reported by the health endpoint.
"""

import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from case_escalation.core import (
    AlreadyEscalatedException,
    ApplicationException,
    AuditWriteFailedException,
    ConcurrentCaseUpdateException,
    EscalationDeniedException,
    InvalidCaseStateException,
    ResourceNotFoundException,
    ValidationException,
)
from case_escalation.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ModuleCounters:
    requests: int = 0
    errors: int = 0
    total_ms: float = 0.0

    @property
    def avg_ms(self) -> float:
        return round(self.total_ms / self.requests, 2) if self.requests else 0.0


@dataclass
class RequestMetrics:
    """In-process request counters keyed by the first path segment."""
    modules: Dict[str, ModuleCounters] = field(default_factory=dict)

    def observe(self, path: str, status_code: int, elapsed_ms: float) -> None:
        module = path.strip("/").split("/", 1)[0] or "root"
        counters = self.modules.setdefault(module, ModuleCounters())
        counters.requests += 1
        counters.total_ms += elapsed_ms
        if status_code >= 500:
            counters.errors += 1

    def snapshot(self) -> Dict[str, dict]:
        return {
            name: {"requests": c.requests, "errors": c.errors, "avg_ms": c.avg_ms}
            for name, c in sorted(self.modules.items())
        }


request_metrics = RequestMetrics()


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Adds correlation ID to requests for tracing.

    The id links the request log lines with the decision records written
    while serving it.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        response = await call_next(request)
        response.headers["X-Correlation-ID"] = correlation_id
        return response


class MetricsMiddleware(BaseHTTPMiddleware):
    """Feeds RequestMetrics and reports the response time in a header."""

    def __init__(self, app: ASGIApp, metrics: RequestMetrics = request_metrics):
        super().__init__(app)
        self._metrics = metrics

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start_time) * 1000

        self._metrics.observe(request.url.path, response.status_code, elapsed_ms)
        response.headers["X-Response-Time"] = f"{elapsed_ms:.1f}ms"
        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    """One log line per request, tagged with correlation id and actor."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()
        context = {
            "correlation_id": getattr(request.state, "correlation_id", "unknown"),
            "actor": request.headers.get("X-Actor-ID"),
            "method": request.method,
            "path": request.url.path,
        }

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                extra={
                    **context,
                    "error": str(e),
                    "response_time_ms": int((time.perf_counter() - start_time) * 1000),
                }
            )
            raise

        logger.info(
            "Request completed",
            extra={
                **context,
                "status_code": response.status_code,
                "response_time_ms": int((time.perf_counter() - start_time) * 1000),
            }
        )
        return response


def status_code_for(exc: ApplicationException) -> int:
    """HTTP status for an application exception."""
    if isinstance(exc, ResourceNotFoundException):
        return 404
    if isinstance(exc, (AlreadyEscalatedException, InvalidCaseStateException, ConcurrentCaseUpdateException)):
        return 409
    if isinstance(exc, (EscalationDeniedException, ValidationException)):
        return 422
    if isinstance(exc, AuditWriteFailedException):
        return 500
    return 400


async def application_exception_handler(request: Request, exc: ApplicationException) -> JSONResponse:
    """
    Maps engine conditions to HTTP responses.

    EscalationDenied carries the AI recommendation and confidence so the
    caller can present them to a human.
    """
    correlation_id = getattr(request.state, "correlation_id", "unknown")
    status_code = status_code_for(exc)

    log = logger.error if status_code >= 500 else logger.info
    log(
        "Request rejected",
        extra={
            "correlation_id": correlation_id,
            "path": request.url.path,
            "error_type": type(exc).__name__,
            "status_code": status_code,
        }
    )

    content = {
        "detail": exc.message,
        "error": type(exc).__name__,
        "correlation_id": correlation_id,
    }
    if isinstance(exc, EscalationDeniedException):
        content["aiRecommendation"] = exc.recommendation
        content["confidence"] = exc.confidence
        content["confidencePercent"] = exc.confidence_percent
    elif status_code < 500 and exc.details:
        content["details"] = exc.details

    return JSONResponse(status_code=status_code, content=content)


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler for unhandled exceptions.

    Returns consistent error responses for all exceptions.
    """
    correlation_id = getattr(request.state, "correlation_id", "unknown")

    logger.error(
        "Unhandled exception",
        extra={
            "correlation_id": correlation_id,
            "path": request.url.path,
            "method": request.method,
            "error_type": type(exc).__name__,
            "error_message": str(exc)
        }
    )

    # Don't expose internal details in production
    is_dev = getattr(getattr(request.app.state, "settings", None), "environment", None) == "development"

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "correlation_id": correlation_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "debug_info": str(exc) if is_dev else None
        }
    )
