"""
Observability Middleware.

Tags every request with a correlation id that is echoed in the response
headers and attached to every log record emitted while the request runs,
so cascade deletes and maintenance events can be traced back to the call
that caused them.
"""

import time
import uuid
import logging
from contextvars import ContextVar
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

CORRELATION_HEADER = "X-Correlation-ID"

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="-")

logger = logging.getLogger("tracker.requests")


class CorrelationIdFilter(logging.Filter):
    """Copies the current request's correlation id onto log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = correlation_id_var.get()
        return True


def configure_logging(level: str) -> None:
    """Configure root logging once at startup."""
    handler = logging.StreamHandler()
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] [%(correlation_id)s] %(message)s"
    ))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        handlers=[handler],
    )


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        token = correlation_id_var.set(correlation_id)
        started = time.perf_counter()

        try:
            response = await call_next(request)
        finally:
            duration_ms = round((time.perf_counter() - started) * 1000, 2)
            correlation_id_var.reset(token)

        response.headers[CORRELATION_HEADER] = correlation_id
        response.headers["X-Process-Time"] = str(duration_ms)

        log_data = {
            "correlation_id": correlation_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
            "ip": request.client.host if request.client else "unknown"
        }

        if response.status_code >= 500:
            logger.error("%s %s failed with %s", request.method, request.url.path,
                         response.status_code, extra=log_data)
        elif response.status_code >= 400:
            logger.warning("%s %s rejected with %s", request.method, request.url.path,
                           response.status_code, extra=log_data)
        else:
            logger.info("%s %s %s in %sms", request.method, request.url.path,
                        response.status_code, duration_ms, extra=log_data)

        return response
