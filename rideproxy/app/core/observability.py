"""
Observability middleware and logging setup.

Every request gets a correlation ID (taken from MessageBird or the caller
when present) that is echoed back in the response and stamped on every
log line written while the request is handled.
"""

import contextvars
import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

CORRELATION_HEADER = "X-Correlation-ID"

correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("correlation_id", default="-")

logger = logging.getLogger("rideproxy")
access_logger = logging.getLogger("rideproxy.access")


class CorrelationIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get()
        return True


def configure_logging(debug: bool = False) -> None:
    """Attach a stream handler to the application logger once."""
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s [%(name)s] [%(correlation_id)s] %(message)s")
    )
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if debug else logging.INFO)


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        token = correlation_id_var.set(correlation_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
            self._log(request, response, started)
        finally:
            correlation_id_var.reset(token)

        response.headers[CORRELATION_HEADER] = correlation_id
        return response

    @staticmethod
    def _log(request: Request, response: Response, started: float) -> None:
        duration_ms = (time.perf_counter() - started) * 1000
        response.headers["X-Process-Time"] = f"{duration_ms:.2f}"

        log_data = {
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(duration_ms, 2),
        }
        message = "%s %s -> %s (%.2f ms)"
        args = (request.method, request.url.path, response.status_code, duration_ms)

        if response.status_code >= 500:
            access_logger.error(message, *args, extra=log_data)
        elif response.status_code >= 400:
            access_logger.warning(message, *args, extra=log_data)
        else:
            access_logger.info(message, *args, extra=log_data)

