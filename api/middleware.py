"""Request context middleware using ContextVar.

Assigns every request an id, taken from the X-Request-ID header when the
caller sends one and generated otherwise. The id is stored in a ContextVar
so that log records emitted anywhere during the request (services,
repositories, broadcasters) can carry it via RequestIdFilter, and it is
echoed back on the response. One access line is logged per request.
"""

import logging
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# ---------------------------------------------------------------------------
# Context variable holding per-request state
# ---------------------------------------------------------------------------

_current_request_id: ContextVar[str] = ContextVar("current_request_id", default="-")


def get_request_id() -> str:
    """Return the id of the request being handled ("-" outside a request)."""
    return _current_request_id.get()


class RequestIdFilter(logging.Filter):
    """Expose the current request id to formatters as %(request_id)s."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id()
        return True


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a request id and log method, path, status and latency."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        token = _current_request_id.set(request_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
            elapsed_ms = (time.perf_counter() - started) * 1000
            response.headers[REQUEST_ID_HEADER] = request_id
            logger.info(
                "%s %s -> %d (%.1f ms)",
                request.method, request.url.path, response.status_code, elapsed_ms,
            )
            return response
        finally:
            _current_request_id.reset(token)
