"""
Correlation ID Middleware

Adds correlation ID support for distributed tracing:
- Reads X-Correlation-ID from incoming request header
- Generates new UUID if not present
- Adds to structlog context
- Returns in response header
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
import structlog

CORRELATION_ID_HEADER = "X-Correlation-ID"

_correlation_id_ctx_var: ContextVar[str] = ContextVar("correlation_id", default="")


def get_correlation_id() -> str:
    """Get current correlation ID from context"""
    return _correlation_id_ctx_var.get()


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Middleware to handle correlation ID propagation"""

    async def dispatch(self, request: Request, call_next) -> Response:
        # Get or generate correlation ID
        correlation_id = request.headers.get(CORRELATION_ID_HEADER)
        if not correlation_id:
            correlation_id = str(uuid.uuid4())

        token = _correlation_id_ctx_var.set(correlation_id)
        request.state.correlation_id = correlation_id

        # Bind to structlog context
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(correlation_id=correlation_id)

        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("correlation_id")
            _correlation_id_ctx_var.reset(token)

        response.headers[CORRELATION_ID_HEADER] = correlation_id
        return response
