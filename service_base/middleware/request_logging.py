"""
Request Logging Middleware

One structured record per request:
- concise: method, path, status code, elapsed milliseconds, request id
- verbose: additionally client ip and user agent
"""

import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
import structlog

logger = structlog.get_logger()


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs every completed request"""

    def __init__(self, app, verbose: bool = False):
        super().__init__(app)
        self.verbose = verbose

    async def dispatch(self, request: Request, call_next) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = round((time.perf_counter() - started) * 1000, 4)

        fields = {
            "request_id": getattr(request.state, "correlation_id", None),
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "elapsed_ms": elapsed_ms,
        }
        if self.verbose:
            fields["client_ip"] = request.client.host if request.client else None
            fields["user_agent"] = request.headers.get("user-agent")

        logger.info("http_request", **fields)
        return response
