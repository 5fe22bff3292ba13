"""
Fail-fast Error Handling Middleware

Outermost stage of the pipeline. Any exception escaping a later stage or an
endpoint is logged and converted into a 500 JSON error body, so the
remaining stages never see a half-written response.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
import structlog

from service_base.dto.response import error_response
from service_base.exceptions import ErrorCode

logger = structlog.get_logger()


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Catch-all exception handler"""

    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            logger.error(
                "unexpected_error",
                error=str(exc),
                error_type=type(exc).__name__,
                method=request.method,
                path=request.url.path,
                exc_info=True,
            )
            return JSONResponse(
                status_code=ErrorCode.INTERNAL_SERVER_ERROR.http_status,
                content=error_response(
                    error_code=ErrorCode.INTERNAL_SERVER_ERROR.code,
                    message="An unexpected error occurred",
                    details={"error_type": type(exc).__name__},
                ),
            )
