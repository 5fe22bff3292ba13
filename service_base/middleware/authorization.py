"""
Authorization Middleware

Requires an authenticated user for protected path prefixes. Relies on the
identity resolved by the authentication stage that runs before it.
"""

from typing import Iterable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
import structlog

from service_base.dto.response import error_response
from service_base.exceptions import ErrorCode

logger = structlog.get_logger()


class AuthorizationMiddleware(BaseHTTPMiddleware):
    """Rejects anonymous requests to protected prefixes with 401"""

    def __init__(self, app, protected_prefixes: Iterable[str] = ()):
        super().__init__(app)
        self.protected_prefixes = tuple(
            "/" + prefix.strip("/") for prefix in protected_prefixes if prefix.strip("/")
        )

    def is_protected(self, path: str) -> bool:
        return any(
            path == prefix or path.startswith(prefix + "/")
            for prefix in self.protected_prefixes
        )

    async def dispatch(self, request: Request, call_next) -> Response:
        if not self.is_protected(request.url.path):
            return await call_next(request)

        user = request.scope.get("user")
        if user is None or not user.is_authenticated:
            logger.warning("authorization_denied", path=request.url.path)
            return JSONResponse(
                status_code=ErrorCode.UNAUTHORIZED.http_status,
                content=error_response(
                    error_code=ErrorCode.UNAUTHORIZED.code,
                    message="Authentication required",
                    details={"path": request.url.path},
                ),
                headers={"WWW-Authenticate": "Bearer"},
            )

        return await call_next(request)
