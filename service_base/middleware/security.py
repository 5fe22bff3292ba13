"""
Security Headers Middleware

Decorates every response that reaches this stage with a fixed set of
baseline security headers. Outside local development, plain-HTTP requests
are answered with a redirect to the HTTPS equivalent URL instead of being
forwarded to later stages.

This stage never rejects a request.
"""

from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response
import structlog

from service_base.environment import EnvironmentDescriptor

logger = structlog.get_logger()

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "no-referrer",
    "Content-Security-Policy": "default-src 'self'",
}

DEFAULT_HTTPS_PORT = 443


def https_url(request: Request, https_port: Optional[int] = None) -> str:
    """HTTPS equivalent of the request URL"""
    port = https_port if https_port not in (None, DEFAULT_HTTPS_PORT) else None
    return str(request.url.replace(scheme="https", port=port))


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Baseline security headers with conditional HTTPS redirection"""

    def __init__(
        self,
        app,
        environment: EnvironmentDescriptor,
        https_port: Optional[int] = None,
    ):
        super().__init__(app)
        self.environment = environment
        self.https_port = https_port
        self.redirect_to_https = not environment.is_development

    async def dispatch(self, request: Request, call_next) -> Response:
        if self.redirect_to_https and request.url.scheme == "http":
            target = https_url(request, self.https_port)
            logger.debug("https_redirect", path=request.url.path, location=target)
            response = RedirectResponse(target, status_code=307)
        else:
            response = await call_next(request)

        for name, value in SECURITY_HEADERS.items():
            response.headers[name] = value
        return response
