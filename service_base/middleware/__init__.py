"""
Middleware package

One module per pipeline stage. Ordering is decided by service_base.pipeline.
"""

from service_base.middleware.authorization import AuthorizationMiddleware
from service_base.middleware.correlation_id import CorrelationIdMiddleware, get_correlation_id, CORRELATION_ID_HEADER
from service_base.middleware.error_handler import ErrorHandlingMiddleware
from service_base.middleware.health import HealthProbeMiddleware
from service_base.middleware.jwt_auth import JWTAuthBackend, JWTUser, on_auth_error
from service_base.middleware.request_logging import RequestLoggingMiddleware
from service_base.middleware.security import SECURITY_HEADERS, SecurityHeadersMiddleware
from service_base.middleware.static_content import StaticContentMiddleware

__all__ = [
    "AuthorizationMiddleware",
    "CorrelationIdMiddleware",
    "get_correlation_id",
    "CORRELATION_ID_HEADER",
    "ErrorHandlingMiddleware",
    "HealthProbeMiddleware",
    "JWTAuthBackend",
    "JWTUser",
    "on_auth_error",
    "RequestLoggingMiddleware",
    "SECURITY_HEADERS",
    "SecurityHeadersMiddleware",
    "StaticContentMiddleware",
]
