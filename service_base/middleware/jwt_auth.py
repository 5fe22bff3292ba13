from typing import Optional, Tuple

import jwt
from starlette.authentication import (
    AuthCredentials,
    AuthenticationBackend,
    AuthenticationError,
    BaseUser,
)
from starlette.requests import HTTPConnection
from starlette.responses import JSONResponse
import structlog

from service_base.dto.response import error_response
from service_base.exceptions import ErrorCode

logger = structlog.get_logger()

ALLOWED_ALGORITHMS = ["HS256", "HS384", "HS512"]


class JWTUser(BaseUser):
    """Identity resolved from a verified token"""

    def __init__(self, claims: dict):
        self.claims = claims

    @property
    def is_authenticated(self) -> bool:
        return True

    @property
    def display_name(self) -> str:
        return str(self.claims.get("name") or self.claims.get("sub", ""))

    @property
    def identity(self) -> str:
        return str(self.claims.get("sub", ""))


class JWTAuthBackend(AuthenticationBackend):
    """
    Bearer token authentication

    - no Authorization header: anonymous (authorization decides)
    - valid token: JWTUser with scopes from the "scope" claim
    - invalid or expired token: AuthenticationError -> 401
    """

    def __init__(self, secret_key: str, algorithm: str = "HS256"):
        self.secret_key = secret_key
        self.algorithm = algorithm

    def decode_token(self, token: str) -> dict:
        """Verify and decode a token"""
        if self.algorithm not in ALLOWED_ALGORITHMS:
            logger.warning("jwt_algorithm_not_supported", algorithm=self.algorithm)
            raise AuthenticationError("Unsupported token algorithm")
        try:
            return jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            logger.warning("jwt_expired")
            raise AuthenticationError("Token expired")
        except jwt.InvalidTokenError as e:
            logger.warning("jwt_invalid", error=str(e))
            raise AuthenticationError("Invalid token")

    async def authenticate(self, conn: HTTPConnection) -> Optional[Tuple[AuthCredentials, BaseUser]]:
        auth_header = conn.headers.get("Authorization")
        if not auth_header:
            return None

        scheme, _, token = auth_header.partition(" ")
        if scheme.lower() != "bearer":
            return None
        if not token.strip():
            raise AuthenticationError("Missing token")
        if not self.secret_key:
            logger.warning("jwt_secret_not_configured", path=conn.url.path)
            raise AuthenticationError("Token authentication is not configured")

        payload = self.decode_token(token.strip())
        scopes = ["authenticated"] + str(payload.get("scope", "")).split()

        logger.debug("jwt_auth_success", user_id=payload.get("sub"))
        return AuthCredentials(scopes), JWTUser(payload)


def on_auth_error(conn: HTTPConnection, exc: AuthenticationError) -> JSONResponse:
    """401 error body for rejected tokens"""
    return JSONResponse(
        status_code=ErrorCode.INVALID_TOKEN.http_status,
        content=error_response(
            error_code=ErrorCode.INVALID_TOKEN.code,
            message=ErrorCode.INVALID_TOKEN.message,
            details={"reason": str(exc)},
        ),
        headers={"WWW-Authenticate": "Bearer"},
    )
