"""
Test the default request pipeline stages end to end

Error handling, correlation ids, request logging, static content,
authentication and authorization
"""

import time

import jwt
import pytest
from fastapi import APIRouter, Request
from fastapi.testclient import TestClient
from structlog.testing import capture_logs

from service_base.main import create_app
from service_base.middleware import CORRELATION_ID_HEADER, get_correlation_id
from tests.conftest import make_settings

SECRET = "test-secret-with-at-least-32-bytes-of-key"


def _router() -> APIRouter:
    router = APIRouter()

    @router.get("/boom")
    async def boom():
        raise RuntimeError("kaboom")

    @router.get("/correlation")
    async def correlation():
        return {"correlation_id": get_correlation_id()}

    @router.get("/public")
    async def public(request: Request):
        return {"authenticated": request.user.is_authenticated}

    @router.get("/api/private/me")
    async def me(request: Request):
        return {"sub": request.user.identity, "scopes": request.auth.scopes}

    return router


def _client(**overrides) -> TestClient:
    return TestClient(create_app(make_settings(**overrides), routers=[_router()]))


class TestErrorHandling:
    """Fail-fast error handler"""

    def test_unhandled_exception_becomes_500(self):
        with _client() as client:
            with capture_logs() as logs:
                response = client.get("/boom")

        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert body["error_code"] == "SYSTEM001"
        assert body["details"] == {"error_type": "RuntimeError"}

        errors = [entry for entry in logs if entry["event"] == "unexpected_error"]
        assert len(errors) == 1
        assert errors[0]["path"] == "/boom"


class TestCorrelationId:
    """X-Correlation-ID propagation"""

    def test_generated_when_missing(self):
        with _client() as client:
            response = client.get("/correlation")

        correlation_id = response.headers[CORRELATION_ID_HEADER]
        assert correlation_id
        assert response.json()["correlation_id"] == correlation_id

    def test_incoming_header_is_echoed(self):
        with _client() as client:
            response = client.get("/correlation", headers={CORRELATION_ID_HEADER: "abc-123"})

        assert response.headers[CORRELATION_ID_HEADER] == "abc-123"
        assert response.json()["correlation_id"] == "abc-123"


class TestRequestLogging:
    """One record per request when enabled"""

    def test_disabled_by_default(self):
        with _client() as client:
            with capture_logs() as logs:
                client.get("/public")

        assert not [entry for entry in logs if entry["event"] == "http_request"]

    def test_concise_record(self):
        with _client(request_logging_enabled=True) as client:
            with capture_logs() as logs:
                response = client.get("/public")

        records = [entry for entry in logs if entry["event"] == "http_request"]
        assert len(records) == 1
        record = records[0]
        assert record["method"] == "GET"
        assert record["path"] == "/public"
        assert record["status_code"] == 200
        assert record["elapsed_ms"] >= 0
        assert record["request_id"] == response.headers[CORRELATION_ID_HEADER]
        assert "user_agent" not in record

    def test_verbose_record(self):
        with _client(request_logging_enabled=True, request_logging_verbose=True) as client:
            with capture_logs() as logs:
                client.get("/public", headers={"User-Agent": "probe/1.0"})

        record = [entry for entry in logs if entry["event"] == "http_request"][0]
        assert record["user_agent"] == "probe/1.0"
        assert "client_ip" in record


class TestStaticContent:
    """Static files are served after the security stage"""

    def test_serves_file_with_security_headers(self, tmp_path):
        (tmp_path / "hello.txt").write_text("static hello")

        with _client(static_directory=str(tmp_path)) as client:
            response = client.get("/static/hello.txt")

        assert response.status_code == 200
        assert response.text == "static hello"
        assert response.headers["x-frame-options"] == "DENY"

    def test_missing_file_is_404(self, tmp_path):
        with _client(static_directory=str(tmp_path)) as client:
            response = client.get("/static/missing.txt")

        assert response.status_code == 404

    def test_other_paths_pass_through(self, tmp_path):
        with _client(static_directory=str(tmp_path)) as client:
            response = client.get("/public")

        assert response.status_code == 200


def _token(**claims) -> str:
    payload = {"sub": "user-1"}
    payload.update(claims)
    return jwt.encode(payload, SECRET, algorithm="HS256")


class TestAuthentication:
    """Bearer tokens and protected prefixes"""

    @pytest.fixture
    def client(self):
        with _client(jwt_secret_key=SECRET, protected_path_prefixes="/api/private") as client:
            yield client

    def test_anonymous_public_access(self, client):
        response = client.get("/public")

        assert response.status_code == 200
        assert response.json() == {"authenticated": False}

    def test_anonymous_protected_access_is_rejected(self, client):
        response = client.get("/api/private/me")

        assert response.status_code == 401
        assert response.json()["error_code"] == "AUTH001"
        assert response.headers["x-content-type-options"] == "nosniff"

    def test_valid_token_resolves_identity(self, client):
        token = _token(scope="orders:read")
        response = client.get("/api/private/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        assert response.json() == {"sub": "user-1", "scopes": ["authenticated", "orders:read"]}

    def test_invalid_token_is_rejected(self, client):
        response = client.get("/public", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401
        assert response.json()["error_code"] == "AUTH002"

    def test_expired_token_is_rejected(self, client):
        token = _token(exp=int(time.time()) - 60)
        response = client.get("/api/private/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json()["error_code"] == "AUTH002"

    def test_token_without_configured_secret_is_rejected(self):
        with _client() as client:
            response = client.get("/public", headers={"Authorization": f"Bearer {_token()}"})

        assert response.status_code == 401
