"""
Shared test fixtures
"""

import logging

import pytest
import structlog
from fastapi.testclient import TestClient

from service_base.config.settings import Settings
from service_base.main import create_app


def make_settings(**overrides) -> Settings:
    """Settings isolated from .env files"""
    values = {"app_env": "development"}
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo structlog / root logger changes made by a test"""
    root = logging.getLogger()
    level = root.level
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    root.setLevel(level)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def production_settings() -> Settings:
    return make_settings(app_env="production")


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    """TestClient with lifespan (startup marks serving, exit drains)"""
    with TestClient(app) as test_client:
        yield test_client
