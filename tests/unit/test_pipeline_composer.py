"""
Unit Tests for PipelineComposer

Ordering rules around the single security stage
"""

import pytest
from fastapi import APIRouter
from starlette.middleware import Middleware
from structlog.testing import capture_logs

from service_base.environment import EnvironmentDescriptor
from service_base.exceptions import PipelineOrderingError
from service_base.lifecycle import LifecycleCoordinator
from service_base.middleware import (
    CorrelationIdMiddleware,
    ErrorHandlingMiddleware,
    SecurityHeadersMiddleware,
)
from service_base.pipeline import (
    PipelineComposer,
    PositionHint,
    Stage,
    StageCategory,
    build_default_pipeline,
)
from tests.conftest import make_settings


def _stage(name: str, category: StageCategory = StageCategory.CUSTOM) -> Stage:
    return Stage(name=name, category=category, middleware=Middleware(CorrelationIdMiddleware))


def _security() -> Stage:
    environment = EnvironmentDescriptor(name="development", machine_name="test-host")
    return Stage(
        name="security_headers",
        middleware=Middleware(SecurityHeadersMiddleware, environment=environment),
    )


class TestPipelineComposer:
    """Registration and validation"""

    def test_valid_ordering_builds(self):
        composer = PipelineComposer()
        composer.register(_stage("errors", StageCategory.ERROR_HANDLING), PositionHint.BEFORE_SECURITY)
        composer.use_security(_security())
        composer.register(_stage("tracing"), PositionHint.AFTER_SECURITY)
        composer.register(Stage(name="routing", category=StageCategory.ROUTING), PositionHint.TERMINAL)

        pipeline = composer.build()

        assert pipeline.names == ["errors", "security_headers", "tracing", "routing"]
        assert len(pipeline.middleware()) == 3

    def test_after_security_before_security_stage_fails(self):
        composer = PipelineComposer()
        composer.register(_stage("tracing"), PositionHint.AFTER_SECURITY)
        composer.use_security(_security())

        with pytest.raises(PipelineOrderingError) as exc_info:
            composer.build()

        assert exc_info.value.stage_name == "tracing"
        assert exc_info.value.hint == "after_security"
        assert "tracing" in str(exc_info.value)

    def test_same_stage_after_security_succeeds(self):
        composer = PipelineComposer()
        composer.use_security(_security())
        composer.register(_stage("tracing"), PositionHint.AFTER_SECURITY)

        assert composer.build().names == ["security_headers", "tracing"]

    def test_hint_accepts_string_value(self):
        composer = PipelineComposer()
        composer.use_security(_security())
        composer.register(_stage("tracing"), "after_security")

        assert composer.build().names == ["security_headers", "tracing"]

    def test_before_security_rejects_other_categories(self):
        composer = PipelineComposer()
        composer.register(_stage("tracing", StageCategory.CORRELATION), PositionHint.BEFORE_SECURITY)
        composer.use_security(_security())

        with pytest.raises(PipelineOrderingError) as exc_info:
            composer.build()
        assert exc_info.value.hint == "before_security"

    @pytest.mark.parametrize("category", [StageCategory.ERROR_HANDLING, StageCategory.HEALTH_PROBE])
    def test_before_security_allows_errors_and_probes(self, category):
        composer = PipelineComposer()
        composer.register(_stage("early", category), PositionHint.BEFORE_SECURITY)
        composer.use_security(_security())

        assert composer.build().names == ["early", "security_headers"]

    def test_before_security_after_security_stage_fails(self):
        composer = PipelineComposer()
        composer.use_security(_security())
        composer.register(_stage("errors", StageCategory.ERROR_HANDLING), PositionHint.BEFORE_SECURITY)

        with pytest.raises(PipelineOrderingError):
            composer.build()

    def test_missing_security_stage_fails(self):
        composer = PipelineComposer()
        composer.register(_stage("errors", StageCategory.ERROR_HANDLING), PositionHint.BEFORE_SECURITY)

        with pytest.raises(PipelineOrderingError):
            composer.build()

    def test_second_security_stage_fails(self):
        composer = PipelineComposer()
        composer.use_security(_security())

        with pytest.raises(PipelineOrderingError):
            composer.use_security(_security())

    def test_security_category_must_use_use_security(self):
        composer = PipelineComposer()

        with pytest.raises(PipelineOrderingError):
            composer.register(_stage("headers", StageCategory.SECURITY), PositionHint.AFTER_SECURITY)

    def test_stage_after_terminal_fails(self):
        composer = PipelineComposer()
        composer.use_security(_security())
        composer.register(Stage(name="routing", category=StageCategory.ROUTING), PositionHint.TERMINAL)
        composer.register(_stage("late"), PositionHint.AFTER_SECURITY)

        with pytest.raises(PipelineOrderingError) as exc_info:
            composer.build()
        assert exc_info.value.stage_name == "late"

    def test_terminal_before_security_fails(self):
        composer = PipelineComposer()
        composer.register(Stage(name="routing", category=StageCategory.ROUTING), PositionHint.TERMINAL)
        composer.use_security(_security())

        with pytest.raises(PipelineOrderingError):
            composer.build()

    def test_routers_only_on_terminal_stages(self):
        composer = PipelineComposer()
        composer.use_security(_security())
        composer.register(Stage(name="api", routers=(APIRouter(),)), PositionHint.AFTER_SECURITY)

        with pytest.raises(PipelineOrderingError):
            composer.build()

    def test_built_pipeline_is_frozen(self):
        composer = PipelineComposer()
        composer.use_security(_security())
        pipeline = composer.build()

        composer.register(_stage("tracing"), PositionHint.AFTER_SECURITY)

        assert pipeline.names == ["security_headers"]

    def test_authorization_before_authentication_warns(self):
        composer = PipelineComposer()
        composer.use_security(_security())
        composer.register(_stage("authz", StageCategory.AUTHORIZATION), PositionHint.AFTER_SECURITY)
        composer.register(_stage("authn", StageCategory.AUTHENTICATION), PositionHint.AFTER_SECURITY)

        with capture_logs() as logs:
            composer.build()

        warnings = [entry for entry in logs if entry["event"] == "pipeline_ordering_warning"]
        assert len(warnings) == 1
        assert warnings[0]["stage"] == "authz"


class TestDefaultPipeline:
    """Canonical ordering"""

    def test_minimal_default_ordering(self):
        settings = make_settings()
        environment = EnvironmentDescriptor.resolve(settings)

        pipeline = build_default_pipeline(settings, environment, LifecycleCoordinator())

        assert pipeline.names == [
            "error_handler",
            "health_probe",
            "security_headers",
            "correlation_id",
            "authentication",
            "authorization",
            "routing",
            "endpoints",
        ]

    def test_full_default_ordering(self, tmp_path):
        settings = make_settings(static_directory=str(tmp_path), request_logging_enabled=True)
        environment = EnvironmentDescriptor.resolve(settings)
        router = APIRouter()

        pipeline = build_default_pipeline(settings, environment, LifecycleCoordinator(), [router])

        assert pipeline.names == [
            "error_handler",
            "health_probe",
            "security_headers",
            "static_content",
            "correlation_id",
            "request_logging",
            "authentication",
            "authorization",
            "routing",
            "endpoints",
        ]
        assert pipeline.routers() == [router]
        assert pipeline.middleware()[0].cls is ErrorHandlingMiddleware
