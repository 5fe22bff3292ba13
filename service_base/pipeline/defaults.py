"""
Default pipeline

Canonical ordering, most restrictive first:

    error handler -> health probe -> security headers (+ HTTPS redirect)
    -> static content -> correlation id -> request logging
    -> authentication -> authorization -> routing -> endpoints

Static content and request logging are only registered when configured.
"""

from typing import Iterable

from fastapi import APIRouter
from starlette.middleware import Middleware
from starlette.middleware.authentication import AuthenticationMiddleware

from service_base.config.settings import Settings
from service_base.environment import EnvironmentDescriptor
from service_base.lifecycle.coordinator import LifecycleCoordinator
from service_base.middleware import (
    AuthorizationMiddleware,
    CorrelationIdMiddleware,
    ErrorHandlingMiddleware,
    HealthProbeMiddleware,
    JWTAuthBackend,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
    StaticContentMiddleware,
    on_auth_error,
)
from service_base.pipeline.composer import (
    Pipeline,
    PipelineComposer,
    PositionHint,
    Stage,
    StageCategory,
)


def default_composer(
    settings: Settings,
    environment: EnvironmentDescriptor,
    coordinator: LifecycleCoordinator,
    routers: Iterable[APIRouter] = (),
) -> PipelineComposer:
    """Composer pre-populated with the canonical stages (not yet built)"""
    composer = PipelineComposer()

    composer.register(
        Stage(
            name="error_handler",
            category=StageCategory.ERROR_HANDLING,
            middleware=Middleware(ErrorHandlingMiddleware),
        ),
        PositionHint.BEFORE_SECURITY,
    )
    composer.register(
        Stage(
            name="health_probe",
            category=StageCategory.HEALTH_PROBE,
            middleware=Middleware(HealthProbeMiddleware, coordinator=coordinator, path=settings.health_path),
        ),
        PositionHint.BEFORE_SECURITY,
    )

    composer.use_security(
        Stage(
            name="security_headers",
            middleware=Middleware(
                SecurityHeadersMiddleware,
                environment=environment,
                https_port=settings.https_port,
            ),
        )
    )

    if settings.static_directory:
        composer.register(
            Stage(
                name="static_content",
                category=StageCategory.STATIC_CONTENT,
                middleware=Middleware(
                    StaticContentMiddleware,
                    directory=settings.static_directory,
                    prefix=settings.static_url_prefix,
                ),
            ),
            PositionHint.AFTER_SECURITY,
        )

    composer.register(
        Stage(
            name="correlation_id",
            category=StageCategory.CORRELATION,
            middleware=Middleware(CorrelationIdMiddleware),
        ),
        PositionHint.AFTER_SECURITY,
    )

    if settings.request_logging_enabled:
        composer.register(
            Stage(
                name="request_logging",
                category=StageCategory.REQUEST_LOGGING,
                middleware=Middleware(RequestLoggingMiddleware, verbose=settings.request_logging_verbose),
            ),
            PositionHint.AFTER_SECURITY,
        )

    composer.register(
        Stage(
            name="authentication",
            category=StageCategory.AUTHENTICATION,
            middleware=Middleware(
                AuthenticationMiddleware,
                backend=JWTAuthBackend(settings.jwt_secret_key, settings.jwt_algorithm),
                on_error=on_auth_error,
            ),
        ),
        PositionHint.AFTER_SECURITY,
    )
    composer.register(
        Stage(
            name="authorization",
            category=StageCategory.AUTHORIZATION,
            middleware=Middleware(
                AuthorizationMiddleware,
                protected_prefixes=settings.get_protected_path_prefixes(),
            ),
        ),
        PositionHint.AFTER_SECURITY,
    )

    composer.register(Stage(name="routing", category=StageCategory.ROUTING), PositionHint.TERMINAL)
    composer.register(
        Stage(name="endpoints", category=StageCategory.ENDPOINTS, routers=tuple(routers)),
        PositionHint.TERMINAL,
    )

    return composer


def build_default_pipeline(
    settings: Settings,
    environment: EnvironmentDescriptor,
    coordinator: LifecycleCoordinator,
    routers: Iterable[APIRouter] = (),
) -> Pipeline:
    return default_composer(settings, environment, coordinator, routers).build()
