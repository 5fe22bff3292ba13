"""
FastAPI application factory and process entry point

Startup order:
1. settings (container overlay when RUNNING_IN_CONTAINER=true)
2. logging sink
3. startup validation (fail fast, before anything binds)
4. pipeline composition
5. uvicorn listener + lifecycle coordinator
"""

import sys
from typing import Iterable, Mapping, Optional

from fastapi import APIRouter, FastAPI
from starlette.middleware import Middleware
import structlog

from service_base.config.logging import configure_logging
from service_base.config.settings import Settings, load_settings
from service_base.environment import EnvironmentDescriptor
from service_base.exceptions import ServiceBaseError
from service_base.lifecycle import InFlightRequestMiddleware, LifecycleCoordinator, lifespan
from service_base.pipeline import build_default_pipeline
from service_base.routers.root import router as root_router
from service_base.server import GracefulServer, build_server_config
from service_base.startup import validate_and_log

__version__ = "0.1.0"

logger = structlog.get_logger()


def create_app(
    settings: Optional[Settings] = None,
    coordinator: Optional[LifecycleCoordinator] = None,
    routers: Optional[Iterable[APIRouter]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> FastAPI:
    """
    Build the application

    Args:
        settings: loaded settings (load_settings() when omitted)
        coordinator: lifecycle coordinator (one without a sink when omitted)
        routers: business routers (the template root router when omitted)
        environ: environment used for container detection and required keys

    Raises:
        MissingConfigurationError: required configuration is missing
        PipelineOrderingError: the stage ordering is invalid
    """
    settings = settings or load_settings(environ)
    coordinator = coordinator or LifecycleCoordinator(drain_timeout=settings.shutdown_timeout)
    routers = [root_router] if routers is None else list(routers)

    environment = EnvironmentDescriptor.resolve(settings, environ)
    validate_and_log(settings, environment, environ=environ)

    pipeline = build_default_pipeline(settings, environment, coordinator, routers)

    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        lifespan=lifespan(coordinator),
        middleware=[Middleware(InFlightRequestMiddleware, coordinator=coordinator)] + pipeline.middleware(),
    )
    for router in pipeline.routers():
        app.include_router(router)

    app.state.settings = settings
    app.state.environment = environment
    app.state.coordinator = coordinator
    app.state.pipeline = pipeline
    return app


def main() -> None:
    """Process entry point: exits non-zero when startup fails"""
    settings = load_settings()
    sink = configure_logging(settings)
    coordinator = LifecycleCoordinator(sink=sink, drain_timeout=settings.shutdown_timeout)

    try:
        app = create_app(settings, coordinator=coordinator)
    except ServiceBaseError as exc:
        logger.critical("startup_failed", error=str(exc), error_type=type(exc).__name__)
        sink.close_and_flush()
        sys.exit(1)

    server = GracefulServer(build_server_config(app, settings), coordinator)
    try:
        server.run()
    finally:
        sink.close_and_flush()


if __name__ == "__main__":
    main()
