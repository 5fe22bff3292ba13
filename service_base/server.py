"""
HTTP listener glue (uvicorn)

- keep-alive timeout and drain bound come from settings
- termination signals reach the lifecycle coordinator first, then uvicorn
  stops accepting connections and waits for in-flight requests
"""

import uvicorn
from fastapi import FastAPI

from service_base.config.settings import Settings
from service_base.lifecycle.coordinator import LifecycleCoordinator


def build_server_config(app: FastAPI, settings: Settings) -> uvicorn.Config:
    """
    uvicorn configuration

    uvicorn has no request-header read timeout, so REQUEST_HEADERS_TIMEOUT
    is not enforced while serving. It is used only as a cap on the graceful
    shutdown bound: the drain lasts min(SHUTDOWN_TIMEOUT,
    REQUEST_HEADERS_TIMEOUT) seconds, so a SHUTDOWN_TIMEOUT above the header
    timeout has no effect. Connections still open after it are cancelled.
    """
    return uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        log_config=None,  # records propagate to the structlog-configured root logger
        log_level=settings.log_level.lower(),
        access_log=False,
        timeout_keep_alive=settings.keep_alive_timeout,
        timeout_graceful_shutdown=min(settings.shutdown_timeout, settings.request_headers_timeout),
        proxy_headers=True,
    )


class GracefulServer(uvicorn.Server):
    """uvicorn server that reports termination signals to the coordinator"""

    def __init__(self, config: uvicorn.Config, coordinator: LifecycleCoordinator):
        super().__init__(config)
        self.coordinator = coordinator

    def handle_exit(self, sig, frame) -> None:
        # non-blocking: the signal may interrupt a thread holding the state
        # lock; a skipped transition is taken by the lifespan drain
        self.coordinator.begin_shutdown(blocking=False)
        super().handle_exit(sig, frame)
