"""
In-flight request tracking and the FastAPI lifespan hook
"""

from contextlib import asynccontextmanager

from starlette.types import ASGIApp, Receive, Scope, Send

from service_base.lifecycle.coordinator import LifecycleCoordinator


class InFlightRequestMiddleware:
    """
    Outermost ASGI wrapper counting HTTP requests

    The coordinator waits for the counter to reach zero while draining.
    """

    def __init__(self, app: ASGIApp, coordinator: LifecycleCoordinator):
        self.app = app
        self.coordinator = coordinator

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        self.coordinator.request_started()
        try:
            await self.app(scope, receive, send)
        finally:
            self.coordinator.request_finished()


def lifespan(coordinator: LifecycleCoordinator):
    """
    Build a FastAPI lifespan bound to the coordinator

    - startup: CONFIGURING -> SERVING
    - shutdown: drain in-flight requests, flush logs
    """

    @asynccontextmanager
    async def _lifespan(app):
        coordinator.mark_serving()
        yield
        await coordinator.drain()

    return _lifespan
