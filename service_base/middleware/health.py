"""
Liveness Probe Middleware

Answers the health path ahead of the security stage so orchestrators can
probe the process even when later stages are misconfigured.

- CONFIGURING / SERVING: 200 healthy
- STOPPING / DRAINED: 503 unhealthy (stop routing traffic here)
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from service_base.dto.response import health_response
from service_base.lifecycle.coordinator import LifecycleCoordinator

PROBE_METHODS = ("GET", "HEAD")


class HealthProbeMiddleware(BaseHTTPMiddleware):
    """Short-circuits liveness probes"""

    def __init__(self, app, coordinator: LifecycleCoordinator, path: str = "/health"):
        super().__init__(app)
        self.coordinator = coordinator
        self.path = path

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path != self.path or request.method not in PROBE_METHODS:
            return await call_next(request)

        state = self.coordinator.state
        if self.coordinator.accepting:
            return JSONResponse(status_code=200, content=health_response("healthy", state.value))
        return JSONResponse(status_code=503, content=health_response("unhealthy", state.value))
