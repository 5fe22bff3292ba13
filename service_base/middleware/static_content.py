"""
Static Content Middleware

Serves files below a URL prefix straight from a directory. Registered after
the security stage (static responses carry the security headers) and before
authentication (no identity lookups for public assets).
"""

from starlette.staticfiles import StaticFiles
from starlette.types import ASGIApp, Receive, Scope, Send


class StaticContentMiddleware:
    """Serve <prefix>/<file> from directory, forward everything else"""

    def __init__(self, app: ASGIApp, directory: str, prefix: str = "/static"):
        self.app = app
        self.prefix = "/" + prefix.strip("/")
        self.files = StaticFiles(directory=directory)

    def _matches(self, path: str) -> bool:
        return path == self.prefix or path.startswith(self.prefix + "/")

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not self._matches(scope["path"]):
            await self.app(scope, receive, send)
            return

        child_scope = dict(scope)
        child_scope["path"] = scope["path"][len(self.prefix):] or "/"
        await self.files(child_scope, receive, send)
