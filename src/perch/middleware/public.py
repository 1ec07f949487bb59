"""Public directory mount.

Serves every file of the public directory under a URL prefix through a
``FileHandler``. Requests for paths that are not files fall through to
the router, so application routes and ``static()`` routes keep working
under the same prefix.
"""

from perch.errors import NotFound
from perch.files.handler import FileHandler
from perch.http.request import Request
from perch.middleware.protocol import AnyResponse
from perch.middleware.protocol import Next


class PublicFiles:
    """Middleware that serves files from a ``FileHandler`` at a prefix.

    Only GET and HEAD are served here; other methods fall through.
    Path traversal is rejected by the file handler with 403.

    Usage::

        handler = FileHandler("./public", cache_control="no-cache")
        app.add_middleware(PublicFiles(handler, prefix="/assets"))

        # Root-level serving
        app.add_middleware(PublicFiles(handler, prefix="/"))

    ``App`` installs one automatically when ``AppConfig.public_url`` is set.
    """

    __slots__ = ("_file_handler", "_prefix")

    def __init__(self, file_handler: FileHandler, prefix: str = "/") -> None:
        self._file_handler = file_handler

        # Normalize prefix: leading slash, no trailing. Root becomes "".
        stripped = "/" + prefix.strip("/")
        self._prefix = stripped if stripped != "/" else ""

    @property
    def prefix(self) -> str:
        return self._prefix or "/"

    async def __call__(self, request: Request, next: Next) -> AnyResponse:
        """Serve a public file or fall through."""
        if request.method not in ("GET", "HEAD"):
            return await next(request)

        path = request.path
        if self._prefix:
            if not path.startswith(self._prefix + "/") and path != self._prefix:
                return await next(request)
            relative = path[len(self._prefix) :]
        else:
            relative = path

        try:
            return await self._file_handler(request.with_path(relative or "/"))
        except NotFound:
            return await next(request)
