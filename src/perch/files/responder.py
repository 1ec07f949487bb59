"""Static route targets — serve one fixed file from a route.

``static("index.html")`` returns a handler that can be registered on any
route. Whatever URL the route matched, the request is handed to the
file handler addressed to ``index.html`` instead. The route keeps its
name for ``url_for()`` and shows up as ``static('index.html')`` in
``perch routes`` and the debug routing-error page::

    app.add_route("/login", app.static("index.html"), name="login")
    app.add_route("/register", app.static("index.html"), name="new_user_registration")

This is handy for single-page apps that serve the same HTML shell for
several client-side paths, while still getting ETags, ``Range`` and
precompressed ``.gz``/``.br`` variants from the file handler.
"""

from dataclasses import dataclass

from perch.files.handler import FileHandler
from perch.http.request import Request
from perch.middleware.protocol import AnyResponse


@dataclass(frozen=True, slots=True, repr=False)
class StaticResponder:
    """Route handler that serves ``path`` through ``file_handler``.

    Immutable and stateless: one instance can serve any number of
    concurrent requests. Whether the file exists is only checked per
    request, by the file handler.
    """

    path: str
    file_handler: FileHandler

    async def __call__(self, request: Request) -> AnyResponse:
        """Serve the configured file, whatever path *request* arrived on.

        The file handler sees a copy of the request addressed to
        ``self.path``; its response (or error) is returned unchanged.
        """
        return await self.file_handler(request.with_path(self.path))

    def __repr__(self) -> str:
        return f"static({self.path!r})"

    __str__ = __repr__


def static(path: str, file_handler: FileHandler) -> StaticResponder:
    """Return a route handler serving *path* from *file_handler*'s directory.

    Most applications call ``App.static(path)``, which supplies the app's
    shared file handler built from ``AppConfig.public_dir``.
    """
    return StaticResponder(path, file_handler)
