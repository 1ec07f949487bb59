"""Perch exception hierarchy.

Shared across Router, App, file handler, and middleware so every module
raises and catches the same types.
"""

from dataclasses import dataclass


class PerchError(Exception):
    """Base for all perch-specific errors."""


class ConfigurationError(PerchError):
    """Raised when app configuration is invalid.

    Typically raised at route registration or during ``App._freeze()``
    at startup: a missing public directory, a duplicate route name.
    """


class UnknownRoute(PerchError, LookupError):  # noqa: N818
    """No route is registered under the requested name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"No route named {name!r}")
        self.name = name


@dataclass(frozen=True, slots=True)
class HTTPError(PerchError):
    """An error that maps directly to an HTTP status code.

    Raised by the router, the file handler, middleware, or handlers. The
    ASGI handler catches these and dispatches to the matching
    ``@app.error()`` handler.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818 — conventional name in web frameworks
    """404 — no route or file matched the request path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class Forbidden(HTTPError):  # noqa: N818
    """403 — the path resolves outside the served directory."""

    def __init__(self, detail: str = "Forbidden") -> None:
        super().__init__(status=403, detail=detail)


class MethodNotAllowed(HTTPError):  # noqa: N818 — conventional name in web frameworks
    """405 — route exists but not for this HTTP method.

    Includes an ``Allow`` header listing the valid methods and embeds
    the allowed methods in the detail string for developer visibility.
    """

    def __init__(self, allowed: frozenset[str], detail: str = "") -> None:
        allow_value = ", ".join(sorted(allowed))
        default_detail = f"Method not allowed. Allowed methods: {allow_value}"
        super().__init__(
            status=405,
            detail=detail or default_detail,
            headers=(("Allow", allow_value),),
        )


class RangeNotSatisfiable(HTTPError):  # noqa: N818
    """416 — the requested byte range lies outside the file."""

    def __init__(self, size: int) -> None:
        super().__init__(
            status=416,
            detail="Range Not Satisfiable",
            headers=(("Content-Range", f"bytes */{size}"),),
        )
