"""Perch — a small ASGI framework with file-serving route targets.

Basic usage::

    from perch import App, AppConfig

    app = App(AppConfig(public_dir="public"))

    app.add_route("/login", app.static("index.html"), name="login")
    app.add_route("/register", app.static("index.html"), name="new_user_registration")

    @app.route("/health")
    def health():
        return {"ok": True}

    app.run()
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "ConfigurationError",
    "FileHandler",
    "Forbidden",
    "HTTPError",
    "MethodNotAllowed",
    "Middleware",
    "Next",
    "NotFound",
    "PerchError",
    "PublicFiles",
    "Redirect",
    "Request",
    "Response",
    "StaticResponder",
    "UnknownRoute",
    "static",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import perch`` fast while providing a clean top-level API.
    """
    if name == "App":
        from perch.app import App

        return App

    if name == "AppConfig":
        from perch.config import AppConfig

        return AppConfig

    if name == "Request":
        from perch.http.request import Request

        return Request

    if name in ("Response", "Redirect"):
        from perch.http import response as _resp

        return getattr(_resp, name)

    if name in ("FileHandler", "StaticResponder", "static"):
        from perch import files as _files

        return getattr(_files, name)

    if name in ("Middleware", "Next", "PublicFiles"):
        from perch import middleware as _mw

        return getattr(_mw, name)

    if name in (
        "PerchError",
        "ConfigurationError",
        "UnknownRoute",
        "HTTPError",
        "NotFound",
        "Forbidden",
        "MethodNotAllowed",
    ):
        from perch import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
