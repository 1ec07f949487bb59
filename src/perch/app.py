"""Perch application class.

Mutable during setup (route registration, middleware, error handlers).
Frozen at runtime when app.run() or __call__() is first invoked.
"""

import inspect
import re
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from perch._internal.asgi import Receive, Scope, Send
from perch._internal.types import ErrorHandler, Handler
from perch.config import AppConfig
from perch.files.handler import FileHandler
from perch.files.responder import StaticResponder, static
from perch.middleware.protocol import Middleware
from perch.middleware.public import PublicFiles
from perch.routing.route import Route
from perch.routing.router import Router
from perch.server.handler import handle_request


@dataclass(slots=True)
class _PendingRoute:
    """A route waiting to be compiled."""

    path: str
    handler: Handler
    methods: list[str] | None
    name: str | None


class App:
    """The perch application.

    Mutable during setup (route registration, middleware, error handlers).
    Frozen at runtime when ``app.run()`` or ``__call__()`` is first invoked.

    Thread safety:
        The setup phase is single-threaded (decorators at import time).
        The freeze transition uses a Lock + double-check to ensure exactly
        one thread compiles the app, even when several ASGI workers call
        ``__call__()`` concurrently on first request.
    """

    __slots__ = (
        "_error_handlers",
        "_file_handler",
        "_freeze_lock",
        "_frozen",
        "_middleware",
        "_middleware_list",
        "_pending_routes",
        # Compiled state (populated by _freeze)
        "_router",
        "_shutdown_hooks",
        "_startup_hooks",
        "config",
    )

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config: AppConfig = config or AppConfig()
        self._pending_routes: list[_PendingRoute] = []
        self._middleware_list: list[Middleware] = []
        self._error_handlers: dict[int | type, ErrorHandler] = {}
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()

        # Built on first use from config, then shared by every static route
        self._file_handler: FileHandler | None = None

        # Compiled state — set during _freeze()
        self._router: Router | None = None
        self._middleware: tuple[Callable[..., Any], ...] = ()

    # -- Route registration --

    def add_route(
        self,
        path: str,
        handler: Handler,
        *,
        methods: list[str] | None = None,
        name: str | None = None,
    ) -> None:
        """Register *handler* for *path*.

        Args:
            path: URL path pattern. Use ``{param}`` for path parameters.
            handler: Function or async callable (e.g. ``app.static(...)``).
            methods: HTTP methods. Defaults to ``["GET"]``; ``HEAD`` is
                added automatically wherever ``GET`` is allowed.
            name: Route name for ``url_for()``. Parameter-free routes other
                than ``/`` default to their path with separators turned into
                underscores (``/app/settings`` -> ``app_settings``). A default
                that is already taken is skipped instead of raising.
        """
        self._check_not_frozen()
        self._pending_routes.append(_PendingRoute(path, handler, methods, name))

    def route(
        self,
        path: str,
        *,
        methods: list[str] | None = None,
        name: str | None = None,
    ) -> Callable[[Handler], Handler]:
        """Register a route handler via decorator."""

        def decorator(func: Handler) -> Handler:
            self.add_route(path, func, methods=methods, name=name)
            return func

        return decorator

    # -- Public files --

    @property
    def file_handler(self) -> FileHandler:
        """The app's shared file handler.

        Built on first access from ``config.public_dir`` and the
        ``static_*`` settings. Raises ``ConfigurationError`` if the public
        directory is unset or missing.
        """
        if self._file_handler is None:
            self._file_handler = FileHandler(
                self.config.public_dir,
                self.config.static_cache_control,
                index=self.config.static_index,
                precompressed=self.config.static_precompressed,
            )
        return self._file_handler

    def static(self, path: str) -> StaticResponder:
        """Return a route handler that always serves *path* from the public dir.

        Usage::

            app.add_route("/login", app.static("index.html"), name="login")

        Every responder returned by one app shares that app's file handler.
        """
        return static(path, self.file_handler)

    # -- URL generation --

    def url_for(self, name: str, **params: object) -> str:
        """Build the path of the route registered as *name*.

        Freezes the app on first use. Raises ``UnknownRoute`` for names
        that were never registered.
        """
        self._ensure_frozen()
        assert self._router is not None
        return self._router.url_for(name, **params)

    @property
    def routes(self) -> list[Route]:
        """Compiled routes in registration order (freezes the app)."""
        self._ensure_frozen()
        assert self._router is not None
        return self._router.routes

    # -- Error handlers --

    def error(
        self,
        code_or_exception: int | type[Exception],
    ) -> Callable[[ErrorHandler], ErrorHandler]:
        """Register an error handler via decorator."""

        def decorator(func: ErrorHandler) -> ErrorHandler:
            self._check_not_frozen()
            self._error_handlers[code_or_exception] = func
            return func

        return decorator

    # -- Middleware --

    def add_middleware(self, middleware: Middleware) -> None:
        """Add a middleware to the pipeline."""
        self._check_not_frozen()
        self._middleware_list.append(middleware)

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync startup hook via decorator.

        Hooks run in registration order during ASGI lifespan startup,
        before the server begins accepting HTTP requests.
        """
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync shutdown hook via decorator."""
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    # -- Server --

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Compile the app and serve it with pounce.

        Debug apps run a single worker with auto-reload.
        """
        from perch.server.dev import run_server

        self._ensure_frozen()
        run_server(
            self,
            host or self.config.host,
            port or self.config.port,
            workers=self.config.workers,
            reload=self.config.debug,
            reload_include=self.config.reload_include,
            reload_dirs=self.config.reload_dirs,
            log_level=self.config.log_level,
        )

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        self._ensure_frozen()
        assert self._router is not None

        await handle_request(
            scope,
            receive,
            send,
            router=self._router,
            middleware=self._middleware,
            error_handlers=self._error_handlers,
            debug=self.config.debug,
        )

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Run the ASGI lifespan protocol.

        Freezes the app at startup (before first HTTP request), then
        runs registered startup/shutdown hooks and signals completion
        back to the server.
        """
        self._ensure_frozen()

        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    await self.startup()
                    await send({"type": "lifespan.startup.complete"})
                except Exception as exc:
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return

            elif msg_type == "lifespan.shutdown":
                await self.shutdown()
                await send({"type": "lifespan.shutdown.complete"})
                return

    async def startup(self) -> None:
        """Run startup hooks in registration order."""
        for hook in self._startup_hooks:
            result = hook()
            if inspect.isawaitable(result):
                await result

    async def shutdown(self) -> None:
        """Run shutdown hooks in registration order."""
        for hook in self._shutdown_hooks:
            result = hook()
            if inspect.isawaitable(result):
                await result

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Compile the app into its frozen runtime state.

        MUST only be called while holding _freeze_lock.
        """
        # 1. Compile route table
        router = Router()
        taken = {pending.name for pending in self._pending_routes if pending.name}
        for pending in self._pending_routes:
            name = pending.name
            if name is None:
                name = _default_route_name(pending.path)
                if name in taken:
                    name = None
                elif name is not None:
                    taken.add(name)
            methods = {m.upper() for m in (pending.methods or ["GET"])}
            if "GET" in methods:
                methods.add("HEAD")
            router.add(
                Route(
                    path=pending.path,
                    handler=pending.handler,
                    methods=frozenset(methods),
                    name=name,
                )
            )
        router.compile()
        self._router = router

        # 2. Capture middleware as immutable tuple. The public mount sits
        #    innermost so user middleware also wraps served files.
        middleware_list: list[Callable[..., Any]] = list(self._middleware_list)
        if self.config.public_url is not None:
            middleware_list.append(PublicFiles(self.file_handler, prefix=self.config.public_url))
        self._middleware = tuple(middleware_list)

        self._frozen = True

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register routes, middleware, and error handlers before calling app.run()."
            )
            raise RuntimeError(msg)


def _default_route_name(path: str) -> str | None:
    """Name a parameter-free route after its path, or ``None``.

    ``/login`` -> ``login``; ``/app/settings`` -> ``app_settings``.
    The root and routes with ``{params}`` stay unnamed.
    """
    if "{" in path:
        return None
    return re.sub(r"\W+", "_", path.strip("/")).strip("_") or None
