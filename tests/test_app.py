"""Tests for perch.app — registration, freezing, and the request pipeline."""

import asyncio
import threading
from typing import Any

import pytest

from perch.app import App
from perch.config import AppConfig
from perch.errors import ConfigurationError, NotFound, UnknownRoute
from perch.http.request import Request
from perch.http.response import Redirect, Response
from perch.testing import TestClient


class TestRegistration:
    def test_route_decorator_returns_function(self) -> None:
        app = App()

        @app.route("/")
        def index():
            return "home"

        assert index() == "home"

    def test_get_routes_also_answer_head(self) -> None:
        app = App()
        app.add_route("/", lambda: "home")
        app.add_route("/submit", lambda: "ok", methods=["post"])

        methods = {route.path: route.methods for route in app.routes}
        assert methods["/"] == frozenset({"GET", "HEAD"})
        assert methods["/submit"] == frozenset({"POST"})

    def test_modifying_frozen_app_raises(self) -> None:
        app = App()
        app._ensure_frozen()
        with pytest.raises(RuntimeError, match="Cannot modify"):
            app.add_route("/late", lambda: "late")

    def test_duplicate_route_names(self) -> None:
        app = App()
        app.add_route("/a", lambda: "a", name="same")
        app.add_route("/b", lambda: "b", name="same")
        with pytest.raises(ConfigurationError):
            app._ensure_frozen()

    def test_url_for(self) -> None:
        app = App()

        @app.route("/users/{id:int}", name="user")
        def user(id: int):
            return f"user {id}"

        assert app.url_for("user", id=5) == "/users/5"
        with pytest.raises(UnknownRoute):
            app.url_for("nope")

    def test_default_names_from_path(self) -> None:
        app = App()
        app.add_route("/login", lambda: "login")
        app.add_route("/app/settings/", lambda: "settings")
        app.add_route("/api/v1-beta", lambda: "beta")

        assert app.url_for("login") == "/login"
        assert app.url_for("app_settings") == "/app/settings/"
        assert app.url_for("api_v1_beta") == "/api/v1-beta"

    def test_root_and_parameter_routes_stay_unnamed(self) -> None:
        app = App()
        app.add_route("/", lambda: "home")
        app.add_route("/users/{id}", lambda id: id)

        assert [route.name for route in app.routes] == [None, None]

    def test_explicit_name_replaces_default(self) -> None:
        app = App()
        app.add_route("/login", lambda: "login", name="sign_in")

        assert app.url_for("sign_in") == "/login"
        with pytest.raises(UnknownRoute):
            app.url_for("login")

    def test_default_name_yields_to_taken_name(self) -> None:
        app = App()
        app.add_route("/users", lambda: "list")
        app.add_route("/users", lambda: "create", methods=["POST"])
        app.add_route("/signup", lambda: "signup", name="users_new")
        app.add_route("/users/new", lambda: "new")

        names = [route.name for route in app.routes]
        assert names == ["users", None, "users_new", None]
        assert app.url_for("users_new") == "/signup"

    def test_static_without_public_dir(self) -> None:
        app = App(AppConfig(public_dir=None))
        with pytest.raises(ConfigurationError, match="No public directory"):
            app.static("index.html")

    def test_static_with_missing_public_dir(self, tmp_path) -> None:
        app = App(AppConfig(public_dir=tmp_path / "missing"))
        with pytest.raises(ConfigurationError):
            app.static("index.html")

    def test_concurrent_freeze_compiles_once(self) -> None:
        app = App()
        app.add_route("/", lambda: "home")

        calls = 0
        original = App._freeze

        def counting_freeze(self: App) -> None:
            nonlocal calls
            calls += 1
            original(self)

        App._freeze = counting_freeze  # type: ignore[method-assign]
        try:
            threads = [threading.Thread(target=app._ensure_frozen) for _ in range(8)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()
        finally:
            App._freeze = original  # type: ignore[method-assign]

        assert calls == 1


class TestPipeline:
    async def test_hello_world(self) -> None:
        app = App()

        @app.route("/")
        def index():
            return "Hello, World!"

        async with TestClient(app) as client:
            response = await client.get("/")
        assert response.status == 200
        assert response.text == "Hello, World!"
        assert response.content_type == "text/html; charset=utf-8"

    async def test_json_response(self) -> None:
        app = App()

        @app.route("/api")
        def api():
            return {"ok": True}

        async with TestClient(app) as client:
            response = await client.get("/api")
        assert response.content_type == "application/json"
        assert response.text == '{"ok": true}'

    async def test_typed_path_params(self) -> None:
        app = App()
        seen: list[Any] = []

        @app.route("/users/{id:int}")
        def user(id: int):
            seen.append(id)
            return "ok"

        async with TestClient(app) as client:
            await client.get("/users/42")
        assert seen == [42]

    async def test_request_injection_by_annotation(self) -> None:
        app = App()

        @app.route("/whoami/{name}")
        async def whoami(req: Request):
            return f"{req.method} {req.path} {req.path_params['name']}"

        async with TestClient(app) as client:
            response = await client.get("/whoami/ada")
        assert response.text == "GET /whoami/ada ada"

    async def test_tuple_status(self) -> None:
        app = App()
        app.add_route("/created", lambda: ("made", 201), methods=["POST"])

        async with TestClient(app) as client:
            response = await client.post("/created")
        assert response.status == 201
        assert response.text == "made"

    async def test_redirect(self) -> None:
        app = App()
        app.add_route("/old", lambda: Redirect("/new"))

        async with TestClient(app) as client:
            response = await client.get("/old")
        assert response.status == 302
        assert response.header("location") == "/new"

    async def test_post_body(self) -> None:
        app = App()

        @app.route("/echo", methods=["POST"])
        async def echo(request: Request):
            data = await request.json()
            return {"got": data["value"]}

        async with TestClient(app) as client:
            response = await client.post("/echo", json={"value": 3})
        assert response.text == '{"got": 3}'

    async def test_middleware_wraps_handlers(self) -> None:
        app = App()
        app.add_route("/", lambda: "home")

        async def tag(request: Request, next):
            response = await next(request)
            return response.with_header("X-Tag", "yes")

        app.add_middleware(tag)

        async with TestClient(app) as client:
            response = await client.get("/")
        assert response.header("x-tag") == "yes"

    async def test_head_keeps_content_length(self) -> None:
        app = App()
        app.add_route("/", lambda: "twelve bytes")

        async with TestClient(app) as client:
            response = await client.head("/")
        assert response.status == 200
        assert response.body == b""
        assert response.header("content-length") == "12"

    async def test_startup_and_shutdown_hooks(self) -> None:
        app = App()
        events: list[str] = []
        app.add_route("/", lambda: "home")

        @app.on_startup
        async def start():
            events.append("start")

        @app.on_shutdown
        def stop():
            events.append("stop")

        async with TestClient(app) as client:
            await client.get("/")
            assert events == ["start"]
        assert events == ["start", "stop"]


class TestErrors:
    async def test_404_default(self) -> None:
        app = App()
        async with TestClient(app) as client:
            response = await client.get("/missing")
        assert response.status == 404
        assert "Routing Error" not in response.text

    async def test_404_debug_routing_page(self, tmp_path) -> None:
        (tmp_path / "index.html").write_text("shell")
        app = App(AppConfig(debug=True, public_dir=tmp_path))
        app.add_route("/login", app.static("index.html"), name="login")

        @app.route("/health", name="health")
        def health():
            return "ok"

        async with TestClient(app) as client:
            response = await client.get("/missing")

        assert response.status == 404
        assert "Routing Error" in response.text
        assert "static(&#x27;index.html&#x27;)" in response.text
        assert "/login" in response.text
        assert "health" in response.text

    async def test_405_default(self) -> None:
        app = App()
        app.add_route("/", lambda: "home")
        async with TestClient(app) as client:
            response = await client.post("/")
        assert response.status == 405
        assert response.header("allow") == "GET, HEAD"

    async def test_custom_handler_by_exception_type(self) -> None:
        app = App()

        @app.route("/thing/{id}")
        def thing(id: str):
            raise NotFound(f"no thing {id}")

        @app.error(NotFound)
        def missing(request: Request, exc: NotFound):
            return Response(exc.detail)

        async with TestClient(app) as client:
            response = await client.get("/thing/7")
        assert response.status == 404
        assert response.text == "no thing 7"

    async def test_500_hides_details(self, caplog) -> None:
        app = App()

        @app.route("/boom")
        def boom():
            raise ValueError("kaboom")

        async with TestClient(app) as client:
            with caplog.at_level("ERROR", logger="perch.server"):
                response = await client.get("/boom")

        assert response.status == 500
        assert response.text == "Internal Server Error"
        assert any("500 GET /boom" in record.getMessage() for record in caplog.records)

    async def test_500_debug_shows_exception(self) -> None:
        app = App(AppConfig(debug=True))
        app.add_route("/boom", lambda: 1 / 0)

        async with TestClient(app) as client:
            response = await client.get("/boom")
        assert response.status == 500
        assert "ZeroDivisionError" in response.text

    async def test_none_return_is_500(self) -> None:
        app = App()
        app.add_route("/nothing", lambda: None)

        async with TestClient(app) as client:
            response = await client.get("/nothing")
        assert response.status == 500


class TestLifespan:
    async def test_lifespan_protocol(self) -> None:
        app = App()
        started = asyncio.Event()

        @app.on_startup
        def start():
            started.set()

        inbox = [{"type": "lifespan.startup"}, {"type": "lifespan.shutdown"}]
        sent: list[dict[str, Any]] = []

        async def receive() -> dict[str, Any]:
            return inbox.pop(0)

        async def send(message: dict[str, Any]) -> None:
            sent.append(message)

        await app({"type": "lifespan"}, receive, send)

        assert started.is_set()
        assert [m["type"] for m in sent] == [
            "lifespan.startup.complete",
            "lifespan.shutdown.complete",
        ]

    async def test_failing_startup_reported(self) -> None:
        app = App()

        @app.on_startup
        def start():
            raise RuntimeError("db down")

        sent: list[dict[str, Any]] = []

        async def receive() -> dict[str, Any]:
            return {"type": "lifespan.startup"}

        async def send(message: dict[str, Any]) -> None:
            sent.append(message)

        await app({"type": "lifespan"}, receive, send)
        assert sent == [{"type": "lifespan.startup.failed", "message": "db down"}]
