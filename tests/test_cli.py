"""Tests for perch.cli — entry point, app resolution, and route listing."""

import sys
import types

import pytest

from perch.app import App
from perch.cli import main
from perch.cli._resolve import resolve_app
from perch.cli._routes import format_routes
from perch.config import AppConfig


@pytest.fixture
def _fake_app_module(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Register a fake module with a perch App on sys.modules."""
    (tmp_path / "index.html").write_text("shell")

    app = App(AppConfig(public_dir=tmp_path))
    app.add_route("/login", app.static("index.html"), name="login")
    app.add_route("/register", app.static("index.html"), name="new_user_registration")

    @app.route("/users/{id:int}", methods=["GET", "POST"])
    def user(id: int):
        return "user"

    mod = types.ModuleType("_fake_perch_app")
    mod.app = app  # type: ignore[attr-defined]
    mod.make_app = lambda: App()  # type: ignore[attr-defined]
    mod.not_an_app = "just a string"  # type: ignore[attr-defined]
    monkeypatch.setitem(sys.modules, "_fake_perch_app", mod)


class TestCLIHelp:
    @pytest.mark.parametrize("argv", [["--help"], ["run", "--help"], ["routes", "--help"]])
    def test_help_exits_zero(self, argv: list[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(argv)
        assert exc_info.value.code == 0

    def test_no_command_prints_help(self, capsys) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 0
        assert "perch" in capsys.readouterr().out

    def test_routes_missing_app(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["routes"])
        assert exc_info.value.code == 2


@pytest.mark.usefixtures("_fake_app_module")
class TestResolveApp:
    def test_explicit_attribute(self) -> None:
        assert isinstance(resolve_app("_fake_perch_app:app"), App)

    def test_default_attribute(self) -> None:
        assert resolve_app("_fake_perch_app") is resolve_app("_fake_perch_app:app")

    def test_factory(self) -> None:
        assert isinstance(resolve_app("_fake_perch_app:make_app"), App)

    def test_missing_module(self) -> None:
        with pytest.raises(ModuleNotFoundError):
            resolve_app("nonexistent_module_xyz:app")

    def test_wrong_type(self) -> None:
        with pytest.raises(TypeError, match=r"not a perch\.App instance"):
            resolve_app("_fake_perch_app:not_an_app")


@pytest.mark.usefixtures("_fake_app_module")
class TestRoutesCommand:
    def test_lists_static_routes(self, capsys) -> None:
        main(["routes", "_fake_perch_app:app"])
        lines = capsys.readouterr().out.splitlines()

        assert lines[0].split() == ["NAME", "METHOD", "PATH", "HANDLER"]
        assert lines[1].split() == ["login", "GET,", "HEAD", "/login", "static('index.html')"]
        assert lines[2].split() == [
            "new_user_registration",
            "GET,",
            "HEAD",
            "/register",
            "static('index.html')",
        ]
        assert lines[3].split() == ["GET,", "HEAD,", "POST", "/users/{id:int}", "user"]

    def test_columns_aligned(self) -> None:
        app = resolve_app("_fake_perch_app:app")
        lines = format_routes(app.routes)
        path_column = lines[0].index("PATH")
        assert all(line[path_column] == "/" for line in lines[1:])

    def test_bad_import_exits_one(self, capsys) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["routes", "nonexistent_module_xyz:app"])
        assert exc_info.value.code == 1
        assert "Error:" in capsys.readouterr().err

    def test_empty_app(self, capsys, monkeypatch) -> None:
        mod = types.ModuleType("_empty_perch_app")
        mod.app = App()  # type: ignore[attr-defined]
        monkeypatch.setitem(sys.modules, "_empty_perch_app", mod)

        main(["routes", "_empty_perch_app"])
        assert capsys.readouterr().out.strip() == "No routes registered."


class TestRunCommand:
    def test_run_passes_overrides(self, monkeypatch) -> None:
        app = App(AppConfig(port=9000))
        mod = types.ModuleType("_run_perch_app")
        mod.app = app  # type: ignore[attr-defined]
        monkeypatch.setitem(sys.modules, "_run_perch_app", mod)

        calls: list[tuple] = []

        def fake_run_server(app_arg, host, port, **kwargs):
            calls.append((app_arg, host, port, kwargs))

        monkeypatch.setattr("perch.server.dev.run_server", fake_run_server)
        main(["run", "_run_perch_app:app", "--host", "0.0.0.0", "--workers", "3"])

        (app_arg, host, port, kwargs) = calls[0]
        assert app_arg is app
        assert (host, port) == ("0.0.0.0", 9000)
        assert kwargs["workers"] == 3
        assert kwargs["reload"] is False
        assert kwargs["app_path"] == "_run_perch_app:app"
