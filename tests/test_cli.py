"""Tests for the microroute CLI and the Granian launcher."""

from __future__ import annotations

import sys
import textwrap
import types
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from microroute import MicroRoute, _server
from microroute.cli import app

runner = CliRunner()

APP_SOURCE = textwrap.dedent(
    """
    from microroute import MicroRoute

    {var} = MicroRoute()

    @{var}.route(["GET", "POST"], "/user/:id", id="[0-9]+")
    def user(user_id):
        return user_id

    @{var}.get("/health")
    def health():
        return "ok"
    """
)


def _write_app(tmp_path: Path, module: str, var: str = "app") -> Path:
    path = tmp_path / f"{module}.py"
    path.write_text(APP_SOURCE.format(var=var))
    return path


def test_routes_lists_table_in_order(tmp_path: Path) -> None:
    path = _write_app(tmp_path, "cli_routes_app")

    result = runner.invoke(app, ["routes", str(path)])

    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert lines[0].split() == ["GET,POST", "/user/:id", ":id=[0-9]+"]
    assert lines[1].split() == ["GET", "/health"]


def test_routes_finds_non_default_variable(tmp_path: Path) -> None:
    path = _write_app(tmp_path, "cli_named_app", var="service")

    result = runner.invoke(app, ["routes", str(path)])

    assert result.exit_code == 0, result.output
    assert "/health" in result.output


def test_routes_accepts_module_target(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _write_app(tmp_path, "cli_target_app", var="application")
    monkeypatch.chdir(tmp_path)

    result = runner.invoke(app, ["routes", "cli_target_app:application"])

    assert result.exit_code == 0, result.output
    assert "/user/:id" in result.output


def test_routes_empty_app(tmp_path: Path) -> None:
    path = tmp_path / "cli_empty_app.py"
    path.write_text("from microroute import MicroRoute\napp = MicroRoute()\n")

    result = runner.invoke(app, ["routes", str(path)])

    assert result.exit_code == 0
    assert "No routes registered." in result.output


def test_missing_file_exits_1(tmp_path: Path) -> None:
    result = runner.invoke(app, ["routes", str(tmp_path / "nope.py")])
    assert result.exit_code == 1


def test_file_without_app_exits_1(tmp_path: Path) -> None:
    path = tmp_path / "cli_no_app.py"
    path.write_text("value = 1\n")

    result = runner.invoke(app, ["routes", str(path)])

    assert result.exit_code == 1


def test_run_passes_target_to_serve(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[tuple[str, dict[str, Any]]] = []
    monkeypatch.setattr(_server, "serve", lambda target, **kw: calls.append((target, kw)))
    path = _write_app(tmp_path, "cli_run_app")

    result = runner.invoke(app, ["run", str(path), "--port", "9000", "--workers", "2"])

    assert result.exit_code == 0, result.output
    target, kw = calls[0]
    assert target == "cli_run_app:app"
    assert kw["port"] == 9000
    assert kw["workers"] == 2
    assert len(kw["app"].router.routes) == 2


def test_dev_enables_dev_mode(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[tuple[str, dict[str, Any]]] = []
    monkeypatch.setattr(_server, "serve", lambda target, **kw: calls.append((target, kw)))
    path = _write_app(tmp_path, "cli_dev_app")

    result = runner.invoke(app, ["dev", str(path), "--no-reload"])

    assert result.exit_code == 0, result.output
    _, kw = calls[0]
    assert kw["dev"] is True
    assert kw["reload"] is False


def test_serve_applies_dev_defaults(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    created: list[dict[str, Any]] = []

    class FakeGranian:
        def __init__(self, **kwargs: Any) -> None:
            created.append(kwargs)

        def serve(self) -> None:
            pass

    monkeypatch.setattr("granian.Granian", FakeGranian)

    _server.serve("main:app", port=8123, dev=True)

    kw = created[0]
    assert kw["target"] == "main:app"
    assert kw["interface"] == "asgi"
    assert kw["reload"] is True
    assert kw["log_level"] == "debug"
    assert kw["log_access"] is True
    out = capsys.readouterr().out
    assert "MicroRoute" in out
    assert "http://127.0.0.1:8123" in out


def test_banner_lists_route_table(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.setattr("granian.Granian", lambda **kw: type("G", (), {"serve": lambda self: None})())
    instance = MicroRoute()

    @instance.get("/user/:id", id="[0-9]+")
    def user(user_id: str) -> str:
        return user_id

    _server.serve("main:app", app=instance)

    out = capsys.readouterr().out
    assert "reload     disabled" in out
    assert "GET  /user/:id  :id=[0-9]+" in out


def test_serve_options_dev_defaults_can_be_overridden() -> None:
    opts = _server.ServeOptions.build(host="0.0.0.0", port=1, workers=4, dev=True, reload=False, log_level="info")
    assert opts == _server.ServeOptions("0.0.0.0", 1, 4, False, "debug", True)

    prod = _server.ServeOptions.build(host="h", port=2, workers=1, dev=False, reload=None, log_level="warning")
    assert (prod.reload, prod.log_level, prod.log_access) == (False, "warning", False)


def test_render_routes_empty() -> None:
    assert _server.render_routes(()) == ["No routes registered."]


def test_resolve_target_finds_main_variable(monkeypatch: pytest.MonkeyPatch) -> None:
    instance = MicroRoute()
    fake_main = types.ModuleType("__main__")
    fake_main.__file__ = "/srv/site.py"
    fake_main.__spec__ = None
    fake_main.site_app = instance
    monkeypatch.setitem(sys.modules, "__main__", fake_main)

    assert _server.resolve_target(instance) == "site:site_app"

    with pytest.raises(RuntimeError, match="module-level variable"):
        _server.resolve_target(MicroRoute())
