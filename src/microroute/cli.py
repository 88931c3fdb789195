"""MicroRoute command-line interface powered by Typer."""

import importlib
import sys
from pathlib import Path
from typing import Annotated

import typer

from microroute.app import MicroRoute

app = typer.Typer(name="microroute", add_completion=False, no_args_is_help=True)

PathArg = Annotated[str, typer.Argument(help="Python file or module:var target.")]
HostOpt = Annotated[str, typer.Option(help="Bind address.")]
PortOpt = Annotated[int, typer.Option(help="Bind port.")]


# ------------------------------------------------------------------
# Target resolution
# ------------------------------------------------------------------


def _load_app(path: str) -> tuple[str, MicroRoute]:
    """Import the app named by a CLI *path* argument.

    Accepted forms:
    - ``module:var``   → imports ``module`` and reads ``var``
    - ``file.py``      → imports ``file``, scans for a MicroRoute instance

    Returns the ``"module:var"`` target together with the app object.
    """
    if ":" in path:
        module_name, var_name = path.split(":", 1)
        mod = _import(module_name, Path.cwd())
        found = getattr(mod, var_name, None)
        if not isinstance(found, MicroRoute):
            typer.echo(f"Error: {path!r} is not a MicroRoute instance.", err=True)
            raise typer.Exit(1)
        return path, found

    file = Path(path)
    if not file.exists():
        typer.echo(f"Error: file {path!r} not found.", err=True)
        raise typer.Exit(1)

    mod = _import(file.stem, file.resolve().parent)
    var_name = _find_app_var(mod)
    if var_name is None:
        typer.echo(
            f"Error: no MicroRoute instance found in {path!r}. Provide an explicit target, e.g. main:app",
            err=True,
        )
        raise typer.Exit(1)

    return f"{file.stem}:{var_name}", getattr(mod, var_name)


def _import(module_name: str, directory: Path) -> object:
    parent = str(directory)
    if parent not in sys.path:
        sys.path.insert(0, parent)
    try:
        return importlib.import_module(module_name)
    except Exception as exc:
        typer.echo(f"Error importing {module_name!r}: {exc}", err=True)
        raise typer.Exit(1) from exc


def _find_app_var(mod: object) -> str | None:
    """Scan a module for a ``MicroRoute`` instance.

    Checks ``app`` and ``application`` first, then falls back to any attribute.
    """
    for name in ("app", "application"):
        if isinstance(getattr(mod, name, None), MicroRoute):
            return name

    for name in dir(mod):
        if name.startswith("_"):
            continue
        if isinstance(getattr(mod, name, None), MicroRoute):
            return name

    return None


# ------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------


@app.command()
def dev(
    path: PathArg = "main.py",
    host: HostOpt = "127.0.0.1",
    port: PortOpt = 8000,
    reload: Annotated[bool | None, typer.Option("--reload/--no-reload", help="Auto-reload on code changes.")] = None,
) -> None:
    """Start a development server with auto-reload and debug logging."""
    from microroute._server import serve

    target, instance = _load_app(path)
    serve(target, app=instance, host=host, port=port, dev=True, reload=reload)


@app.command()
def run(
    path: PathArg = "main.py",
    host: HostOpt = "127.0.0.1",
    port: PortOpt = 8000,
    workers: Annotated[int, typer.Option(help="Number of worker processes.")] = 1,
) -> None:
    """Start a production server."""
    from microroute._server import serve

    target, instance = _load_app(path)
    serve(target, app=instance, host=host, port=port, workers=workers)


@app.command()
def routes(path: PathArg = "main.py") -> None:
    """Print the route table in match order."""
    from microroute._server import render_routes

    _, instance = _load_app(path)
    typer.echo("\n".join(render_routes(instance.router.routes)))
