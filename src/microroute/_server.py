"""Granian launcher and the route-table rendering shared with the CLI."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Sequence

    from microroute.app import MicroRoute
    from microroute.routing import Route

logger = logging.getLogger("microroute.server")


@dataclass(frozen=True, slots=True)
class ServeOptions:
    """Resolved Granian settings; ``dev`` only supplies defaults."""

    host: str = "127.0.0.1"
    port: int = 8000
    workers: int = 1
    reload: bool = False
    log_level: str = "info"
    log_access: bool = False

    @classmethod
    def build(
        cls,
        *,
        host: str,
        port: int,
        workers: int,
        dev: bool,
        reload: bool | None,
        log_level: str,
    ) -> ServeOptions:
        if dev:
            return cls(host, port, workers, True if reload is None else reload, "debug", True)
        return cls(host, port, workers, bool(reload), log_level, False)


def serve(
    target: str,
    *,
    app: MicroRoute | None = None,
    host: str = "127.0.0.1",
    port: int = 8000,
    dev: bool = False,
    reload: bool | None = None,
    workers: int = 1,
    log_level: str = "info",
    granian_kwargs: dict[str, Any] | None = None,
) -> None:
    """Serve the ASGI app at *target* (``"module:var"``) with Granian.

    *app*, when given, is the already-imported instance; its route table is
    printed in the startup banner.
    """
    from granian import Granian

    opts = ServeOptions.build(
        host=host, port=port, workers=workers, dev=dev, reload=reload, log_level=log_level
    )
    print(render_banner(target, opts, dev=dev, routes=app.router.routes if app else None), flush=True)
    logger.debug("Starting Granian for %s with %r", target, opts)

    Granian(
        target=target,
        address=opts.host,
        port=opts.port,
        interface="asgi",
        workers=opts.workers,
        reload=opts.reload,
        log_level=opts.log_level,
        log_access=opts.log_access,
        **(granian_kwargs or {}),
    ).serve()


def resolve_target(app: MicroRoute) -> str:
    """Find the ``"module:var"`` under which ``__main__`` holds *app*.

    Granian workers re-import the app, so it must live in a module-level
    variable.
    """
    main = sys.modules.get("__main__")
    var_name = next((name for name, val in vars(main).items() if val is app), None) if main else None
    if var_name is None:
        msg = "No module-level variable in __main__ holds this app; use `microroute run module:var`."
        raise RuntimeError(msg)

    spec = getattr(main, "__spec__", None)
    module_name = spec.name if spec else Path(getattr(main, "__file__", "main")).stem
    return f"{module_name}:{var_name}"


# ------------------------------------------------------------------
# Rendering
# ------------------------------------------------------------------


def render_routes(routes: Sequence[Route]) -> list[str]:
    """One line per route in match order: methods, template, bindings."""
    if not routes:
        return ["No routes registered."]
    labels = [",".join(sorted(route.methods)) for route in routes]
    width = max(map(len, labels))
    lines = []
    for label, route in zip(labels, routes, strict=True):
        line = f"{label:<{width}}  {route.template}"
        if route.bindings:
            line += "  " + " ".join(f"{tag}={pattern}" for tag, pattern in route.bindings.items())
        lines.append(line)
    return lines


_CYAN = "\033[36m"
_GREEN = "\033[32m"
_BOLD = "\033[1m"
_RESET = "\033[0m"


def render_banner(target: str, opts: ServeOptions, *, dev: bool, routes: Sequence[Route] | None) -> str:
    color = sys.stdout.isatty()

    def c(code: str, text: str) -> str:
        return f"{code}{text}{_RESET}" if color else text

    rows = {
        "app": target,
        "server": f"Granian on http://{opts.host}:{opts.port}",
        "workers": str(opts.workers),
        "reload": "enabled" if opts.reload else "disabled",
    }
    lines = [f"{c(_BOLD + _CYAN, 'MicroRoute')}   Starting {'development' if dev else 'production'} server", ""]
    lines += [f"{c(_GREEN, key.ljust(10))} {value}" for key, value in rows.items()]
    if routes is not None:
        lines += ["", c(_GREEN, "routes"), *("  " + line for line in render_routes(routes))]
    lines.append("")
    return "\n".join(lines)
