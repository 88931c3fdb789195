"""MicroRoute ASGI application."""

import asyncio
import contextvars
import inspect
import logging
import traceback
from collections.abc import Callable, Iterable
from typing import Any

from pydantic import BaseModel

from microroute._types import ASGIApp, Fallback, Handler, Receive, Scope, Send
from microroute.errors import HTTPError
from microroute.request import Request, _current_request
from microroute.response import JSONResponse, Response
from microroute.routing import PARAM_PREFIX, Router, parse_params
from microroute.validation import validate_handler_signature

logger = logging.getLogger("microroute.app")


class MicroRoute:
    """ASGI 3.0 application that dispatches through a :class:`Router`.

    Parameters
    ----------
    base_path:
        Prefix combined with every registered template.
    strict:
        When ``True``, handlers are checked at registration time to accept
        exactly one positional argument per ``:name`` template segment.
    debug:
        When ``True``, 500 responses include the full traceback.
    """

    def __init__(self, *, base_path: str = "/", strict: bool = False, debug: bool = False) -> None:
        self.router = Router(base_path)
        self.strict = strict
        self.debug = debug
        self._middleware: list[Callable[[ASGIApp], ASGIApp]] = []
        self._app: ASGIApp | None = None

    # ------------------------------------------------------------------
    # Route registration
    # ------------------------------------------------------------------

    def route(self, methods: str | Iterable[str], template: str, **bindings: str) -> Callable[[Handler], Handler]:
        """Register the decorated handler for *methods* and *template*.

        Keyword arguments bind parameters by name without the leading colon::

            @app.route(["GET", "POST"], "/user/:id", id="[0-9]+")
            def user(id): ...
        """
        tagged = {f"{PARAM_PREFIX}{name}": pattern for name, pattern in bindings.items()}

        def decorator(handler: Handler) -> Handler:
            if self.strict:
                validate_handler_signature(handler, template, parse_params(self.router.join(template)))
            self.router.add(methods, template, handler, tagged)
            return handler

        return decorator

    def get(self, template: str, **bindings: str) -> Callable[[Handler], Handler]:
        return self.route("GET", template, **bindings)

    def post(self, template: str, **bindings: str) -> Callable[[Handler], Handler]:
        return self.route("POST", template, **bindings)

    def put(self, template: str, **bindings: str) -> Callable[[Handler], Handler]:
        return self.route("PUT", template, **bindings)

    def delete(self, template: str, **bindings: str) -> Callable[[Handler], Handler]:
        return self.route("DELETE", template, **bindings)

    def patch(self, template: str, **bindings: str) -> Callable[[Handler], Handler]:
        return self.route("PATCH", template, **bindings)

    def options(self, template: str, **bindings: str) -> Callable[[Handler], Handler]:
        return self.route("OPTIONS", template, **bindings)

    def head(self, template: str, **bindings: str) -> Callable[[Handler], Handler]:
        return self.route("HEAD", template, **bindings)

    def fallback(self, handler: Fallback) -> Fallback:
        """Use the decorated zero-argument callable when no route matches."""
        self.router.fallback = handler
        return handler

    def add_middleware(self, middleware: Callable[[ASGIApp], ASGIApp]) -> None:
        """Wrap the app: ``middleware(app)`` must return an ASGI callable.

        The last middleware added is the outermost.
        """
        self._middleware.append(middleware)
        self._app = None

    # ------------------------------------------------------------------
    # ASGI interface
    # ------------------------------------------------------------------

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await self._lifespan(receive, send)
            return

        if self._app is None:
            app: ASGIApp = self._handle
            for mw in self._middleware:
                app = mw(app)
            self._app = app
        await self._app(scope, receive, send)

    async def _lifespan(self, receive: Receive, send: Send) -> None:
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                logger.info("Serving %d route(s) under %r", len(self.router.routes), self.router.base_path)
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return

    async def _handle(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            return

        request = Request(scope, receive)
        token = _current_request.set(request)
        try:
            response = _to_response(await self._dispatch(request))
        except HTTPError as exc:
            response = JSONResponse({"detail": exc.detail}, status_code=exc.status, headers=dict(exc.headers))
        except Exception:
            logger.exception("Unhandled error in handler for %s %s", request.method, request.path)
            body: dict[str, Any] = {"detail": "Internal Server Error"}
            if self.debug:
                body["traceback"] = traceback.format_exc()
            response = JSONResponse(body, status_code=500)
        finally:
            _current_request.reset(token)

        await response.send(send, head=request.method == "HEAD")

    async def _dispatch(self, request: Request) -> Any:
        # Sync handlers run in the executor; coroutine handlers hand back a
        # coroutine that is awaited on the loop.
        ctx = contextvars.copy_context()
        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, ctx.run, self._route_request, request)
        if inspect.isawaitable(result):
            result = await result
        return result

    def _route_request(self, request: Request) -> Any:
        match = self.router.match(request.method, request.path)
        if match is not None:
            request.route, request.args = match
        return self.router.dispatch(match)

    def run(
        self,
        host: str = "127.0.0.1",
        port: int = 8000,
        *,
        dev: bool = False,
        reload: bool | None = None,
        workers: int = 1,
        log_level: str = "info",
        **granian_kwargs: Any,
    ) -> None:
        """Serve this app with Granian; see :func:`microroute._server.serve`.

        The app must be held by a module-level variable of ``__main__`` so
        Granian workers can import it.
        """
        from microroute._server import resolve_target, serve

        serve(
            resolve_target(self),
            app=self,
            host=host,
            port=port,
            dev=dev,
            reload=reload,
            workers=workers,
            log_level=log_level,
            granian_kwargs=granian_kwargs or None,
        )


def _to_response(result: Any) -> Response:
    if isinstance(result, Response):
        return result
    if isinstance(result, dict | list | BaseModel):
        return JSONResponse(result)
    if result is None:
        return Response()
    return Response(str(result))
