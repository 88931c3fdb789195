"""Per-request routing state, reachable from handlers through a context variable."""

from __future__ import annotations

import json
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qs

from microroute.routing import PARAM_PREFIX

if TYPE_CHECKING:
    from microroute._types import Receive, Scope
    from microroute.routing import Route

_current_request: ContextVar[Request] = ContextVar("microroute_request")


def get_request() -> Request:
    """Return the request being handled.

    Handlers are called with path values only; this is how they reach the
    matched route, named parameters, query string and body. Raises
    :class:`LookupError` outside a request.
    """
    return _current_request.get()


@dataclass(slots=True)
class Request:
    """An ASGI request plus the outcome of matching it against the router.

    ``route`` and ``args`` stay empty until the router has matched, and stay
    empty for requests served by the fallback.
    """

    scope: Scope
    receive: Receive
    route: Route | None = None
    args: list[str] = field(default_factory=list)
    _body: bytes | None = field(default=None, init=False, repr=False)

    @property
    def method(self) -> str:
        return self.scope["method"]

    @property
    def path(self) -> str:
        return self.scope["path"]

    @property
    def params(self) -> dict[str, str]:
        """Matched values keyed by parameter name without the ``:``."""
        if self.route is None:
            return {}
        names = (name.removeprefix(PARAM_PREFIX) for name in self.route.param_names)
        return dict(zip(names, self.args, strict=False))

    @property
    def query_params(self) -> dict[str, list[str]]:
        return parse_qs(self.scope.get("query_string", b"").decode("latin-1"))

    async def body(self) -> bytes:
        """Read the body once; later calls return the cached bytes."""
        if self._body is None:
            chunks = []
            more = True
            while more:
                message = await self.receive()
                chunks.append(message.get("body", b""))
                more = message.get("more_body", False)
            self._body = b"".join(chunks)
        return self._body

    async def json(self) -> Any:
        return json.loads(await self.body())
