"""Ordered route table with ``:name`` parameters bound to regex fragments."""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from microroute.errors import InvalidParameterName, InvalidPattern, MethodNotAllowed, NotFound

if TYPE_CHECKING:
    from microroute._types import Fallback, Handler

logger = logging.getLogger("microroute.routing")

PARAM_PREFIX = ":"
SEPARATOR = "/"

_TAG_RE = re.compile(r":[A-Za-z]+")
# Characters trimmed from both ends of a template before the base path is prepended.
_TEMPLATE_TRIM = "/\\^$"


def parse_params(template: str) -> list[str]:
    """Return the ``:name`` segments of *template* in order."""
    return [part for part in template.split(SEPARATOR) if part.startswith(PARAM_PREFIX)]


class Route:
    """A method set + URI template + handler, with per-parameter patterns."""

    __slots__ = ("_bindings", "handler", "methods", "template")

    def __init__(
        self,
        methods: Iterable[str],
        template: str,
        handler: Handler,
    ) -> None:
        self.methods = frozenset(m.upper() for m in methods)
        self.template = template
        self.handler = handler
        self._bindings: dict[str, str] = {}

    def bind(self, tag: str, pattern: str) -> Route:
        """Constrain the ``tag`` segment to values matching ``pattern``.

        ``route.bind(":id", "[0-9]+")``. Rebinding a tag replaces its pattern.
        The tag is not required to occur in the template.
        """
        if _TAG_RE.fullmatch(tag) is None:
            raise InvalidParameterName(tag)
        try:
            re.compile(pattern)
        except re.error as exc:
            raise InvalidPattern(pattern, str(exc)) from exc
        self._bindings[tag] = pattern
        return self

    def unbind(self, tag: str) -> None:
        """Drop the binding for ``tag``; unknown tags are ignored."""
        self._bindings.pop(tag, None)

    @property
    def bindings(self) -> Mapping[str, str]:
        """Read-only snapshot of the current tag → pattern bindings."""
        return MappingProxyType(dict(self._bindings))

    def get_bindings(self) -> Mapping[str, str]:
        """Same as :attr:`bindings`."""
        return self.bindings

    @property
    def param_names(self) -> list[str]:
        """Named-parameter segments of the template, left to right."""
        return parse_params(self.template)

    def compile(self) -> re.Pattern[str] | None:
        """Anchored pattern for the template with current bindings substituted.

        Returns ``None`` when the result is not a valid expression.
        """
        # Snapshot: bind/unbind may run on another thread while requests match.
        bindings = dict(self._bindings)
        pattern = self.template
        if PARAM_PREFIX in pattern and bindings:
            pattern = _substitute(pattern, bindings)
        try:
            return re.compile(f"^{pattern}$")
        except re.error as exc:
            logger.debug("Route %r does not compile (%s); treating as no match", self.template, exc)
            return None

    def extract(self, path: str) -> list[str]:
        """Values of the named segments of ``path``, in template order."""
        return [
            req_part
            for tpl_part, req_part in zip(self.template.split(SEPARATOR), path.split(SEPARATOR), strict=False)
            if tpl_part.startswith(PARAM_PREFIX)
        ]

    def __repr__(self) -> str:
        return f"Route({sorted(self.methods)!r}, {self.template!r})"


class Router:
    """Ordered collection of routes with first-match-wins dispatch.

    Parameters
    ----------
    base_path:
        Prefix combined with every template passed to :meth:`add`.
    fallback:
        Zero-argument callable used when no route matches. The default
        raises :class:`~microroute.errors.NotFound`.
    """

    __slots__ = ("_lock", "_routes", "base_path", "fallback")

    def __init__(self, base_path: str = "/", fallback: Fallback | None = None) -> None:
        self.base_path = base_path
        self.fallback: Fallback = fallback or _not_found
        self._routes: tuple[Route, ...] = ()
        self._lock = threading.Lock()

    @property
    def routes(self) -> tuple[Route, ...]:
        return self._routes

    def add(
        self,
        methods: str | Iterable[str],
        template: str,
        handler: Handler,
        bindings: Mapping[str, str] | None = None,
    ) -> Route:
        """Append a route and return it so more bindings can be attached.

        *bindings* (tag → pattern) are applied before the route enters the
        table, so an invalid one leaves the table untouched.
        """
        if isinstance(methods, str):
            methods = (methods,)
        methods = tuple(methods)
        if not methods:
            msg = f"Route {template!r} needs at least one request method"
            raise ValueError(msg)

        route = Route(methods, self.join(template), handler)
        for tag, pattern in (bindings or {}).items():
            route.bind(tag, pattern)
        with self._lock:
            self._routes = (*self._routes, route)
        logger.debug("Added %r", route)
        return route

    def remove(self, template: str) -> None:
        """Remove every route whose stored template equals ``template``."""
        with self._lock:
            kept = tuple(route for route in self._routes if route.template != template)
            removed = len(self._routes) - len(kept)
            self._routes = kept
        if removed:
            logger.debug("Removed %d route(s) for %r", removed, template)

    def match(self, method: str, path: str | None) -> tuple[Route, list[str]] | None:
        """Return ``(route, args)`` for the first route matching path and method.

        Returns ``None`` when no template matches the path. Raises
        :class:`MethodNotAllowed` when templates matched but none of them
        accept ``method``.
        """
        req = self.base_path if path is None else path
        req = req.split("?", 1)[0]
        method = method.upper()
        allowed: set[str] = set()

        for route in self._routes:
            pattern = route.compile()
            if pattern is None or pattern.fullmatch(req) is None:
                continue
            if method not in route.methods:
                allowed |= route.methods
                continue
            return route, route.extract(req)

        if allowed:
            logger.debug("%s %s matched a template but not a method", method, req)
            raise MethodNotAllowed(method, req, allowed)
        return None

    def route(self, method: str, path: str | None) -> Any:
        """Dispatch one request and return whatever the handler returns."""
        return self.dispatch(self.match(method, path))

    def dispatch(self, result: tuple[Route, list[str]] | None) -> Any:
        """Call the handler of a :meth:`match` result, or the fallback for ``None``."""
        if result is None:
            logger.debug("No route matched, using fallback")
            return self.fallback()
        route, args = result
        logger.debug("Dispatching %r with %r", route, args)
        return route.handler(*args)

    def join(self, template: str) -> str:
        """Combine *template* with the base path the way :meth:`add` stores it."""
        prefix = self.base_path.rstrip(SEPARATOR)
        rest = template.strip(_TEMPLATE_TRIM)
        if not rest:
            return prefix or SEPARATOR
        return f"{prefix}{SEPARATOR}{rest}"


def _substitute(template: str, bindings: Mapping[str, str]) -> str:
    """Replace every bound tag in ``template`` with its pattern in one pass.

    Longer tags are tried first and a tag never matches the head of a longer
    name, so ``:id`` leaves ``:idx`` alone. Replacement text is not rescanned.
    """
    tags = sorted(bindings, key=len, reverse=True)
    tag_re = re.compile("(?:" + "|".join(re.escape(t) for t in tags) + ")(?![A-Za-z])")
    return tag_re.sub(lambda m: bindings[m.group(0)], template)


def _not_found() -> Any:
    raise NotFound()
