"""MicroRoute exception hierarchy.

Bind-time errors are raised to the caller of :meth:`Route.bind`; the HTTP
errors are raised by the router and turned into responses by the ASGI app.
"""

from __future__ import annotations

from collections.abc import Iterable


class MicroRouteError(Exception):
    """Base for all microroute-specific errors."""


class InvalidParameterName(MicroRouteError, ValueError):  # noqa: N818
    """A binding tag does not look like ``:name``."""

    def __init__(self, tag: str) -> None:
        self.tag = tag
        super().__init__(f"Invalid parameter name: {tag!r}")


class InvalidPattern(MicroRouteError, ValueError):  # noqa: N818
    """A binding pattern is not a valid regular expression fragment."""

    def __init__(self, pattern: str, reason: str = "") -> None:
        self.pattern = pattern
        msg = f"Invalid RegEx pattern: {pattern!r}"
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__(msg)


class HTTPError(MicroRouteError):
    """An error that maps directly to an HTTP status code."""

    def __init__(
        self,
        status: int,
        detail: str = "",
        headers: tuple[tuple[str, str], ...] = (),
    ) -> None:
        self.status = status
        self.detail = detail
        self.headers = headers
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404: no route matched the request path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(404, detail)


class MethodNotAllowed(HTTPError):  # noqa: N818
    """405: a route matched the path but not the request method.

    ``allowed`` holds every method accepted by the routes whose template
    matched the path.
    """

    def __init__(self, method: str, path: str, allowed: Iterable[str]) -> None:
        self.method = method
        self.path = path
        self.allowed = frozenset(allowed)
        allow_value = ", ".join(sorted(self.allowed))
        super().__init__(
            405,
            f"Method {method} not allowed for {path}. Allowed methods: {allow_value}",
            (("Allow", allow_value),),
        )
