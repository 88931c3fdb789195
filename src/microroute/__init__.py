"""First-match request routing with regex-constrained ``:name`` parameters."""

__version__ = "0.1.0"

from microroute.app import MicroRoute
from microroute.errors import (
    HTTPError,
    InvalidParameterName,
    InvalidPattern,
    MethodNotAllowed,
    MicroRouteError,
    NotFound,
)
from microroute.request import Request, get_request
from microroute.response import JSONResponse, Response
from microroute.routing import Route, Router

__all__ = [
    "HTTPError",
    "InvalidParameterName",
    "InvalidPattern",
    "JSONResponse",
    "MethodNotAllowed",
    "MicroRoute",
    "MicroRouteError",
    "NotFound",
    "Request",
    "Response",
    "Route",
    "Router",
    "get_request",
]
