"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Everything between "bytes arrived" and "bytes to send":

    ┌──────────────────┐     ┌──────────────┐     ┌──────────────────────┐
    │  request.py      │     │  router.py   │     │  response.py         │
    │  bytes ──► HTTP  │ ──► │  (method,    │ ──► │  HTTPResponse ──►    │
    │  Request or      │     │   path) ──►  │     │  bytes, with exact   │
    │  HTTPParseError  │     │   Handler    │     │  Content-Length      │
    └──────────────────┘     └──────────────┘     └──────────────────────┘

No socket code lives here, which keeps the whole layer testable with plain
byte strings.

=============================================================================
"""

from .request import (
    HTTPRequest,
    Method,
    RequestParser,
    parse_request,
    HTTPParseError,
    InvalidRequestLine,
    UnsupportedMethod,
    MissingContentLength,
    InvalidContentLength,
    IncompleteBody,
)
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ok,
    created,
    not_found,
    error_response,
    bad_request,
    forbidden,
    request_timeout,
    payload_too_large,
    internal_error,
    service_unavailable,
)
from .router import (
    Router,
    Route,
    RouteMatch,
    Handler,
    RouteError,
    MissingHeaderError,
    MissingBodyError,
    MissingBaseDirectoryError,
)
from .status_codes import HTTPStatus

__all__ = [
    # Request parsing
    "HTTPRequest",
    "Method",
    "RequestParser",
    "parse_request",
    "HTTPParseError",
    "InvalidRequestLine",
    "UnsupportedMethod",
    "MissingContentLength",
    "InvalidContentLength",
    "IncompleteBody",

    # Response building
    "HTTPResponse",
    "ResponseBuilder",
    "ok",
    "created",
    "not_found",
    "error_response",
    "bad_request",
    "forbidden",
    "request_timeout",
    "payload_too_large",
    "internal_error",
    "service_unavailable",

    # Routing
    "Router",
    "Route",
    "RouteMatch",
    "Handler",
    "RouteError",
    "MissingHeaderError",
    "MissingBodyError",
    "MissingBaseDirectoryError",

    # Status codes
    "HTTPStatus",
]
