"""
Stateless endpoint handlers: /, /echo/{text} and /user-agent.
"""

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ok
from ..http.router import MissingHeaderError


def index(request: HTTPRequest) -> HTTPResponse:
    """GET / → 200 with an empty body."""
    return ok()


def echo(request: HTTPRequest) -> HTTPResponse:
    """
    GET /echo/{text} → the rest of the path as text/plain.

    The text is echoed verbatim: "/echo/a%20b" answers "a%20b" and
    "/echo/a/b" answers "a/b".
    """
    return ok(request.remainder)


def user_agent(request: HTTPRequest) -> HTTPResponse:
    """GET /user-agent → the User-Agent header value, exactly as sent."""
    value = request.user_agent
    if value is None:
        raise MissingHeaderError("User-Agent")
    return ok(value)
