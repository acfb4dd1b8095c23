"""
=============================================================================
HTTP ROUTER
=============================================================================

Maps (method, path) to a handler using exact and prefix rules.

=============================================================================
MATCHING RULES
=============================================================================

Routes are tried in the order they were registered; the first one whose
method and path both match wins. There is no "most specific" ranking, so
register narrow routes before broad ones.

    ┌──────────┬──────────────────────────┬─────────────────────────────────┐
    │  Kind    │  Registered as           │  Matches                        │
    ├──────────┼──────────────────────────┼─────────────────────────────────┤
    │  exact   │  get("/")                │  "/" only                       │
    │  prefix  │  get("/echo/",           │  "/echo/", "/echo/abc",         │
    │          │      prefix=True)        │  "/echo/a/b/" ...               │
    └──────────┴──────────────────────────┴─────────────────────────────────┘

For a prefix route the rest of the path is handed to the handler VERBATIM
in request.path_params["remainder"]: no percent-decoding, no slash
stripping, no ".." collapsing. Handlers that touch the filesystem are
responsible for confining that remainder themselves.

    "/echo/hello%20world"  ── prefix "/echo/" ──►  remainder "hello%20world"
    "/user-agent-x"        ── prefix "/user-agent" ► remainder "-x"

Nothing matched? The request gets an empty 404, whatever its method. This
server never answers 405.

=============================================================================
ROUTE ERRORS
=============================================================================

A handler that cannot serve a request raises a RouteError carrying the
status to answer with. Router.handle() turns it into a text/plain error
response, so handlers stay free of response-building boilerplate:

    @router.get("/user-agent", prefix=True)
    def user_agent(request):
        if request.user_agent is None:
            raise MissingHeaderError("User-Agent")     # → 400
        return ok(request.user_agent)

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
import logging
import re

from .request import HTTPRequest
from .response import HTTPResponse, error_response, not_found
from .status_codes import HTTPStatus


logger = logging.getLogger(__name__)


# Handler: takes a request, returns a response
Handler = Callable[[HTTPRequest], HTTPResponse]

REMAINDER = "remainder"


# =============================================================================
# ROUTE ERRORS
# =============================================================================

class RouteError(Exception):
    """
    A handler could not serve the request.

    Carries the HTTP status the client should see. Subclasses pick a
    sensible default so call sites stay short.
    """

    status: HTTPStatus = HTTPStatus.BAD_REQUEST

    def __init__(self, message: str, status: Optional[HTTPStatus] = None):
        super().__init__(message)
        if status is not None:
            self.status = status

    def to_response(self) -> HTTPResponse:
        return error_response(self.status, str(self))


class MissingHeaderError(RouteError):
    """A header the handler depends on was not sent (400)."""

    def __init__(self, header: str):
        super().__init__(f"Missing {header} header")
        self.header = header


class MissingBodyError(RouteError):
    """The route needs a request body and none arrived (400)."""

    def __init__(self, message: str = "Request body is required"):
        super().__init__(message)


class MissingBaseDirectoryError(RouteError):
    """File routes were hit but no base directory is configured (500)."""

    status = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "No base directory configured"):
        super().__init__(message)


# =============================================================================
# ROUTES
# =============================================================================

@dataclass
class Route:
    """
    A registered route.

        @router.get("/files/", prefix=True)
        def read_file(request): ...

        Route(
            path="/files/",
            method="GET",
            handler=read_file,
            prefix=True,
            _pattern=re.compile(r'/files/(?P<remainder>.*)', re.DOTALL),
        )
    """

    path: str                        # Literal path or path prefix
    method: Optional[str]            # None matches any method
    handler: Handler
    prefix: bool = False             # True: match path.startswith(self.path)
    name: Optional[str] = None

    _pattern: Optional[re.Pattern] = field(default=None, repr=False)

    @property
    def kind(self) -> str:
        return "prefix" if self.prefix else "exact"


@dataclass
class RouteMatch:
    """
    Result of a successful match.

    Example:
        Route:   GET "/echo/" (prefix)
        Path:    /echo/hello
        Result:  RouteMatch(route=<Route>, params={"remainder": "hello"})
    """

    route: Route
    params: Dict[str, str]


class Router:
    """
    First-match router with exact and prefix routes.

    Usage:

        router = Router()

        @router.get("/")
        def index(request):
            return ok()

        @router.get("/echo/", prefix=True)
        def echo(request):
            return ok(request.remainder)

        handler = router.route("GET", "/echo/abc")
        response = handler(request)

        # or, in one step with RouteError conversion:
        response = router.handle(request)
    """

    def __init__(self, not_found_handler: Optional[Handler] = None):
        self._routes: List[Route] = []
        self._named_routes: Dict[str, Route] = {}
        self._not_found_handler: Handler = not_found_handler or _default_not_found

    @property
    def routes(self) -> List[Route]:
        """Registered routes, in match order."""
        return list(self._routes)

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def add_route(
        self,
        path: str,
        handler: Handler,
        method: Optional[str] = None,
        prefix: bool = False,
        name: Optional[str] = None
    ) -> Route:
        """
        Register a route.

        Args:
            path: Exact path, or the literal prefix when prefix=True.
            handler: Called with the request, returns a response.
            method: "GET", "POST", or None for any method.
            prefix: Match any path starting with `path`.
            name: Optional name, looked up with get_route().

        Returns:
            The registered Route.
        """
        if not path.startswith("/"):
            raise ValueError(f"Route path must start with '/': {path!r}")

        route = Route(
            path=path,
            method=method,
            handler=handler,
            prefix=prefix,
            name=name,
            _pattern=self._compile_pattern(path, prefix),
        )
        self._routes.append(route)

        if name:
            self._named_routes[name] = route

        return route

    def _compile_pattern(self, path: str, prefix: bool) -> re.Pattern:
        """
        Compile a route path into a regex used with fullmatch().

            exact  "/"        → /
            prefix "/files/"  → /files/(?P<remainder>.*)

        re.escape keeps literal characters literal. DOTALL lets the remainder
        capture anything at all, including odd bytes like a lone "\\n".
        """
        literal = re.escape(path)
        if prefix:
            return re.compile(f"{literal}(?P<{REMAINDER}>.*)", re.DOTALL)
        return re.compile(literal)

    # -------------------------------------------------------------------------
    # Decorators
    # -------------------------------------------------------------------------

    def register(
        self,
        path: str,
        method: Optional[str] = None,
        prefix: bool = False,
        name: Optional[str] = None
    ) -> Callable[[Handler], Handler]:
        """Decorator form of add_route(); returns the handler unchanged."""
        def decorator(handler: Handler) -> Handler:
            self.add_route(path, handler, method, prefix, name)
            return handler
        return decorator

    def get(self, path: str, prefix: bool = False, **kwargs: Any) -> Callable[[Handler], Handler]:
        """Register a GET route."""
        return self.register(path, "GET", prefix, **kwargs)

    def post(self, path: str, prefix: bool = False, **kwargs: Any) -> Callable[[Handler], Handler]:
        """Register a POST route."""
        return self.register(path, "POST", prefix, **kwargs)

    # =========================================================================
    # MATCHING AND DISPATCH
    # =========================================================================

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        """
        Find the first route matching method and path.

        The path is used exactly as given; no trailing-slash or case
        normalization happens here.

        Returns:
            RouteMatch, or None when nothing matches.
        """
        for route in self._routes:
            if route.method is not None and route.method != method:
                continue

            found = route._pattern.fullmatch(path)
            if found:
                return RouteMatch(route=route, params=found.groupdict())

        return None

    def route(self, method: str, path: str) -> Handler:
        """
        Pure dispatch: pick the handler for (method, path).

        Always returns something callable. Unmatched requests get the
        not-found handler, which answers an empty 404.
        """
        found = self.match(method, path)
        if found is None:
            return self._not_found_handler

        def bound(request: HTTPRequest) -> HTTPResponse:
            # Handlers read the captured remainder from the request
            request.path_params = dict(found.params)
            return found.route.handler(request)

        return bound

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Route a request and run its handler.

        RouteErrors raised by the handler become error responses here.
        Any other exception propagates to the connection handler, which
        logs it and answers 500.
        """
        handler = self.route(request.method, request.path)
        try:
            return handler(request)
        except RouteError as e:
            logger.info(
                f"{request.method} {request.path} -> "
                f"{int(e.status)} {type(e).__name__}: {e}"
            )
            return e.to_response()

    # =========================================================================
    # UTILITY METHODS
    # =========================================================================

    def get_route(self, name: str) -> Optional[Route]:
        return self._named_routes.get(name)

    def describe(self) -> List[str]:
        """One human-readable line per route, e.g. "GET    /echo/* (prefix)"."""
        lines = []
        for route in self._routes:
            method = route.method or "*"
            path = route.path + "*" if route.prefix else route.path
            lines.append(f"{method:<6} {path} ({route.kind})")
        return lines

    def __len__(self) -> int:
        return len(self._routes)


def _default_not_found(request: HTTPRequest) -> HTTPResponse:
    return not_found()
