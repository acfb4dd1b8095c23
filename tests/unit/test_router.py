"""
Unit tests for the router.
"""

import pytest

from tinyhttpd.http.router import (
    Router,
    RouteError,
    MissingHeaderError,
    MissingBodyError,
    MissingBaseDirectoryError,
)
from tinyhttpd.http.request import HTTPRequest, Method
from tinyhttpd.http.response import HTTPResponse, ok
from tinyhttpd.http.status_codes import HTTPStatus


def make_request(method: str, path: str) -> HTTPRequest:
    """Helper to create a request for testing."""
    return HTTPRequest(method=Method(method), path=path)


def dummy_handler(request: HTTPRequest) -> HTTPResponse:
    """Echo the remainder back, so tests can see what was captured."""
    return ok(request.remainder)


def app_router() -> Router:
    """The route table the server uses, with stand-in handlers."""
    router = Router()
    router.add_route("/", dummy_handler, method="GET", name="index")
    router.add_route("/echo/", dummy_handler, method="GET", prefix=True, name="echo")
    router.add_route("/user-agent", dummy_handler, method="GET", prefix=True, name="ua")
    router.add_route("/files/", dummy_handler, method="GET", prefix=True, name="read")
    router.add_route("/files/", dummy_handler, method="POST", prefix=True, name="write")
    return router


class TestRouter:
    """Tests for Router class."""

    def test_add_route(self):
        """Test adding routes."""
        router = Router()
        route = router.add_route("/echo/", dummy_handler, method="GET", prefix=True)

        assert len(router) == 1
        assert router.routes == [route]
        assert route.kind == "prefix"

    def test_route_path_must_be_absolute(self):
        """Test that paths without a leading slash are refused."""
        with pytest.raises(ValueError):
            Router().add_route("echo", dummy_handler)

    def test_exact_match(self):
        """Test that exact routes match only their own path."""
        router = app_router()

        assert router.match("GET", "/").route.name == "index"
        assert router.match("GET", "//") is None
        assert router.match("GET", "/index.html") is None

    def test_prefix_captures_remainder(self):
        """Test that prefix routes capture the rest of the path verbatim."""
        router = app_router()

        found = router.match("GET", "/echo/a%20b/../c")
        assert found.route.name == "echo"
        assert found.params == {"remainder": "a%20b/../c"}

    def test_prefix_matches_empty_remainder(self):
        """Test that the prefix itself matches with an empty remainder."""
        found = app_router().match("GET", "/echo/")

        assert found.params == {"remainder": ""}

    def test_prefix_without_trailing_slash(self):
        """Test the /user-agent prefix semantics."""
        router = app_router()

        assert router.match("GET", "/user-agent").route.name == "ua"
        assert router.match("GET", "/user-agent-extra").route.name == "ua"
        assert router.match("GET", "/user-agen") is None

    def test_echo_without_slash_is_unmatched(self):
        """Test that "/echo" does not match the "/echo/" prefix."""
        assert app_router().match("GET", "/echo") is None

    def test_match_with_method(self):
        """Test method-based routing."""
        router = app_router()

        assert router.match("GET", "/files/a").route.name == "read"
        assert router.match("POST", "/files/a").route.name == "write"
        assert router.match("POST", "/echo/a") is None

    def test_method_none_matches_any(self):
        """Test routes registered without a method."""
        router = Router()
        router.add_route("/any", dummy_handler)

        assert router.match("GET", "/any") is not None
        assert router.match("POST", "/any") is not None

    def test_first_match_wins(self):
        """Test that registration order decides overlaps."""
        router = Router()
        router.add_route("/a/", dummy_handler, method="GET", prefix=True, name="first")
        router.add_route("/a/b", dummy_handler, method="GET", name="second")

        assert router.match("GET", "/a/b").route.name == "first"

    def test_regex_characters_are_literal(self):
        """Test that route paths are not interpreted as patterns."""
        router = Router()
        router.add_route("/a.b", dummy_handler, method="GET")

        assert router.match("GET", "/a.b") is not None
        assert router.match("GET", "/axb") is None

    def test_remainder_may_contain_newline(self):
        """Test that the remainder capture spans any character."""
        found = app_router().match("GET", "/echo/a\nb")

        assert found.params["remainder"] == "a\nb"

    def test_decorators(self):
        """Test get/post decorator registration."""
        router = Router()

        @router.get("/")
        def index(request):
            return ok()

        @router.post("/files/", prefix=True, name="upload")
        def upload(request):
            return ok()

        assert [r.method for r in router.routes] == ["GET", "POST"]
        assert router.get_route("upload").handler is upload

    def test_describe(self):
        """Test the route listing used for debug logging."""
        lines = app_router().describe()

        assert lines[0] == "GET    / (exact)"
        assert lines[1] == "GET    /echo/* (prefix)"


class TestDispatch:
    """Tests for route() and handle()."""

    def test_handle_success(self):
        """Test routing to a handler and injecting params."""
        request = make_request("GET", "/echo/hello")
        response = app_router().handle(request)

        assert response.status == HTTPStatus.OK
        assert response.body == b"hello"
        assert request.path_params == {"remainder": "hello"}

    @pytest.mark.parametrize("method,path", [
        ("GET", "/nope"),
        ("POST", "/"),
        ("POST", "/echo/abc"),
        ("POST", "/user-agent"),
    ])
    def test_handle_not_found(self, method, path):
        """Test that anything unmatched is an empty 404, whatever the method."""
        response = app_router().handle(make_request(method, path))

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.body == b""

    def test_custom_not_found_handler(self):
        """Test overriding the fallback."""
        router = Router(not_found_handler=lambda request: ok("custom"))

        assert router.handle(make_request("GET", "/x")).body == b"custom"

    def test_route_returns_callable(self):
        """Test pure dispatch without running the handler."""
        handler = app_router().route("GET", "/missing")

        assert callable(handler)
        assert handler(make_request("GET", "/missing")).status == HTTPStatus.NOT_FOUND

    def test_route_error_becomes_response(self):
        """Test that RouteError is converted by handle()."""
        router = Router()

        @router.get("/user-agent", prefix=True)
        def user_agent(request):
            raise MissingHeaderError("User-Agent")

        response = router.handle(make_request("GET", "/user-agent"))

        assert response.status == HTTPStatus.BAD_REQUEST
        assert response.content_type == "text/plain"
        assert response.body == b"Missing User-Agent header"

    def test_other_exceptions_propagate(self):
        """Test that unexpected errors are not swallowed by the router."""
        router = Router()

        @router.get("/")
        def broken(request):
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            router.handle(make_request("GET", "/"))


class TestRouteErrors:
    """Status codes carried by RouteError subclasses."""

    def test_default_statuses(self):
        """Test the status each error maps to."""
        assert MissingHeaderError("User-Agent").status == HTTPStatus.BAD_REQUEST
        assert MissingBodyError().status == HTTPStatus.BAD_REQUEST
        assert MissingBaseDirectoryError().status == HTTPStatus.INTERNAL_SERVER_ERROR

    def test_status_override(self):
        """Test passing an explicit status."""
        error = RouteError("nope", HTTPStatus.FORBIDDEN)

        assert error.to_response().status == HTTPStatus.FORBIDDEN
        assert MissingBodyError.status == HTTPStatus.BAD_REQUEST
