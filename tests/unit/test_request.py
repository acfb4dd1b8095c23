"""
Unit tests for HTTP request parsing.
"""

import pytest

from tinyhttpd.http.request import (
    HTTPRequest,
    Method,
    RequestParser,
    HTTPParseError,
    InvalidRequestLine,
    UnsupportedMethod,
    MissingContentLength,
    InvalidContentLength,
    IncompleteBody,
    parse_request,
)


class TestRequestParser:
    """Tests for RequestParser class."""

    def test_parse_simple_get(self, sample_get_request: bytes):
        """Test parsing a simple GET request."""
        parser = RequestParser()
        request = parser.parse(sample_get_request, ("127.0.0.1", 12345))

        assert request.method == Method.GET
        assert request.method == "GET"
        assert request.path == "/echo/abc"
        assert request.version == "HTTP/1.1"
        assert request.client_address == ("127.0.0.1", 12345)
        assert request.body is None

    def test_parse_headers(self, sample_get_request: bytes):
        """Test that headers are parsed with their exact names."""
        request = parse_request(sample_get_request)

        assert request.headers == {
            "Host": "localhost:4221",
            "User-Agent": "pytest/8.0",
            "Accept": "*/*",
        }
        assert request.user_agent == "pytest/8.0"

    def test_parse_post_with_body(self, sample_post_request: bytes):
        """Test parsing POST request with a body."""
        request = parse_request(sample_post_request)

        assert request.method == Method.POST
        assert request.path == "/files/notes.txt"
        assert request.body == b"hello, file"
        assert request.content_length == 11
        assert request.has_body is True

    def test_path_is_verbatim(self):
        """Test that the path is neither decoded nor normalized."""
        raw = b"GET /echo/a%20b/../c?x=1 HTTP/1.1\r\n\r\n"
        request = parse_request(raw)

        assert request.path == "/echo/a%20b/../c?x=1"

    def test_parse_no_headers(self):
        """Test parsing request with no headers."""
        request = parse_request(b"GET / HTTP/1.1\r\n\r\n")

        assert request.method == "GET"
        assert request.path == "/"
        assert request.headers == {}

    def test_missing_terminator_treated_as_head(self):
        """Test that a buffer without a blank line is parsed as headers only."""
        request = parse_request(b"GET /user-agent HTTP/1.1\r\nUser-Agent: x")

        assert request.user_agent == "x"
        assert request.body is None

    def test_version_is_carried_through(self):
        """Test that the version token is kept but not interpreted."""
        request = parse_request(b"GET / HTTP/1.0\r\n\r\n")

        assert request.version == "HTTP/1.0"


class TestRequestLineErrors:
    """Malformed request lines raise typed errors."""

    @pytest.mark.parametrize("line", [
        b"GET /",
        b"GET",
        b"",
        b"GET / HTTP/1.1 extra",
        b"GET  / HTTP/1.1",
    ])
    def test_wrong_token_count(self, line: bytes):
        """Test that anything but three single-space tokens is rejected."""
        with pytest.raises(InvalidRequestLine):
            parse_request(line + b"\r\nHost: test\r\n\r\n")

    def test_unsupported_method(self):
        """Test that methods other than GET/POST are UnsupportedMethod."""
        with pytest.raises(UnsupportedMethod) as exc_info:
            parse_request(b"PUT /files/a HTTP/1.1\r\n\r\n")

        assert exc_info.value.method == "PUT"

    def test_method_is_case_sensitive(self):
        """Test that "get" is not GET."""
        with pytest.raises(UnsupportedMethod):
            parse_request(b"get / HTTP/1.1\r\n\r\n")

    def test_path_without_leading_slash(self):
        """Test that the request target must start with "/"."""
        with pytest.raises(InvalidRequestLine):
            parse_request(b"GET echo/abc HTTP/1.1\r\n\r\n")

    def test_invalid_utf8_head(self):
        """Test that a head that is not UTF-8 is rejected."""
        with pytest.raises(InvalidRequestLine):
            parse_request(b"GET /\xff\xfe HTTP/1.1\r\n\r\n")

    def test_all_errors_share_base_class(self):
        """Test that every parse error can be caught as HTTPParseError."""
        for cls in (InvalidRequestLine, UnsupportedMethod, MissingContentLength,
                    InvalidContentLength, IncompleteBody):
            assert issubclass(cls, HTTPParseError)


class TestHeaderParsing:
    """Header lines: case-sensitive, last wins, lenient."""

    def test_header_names_are_case_sensitive(self):
        """Test that header lookup uses the exact spelling."""
        request = parse_request(b"GET / HTTP/1.1\r\nuser-agent: lower\r\n\r\n")

        assert request.user_agent is None
        assert request.get_header("user-agent") == "lower"
        assert request.get_header("User-Agent") is None

    def test_duplicate_header_last_wins(self):
        """Test that a repeated header keeps the last value."""
        raw = b"GET / HTTP/1.1\r\nUser-Agent: first\r\nUser-Agent: second\r\n\r\n"

        assert parse_request(raw).user_agent == "second"

    def test_lines_without_separator_are_skipped(self):
        """Test that malformed header lines are ignored."""
        raw = (
            b"GET / HTTP/1.1\r\n"
            b"NoSeparator\r\n"
            b"Tight:value\r\n"
            b"Good: yes\r\n"
            b"\r\n"
        )
        request = parse_request(raw)

        assert request.headers == {"Good": "yes"}

    def test_value_split_on_first_separator(self):
        """Test that values may contain ": "."""
        request = parse_request(b"GET / HTTP/1.1\r\nX-Note: a: b\r\n\r\n")

        assert request.get_header("X-Note") == "a: b"

    def test_value_kept_verbatim(self):
        """Test that header values are not trimmed."""
        request = parse_request(b"GET / HTTP/1.1\r\nUser-Agent:  padded \r\n\r\n")

        assert request.user_agent == " padded "


class TestBodyExtraction:
    """Body handling against Content-Length."""

    def test_body_truncated_to_content_length(self):
        """Test that bytes beyond Content-Length are dropped."""
        raw = b"POST /files/a HTTP/1.1\r\nContent-Length: 3\r\n\r\nabcdef"

        assert parse_request(raw).body == b"abc"

    def test_body_missing_content_length(self):
        """Test that body bytes without Content-Length are rejected."""
        with pytest.raises(MissingContentLength):
            parse_request(b"POST /files/a HTTP/1.1\r\n\r\nabc")

    def test_content_length_is_case_sensitive(self):
        """Test that "content-length" does not count as Content-Length."""
        with pytest.raises(MissingContentLength):
            parse_request(b"POST /files/a HTTP/1.1\r\ncontent-length: 3\r\n\r\nabc")

    @pytest.mark.parametrize("value", [b"abc", b"-1", b"+3", b" 3", b"1_0", b""])
    def test_invalid_content_length(self, value: bytes):
        """Test that only plain digits are accepted."""
        raw = b"POST /files/a HTTP/1.1\r\nContent-Length: " + value + b"\r\n\r\nabc"

        with pytest.raises(InvalidContentLength):
            parse_request(raw)

    def test_incomplete_body(self):
        """Test that fewer bytes than declared is IncompleteBody."""
        raw = b"POST /files/a HTTP/1.1\r\nContent-Length: 10\r\n\r\nabc"

        with pytest.raises(IncompleteBody) as exc_info:
            parse_request(raw)

        assert exc_info.value.expected == 10
        assert exc_info.value.received == 3

    def test_declared_body_never_sent(self):
        """Test that a positive Content-Length with nothing after the head is IncompleteBody."""
        with pytest.raises(IncompleteBody) as exc_info:
            parse_request(b"POST /files/a HTTP/1.1\r\nContent-Length: 5\r\n\r\n")

        assert exc_info.value.expected == 5
        assert exc_info.value.received == 0

    def test_zero_content_length_without_bytes(self):
        """Test that Content-Length: 0 and nothing after the head means no body."""
        request = parse_request(b"POST /files/a HTTP/1.1\r\nContent-Length: 0\r\n\r\n")

        assert request.body is None
        assert request.has_body is False

    def test_zero_length_body_with_trailing_bytes(self):
        """Test that Content-Length: 0 yields an empty body."""
        raw = b"POST /files/a HTTP/1.1\r\nContent-Length: 0\r\n\r\nxyz"

        assert parse_request(raw).body == b""

    def test_binary_body(self):
        """Test that the body is kept as raw bytes."""
        body = bytes(range(256))
        raw = b"POST /files/a HTTP/1.1\r\nContent-Length: 256\r\n\r\n" + body

        assert parse_request(raw).body == body


class TestHTTPRequest:
    """Tests for HTTPRequest dataclass."""

    def test_get_header_default(self):
        """Test get_header with default value."""
        request = HTTPRequest(method=Method.GET, path="/")

        assert request.get_header("X-Missing") is None
        assert request.get_header("X-Missing", "default") == "default"

    def test_segments(self):
        """Test path segment splitting."""
        request = HTTPRequest(method=Method.GET, path="/files/a/b.txt")

        assert request.segments == ["files", "a", "b.txt"]

    def test_remainder_defaults_to_empty(self):
        """Test remainder before routing."""
        request = HTTPRequest(method=Method.GET, path="/echo/x")

        assert request.remainder == ""

        request.path_params = {"remainder": "x"}
        assert request.remainder == "x"

    def test_method_str(self):
        """Test that Method formats as its plain name."""
        assert str(Method.POST) == "POST"
        assert f"{Method.GET}" == "GET"
