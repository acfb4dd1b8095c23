"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns the raw bytes read from a client socket into an HTTPRequest, or raises
a typed HTTPParseError explaining why it could not.

=============================================================================
WHAT THE PARSER ACCEPTS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     ACCEPTED REQUEST SHAPE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  ┌─ REQUEST LINE ─────────────────────────────────────────────────┐ │
    │  │    POST /files/notes.txt HTTP/1.1\r\n                          │ │
    │  │    ──┬─ ────────┬──────── ───┬────                             │ │
    │  │      │          │            │                                  │ │
    │  │   GET|POST   starts with /  carried, never interpreted         │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ HEADERS ──────────────────────────────────────────────────────┐ │
    │  │    User-Agent: curl/8.4.0\r\n                                  │ │
    │  │    Content-Length: 5\r\n                                       │ │
    │  │    (split on the first ": ", names kept exactly as sent)       │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ BLANK LINE ───────────────────────────────────────────────────┐ │
    │  │    \r\n                                                         │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ BODY (only with Content-Length) ──────────────────────────────┐ │
    │  │    hello                                                        │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PARSE FAILURES
=============================================================================

Every failure is a subclass of HTTPParseError, so callers can catch them all
at once while tests can assert on the precise kind:

    ┌──────────────────────────┬────────────────────────────────────────────┐
    │  Exception               │  Raised when                               │
    ├──────────────────────────┼────────────────────────────────────────────┤
    │  InvalidRequestLine      │  first line is not METHOD SP PATH SP VER,  │
    │                          │  path lacks a leading "/", head not UTF-8  │
    │  UnsupportedMethod       │  method token is anything but GET or POST  │
    │  MissingContentLength    │  body bytes arrived without Content-Length │
    │  InvalidContentLength    │  Content-Length is not a non-negative int  │
    │  IncompleteBody          │  fewer body bytes than Content-Length      │
    └──────────────────────────┴────────────────────────────────────────────┘

A parse failure never produces a response. The connection handler logs the
reason and closes the socket.

=============================================================================
HEADER RULES
=============================================================================

1. CASE-SENSITIVE NAMES: "User-Agent" and "user-agent" are different keys.
   Lookups must use the spelling the client sent.

2. LAST ONE WINS: a repeated header overwrites the earlier value instead of
   being joined with a comma.

3. LENIENT LINES: a header line without ": " is skipped, not rejected.

4. VALUES ARE VERBATIM: nothing is stripped or lower-cased, so
   "User-Agent: test-agent/1.0" yields exactly "test-agent/1.0".

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


HEADER_TERMINATOR = b"\r\n\r\n"
HEADER_SEPARATOR = ": "


# =============================================================================
# PARSE ERRORS
# =============================================================================

class HTTPParseError(Exception):
    """
    Base class for every request parsing failure.

    Unlike route errors, parse errors carry no status code: a request that
    cannot be parsed is abandoned without a response.
    """


class InvalidRequestLine(HTTPParseError):
    """The request line is not exactly METHOD SP PATH SP VERSION."""


class UnsupportedMethod(HTTPParseError):
    """
    The request line is well formed but names a method other than GET/POST.

    Kept separate from InvalidRequestLine so that "PUT / HTTP/1.1" (a real
    method we do not serve) is distinguishable from garbage like "GET /".
    """

    def __init__(self, method: str):
        super().__init__(f"Unsupported method: {method!r}")
        self.method = method


class MissingContentLength(HTTPParseError):
    """Body bytes followed the headers but no Content-Length was sent."""


class InvalidContentLength(HTTPParseError):
    """Content-Length is present but is not a non-negative integer."""

    def __init__(self, value: str):
        super().__init__(f"Invalid Content-Length: {value!r}")
        self.value = value


class IncompleteBody(HTTPParseError):
    """The connection ended before Content-Length body bytes arrived."""

    def __init__(self, expected: int, received: int):
        super().__init__(
            f"Incomplete body: expected {expected} bytes, got {received}"
        )
        self.expected = expected
        self.received = received


# =============================================================================
# REQUEST MODEL
# =============================================================================

class Method(str, Enum):
    """
    The two methods this server understands.

    Mixing in str keeps comparisons with plain strings working, so both
    `request.method == Method.GET` and `request.method == "GET"` hold.
    """

    GET = "GET"
    POST = "POST"

    def __str__(self) -> str:
        return self.value


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:         Method.GET or Method.POST. Anything else never
                        makes it this far (UnsupportedMethod).

        path:           Request target exactly as sent, starting with "/".
                        No percent-decoding, no query splitting, no
                        normalization of "." or ".." segments.

        version:        HTTP version token ("HTTP/1.1"). Carried for
                        logging only.

        headers:        Header name -> value with the client's spelling.
                        Duplicate names keep the last value.

        body:           None unless body bytes followed the headers, in
                        which case it is exactly Content-Length bytes long.

        path_params:    Filled in by the router. Prefix routes store the
                        unmatched rest of the path under "remainder".

        client_address: (ip, port) of the peer, used in logs.

    =========================================================================
    """

    method: Method
    path: str
    version: str = "HTTP/1.1"

    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None

    # Router-injected
    path_params: Dict[str, str] = field(default_factory=dict)

    client_address: tuple[str, int] = ("", 0)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def segments(self) -> List[str]:
        """
        Path split on "/".

        "/files/a/b.txt" -> ["files", "a", "b.txt"]. The leading empty
        segment produced by the initial slash is dropped.
        """
        return self.path.split("/")[1:]

    @property
    def user_agent(self) -> Optional[str]:
        """The User-Agent header, or None when the client did not send one."""
        return self.headers.get("User-Agent")

    @property
    def content_length(self) -> Optional[int]:
        """
        Declared Content-Length as an int.

        Returns None when the header is absent or not a valid number.
        The parser has already rejected invalid values whenever a body
        was present, so this is mostly useful for logging.
        """
        value = self.headers.get("Content-Length")
        if value is None or not _is_content_length(value):
            return None
        return int(value)

    @property
    def has_body(self) -> bool:
        return self.body is not None

    @property
    def remainder(self) -> str:
        """Part of the path after a prefix route's literal ("" if none)."""
        return self.path_params.get("remainder", "")

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """
        Look up a header by its exact, case-sensitive name.

        Example:
            request.get_header("User-Agent")   # "curl/8.4.0"
            request.get_header("user-agent")   # None, different name
        """
        return self.headers.get(name, default)


# =============================================================================
# PARSER
# =============================================================================

class RequestParser:
    """
    Parses raw HTTP request bytes into HTTPRequest objects.

    ==========================================================================
    PARSER PIPELINE
    ==========================================================================

        Raw Request Bytes
              │
              ▼
        ┌───────────────────────────────────────────────────────────────────┐
        │  1. Split at the first \r\n\r\n                                   │
        │     head = everything before, remaining = everything after        │
        │     (no terminator: the whole buffer is the head, no body)        │
        │                                                                    │
        │  2. Decode the head as UTF-8 ──── fails ──► InvalidRequestLine    │
        │                                                                    │
        │  3. Request line: split on " " into exactly three tokens          │
        │        wrong count / empty token ──────────► InvalidRequestLine   │
        │        method not GET/POST ────────────────► UnsupportedMethod    │
        │        path without leading "/" ───────────► InvalidRequestLine   │
        │                                                                    │
        │  4. Headers: "Name: Value", last wins, bad lines skipped          │
        │                                                                    │
        │  5. Body (only if remaining is non-empty):                        │
        │        no Content-Length ──────────────────► MissingContentLength │
        │        not a non-negative int ─────────────► InvalidContentLength │
        │        fewer bytes than declared ──────────► IncompleteBody       │
        │        otherwise body = remaining[:Content-Length]                │
        └───────────────────────────────────────────────────────────────────┘
              │
              ▼
        HTTPRequest dataclass

    The parser is stateless and safe to share between worker threads.
    Reading enough bytes off the socket is Connection's job; the parser
    only looks at what it is given.
    ==========================================================================
    """

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse raw HTTP request data into an HTTPRequest object.

        Args:
            data: Raw request bytes, as accumulated by Connection.read_request().
            client_address: Client's (ip, port) tuple for logging.

        Returns:
            Parsed HTTPRequest object.

        Raises:
            HTTPParseError: One of the subclasses listed in the module
                docstring when the request is malformed.
        """
        # =====================================================================
        # STEP 1: Split head and body at the blank line
        # =====================================================================
        header_end = data.find(HEADER_TERMINATOR)
        if header_end == -1:
            head, remaining = data, b""
        else:
            head = data[:header_end]
            remaining = data[header_end + len(HEADER_TERMINATOR):]

        # =====================================================================
        # STEP 2: Decode the head
        # =====================================================================
        try:
            header_section = head.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidRequestLine(f"Request head is not valid UTF-8: {e}") from e

        lines = header_section.split("\r\n")

        # =====================================================================
        # STEP 3 + 4: Request line, then headers
        # =====================================================================
        method, path, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        # =====================================================================
        # STEP 5: Body
        # =====================================================================
        body = self._extract_body(headers, remaining)

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            body=body,
            client_address=client_address,
        )

    def _parse_request_line(self, line: str) -> tuple[Method, str, str]:
        """
        Parse "METHOD SP PATH SP VERSION".

        Splitting on a single space (not arbitrary whitespace) means
        "GET  / HTTP/1.1" produces an empty token and is rejected, just like
        "GET /" with only two tokens.

        Returns:
            Tuple of (method, path, version)
        """
        tokens = line.split(" ")
        if len(tokens) != 3 or not all(tokens):
            raise InvalidRequestLine(f"Invalid request line: {line!r}")

        method_token, path, version = tokens

        try:
            method = Method(method_token)
        except ValueError:
            raise UnsupportedMethod(method_token) from None

        if not path.startswith("/"):
            raise InvalidRequestLine(f"Request path must start with '/': {path!r}")

        return method, path, version

    def _parse_headers(self, lines: List[str]) -> Dict[str, str]:
        """
        Parse header lines into a dict.

        Each line is split on the FIRST ": ", so values may themselves
        contain ": " (e.g. "X-Note: a: b" -> "a: b"). Lines without the
        separator, including blank ones, are ignored.
        """
        headers: Dict[str, str] = {}

        for line in lines:
            name, separator, value = line.partition(HEADER_SEPARATOR)
            if not separator or not name:
                continue  # Lenient: skip malformed header lines

            # Plain assignment: a repeated header replaces the earlier one
            headers[name] = value

        return headers

    def _extract_body(self, headers: Dict[str, str], remaining: bytes) -> Optional[bytes]:
        """
        Cut the body out of the bytes that followed the headers.

        With nothing after the blank line there is no body, unless a
        positive Content-Length promised one: that request was cut short.
        """
        raw_length = headers.get("Content-Length")

        if not remaining:
            if raw_length is not None and _is_content_length(raw_length) and int(raw_length) > 0:
                raise IncompleteBody(int(raw_length), 0)
            return None

        if raw_length is None:
            raise MissingContentLength(
                f"{len(remaining)} body bytes sent without Content-Length"
            )

        if not _is_content_length(raw_length):
            raise InvalidContentLength(raw_length)

        content_length = int(raw_length)
        if len(remaining) < content_length:
            raise IncompleteBody(content_length, len(remaining))

        # Anything past Content-Length is dropped (no pipelining)
        return remaining[:content_length]


def _is_content_length(value: str) -> bool:
    """Only plain ASCII digits count; int() alone would accept " 5", "+5" or "1_0"."""
    return value.isascii() and value.isdigit()


# =============================================================================
# CONVENIENCE FUNCTION
# =============================================================================

def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
) -> HTTPRequest:
    """
    Parse a request in one call.

    Equivalent to RequestParser().parse(data, client_address).
    """
    return RequestParser().parse(data, client_address)
