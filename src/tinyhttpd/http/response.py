"""
=============================================================================
HTTP RESPONSE WRITER
=============================================================================

Builds responses and serializes them to the bytes that go on the wire.

=============================================================================
WIRE FORMAT
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      SERIALIZED RESPONSE                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   HTTP/1.1 200 OK\r\n                  ← status line                │
    │   Content-Type: text/plain\r\n         ← only if a type is set      │
    │   Content-Length: 5\r\n                ← ALWAYS, = len(body)        │
    │   \r\n                                 ← blank line                 │
    │   hello                                ← body bytes (may be empty)  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Two rules hold for every response this module produces:

1. The only headers are Content-Type and Content-Length. There is no Date,
   Server, Connection or Keep-Alive header; every connection carries one
   exchange and is then closed.

2. Content-Length is computed from the body at serialization time and is
   never taken from anywhere else. An empty body is written as
   "Content-Length: 0" rather than omitting the header.

=============================================================================
BUILDER VS CONVENIENCE FUNCTIONS
=============================================================================

    # Fluent builder
    response = (ResponseBuilder()
        .status(HTTPStatus.OK)
        .text("hello")
        .build())

    # One-liners for the common cases
    return ok()
    return created()
    return not_found()
    return bad_request("Missing User-Agent header")

=============================================================================
"""

from dataclasses import dataclass
from typing import Dict, Optional, Union

from .status_codes import HTTPStatus


TEXT_PLAIN = "text/plain"
OCTET_STREAM = "application/octet-stream"


@dataclass
class HTTPResponse:
    """
    An HTTP response waiting to be written to a socket.

    The response keeps a content type rather than a free-form header dict,
    which makes "at most Content-Type and Content-Length" true by
    construction.

        HTTPResponse(                         to_bytes()
          status=HTTPStatus.OK,      ───────►  b"HTTP/1.1 200 OK\\r\\n"
          body=b"hello",                       b"Content-Type: text/plain\\r\\n"
          content_type="text/plain",           b"Content-Length: 5\\r\\n\\r\\n"
        )                                      b"hello"
    """

    status: HTTPStatus = HTTPStatus.OK
    body: bytes = b""
    content_type: Optional[str] = None
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """Example: "HTTP/1.1 404 Not Found"."""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def content_length(self) -> int:
        return len(self.body)

    @property
    def headers(self) -> Dict[str, str]:
        """
        The header lines this response will be written with, in order.

        Computed on every access so Content-Length can never drift from the
        body.
        """
        headers: Dict[str, str] = {}
        if self.content_type:
            headers["Content-Type"] = self.content_type
        headers["Content-Length"] = str(self.content_length)
        return headers

    def to_bytes(self) -> bytes:
        """
        Serialize the response for socket.sendall().

        Returns:
            Status line, headers, blank line and body as one bytes object.
        """
        lines = [self.status_line]
        for name, value in self.headers.items():
            lines.append(f"{name}: {value}")

        # Empty string yields the blank line once joined with CRLF
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return header_bytes + self.body


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

    Each setter returns self, so calls chain:

        ResponseBuilder().status(HTTPStatus.CREATED).build()
        ResponseBuilder().binary(file_bytes).build()
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._body: bytes = b""
        self._content_type: Optional[str] = None

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        self._content_type = content_type
        return self

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """
        Set the raw body. Strings are encoded as UTF-8.

        Does not touch the content type; use text() or binary() for that.
        """
        if isinstance(body, str):
            body = body.encode("utf-8")
        self._body = body
        return self

    def text(self, text: str, content_type: str = TEXT_PLAIN) -> "ResponseBuilder":
        """Plain-text body. The default type is exactly "text/plain", no charset."""
        self._body = text.encode("utf-8")
        self._content_type = content_type
        return self

    def binary(self, data: bytes) -> "ResponseBuilder":
        """Opaque bytes served as application/octet-stream."""
        self._body = data
        self._content_type = OCTET_STREAM
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            body=self._body,
            content_type=self._content_type,
        )

    def to_bytes(self) -> bytes:
        """Shortcut for build().to_bytes()."""
        return self.build().to_bytes()


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================
#
# Success responses carry no body unless one is given. Error responses carry a
# short text/plain message so a human poking at the server with curl can tell
# what went wrong. 404 stays empty, matching the route table.
#
# =============================================================================

def ok(body: Union[str, bytes] = b"", content_type: Optional[str] = None) -> HTTPResponse:
    """
    200 OK.

    A str body defaults to text/plain; a bytes body gets no content type
    unless one is passed.
    """
    builder = ResponseBuilder().status(HTTPStatus.OK)
    if isinstance(body, str):
        builder.text(body, content_type or TEXT_PLAIN)
    else:
        builder.body(body)
        if content_type:
            builder.content_type(content_type)
    return builder.build()


def created() -> HTTPResponse:
    """201 Created with an empty body."""
    return ResponseBuilder().status(HTTPStatus.CREATED).build()


def not_found() -> HTTPResponse:
    """404 Not Found with an empty body."""
    return ResponseBuilder().status(HTTPStatus.NOT_FOUND).build()


def error_response(status: HTTPStatus, message: str) -> HTTPResponse:
    """Any error status with a text/plain explanation."""
    return ResponseBuilder().status(status).text(message).build()


def bad_request(message: str = "Bad Request") -> HTTPResponse:
    return error_response(HTTPStatus.BAD_REQUEST, message)


def forbidden(message: str = "Forbidden") -> HTTPResponse:
    return error_response(HTTPStatus.FORBIDDEN, message)


def request_timeout(message: str = "Request Timeout") -> HTTPResponse:
    return error_response(HTTPStatus.REQUEST_TIMEOUT, message)


def payload_too_large(message: str = "Payload Too Large") -> HTTPResponse:
    return error_response(HTTPStatus.PAYLOAD_TOO_LARGE, message)


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    return error_response(HTTPStatus.INTERNAL_SERVER_ERROR, message)


def service_unavailable(message: str = "Service Unavailable") -> HTTPResponse:
    return error_response(HTTPStatus.SERVICE_UNAVAILABLE, message)
