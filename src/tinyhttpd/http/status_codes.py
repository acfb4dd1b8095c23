"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes this server can put on a response line.

The server only ever answers with a handful of codes, so the enum below is
deliberately short. Every code the server emits must be listed here, because
the reason phrase on the status line comes from this table.

    ┌────────┬──────────────────────────┬─────────────────────────────────────┐
    │  Code  │  Phrase                  │  Produced by                        │
    ├────────┼──────────────────────────┼─────────────────────────────────────┤
    │  200   │  OK                      │  /, /echo/*, /user-agent, GET files │
    │  201   │  Created                 │  POST /files/*                      │
    │  400   │  Bad Request             │  missing User-Agent / POST body     │
    │  403   │  Forbidden               │  file path escapes base directory   │
    │  404   │  Not Found               │  unknown route, missing file        │
    │  408   │  Request Timeout         │  client went silent mid-request     │
    │  413   │  Payload Too Large       │  request above max_request_size     │
    │  500   │  Internal Server Error   │  no base directory, handler crash   │
    │  503   │  Service Unavailable     │  worker pool queue is full          │
    └────────┴──────────────────────────┴─────────────────────────────────────┘

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes with their reason phrases.

    IntEnum lets a status be compared with a plain integer:

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    # 2xx SUCCESS
    OK = 200
    CREATED = 201

    # 4xx CLIENT ERRORS
    BAD_REQUEST = 400
    FORBIDDEN = 403
    NOT_FOUND = 404
    REQUEST_TIMEOUT = 408
    PAYLOAD_TOO_LARGE = 413

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500
    SERVICE_UNAVAILABLE = 503

    @property
    def phrase(self) -> str:
        """Reason phrase written after the code on the status line."""
        return _STATUS_PHRASES[self]

    @property
    def is_success(self) -> bool:
        return 200 <= self < 300

    @property
    def is_client_error(self) -> bool:
        return 400 <= self < 500

    @property
    def is_server_error(self) -> bool:
        return 500 <= self < 600

    @property
    def is_error(self) -> bool:
        """True for any 4xx or 5xx code."""
        return self >= 400


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.CREATED: "Created",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
}
