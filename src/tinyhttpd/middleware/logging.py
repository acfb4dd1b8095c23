"""
=============================================================================
ACCESS LOG MIDDLEWARE
=============================================================================

One log line per answered request, emitted on the "tinyhttpd.access"
logger so it can be routed or silenced separately from diagnostics:

    logging.getLogger("tinyhttpd.access").setLevel(logging.WARNING)

Two formats:

    text   127.0.0.1 - - [19/Oct/2026:10:00:00 +0000] "GET /echo/abc" 200 3 0.12ms
    json   {"method": "GET", "path": "/echo/abc", "status_code": 200, ...}

This middleware only observes. It never adds headers to the response,
so what the client receives is exactly what the handler produced.

=============================================================================
"""

import time
import json
import logging
from typing import Optional
from dataclasses import dataclass, asdict

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger("tinyhttpd.access")


@dataclass
class RequestLog:
    """
    One access log entry.

    Fields:
        method, path:    From the request line, as sent
        client_ip:       Peer address
        user_agent:      User-Agent header, or "-" when absent
        status_code:     Status of the response sent back
        content_length:  Response body size in bytes
        duration_ms:     Time spent in the handler chain
        timestamp:       Apache-style local time
    """

    method: str
    path: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        """Apache combined-log style line, readable by the usual tools."""
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Times the handler chain and logs the outcome.

    Place it first so its timing covers everything behind it:

        pipeline.add(LoggingMiddleware(log_format="json"))

    A handler exception is logged at ERROR and re-raised untouched; the
    connection handler is what turns it into a 500.
    """

    def __init__(
        self,
        log_format: str = "text",
        log_level: int = logging.INFO,
        skip_paths: Optional[list[str]] = None,
    ):
        """
        Args:
            log_format: "text" or "json".
            log_level: Level access lines are logged at.
            skip_paths: Exact paths that should not be logged.
        """
        if log_format not in ("text", "json"):
            raise ValueError(f"Unknown log format: {log_format!r}")

        self.log_format = log_format
        self.log_level = log_level
        self.skip_paths = set(skip_paths or [])

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        start_time = time.time()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"Request failed: {request.method} {request.path} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        duration_ms = (time.time() - start_time) * 1000

        if request.path in self.skip_paths:
            return response

        entry = RequestLog(
            method=str(request.method),
            path=request.path,
            client_ip=request.client_address[0] or "-",
            user_agent=request.user_agent or "-",
            status_code=int(response.status),
            content_length=response.content_length,
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.log_level, entry.to_text())

        return response
