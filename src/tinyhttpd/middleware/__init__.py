"""
=============================================================================
MIDDLEWARE
=============================================================================

Code that runs around every handler without being part of any of them.

    LoggingMiddleware    Access log line per request (text or JSON)

New middleware subclasses Middleware and is added with HTTPServer.use().

=============================================================================
"""

from .base import Middleware, MiddlewarePipeline, NextHandler
from .logging import LoggingMiddleware, RequestLog

__all__ = [
    # Base classes
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",

    # Built-in middleware
    "LoggingMiddleware",
    "RequestLog",
]
