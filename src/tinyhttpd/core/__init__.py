"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking plumbing under the HTTP layer. Nothing in here knows what
a route or a status code is.

    ┌─────────────────────────────────────────────────────────────────────┐
    │  SocketServer                                                        │
    │  • listening socket, accept() loop on the calling thread             │
    │  • SIGTERM/SIGINT → graceful shutdown                                │
    └───────────────────────────────┬─────────────────────────────────────┘
                                    │ Connection per accepted socket
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  ThreadPool                                                          │
    │  • fixed workers, bounded queue                                      │
    │  • submit() returns False when full (caller answers 503)             │
    └───────────────────────────────┬─────────────────────────────────────┘
                                    │ worker runs the connection handler
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  Connection                                                          │
    │  • reads until the request is complete, within size and time limits │
    │  • sendall() the response, then close                                │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState, RequestTooLarge
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",     # Listening socket and accept loop
    "Connection",       # One client socket, one request
    "ConnectionState",  # Connection lifecycle states
    "RequestTooLarge",  # Raised when max_request_size is exceeded
    "ThreadPool",       # Bounded worker pool
]
