"""
=============================================================================
HANDLERS
=============================================================================

The functions routes point at. Each takes an HTTPRequest and returns an
HTTPResponse, or raises a RouteError that the router turns into one.

    ┌──────────┬──────────────────┬────────────────────────────────────────┐
    │  Method  │  Path            │  Handler                               │
    ├──────────┼──────────────────┼────────────────────────────────────────┤
    │  GET     │  /               │  endpoints.index                       │
    │  GET     │  /echo/*         │  endpoints.echo                        │
    │  GET     │  /user-agent*    │  endpoints.user_agent                  │
    │  GET     │  /files/*        │  FilesHandler.get   (FileStore.read)   │
    │  POST    │  /files/*        │  FilesHandler.post  (FileStore.write)  │
    └──────────┴──────────────────┴────────────────────────────────────────┘

The wiring itself lives in server.create_app().

=============================================================================
"""

from .endpoints import index, echo, user_agent
from .files import FileStore, FilesHandler, InvalidFileNameError, PathTraversalError

__all__ = [
    # Stateless endpoints
    "index",
    "echo",
    "user_agent",

    # File storage
    "FileStore",
    "FilesHandler",
    "InvalidFileNameError",
    "PathTraversalError",
]
