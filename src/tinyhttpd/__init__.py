"""
=============================================================================
TINYHTTPD - A Minimal HTTP/1.1 Server Over Raw Sockets
=============================================================================

A small, threaded HTTP/1.1 server: one request per connection, a fixed
route table, and file reads/writes confined to one base directory.

=============================================================================
PACKAGE LAYOUT
=============================================================================

    tinyhttpd/
    ├── config.py          ServerConfig (frozen, validated at startup)
    ├── server.py          HTTPServer, create_app()
    ├── __main__.py        CLI: python -m tinyhttpd
    ├── core/              Sockets and threads
    │   ├── socket_server.py   listening socket, accept loop, signals
    │   ├── thread_pool.py     bounded worker pool
    │   └── connection.py      read loop with size and time limits
    ├── http/              Protocol, no sockets
    │   ├── request.py         RequestParser, typed parse errors
    │   ├── response.py        ResponseWriter (exact Content-Length)
    │   ├── router.py          exact/prefix routing, RouteError
    │   └── status_codes.py    the statuses this server emits
    ├── handlers/          What the routes do
    │   ├── endpoints.py       /, /echo/, /user-agent
    │   └── files.py           FileStore, /files/
    └── middleware/        Around every handler
        └── logging.py         access log

=============================================================================
ROUTES
=============================================================================

    GET   /                 200, empty body
    GET   /echo/{text}      200 text/plain, {text} verbatim
    GET   /user-agent       200 text/plain, the User-Agent header
    GET   /files/{name}     200 application/octet-stream, or 404
    POST  /files/{name}     201 after writing the body
    *     anything else     404

=============================================================================
QUICK START
=============================================================================

    $ python -m tinyhttpd --directory /tmp/files
    $ curl -i http://127.0.0.1:4221/echo/hello

    from tinyhttpd import ServerConfig, create_app
    create_app(ServerConfig(port=8080, directory="/tmp/files")).run()

=============================================================================
"""

__version__ = "1.0.0"

from .server import HTTPServer, create_app
from .config import ServerConfig

__all__ = ["HTTPServer", "ServerConfig", "create_app", "__version__"]
