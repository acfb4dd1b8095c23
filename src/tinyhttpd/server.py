"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the pieces together: listener, worker pool, parser, router and
middleware, plus create_app() which registers this server's routes.

=============================================================================
ARCHITECTURE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │                        ┌─────────────────┐                           │
    │                        │   HTTPServer    │                           │
    │                        └────────┬────────┘                           │
    │            ┌────────────────────┼────────────────────┐               │
    │            ▼                    ▼                    ▼               │
    │    ┌──────────────┐    ┌──────────────┐    ┌──────────────────┐      │
    │    │ SocketServer │    │  ThreadPool  │    │ Middleware →     │      │
    │    │  (accept)    │    │  (workers)   │    │ Router → Handler │      │
    │    └──────┬───────┘    └──────┬───────┘    └──────────────────┘      │
    │           │   Connection      │                                      │
    │           └──────────────────►┘                                      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
ONE CONNECTION, ONE EXCHANGE
=============================================================================

    accept thread                     worker thread
    ─────────────                     ─────────────
    accept()
    pool.submit(conn) ──queue full──► 503, close (own short thread)
          │
          └─────────────────────────► read_request()
                                          ├─ RequestTooLarge  → 413, close
                                          ├─ TimeoutError     → 408, close
                                          └─ nothing sent     → close
                                      parse()
                                          └─ HTTPParseError   → close, NO reply
                                      middleware → router → handler
                                          ├─ RouteError       → 4xx/5xx reply
                                          └─ other exception  → 500 reply
                                      send_response()
                                      close()

A failure anywhere in this sequence affects only its own connection. The
accept loop and the other workers keep going.

=============================================================================
"""

import logging
import threading
from typing import Callable, Optional, Tuple

from .config import ServerConfig
from .core import SocketServer, Connection, ConnectionState, RequestTooLarge, ThreadPool
from .handlers import FileStore, FilesHandler, echo, index, user_agent
from .http import (
    HTTPRequest, HTTPResponse, HTTPParseError, RequestParser, Router,
    internal_error, payload_too_large, request_timeout, service_unavailable,
)
from .middleware import LoggingMiddleware, Middleware, MiddlewarePipeline


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    Threaded HTTP/1.1 server, one request per connection.

        server = HTTPServer(ServerConfig(port=4221))

        @server.get("/")
        def index(request):
            return ok()

        server.use(LoggingMiddleware())
        server.run()        # Blocks until SIGINT/SIGTERM or shutdown()

    Most callers want create_app(), which registers the standard routes.
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        # ─────────────────────────────────────────────────────────────────
        # CORE COMPONENTS
        # ─────────────────────────────────────────────────────────────────
        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )
        self._parser = RequestParser()

        # ─────────────────────────────────────────────────────────────────
        # APPLICATION COMPONENTS
        # ─────────────────────────────────────────────────────────────────
        self._router = Router()
        self._middleware = MiddlewarePipeline()

        # middleware.wrap(router.handle), built in run()
        self._handler: Optional[Callable[[HTTPRequest], HTTPResponse]] = None

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    def use(self, middleware: Middleware) -> "HTTPServer":
        """Add middleware; the first added runs outermost."""
        self._middleware.add(middleware)
        return self

    @property
    def router(self) -> Router:
        return self._router

    @property
    def address(self) -> Tuple[str, int]:
        """The bound (host, port); meaningful once the server is listening."""
        return self._socket_server.address

    def get(self, path: str, **kwargs):
        """Register a GET route."""
        return self._router.get(path, **kwargs)

    def post(self, path: str, **kwargs):
        """Register a POST route."""
        return self._router.post(path, **kwargs)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self, configure_logging: bool = True):
        """
        Serve until shutdown (blocking).

        Args:
            configure_logging: Install the default logging setup first.
                               Embedders with their own logging config (and
                               the test suite) pass False.
        """
        if configure_logging:
            self._setup_logging()

        self._handler = self._middleware.wrap(self._router.handle)
        self._thread_pool.start()

        for line in self._router.describe():
            logger.debug(f"Route: {line}")
        if self.config.directory is None:
            logger.warning("No --directory given; /files/ requests will answer 500")

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the listening socket is up (for embedding and tests)."""
        return self._socket_server.wait_until_ready(timeout)

    def shutdown(self):
        """Stop accepting connections; run() then returns. Thread-safe."""
        self._socket_server.shutdown()

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("tinyhttpd").setLevel(level)

    def _shutdown(self):
        """
        Let in-flight connections finish, then stop the workers.

        Each queued connection is bounded by the socket timeout, so the
        wait is bounded too; 30s is a backstop.
        """
        logger.info("Shutting down server...")
        self._thread_pool.shutdown(wait=True, timeout=30.0)
        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """
        Queue a connection for a worker (runs on the accept thread).

        When the queue is full the client is told so right away rather
        than left waiting on a connection nobody will read. The 503 goes
        out on its own thread: close() may linger draining the socket,
        and accept() must not wait for that.
        """
        if self._thread_pool.submit(self._process_connection, args=(conn,)):
            return

        logger.warning(f"[{conn.id}] Thread pool full, rejecting {conn.client_ip}")
        threading.Thread(
            target=self._reject_connection,
            args=(conn,),
            name=f"Reject-{conn.id}",
            daemon=True,
        ).start()

    def _reject_connection(self, conn: Connection):
        with conn:
            conn.send_response(service_unavailable("Server overloaded").to_bytes())

    def _process_connection(self, conn: Connection):
        """Serve exactly one request on `conn` (runs on a worker thread)."""
        with conn:
            # ─────────────────────────────────────────────────────────────
            # READ
            # ─────────────────────────────────────────────────────────────
            try:
                raw_request = conn.read_request()
            except RequestTooLarge as e:
                logger.warning(f"[{conn.id}] {e}")
                conn.send_response(payload_too_large().to_bytes())
                return
            except TimeoutError as e:
                logger.info(f"[{conn.id}] Read timed out: {e}")
                conn.send_response(request_timeout().to_bytes())
                return
            except OSError as e:
                logger.warning(f"[{conn.id}] Read failed: {e}")
                return

            if raw_request is None:
                logger.debug(f"[{conn.id}] Client closed without sending a request")
                return

            # ─────────────────────────────────────────────────────────────
            # PARSE (failures get no response at all)
            # ─────────────────────────────────────────────────────────────
            try:
                request = self._parser.parse(raw_request, conn.address)
            except HTTPParseError as e:
                logger.warning(
                    f"[{conn.id}] Abandoning connection: {type(e).__name__}: {e}"
                )
                return

            # ─────────────────────────────────────────────────────────────
            # DISPATCH
            # ─────────────────────────────────────────────────────────────
            conn.state = ConnectionState.PROCESSING
            try:
                response = self._handler(request)
            except Exception as e:
                logger.exception(f"[{conn.id}] Handler error: {e}")
                response = internal_error()

            # ─────────────────────────────────────────────────────────────
            # WRITE
            # ─────────────────────────────────────────────────────────────
            conn.send_response(response.to_bytes())


def create_app(config: Optional[ServerConfig] = None) -> HTTPServer:
    """
    Build the server with access logging and its five routes.

    Order matters: the router takes the first match.

        GET   /              index
        GET   /echo/*        echo
        GET   /user-agent*   user_agent
        GET   /files/*       FilesHandler.get
        POST  /files/*       FilesHandler.post

    Args:
        config: Server configuration; defaults to ServerConfig().

    Returns:
        A ready-to-run HTTPServer.
    """
    server = HTTPServer(config)
    config = server.config

    server.use(LoggingMiddleware(log_format=config.log_format))

    store = FileStore(config.directory) if config.directory is not None else None
    files = FilesHandler(store)

    server.get("/", name="index")(index)
    server.get("/echo/", prefix=True, name="echo")(echo)
    server.get("/user-agent", prefix=True, name="user_agent")(user_agent)
    server.get("/files/", prefix=True, name="read_file")(files.get)
    server.post("/files/", prefix=True, name="write_file")(files.post)

    return server
