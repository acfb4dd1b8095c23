"""
=============================================================================
TCP LISTENER
=============================================================================

Owns the listening socket and the accept loop. Everything after accept()
(reading, parsing, answering) happens elsewhere, on a worker thread.

=============================================================================
SOCKET LIFECYCLE (server side)
=============================================================================

    1. socket()    Create the listening socket (AF_INET, SOCK_STREAM)
    2. bind()      Claim host:port (port 0 lets the OS choose)
    3. listen()    Kernel starts queueing connections, up to `backlog`
    4. accept()    Returns a NEW socket per client; the listener keeps going
    5. close()     Release the port on shutdown

                    ┌───────────────────────┐
                    │   Listening Socket    │ ◄── Created once in start()
                    └───────────┬───────────┘
                                │ accept()
        ┌───────────────────────┼───────────────────────┐
        ▼                       ▼                       ▼
    Connection A            Connection B            Connection C
        │                       │                       │
        └──── connection_handler(conn), one call each ──┘

=============================================================================
THE ACCEPT LOOP NEVER DIES FOR ONE CLIENT
=============================================================================

The loop only exits when shutdown() is called. In particular:

    accept() times out (1s)        → re-check the running flag, continue
    accept() raises OSError        → log it, continue (e.g. EMFILE, ECONNABORTED)
    connection_handler raises      → log the traceback, close that socket,
                                     continue

=============================================================================
SHUTDOWN
=============================================================================

SIGTERM and SIGINT call shutdown(), which flips the running flag; the loop
notices within one accept timeout. Signal handlers can only be installed
from the main thread, so a server started on any other thread (as the
test suite does) skips them and relies on shutdown() being called.

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)

# How often accept() wakes up to check for shutdown
ACCEPT_POLL_INTERVAL = 1.0


class SocketServer:
    """
    Listening socket plus accept loop.

    Usage:

        def handle_connection(conn: Connection):
            pool.submit(process, conn)

        server = SocketServer(config)
        server.start(handle_connection)   # Blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        self.config = config

        # Created lazily in start()
        self._socket: Optional[socket.socket] = None
        self._bound_address: Optional[Tuple[str, int]] = None

        self._running = False

        # Set once listen() succeeds, cleared on cleanup
        self._ready_event = threading.Event()

        # Original signal handlers, restored on cleanup
        self._original_handlers: dict = {}

    @property
    def address(self) -> Tuple[str, int]:
        """
        The address actually bound.

        Differs from the configured one when port 0 was requested; before
        start() it falls back to the configured (host, port).
        """
        if self._bound_address is not None:
            return self._bound_address
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        """Create the listening socket with the options an HTTP server wants."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Restart without waiting for TIME_WAIT sockets to expire
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Responses are written in one sendall(); don't let Nagle hold them
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        # accept() must wake up periodically to notice shutdown()
        sock.settimeout(ACCEPT_POLL_INTERVAL)

        return sock

    def _setup_signals(self):
        """
        Route SIGTERM (docker stop, kill) and SIGINT (Ctrl+C) to shutdown().

        signal.signal() raises ValueError outside the main thread, so
        embedded servers simply go without.
        """
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread; signal handlers not installed")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        for sig in (signal.SIGTERM, signal.SIGINT):
            self._original_handlers[sig] = signal.signal(sig, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and accept until shutdown() is called.

        Args:
            connection_handler: Called once per accepted Connection, on the
                                accept thread. It must return quickly; the
                                HTTP server just queues the connection.

        Raises:
            OSError: If the address cannot be bound (in use, no permission).
        """
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.config.backlog)
        self._bound_address = self._socket.getsockname()[:2]

        self._running = True
        self._setup_signals()

        host, port = self._bound_address
        logger.info(f"Server listening on {host}:{port}")
        self._ready_event.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        """
        Accept connections and hand each one off.

        ┌─────────────────────────────────────────────────────────────────┐
        │   while running:                                                 │
        │       accept()              (wakes every second to re-check)     │
        │       wrap in Connection    (timeout, size limit, log id)        │
        │       connection_handler(conn)                                   │
        └─────────────────────────────────────────────────────────────────┘
        """
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if not self._running:
                    break  # Listener closed under us during shutdown
                logger.error(f"Accept error: {e}")
                continue

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            try:
                conn = Connection(
                    socket=client_socket,
                    address=client_address,
                    buffer_size=self.config.buffer_size,
                    timeout=self.config.timeout,
                    max_request_size=self.config.max_request_size,
                )
                connection_handler(conn)
            except Exception:
                logger.exception(
                    f"Error dispatching connection from {client_address[0]}:{client_address[1]}"
                )
                client_socket.close()

    def shutdown(self):
        """
        Ask the accept loop to stop. Idempotent and safe from any thread,
        including a signal handler.
        """
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._ready_event.clear()
        logger.info("Socket server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the server is listening.

        Returns:
            True once listening, False if `timeout` expired first.
        """
        return self._ready_event.wait(timeout)
