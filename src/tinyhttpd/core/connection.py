"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket for exactly one request/response exchange.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL
=============================================================================

TCP only promises that bytes arrive in order. It does not promise that one
send() on the client equals one recv() on the server:

    Client sends:                      Server might receive:
        "POST /files/a HTTP/1.1\\r\\n"     recv() → "POST /fil"
        "Content-Length: 600\\r\\n\\r\\n"   recv() → "es/a HTTP/1.1\\r\\nContent-Le"
        <600 body bytes>                 recv() → "ngth: 600\\r\\n\\r\\n<212 bytes>"
                                         recv() → <388 bytes>

A server that does a single fixed-size read (say 512 bytes) and hopes for
the best silently truncates bodies like the one above. Connection instead
keeps reading until the request is complete:

    ┌─────────────────────────────────────────────────────────────────┐
    │                    read_request() Flow                          │
    ├─────────────────────────────────────────────────────────────────┤
    │                                                                  │
    │   while no \\r\\n\\r\\n in buffer:                                  │
    │       recv() → buffer            (EOF: return what we have)      │
    │                                                                  │
    │   Content-Length valid?                                          │
    │       no  → return buffer as is  (parser decides if it's bad)    │
    │       yes → while body incomplete:                               │
    │                 recv() → buffer  (EOF: stop, parser complains)   │
    │                                                                  │
    │   return head + exactly Content-Length body bytes                │
    │                                                                  │
    └─────────────────────────────────────────────────────────────────┘

=============================================================================
LIMITS
=============================================================================

Two limits protect the worker that owns this connection:

1. SIZE: the buffer may never exceed max_request_size. The check happens
   both on every recv() and up front, as soon as a declared Content-Length
   makes the final size known. Exceeding it raises RequestTooLarge.

2. TIME: every blocking socket call is bounded by `timeout`. A client that
   goes quiet raises TimeoutError instead of holding the thread forever.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    NEW ──► READING ──► PROCESSING ──► WRITING ──► CLOSING ──► CLOSED
              │                                       ▲
              └────────── (parse failure, EOF) ───────┘

One request per connection: there is no transition back to READING.

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid


logger = logging.getLogger(__name__)


HEADER_TERMINATOR = b"\r\n\r\n"

# Upper bound on how long close() keeps discarding unread client data
DRAIN_TIMEOUT = 0.5


class RequestTooLarge(Exception):
    """The request exceeds the configured max_request_size."""

    def __init__(self, size: int, limit: int):
        super().__init__(f"Request too large: {size} bytes (limit {limit})")
        self.size = size
        self.limit = limit


class ConnectionState(Enum):
    """
    Connection lifecycle states.

    Only used for logging and debugging; nothing branches on them except
    close(), which is idempotent thanks to CLOSED.
    """
    NEW = "new"                # Accepted, nothing read yet
    READING = "reading"        # Accumulating request bytes
    PROCESSING = "processing"  # Request parsed, handler running
    WRITING = "writing"        # Sending the response
    CLOSING = "closing"        # Shutdown sequence in progress
    CLOSED = "closed"          # Socket released


@dataclass
class Connection:
    """
    A client connection.

    Attributes:
        socket: The client socket, owned exclusively by this object.
        address: Client's (ip, port) tuple.
        id: Short random identifier used to prefix log lines.
        state: Current ConnectionState.
        created_at: When the connection was accepted.
        bytes_received / bytes_sent: Traffic counters for logs.
        buffer_size: Bytes requested per recv().
        timeout: Seconds each blocking socket call may take (None: no limit).
        max_request_size: Hard cap on buffered request bytes.
    """

    # Required parameters
    socket: socket.socket
    address: tuple[str, int]

    # Generated/default parameters
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    bytes_received: int = 0
    bytes_sent: int = 0

    # Configuration (passed from ServerConfig)
    buffer_size: int = 4096
    timeout: Optional[float] = 30.0
    max_request_size: int = 10 * 1024 * 1024

    _buffer: bytearray = field(default_factory=bytearray, repr=False)

    def __post_init__(self):
        # Accepted sockets may inherit the listener's timeout; reset it
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def age(self) -> float:
        """Seconds since the connection was accepted."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete HTTP request from the socket.

        Returns:
            The request bytes (head, blank line, and at most Content-Length
            body bytes), or None if the client closed the connection
            without sending anything.

            If the client closes early, whatever arrived is returned and the
            parser reports what is missing.

        Raises:
            TimeoutError: A recv() exceeded `timeout`.
            RequestTooLarge: The request would exceed max_request_size.
        """
        self.state = ConnectionState.READING

        try:
            # ─────────────────────────────────────────────────────────────
            # STEP 1: Read until the header block is complete
            # ─────────────────────────────────────────────────────────────
            while HEADER_TERMINATOR not in self._buffer:
                chunk = self._recv()
                if not chunk:
                    # Client closed; hand over any partial data
                    return self._take(len(self._buffer)) or None
                self._append(chunk)

            header_end = self._buffer.find(HEADER_TERMINATOR)
            body_start = header_end + len(HEADER_TERMINATOR)

            # ─────────────────────────────────────────────────────────────
            # STEP 2: How much body is declared?
            # ─────────────────────────────────────────────────────────────
            content_length = self._parse_content_length(self._buffer[:header_end])
            if content_length is None:
                # Missing or malformed: let the parser judge what we have
                return self._take(len(self._buffer))

            request_end = body_start + content_length
            if request_end > self.max_request_size:
                raise RequestTooLarge(request_end, self.max_request_size)

            # ─────────────────────────────────────────────────────────────
            # STEP 3: Read the rest of the body
            # ─────────────────────────────────────────────────────────────
            while len(self._buffer) < request_end:
                chunk = self._recv()
                if not chunk:
                    break  # Closed mid-body; parser raises IncompleteBody
                self._append(chunk)

            return self._take(request_end)

        except socket.timeout:
            raise TimeoutError(
                f"No data from client for {self.timeout}s "
                f"({len(self._buffer)} bytes buffered)"
            ) from None

    def _take(self, size: int) -> bytes:
        """Remove and return up to `size` bytes from the buffer; drop the rest."""
        data = bytes(self._buffer[:size])
        # One exchange per connection: bytes past the request are discarded
        self._buffer = bytearray()
        return data

    def _append(self, chunk: bytes) -> None:
        self._buffer += chunk
        if len(self._buffer) > self.max_request_size:
            raise RequestTooLarge(len(self._buffer), self.max_request_size)

    def _recv(self) -> bytes:
        """
        socket.recv() that treats an abrupt reset like an orderly close.

        Returns:
            Received bytes, or b"" if the connection is gone.
        """
        try:
            data = self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return b""
        self.bytes_received += len(data)
        return data

    def _parse_content_length(self, head: bytes) -> Optional[int]:
        """
        Find Content-Length in the raw header block.

        Uses the same rules as the request parser: exact, case-sensitive
        header name, split on the first ": ", last occurrence wins, plain
        digits only.

        Returns:
            The declared length, or None when absent or not a valid number.
        """
        value = None
        for line in head.decode("latin-1").split("\r\n")[1:]:
            name, separator, raw = line.partition(": ")
            if separator and name == "Content-Length":
                value = raw

        if value is None or not (value.isascii() and value.isdigit()):
            return None
        return int(value)

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send response data to the client with sendall().

        Returns:
            True if every byte was handed to the kernel, False if the
            client went away (the failure is logged here).
        """
        self.state = ConnectionState.WRITING

        try:
            self.socket.sendall(data)
        except OSError as e:
            # Covers resets, broken pipes and send timeouts
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

        self.bytes_sent += len(data)
        return True

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully. Safe to call more than once.

        1. shutdown(SHUT_WR)  - send FIN so the client sees end-of-response
        2. drain              - discard anything the client is still sending,
                                for at most DRAIN_TIMEOUT seconds
        3. close()            - release the file descriptor
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        try:
            deadline = time.time() + DRAIN_TIMEOUT
            self.socket.settimeout(DRAIN_TIMEOUT)
            while time.time() < deadline and self.socket.recv(self.buffer_size):
                pass
        except OSError:
            pass  # Includes socket.timeout; we are closing anyway

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(
            f"[{self.id}] Connection closed after {self.age:.3f}s "
            f"({self.bytes_received} bytes in, {self.bytes_sent} bytes out)"
        )

    # =========================================================================
    # CONTEXT MANAGER
    # =========================================================================

    def __enter__(self):
        """
        Use as `with conn:` so the socket is closed on every exit path:

            with conn:
                data = conn.read_request()
                conn.send_response(response_bytes)
        """
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False  # Don't suppress exceptions
