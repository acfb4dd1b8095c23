"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

One immutable object holding every tunable, built once at startup and
passed explicitly to whatever needs it.

=============================================================================
WHY FROZEN?
=============================================================================

Every worker thread reads the configuration, and nothing ever writes to it
after startup. Freezing the dataclass turns that convention into a rule:

    config = ServerConfig(directory="/tmp/files")
    config.port = 80          # dataclasses.FrozenInstanceError

so no lock is needed and no handler can change what another one sees.
To derive a variant (tests do this a lot) use dataclasses.replace():

    fast = dataclasses.replace(config, timeout=0.5)

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │   1. Command-line arguments  (python -m tinyhttpd --directory /x)   │
    │   2. Default values in this dataclass                               │
    └─────────────────────────────────────────────────────────────────────┘

Environment variables are intentionally not consulted.

=============================================================================
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")


@dataclass(frozen=True)
class ServerConfig:
    """
    Configuration for the HTTP server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK         host, port, backlog, buffer_size, timeout
    REQUEST LIMITS  max_request_size
    CONCURRENCY     max_workers, queue_size
    FILES           directory
    LOGGING         log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """
    The IP address to bind to.
    - "127.0.0.1" - Localhost only
    - "0.0.0.0" - All network interfaces
    """

    port: int = 4221
    """
    The port number to listen on. 0 asks the OS for any free port.
    """

    backlog: int = 128
    """
    Maximum number of connections the kernel queues before accept().
    """

    buffer_size: int = 4096
    """
    Bytes requested per recv() call. Requests larger than this are simply
    read in several calls.
    """

    timeout: Optional[float] = 30.0
    """
    Per-call socket timeout for client connections, in seconds.
    A client that stays silent this long gets 408 and is disconnected.
    None disables the timeout (a stalled client then pins a worker).
    """

    # ─────────────────────────────────────────────────────────────────────
    # REQUEST LIMITS
    # ─────────────────────────────────────────────────────────────────────

    max_request_size: int = 10 * 1024 * 1024  # 10 MB
    """
    Largest request (head + body) the server will buffer, in bytes.
    Larger requests are refused with 413 Payload Too Large.
    """

    # ─────────────────────────────────────────────────────────────────────
    # CONCURRENCY
    # ─────────────────────────────────────────────────────────────────────

    max_workers: int = 16
    """
    Worker threads, i.e. the most connections handled at the same time.
    """

    queue_size: int = 64
    """
    Accepted connections allowed to wait for a free worker. Beyond this
    the server answers 503 Service Unavailable straight away.
    """

    # ─────────────────────────────────────────────────────────────────────
    # FILES
    # ─────────────────────────────────────────────────────────────────────

    directory: Optional[str] = None
    """
    Base directory for /files/*. Reads and writes are confined to it.
    When unset, /files/* requests answer 500.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """
    Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """

    log_format: str = "text"
    """
    Access log format: 'text' (one combined-log style line) or 'json'.
    """

    @property
    def base_dir(self) -> Optional[Path]:
        """The configured directory as a resolved Path, or None."""
        if self.directory is None:
            return None
        return Path(self.directory).resolve()

    def validate(self) -> None:
        """
        Validate configuration values.

        Called by HTTPServer on construction so a bad flag fails at
        startup instead of on the first request.

        Raises:
            ValueError: Describing the first invalid setting found.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 64:
            raise ValueError("buffer_size must be >= 64")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.max_request_size < self.buffer_size:
            raise ValueError("max_request_size must be >= buffer_size")

        if self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.directory is not None and not Path(self.directory).is_dir():
            raise ValueError(f"directory does not exist: {self.directory}")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Unknown log_level: {self.log_level}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {LOG_FORMATS}")
