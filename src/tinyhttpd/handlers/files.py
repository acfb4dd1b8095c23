"""
=============================================================================
FILE STORE AND /files/ HANDLERS
=============================================================================

Reads and writes whole files inside one base directory, chosen at startup
with --directory.

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

The file name comes straight from the URL, verbatim. Without a check,
a client could reach anything the server process can:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  GET /files/../../etc/passwd HTTP/1.1                                │
    │                                                                      │
    │  base      = /srv/files                                              │
    │  requested = /srv/files/../../etc/passwd                             │
    │  resolved  = /etc/passwd            ← outside base: 403 Forbidden    │
    └─────────────────────────────────────────────────────────────────────┘

FileStore resolves every name (following ".." and symlinks) and requires
the result to still be inside the base directory:

    target = (base_dir / name).resolve()
    target.relative_to(base_dir)        # ValueError if it escaped

Subdirectories inside the base are allowed ("a/b.txt"); writes create the
missing parents.

=============================================================================
ERROR MAPPING
=============================================================================

    ┌──────────────────────────────┬──────────────────────────────────────┐
    │  Condition                   │  Response                            │
    ├──────────────────────────────┼──────────────────────────────────────┤
    │  no --directory given        │  500  MissingBaseDirectoryError      │
    │  empty file name             │  400  InvalidFileNameError           │
    │  name escapes base dir       │  403  PathTraversalError             │
    │  GET of a missing file       │  404  (empty body)                   │
    │  OS refuses access           │  403                                 │
    │  POST without a body         │  400  MissingBodyError               │
    └──────────────────────────────┴──────────────────────────────────────┘

=============================================================================
"""

import logging
from pathlib import Path
from typing import Optional, Union

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder, created, forbidden, not_found
from ..http.router import MissingBaseDirectoryError, MissingBodyError, RouteError
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


class InvalidFileNameError(RouteError):
    """The URL names no file, e.g. "/files/" (400)."""

    def __init__(self, message: str = "File name is required"):
        super().__init__(message)


class PathTraversalError(RouteError):
    """The file name resolves outside the base directory (403)."""

    status = HTTPStatus.FORBIDDEN

    def __init__(self, name: str):
        super().__init__("Access denied")
        self.name = name


class FileStore:
    """
    Whole-file reads and writes confined to a base directory.

        store = FileStore("/srv/files")
        store.write("notes.txt", b"hello")
        store.read("notes.txt")          # b"hello"
        store.read("../etc/passwd")      # PathTraversalError

    FileStore keeps no state besides the base directory, so one instance is
    shared by every worker thread. Concurrent writes to the same name are
    not coordinated; the last one to finish wins.
    """

    def __init__(self, base_dir: Union[str, Path]):
        # Resolved once so the containment check compares canonical paths
        self.base_dir = Path(base_dir).resolve()

        if not self.base_dir.is_dir():
            raise ValueError(f"Base directory does not exist: {base_dir}")

    def resolve(self, name: str) -> Path:
        """
        Map a file name from the URL to a path inside the base directory.

        Raises:
            InvalidFileNameError: The name is empty or denotes the base itself.
            PathTraversalError: The resolved path lies outside the base.
        """
        if not name:
            raise InvalidFileNameError()

        target = (self.base_dir / name).resolve()

        try:
            target.relative_to(self.base_dir)
        except ValueError:
            logger.warning(f"Path traversal attempt: {name!r}")
            raise PathTraversalError(name) from None

        if target == self.base_dir:
            raise InvalidFileNameError()

        return target

    def read(self, name: str) -> bytes:
        """
        Return the full contents of a file.

        Raises:
            FileNotFoundError: Nothing readable as a regular file exists there.
            PermissionError: The OS denied access.
        """
        target = self.resolve(name)
        if not target.is_file():
            raise FileNotFoundError(name)
        return target.read_bytes()

    def write(self, name: str, data: bytes) -> Path:
        """
        Create or replace a file with `data`.

        Returns:
            The path written.
        """
        target = self.resolve(name)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        logger.debug(f"Wrote {len(data)} bytes to {target}")
        return target


class FilesHandler:
    """
    GET and POST handlers for /files/{name}.

    `store` is None when the server was started without --directory; the
    routes stay registered and answer 500 so the misconfiguration is
    visible to clients instead of looking like a missing file.

        files = FilesHandler(FileStore(config.directory))
        router.get("/files/", prefix=True)(files.get)
        router.post("/files/", prefix=True)(files.post)
    """

    def __init__(self, store: Optional[FileStore]):
        self.store = store

    def _require_store(self) -> FileStore:
        if self.store is None:
            raise MissingBaseDirectoryError()
        return self.store

    def get(self, request: HTTPRequest) -> HTTPResponse:
        store = self._require_store()
        name = request.remainder

        try:
            data = store.read(name)
        except FileNotFoundError:
            return not_found()
        except PermissionError:
            logger.warning(f"Permission denied reading {name!r}")
            return forbidden("Permission denied")

        return ResponseBuilder().binary(data).build()

    def post(self, request: HTTPRequest) -> HTTPResponse:
        store = self._require_store()
        name = request.remainder

        # Content-Length: 0 counts as missing too
        if not request.body:
            raise MissingBodyError()

        try:
            store.write(name, request.body)
        except PermissionError:
            logger.warning(f"Permission denied writing {name!r}")
            return forbidden("Permission denied")

        return created()
