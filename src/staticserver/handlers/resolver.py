"""
=============================================================================
PATH RESOLUTION
=============================================================================

Maps a decoded URL path onto the served directory tree.

    root = /srv/www

    /                     → /srv/www                  directory
    /docs/guide.html      → /srv/www/docs/guide.html  file
    /docs/../notes.txt    → /srv/www/notes.txt        file
    /../../etc/passwd     → outside root              NotFound
    /missing.txt          → stat() fails              NotFound
    /favicon.ico          → (not looked up)           NotFound

The joined path is normalized lexically and must still start with the
root. Symlinks inside the tree are followed, like any other file the
process can open.

Every failure reports NotFound, whatever the cause (missing file,
permission denied, a name the OS rejects, a traversal attempt). A
client cannot tell a forbidden path from an absent one.

Metadata comes from a fresh stat() on every call. Nothing is cached, so
the validators always describe the file that is about to be sent.

=============================================================================
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum

from ..http.caching import FileMetadata


logger = logging.getLogger(__name__)

FAVICON_PATH = "/favicon.ico"


class NotFound(Exception):
    """The request path does not name anything we are willing to serve."""

    status_code = 404

    def __init__(self, path: str, reason: str = "not found"):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class PathKind(Enum):
    DIRECTORY = "directory"
    FILE = "file"


@dataclass(frozen=True)
class ResolvedPath:
    kind: PathKind
    absolute_path: str
    metadata: FileMetadata

    @property
    def is_directory(self) -> bool:
        return self.kind is PathKind.DIRECTORY


class PathResolver:
    """
    Usage:
        resolver = PathResolver("/srv/www")
        try:
            resolved = resolver.resolve(request.path)
        except NotFound:
            return error_responder.respond(HTTPStatus.NOT_FOUND)
    """

    def __init__(self, root: str):
        self.root = os.path.abspath(root)
        self._prefix = self.root if self.root.endswith(os.sep) else self.root + os.sep

    def to_filesystem_path(self, request_path: str) -> str:
        """
        Join and normalize without touching the disk.

        Raises:
            NotFound: The normalized path leaves the root.
        """
        relative = request_path.lstrip("/")
        candidate = os.path.normpath(os.path.join(self.root, relative))

        if candidate != self.root and not candidate.startswith(self._prefix):
            logger.warning("Path traversal attempt: %r resolves outside root", request_path)
            raise NotFound(request_path, "outside root")
        return candidate

    def resolve(self, request_path: str) -> ResolvedPath:
        """
        Classify ``request_path`` as a file or a directory.

        Raises:
            NotFound: For favicon requests, paths outside the root, and
                      anything stat() cannot see.
        """
        if request_path == FAVICON_PATH:
            raise NotFound(request_path, "favicon is not served")

        if "\x00" in request_path:
            raise NotFound(request_path, "invalid name")

        absolute_path = self.to_filesystem_path(request_path)

        try:
            st = os.stat(absolute_path)
        except OSError as e:
            logger.debug("stat(%s) failed: %s", absolute_path, e)
            raise NotFound(request_path, e.strerror or "stat failed") from e

        metadata = FileMetadata.from_stat(st)
        kind = PathKind.DIRECTORY if metadata.is_directory else PathKind.FILE
        return ResolvedPath(kind=kind, absolute_path=absolute_path, metadata=metadata)
