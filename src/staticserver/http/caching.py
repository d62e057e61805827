"""
=============================================================================
CONDITIONAL CACHING
=============================================================================

Every file response carries two validators derived from the file's stat
data, plus freshness headers:

    Cache-Control: private, max-age=60
    Expires:       <time of the response>
    ETag:          sha1( http_date(ctime) + str(size) ).hexdigest()
    Last-Modified: http_date(ctime)

A client that already holds the file sends one of them back:

    If-None-Match: 5e3c...            ─┐
    If-Modified-Since: Tue, 20 Oct ... ─┴─► equal to ours? → 304, no body

The comparison is plain string equality for both headers. In particular
If-Modified-Since is not compared as a point in time; a client sending a
later date than ours does not get a 304. Clients echo back exactly what
they were given, so this covers the browser revalidation path.

The ETag is derived from the inode change time and size, not from the
content, so it costs one stat() and no reads. Two files with the same
ctime (to the second) and the same size share an ETag.

=============================================================================
"""

import hashlib
import stat
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Mapping, MutableMapping, Optional

from .response import format_http_date


@dataclass(frozen=True)
class FileMetadata:
    """
    The stat fields the pipeline cares about.

    Built fresh for every request; never cached between requests.
    """

    is_directory: bool
    size: int
    change_time: datetime

    @classmethod
    def from_stat(cls, st) -> "FileMetadata":
        """Build from an ``os.stat_result``."""
        return cls(
            is_directory=stat.S_ISDIR(st.st_mode),
            size=st.st_size,
            change_time=datetime.fromtimestamp(st.st_ctime, tz=timezone.utc),
        )


@dataclass(frozen=True)
class CacheCheck:
    """Outcome of CacheValidator.evaluate()."""

    matched: bool
    etag: str
    last_modified: str


def compute_etag(metadata: FileMetadata) -> str:
    """
    Hex SHA-1 of the change time (as an HTTP date) followed by the size.

        A 100-byte file changed at 2026-01-01T00:00:00Z hashes
        "Thu, 01 Jan 2026 00:00:00 GMT100".
    """
    fingerprint = format_http_date(metadata.change_time) + str(metadata.size)
    return hashlib.sha1(fingerprint.encode("utf-8")).hexdigest()


def compute_last_modified(metadata: FileMetadata) -> str:
    return format_http_date(metadata.change_time)


class CacheValidator:
    """
    Sets cache headers and decides whether a request is already fresh.

    Usage:
        check = validator.evaluate(request.headers, metadata, response_headers)
        if check.matched:
            return 304
    """

    def __init__(self, max_age: int = 60):
        self.max_age = max_age

    def evaluate(
        self,
        request_headers: Mapping[str, str],
        metadata: FileMetadata,
        response_headers: MutableMapping[str, str],
        now: Optional[datetime] = None,
    ) -> CacheCheck:
        """
        Attach validators to ``response_headers`` and test the request.

        The headers are written before the decision, so they end up on the
        304 and on the 200/206 alike.

        Args:
            request_headers: Request headers with lowercase names.
            metadata: Stat data of the file being served.
            response_headers: Header dict of the response under construction.
            now: Override for the Expires timestamp.
        """
        etag = compute_etag(metadata)
        last_modified = compute_last_modified(metadata)

        response_headers["Cache-Control"] = f"private, max-age={self.max_age}"
        response_headers["Expires"] = format_http_date(now or datetime.now(timezone.utc))
        response_headers["ETag"] = etag
        response_headers["Last-Modified"] = last_modified

        if_none_match = request_headers.get("if-none-match")
        if_modified_since = request_headers.get("if-modified-since")

        matched = (
            (if_none_match is not None and if_none_match == etag)
            or (if_modified_since is not None and if_modified_since == last_modified)
        )
        return CacheCheck(matched=matched, etag=etag, last_modified=last_modified)
