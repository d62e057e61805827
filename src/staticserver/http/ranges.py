"""
=============================================================================
BYTE RANGES
=============================================================================

Turns an optional Range header into the inclusive byte window to send.

    Range: bytes=10-20     → [10, 20]          11 bytes
    Range: bytes=10-       → [10, size-1]
    Range: bytes=-20       → [0, 20]           start defaults to 0
    Range: bytes=0-99999   → [0, size-1]       end clamped to the file
    Range: pages=1-2       → [0, size-1]       wrong shape, full file
    (no Range header)      → [0, size-1]       status stays 200

Any Range header at all switches the response to 206 Partial Content and
adds "Accept-Range: bytes", even when the header was malformed and the
whole file ends up being sent. Malformed ranges are never answered with
416.

A suffix range ("bytes=-20") is NOT read as "the last 20 bytes": the
missing start simply falls back to 0, so the window is [0, 20].

Only the first range of a multi-range header is used:
"bytes=0-9,20-29" is served as [0, 9].

=============================================================================
"""

import re
from dataclasses import dataclass
from typing import MutableMapping, Optional, Tuple


RANGE_PATTERN = re.compile(r"bytes=(\d*)-(\d*)")


@dataclass(frozen=True)
class ByteRange:
    """
    Inclusive byte window [start, end] into a file of ``total`` bytes.

    After clamping 0 <= start <= end <= total - 1. An empty file has
    the window [0, -1] and a length of 0.
    """

    start: int
    end: int
    total: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    @property
    def is_full(self) -> bool:
        return self.start == 0 and self.end == self.total - 1

    def content_range(self) -> str:
        """Value for the Content-Range header, e.g. ``bytes 10-20/100``."""
        return f"bytes {self.start}-{self.end}/{self.total}"

    @classmethod
    def full(cls, total: int) -> "ByteRange":
        return cls(0, total - 1, total)


def parse_range(range_header: Optional[str], file_size: int) -> ByteRange:
    """
    Compute the clamped window for ``range_header``.

    Missing or empty bounds default to the start and end of the file.
    Start is clamped so it never passes end; end never passes the last
    byte of the file.
    """
    start, end = 0, file_size - 1

    if range_header:
        match = RANGE_PATTERN.search(range_header)
        if match:
            start_text, end_text = match.groups()
            if start_text.isdigit():
                start = int(start_text)
            if end_text.isdigit():
                end = int(end_text)

    if file_size <= 0:
        return ByteRange.full(0)

    end = min(end, file_size - 1)
    start = min(start, end)
    return ByteRange(start, end, file_size)


class RangeSelector:
    """
    Picks the byte window and marks the response as partial.

    Usage:
        byte_range, partial = selector.select(
            request.get_header("range"), metadata.size, response.headers)
        if partial:
            response.status = HTTPStatus.PARTIAL_CONTENT
    """

    def select(
        self,
        range_header: Optional[str],
        file_size: int,
        response_headers: MutableMapping[str, str],
    ) -> Tuple[ByteRange, bool]:
        """
        Returns:
            (window, partial). ``partial`` is True whenever a Range header
            was sent, and the caller must then answer 206.
        """
        byte_range = parse_range(range_header, file_size)

        if range_header is None:
            return byte_range, False

        response_headers["Accept-Range"] = "bytes"
        if file_size > 0:
            response_headers["Content-Range"] = byte_range.content_range()
        return byte_range, True
