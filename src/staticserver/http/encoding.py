"""
=============================================================================
CONTENT ENCODING
=============================================================================

Chooses how the file body is compressed on the way out.

    Accept-Encoding: gzip, deflate, br   → gzip     Content-Encoding: gzip
    Accept-Encoding: deflate             → deflate  Content-Encoding: deflate
    Accept-Encoding: br                  → identity (no header)
    (header missing)                     → identity (no header)

Tokens are matched as whole words anywhere in the header value; gzip wins
whenever both are offered. Quality values ("gzip;q=0") are not
interpreted.

Compression is incremental. The compressor sits between the file reader
and the socket and only ever holds one chunk:

    read(64 KiB) ──► compressobj.compress() ──► yield ──► socket
                         ...
    EOF          ──► compressobj.flush()    ──► yield ──► socket

    gzip    = zlib.compressobj(wbits=31)   gzip header + DEFLATE + CRC32
    deflate = zlib.compressobj(wbits=15)   zlib header + DEFLATE + Adler-32

"deflate" in HTTP means the zlib-wrapped format (RFC 9110 section
8.4.1.2), not raw DEFLATE.

=============================================================================
"""

import re
import zlib
from enum import Enum
from typing import Iterable, Iterator, MutableMapping, Optional


class EncodingChoice(Enum):
    IDENTITY = "identity"
    GZIP = "gzip"
    DEFLATE = "deflate"


_GZIP_TOKEN = re.compile(r"\bgzip\b")
_DEFLATE_TOKEN = re.compile(r"\bdeflate\b")

# zlib window bits for each output format
_WBITS = {
    EncodingChoice.GZIP: 16 + zlib.MAX_WBITS,
    EncodingChoice.DEFLATE: zlib.MAX_WBITS,
}


class EncodingNegotiator:
    """
    Selects the output transform from Accept-Encoding.

    Args:
        level: zlib compression level, 1 (fast) to 9 (small). 6 is the
               zlib default.
    """

    def __init__(self, level: int = 6):
        self.level = level

    def negotiate(
        self,
        accept_encoding: Optional[str],
        response_headers: MutableMapping[str, str],
    ) -> EncodingChoice:
        """
        Pick an encoding and set Content-Encoding when it is not identity.

        A missing header means identity.
        """
        if not accept_encoding:
            return EncodingChoice.IDENTITY

        if _GZIP_TOKEN.search(accept_encoding):
            choice = EncodingChoice.GZIP
        elif _DEFLATE_TOKEN.search(accept_encoding):
            choice = EncodingChoice.DEFLATE
        else:
            return EncodingChoice.IDENTITY

        response_headers["Content-Encoding"] = choice.value
        return choice

    def encode(self, chunks: Iterable[bytes], choice: EncodingChoice) -> Iterator[bytes]:
        """Wrap ``chunks`` in the compressor for ``choice``."""
        return compress_stream(chunks, choice, self.level)


def compress_stream(
    chunks: Iterable[bytes],
    choice: EncodingChoice,
    level: int = 6,
) -> Iterator[bytes]:
    """
    Lazily compress an iterable of byte strings.

    Identity returns the chunks untouched. Otherwise empty compressor
    output is skipped, so every yielded item is non-empty, and the final
    flush is always emitted, even for an empty input.
    """
    if choice is EncodingChoice.IDENTITY:
        yield from chunks
        return

    compressor = zlib.compressobj(level, zlib.DEFLATED, _WBITS[choice])
    try:
        for chunk in chunks:
            data = compressor.compress(chunk)
            if data:
                yield data
        yield compressor.flush()
    finally:
        close = getattr(chunks, "close", None)
        if close is not None:
            close()
