"""
=============================================================================
MIME TYPE TABLE
=============================================================================

Maps a file path to the media type sent in Content-Type.

The file handler always appends ";charset=utf-8" to whatever this table
returns, so the table itself stores bare media types only:

    get_mime_type("docs/readme.md")   → "text/markdown"
    file response header              → "text/markdown;charset=utf-8"

Lookup is by lowercase extension. Anything unknown is served as
application/octet-stream so the browser downloads rather than renders it.

=============================================================================
"""

from pathlib import Path
from typing import Optional, Union


MIME_TYPES = {
    # Documents and text
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".json": "application/json",
    ".map": "application/json",
    ".xml": "application/xml",
    ".txt": "text/plain",
    ".log": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",
    ".yaml": "text/yaml",
    ".yml": "text/yaml",
    ".py": "text/x-python",
    ".sh": "text/x-shellscript",

    # Images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",
    ".bmp": "image/bmp",

    # Fonts
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",

    # Audio / video (the usual clients of Range requests)
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".m4a": "audio/mp4",
    ".flac": "audio/flac",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".mov": "video/quicktime",
    ".mkv": "video/x-matroska",

    # Archives and binaries
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".tar": "application/x-tar",
    ".gz": "application/gzip",
    ".wasm": "application/wasm",
}

DEFAULT_MIME_TYPE = "application/octet-stream"


def get_mime_type(path: Union[str, Path], default: Optional[str] = None) -> str:
    """
    Media type for a file, from its extension.

    Examples:
        >>> get_mime_type("/srv/static/app.JS")
        'text/javascript'
        >>> get_mime_type("notes.unknown")
        'application/octet-stream'
    """
    suffix = Path(path).suffix.lower()
    return MIME_TYPES.get(suffix, default or DEFAULT_MIME_TYPE)


def get_content_type(path: Union[str, Path], charset: str = "utf-8") -> str:
    """
    Content-Type header value for a served file.

    The charset parameter is attached unconditionally, binary types
    included, matching what clients of this server already expect.
    """
    return f"{get_mime_type(path)};charset={charset}"
