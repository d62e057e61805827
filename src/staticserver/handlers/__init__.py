"""
Request handling for the file server.

    StaticFileHandler   one request in, one response out
    PathResolver        URL path → file or directory under the root
    ListingTemplate     directory page rendering
    ErrorResponder      status → plain-text error page
"""

from .errors import ErrorResponder, error_response
from .listing import DirectoryEntry, ListingTemplate, compile_template
from .resolver import NotFound, PathKind, PathResolver, ResolvedPath
from .static import FileStream, StaticFileHandler

__all__ = [
    "DirectoryEntry",
    "ErrorResponder",
    "FileStream",
    "ListingTemplate",
    "NotFound",
    "PathKind",
    "PathResolver",
    "ResolvedPath",
    "StaticFileHandler",
    "compile_template",
    "error_response",
]
