"""
=============================================================================
STATICSERVER - an HTTP/1.1 static file server on raw sockets
=============================================================================

Serves a directory tree with:

    - directory listings rendered from a template
    - Content-Type from a MIME table
    - ETag / Last-Modified validators and 304 Not Modified
    - gzip / deflate compression, streamed
    - single byte ranges (206 Partial Content)

    ┌──────────────────────────────────────────────────────────────────┐
    │  staticserver/                                                   │
    │  ├── core/        sockets, connections, worker pool              │
    │  ├── http/        request parsing, responses, caching, ranges,   │
    │  │                encodings, status codes, MIME types            │
    │  ├── handlers/    path resolution, file pipeline, listings,      │
    │  │                error pages                                    │
    │  ├── middleware/  access log                                     │
    │  ├── templates/   directory listing page                         │
    │  ├── config.py    ServerConfig                                   │
    │  └── server.py    StaticServer                                   │
    └──────────────────────────────────────────────────────────────────┘

Quick start:

    $ staticserver --root ./public --port 8000

    from staticserver import ServerConfig, StaticServer
    StaticServer(ServerConfig(root="./public")).start()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .server import StaticServer, create_server

__all__ = ["ServerConfig", "StaticServer", "create_server", "__version__"]
