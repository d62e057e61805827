"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Everything the server needs to know, in one frozen dataclass.

    ┌─────────────────────────────────────────────────────────────────────┐
    │  Source (highest priority first)                                    │
    ├─────────────────────────────────────────────────────────────────────┤
    │  1. Command line     staticserver --port 3000 --root ./public       │
    │  2. Environment      STATIC_PORT=3000 staticserver                  │
    │  3. Defaults         localhost:8080, ./static                       │
    └─────────────────────────────────────────────────────────────────────┘

The config is built once at startup and then shared read-only by every
worker thread, which is why it is frozen. ``root`` is turned into an
absolute path at construction time, so a later chdir() cannot change
what is served.

=============================================================================
"""

import os
from dataclasses import dataclass, field
from typing import Optional


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")


def _default_root() -> str:
    return os.path.join(os.getcwd(), "static")


@dataclass(frozen=True)
class ServerConfig:
    """
    Configuration for the file server.

    NETWORK
        host, port, backlog, buffer_size, timeout

    HTTP
        keep_alive, keep_alive_timeout, max_request_size

    WORKERS
        min_workers, max_workers, queue_size

    FILES
        root            directory tree being served
        chunk_size      bytes read from disk per body piece
        cache_max_age   max-age in the Cache-Control header
        template_path   directory listing template; None = bundled one

    LOGGING
        log_level, log_format ("text" or "json")

    Example:
        ServerConfig(host="0.0.0.0", port=80, root="/srv/www", max_workers=32)
    """

    host: str = "localhost"
    port: int = 8080
    root: str = field(default_factory=_default_root)

    backlog: int = 128
    buffer_size: int = 8192
    timeout: Optional[float] = 30.0

    keep_alive: bool = True
    keep_alive_timeout: float = 5.0
    max_request_size: int = 1024 * 1024

    min_workers: int = 4
    max_workers: int = 16
    queue_size: int = 128

    chunk_size: int = 64 * 1024
    cache_max_age: int = 60
    template_path: Optional[str] = None

    log_level: str = "INFO"
    log_format: str = "text"

    server_name: str = "staticserver/1.0"

    def __post_init__(self):
        object.__setattr__(self, "root", os.path.abspath(os.path.expanduser(self.root)))
        object.__setattr__(self, "log_level", self.log_level.upper())

    @classmethod
    def from_env(cls, **overrides) -> "ServerConfig":
        """
        Build a config from environment variables.

            STATIC_HOST        bind address          (localhost)
            STATIC_PORT        port                  (8080)
            STATIC_ROOT        directory to serve    (./static)
            STATIC_WORKERS     max worker threads    (16)
            STATIC_LOG_LEVEL   logging level         (INFO)

        Keyword arguments whose value is not None win over the environment;
        the CLI passes its parsed flags this way.

        Raises:
            ValueError: A numeric variable is not a number.
        """
        values = {}
        env = os.environ

        if "STATIC_HOST" in env:
            values["host"] = env["STATIC_HOST"]
        if "STATIC_PORT" in env:
            values["port"] = int(env["STATIC_PORT"])
        if "STATIC_ROOT" in env:
            values["root"] = env["STATIC_ROOT"]
        if "STATIC_WORKERS" in env:
            values["max_workers"] = int(env["STATIC_WORKERS"])
        if "STATIC_LOG_LEVEL" in env:
            values["log_level"] = env["STATIC_LOG_LEVEL"]

        values.update({k: v for k, v in overrides.items() if v is not None})

        # a small --workers must not fall under the default minimum
        if "max_workers" in values and "min_workers" not in values:
            values["min_workers"] = min(cls.min_workers, values["max_workers"])

        return cls(**values)

    def validate(self) -> None:
        """
        Check values once at startup.

        Raises:
            ValueError: With a message naming the offending setting.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if not os.path.isdir(self.root):
            raise ValueError(f"root is not a directory: {self.root}")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")

        if self.cache_max_age < 0:
            raise ValueError("cache_max_age must be >= 0")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {', '.join(LOG_FORMATS)}")
