"""
=============================================================================
DIRECTORY LISTINGS
=============================================================================

A directory request is answered with an HTML page built from a template
file that is read and checked once, when the server starts:

    startup:   compile_template(path) ──► ListingTemplate | None
    request:   template.render(title, [DirectoryEntry, ...]) ──► html

The template is a ``string.Template`` with two placeholders:

    ${title}   the absolute path of the directory on disk
    ${files}   one <li> per entry, in the order given

Names and titles are HTML-escaped; hrefs are percent-encoded and then
escaped. The template itself is trusted.

If the template cannot be read or has a placeholder we do not fill,
compile_template() logs the problem and returns None. The server still
starts and serves files; directory requests get a 500.

=============================================================================
"""

import html
import logging
import os
import posixpath
from dataclasses import dataclass
from string import Template
from typing import Iterable, List, Optional
from urllib.parse import quote


logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_PATH = os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
    "templates",
    "index.html",
)

ENTRY_MARKUP = '    <li><a href="{href}">{name}</a></li>'


@dataclass(frozen=True)
class DirectoryEntry:
    name: str
    url: str

    @classmethod
    def for_child(cls, request_path: str, name: str) -> "DirectoryEntry":
        """``/docs`` + ``a.txt`` → url ``/docs/a.txt``."""
        return cls(name=name, url=posixpath.join(request_path, name))


def list_entries(directory: str, request_path: str) -> List[DirectoryEntry]:
    """
    Child entries of ``directory``, sorted by name.

    Raises:
        OSError: The directory cannot be read.
    """
    return [DirectoryEntry.for_child(request_path, name) for name in sorted(os.listdir(directory))]


class ListingTemplate:
    """A compiled listing template. Safe to share between threads."""

    def __init__(self, source: str, origin: str = "<string>"):
        self.origin = origin
        self._template = Template(source)

    def render(self, title: str, files: Iterable[DirectoryEntry]) -> str:
        """
        Raises:
            KeyError: The template uses a placeholder other than
                      ``title`` and ``files``.
        """
        rows = "\n".join(
            ENTRY_MARKUP.format(
                href=html.escape(quote(entry.url), quote=True),
                name=html.escape(entry.name),
            )
            for entry in files
        )
        return self._template.substitute(title=html.escape(title), files=rows)

    def check(self) -> None:
        """Render once with empty values so bad placeholders fail early."""
        self.render("", [])


def compile_template(path: Optional[str] = None) -> Optional[ListingTemplate]:
    """
    Load and check the listing template.

    Args:
        path: Template file; the bundled ``templates/index.html`` if None.

    Returns:
        The template, or None if it could not be read or is malformed.
        The reason is logged at ERROR.
    """
    path = path or DEFAULT_TEMPLATE_PATH
    try:
        with open(path, encoding="utf-8") as f:
            template = ListingTemplate(f.read(), origin=path)
        template.check()
    except (OSError, UnicodeDecodeError) as e:
        logger.error("Cannot read listing template %s: %s", path, e)
        return None
    except (KeyError, ValueError) as e:
        logger.error("Invalid listing template %s: %s", path, e)
        return None

    logger.debug("Compiled listing template %s", path)
    return template
