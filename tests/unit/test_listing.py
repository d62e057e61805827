"""
Unit tests for directory listing rendering.
"""

import logging
from pathlib import Path

from staticserver.handlers.listing import (
    DEFAULT_TEMPLATE_PATH,
    DirectoryEntry,
    ListingTemplate,
    compile_template,
    list_entries,
)


class TestDirectoryEntry:
    def test_url_joins_request_path(self):
        assert DirectoryEntry.for_child("/docs", "a.md").url == "/docs/a.md"
        assert DirectoryEntry.for_child("/docs/", "a.md").url == "/docs/a.md"
        assert DirectoryEntry.for_child("/", "a.md").url == "/a.md"

    def test_list_entries_sorted(self, site: Path):
        entries = list_entries(str(site / "docs"), "/docs")

        assert [e.name for e in entries] == ["a.md", "b.md"]
        assert [e.url for e in entries] == ["/docs/a.md", "/docs/b.md"]


class TestListingTemplate:
    def test_render(self):
        template = ListingTemplate("<h1>${title}</h1><ul>${files}</ul>")
        html = template.render("/srv/www", [DirectoryEntry("a.txt", "/a.txt")])

        assert "<h1>/srv/www</h1>" in html
        assert '<a href="/a.txt">a.txt</a>' in html

    def test_escapes_names_and_urls(self):
        template = ListingTemplate("${title}|${files}")
        html = template.render("<dir>", [DirectoryEntry('x "y" <z>.txt', '/x "y" <z>.txt')])

        assert "&lt;dir&gt;" in html
        assert ">x &quot;y&quot; &lt;z&gt;.txt</a>" in html
        assert 'href="/x%20%22y%22%20%3Cz%3E.txt"' in html

    def test_empty_directory(self):
        html = ListingTemplate("[${files}]").render("t", [])
        assert html == "[]"


class TestCompileTemplate:
    def test_bundled_template(self):
        template = compile_template()

        assert template is not None
        assert template.origin == DEFAULT_TEMPLATE_PATH
        html = template.render("/srv", [DirectoryEntry("a", "/a")])
        assert "<title>/srv</title>" in html

    def test_missing_file_returns_none(self, tmp_path: Path, caplog):
        with caplog.at_level(logging.ERROR):
            assert compile_template(str(tmp_path / "missing.html")) is None
        assert "Cannot read listing template" in caplog.text

    def test_unknown_placeholder_returns_none(self, tmp_path: Path, caplog):
        bad = tmp_path / "bad.html"
        bad.write_text("${title} ${footer}", encoding="utf-8")

        with caplog.at_level(logging.ERROR):
            assert compile_template(str(bad)) is None
        assert "Invalid listing template" in caplog.text

    def test_malformed_placeholder_returns_none(self, tmp_path: Path):
        bad = tmp_path / "bad.html"
        bad.write_text("${title", encoding="utf-8")

        assert compile_template(str(bad)) is None

    def test_custom_template(self, tmp_path: Path):
        good = tmp_path / "list.html"
        good.write_text("${title}: ${files}", encoding="utf-8")

        template = compile_template(str(good))
        assert template.render("t", []) == "t: "
