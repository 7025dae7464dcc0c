from __future__ import annotations

import datetime as dt
import unittest
from pathlib import Path

from onepage.content import normalize_document
from onepage.errors import InvalidReference
from onepage.models import Post, SourceDocument, SourceKind
from onepage.validate import find_invalid_references, is_absolute_url, resource_urls, validate_post


def make_post(html: str, link_url: str | None = None) -> Post:
    return Post(
        id="sample",
        title="Sample",
        body="",
        html=html,
        date=dt.date(2024, 1, 1),
        modified=dt.date(2024, 1, 1),
        kind=SourceKind.MARKDOWN,
        source="posts/sample.md",
        link_url=link_url,
    )


class TestAbsoluteUrl(unittest.TestCase):
    def test_accepts_absolute(self) -> None:
        for url in ("https://example.com/a.png", "http://example.com", "mailto:me@example.com", "ftp://host/x"):
            self.assertTrue(is_absolute_url(url), url)

    def test_rejects_relative(self) -> None:
        for url in ("img/a.png", "/root.png", "../up.html", "//cdn.example.com/x.js", "https:///nohost", "http://"):
            self.assertFalse(is_absolute_url(url), url)


class TestReferences(unittest.TestCase):
    def test_collects_src_and_href(self) -> None:
        html = '<img alt="x" src="a.png" /><a href=\'https://ok.com/?a=1&amp;b=2\'>ok</a>'
        self.assertEqual(resource_urls(html), ["a.png", "https://ok.com/?a=1&b=2"])

    def test_skips_anchors_data_and_empty(self) -> None:
        html = '<a href="#top">top</a><img src="data:image/png;base64,AAAA"><a href="">x</a>'
        self.assertEqual(find_invalid_references(make_post(html)), [])

    def test_reports_every_relative_reference(self) -> None:
        html = '<img src="pic.png"><a href="https://ok.com">ok</a><a href="notes.html">n</a><img src="pic.png">'
        self.assertEqual(find_invalid_references(make_post(html)), ["pic.png", "notes.html"])

    def test_link_url_is_checked(self) -> None:
        self.assertEqual(find_invalid_references(make_post("<p>x</p>", link_url="/relative")), ["/relative"])

    def test_validate_post_raises_with_identifier(self) -> None:
        with self.assertRaises(InvalidReference) as ctx:
            validate_post(make_post('<a href="other.html">x</a>'))
        self.assertEqual(ctx.exception.post_id, "sample")
        self.assertEqual(ctx.exception.references, ["other.html"])
        self.assertIn("other.html", str(ctx.exception))

    def test_markdown_relative_image_is_caught(self) -> None:
        doc = SourceDocument(
            path=Path("posts/pics.md"),
            rel="posts/pics.md",
            kind=SourceKind.MARKDOWN,
            text="![cat](images/cat.png) and [home](https://example.com)",
            fallback_date=dt.date(2024, 1, 1),
        )
        post = normalize_document(doc)
        self.assertEqual(find_invalid_references(post), ["images/cat.png"])

    def test_unquoted_attribute_values(self) -> None:
        html = "<p>hi <img src=pic.png> <a href=notes.html>n</a> <a HREF=https://ok.com/x>ok</a></p>"
        self.assertEqual(resource_urls(html), ["pic.png", "notes.html", "https://ok.com/x"])
        self.assertEqual(find_invalid_references(make_post(html)), ["pic.png", "notes.html"])

    def test_raw_html_in_markdown_is_caught(self) -> None:
        doc = SourceDocument(
            path=Path("posts/raw.md"),
            rel="posts/raw.md",
            kind=SourceKind.MARKDOWN,
            text="hi <img src=pic.png> <a href=notes.html>n</a>",
            fallback_date=dt.date(2024, 1, 1),
        )
        with self.assertRaises(InvalidReference) as ctx:
            validate_post(normalize_document(doc))
        self.assertEqual(ctx.exception.references, ["pic.png", "notes.html"])

    def test_valid_post_passes_through(self) -> None:
        post = make_post('<img src="https://img.example.com/a.png">')
        self.assertIs(validate_post(post), post)


if __name__ == "__main__":
    unittest.main()
