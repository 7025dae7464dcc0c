from __future__ import annotations

import html
import json
import re
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from pygments.formatters import HtmlFormatter

from .models import Post, Site, TagIndex
from .search import dump_search_index
from .utils import write_text

DEFAULT_TEMPLATE = Path(__file__).resolve().parent / "templates" / "index.html"
TEMPLATE_KEY_RE = re.compile(r"\{\{(\w+)\}\}")
FAVICON_SVG = (
    '<svg viewBox="0 0 100 100" xmlns="http://www.w3.org/2000/svg">'
    '<circle cx="50" cy="50" r="48" fill="white" stroke="rgba(0,0,0,0.1)" stroke-width="2"/>'
    '<text x="50%" y="50%" dy=".35em" text-anchor="middle" font-family="sans-serif" '
    'font-size="60" font-weight="bold" fill="black">{initial}</text>'
    "</svg>\n"
)


def render_template(template: str, **context: str) -> str:
    # Single pass, so substituted values are never scanned for further keys.
    def repl(match: re.Match) -> str:
        return context.get(match.group(1), match.group(0))

    return TEMPLATE_KEY_RE.sub(repl, template)


def read_template(path: Optional[Path] = None) -> str:
    return (path or DEFAULT_TEMPLATE).read_text(encoding="utf-8")


def embed_json(value: object) -> str:
    """Serialize for a ``<script type="application/json">`` block."""
    text = value if isinstance(value, str) else json.dumps(value, ensure_ascii=True, sort_keys=True)
    return text.replace("&", "\\u0026").replace("<", "\\u003c").replace(">", "\\u003e")


def code_styles() -> str:
    return HtmlFormatter(cssclass="codehilite").get_style_defs(".codehilite")


def build_tag_buttons(tag_index: TagIndex) -> str:
    items = []
    for bucket in tag_index.buckets:
        items.append(
            f'<button class="tag-button" type="button" data-tag="{html.escape(bucket.key)}">'
            f"{html.escape(bucket.name)}"
            f'<span class="count">{bucket.count}</span></button>'
        )
    return "\n".join(items)


def build_post_article(post: Post) -> str:
    chips = " ".join(
        f'<button class="chip" type="button" data-tag="{html.escape(tag.casefold())}">#{html.escape(tag)}</button>'
        for tag in post.tags
    )
    parts = [
        f'<article class="post" id="post-{html.escape(post.id)}" data-id="{html.escape(post.id)}">',
        '<div class="post-meta">'
        f'<time class="post-date" datetime="{post.date.isoformat()}">{post.date.isoformat()}</time>'
        f'<div class="post-tags">{chips}</div>'
        "</div>",
        f'<h2 class="post-title">{html.escape(post.title)}</h2>',
    ]
    if post.description:
        parts.append(f'<p class="post-description">{html.escape(post.description)}</p>')
    parts.append(f'<div class="post-body">{post.html}</div>')
    footer = []
    if post.link_url:
        footer.append(
            f'<a class="post-link" href="{html.escape(post.link_url)}" rel="noopener">'
            f"{html.escape(post.link_url)}</a>"
        )
    for link in post.share_links:
        footer.append(
            f'<a class="share-link" href="{html.escape(link.url)}" target="_blank" rel="noopener">'
            f"{html.escape(link.provider)}</a>"
        )
    if footer:
        parts.append(f'<div class="post-footer">{" ".join(footer)}</div>')
    parts.append("</article>")
    return "".join(parts)


def build_posts(site: Site) -> str:
    return "\n".join(build_post_article(post) for post in site.posts)


def build_data(site: Site) -> str:
    blocks = [
        ("posts-data", embed_json([post.to_dict() for post in site.posts])),
        ("tags-data", embed_json(site.tag_index.to_list())),
        ("search-data", embed_json(dump_search_index(site.search_index))),
    ]
    return "\n".join(f'<script type="application/json" id="{name}">{payload}</script>' for name, payload in blocks)


def render_site(site: Site, template: Optional[str] = None) -> str:
    template = template if template is not None else read_template()
    return render_template(
        template,
        title=html.escape(site.title),
        description=html.escape(site.description),
        build_date=site.build_date.isoformat(),
        year=str(site.build_date.year),
        favicon=favicon_data_uri(site.title),
        post_count=str(len(site.posts)),
        styles=code_styles(),
        tags=build_tag_buttons(site.tag_index),
        content=build_posts(site),
        data=build_data(site),
    )


def render_favicon(title: str) -> str:
    initial = title.strip()[:1].upper() or "*"
    return FAVICON_SVG.format(initial=html.escape(initial))


def favicon_data_uri(title: str) -> str:
    return "data:image/svg+xml," + quote(render_favicon(title), safe="")


def write_site(site: Site, output_dir: Path, template_path: Optional[Path] = None) -> Path:
    """Render and write ``index.html`` and ``favicon.svg``; returns the page path.

    The page is rendered fully before anything touches the disk, and every file
    is moved into place atomically.
    """
    page = render_site(site, read_template(template_path))
    favicon = render_favicon(site.title)
    index_path = output_dir / "index.html"
    write_text(output_dir / "favicon.svg", favicon)
    write_text(index_path, page)
    return index_path
