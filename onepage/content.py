from __future__ import annotations

import datetime as dt
import html as html_lib
import re
from pathlib import Path
from typing import Callable, Optional

import markdown
import yaml

from .errors import BuildReport, MalformedFrontmatter
from .models import Frontmatter, Post, SourceDocument, SourceKind
from .utils import parse_date

FRONT_MATTER_MARKER = "---"
FILENAME_DATE_RE = re.compile(r"^(\d{4})[^A-Za-z0-9](\d{2})[^A-Za-z0-9](\d{2})[^A-Za-z0-9](.+)$")
HASHTAG_RE = re.compile(r"(?<![\w/&#(\"'])#([^\W\d_][\w-]*)")
FIRST_URL_RE = re.compile(r"https?://[^\s()<>]+")
URL_TRAILING = ".,;:!?'\"*_]`"
MARKDOWN_EXTENSIONS = ["fenced_code", "tables", "codehilite", "pymdownx.tilde"]
MARKDOWN_EXTENSION_CONFIGS = {
    "codehilite": {"guess_lang": False, "css_class": "codehilite"},
    "pymdownx.tilde": {"subscript": False},
}


def slugify(text: str) -> str:
    text = text.lower()
    text = re.sub(r"[^\w]+", "-", text, flags=re.UNICODE)
    text = text.strip("-_").replace("_", "-")
    return text or "post"


def deslugify(slug: str) -> str:
    text = re.sub(r"[-_]+", " ", slug)
    text = " ".join(text.split())
    if not text:
        return ""
    return text[0].upper() + text[1:]


def parse_list(value: str) -> list[str]:
    value = value.strip()
    if value.startswith("[") and value.endswith("]"):
        inner = value[1:-1]
        items = [item.strip().strip("'\"") for item in inner.split(",")]
    else:
        items = [item.strip() for item in value.split(",")]
    return [item for item in items if item]


def split_front_matter(text: str) -> tuple[Optional[str], str]:
    """Return the raw frontmatter block (or None) and the text that follows it."""
    clean_text = text.lstrip("\ufeff")
    lines = clean_text.splitlines()
    if not lines or lines[0].strip() != FRONT_MATTER_MARKER:
        return None, clean_text

    end = None
    for i in range(1, len(lines)):
        if lines[i].strip() == FRONT_MATTER_MARKER:
            end = i
            break
    if end is None:
        return None, clean_text

    block = "\n".join(lines[1:end])
    body = "\n".join(lines[end + 1 :])
    return block, body


def _scalar(meta: dict, *keys: str) -> Optional[str]:
    for key in keys:
        value = meta.get(key)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, (str, int, float, dt.date)):
            raise MalformedFrontmatter(f"'{key}' must be a plain value, got {type(value).__name__}")
        text = str(value).strip()
        if text:
            return text
    return None


def _tags(meta: dict) -> tuple[str, ...]:
    value = meta.get("tags")
    if value is None:
        return ()
    if isinstance(value, str):
        return tuple(parse_list(value))
    if isinstance(value, list):
        tags = []
        for item in value:
            if isinstance(item, (dict, list)) or item is None:
                raise MalformedFrontmatter("'tags' must be a list of strings")
            text = str(item).strip()
            if text:
                tags.append(text)
        return tuple(tags)
    raise MalformedFrontmatter(f"'tags' must be a list, got {type(value).__name__}")


def _date(meta: dict, *keys: str) -> Optional[dt.date]:
    for key in keys:
        value = meta.get(key)
        if value is None or value == "":
            continue
        parsed = parse_date(value)
        if parsed is None:
            raise MalformedFrontmatter(f"'{key}' is not a valid date: {value!r}")
        return parsed
    return None


def load_front_matter(block: str) -> Frontmatter:
    try:
        meta = yaml.safe_load(block)
    except yaml.YAMLError as exc:
        raise MalformedFrontmatter(f"invalid YAML: {exc}") from exc
    if meta is None:
        return Frontmatter()
    if not isinstance(meta, dict):
        raise MalformedFrontmatter("frontmatter must be a mapping")
    meta = {str(key).strip().lower(): value for key, value in meta.items()}
    return Frontmatter(
        title=_scalar(meta, "title"),
        description=_scalar(meta, "description"),
        tags=_tags(meta),
        link_url=_scalar(meta, "link_url", "link"),
        created=_date(meta, "created", "date"),
        modified=_date(meta, "modified", "updated"),
    )


def parse_front_matter(
    text: str, on_error: Optional[Callable[[MalformedFrontmatter], None]] = None
) -> tuple[Optional[Frontmatter], str]:
    """Parse the leading metadata block of ``text``.

    Never raises: a missing block yields ``None`` with the full text as body, and a
    malformed block yields ``None`` with the block stripped. ``on_error`` is called
    with the parse error in the second case.
    """
    block, body = split_front_matter(text)
    if block is None:
        return None, body
    try:
        return load_front_matter(block), body
    except MalformedFrontmatter as exc:
        if on_error is not None:
            on_error(exc)
        return None, body


def infer_from_filename(name: str) -> tuple[str, Optional[dt.date]]:
    """Derive a title and optional date from a ``YYYY-MM-DD-slug.ext`` style name."""
    stem = Path(name).stem
    date_value = None
    slug = stem
    match = FILENAME_DATE_RE.match(stem)
    if match:
        year, month, day, slug = match.groups()
        try:
            date_value = dt.date(int(year), int(month), int(day))
        except ValueError:
            date_value = None
    title = deslugify(slug) or stem.strip() or name
    return title, date_value


def extract_hashtags(text: str) -> list[str]:
    tags = []
    for match in HASHTAG_RE.finditer(text):
        tag = match.group(1).rstrip("-_")
        if tag:
            tags.append(tag)
    return tags


def extract_first_url(text: str) -> Optional[str]:
    match = FIRST_URL_RE.search(text)
    if not match:
        return None
    url = match.group(0).rstrip(URL_TRAILING)
    return url if len(url) > len("https://") else None


def merge_tags(*groups) -> tuple[str, ...]:
    """Union tag groups case-insensitively, keeping the first-seen casing."""
    seen: dict[str, str] = {}
    for group in groups:
        for tag in group:
            key = tag.casefold()
            if key not in seen:
                seen[key] = tag
    return tuple(sorted(seen.values(), key=lambda tag: (tag.casefold(), tag)))


def render_markdown(body: str) -> str:
    md = markdown.Markdown(extensions=MARKDOWN_EXTENSIONS, extension_configs=MARKDOWN_EXTENSION_CONFIGS)
    return md.convert(body)


def render_text(body: str) -> str:
    escaped = html_lib.escape(body).replace("\n", "<br>")
    return f"<p>{escaped}</p>"


def normalize_document(doc: SourceDocument, report: Optional[BuildReport] = None) -> Post:
    """Turn one loaded document into a Post, frontmatter first, filename second."""
    inferred_title, inferred_date = infer_from_filename(doc.path.name)

    front = None
    body = doc.text
    if doc.kind is SourceKind.MARKDOWN:

        def on_error(exc: MalformedFrontmatter) -> None:
            if report is not None:
                report.add("frontmatter", doc.rel, f"{exc}; using filename metadata")

        front, body = parse_front_matter(doc.text, on_error)
    front = front or Frontmatter()
    body = body.strip()

    if doc.kind is SourceKind.MARKDOWN:
        html_content = render_markdown(body)
    else:
        html_content = render_text(body)

    return Post(
        id=slugify(doc.path.stem),
        title=front.title or inferred_title,
        description=front.description,
        body=body,
        html=html_content,
        date=front.created or inferred_date or doc.fallback_date,
        modified=front.modified or doc.fallback_date,
        kind=doc.kind,
        source=doc.rel,
        tags=merge_tags(front.tags, extract_hashtags(body)),
        link_url=front.link_url or extract_first_url(body),
    )
