from __future__ import annotations

import html as html_lib
import re
from urllib.parse import urlsplit

from .errors import InvalidReference
from .models import Post

TAG_RE = re.compile(r"<[A-Za-z][^>]*>")
RESOURCE_RE = re.compile(
    r"""(?<![\w-])(?:src|href)\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'=<>`]+))""", re.IGNORECASE
)
SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:")
HOST_SCHEMES = {"http", "https", "ftp", "ws", "wss"}


def is_absolute_url(url: str) -> bool:
    url = url.strip()
    if not SCHEME_RE.match(url):
        return False
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    if parts.scheme.lower() in HOST_SCHEMES:
        return bool(parts.hostname)
    return True


def resource_urls(html_text: str) -> list[str]:
    urls = []
    for tag in TAG_RE.finditer(html_text):
        for match in RESOURCE_RE.finditer(tag.group(0)):
            value = next(group for group in match.groups() if group is not None)
            urls.append(html_lib.unescape(value))
    return urls


def find_invalid_references(post: Post) -> list[str]:
    invalid = []
    candidates = resource_urls(post.html)
    if post.link_url:
        candidates.append(post.link_url)
    for url in candidates:
        stripped = url.strip()
        if not stripped or stripped.startswith("#") or stripped.lower().startswith("data:"):
            continue
        if not is_absolute_url(stripped) and url not in invalid:
            invalid.append(url)
    return invalid


def validate_post(post: Post) -> Post:
    invalid = find_invalid_references(post)
    if invalid:
        raise InvalidReference(post.id, invalid)
    return post
