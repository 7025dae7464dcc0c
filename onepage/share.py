from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Sequence
from urllib.parse import quote

from .errors import BuildReport, ConfigError, UnresolvedPlaceholder
from .models import Post, ShareLink
from .validate import is_absolute_url

PLACEHOLDER_RE = re.compile(r"\{(\w+)\}")


@dataclass(frozen=True)
class ShareProvider:
    name: str
    template: str

    @property
    def placeholders(self) -> list[str]:
        return PLACEHOLDER_RE.findall(self.template)


def parse_provider(spec: str) -> ShareProvider:
    """Parse a ``Name:Template`` provider spec, splitting on the first colon."""
    name, sep, template = spec.partition(":")
    name = name.strip()
    template = template.strip()
    if not sep or not name or not template:
        raise ConfigError(f"Share provider must look like 'Name:URLTemplate', got {spec!r}")
    if not is_absolute_url(PLACEHOLDER_RE.sub("x", template)):
        raise ConfigError(f"Share template for '{name}' must be an absolute URL: {template!r}")
    return ShareProvider(name=name, template=template)


def parse_providers(specs) -> list[ShareProvider]:
    if not specs:
        return []
    if isinstance(specs, dict):
        specs = [f"{name}:{template}" for name, template in specs.items()]
    elif isinstance(specs, str):
        specs = [specs]
    return [parse_provider(str(spec)) for spec in specs]


def format_tags(tags: Sequence[str]) -> str:
    return " ".join(f"#{tag.replace(' ', '_')}" for tag in tags)


def placeholder_values(post: Post) -> dict[str, Optional[str]]:
    return {
        "URL": post.link_url,
        "TITLE": post.title,
        "TEXT": post.body,
        "DESCRIPTION": post.description or "",
        "TAGS": format_tags(post.tags),
    }


def expand(provider: ShareProvider, post: Post) -> ShareLink:
    values = placeholder_values(post)
    for name in provider.placeholders:
        if values.get(name) is None:
            raise UnresolvedPlaceholder(provider.name, name)

    def repl(match: re.Match) -> str:
        return quote(values[match.group(1)], safe="")

    return ShareLink(provider=provider.name, url=PLACEHOLDER_RE.sub(repl, provider.template))


def share_links_for(
    post: Post, providers: Sequence[ShareProvider], report: Optional[BuildReport] = None
) -> tuple[ShareLink, ...]:
    links = []
    for provider in providers:
        try:
            links.append(expand(provider, post))
        except UnresolvedPlaceholder as exc:
            if report is not None:
                report.add("share", post.id, f"{exc}; link omitted")
    return tuple(links)
