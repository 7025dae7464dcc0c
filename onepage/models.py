from __future__ import annotations

import datetime as dt
import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence


class SourceKind(enum.Enum):
    MARKDOWN = "markdown"
    TEXT = "text"

    @classmethod
    def from_path(cls, path: Path) -> Optional["SourceKind"]:
        suffix = path.suffix.lower()
        if suffix == ".md":
            return cls.MARKDOWN
        if suffix == ".txt":
            return cls.TEXT
        return None


@dataclass(frozen=True)
class SourceDocument:
    """Raw file contents as handed over by the loader."""

    path: Path
    rel: str
    kind: SourceKind
    text: str
    fallback_date: dt.date


@dataclass(frozen=True)
class Frontmatter:
    title: Optional[str] = None
    description: Optional[str] = None
    tags: Sequence[str] = ()
    link_url: Optional[str] = None
    created: Optional[dt.date] = None
    modified: Optional[dt.date] = None


@dataclass(frozen=True)
class ShareLink:
    provider: str
    url: str


@dataclass(frozen=True)
class Post:
    id: str
    title: str
    body: str
    html: str
    date: dt.date
    modified: dt.date
    kind: SourceKind
    source: str
    description: Optional[str] = None
    tags: Sequence[str] = ()
    link_url: Optional[str] = None
    share_links: Sequence[ShareLink] = ()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "date": self.date.isoformat(),
            "modified": self.modified.isoformat(),
            "tags": list(self.tags),
            "link_url": self.link_url,
            "kind": self.kind.value,
            "share_links": [{"provider": link.provider, "url": link.url} for link in self.share_links],
        }


@dataclass(frozen=True)
class TagBucket:
    key: str
    name: str
    post_ids: Sequence[str] = ()

    @property
    def count(self) -> int:
        return len(self.post_ids)


@dataclass(frozen=True)
class TagIndex:
    buckets: Sequence[TagBucket] = ()

    def get(self, tag: str) -> Optional[TagBucket]:
        key = tag.casefold()
        for bucket in self.buckets:
            if bucket.key == key:
                return bucket
        return None

    def counts(self) -> dict[str, int]:
        return {bucket.name: bucket.count for bucket in self.buckets}

    def to_list(self) -> list[dict]:
        return [
            {"key": bucket.key, "name": bucket.name, "count": bucket.count, "posts": list(bucket.post_ids)}
            for bucket in self.buckets
        ]


@dataclass(frozen=True)
class Site:
    title: str
    description: str
    build_date: dt.date
    posts: Sequence[Post] = ()
    tag_index: TagIndex = field(default_factory=TagIndex)
    search_index: Sequence[dict] = ()
