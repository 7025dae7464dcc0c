from __future__ import annotations

import json
import re
from typing import Sequence

from .models import Post

CJK_RE = re.compile(r"[\u3040-\u30ff\u3400-\u4dbf\u4e00-\u9fff\uac00-\ud7af]")
WORD_RE = re.compile(r"[^\W_]+(?:'[^\W_]+)?")


def tokenize(text: str) -> list[str]:
    """Split text into lowercase search tokens, one per CJK character."""
    tokens = CJK_RE.findall(text)
    text = CJK_RE.sub(" ", text)
    tokens.extend(match.group(0) for match in WORD_RE.finditer(text))
    return [token.casefold() for token in tokens]


def search_record(post: Post) -> dict:
    description = post.description or ""
    fields = [post.title, description, post.body, " ".join(post.tags)]
    tokens = sorted({token for value in fields for token in tokenize(value)})
    return {
        "id": post.id,
        "title": post.title,
        "description": description,
        "body": post.body,
        "tags": list(post.tags),
        "tag_keys": [tag.casefold() for tag in post.tags],
        "tokens": tokens,
    }


def build_search_index(posts: Sequence[Post]) -> list[dict]:
    return [search_record(post) for post in posts]


def dump_search_index(index: Sequence[dict]) -> str:
    return json.dumps(list(index), ensure_ascii=True, sort_keys=True, separators=(",", ":"))
