from __future__ import annotations

from typing import Sequence

from .models import Post, TagBucket, TagIndex


def build_tag_index(posts: Sequence[Post]) -> TagIndex:
    """Group post ids by tag, case-insensitively.

    ``posts`` must already be in site order: the first casing seen wins the
    display name and each bucket lists its posts in that same order. Buckets
    are sorted by post count, most used first, then alphabetically.
    """
    names: dict[str, str] = {}
    members: dict[str, list[str]] = {}
    for post in posts:
        for tag in post.tags:
            key = tag.casefold()
            names.setdefault(key, tag)
            ids = members.setdefault(key, [])
            if post.id not in ids:
                ids.append(post.id)
    buckets = [TagBucket(key=key, name=names[key], post_ids=tuple(ids)) for key, ids in members.items()]
    buckets.sort(key=lambda bucket: (-bucket.count, bucket.key, bucket.name))
    return TagIndex(buckets=tuple(buckets))


def check_closure(index: TagIndex, posts: Sequence[Post]) -> list[str]:
    """Return every mismatch between ``index`` and the posts' tag sets."""
    problems = []
    by_id = {post.id: post for post in posts}
    for bucket in index.buckets:
        if not bucket.post_ids:
            problems.append(f"tag '{bucket.name}' has no posts")
        for post_id in bucket.post_ids:
            post = by_id.get(post_id)
            if post is None:
                problems.append(f"tag '{bucket.name}' points at unknown post '{post_id}'")
            elif bucket.key not in {tag.casefold() for tag in post.tags}:
                problems.append(f"post '{post_id}' does not carry tag '{bucket.name}'")
    for post in posts:
        for tag in post.tags:
            bucket = index.get(tag)
            if bucket is None:
                problems.append(f"tag '{tag}' of post '{post.id}' is missing from the index")
            elif post.id not in bucket.post_ids:
                problems.append(f"tag '{bucket.name}' does not list post '{post.id}'")
    return problems
