from __future__ import annotations

import dataclasses
import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional, Sequence

from .config import BuildSettings
from .content import normalize_document
from .errors import BuildReport, InvalidReference, NoValidPosts
from .loader import FallbackDate, discover, load_document
from .models import Post, Site
from .search import build_search_index
from .share import ShareProvider, share_links_for
from .tags import build_tag_index
from .utils import hash_text
from .validate import validate_post


def derive_post(path: Path, rel: str, fallback: FallbackDate) -> tuple[Optional[Post], BuildReport]:
    """Load, normalize and validate one file. Never raises for document problems."""
    report = BuildReport()
    print(f"Processing: {rel}")
    try:
        doc = load_document(path, rel, fallback)
    except (OSError, UnicodeDecodeError) as exc:
        report.add("io", rel, f"cannot read file: {exc}")
        return None, report
    post = normalize_document(doc, report)
    try:
        validate_post(post)
    except InvalidReference as exc:
        report.add("reference", rel, f"{exc} Post excluded.")
        return None, report
    return post, report


def assign_unique_ids(posts: Sequence[Post], report: BuildReport) -> list[Post]:
    used: set[str] = set()
    result = []
    for post in posts:
        candidate = post.id
        post_id = candidate
        if post_id in used:
            for length in (8, 10, 12, 16):
                post_id = f"{candidate}-{hash_text(post.source)[:length]}"
                if post_id not in used:
                    break
            if post_id in used:
                counter = 2
                while f"{candidate}-{counter}" in used:
                    counter += 1
                post_id = f"{candidate}-{counter}"
            report.add("duplicate", post.source, f"id '{candidate}' already taken, using '{post_id}'")
            post = dataclasses.replace(post, id=post_id)
        used.add(post_id)
        result.append(post)
    return result


def order_posts(posts: Sequence[Post]) -> list[Post]:
    """Most recent first; ties broken by id."""
    return sorted(posts, key=lambda post: (-post.date.toordinal(), post.id))


def attach_share_links(posts: Sequence[Post], providers: Sequence[ShareProvider], report: BuildReport) -> list[Post]:
    if not providers:
        return list(posts)
    return [dataclasses.replace(post, share_links=share_links_for(post, providers, report)) for post in posts]


def worker_count(requested: int, jobs: int) -> int:
    workers = requested if requested > 0 else (os.cpu_count() or 1)
    workers = max(1, min(workers, 32))
    return min(workers, jobs) if jobs else 1


def collect_posts(settings: BuildSettings, report: BuildReport) -> list[Post]:
    files = discover(settings.sources, report)
    workers = worker_count(settings.build_workers, len(files))

    def job(item: tuple[Path, str]) -> tuple[Optional[Post], BuildReport]:
        path, rel = item
        return derive_post(path, rel, settings.fallback_date)

    if workers > 1:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            results = list(executor.map(job, files))
    else:
        results = [job(item) for item in files]

    posts = []
    for post, doc_report in results:
        report.extend(doc_report)
        if post is not None:
            posts.append(post)
    return posts


def assemble_site(posts: Sequence[Post], settings: BuildSettings, report: BuildReport) -> Site:
    if not posts:
        raise NoValidPosts("No valid posts found; nothing to render.")
    posts = assign_unique_ids(posts, report)
    posts = order_posts(posts)
    posts = attach_share_links(posts, settings.providers, report)
    return Site(
        title=settings.title,
        description=settings.description,
        build_date=settings.build_date,
        posts=tuple(posts),
        tag_index=build_tag_index(posts),
        search_index=tuple(build_search_index(posts)),
    )


def build_site(settings: BuildSettings) -> tuple[Site, BuildReport]:
    report = BuildReport()
    posts = collect_posts(settings, report)
    return assemble_site(posts, settings, report), report
