from __future__ import annotations

import datetime as dt
from pathlib import Path
from typing import Iterable, Union

from .errors import BuildReport, ConfigError
from .models import SourceDocument, SourceKind
from .utils import list_files, mtime_date, parse_date

FallbackDate = Union[str, dt.date]


def check_fallback_date(value: object) -> FallbackDate:
    """Validate the fallback date setting: ``"mtime"`` or a fixed date."""
    if isinstance(value, str) and value.strip().lower() == "mtime":
        return "mtime"
    parsed = parse_date(value)
    if parsed is None:
        raise ConfigError(f"fallback date must be 'mtime' or YYYY-MM-DD, got {value!r}")
    return parsed


def resolve_fallback_date(path: Path, fallback: FallbackDate) -> dt.date:
    if fallback == "mtime":
        return mtime_date(path)
    return fallback


def discover(sources: Iterable[Path], report: BuildReport) -> list[tuple[Path, str]]:
    """List supported files under every source root as ``(path, rel)`` pairs.

    ``rel`` is the path relative to the root, prefixed with the root's name so
    files from different roots stay distinguishable in reports.
    """
    found: list[tuple[Path, str]] = []
    seen: set[Path] = set()
    for root in sources:
        if not root.exists():
            report.add("io", root.as_posix(), "source not found")
            continue
        for path in list_files(root):
            if SourceKind.from_path(path) is None:
                continue
            resolved = path.resolve()
            if resolved in seen:
                continue
            seen.add(resolved)
            if root.is_file():
                rel = path.name
            else:
                rel = (Path(root.resolve().name) / path.relative_to(root)).as_posix()
            found.append((path, rel))
    return found


def load_document(path: Path, rel: str, fallback: FallbackDate) -> SourceDocument:
    """Read one file. Raises OSError or UnicodeDecodeError when unreadable."""
    kind = SourceKind.from_path(path)
    if kind is None:
        raise ValueError(f"Unsupported file type: {path}")
    text = path.read_text(encoding="utf-8")
    return SourceDocument(
        path=path,
        rel=rel,
        kind=kind,
        text=text,
        fallback_date=resolve_fallback_date(path, fallback),
    )
