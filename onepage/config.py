from __future__ import annotations

import datetime as dt
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

import yaml

from .errors import ConfigError
from .loader import FallbackDate, check_fallback_date
from .share import ShareProvider, parse_providers
from .utils import parse_bool, parse_date, parse_int

try:
    import tomllib as toml
except ImportError:
    import tomli as toml

DEFAULT_TITLE = "My Blog"
DEFAULT_DESCRIPTION = "Posts, tags and search in a single page."


@dataclass(frozen=True)
class BuildSettings:
    sources: Sequence[Path] = (Path("posts"),)
    output: Path = Path("dist")
    title: str = DEFAULT_TITLE
    description: str = DEFAULT_DESCRIPTION
    providers: Sequence[ShareProvider] = ()
    template: Optional[Path] = None
    fallback_date: FallbackDate = "mtime"
    build_date: dt.date = field(default_factory=dt.date.today)
    build_workers: int = 0
    strict: bool = False


def load_config(path: Path) -> dict:
    if not path.exists():
        return {}
    suffix = path.suffix.lower()
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    if suffix == ".toml":
        try:
            data = toml.loads(text)
        except toml.TOMLDecodeError as exc:
            raise ConfigError(f"Invalid TOML in config file {path}: {exc}") from exc
    elif suffix in {".yml", ".yaml"}:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in config file {path}: {exc}") from exc
        if data is None:
            return {}
    else:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON in config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config must be a mapping: {path}")
    return data


def as_list(value: object) -> list:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def settings_from_args(args: object) -> BuildSettings:
    """Validate parsed command-line values into BuildSettings."""
    sources = [Path(str(item)) for item in as_list(getattr(args, "source", None))]
    if not sources:
        raise ConfigError("At least one source directory is required.")

    title = (getattr(args, "title", "") or "").strip()
    if not title:
        raise ConfigError("Site title must not be empty.")

    build_date_value = getattr(args, "build_date", None)
    if build_date_value:
        build_date = parse_date(build_date_value)
        if build_date is None:
            raise ConfigError(f"build date must be YYYY-MM-DD, got {build_date_value!r}")
    else:
        build_date = dt.date.today()

    template_value = (getattr(args, "template", "") or "").strip()
    template = Path(template_value) if template_value else None
    if template is not None and not template.is_file():
        raise ConfigError(f"Template not found: {template}")

    return BuildSettings(
        sources=tuple(sources),
        output=Path(getattr(args, "output", "dist") or "dist"),
        title=title,
        description=(getattr(args, "description", "") or "").strip(),
        providers=tuple(parse_providers(getattr(args, "share", None))),
        template=template,
        fallback_date=check_fallback_date(getattr(args, "fallback_date", "mtime")),
        build_date=build_date,
        build_workers=max(0, parse_int(getattr(args, "build_workers", 0), 0)),
        strict=parse_bool(getattr(args, "strict", False)),
    )
