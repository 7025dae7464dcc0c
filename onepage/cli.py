from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path
from typing import Optional, Sequence

from .config import DEFAULT_DESCRIPTION, DEFAULT_TITLE, as_list, load_config, settings_from_args
from .errors import BuildReport, ConfigError, NoValidPosts, OutputError
from .pipeline import assemble_site, collect_posts
from .render import write_site
from .utils import parse_bool, parse_int

EXIT_OK = 0
EXIT_BUILD_FAILED = 1
EXIT_CONFIG = 2
EXIT_STRICT = 3


def build_parser(config: dict, config_path: str) -> argparse.ArgumentParser:
    def cfg_value(key: str, default: object) -> object:
        value = config.get(key)
        return default if value is None else value

    def cfg_str(key: str, default: str) -> str:
        return str(cfg_value(key, default))

    parser = argparse.ArgumentParser(
        prog="onepage",
        description="Compile a folder of Markdown and text posts into one searchable HTML page.",
    )
    parser.add_argument("--config", default=config_path, help="Path to site config file (TOML/YAML/JSON).")
    parser.add_argument(
        "--source",
        action="append",
        default=None,
        help="Directory (or file) with .md/.txt posts. Repeat for several roots.",
    )
    parser.add_argument("--output", default=cfg_str("output", "dist"), help="Output directory for the site.")
    parser.add_argument("--title", default=cfg_str("title", DEFAULT_TITLE), help="Site title.")
    parser.add_argument(
        "--description",
        default=cfg_str("description", DEFAULT_DESCRIPTION),
        help="Site description.",
    )
    parser.add_argument(
        "--share",
        action="append",
        default=None,
        metavar="NAME:TEMPLATE",
        help="Share link provider, e.g. 'X:https://x.com/intent/tweet?url={URL}&text={TITLE}'. Repeatable.",
    )
    parser.add_argument("--template", default=cfg_str("template", ""), help="Custom HTML template.")
    parser.add_argument(
        "--fallback-date",
        default=cfg_str("fallback_date", "mtime"),
        help="Date for posts without one: 'mtime' or YYYY-MM-DD.",
    )
    parser.add_argument(
        "--build-date",
        default=cfg_str("build_date", ""),
        help="Date stamped into the page (YYYY-MM-DD, default today).",
    )
    parser.add_argument(
        "--build-workers",
        default=parse_int(cfg_value("build_workers", 0), 0),
        type=int,
        help="Number of worker threads for loading posts (0 = auto).",
    )
    parser.add_argument(
        "--strict",
        action=argparse.BooleanOptionalAction,
        default=parse_bool(cfg_value("strict", False)),
        help="Exit non-zero when any post was skipped or reported.",
    )
    parser.set_defaults(
        config_sources=as_list(config.get("sources", config.get("source"))) or ["posts"],
        config_share=config.get("share"),
    )
    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    pre_parser = argparse.ArgumentParser(add_help=False)
    pre_parser.add_argument("--config", default="site.toml")
    pre_args, _ = pre_parser.parse_known_args(argv)
    config = load_config(Path(pre_args.config))
    args = build_parser(config, pre_args.config).parse_args(argv)
    if args.source is None:
        args.source = args.config_sources
    if args.share is None:
        args.share = args.config_share
    return args


def main(argv: Optional[Sequence[str]] = None) -> int:
    start = time.perf_counter()
    try:
        args = parse_args(argv)
        settings = settings_from_args(args)
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_CONFIG

    report = BuildReport()
    try:
        posts = collect_posts(settings, report)
        site = assemble_site(posts, settings, report)
    except NoValidPosts as exc:
        if report:
            print(report.summary(), file=sys.stderr)
        print(f"Build failed: {exc}", file=sys.stderr)
        return EXIT_BUILD_FAILED

    if report:
        print(report.summary(), file=sys.stderr)

    try:
        index_path = write_site(site, settings.output, settings.template)
    except OutputError as exc:
        print(f"Build failed: {exc}", file=sys.stderr)
        return EXIT_BUILD_FAILED

    elapsed = time.perf_counter() - start
    print(f"Build completed in {elapsed:.2f}s.")
    print(f"Site generated in: {index_path.parent} ({len(site.posts)} posts, {len(site.tag_index.buckets)} tags)")
    if settings.strict and report:
        return EXIT_STRICT
    return EXIT_OK
