# seo_parity/cli.py
# Defines the command-line interface using argparse.

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
from pathlib import Path
from typing import IO, Any, Dict, List, Optional, Sequence

import httpx

from seo_parity import __version__
from seo_parity.api import compare_sites, warm_up
from seo_parity.cache import CacheConfig, FileCache
from seo_parity.config import load_config
from seo_parity.models import FIELD_ORDER, CheckSet
from seo_parity.orchestrator import ComparisonFailed, RunHandle
from seo_parity.paths import diff_path_lists, load_path_list
from seo_parity.report import group_by_canonical, migration_progress
from seo_parity.sitemap import (
    compare_sitemaps,
    fetch_sitemap_documents,
    load_mapping,
    parse_sitemap_mapping,
    parse_sitemap_slugs,
    paths_from_sitemap,
    save_mapping,
)
from seo_parity.ui import (
    ProgressPrinter,
    render_groups,
    render_header,
    render_migration_progress,
    render_path_diff,
    render_problem_pages,
    render_report_paths,
    render_sitemap_comparison,
    render_sitemap_paths,
    render_summary,
    render_warmup,
)
from seo_parity.writers import (
    CSV_NAME,
    HTML_NAME,
    PROGRESS_NAME,
    SUMMARY_NAME,
    write_path_list,
    write_sitemap_comparison,
)

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2
EXIT_PAGES_DIFFER = 3
EXIT_STOPPED = 130


def _configure_logging(verbose: bool) -> None:
    level = logging.INFO if verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _human_bytes(n: int) -> str:
    units = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    v = float(n)
    while v >= 1024 and i < len(units) - 1:
        v /= 1024.0
        i += 1
    s = f"{v:.2f}".rstrip("0").rstrip(".")
    return f"{s} {units[i]}"


def _checks_from_args(args: argparse.Namespace, config: dict[str, Any]) -> CheckSet:
    if args.checks:
        return CheckSet.from_names(args.checks.split(","))
    base = CheckSet.from_mapping(config.get("checks", {}))
    return CheckSet(
        **{name: getattr(base, name) and not getattr(args, f"no_{name}") for name in FIELD_ORDER}
    )


def _install_stop_handler(handle: RunHandle) -> None:
    """Ctrl-C asks the run to stop after the current batch."""
    try:
        asyncio.get_running_loop().add_signal_handler(signal.SIGINT, handle.request_stop)
    except (NotImplementedError, RuntimeError):
        log.debug("SIGINT handler not supported here; Ctrl-C will abort immediately.")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Compare SEO fields of a production and a development site.",
        prog="seo_parity",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose logging output to stderr."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- compare ---
    cmp_parser = subparsers.add_parser("compare", help="Compare every page in a URL list.")
    cmp_parser.add_argument(
        "--urls", metavar="FILEPATH", default="urls-main.txt", help="Page paths, one per line."
    )
    cmp_parser.add_argument("--prod", metavar="URL", help="Production base URL.")
    cmp_parser.add_argument("--dev", metavar="URL", help="Development base URL.")
    cmp_parser.add_argument(
        "--checks",
        metavar="LIST",
        help="Comma separated fields to compare (title,description,h1,og_image).",
    )
    for name in FIELD_ORDER:
        cmp_parser.add_argument(
            f"--no-{name.replace('_', '-')}",
            dest=f"no_{name}",
            action="store_true",
            help=f"Do not compare the {name} field.",
        )
    sched = cmp_parser.add_argument_group("scheduling arguments")
    sched.add_argument("--batch-size", type=int, help="Paths compared concurrently.")
    sched.add_argument("--delay", type=float, help="Seconds to wait between batches.")
    sched.add_argument(
        "--sequential",
        action="store_true",
        default=None,
        help="One request at a time, with a delay after each.",
    )
    out_group = cmp_parser.add_argument_group("output arguments")
    out_group.add_argument("--out", metavar="DIR", help="Directory for the report files.")
    out_group.add_argument("--no-report", action="store_true", help="Do not write report files.")
    out_group.add_argument(
        "--mapping", metavar="FILEPATH", help="JSON path -> canonical path mapping for grouping."
    )
    out_group.add_argument(
        "--show-groups", action="store_true", help="Print locale variants grouped by page."
    )
    out_group.add_argument(
        "--fail-on-diff",
        action="store_true",
        help=f"Exit with {EXIT_PAGES_DIFFER} when any page is DIFF or ERROR.",
    )

    # --- warmup ---
    warm_parser = subparsers.add_parser(
        "warmup", help="Request every page once so the host's caches are populated."
    )
    warm_parser.add_argument("--urls", metavar="FILEPATH", default="urls-main.txt")
    warm_parser.add_argument("--host", metavar="URL", help="Base URL (defaults to the dev URL).")
    warm_parser.add_argument("--concurrency", type=int, default=5)

    # --- sitemap ---
    sm_parser = subparsers.add_parser(
        "sitemap", help="Build the canonical path mapping from a sitemap's hreflang links."
    )
    sm_parser.add_argument("source", help="Sitemap URL or local XML file.")
    sm_parser.add_argument(
        "--out", metavar="FILEPATH", default="pages-mapping.json", help="Where to write the mapping."
    )

    # --- sitemap-paths ---
    sp_parser = subparsers.add_parser(
        "sitemap-paths",
        help="Build a URL list from a sitemap: one page per template, no localized copies.",
    )
    sp_parser.add_argument("source", help="Sitemap (or sitemap index) URL or local XML file.")
    sp_parser.add_argument(
        "--out", metavar="FILEPATH", default="urls-main.txt", help="Where to write the URL list."
    )

    # --- sitemap-compare ---
    sc_parser = subparsers.add_parser(
        "sitemap-compare",
        help="Compare the legacy sitemap with the new one: missing pages and languages.",
    )
    sc_parser.add_argument("legacy", help="Legacy sitemap URL or local XML file.")
    sc_parser.add_argument("new", help="New sitemap (or sitemap index) URL or local XML file.")
    sc_parser.add_argument("--out", metavar="FILEPATH", help="Write the comparison as JSON.")
    sc_parser.add_argument(
        "--fail-on-missing",
        action="store_true",
        help=f"Exit with {EXIT_PAGES_DIFFER} when pages, languages or x-default are missing.",
    )

    # --- diff-lists ---
    dl_parser = subparsers.add_parser("diff-lists", help="Compare two URL list files.")
    dl_parser.add_argument("first")
    dl_parser.add_argument("second")

    # --- cache ---
    cache_parser = subparsers.add_parser("cache", help="Manage the on-disk page cache.")
    cache_parser.add_argument("--dir", dest="cache_dir", metavar="PATH", default=None)
    cache_parser.add_argument("--os-default", dest="cache_os_default", action="store_true")
    cache_sub = cache_parser.add_subparsers(dest="cache_cmd", required=True)
    cache_sub.add_parser("clear", help="Wipe the entire cache directory.")
    cache_sub.add_parser("stats", help="Show total items and size on disk.")
    cache_inspect = cache_sub.add_parser("inspect", help="Dump the cached record for a URL.")
    cache_inspect.add_argument("url")
    return parser


def _run_cache_command(args: argparse.Namespace, config: dict[str, Any], stdout: IO[str]) -> int:
    cfg = CacheConfig.from_config(config.get("cache", {}))
    cfg.enabled = True
    if args.cache_os_default:
        cfg.directory = "os-default"
    if args.cache_dir:
        cfg.directory = args.cache_dir
    fc = FileCache(cfg)
    try:
        if args.cache_cmd == "clear":
            fc.clear_all()
            print(f"Cache cleared at: {fc.directory}", file=stdout)
            return EXIT_OK
        if args.cache_cmd == "stats":
            st = fc.stats()
            out = dict(st, human_bytes=_human_bytes(int(st["bytes"])))
            print(json.dumps(out, indent=2), file=stdout)
            return EXIT_OK
        data = fc.get(args.url)
        if data is None:
            print("Cache miss", file=stdout)
            return EXIT_USAGE
        print(json.dumps(data, indent=2), file=stdout)
        return EXIT_OK
    finally:
        fc.close()


async def _run_compare(args: argparse.Namespace, config: dict[str, Any], stdout: IO[str]) -> int:
    try:
        paths = load_path_list(args.urls)
    except FileNotFoundError:
        print(f"File not found: {args.urls}", file=stdout)
        return EXIT_FAILED
    try:
        checks = _checks_from_args(args, config)
    except ValueError as e:
        print(str(e), file=stdout)
        return EXIT_USAGE

    prod = args.prod or config["prod_url"]
    dev = args.dev or config["dev_url"]
    mapping = load_mapping(args.mapping)
    out_dir = None if args.no_report else Path(args.out or config.get("output_dir", "result"))

    render_header(prod, dev, checks.enabled(), len(paths), file=stdout)
    handle = RunHandle()
    _install_stop_handler(handle)
    try:
        outcome = await compare_sites(
            paths,
            prod_url=prod,
            dev_url=dev,
            checks=checks,
            handle=handle,
            observer=ProgressPrinter(stdout, show_fetching=args.verbose),
            batch_size=args.batch_size,
            batch_delay=args.delay,
            sequential=args.sequential,
            output_dir=out_dir,
            canonical_mapping=mapping,
            config=config,
            raise_on_failure=True,
        )
    except ComparisonFailed as e:
        print(f"Comparison failed: {e}", file=stdout)
        return EXIT_FAILED

    if outcome.state == "stopped":
        print(f"Stopped after {len(outcome.records)} pages; no report written.", file=stdout)
        return EXIT_STOPPED

    if outcome.summary is None:
        print("Comparison finished without a summary.", file=stdout)
        return EXIT_FAILED
    render_problem_pages(outcome.records, file=stdout)
    if args.show_groups:
        groups = group_by_canonical(outcome.records, mapping, config["locales"])
        render_groups(groups, file=stdout)
        render_migration_progress(*migration_progress(groups), file=stdout)
    render_summary(outcome.summary, file=stdout)
    if out_dir is not None:
        render_report_paths(
            {
                "csv": out_dir / CSV_NAME,
                "html": out_dir / HTML_NAME,
                "summary": out_dir / SUMMARY_NAME,
                "progress": out_dir / PROGRESS_NAME,
            },
            file=stdout,
        )
    if args.fail_on_diff and (outcome.summary.diff or outcome.summary.error):
        return EXIT_PAGES_DIFFER
    return EXIT_OK


async def _load_sitemap_documents(
    source: str, config: dict[str, Any], stdout: IO[str]
) -> Optional[List[str]]:
    """Sitemap documents from a URL (indexes expanded) or a local file; None on failure."""
    if source.startswith(("http://", "https://")):
        async with httpx.AsyncClient(
            timeout=config.get("status_timeout", 15.0),
            headers={"User-Agent": config["user_agent"]},
        ) as client:
            try:
                return await fetch_sitemap_documents(client, source)
            except httpx.HTTPError as e:
                print(f"Could not fetch sitemap {source}: {e}", file=stdout)
                return None
    p = Path(source)
    if not p.exists():
        print(f"File not found: {source}", file=stdout)
        return None
    return [p.read_text(encoding="utf-8")]


async def _run_sitemap(args: argparse.Namespace, config: dict[str, Any], stdout: IO[str]) -> int:
    documents = await _load_sitemap_documents(args.source, config, stdout)
    if documents is None:
        return EXIT_FAILED
    mapping: Dict[str, str] = {}
    for xml in documents:
        mapping.update(parse_sitemap_mapping(xml))

    save_mapping(mapping, args.out)
    canonicals = len(set(mapping.values()))
    print(f"{len(mapping)} paths mapped onto {canonicals} canonical pages: {args.out}", file=stdout)
    return EXIT_OK


async def _run_sitemap_paths(
    args: argparse.Namespace, config: dict[str, Any], stdout: IO[str]
) -> int:
    documents = await _load_sitemap_documents(args.source, config, stdout)
    if documents is None:
        return EXIT_FAILED
    result = paths_from_sitemap(
        documents,
        locales=config["locales"],
        template_patterns=config["template_patterns"],
        localization_example=config.get("localization_example") or None,
    )
    write_path_list(result.paths, Path(args.out))
    render_sitemap_paths(result, args.out, file=stdout)
    return EXIT_OK


async def _run_sitemap_compare(
    args: argparse.Namespace, config: dict[str, Any], stdout: IO[str]
) -> int:
    languages = config["sitemap_languages"]
    legacy_docs = await _load_sitemap_documents(args.legacy, config, stdout)
    if legacy_docs is None:
        return EXIT_FAILED
    new_docs = await _load_sitemap_documents(args.new, config, stdout)
    if new_docs is None:
        return EXIT_FAILED

    result = compare_sitemaps(
        parse_sitemap_slugs(legacy_docs, languages),
        parse_sitemap_slugs(new_docs, languages),
        languages,
    )
    render_sitemap_comparison(result, file=stdout)
    if args.out:
        write_sitemap_comparison(result, Path(args.out))
        print(f"Comparison saved: {args.out}", file=stdout)
    if args.fail_on_missing and result.has_issues:
        return EXIT_PAGES_DIFFER
    return EXIT_OK


async def async_main(argv: Sequence[str] | None = None, stdout: IO[str] | None = None) -> int:
    """Async entry point for the command-line interface."""
    stdout = stdout or sys.stdout
    args = _build_parser().parse_args(argv)
    _configure_logging(args.verbose)
    config = load_config()

    if args.command == "cache":
        return _run_cache_command(args, config, stdout)

    if args.command == "diff-lists":
        try:
            first, second = load_path_list(args.first), load_path_list(args.second)
        except FileNotFoundError as e:
            print(f"File not found: {e}", file=stdout)
            return EXIT_FAILED
        print(f"{args.first}: {len(first)} URLs", file=stdout)
        print(f"{args.second}: {len(second)} URLs\n", file=stdout)
        render_path_diff(diff_path_lists(first, second), args.first, args.second, file=stdout)
        return EXIT_OK

    if args.command == "sitemap":
        return await _run_sitemap(args, config, stdout)

    if args.command == "sitemap-paths":
        return await _run_sitemap_paths(args, config, stdout)

    if args.command == "sitemap-compare":
        return await _run_sitemap_compare(args, config, stdout)

    if args.command == "warmup":
        try:
            paths = load_path_list(args.urls)
        except FileNotFoundError:
            print(f"File not found: {args.urls}", file=stdout)
            return EXIT_FAILED
        statuses = await warm_up(
            paths, args.host or config["dev_url"], concurrency=args.concurrency, config=config
        )
        render_warmup(statuses, file=stdout)
        return EXIT_OK

    # args.command == "compare"
    return await _run_compare(args, config, stdout)


def main(argv: Sequence[str] | None = None) -> int:
    """Synchronous wrapper for the CLI entry point."""
    return asyncio.run(async_main(argv))


if __name__ == "__main__":
    sys.exit(main())
