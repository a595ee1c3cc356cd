# seo_parity/ui.py
# Presentation-only utilities for CLI output.
from __future__ import annotations

from typing import IO, Iterable, Mapping, Sequence

from seo_parity.models import (
    CanonicalGroup,
    ComparisonRecord,
    MigrationItem,
    ProgressEvent,
    RunSummary,
    SitemapComparison,
    SitemapPathList,
)
from seo_parity.paths import PathListDiff

_EVENT_PREFIX = {
    "start": "▶",
    "complete": "✔",
    "stopped": "■",
    "error": "✖",
}


def _writeln(text: str = "", *, file: IO[str]) -> None:
    file.write(text + "\n")


class ProgressPrinter:
    """Observer that prints progress events as terminal log lines."""

    def __init__(self, file: IO[str], *, show_fetching: bool = False) -> None:
        self.file = file
        self.show_fetching = show_fetching

    def __call__(self, event: ProgressEvent) -> None:
        if event.type == "fetching" and not self.show_fetching:
            return
        prefix = _EVENT_PREFIX.get(event.type, " ")
        _writeln(f"{prefix} {event.message}", file=self.file)


def render_header(prod: str, dev: str, checks: Iterable[str], total: int, *, file: IO[str]) -> None:
    _writeln(f"Prod: {prod}", file=file)
    _writeln(f"Dev:  {dev}", file=file)
    _writeln(f"Checking: {', '.join(checks) or 'status only'}", file=file)
    _writeln(f"{total} URLs to check\n", file=file)


def render_summary(summary: RunSummary, *, file: IO[str]) -> None:
    _writeln("\n" + "=" * 50, file=file)
    _writeln("SUMMARY", file=file)
    _writeln("=" * 50, file=file)
    _writeln(f"Total URLs checked: {summary.total}", file=file)
    _writeln(f"OK:          {summary.ok}", file=file)
    _writeln(f"Differences: {summary.diff}", file=file)
    _writeln(f"Errors:      {summary.error}", file=file)
    _writeln("=" * 50, file=file)


def render_problem_pages(records: Iterable[ComparisonRecord], *, file: IO[str]) -> None:
    problems = [r for r in records if r.status != "OK"]
    if not problems:
        return
    _writeln("\n--- Pages needing attention ---", file=file)
    for r in problems:
        _writeln(f"- [{r.status:<5}] {r.path}: {r.notes_text}", file=file)


def render_groups(groups: Iterable[CanonicalGroup], *, file: IO[str]) -> None:
    for g in groups:
        if len(g.records) < 2:
            continue
        _writeln(f"{g.canonical}", file=file)
        for loc, r in zip(g.locales, g.records):
            _writeln(f"├─ [{loc or 'default':<7}] {r.path}  {r.status}", file=file)


def render_migration_progress(
    fully: Sequence[MigrationItem], partially: Sequence[MigrationItem], *, file: IO[str]
) -> None:
    _writeln(f"\nFully ERROR (need full migration): {len(fully)}", file=file)
    for item in fully:
        _writeln(f"   {item.canonical}  ({item.total} variants)", file=file)
    _writeln(f"Partially ERROR (need translations): {len(partially)}", file=file)
    for item in partially:
        missing = ", ".join(loc or "default" for loc in item.error_locales)
        _writeln(f"   {item.canonical}  {item.error}/{item.total} ERROR, missing: {missing}", file=file)


def render_report_paths(paths: Mapping[str, object], *, file: IO[str]) -> None:
    _writeln("\nReports:", file=file)
    for kind, p in paths.items():
        _writeln(f"   - {kind}: {p}", file=file)


def render_path_diff(diff: PathListDiff, first: str, second: str, *, file: IO[str]) -> None:
    _writeln(f"Common URLs: {len(diff.in_both)}\n", file=file)
    if diff.only_in_first:
        _writeln(f"Only in {first} ({len(diff.only_in_first)}):", file=file)
        for u in diff.only_in_first:
            _writeln(f"   {u}", file=file)
        _writeln(file=file)
    if diff.only_in_second:
        _writeln(f"Only in {second} ({len(diff.only_in_second)}):", file=file)
        for u in diff.only_in_second:
            _writeln(f"   {u}", file=file)
        _writeln(file=file)
    if diff.identical:
        _writeln("Files are identical!", file=file)


def render_warmup(statuses: Mapping[str, int], *, file: IO[str]) -> None:
    for path, status in statuses.items():
        mark = "ok " if status == 200 else "ERR"
        _writeln(f"[{mark}] {status:>3} {path}", file=file)


def render_sitemap_comparison(result: SitemapComparison, *, file: IO[str]) -> None:
    _writeln(f"Legacy slugs:  {result.legacy_slugs}", file=file)
    _writeln(f"New slugs:     {result.new_slugs}", file=file)
    _writeln(f"Matching:      {result.matching}", file=file)
    _writeln(f"Perfect match: {result.perfect}\n", file=file)
    if result.missing_in_new:
        _writeln(f"Missing in new site ({len(result.missing_in_new)}):", file=file)
        for item in result.missing_in_new:
            _writeln(f"   {item.slug}  ({len(item.languages)} langs)", file=file)
    if result.missing_in_legacy:
        _writeln(f"New pages, not in legacy site ({len(result.missing_in_legacy)}):", file=file)
        for item in result.missing_in_legacy:
            _writeln(f"   {item.slug}  ({len(item.languages)} langs)", file=file)
    if result.missing_languages:
        _writeln(f"Missing languages ({len(result.missing_languages)}):", file=file)
        for item in result.missing_languages:
            _writeln(f"   {item.slug}  missing: {', '.join(item.languages)}", file=file)
    if result.missing_x_default:
        _writeln(f"Missing x-default ({len(result.missing_x_default)}):", file=file)
        for slug in result.missing_x_default:
            _writeln(f"   {slug}", file=file)
    if not result.has_issues:
        _writeln("All checks passed: the new sitemap covers the legacy one.", file=file)


def render_sitemap_paths(result: SitemapPathList, out: object, *, file: IO[str]) -> None:
    _writeln(f"Total URLs:                     {result.total}", file=file)
    _writeln(f"Localized (excluded):           {result.localized}", file=file)
    _writeln(f"Template duplicates (excluded): {result.duplicate_templates}", file=file)
    for template, example in result.template_examples.items():
        _writeln(f"   {template} → {example}", file=file)
    _writeln(f"{len(result.paths)} paths saved: {out}", file=file)
