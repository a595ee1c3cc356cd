# seo_parity/report.py
"""
Aggregation of comparison records: status counts and canonical-page grouping.

Grouping collapses locale variants ("/de/pricing", "/ar/pricing") onto their
default-language page. An externally supplied mapping (usually built from
sitemap hreflang alternates, see sitemap.py) wins; otherwise a known
two-letter locale prefix is stripped from the path.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from seo_parity.config import DEFAULT_LOCALES
from seo_parity.models import CanonicalGroup, ComparisonRecord, MigrationItem, RunSummary

log = logging.getLogger(__name__)


def summarize(records: Iterable[ComparisonRecord]) -> RunSummary:
    counts = {"OK": 0, "DIFF": 0, "ERROR": 0}
    total = 0
    for r in records:
        counts[r.status] += 1
        total += 1
    return RunSummary(total=total, ok=counts["OK"], diff=counts["DIFF"], error=counts["ERROR"])


def locale_of(path: str, locales: Sequence[str] = DEFAULT_LOCALES) -> Optional[str]:
    """The locale prefix segment of `path` ("/ar/x" -> "ar", "/ar" -> "ar"), else None."""
    first = path.lstrip("/").split("/", 1)[0].lower()
    if first and first in locales:
        return first
    return None


def strip_locale(path: str, locales: Sequence[str] = DEFAULT_LOCALES) -> str:
    loc = locale_of(path, locales)
    if loc is None:
        return path
    rest = path.lstrip("/")[len(loc):]
    return rest if rest.startswith("/") else "/" + rest


def canonical_path(
    path: str,
    mapping: Optional[Mapping[str, str]] = None,
    locales: Sequence[str] = DEFAULT_LOCALES,
) -> str:
    """Mapping lookup first, then the locale-prefix heuristic, then the path itself."""
    if mapping:
        mapped = mapping.get(path)
        if mapped:
            return mapped
    return strip_locale(path, locales)


def group_by_canonical(
    records: Iterable[ComparisonRecord],
    mapping: Optional[Mapping[str, str]] = None,
    locales: Sequence[str] = DEFAULT_LOCALES,
) -> List[CanonicalGroup]:
    """
    Groups in order of first appearance. Within a group the record with no
    locale prefix comes first, then the rest ordered by locale code.
    """
    if not mapping:
        log.debug("No canonical mapping supplied; grouping by locale prefix only.")
    groups: Dict[str, List[ComparisonRecord]] = {}
    for r in records:
        groups.setdefault(canonical_path(r.path, mapping, locales), []).append(r)

    out: List[CanonicalGroup] = []
    for canonical, members in groups.items():
        keyed = sorted(
            ((locale_of(r.path, locales), r) for r in members),
            key=lambda item: (item[0] is not None, item[0] or "", item[1].path),
        )
        out.append(
            CanonicalGroup(
                canonical=canonical,
                records=[r for _, r in keyed],
                locales=[loc for loc, _ in keyed],
            )
        )
    return out


def migration_progress(
    groups: Iterable[CanonicalGroup],
) -> Tuple[List[MigrationItem], List[MigrationItem]]:
    """
    Split canonical pages that still have ERROR variants into two lists:

    - fully ERROR: every variant failed, the page needs a full migration.
    - partially ERROR: some variants failed, the page needs translations.

    Groups without any ERROR are left out. Both lists keep group order.
    """
    fully: List[MigrationItem] = []
    partially: List[MigrationItem] = []
    for g in groups:
        counts = {"OK": 0, "DIFF": 0, "ERROR": 0}
        for r in g.records:
            counts[r.status] += 1
        if not counts["ERROR"]:
            continue
        failing = [(loc, r.path) for loc, r in zip(g.locales, g.records) if r.status == "ERROR"]
        item = MigrationItem(
            canonical=g.canonical,
            total=len(g.records),
            ok=counts["OK"],
            diff=counts["DIFF"],
            error=counts["ERROR"],
            error_locales=tuple(loc for loc, _ in failing),
            error_paths=tuple(p for _, p in failing),
        )
        (fully if item.fully_error else partially).append(item)
    log.info("Migration progress: %d fully ERROR, %d partially ERROR", len(fully), len(partially))
    return fully, partially
