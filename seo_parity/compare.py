# seo_parity/compare.py
"""
Pairwise comparison of a production and a development fetch of one page.

Everything here is pure: the same inputs always give the same record.
"""
from __future__ import annotations

import fnmatch
from typing import List, Sequence, Tuple
from urllib.parse import urlparse

from seo_parity.config import DEFAULT_LEGACY_CDN_HOSTS, DEFAULT_NEW_CDN_HOSTS
from seo_parity.models import (
    ALL_GOOD,
    FIELD_LABELS,
    CheckSet,
    ComparisonRecord,
    FieldComparison,
    PageFetchResult,
    PageStatus,
)

MIGRATION_NOTE = "OG Image (CDN migration: legacy CDN → new CDN)"


def _host_and_hostpath(u: str) -> Tuple[str, str]:
    """
    ("cdn.sanity.io", "cdn.sanity.io/images/x.png") for an absolute or
    scheme-relative URL, lowercased. Anything unparseable yields the raw
    lowercased string for both.
    """
    raw = u.strip().lower()
    try:
        p = urlparse(raw if "//" in raw else "//" + raw)
    except ValueError:
        return raw, raw
    host = p.hostname or ""
    if not host:
        return raw, raw
    path = (p.path or "").lstrip("/")
    return host, f"{host}/{path}" if path else host


def url_matches_hosts(u: str, patterns: Sequence[str]) -> bool:
    """fnmatch `patterns` (case-insensitive) against the URL's host and host+path."""
    if not u or not patterns:
        return False
    host, hostpath = _host_and_hostpath(u)
    for pat in patterns:
        p = pat.lower().strip()
        if not p:
            continue
        if fnmatch.fnmatchcase(host, p) or fnmatch.fnmatchcase(hostpath, p):
            return True
        # '*.example.com' also covers deeper subdomains
        if p.startswith("*.") and host.endswith(p[1:]):
            return True
    return False


def is_expected_og_image_migration(
    prod_url: str,
    dev_url: str,
    legacy_cdn_hosts: Sequence[str] = DEFAULT_LEGACY_CDN_HOSTS,
    new_cdn_hosts: Sequence[str] = DEFAULT_NEW_CDN_HOSTS,
) -> bool:
    """True when prod serves the image from the legacy CDN and dev from the new one."""
    if not prod_url or not dev_url:
        return False
    return url_matches_hosts(prod_url, legacy_cdn_hosts) and url_matches_hosts(
        dev_url, new_cdn_hosts
    )


def describe_side(label: str, result: PageFetchResult) -> str:
    """Note for a side that did not answer 200."""
    if result.redirect is not None:
        text = f"{label}: {result.redirect.describe()} → {result.http_status}"
    else:
        text = f"{label}: {result.http_status}"
    if result.error:
        text += f" ({result.error})"
    return text


def _field_comparisons(
    prod: PageFetchResult, dev: PageFetchResult, checks: CheckSet
) -> List[FieldComparison]:
    out = []
    for name in checks.enabled():
        p, d = prod.value(name), dev.value(name)
        out.append(FieldComparison(name=name, prod=p, dev=d, match=p == d))
    return out


def compare_pages(
    prod: PageFetchResult,
    dev: PageFetchResult,
    checks: CheckSet,
    *,
    legacy_cdn_hosts: Sequence[str] = DEFAULT_LEGACY_CDN_HOSTS,
    new_cdn_hosts: Sequence[str] = DEFAULT_NEW_CDN_HOSTS,
) -> ComparisonRecord:
    """
    Classify one page as OK / DIFF / ERROR.

    1. Either side not 200 -> ERROR, one note per failing side, fields not
       evaluated, diff_count 0.
    2. Each enabled field is compared by exact string equality; a mismatch
       adds its label to the notes and counts as a difference.
    3. An og:image mismatch explained by the legacy -> new CDN move is noted
       and flagged but not counted.
    4. Redirects that still ended in 200 are noted for information.
    """
    comparisons = _field_comparisons(prod, dev, checks)
    notes: List[str] = []
    diff_count = 0
    migration = False
    status: PageStatus

    if not (prod.ok and dev.ok):
        status = "ERROR"
        if not prod.ok:
            notes.append(describe_side("Prod", prod))
        if not dev.ok:
            notes.append(describe_side("Dev", dev))
    else:
        for fc in comparisons:
            if fc.match:
                continue
            if fc.name == "og_image" and is_expected_og_image_migration(
                fc.prod, fc.dev, legacy_cdn_hosts, new_cdn_hosts
            ):
                migration = True
                notes.append(MIGRATION_NOTE)
                continue
            notes.append(FIELD_LABELS[fc.name])
            diff_count += 1

        if prod.redirect is not None:
            notes.append(f"Prod redirect: {prod.redirect.describe()}")
        if dev.redirect is not None:
            notes.append(f"Dev redirect: {dev.redirect.describe()}")

        status = "DIFF" if diff_count > 0 else "OK"

    return ComparisonRecord(
        path=prod.path,
        status=status,
        diff_count=diff_count,
        notes=tuple(notes) if notes else (ALL_GOOD,),
        fields=tuple(comparisons),
        og_image_migration=migration,
        prod_status=prod.http_status,
        dev_status=dev.http_status,
        prod_error=prod.error or "",
        dev_error=dev.error or "",
        prod_redirect=prod.redirect.describe() if prod.redirect else None,
        dev_redirect=dev.redirect.describe() if dev.redirect else None,
    )
