# seo_parity/api.py
# The primary, programmer-facing API for the library.

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import httpx

from seo_parity.config import load_config
from seo_parity.fetcher import PageFetcher, join_url
from seo_parity.models import CheckSet, ComparisonRecord, RunOutcome, RunSummary
from seo_parity.orchestrator import (
    ComparisonFailed,
    Finalizer,
    Observer,
    Orchestrator,
    RunHandle,
)
from seo_parity.paths import normalize_rewrites
from seo_parity.report import group_by_canonical
from seo_parity.writers import write_reports

log = logging.getLogger(__name__)


def apply_overrides(config: Dict[str, Any], **overrides: Any) -> Dict[str, Any]:
    """Set every override that is not None, logging each one."""
    for key, value in overrides.items():
        if value is None:
            continue
        config[key] = value
        log.info("Applied override - %s set to: %s", key, value)
    return config


async def compare_sites(
    paths: Sequence[str],
    *,
    prod_url: str | None = None,
    dev_url: str | None = None,
    checks: CheckSet | None = None,
    handle: RunHandle | None = None,
    observer: Optional[Observer] = None,
    batch_size: int | None = None,
    batch_delay: float | None = None,
    sequential: bool | None = None,
    output_dir: str | Path | None = None,
    canonical_mapping: Mapping[str, str] | None = None,
    config: Dict[str, Any] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    raise_on_failure: bool = False,
) -> RunOutcome:
    """
    Compare every page path on the production and development hosts.

    Args:
        paths: Root-relative page paths, already filtered of blanks/comments.
        prod_url: Production base URL (defaults to config).
        dev_url: Development base URL (defaults to config).
        checks: Which fields to compare (defaults to config).
        handle: RunHandle to use; pass one in to be able to stop the run.
        observer: Called with every ProgressEvent.
        batch_size: Override the number of paths compared concurrently.
        batch_delay: Override the pause between batches, in seconds.
        sequential: Process one request at a time instead of in batches.
        output_dir: When set, CSV/HTML/JSON reports are written there on completion.
        canonical_mapping: Path -> canonical path, used to group the HTML report.
        config: A preloaded configuration; load_config() is used otherwise.
        transport: Custom httpx transport (tests).
        raise_on_failure: Raise ComparisonFailed instead of returning a failed outcome.

    Returns:
        RunOutcome with state "completed", "stopped" or "failed".
    """
    config = dict(config) if config is not None else load_config()
    apply_overrides(
        config,
        prod_url=prod_url,
        dev_url=dev_url,
        batch_size=batch_size,
        batch_delay=batch_delay,
        sequential=sequential,
    )
    if checks is None:
        checks = CheckSet.from_mapping(config.get("checks", {}))
    handle = handle or RunHandle()
    prod_host, dev_host = config["prod_url"], config["dev_url"]

    finalize: Optional[Finalizer] = None
    if output_dir is not None:
        out = Path(output_dir)
        locales = config.get("locales") or ()

        def _write_reports(records: List[ComparisonRecord], summary: RunSummary) -> None:
            groups = group_by_canonical(records, canonical_mapping, locales)
            write_reports(records, summary, checks, prod_host, dev_host, out, groups)

        finalize = _write_reports

    async with PageFetcher(config, transport=transport) as fetcher:
        orchestrator = Orchestrator(
            fetcher,
            observer,
            batch_size=int(config["batch_size"]),
            batch_delay=float(config["batch_delay"]),
            sequential=bool(config["sequential"]),
            request_delay=float(config["request_delay"]),
            dev_rewrites=normalize_rewrites(config.get("dev_path_rewrites", [])),
            legacy_cdn_hosts=config["legacy_cdn_hosts"],
            new_cdn_hosts=config["new_cdn_hosts"],
            cache_prod=bool(config.get("cache", {}).get("enabled", False)),
            finalize=finalize,
        )
        outcome = await orchestrator.run(handle, paths, prod_host, dev_host, checks)

    if outcome.state == "failed" and raise_on_failure:
        raise ComparisonFailed(outcome.error or "comparison failed")
    return outcome


async def warm_up(
    paths: Sequence[str],
    host: str,
    *,
    concurrency: int = 5,
    config: Dict[str, Any] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Dict[str, int]:
    """
    Request every page once so the host's caches are hot before a comparison.
    Returns {path: terminal status}, 0 for unreachable pages.
    """
    config = dict(config) if config is not None else load_config()
    sem = asyncio.Semaphore(max(1, concurrency))
    statuses: Dict[str, int] = {}

    async with PageFetcher(config, transport=transport) as fetcher:

        async def one(path: str) -> None:
            async with sem:
                statuses[path] = await fetcher.fetch_status(join_url(host, path))

        await asyncio.gather(*(one(p) for p in paths))

    warm = sum(1 for s in statuses.values() if s == 200)
    log.info("Warm-up of %s: %d/%d pages answered 200", host, warm, len(paths))
    return {p: statuses[p] for p in paths}
