# Entrypoint for the seo_parity package.
# This file makes the public API available to programmers.

from __future__ import annotations

from seo_parity.__about__ import __version__
from seo_parity.api import compare_sites, warm_up
from seo_parity.compare import compare_pages, is_expected_og_image_migration
from seo_parity.models import (
    CanonicalGroup,
    CheckSet,
    ComparisonRecord,
    PageFetchResult,
    ProgressEvent,
    RunOutcome,
    RunSummary,
)
from seo_parity.orchestrator import ComparisonFailed, Orchestrator, RunHandle
from seo_parity.report import group_by_canonical, summarize

__all__ = [
    "compare_sites",
    "warm_up",
    "compare_pages",
    "is_expected_og_image_migration",
    "CanonicalGroup",
    "CheckSet",
    "ComparisonRecord",
    "PageFetchResult",
    "ProgressEvent",
    "RunOutcome",
    "RunSummary",
    "ComparisonFailed",
    "Orchestrator",
    "RunHandle",
    "group_by_canonical",
    "summarize",
    "__version__",
]
