# Defines the data structures passed between the fetcher, comparator,
# orchestrator and report layers.

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Dict, Iterable, List, Literal, Optional, Set, Tuple

# Type definitions for clarity.
FieldName = Literal["title", "description", "h1", "og_image"]
PageStatus = Literal["OK", "DIFF", "ERROR"]
RunState = Literal["idle", "running", "completed", "stopped", "failed"]
EventType = Literal[
    "start",
    "fetching",
    "compared",
    "batch",
    "generating",
    "complete",
    "stopped",
    "error",
]

# Fixed comparison order; also the order of notes and report columns.
FIELD_ORDER: Tuple[FieldName, ...] = ("title", "description", "h1", "og_image")

FIELD_LABELS: Dict[FieldName, str] = {
    "title": "Title",
    "description": "Description",
    "h1": "H1",
    "og_image": "OG Image",
}

ALL_GOOD = "All good"


@dataclass(frozen=True)
class CheckSet:
    """Which page fields are extracted and compared during a run."""

    title: bool = True
    description: bool = True
    h1: bool = True
    og_image: bool = True

    def enabled(self) -> List[str]:
        return [name for name in FIELD_ORDER if getattr(self, name)]

    @classmethod
    def from_names(cls, names: Iterable[str]) -> "CheckSet":
        """Build a CheckSet with only the named fields enabled."""
        wanted = set()
        for raw in names:
            name = raw.strip().lower().replace("-", "_")
            if name == "ogimage":
                name = "og_image"
            if name not in FIELD_ORDER:
                raise ValueError(f"Unknown check: {raw!r}")
            wanted.add(name)
        return cls(**{name: name in wanted for name in FIELD_ORDER})

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> "CheckSet":
        """Build from a config table; missing keys keep their default."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: bool(v) for k, v in data.items() if k in known})


@dataclass(frozen=True)
class RedirectInfo:
    """The redirect chain a fetch followed before its terminal response."""

    original_status: int
    final_path: str
    final_url: str = ""
    hops: int = 1

    def describe(self) -> str:
        return f"{self.original_status} → {self.final_path}"


@dataclass(frozen=True)
class PageFetchResult:
    """Outcome of one GET against one host for one logical page path."""

    path: str
    http_status: int
    fields: Dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None
    redirect: Optional[RedirectInfo] = None
    url: str = ""

    @property
    def ok(self) -> bool:
        return self.http_status == 200

    def value(self, name: str) -> str:
        return self.fields.get(name, "")


@dataclass(frozen=True)
class FieldComparison:
    name: FieldName
    prod: str
    dev: str
    match: bool

    @property
    def label(self) -> str:
        return FIELD_LABELS[self.name]


@dataclass(frozen=True)
class ComparisonRecord:
    """
    The per-page unit of a report.

    status is ERROR iff either side did not answer 200, DIFF iff both did and
    diff_count > 0, OK otherwise.
    """

    path: str
    status: PageStatus
    diff_count: int
    notes: Tuple[str, ...]
    fields: Tuple[FieldComparison, ...] = ()
    og_image_migration: bool = False
    prod_status: int = 0
    dev_status: int = 0
    prod_error: str = ""
    dev_error: str = ""
    prod_redirect: Optional[str] = None
    dev_redirect: Optional[str] = None

    def field(self, name: str) -> Optional[FieldComparison]:
        for fc in self.fields:
            if fc.name == name:
                return fc
        return None

    @property
    def notes_text(self) -> str:
        return ", ".join(self.notes)


@dataclass(frozen=True)
class RunSummary:
    total: int = 0
    ok: int = 0
    diff: int = 0
    error: int = 0


@dataclass
class CanonicalGroup:
    """Locale variants of one page, default-language record first."""

    canonical: str
    records: List[ComparisonRecord] = field(default_factory=list)
    locales: List[Optional[str]] = field(default_factory=list)


@dataclass(frozen=True)
class MigrationItem:
    """One canonical page with ERROR variants, as listed in the progress report."""

    canonical: str
    total: int
    ok: int = 0
    diff: int = 0
    error: int = 0
    # locale code per failing variant; None is the default-language page
    error_locales: Tuple[Optional[str], ...] = ()
    error_paths: Tuple[str, ...] = ()

    @property
    def fully_error(self) -> bool:
        return self.error == self.total


@dataclass
class SitemapSlug:
    """Everything one sitemap lists for a page, keyed by its canonical slug."""

    slug: str
    languages: Set[str] = field(default_factory=set)
    hreflangs: Dict[str, str] = field(default_factory=dict)
    has_x_default: bool = False

    def has_language(self, lang: str) -> bool:
        return lang in self.languages or lang in self.hreflangs


@dataclass(frozen=True)
class SlugLanguages:
    slug: str
    languages: Tuple[str, ...] = ()


@dataclass
class SitemapComparison:
    """Differences between the legacy and the new site's sitemaps."""

    legacy_slugs: int = 0
    new_slugs: int = 0
    matching: int = 0
    perfect: int = 0
    missing_in_new: List[SlugLanguages] = field(default_factory=list)
    missing_in_legacy: List[SlugLanguages] = field(default_factory=list)
    # languages here are the missing ones
    missing_languages: List[SlugLanguages] = field(default_factory=list)
    missing_x_default: List[str] = field(default_factory=list)

    @property
    def has_issues(self) -> bool:
        return bool(self.missing_in_new or self.missing_languages or self.missing_x_default)


@dataclass
class SitemapPathList:
    """Page paths picked from a sitemap, with the counts of what was skipped."""

    paths: List[str] = field(default_factory=list)
    total: int = 0
    localized: int = 0
    duplicate_templates: int = 0
    template_examples: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ProgressEvent:
    """A discrete notification emitted to the run's observer."""

    type: EventType
    message: str
    current: Optional[int] = None
    total: Optional[int] = None
    path: Optional[str] = None
    status: Optional[PageStatus] = None
    summary: Optional[RunSummary] = None


@dataclass
class RunOutcome:
    """What a finished run hands back to its caller."""

    state: RunState
    records: List[ComparisonRecord] = field(default_factory=list)
    summary: Optional[RunSummary] = None
    error: Optional[str] = None
