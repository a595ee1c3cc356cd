# seo_parity/sitemap.py
"""
Sitemap tooling around a migration.

- Canonical path mapping: each <url> block listing
  <xhtml:link rel="alternate" hreflang=".." href=".."> entries is one
  translated page; every alternate maps to the English ("en", else
  "x-default") path. Blocks without alternates map their <loc> to itself.
  The result feeds report.group_by_canonical().
- Sitemap comparison: pages of the legacy and the new sitemap are keyed by
  canonical slug and checked for missing pages, languages and x-default.
- Path lists: a sitemap is reduced to the pages worth comparing, dropping
  localized copies and all but one example page per template.
"""
from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union
from urllib.parse import urlparse, urlunparse

import httpx
from bs4 import BeautifulSoup

from seo_parity.config import DEFAULT_LOCALES, DEFAULT_SITEMAP_LANGUAGES, DEFAULT_TEMPLATE_PATTERNS
from seo_parity.models import SitemapComparison, SitemapPathList, SitemapSlug, SlugLanguages

log = logging.getLogger(__name__)

CANONICAL_LOCALES = ("en", "x-default")
HOMEPAGE_SLUG = "__homepage__"
_LOCAL_HOSTS = ("localhost", "127.0.0.1")

Documents = Union[str, Sequence[str]]


def to_path(url: str) -> str:
    """Host-relative path (with query) of an absolute URL; paths pass through."""
    p = urlparse(url.strip())
    path = p.path or "/"
    if len(path) > 1 and path.endswith("/"):
        path = path[:-1]
    return f"{path}?{p.query}" if p.query else path


def _soup(xml: str) -> BeautifulSoup:
    # html.parser is lenient enough for sitemaps and keeps "xhtml:link" as the tag name.
    return BeautifulSoup(xml, "html.parser")


def _documents(docs: Documents) -> Sequence[str]:
    return [docs] if isinstance(docs, str) else docs


def _url_blocks(xml: str) -> Iterator[Tuple[str, Dict[str, str]]]:
    """(loc, {hreflang: href}) for every <url> block that has a <loc>."""
    for block in _soup(xml).find_all("url"):
        loc_tag = block.find("loc")
        if loc_tag is None or not loc_tag.get_text().strip():
            continue
        alternates: Dict[str, str] = {}
        for link in block.find_all("xhtml:link"):
            hreflang = link.get("hreflang")
            href = link.get("href")
            if link.get("rel") and "alternate" not in link.get("rel"):
                continue
            if hreflang and href:
                alternates[hreflang.lower()] = href.strip()
        yield loc_tag.get_text().strip(), alternates


def parse_sitemap_locs(xml: str) -> List[str]:
    """All <loc> values in document order (page URLs or sub-sitemap URLs)."""
    return [tag.get_text().strip() for tag in _soup(xml).find_all("loc") if tag.get_text().strip()]


def parse_sitemap_mapping(xml: str) -> Dict[str, str]:
    """Build {path: canonical path} from a sitemap document."""
    mapping: Dict[str, str] = {}
    blocks = 0
    for loc, alternates in _url_blocks(xml):
        blocks += 1
        main_path = to_path(loc)
        translations = {lang: to_path(href) for lang, href in alternates.items()}

        base = next((translations[k] for k in CANONICAL_LOCALES if k in translations), None)
        if base is None:
            mapping.setdefault(main_path, main_path)
            continue
        for path in translations.values():
            mapping[path] = base
        mapping[main_path] = base

    log.info("Sitemap mapping: %d blocks, %d paths", blocks, len(mapping))
    return mapping


def slug_of(url: str, languages: Sequence[str] = DEFAULT_SITEMAP_LANGUAGES) -> str:
    """
    Language-independent slug of a page URL: "https://x/fr/blog/a/" -> "blog/a".
    The home page of every language is HOMEPAGE_SLUG.
    """
    path = urlparse(url.strip()).path.lstrip("/")
    for lang in languages:
        if path.startswith(lang + "/"):
            path = path[len(lang) + 1 :]
            break
    path = path.rstrip("/")
    if not path or path in languages:
        return HOMEPAGE_SLUG
    return path.lower()


def language_of(
    url: str, languages: Sequence[str] = DEFAULT_SITEMAP_LANGUAGES, default: str = "en"
) -> str:
    path = urlparse(url.strip()).path.lstrip("/")
    for lang in languages:
        if path == lang or path.startswith(lang + "/"):
            return lang
    return default


def _canonical_url(alternates: Mapping[str, str]) -> Optional[str]:
    for key in ("x-default", "en"):
        if key in alternates:
            return alternates[key]
    return next((href for lang, href in alternates.items() if lang != "x-default"), None)


def parse_sitemap_slugs(
    documents: Documents, languages: Sequence[str] = DEFAULT_SITEMAP_LANGUAGES
) -> Dict[str, SitemapSlug]:
    """
    Group the pages of one or more sitemap documents by canonical slug. The
    canonical slug comes from the x-default (else "en", else any) alternate,
    so translated slugs ("/fr/tarifs") land on their English page.
    """
    slugs: Dict[str, SitemapSlug] = {}
    for xml in _documents(documents):
        for loc, alternates in _url_blocks(xml):
            slug = slug_of(_canonical_url(alternates) or loc, languages)
            entry = slugs.setdefault(slug, SitemapSlug(slug))
            entry.has_x_default = entry.has_x_default or "x-default" in alternates
            entry.languages.add(language_of(loc, languages))
            for lang, href in alternates.items():
                entry.hreflangs[lang] = href
                if lang != "x-default":
                    entry.languages.add(lang)
    return slugs


def compare_sitemaps(
    legacy: Mapping[str, SitemapSlug],
    new: Mapping[str, SitemapSlug],
    expected_languages: Sequence[str] = DEFAULT_SITEMAP_LANGUAGES,
) -> SitemapComparison:
    """
    Compare two slug groupings (see parse_sitemap_slugs). A page is a perfect
    match when it exists in both, the new site has every expected language the
    legacy site had, and x-default was kept.
    """
    result = SitemapComparison(legacy_slugs=len(legacy), new_slugs=len(new))
    for slug, old in legacy.items():
        current = new.get(slug)
        if current is None:
            result.missing_in_new.append(SlugLanguages(slug, tuple(sorted(old.languages))))
            continue

        result.matching += 1
        perfect = True
        missing = tuple(
            lang
            for lang in expected_languages
            if old.has_language(lang) and not current.has_language(lang)
        )
        if missing:
            result.missing_languages.append(SlugLanguages(slug, missing))
            perfect = False
        if old.has_x_default and not current.has_x_default:
            result.missing_x_default.append(slug)
            perfect = False
        if perfect:
            result.perfect += 1

    for slug, current in new.items():
        if slug not in legacy:
            result.missing_in_legacy.append(SlugLanguages(slug, tuple(sorted(current.languages))))

    log.info(
        "Sitemap comparison: %d legacy slugs, %d new, %d matching, %d perfect",
        result.legacy_slugs,
        result.new_slugs,
        result.matching,
        result.perfect,
    )
    return result


def _is_localized(path: str, locales: Sequence[str]) -> bool:
    return any(path == f"/{loc}" or path.startswith(f"/{loc}/") for loc in locales)


def paths_from_sitemap(
    documents: Documents,
    locales: Sequence[str] = DEFAULT_LOCALES,
    template_patterns: Sequence[str] = DEFAULT_TEMPLATE_PATTERNS,
    localization_example: Optional[str] = "/ar",
) -> SitemapPathList:
    """
    The page paths worth comparing: localized copies are dropped except
    `localization_example`, and only the first page matching each template
    pattern is kept.
    """
    compiled = [re.compile(p) for p in template_patterns]
    out = SitemapPathList()
    seen = set()
    for xml in _documents(documents):
        for loc, _ in _url_blocks(xml):
            out.total += 1
            path = urlparse(loc).path or "/"
            if len(path) > 1 and path.endswith("/"):
                path = path[:-1]
            if path in seen:
                continue

            if path != localization_example:
                if _is_localized(path, locales):
                    out.localized += 1
                    continue
                template = next((p.pattern for p in compiled if p.search(path)), None)
                if template is not None:
                    if template in out.template_examples:
                        out.duplicate_templates += 1
                        continue
                    out.template_examples[template] = path

            seen.add(path)
            out.paths.append(path)

    log.info(
        "Path list from sitemap: %d of %d URLs kept (%d localized, %d template duplicates)",
        len(out.paths),
        out.total,
        out.localized,
        out.duplicate_templates,
    )
    return out


def _rebase(sub_url: str, index_url: str) -> str:
    """Point sub-sitemaps a dev server lists under localhost at the index's host."""
    sub = urlparse(sub_url)
    if sub.hostname not in _LOCAL_HOSTS:
        return sub_url
    index = urlparse(index_url)
    return urlunparse(sub._replace(scheme=index.scheme, netloc=index.netloc))


async def fetch_sitemap(client: httpx.AsyncClient, url: str) -> str:
    resp = await client.get(url, follow_redirects=True)
    resp.raise_for_status()
    return resp.text


async def fetch_sitemap_documents(client: httpx.AsyncClient, url: str) -> List[str]:
    """
    Fetch a sitemap, expanding a sitemap index into its sub-sitemaps.
    Sub-sitemaps that fail to load are logged and skipped.
    """
    xml = await fetch_sitemap(client, url)
    if "<sitemapindex" not in xml:
        return [xml]

    documents: List[str] = []
    for sub in parse_sitemap_locs(xml):
        sub = _rebase(sub, url)
        try:
            documents.append(await fetch_sitemap(client, sub))
        except httpx.HTTPError as e:
            log.warning("Failed to fetch sub-sitemap %s: %s", sub, e)
    log.info("Sitemap index %s: %d sub-sitemaps loaded", url, len(documents))
    return documents


async def fetch_sitemap_mapping(client: httpx.AsyncClient, url: str) -> Dict[str, str]:
    """Fetch a sitemap (or sitemap index) and build the canonical mapping."""
    mapping: Dict[str, str] = {}
    for xml in await fetch_sitemap_documents(client, url):
        mapping.update(parse_sitemap_mapping(xml))
    return mapping


def load_mapping(path: str | Path | None) -> Dict[str, str]:
    """Read a saved JSON mapping. Missing or unreadable files give {}."""
    if not path:
        return {}
    p = Path(path)
    if not p.exists():
        log.warning("Canonical mapping %s not found; grouping by locale prefix.", p)
        return {}
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        log.warning("Could not read canonical mapping %s: %s", p, e)
        return {}
    if not isinstance(data, dict):
        log.warning("Canonical mapping %s is not a JSON object; ignoring.", p)
        return {}
    return {str(k): str(v) for k, v in data.items()}


def save_mapping(mapping: Dict[str, str], path: str | Path) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(mapping, indent=2, ensure_ascii=False), encoding="utf-8")
