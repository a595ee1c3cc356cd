# seo_parity/extract.py
"""
HTML field extraction.

The compared sites are live pages we do not control, so parsing goes through
BeautifulSoup's lenient "html.parser" backend: missing closing tags and
odd markup degrade to empty fields instead of errors.
"""
from __future__ import annotations

from typing import Dict, List

from bs4 import BeautifulSoup, Tag

from seo_parity.models import CheckSet

H1_SEPARATOR = " | "


class HtmlDocument:
    """Narrow view of a parsed page: only the four queries the comparison needs."""

    def __init__(self, html: str | bytes) -> None:
        self._soup = BeautifulSoup(html or "", "html.parser")

    def title_text(self) -> str:
        tag = self._soup.find("title")
        if tag is None:
            return ""
        return tag.get_text().strip()

    def meta_content_by_name(self, name: str) -> str | None:
        return self._meta_content("name", name)

    def meta_content_by_property(self, prop: str) -> str | None:
        return self._meta_content("property", prop)

    def h1_texts(self) -> List[str]:
        return [tag.get_text().strip() for tag in self._soup.find_all("h1")]

    def _meta_content(self, attr: str, value: str) -> str | None:
        for tag in self._soup.find_all("meta"):
            if not isinstance(tag, Tag):
                continue
            if tag.get(attr) != value:
                continue
            content = tag.get("content")
            if isinstance(content, list):
                content = " ".join(content)
            return content
        return None


def extract_fields(doc: HtmlDocument, checks: CheckSet) -> Dict[str, str]:
    """Return the enabled fields; anything missing from the page is ''."""
    out: Dict[str, str] = {}
    if checks.title:
        out["title"] = doc.title_text()
    if checks.description:
        out["description"] = (doc.meta_content_by_name("description") or "").strip()
    if checks.h1:
        out["h1"] = H1_SEPARATOR.join(doc.h1_texts())
    if checks.og_image:
        # URL value, compared verbatim
        out["og_image"] = doc.meta_content_by_property("og:image") or ""
    return out


def extract_from_html(html: str | bytes, checks: CheckSet) -> Dict[str, str]:
    return extract_fields(HtmlDocument(html), checks)
