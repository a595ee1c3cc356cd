# seo_parity/paths.py
# Page path lists: loading, diffing, and dev-side rewrites.

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple

log = logging.getLogger(__name__)


@dataclass
class PathListDiff:
    only_in_first: List[str] = field(default_factory=list)
    only_in_second: List[str] = field(default_factory=list)
    in_both: List[str] = field(default_factory=list)

    @property
    def identical(self) -> bool:
        return not self.only_in_first and not self.only_in_second


def parse_path_list(text: str) -> List[str]:
    """One path per line; blank lines and '#' comments are dropped."""
    out = []
    for line in text.splitlines():
        line = line.strip()
        if line and not line.startswith("#"):
            out.append(line)
    return out


def load_path_list(path: str | Path) -> List[str]:
    p = Path(path)
    if not p.exists():
        log.error("Path list not found: %s", p)
        raise FileNotFoundError(str(p))
    paths = parse_path_list(p.read_text(encoding="utf-8"))
    log.info("Loaded %d page paths from %s", len(paths), p)
    return paths


def diff_path_lists(first: Sequence[str], second: Sequence[str]) -> PathListDiff:
    """Order-preserving set difference of two path lists."""
    a, b = set(first), set(second)
    return PathListDiff(
        only_in_first=[u for u in first if u not in b],
        only_in_second=[u for u in second if u not in a],
        in_both=[u for u in first if u in b],
    )


def normalize_rewrites(raw: Iterable[Sequence[str]]) -> Tuple[Tuple[str, str], ...]:
    """Config rewrites as (prefix, replacement) pairs."""
    out = []
    for item in raw:
        if len(item) != 2:
            raise ValueError(f"dev_path_rewrites entries need 2 items, got {item!r}")
        out.append((str(item[0]), str(item[1])))
    return tuple(out)


def rewrite_dev_path(path: str, rewrites: Sequence[Tuple[str, str]]) -> str:
    """Apply the first rewrite whose prefix matches; unmatched paths pass through."""
    for prefix, replacement in rewrites:
        if path.startswith(prefix):
            return replacement + path[len(prefix):]
    return path
