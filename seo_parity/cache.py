# seo_parity/cache.py
"""
File-backed cache of production-side pages.

- Storage: diskcache.Cache.
- Location: a visible folder in CWD by default, or the OS-specific app cache
  dir via platformdirs ("os-default").
- Scope: only the legacy (production) host is cached. It is frozen during a
  migration, so re-runs do not need to hit it again; the development host is
  always fetched live.
"""
from __future__ import annotations

import dataclasses
import logging
import os
from pathlib import Path
from typing import Any, Optional

import diskcache
from platformdirs import user_cache_dir as _user_cache_dir

log = logging.getLogger(__name__)


@dataclasses.dataclass
class CacheConfig:
    enabled: bool = False
    # Either a concrete directory path, or "os-default"
    directory: str = ".seo_parity_cache"
    expire_seconds: int = 24 * 3600
    store_errors: bool = False

    @classmethod
    def from_config(cls, raw: dict[str, Any]) -> "CacheConfig":
        return cls(
            enabled=bool(raw.get("enabled", False)),
            directory=str(raw.get("directory", ".seo_parity_cache")),
            expire_seconds=int(raw.get("expire_seconds", 24 * 3600)),
            store_errors=bool(raw.get("store_errors", False)),
        )


class FileCache:
    """
    Thin wrapper over diskcache.
    Keys: absolute request URLs.
    Values: dict with: status, final_url, text, redirect_status, hops.
    """

    def __init__(self, cfg: CacheConfig, app_name: str = "seo_parity"):
        self.cfg = cfg
        self.app_name = app_name
        self._cache: Optional[diskcache.Cache] = None
        if not cfg.enabled:
            log.debug("Caching not enabled")
            return
        self.create_cache_object()

    def create_cache_object(self) -> None:
        if self._cache is not None:
            return
        directory = self.cfg.directory
        if directory == "os-default":
            directory = _user_cache_dir(self.app_name, appauthor=False)
        log.info("Cache at %s", directory)
        self._cache = diskcache.Cache(directory)

    def close(self) -> None:
        if self._cache is not None:
            self._cache.close()

    @property
    def enabled(self) -> bool:
        return self._cache is not None

    @property
    def directory(self) -> Optional[str]:
        if self._cache is None:
            return None
        return str(self._cache.directory)

    def _dir_size_bytes(self) -> int:
        d = self.directory
        if not d:
            return 0
        total = 0
        for p in Path(d).rglob("*"):
            try:
                if p.is_file():
                    total += p.stat().st_size
            except OSError:
                continue
        return total

    def stats(self) -> dict[str, int | str]:
        """items, on-disk bytes and absolute directory of the cache."""
        if self._cache is None:
            return {"items": 0, "bytes": 0, "directory": ""}
        return {
            "items": len(self._cache),
            "bytes": self._dir_size_bytes(),
            "directory": os.path.abspath(self.directory or ""),
        }

    def clear_all(self) -> None:
        if self._cache is None:
            log.warning("Cache disabled")
            return
        self._cache.clear()

    def get(self, url: str) -> Optional[dict[str, Any]]:
        if self._cache is None:
            return None
        return self._cache.get(url)

    def set_page(
        self,
        url: str,
        *,
        status: int,
        final_url: str,
        text: str,
        redirect_status: int | None = None,
        hops: int = 0,
    ) -> None:
        if self._cache is None:
            return
        if status != 200 and not self.cfg.store_errors:
            log.debug("Not caching %s, got %d", url, status)
            return
        self._cache.set(
            url,
            {
                "status": status,
                "final_url": final_url,
                "text": text,
                "redirect_status": redirect_status,
                "hops": hops,
            },
            expire=self.cfg.expire_seconds,
        )
