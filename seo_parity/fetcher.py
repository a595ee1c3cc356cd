# seo_parity/fetcher.py
"""
HTTPX-based page fetcher.

Responsibilities:
- GET one page path against one host with a timeout and a fixed User-Agent.
- Follow redirects up to a bounded number of hops, remembering the chain so
  that the first hop and the final path can be reported even when the chain
  ends in an error.
- Encode every failure mode in the returned PageFetchResult. Network errors
  are logged, never raised to the caller.
- Delegate field extraction to extract.py.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List

import httpx

from seo_parity.cache import CacheConfig, FileCache
from seo_parity.extract import extract_from_html
from seo_parity.models import CheckSet, PageFetchResult, RedirectInfo

log = logging.getLogger(__name__)


def join_url(host: str, path: str) -> str:
    """Join a base URL and a root-relative page path."""
    if not path.startswith("/"):
        path = "/" + path
    return host.rstrip("/") + path


def _path_of(url: httpx.URL) -> str:
    """Path plus query string of an absolute URL."""
    return url.raw_path.decode("ascii", errors="replace")


def _redirect_info(chain: List[httpx.Response], final_url: httpx.URL) -> RedirectInfo:
    return RedirectInfo(
        original_status=chain[0].status_code,
        final_path=_path_of(final_url),
        final_url=str(final_url),
        hops=len(chain),
    )


class PageFetcher:
    """
    Fetches pages for comparison. Use as an async context manager; one
    instance is safe to share between concurrent fetches.

    Config keys consumed:
      - user_agent: str
      - timeout: float (seconds)
      - status_timeout: float (seconds)
      - max_redirects: int
      - cache: {enabled, directory, expire_seconds, store_errors}
    """

    def __init__(
        self,
        config: Dict[str, Any],
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self.timeout = float(config.get("timeout", 10.0))
        self.status_timeout = float(config.get("status_timeout", 15.0))
        self.max_redirects = int(config.get("max_redirects", 5))
        self.user_agent = config.get("user_agent", "SEO-Parity-Checker/1.0")
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._cache: FileCache | None = None

    async def __aenter__(self) -> "PageFetcher":
        self._cache = FileCache(CacheConfig.from_config(self.config.get("cache", {})))
        self._client = httpx.AsyncClient(
            # Redirects are walked by hand in fetch() to keep the chain.
            follow_redirects=False,
            max_redirects=self.max_redirects,
            timeout=self.timeout,
            headers={"User-Agent": self.user_agent},
            transport=self._transport,
        )
        log.info("httpx session initialized.")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._client is not None:
            await self._client.aclose()
        if self._cache is not None:
            self._cache.close()
        log.info("httpx session closed.")

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("PageFetcher used outside of 'async with'")
        return self._client

    async def fetch(
        self,
        host: str,
        path: str,
        checks: CheckSet,
        *,
        request_path: str | None = None,
        use_cache: bool = False,
    ) -> PageFetchResult:
        """
        Fetch `host + request_path` (defaults to `path`) and extract the
        enabled fields. The result is always reported under the logical `path`.
        """
        url = join_url(host, request_path or path)

        if use_cache and self._cache is not None and self._cache.enabled:
            hit = self._cache.get(url)
            # Error pages are only ever stored when store_errors is set.
            if hit and hit.get("status"):
                log.info("Cache hit for %s", url)
                return self._from_cache(path, url, hit, checks)

        log.info("Fetching: %s", url)
        chain: List[httpx.Response] = []
        try:
            request = self.client.build_request("GET", url)
            while True:
                response = await self.client.send(request)
                if response.next_request is None:
                    break
                chain.append(response)
                if len(chain) > self.max_redirects:
                    msg = f"Exceeded maximum allowed redirects ({self.max_redirects})"
                    log.warning("%s for %s", msg, url)
                    return PageFetchResult(
                        path=path,
                        http_status=response.status_code,
                        error=msg,
                        redirect=_redirect_info(chain, response.next_request.url),
                        url=url,
                    )
                request = response.next_request
        except (httpx.RequestError, httpx.InvalidURL, ValueError) as e:
            # InvalidURL is not a RequestError; a malformed path is a page failure too.
            msg = str(e) or type(e).__name__
            log.warning("Request failed for %r: %s", url, msg)
            return PageFetchResult(
                path=path,
                http_status=0,
                error=msg,
                redirect=(
                    _redirect_info(chain, chain[-1].next_request.url) if chain else None
                ),
                url=url,
            )

        redirect = _redirect_info(chain, response.url) if chain else None
        status = response.status_code
        text = response.text
        if use_cache and self._cache is not None:
            self._cache.set_page(
                url,
                status=status,
                final_url=str(response.url),
                text=text,
                redirect_status=chain[0].status_code if chain else None,
                hops=len(chain),
            )
        if status != 200:
            log.warning("Non-200 response for %s: %d", url, status)
            return PageFetchResult(path=path, http_status=status, redirect=redirect, url=url)

        return PageFetchResult(
            path=path,
            http_status=status,
            fields=extract_from_html(text, checks),
            redirect=redirect,
            url=url,
        )

    def _from_cache(
        self, path: str, url: str, hit: Dict[str, Any], checks: CheckSet
    ) -> PageFetchResult:
        redirect = None
        if hit.get("redirect_status"):
            final_url = httpx.URL(hit["final_url"])
            redirect = RedirectInfo(
                original_status=int(hit["redirect_status"]),
                final_path=_path_of(final_url),
                final_url=str(final_url),
                hops=int(hit.get("hops", 1)),
            )
        status = int(hit["status"])
        return PageFetchResult(
            path=path,
            http_status=status,
            fields=extract_from_html(hit.get("text") or "", checks) if status == 200 else {},
            redirect=redirect,
            url=url,
        )

    async def fetch_status(self, url: str) -> int:
        """Reachability only: terminal status after redirects, 0 on failure."""
        try:
            resp = await self.client.get(
                url,
                timeout=self.status_timeout,
                follow_redirects=True,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            log.warning("Status check failed for %s: %s", url, e)
            return 0
        return resp.status_code
