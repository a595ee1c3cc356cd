# seo_parity/orchestrator.py
"""
Drives a comparison run over a list of page paths.

- Batched mode (default): paths are split into consecutive batches of
  `batch_size`. Every path in a batch runs concurrently and each path fetches
  prod and dev concurrently, so up to 2 x batch_size requests are in flight.
  The run sleeps `batch_delay` seconds between batches.
- Sequential mode: one path at a time, prod then dev, sleeping
  `request_delay` after each request.

Cancellation is cooperative. RunHandle.request_stop() is honored before the
next batch (sequential: before the next request); work already in flight is
awaited, never aborted. The records gathered so far are returned with
state "stopped". An exception from any path cancels the rest of its batch
and fails the run.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
import uuid
from dataclasses import dataclass, field
from typing import (
    Awaitable,
    Callable,
    List,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    Union,
)

from seo_parity.compare import compare_pages
from seo_parity.config import DEFAULT_LEGACY_CDN_HOSTS, DEFAULT_NEW_CDN_HOSTS
from seo_parity.models import (
    CheckSet,
    ComparisonRecord,
    PageFetchResult,
    ProgressEvent,
    RunOutcome,
    RunState,
    RunSummary,
)
from seo_parity.paths import rewrite_dev_path
from seo_parity.report import summarize

log = logging.getLogger(__name__)

Observer = Callable[[ProgressEvent], Union[None, Awaitable[None]]]
Finalizer = Callable[[List[ComparisonRecord], RunSummary], Union[None, Awaitable[None]]]


class ComparisonFailed(RuntimeError):
    """A run aborted on an orchestration-level error (not a page fetch failure)."""


class Fetcher(Protocol):
    async def fetch(
        self,
        host: str,
        path: str,
        checks: CheckSet,
        *,
        request_path: str | None = None,
        use_cache: bool = False,
    ) -> PageFetchResult: ...


@dataclass
class RunHandle:
    """
    State owned by one run. Callers that drive several runs at once (one per
    client session, say) keep their own handles keyed however they like.
    """

    run_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    state: RunState = "idle"
    records: List[ComparisonRecord] = field(default_factory=list)
    stop_requested: bool = False

    def request_stop(self) -> None:
        if not self.stop_requested:
            log.info("Stop requested for run %s", self.run_id)
        self.stop_requested = True


def batched(items: Sequence[str], size: int) -> List[List[str]]:
    if size < 1:
        raise ValueError(f"batch size must be >= 1, got {size}")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


class Orchestrator:
    def __init__(
        self,
        fetcher: Fetcher,
        observer: Optional[Observer] = None,
        *,
        batch_size: int = 5,
        batch_delay: float = 1.0,
        sequential: bool = False,
        request_delay: float = 1.0,
        dev_rewrites: Sequence[Tuple[str, str]] = (),
        legacy_cdn_hosts: Sequence[str] = DEFAULT_LEGACY_CDN_HOSTS,
        new_cdn_hosts: Sequence[str] = DEFAULT_NEW_CDN_HOSTS,
        cache_prod: bool = False,
        finalize: Optional[Finalizer] = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch size must be >= 1, got {batch_size}")
        self.fetcher = fetcher
        self.observer = observer
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.sequential = sequential
        self.request_delay = request_delay
        self.dev_rewrites = tuple(dev_rewrites)
        self.legacy_cdn_hosts = tuple(legacy_cdn_hosts)
        self.new_cdn_hosts = tuple(new_cdn_hosts)
        self.cache_prod = cache_prod
        self.finalize = finalize

    async def _emit(self, event: ProgressEvent) -> None:
        """Deliver an event; observer failures never reach the run."""
        if self.observer is None:
            return
        try:
            result = self.observer(event)
            if inspect.isawaitable(result):
                await result
        except Exception as e:  # observer is external code
            log.warning("Progress observer failed on %s event: %s", event.type, e)

    def _compare(self, prod: PageFetchResult, dev: PageFetchResult, checks: CheckSet) -> ComparisonRecord:
        return compare_pages(
            prod,
            dev,
            checks,
            legacy_cdn_hosts=self.legacy_cdn_hosts,
            new_cdn_hosts=self.new_cdn_hosts,
        )

    def _fetch_prod(self, host: str, path: str, checks: CheckSet) -> Awaitable[PageFetchResult]:
        return self.fetcher.fetch(host, path, checks, use_cache=self.cache_prod)

    def _fetch_dev(self, host: str, path: str, checks: CheckSet) -> Awaitable[PageFetchResult]:
        return self.fetcher.fetch(
            host, path, checks, request_path=rewrite_dev_path(path, self.dev_rewrites)
        )

    async def _stopped(self, handle: RunHandle) -> RunOutcome:
        handle.state = "stopped"
        log.info("Run %s stopped after %d records", handle.run_id, len(handle.records))
        await self._emit(ProgressEvent(type="stopped", message="Comparison stopped by user"))
        return RunOutcome(state="stopped", records=list(handle.records))

    async def _process_path(
        self,
        index: int,
        total: int,
        path: str,
        prod_host: str,
        dev_host: str,
        checks: CheckSet,
    ) -> ComparisonRecord:
        await self._emit(
            ProgressEvent(
                type="fetching",
                current=index,
                total=total,
                path=path,
                message=f"[{index}/{total}] Fetching: {path}",
            )
        )
        prod, dev = await asyncio.gather(
            self._fetch_prod(prod_host, path, checks),
            self._fetch_dev(dev_host, path, checks),
        )
        record = self._compare(prod, dev, checks)
        await self._emit(
            ProgressEvent(
                type="compared",
                current=index,
                total=total,
                path=path,
                status=record.status,
                message=f"[{index}/{total}] {path} - {record.status}",
            )
        )
        return record

    async def _run_batched(
        self,
        handle: RunHandle,
        paths: Sequence[str],
        prod_host: str,
        dev_host: str,
        checks: CheckSet,
    ) -> bool:
        """Returns False if the run was stopped."""
        total = len(paths)
        batches = batched(paths, self.batch_size)
        offset = 0
        for number, batch in enumerate(batches, start=1):
            if handle.stop_requested:
                return False
            tasks = [
                asyncio.ensure_future(
                    self._process_path(offset + i + 1, total, path, prod_host, dev_host, checks)
                )
                for i, path in enumerate(batch)
            ]
            try:
                # gather() keeps input order regardless of completion order
                results = await asyncio.gather(*tasks)
            except BaseException:
                # One path failed: the rest of the batch must not outlive the run.
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise
            handle.records.extend(results)
            offset += len(batch)
            await self._emit(
                ProgressEvent(
                    type="batch",
                    current=offset,
                    total=total,
                    message=f"Batch {number}/{len(batches)} done ({offset}/{total})",
                )
            )
            if number < len(batches) and self.batch_delay > 0:
                await asyncio.sleep(self.batch_delay)
        return True

    async def _run_sequential(
        self,
        handle: RunHandle,
        paths: Sequence[str],
        prod_host: str,
        dev_host: str,
        checks: CheckSet,
    ) -> bool:
        total = len(paths)
        for i, path in enumerate(paths, start=1):
            if handle.stop_requested:
                return False
            await self._emit(
                ProgressEvent(
                    type="fetching",
                    current=i,
                    total=total,
                    path=path,
                    message=f"[{i}/{total}] Fetching: {path}",
                )
            )
            prod = await self._fetch_prod(prod_host, path, checks)
            await asyncio.sleep(self.request_delay)
            if handle.stop_requested:
                return False
            dev = await self._fetch_dev(dev_host, path, checks)
            await asyncio.sleep(self.request_delay)
            if handle.stop_requested:
                return False
            record = self._compare(prod, dev, checks)
            handle.records.append(record)
            await self._emit(
                ProgressEvent(
                    type="compared",
                    current=i,
                    total=total,
                    path=path,
                    status=record.status,
                    message=f"[{i}/{total}] {path} - {record.status}",
                )
            )
        return True

    async def run(
        self,
        handle: RunHandle,
        paths: Sequence[str],
        prod_host: str,
        dev_host: str,
        checks: CheckSet,
    ) -> RunOutcome:
        if handle.state != "idle":
            raise ValueError(f"RunHandle {handle.run_id} already used (state={handle.state})")
        handle.state = "running"
        total = len(paths)
        log.info(
            "Run %s: comparing %d paths, prod=%s dev=%s", handle.run_id, total, prod_host, dev_host
        )
        await self._emit(
            ProgressEvent(type="start", total=total, message=f"Starting comparison of {total} URLs...")
        )
        try:
            if self.sequential:
                finished = await self._run_sequential(handle, paths, prod_host, dev_host, checks)
            else:
                finished = await self._run_batched(handle, paths, prod_host, dev_host, checks)
            if not finished:
                return await self._stopped(handle)

            await self._emit(ProgressEvent(type="generating", message="Generating reports..."))
            records = list(handle.records)
            summary = summarize(records)
            if self.finalize is not None:
                result = self.finalize(records, summary)
                if inspect.isawaitable(result):
                    await result
        except Exception as e:
            log.error("Run %s failed: %s", handle.run_id, e, exc_info=True)
            handle.state = "failed"
            handle.records.clear()
            await self._emit(ProgressEvent(type="error", message=str(e) or type(e).__name__))
            return RunOutcome(state="failed", error=str(e) or type(e).__name__)

        handle.state = "completed"
        log.info(
            "Run %s complete: %d OK, %d DIFF, %d ERROR",
            handle.run_id,
            summary.ok,
            summary.diff,
            summary.error,
        )
        await self._emit(
            ProgressEvent(type="complete", summary=summary, message="Comparison complete!")
        )
        return RunOutcome(state="completed", records=records, summary=summary)
