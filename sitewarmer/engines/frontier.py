from __future__ import annotations

import asyncio
import logging
import threading
from collections import deque
from typing import Deque, Iterable, List, Optional, Set

from .base import PageSource, record_result
from ..stats import Stats
from ..utils.http import Fetcher
from ..utils.parsing import host_of, same_host

logger = logging.getLogger(__name__)

IDLE_RETRY_SECONDS = 0.1


class Frontier:
    """
    Shared discovery state. Queue, visited set, discovered sets and the
    active-worker counter each have their own lock; none of them is ever
    held across an await.
    """

    def __init__(self, seed_url: str, workers: int) -> None:
        self.seed_url = seed_url
        self.host = host_of(seed_url)

        self._queue_lock = threading.Lock()
        self.queue: Deque[str] = deque([seed_url])

        self._visited_lock = threading.Lock()
        self.visited: Set[str] = set()

        self._discovered_lock = threading.Lock()
        self.discovered_urls: Set[str] = {seed_url}
        self.discovered_assets: Set[str] = set()

        self._active_lock = threading.Lock()
        self.active_worker_count = workers

    # ---- Queue ----

    def pop(self) -> Optional[str]:
        with self._queue_lock:
            return self.queue.popleft() if self.queue else None

    def mark_visited(self, url: str) -> bool:
        """Atomically check-and-insert. Returns False if already visited."""
        with self._visited_lock:
            if url in self.visited:
                return False
            self.visited.add(url)
            return True

    # ---- Idle accounting ----

    def go_idle(self) -> int:
        with self._active_lock:
            self.active_worker_count -= 1
            return self.active_worker_count

    def reactivate(self) -> None:
        with self._active_lock:
            self.active_worker_count += 1

    # ---- Merging ----

    def merge(self, links: Iterable[str], assets: Iterable[str]) -> int:
        """
        Add same-host links and all assets to the discovered sets; push the
        links never seen before onto the queue. Returns how many were queued.
        """
        fresh: List[str] = []
        with self._discovered_lock:
            for link in links:
                if not same_host(link, self.host):
                    continue
                if link not in self.discovered_urls:
                    self.discovered_urls.add(link)
                    fresh.append(link)
            self.discovered_assets.update(assets)
        if fresh:
            with self._queue_lock:
                self.queue.extend(fresh)
        return len(fresh)

    def results(self) -> List[str]:
        with self._discovered_lock:
            return sorted(self.discovered_urls | self.discovered_assets)


class AssetLoader:
    """
    Load-test a batch of asset URLs with a bounded pool of workers popping a
    shared list, recording every request into ``stats``.
    """

    def __init__(self, fetcher: Fetcher, stats: Stats, concurrency: int) -> None:
        self.fetcher = fetcher
        self.stats = stats
        self.concurrency = max(1, concurrency)

    async def __call__(self, assets: Iterable[str]) -> None:
        pending = list(assets)
        if not pending:
            return
        logger.debug("Load testing %d assets with %d workers", len(pending), self.concurrency)

        async def worker() -> None:
            while pending:
                url = pending.pop()
                result = await self.fetcher(url)
                record_result(self.stats, result, main=False)

        workers = min(self.concurrency, len(pending))
        await asyncio.gather(*(worker() for _ in range(workers)))


class FrontierCrawler:
    """
    Recursive same-host discovery from one seed URL using a fixed pool of
    workers over a shared ``Frontier``.

    Termination: a worker that finds the queue empty marks itself idle. The
    worker that brings the active count to zero exits; any other worker
    sleeps briefly, marks itself active again and retries, because a peer may
    still be fetching a page that will enqueue more work.
    """

    def __init__(
        self,
        seed_url: str,
        page_source: PageSource,
        *,
        workers: int = 4,
        asset_loader: Optional[AssetLoader] = None,
        idle_retry: float = IDLE_RETRY_SECONDS,
    ) -> None:
        self.page_source = page_source
        self.asset_loader = asset_loader
        self.workers = max(1, workers)
        self.idle_retry = idle_retry
        self.frontier = Frontier(seed_url, self.workers)

    async def crawl(self) -> List[str]:
        logger.info(
            "Discovering pages from %s with %d workers", self.frontier.seed_url, self.workers
        )
        await asyncio.gather(*(self._worker(i) for i in range(self.workers)))
        frontier = self.frontier
        logger.info(
            "Discovery finished: %d pages and %d assets",
            len(frontier.discovered_urls), len(frontier.discovered_assets),
        )
        return frontier.results()

    async def _worker(self, worker_id: int) -> None:
        frontier = self.frontier
        while True:
            url = frontier.pop()
            if url is None:
                if frontier.go_idle() == 0:
                    break
                await asyncio.sleep(self.idle_retry)
                frontier.reactivate()
                continue

            if not frontier.mark_visited(url):
                continue

            try:
                await self._process(url)
            except Exception as exc:  # one bad page never aborts discovery
                logger.warning("Discovery worker %d failed to process %s: %r", worker_id, url, exc)

        logger.debug("Discovery worker %d exiting", worker_id)

    async def _process(self, url: str) -> None:
        found = await self.page_source.discover(url)
        if self.asset_loader is not None:
            await self.asset_loader(found.assets)
        queued = self.frontier.merge(found.links, found.assets)
        if queued:
            logger.debug("Queued %d new URLs from %s", queued, url)
