from __future__ import annotations

import asyncio
import logging
import math
import random
import threading
import time
from collections import deque
from typing import Deque, List, Optional, Sequence, Set

from .base import record_result
from ..stats import Stats
from ..utils.http import Fetcher, FetchResult
from ..utils.parsing import coerce_scheme, extract_assets, host_of, origin_of, same_host

logger = logging.getLogger(__name__)


def partition(urls: Sequence[str], concurrency: int) -> List[List[str]]:
    """
    Split ``urls`` into contiguous chunks of ``ceil(len / concurrency)``; the
    last chunk may be shorter.
    """
    if not urls:
        return []
    size = math.ceil(len(urls) / max(1, concurrency))
    return [list(urls[i:i + size]) for i in range(0, len(urls), size)]


def jittered(delay: float, rng: random.Random) -> float:
    # Up to half the configured delay on top.
    if delay <= 0:
        return 0.0
    return delay + rng.uniform(0, delay / 2)


def page_assets(result: FetchResult) -> List[str]:
    """
    Same-host assets of an HTML response, rewritten to the page's scheme.
    References resolve against the site origin, not the page path. The page
    itself and duplicates are dropped.
    """
    main_url = result.url
    scheme = main_url.split(":", 1)[0]
    host = host_of(main_url)
    out: List[str] = []
    seen: Set[str] = set()
    for asset in extract_assets(result.text, base_url=origin_of(main_url)):
        if not same_host(asset, host):
            continue
        asset = coerce_scheme(asset, scheme)
        if asset == main_url or asset in seen:
            continue
        seen.add(asset)
        out.append(asset)
    return out


async def fetch_page(
    fetcher: Fetcher, stats: Stats, url: str, *, load_assets: bool
) -> FetchResult:
    """
    GET one page and, for HTML when ``load_assets`` is set, each of its
    same-host assets. Every request is recorded as its own transaction.
    """
    result = await fetcher(url)
    record_result(stats, result, main=True)
    if load_assets and result.status != 0 and result.is_html:
        for asset in page_assets(result):
            record_result(stats, await fetcher(asset), main=False)
    return result


class VirtualUser:
    """
    One simulated client cycling over its own partition of the URL list.
    Sequential mode walks the partition in order; internet mode picks a
    random URL from the partition for every request.
    """

    def __init__(
        self,
        user_id: int,
        urls: Sequence[str],
        fetcher: Fetcher,
        stats: Stats,
        *,
        duration: Optional[float] = None,
        repetitions: Optional[int] = None,
        delay: float = 0.0,
        load_assets: bool = True,
        internet: bool = False,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.user_id = user_id
        self.urls = list(urls)
        self.fetcher = fetcher
        self.stats = stats
        self.duration = duration
        self.repetitions = repetitions
        self.delay = delay
        self.load_assets = load_assets
        self.internet = internet
        self.rng = rng or random.Random()
        self.request_count = 0
        self.started_at = time.monotonic()

    def done(self) -> bool:
        if self.duration is not None and time.monotonic() - self.started_at >= self.duration:
            return True
        if self.repetitions is not None and self.request_count >= self.repetitions:
            return True
        return False

    def next_url(self) -> str:
        if self.internet and len(self.urls) > 1:
            return self.rng.choice(self.urls)
        return self.urls[self.request_count % len(self.urls)]

    async def run(self) -> int:
        self.started_at = time.monotonic()
        while not self.done():
            url = self.next_url()
            await fetch_page(self.fetcher, self.stats, url, load_assets=self.load_assets)
            self.request_count += 1
            pause = jittered(self.delay, self.rng)
            if pause:
                await asyncio.sleep(pause)
        logger.debug("Virtual user %d finished after %d requests", self.user_id, self.request_count)
        return self.request_count


class LoadGenerator:
    """
    Drive ``concurrency`` virtual users against a fixed URL list until the
    duration or repetition limit is reached, or forever when neither is set.
    """

    def __init__(
        self,
        urls: Sequence[str],
        fetcher: Fetcher,
        stats: Stats,
        *,
        concurrency: int = 25,
        duration: Optional[float] = None,
        repetitions: Optional[int] = None,
        delay: float = 1.0,
        load_assets: bool = True,
        internet: bool = False,
    ) -> None:
        if not urls:
            raise ValueError("LoadGenerator needs at least one URL")
        self.urls = tuple(urls)
        self.fetcher = fetcher
        self.stats = stats
        self.concurrency = max(1, concurrency)
        self.duration = duration
        self.repetitions = repetitions
        self.delay = delay
        self.load_assets = load_assets
        self.internet = internet

    def build_users(self) -> List[VirtualUser]:
        chunks = partition(self.urls, self.concurrency)
        # More users than chunks: users share chunks round-robin.
        return [
            VirtualUser(
                i,
                chunks[i % len(chunks)],
                self.fetcher,
                self.stats,
                duration=self.duration,
                repetitions=self.repetitions,
                delay=self.delay,
                load_assets=self.load_assets,
                internet=self.internet,
            )
            for i in range(self.concurrency)
        ]

    async def run(self) -> int:
        users = self.build_users()
        logger.info(
            "Starting %d virtual users over %d URLs (%s)",
            len(users), len(self.urls), self._describe_bounds(),
        )
        counts = await asyncio.gather(*(u.run() for u in users))
        return sum(counts)

    def _describe_bounds(self) -> str:
        bounds = []
        if self.duration is not None:
            bounds.append(f"{self.duration:g}s")
        if self.repetitions is not None:
            bounds.append(f"{self.repetitions} reps/user")
        return ", ".join(bounds) or "until interrupted"


class CrawlOnce:
    """
    A single pass over the URL list: every URL, and every asset found on the
    way, is fetched at most once by a pool of ``concurrency`` workers.
    """

    def __init__(
        self,
        urls: Sequence[str],
        fetcher: Fetcher,
        stats: Stats,
        *,
        concurrency: int = 25,
        delay: float = 0.0,
        load_assets: bool = True,
    ) -> None:
        self.fetcher = fetcher
        self.stats = stats
        self.concurrency = max(1, concurrency)
        self.delay = delay
        self.load_assets = load_assets
        self._queue: Deque[str] = deque(urls)
        self._queue_lock = threading.Lock()
        self._visited: Set[str] = set()
        self._visited_lock = threading.Lock()
        self._rng = random.Random()

    def _pop(self) -> Optional[str]:
        with self._queue_lock:
            return self._queue.popleft() if self._queue else None

    def _claim(self, url: str) -> bool:
        with self._visited_lock:
            if url in self._visited:
                return False
            self._visited.add(url)
            return True

    async def run(self) -> int:
        logger.info("Crawling %d URLs once with %d workers", len(self._queue), self.concurrency)
        await asyncio.gather(*(self._worker() for _ in range(self.concurrency)))
        return len(self._visited)

    async def _worker(self) -> None:
        while True:
            url = self._pop()
            if url is None:
                return
            if not self._claim(url):
                continue
            result = await self.fetcher(url)
            record_result(self.stats, result, main=True)
            if self.load_assets and result.status != 0 and result.is_html:
                for asset in page_assets(result):
                    if self._claim(asset):
                        record_result(self.stats, await self.fetcher(asset), main=False)
            pause = jittered(self.delay, self._rng)
            if pause:
                await asyncio.sleep(pause)
