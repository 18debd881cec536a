from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import List, Optional

from .config import WarmerConfig
from .engines.base import PageSource
from .engines.frontier import AssetLoader, FrontierCrawler
from .engines.load import CrawlOnce, LoadGenerator
from .engines.simple_engine import HttpPageSource
from .engines.sitemap import SitemapResolver
from .report import RunReport
from .stats import Stats
from .utils.http import Fetcher, create_session, make_fetcher, pick_user_agent

logger = logging.getLogger(__name__)


class DiscoveryMode(str, Enum):
    SITEMAP = "sitemap"
    FOLLOW_LINKS = "follow-links"
    SINGLE_URL = "single-url"


class ExecutionMode(str, Enum):
    CRAWL_ONCE = "crawl"
    SUSTAINED_LOAD = "load"


class Orchestrator:
    """
    Sequences one run: pick a discovery source, resolve the target list,
    drive the chosen execution strategy, then report exactly once.

    ``finish()`` is the single reporting path for both normal completion and
    interruption; it finalizes the stats on its first call only.
    """

    def __init__(self, config: WarmerConfig, stats: Optional[Stats] = None) -> None:
        self.config = config
        self.stats = stats or Stats()
        self.user_agent = config.user_agent or pick_user_agent()
        self.targets: List[str] = []
        self._finish_lock = threading.Lock()
        self._report: Optional[RunReport] = None

    # ---- State selection ----

    @property
    def discovery_mode(self) -> DiscoveryMode:
        cfg = self.config
        if cfg.follow_links:
            return DiscoveryMode.FOLLOW_LINKS
        if cfg.sitemap or cfg.crawl:
            return DiscoveryMode.SITEMAP
        return DiscoveryMode.SINGLE_URL

    @property
    def execution_mode(self) -> ExecutionMode:
        return ExecutionMode.CRAWL_ONCE if self.config.crawl else ExecutionMode.SUSTAINED_LOAD

    # ---- Phases ----

    def make_page_source(self, fetcher: Fetcher) -> PageSource:
        if self.config.js:
            # Imported lazily: playwright is only needed for browser discovery.
            from .engines.browser_engine import BrowserPageSource

            return BrowserPageSource(user_agent=self.user_agent)
        return HttpPageSource(fetcher)

    async def discover(self, fetcher: Fetcher) -> List[str]:
        cfg = self.config
        mode = self.discovery_mode
        logger.info("Discovery mode: %s", mode.value)

        if mode is DiscoveryMode.FOLLOW_LINKS:
            asset_loader = None if cfg.no_assets else AssetLoader(fetcher, self.stats, cfg.concurrency)
            async with self.make_page_source(fetcher) as source:
                crawler = FrontierCrawler(
                    cfg.url,
                    source,
                    workers=cfg.effective_discovery_threads,
                    asset_loader=asset_loader,
                )
                return await crawler.crawl()

        if mode is DiscoveryMode.SITEMAP:
            return await SitemapResolver(cfg.url, fetcher).resolve()

        return [cfg.url]

    async def execute(self, urls: List[str], fetcher: Fetcher) -> int:
        cfg = self.config
        if self.execution_mode is ExecutionMode.CRAWL_ONCE:
            return await CrawlOnce(
                urls,
                fetcher,
                self.stats,
                concurrency=cfg.concurrency,
                delay=cfg.delay,
                load_assets=not cfg.no_assets,
            ).run()
        return await LoadGenerator(
            urls,
            fetcher,
            self.stats,
            concurrency=cfg.concurrency,
            duration=cfg.duration,
            repetitions=cfg.repetitions,
            delay=cfg.delay,
            load_assets=not cfg.no_assets,
            internet=cfg.internet,
        ).run()

    async def run(self, fetcher: Optional[Fetcher] = None) -> List[str]:
        """
        Discover then execute. Discovery failures raise ``StartupError``
        before any load is generated.
        """
        if fetcher is not None:
            return await self._run(fetcher)
        session = create_session()
        try:
            return await self._run(
                make_fetcher(session, timeout=self.config.request_timeout, user_agent=self.user_agent)
            )
        finally:
            await session.close()

    async def _run(self, fetcher: Fetcher) -> List[str]:
        self.targets = await self.discover(fetcher)
        logger.info("Resolved %d target URLs", len(self.targets))
        await self.execute(self.targets, fetcher)
        return self.targets

    # ---- Reporting ----

    def finish(self, *, interrupted: bool = False) -> RunReport:
        with self._finish_lock:
            if self._report is None:
                self.stats.finalize()
                self._report = RunReport(
                    url=self.config.url,
                    mode=f"{self.discovery_mode.value}/{self.execution_mode.value}",
                    metrics=self.stats.snapshot(),
                    targets=list(self.targets),
                    interrupted=interrupted,
                )
            return self._report
