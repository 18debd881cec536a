# engines/browser_engine.py
from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Any, List, Optional

from playwright.async_api import async_playwright

from .base import PageDiscovery, PageSource
from ..utils.parsing import resolve_assets, resolve_links

logger = logging.getLogger(__name__)


def app_data_dir() -> Path:
    base = os.getenv("LOCALAPPDATA") or str(Path.home() / ".sitewarmer")
    p = Path(base) / "sitewarmer"
    p.mkdir(parents=True, exist_ok=True)
    return p


BROWSERS_DIR = app_data_dir() / "ms-playwright"
os.environ.setdefault("PLAYWRIGHT_BROWSERS_PATH", str(BROWSERS_DIR))

LINKS_JS = """
() => Array.from(document.querySelectorAll('a[href]')).map(a => a.getAttribute('href'))
"""

ASSETS_JS = """
() => {
    const refs = [];
    document.querySelectorAll('link[href]').forEach(l => {
        const rel = (l.getAttribute('rel') || '').toLowerCase();
        if (rel.split(/\\s+/).includes('stylesheet') || rel.includes('icon')) refs.push(l.getAttribute('href'));
    });
    document.querySelectorAll('script[src]').forEach(s => refs.push(s.getAttribute('src')));
    document.querySelectorAll('img[src]').forEach(i => refs.push(i.getAttribute('src')));
    return refs;
}
"""


class BrowserPageSource(PageSource):
    """
    Headless Chromium page source for JavaScript-rendered sites. Links and
    assets are read from the live DOM after a settle delay, so content
    injected by client-side frameworks is discovered too.
    """

    def __init__(
        self,
        *,
        user_agent: Optional[str] = None,
        settle_ms: int = 3000,
        timeout_ms: int = 30000,
    ) -> None:
        self.user_agent = user_agent
        self.settle_ms = settle_ms
        self.timeout_ms = timeout_ms
        self._playwright: Any = None
        self._browser: Any = None
        self._context: Any = None
        self._lock = asyncio.Lock()

    async def _ensure_browser(self) -> None:
        if self._context is not None:
            return
        async with self._lock:
            if self._context is not None:
                return
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=True,
                args=[
                    "--disable-gpu",
                    "--no-sandbox",
                    "--disable-dev-shm-usage",
                ],
            )
            self._context = await self._browser.new_context(
                user_agent=self.user_agent,
                ignore_https_errors=True,
            )
            logger.info("Started headless Chromium for discovery")

    async def discover(self, url: str) -> PageDiscovery:
        await self._ensure_browser()
        page = await self._context.new_page()
        try:
            await page.goto(url, wait_until="domcontentloaded", timeout=self.timeout_ms)
            # Let client-side frameworks hydrate before reading the DOM.
            await page.wait_for_timeout(self.settle_ms)
            hrefs: List[str] = await page.evaluate(LINKS_JS) or []
            refs: List[str] = await page.evaluate(ASSETS_JS) or []
            base_url = page.url or url
        finally:
            await page.close()
        links = resolve_links(hrefs, base_url, same_host_only=False)
        assets = resolve_assets(refs, base_url)
        logger.info("Discovered %d links and %d assets from %s", len(links), len(assets), url)
        return PageDiscovery(links=links, assets=assets)

    async def close(self) -> None:
        if self._context is not None:
            await self._context.close()
        if self._browser is not None:
            await self._browser.close()
        if self._playwright is not None:
            await self._playwright.stop()
        self._playwright = self._browser = self._context = None
