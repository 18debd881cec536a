from __future__ import annotations

import logging

from .base import PageDiscovery, PageSource
from ..utils.http import Fetcher
from ..utils.parsing import extract_assets, extract_links

logger = logging.getLogger(__name__)


class HttpPageSource(PageSource):
    """
    Plain-HTTP page source: GET the page and extract links and assets from
    the returned HTML. Non-HTML and failed responses yield nothing.
    """
    def __init__(self, fetcher: Fetcher) -> None:
        self.fetcher = fetcher

    async def discover(self, url: str) -> PageDiscovery:
        result = await self.fetcher(url)
        if result.status == 0:
            logger.warning("Failed to fetch %s: %s", url, result.error)
            return PageDiscovery()
        if result.status >= 400:
            logger.warning("Fetching %s returned HTTP %s", url, result.status)
            return PageDiscovery()
        if not result.is_html:
            logger.debug("Skipping non-HTML response from %s (%s)", url, result.content_type or "unknown")
            return PageDiscovery()

        html = result.text
        links = extract_links(html, base_url=url, same_host_only=False)
        assets = extract_assets(html, base_url=url)
        logger.info("Discovered %d links and %d assets from %s", len(links), len(assets), url)
        return PageDiscovery(links=links, assets=assets)
