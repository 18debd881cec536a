from __future__ import annotations

import logging
from collections import deque
from typing import Deque, List, Set

from ..errors import NoUrlsFoundError, SitemapNotFoundError, SitemapParseError
from ..utils.http import Fetcher
from ..utils.parsing import find_sitemap_directive, origin_of
from ..utils.sitemap_xml import parse_sitemap_index, parse_urlset

logger = logging.getLogger(__name__)


class SitemapResolver:
    """
    Flatten every page URL reachable from a site's sitemap metadata.

    The starting sitemap comes from the first ``Sitemap:`` line of
    robots.txt, falling back to ``/sitemap.xml``. Sitemap indexes are
    expanded breadth-first; a candidate that cannot be fetched or parsed is
    logged and dropped.
    """

    def __init__(self, base_url: str, fetcher: Fetcher) -> None:
        self.origin = origin_of(base_url)
        self.fetcher = fetcher

    async def find_sitemap_url(self) -> str:
        default = f"{self.origin}/sitemap.xml"
        robots_url = f"{self.origin}/robots.txt"
        result = await self.fetcher(robots_url)
        if result.status != 200:
            logger.info("No usable robots.txt at %s (status %s); using %s", robots_url, result.status, default)
            return default
        directive = find_sitemap_directive(result.text)
        if not directive:
            logger.info("robots.txt has no Sitemap directive; using %s", default)
            return default
        logger.info("Found sitemap %s in robots.txt", directive)
        return directive

    async def resolve(self) -> List[str]:
        seed = await self.find_sitemap_url()
        candidates: Deque[str] = deque([seed])
        processed: Set[str] = set()
        pages: Set[str] = set()
        fetched_any = False

        while candidates:
            sitemap_url = candidates.popleft()
            if sitemap_url in processed:
                continue
            processed.add(sitemap_url)

            result = await self.fetcher(sitemap_url)
            if result.status != 200:
                logger.warning(
                    "Sitemap %s returned %s%s", sitemap_url, result.status,
                    f" ({result.error})" if result.error else "",
                )
                continue
            fetched_any = True

            try:
                children = parse_sitemap_index(result.body)
            except SitemapParseError:
                children = None
            if children is not None:
                logger.info("Sitemap index %s lists %d sitemaps", sitemap_url, len(children))
                candidates.extend(ref.loc for ref in children if ref.loc not in processed)
                continue

            try:
                entries = parse_urlset(result.body)
            except SitemapParseError as exc:
                logger.warning("Could not parse sitemap %s: %s", sitemap_url, exc)
                continue
            logger.info("Sitemap %s lists %d URLs", sitemap_url, len(entries))
            pages.update(entry.loc for entry in entries)

        if not fetched_any:
            raise SitemapNotFoundError(self.origin)
        if not pages:
            raise NoUrlsFoundError(seed)
        return sorted(pages)
