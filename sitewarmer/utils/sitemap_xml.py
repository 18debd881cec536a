from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from bs4 import BeautifulSoup

from ..errors import SitemapParseError

DEFAULT_LASTMOD = "2021-12-28T08:37Z"
DEFAULT_CHANGEFREQ = "daily"
DEFAULT_PRIORITY = "0.5"


@dataclass(frozen=True)
class SitemapUrl:
    """One ``<url>`` entry of a urlset sitemap."""

    loc: str
    lastmod: str = DEFAULT_LASTMOD
    changefreq: str = DEFAULT_CHANGEFREQ
    priority: str = DEFAULT_PRIORITY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "loc": self.loc,
            "lastmod": self.lastmod,
            "changefreq": self.changefreq,
            "priority": self.priority,
        }


@dataclass(frozen=True)
class SitemapRef:
    """One ``<sitemap>`` entry of a sitemap index."""

    loc: str


def _soup(xml: str | bytes) -> BeautifulSoup:
    return BeautifulSoup(xml, "xml")


def _text(node, name: str) -> str | None:
    child = node.find(name, recursive=False)
    if child is None:
        return None
    text = child.get_text(strip=True)
    return text or None


def parse_urlset(xml: str | bytes) -> List[SitemapUrl]:
    """
    Parse a ``<urlset>`` document. Missing optional fields take the
    sitemap protocol defaults.
    """
    root = _soup(xml).find("urlset")
    if root is None:
        raise SitemapParseError("document is not a <urlset>")
    entries: List[SitemapUrl] = []
    for node in root.find_all("url", recursive=False):
        loc = _text(node, "loc")
        if not loc:
            continue
        entries.append(
            SitemapUrl(
                loc=loc,
                lastmod=_text(node, "lastmod") or DEFAULT_LASTMOD,
                changefreq=_text(node, "changefreq") or DEFAULT_CHANGEFREQ,
                priority=_text(node, "priority") or DEFAULT_PRIORITY,
            )
        )
    return entries


def parse_sitemap_index(xml: str | bytes) -> List[SitemapRef]:
    """Parse a ``<sitemapindex>`` document into child sitemap locations."""
    root = _soup(xml).find("sitemapindex")
    if root is None:
        raise SitemapParseError("document is not a <sitemapindex>")
    refs: List[SitemapRef] = []
    for node in root.find_all("sitemap", recursive=False):
        loc = _text(node, "loc")
        if loc:
            refs.append(SitemapRef(loc=loc))
    return refs
