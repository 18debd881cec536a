from __future__ import annotations

import pytest

from sitewarmer.errors import SitemapParseError
from sitewarmer.utils.sitemap_xml import parse_sitemap_index, parse_urlset

URLSET = """<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <url>
    <loc>https://abh.ai/</loc>
    <lastmod>2022-06-25T20:46Z</lastmod>
    <changefreq>weekly</changefreq>
    <priority>1.0</priority>
  </url>
  <url>
    <loc>https://abh.ai/about</loc>
  </url>
</urlset>
"""

INDEX = """<?xml version="1.0" encoding="UTF-8"?>
<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <sitemap><loc>https://abh.ai/sitemap-1.xml</loc></sitemap>
  <sitemap><loc>https://abh.ai/sitemap-2.xml</loc><lastmod>2024-01-01</lastmod></sitemap>
</sitemapindex>
"""


def test_parse_urlset_with_defaults() -> None:
    entries = parse_urlset(URLSET)
    assert [e.loc for e in entries] == ["https://abh.ai/", "https://abh.ai/about"]
    assert entries[0].changefreq == "weekly"
    assert entries[0].priority == "1.0"
    assert entries[1].changefreq == "daily"
    assert entries[1].lastmod == "2021-12-28T08:37Z"
    assert entries[1].priority == "0.5"


def test_parse_urlset_accepts_bytes() -> None:
    assert len(parse_urlset(URLSET.encode("utf-8"))) == 2


def test_parse_sitemap_index() -> None:
    refs = parse_sitemap_index(INDEX)
    assert [r.loc for r in refs] == ["https://abh.ai/sitemap-1.xml", "https://abh.ai/sitemap-2.xml"]


def test_index_is_not_a_urlset_and_vice_versa() -> None:
    with pytest.raises(SitemapParseError):
        parse_urlset(INDEX)
    with pytest.raises(SitemapParseError):
        parse_sitemap_index(URLSET)


def test_garbage_is_rejected() -> None:
    with pytest.raises(SitemapParseError):
        parse_urlset("<html><body>Not found</body></html>")
