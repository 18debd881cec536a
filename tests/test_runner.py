from __future__ import annotations

import asyncio

import pytest

from conftest import FakeSite, html_page
from sitewarmer.config import WarmerConfig
from sitewarmer.errors import SitemapNotFoundError
from sitewarmer.runner import DiscoveryMode, ExecutionMode, Orchestrator

BASE = "http://site.test"

SITEMAP = (
    '<?xml version="1.0"?><urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">'
    f"<url><loc>{BASE}/a</loc></url><url><loc>{BASE}/b</loc></url></urlset>"
)


def config(**overrides) -> WarmerConfig:
    base = dict(url=f"{BASE}/", concurrency=2, delay=0, repetitions=1, user_agent="test-agent")
    base.update(overrides)
    return WarmerConfig(**base)


@pytest.mark.parametrize(
    "overrides, discovery, execution",
    [
        ({}, DiscoveryMode.SINGLE_URL, ExecutionMode.SUSTAINED_LOAD),
        ({"sitemap": True}, DiscoveryMode.SITEMAP, ExecutionMode.SUSTAINED_LOAD),
        ({"crawl": True}, DiscoveryMode.SITEMAP, ExecutionMode.CRAWL_ONCE),
        ({"follow_links": True, "sitemap": True}, DiscoveryMode.FOLLOW_LINKS, ExecutionMode.SUSTAINED_LOAD),
        ({"follow_links": True, "crawl": True}, DiscoveryMode.FOLLOW_LINKS, ExecutionMode.CRAWL_ONCE),
    ],
)
def test_mode_selection(overrides, discovery, execution) -> None:
    orchestrator = Orchestrator(config(**overrides))
    assert orchestrator.discovery_mode is discovery
    assert orchestrator.execution_mode is execution


@pytest.mark.asyncio
async def test_single_url_mode(site: FakeSite) -> None:
    site.add(f"{BASE}/", "ok", content_type="text/plain")
    orchestrator = Orchestrator(config(repetitions=2))

    targets = await orchestrator.run(site)

    assert targets == [f"{BASE}/"]
    assert orchestrator.stats.transactions == 4


@pytest.mark.asyncio
async def test_sitemap_crawl_visits_every_url_once(site: FakeSite) -> None:
    site.add(f"{BASE}/sitemap.xml", SITEMAP, content_type="application/xml")
    site.add(f"{BASE}/a", html_page(assets=["/style.css"]))
    site.add(f"{BASE}/b", html_page(assets=["/style.css"]))
    orchestrator = Orchestrator(config(crawl=True, concurrency=4))

    targets = await orchestrator.run(site)

    assert targets == [f"{BASE}/a", f"{BASE}/b"]
    assert site.calls[f"{BASE}/a"] == 1
    assert site.calls[f"{BASE}/b"] == 1
    assert site.calls[f"{BASE}/style.css"] == 1


@pytest.mark.asyncio
async def test_follow_links_ignores_sitemap(site: FakeSite) -> None:
    site.add(f"{BASE}/sitemap.xml", SITEMAP, content_type="application/xml")
    site.add(f"{BASE}/", html_page([f"{BASE}/next"]))
    site.add(f"{BASE}/next", html_page([f"{BASE}/"]))
    orchestrator = Orchestrator(config(follow_links=True, sitemap=True, discovery_threads=2, no_assets=True))

    targets = await asyncio.wait_for(orchestrator.run(site), timeout=10)

    assert targets == [f"{BASE}/", f"{BASE}/next"]
    assert site.calls[f"{BASE}/sitemap.xml"] == 0
    # One discovery fetch plus one load-test fetch per page.
    assert site.calls[f"{BASE}/next"] == 2
    assert orchestrator.stats.transactions == 2


@pytest.mark.asyncio
async def test_missing_sitemap_is_fatal_before_any_load(site: FakeSite) -> None:
    orchestrator = Orchestrator(config(sitemap=True))
    with pytest.raises(SitemapNotFoundError):
        await orchestrator.run(site)
    assert orchestrator.stats.transactions == 0


def test_finish_finalizes_once() -> None:
    orchestrator = Orchestrator(config())
    orchestrator.stats.record(10.0, 100, 200)

    first = orchestrator.finish(interrupted=True)
    end_time = orchestrator.stats.end_time
    second = orchestrator.finish()

    assert second is first
    assert orchestrator.stats.end_time == end_time
    assert first.interrupted
    assert first.metrics.transactions == 1
    assert first.mode == "single-url/load"


def test_random_user_agent_when_unset() -> None:
    orchestrator = Orchestrator(WarmerConfig(url=f"{BASE}/"))
    assert orchestrator.user_agent
