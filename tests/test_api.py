from __future__ import annotations

import pytest
from fastapi.testclient import TestClient as ApiClient

from sitewarmer.apis.app import app
from sitewarmer.errors import SitemapNotFoundError
from sitewarmer.runner import Orchestrator


@pytest.fixture
def client() -> ApiClient:
    return ApiClient(app)


def test_health(client: ApiClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_unbounded_warm_is_rejected(client: ApiClient) -> None:
    response = client.post("/warm", json={"url": "http://example.test/"})
    assert response.status_code == 422


def test_invalid_url_is_rejected(client: ApiClient) -> None:
    response = client.post("/warm", json={"url": "example.test", "repetitions": 1})
    assert response.status_code == 422


def test_warm_returns_report(client: ApiClient, monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_run(self, fetcher=None):
        self.targets = [self.config.url]
        for _ in range(self.config.repetitions * self.config.concurrency):
            self.stats.record(20.0, 100, 200)
        return self.targets

    monkeypatch.setattr(Orchestrator, "run", fake_run)

    response = client.post("/warm", json={"url": "http://example.test/", "repetitions": 2, "concurrency": 3})

    assert response.status_code == 200
    body = response.json()
    assert body["metrics"]["transactions"] == 6
    assert body["metrics"]["availability"] == 100.0
    assert body["targets"] == ["http://example.test/"]


def test_discover_missing_sitemap(client: ApiClient, monkeypatch: pytest.MonkeyPatch) -> None:
    async def no_sitemap(self, fetcher):
        raise SitemapNotFoundError(self.config.url)

    monkeypatch.setattr(Orchestrator, "discover", no_sitemap)

    response = client.post("/discover", json={"url": "http://example.test/"})

    assert response.status_code == 404
    assert "--follow-links" in response.json()["detail"]


def test_discover_returns_urls(client: ApiClient, monkeypatch: pytest.MonkeyPatch) -> None:
    async def found(self, fetcher):
        return ["http://example.test/a", "http://example.test/b"]

    monkeypatch.setattr(Orchestrator, "discover", found)

    response = client.post("/discover", json={"url": "http://example.test/", "follow_links": True})

    assert response.status_code == 200
    assert response.json() == {"urls": ["http://example.test/a", "http://example.test/b"]}


@pytest.mark.parametrize("payload, no_assets", [({}, True), ({"no_assets": False}, False)])
def test_discover_skips_asset_load_by_default(
    client: ApiClient, monkeypatch: pytest.MonkeyPatch, payload, no_assets: bool
) -> None:
    seen = {}

    async def found(self, fetcher):
        seen["no_assets"] = self.config.no_assets
        return [self.config.url]

    monkeypatch.setattr(Orchestrator, "discover", found)

    response = client.post("/discover", json={"url": "http://example.test/", "follow_links": True, **payload})

    assert response.status_code == 200
    assert seen["no_assets"] is no_assets
