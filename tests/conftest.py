from __future__ import annotations

import asyncio
from collections import Counter
from typing import Dict, List, Optional, Set, Tuple

import pytest

from sitewarmer.utils.http import FetchResult


class FakeSite:
    """
    In-memory stand-in for the HTTP collaborator. Serves registered URLs,
    answers 404 for everything else and counts every request.
    """

    def __init__(self, latency: float = 0.0) -> None:
        self.latency = latency
        self.pages: Dict[str, Tuple[int, bytes, str]] = {}
        self.broken: Set[str] = set()
        self.calls: Counter = Counter()
        self.order: List[str] = []

    def add(self, url: str, body: str = "", status: int = 200, content_type: str = "text/html") -> "FakeSite":
        self.pages[url] = (status, body.encode("utf-8"), content_type)
        return self

    def fail(self, url: str) -> "FakeSite":
        self.broken.add(url)
        return self

    async def __call__(self, url: str) -> FetchResult:
        self.calls[url] += 1
        self.order.append(url)
        await asyncio.sleep(self.latency)
        if url in self.broken:
            return FetchResult(url=url, status=0, elapsed_ms=1.0, error="Connection refused")
        status, body, content_type = self.pages.get(url, (404, b"not found", "text/plain"))
        return FetchResult(
            url=url,
            status=status,
            elapsed_ms=5.0,
            body=body,
            headers={"Content-Type": content_type},
        )


def html_page(links: Optional[List[str]] = None, assets: Optional[List[str]] = None) -> str:
    anchors = "".join(f'<a href="{u}">{u}</a>' for u in (links or []))
    styles = "".join(f'<link rel="stylesheet" href="{u}">' for u in (assets or []))
    return f"<html><head>{styles}</head><body>{anchors}</body></html>"


@pytest.fixture
def site() -> FakeSite:
    return FakeSite()
