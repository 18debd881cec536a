from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List
from urllib.parse import urlparse

from ..stats import Stats, Transaction
from ..utils.http import FetchResult

# Per-transaction lines, siege style. Enabled with -v (DEBUG).
transaction_logger = logging.getLogger("sitewarmer.transactions")


@dataclass
class PageDiscovery:
    """Links and static assets found on one page."""
    links: List[str] = field(default_factory=list)
    assets: List[str] = field(default_factory=list)


class PageSource(ABC):
    """
    Fetch-and-extract capability used by the frontier. Implementations own
    how a page is loaded (plain HTTP, headless browser); the frontier owns
    queueing, deduplication and host filtering.
    """

    async def __aenter__(self) -> "PageSource":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    @abstractmethod
    async def discover(self, url: str) -> PageDiscovery:  # pragma: no cover - interface
        ...

    async def close(self) -> None:
        return None


def record_result(stats: Stats, result: FetchResult, *, main: bool = True) -> Transaction:
    """
    Turn a fetch outcome into a Transaction, add it to ``stats`` and log the
    siege-style line for it.
    """
    txn = Transaction(
        url=result.url,
        status=result.status,
        elapsed_ms=result.elapsed_ms,
        size=result.size,
        main=main,
    )
    stats.add(txn)
    if transaction_logger.isEnabledFor(logging.DEBUG):
        path = urlparse(result.url).path or "/"
        if result.status == 0:
            transaction_logger.debug(
                "HTTP/1.1 0     %.2f secs: %7d bytes ==> GET  %s (%s)",
                result.elapsed_ms / 1000.0, 0, result.url, result.error,
            )
        else:
            transaction_logger.debug(
                "HTTP/1.1 %d     %.2f secs: %7d bytes ==> GET  %s",
                result.status, result.elapsed_ms / 1000.0, result.size, path,
            )
    return txn
