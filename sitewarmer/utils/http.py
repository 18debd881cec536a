from __future__ import annotations

import asyncio
import random
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Mapping, Optional
from aiohttp import ClientSession, ClientTimeout
import aiohttp
import logging

logger = logging.getLogger(__name__)

USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_2) AppleWebKit/605.1.15 (KHTML, like Gecko) "
    "Version/17.2 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0 Safari/537.36 Edg/120.0",
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_2 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.2 Mobile/15E148 Safari/604.1",
)


@dataclass
class FetchResult:
    """
    Outcome of one GET. ``status`` is 0 when the request failed before a
    response arrived; ``error`` then holds the reason.
    """
    url: str
    status: int
    elapsed_ms: float
    body: bytes = b""
    headers: Mapping[str, str] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.body)

    @property
    def content_type(self) -> str:
        for key, value in self.headers.items():
            if key.lower() == "content-type":
                return value
        return ""

    @property
    def is_html(self) -> bool:
        return "text/html" in self.content_type.lower()

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


#: An injected GET capability: url -> FetchResult.
Fetcher = Callable[[str], Awaitable[FetchResult]]


def pick_user_agent() -> str:
    return random.choice(USER_AGENTS)


async def fetch(
    session: ClientSession,
    url: str,
    *,
    timeout: float = 30.0,
    user_agent: Optional[str] = None,
    headers: Optional[Mapping[str, str]] = None,
) -> FetchResult:
    """
    GET a URL, following redirects, and return status, headers and body.
    Transport failures never raise: they come back as status 0 with the
    elapsed time measured up to the failure.
    """
    request_headers = dict(headers or {})
    if user_agent:
        request_headers["User-Agent"] = user_agent

    start = time.perf_counter()
    try:
        async with session.get(
            url,
            headers=request_headers,
            timeout=ClientTimeout(total=timeout),
            allow_redirects=True,
        ) as resp:
            body = await resp.read()
            return FetchResult(
                url=url,
                status=resp.status,
                elapsed_ms=(time.perf_counter() - start) * 1000.0,
                body=body,
                headers=dict(resp.headers),
            )
    # Transport failures become status 0; anything else is a bug and propagates.
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
        logger.debug("fetch failed for %s: %r", url, exc)
        return FetchResult(
            url=url,
            status=0,
            elapsed_ms=(time.perf_counter() - start) * 1000.0,
            error=str(exc) or exc.__class__.__name__,
        )


def create_session() -> ClientSession:
    """
    Create a shared aiohttp ClientSession that trusts every certificate.
    """
    # Note: caller is responsible for closing the session (await session.close()).
    # ssl=False accepts invalid, expired and self-signed certificates.
    connector = aiohttp.TCPConnector(limit=0, ssl=False)  # unlimited; concurrency managed by worker pools
    return aiohttp.ClientSession(connector=connector)


def make_fetcher(
    session: ClientSession,
    *,
    timeout: float = 30.0,
    user_agent: Optional[str] = None,
) -> Fetcher:
    """Bind a session and request options into a ``Fetcher``."""
    async def _fetch(url: str) -> FetchResult:
        return await fetch(session, url, timeout=timeout, user_agent=user_agent)

    return _fetch
