from __future__ import annotations

import logging
import re
from typing import Iterable, List, Optional
from urllib.parse import urljoin, urlparse, urlunparse

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

_SKIPPED_LINK_PREFIXES = ("#", "javascript:", "mailto:", "tel:")
_SITEMAP_DIRECTIVE_RE = re.compile(r"^\s*sitemap\s*:\s*(\S+)", re.IGNORECASE | re.MULTILINE)


def normalize_url(url: str) -> str:
    """
    Normalize URL by removing the fragment.
    """
    parts = list(urlparse(url))
    parts[5] = ""  # strip fragment
    return urlunparse(parts)


def host_of(url: str) -> str:
    """
    Host component of a URL: netloc without userinfo or port, case preserved.
    """
    netloc = urlparse(url).netloc.rpartition("@")[2]
    if netloc.startswith("["):
        return netloc[: netloc.find("]") + 1]
    return netloc.split(":", 1)[0]


def origin_of(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


def same_host(url: str, host: str) -> bool:
    return host_of(url) == host


def coerce_scheme(url: str, scheme: str) -> str:
    """Rewrite ``url`` to use ``scheme`` (http <-> https)."""
    parsed = urlparse(url)
    if parsed.scheme == scheme or parsed.scheme not in ("http", "https"):
        return url
    return urlunparse(parsed._replace(scheme=scheme))


def _absolute(base_url: str, ref: str) -> Optional[str]:
    try:
        url = normalize_url(urljoin(base_url, ref.strip()))
    except ValueError as exc:
        logger.debug("Skipping unparseable URL %r on %s: %r", ref, base_url, exc)
        return None
    if urlparse(url).scheme not in ("http", "https"):
        return None
    return url


def _unique(urls: Iterable[Optional[str]]) -> List[str]:
    seen = set()
    out: List[str] = []
    for u in urls:
        if u and u not in seen:
            seen.add(u)
            out.append(u)
    return out


def resolve_links(hrefs: Iterable[str], base_url: str, same_host_only: bool = True) -> List[str]:
    """
    Turn raw anchor hrefs into absolute, fragment-free page URLs.
    Fragment-only, javascript:, mailto: and tel: targets are skipped.
    """
    base_host = host_of(base_url)
    out: List[Optional[str]] = []
    for href in hrefs:
        href = (href or "").strip()
        if not href or href.lower().startswith(_SKIPPED_LINK_PREFIXES):
            continue
        url = _absolute(base_url, href)
        if url and (not same_host_only or same_host(url, base_host)):
            out.append(url)
    return _unique(out)


def resolve_assets(refs: Iterable[str], base_url: str) -> List[str]:
    """Absolute asset URLs for raw ``src``/``href`` values; data URIs are dropped."""
    out: List[Optional[str]] = []
    for ref in refs:
        if not ref or ref.strip().lower().startswith("data:"):
            continue
        out.append(_absolute(base_url, ref))
    return _unique(out)


def extract_links(html: str, base_url: str, same_host_only: bool = True) -> List[str]:
    """
    Extract absolute page links (anchor hrefs) from an HTML string.
    """
    soup = BeautifulSoup(html, "html.parser")
    hrefs = [a.get("href") or "" for a in soup.select("a[href]")]
    return resolve_links(hrefs, base_url, same_host_only=same_host_only)


def extract_assets(html: str, base_url: str) -> List[str]:
    """
    Extract static asset URLs: stylesheets, scripts, images (no inline data
    URIs) and icons, resolved against ``base_url``.
    """
    soup = BeautifulSoup(html, "html.parser")
    refs: List[str] = []
    for link in soup.find_all("link", href=True):
        rel = [r.lower() for r in (link.get("rel") or [])]
        if "stylesheet" in rel or any("icon" in r for r in rel):
            refs.append(link["href"])
    for script in soup.find_all("script", src=True):
        refs.append(script["src"])
    for img in soup.find_all("img", src=True):
        refs.append(img["src"])
    return resolve_assets(refs, base_url)


def find_sitemap_directive(robots_txt: str) -> Optional[str]:
    """Return the first ``Sitemap:`` URL in a robots.txt body, if any."""
    match = _SITEMAP_DIRECTIVE_RE.search(robots_txt)
    return match.group(1) if match else None
