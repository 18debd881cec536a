from __future__ import annotations

from typing import Optional

FOLLOW_LINKS_HINT = "Try --follow-links to discover pages by following links instead."


class WarmerError(Exception):
    """Base class for all sitewarmer errors."""


class StartupError(WarmerError):
    """
    Raised when the run cannot start: no targets could be resolved.
    Carries an optional hint that the CLI prints under the diagnostic.
    """

    def __init__(self, message: str, hint: Optional[str] = None) -> None:
        super().__init__(message)
        self.hint = hint


class SitemapNotFoundError(StartupError):
    def __init__(self, base_url: str) -> None:
        super().__init__(f"No sitemap found for {base_url}", hint=FOLLOW_LINKS_HINT)
        self.base_url = base_url


class NoUrlsFoundError(StartupError):
    def __init__(self, source: str) -> None:
        super().__init__(f"No URLs found in {source}", hint=FOLLOW_LINKS_HINT)
        self.source = source


class SitemapParseError(WarmerError, ValueError):
    """The XML document is not the expected kind of sitemap."""


class DurationFormatError(ValueError):
    def __init__(self, text: str) -> None:
        super().__init__(
            f"Invalid duration {text!r}: expected a number followed by S, M or H (e.g. 30S, 5M, 1H)"
        )
        self.text = text
