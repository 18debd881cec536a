from __future__ import annotations

import logging
import os

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}


def setup_logging(level: str | int | None = None, *, verbose: bool = False) -> None:
    """
    Configure application logging with a consistent, upgrade-friendly formatter.
    An explicit level wins; otherwise ``verbose`` selects DEBUG, which also
    turns on the per-transaction lines.
    """
    if level is None:
        level = "DEBUG" if verbose else os.getenv("WARMER_LOG_LEVEL", "INFO")

    if isinstance(level, str):
        level = _LEVELS.get(level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )
    # Third-party loggers stay at INFO even with -v.
    for noisy in ("asyncio", "aiohttp", "urllib3"):
        logging.getLogger(noisy).setLevel(max(level, logging.INFO))
