from __future__ import annotations

from dataclasses import dataclass, asdict, fields
from typing import Optional, Dict, Any
from urllib.parse import urlparse
import os
import json
import re

from .errors import DurationFormatError
from .version import CONFIG_SCHEMA_VERSION

DEFAULT_URL = "http://localhost"
DEFAULT_EXPORTER = "sitewarmer.export.json_exporter:JSONExporter"

_DURATION_RE = re.compile(r"^(\d+)([SMH])$", re.IGNORECASE)
_DURATION_UNITS = {"S": 1, "M": 60, "H": 3600}


def parse_duration(text: str) -> int:
    """
    Parse a siege-style duration ("30S", "5m", "1H") into seconds.
    """
    match = _DURATION_RE.match(text.strip())
    if not match:
        raise DurationFormatError(text)
    value, unit = match.groups()
    return int(value) * _DURATION_UNITS[unit.upper()]


def default_discovery_threads() -> int:
    # Half the cores, clamped to [2, 8].
    cores = os.cpu_count() or 1
    return min(8, max(2, cores // 2))


@dataclass
class WarmerConfig:
    """
    Canonical configuration object passed throughout the system.
    Keep it dataclass-only (no heavy deps) to stay upgrade-friendly.
    """
    schema_version: int = CONFIG_SCHEMA_VERSION
    url: str = DEFAULT_URL
    concurrency: int = 25
    # Seconds; None means no time bound.
    duration: Optional[float] = None
    repetitions: Optional[int] = None
    delay: float = 1.0
    verbose: bool = False
    # Discovery / execution modes
    sitemap: bool = False
    internet: bool = False
    no_assets: bool = False
    crawl: bool = False
    follow_links: bool = False
    js: bool = False
    discovery_threads: Optional[int] = None
    request_timeout: float = 30.0
    # None picks a random browser user agent once per run.
    user_agent: Optional[str] = None
    # Dotted path for the exporter to allow runtime swapping without code changes.
    exporter: str = DEFAULT_EXPORTER
    output_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @property
    def bounded(self) -> bool:
        return self.duration is not None or self.repetitions is not None

    @property
    def effective_discovery_threads(self) -> int:
        return self.discovery_threads or default_discovery_threads()

    # ---------- Loaders ----------

    @classmethod
    def from_env(cls) -> "WarmerConfig":
        """
        Build config from environment variables (all optional).
        """
        def _get(name: str, default: str) -> str:
            return os.getenv(name, default)

        def _opt_int(name: str) -> Optional[int]:
            raw = os.getenv(name, "").strip()
            return int(raw) if raw else None

        raw_time = os.getenv("WARMER_TIME", "").strip()

        return cls(
            url=_get("WARMER_URL", DEFAULT_URL),
            concurrency=int(_get("WARMER_CONCURRENCY", "25")),
            duration=parse_duration(raw_time) if raw_time else None,
            repetitions=_opt_int("WARMER_REPETITIONS"),
            delay=float(_get("WARMER_DELAY", "1")),
            discovery_threads=_opt_int("WARMER_DISCOVERY_THREADS"),
            request_timeout=float(_get("WARMER_REQUEST_TIMEOUT", "30")),
            user_agent=os.getenv("WARMER_USER_AGENT") or None,
            exporter=_get("WARMER_EXPORTER", DEFAULT_EXPORTER),
            output_path=os.getenv("WARMER_OUTPUT_PATH") or None,
        )

    @classmethod
    def from_file(cls, path: str | os.PathLike[str]) -> "WarmerConfig":
        """
        Load configuration from a JSON file. Supports schema migration for future versions.
        """
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        data = migrate_config(data)
        if isinstance(data.get("duration"), str):
            data["duration"] = parse_duration(data["duration"])
        unknown = sorted(set(data) - {field.name for field in fields(cls)})
        if unknown:
            raise ValueError(f"Unknown config keys in {path}: {', '.join(unknown)}")
        return cls(**data)

    # ---------- Validation ----------

    def validate(self) -> None:
        parsed = urlparse(self.url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"url must be an absolute http(s) URL, got {self.url!r}")
        if self.concurrency <= 0:
            raise ValueError("concurrency must be > 0")
        if self.delay < 0:
            raise ValueError("delay must be >= 0")
        if self.duration is not None and self.duration <= 0:
            raise ValueError("duration must be > 0")
        if self.repetitions is not None and self.repetitions <= 0:
            raise ValueError("repetitions must be > 0")
        if self.discovery_threads is not None and self.discovery_threads <= 0:
            raise ValueError("discovery_threads must be > 0")
        if self.js and not self.follow_links:
            raise ValueError("js discovery requires follow_links")


def migrate_config(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Migrate config dict to the latest schema version.
    Keep this pure and additive. Add migrations here as you bump schema.
    """
    schema = raw.get("schema_version", 1)

    if schema < 2:
        # v1 files stored the duration as a siege string under "time".
        if "time" in raw:
            raw_time = raw.pop("time")
            raw["duration"] = parse_duration(raw_time) if raw_time else None
        if "concurrent" in raw:
            raw["concurrency"] = raw.pop("concurrent")
        raw["schema_version"] = 2

    raw.setdefault("schema_version", CONFIG_SCHEMA_VERSION)
    return raw
