from __future__ import annotations

from typing import Any, Dict, List, Optional
import logging

try:
    from fastapi import FastAPI, HTTPException
    from pydantic import BaseModel, Field
except Exception as exc:  # pragma: no cover - optional dependency
    raise RuntimeError(
        "FastAPI not installed. Install with `pip install sitewarmer[api]` "
        "or avoid using the API server."
    ) from exc

from ..config import WarmerConfig
from ..errors import StartupError
from ..runner import Orchestrator
from ..utils.http import create_session, make_fetcher
from ..version import __version__

logger = logging.getLogger(__name__)

app = FastAPI(title="sitewarmer API", version=__version__)


class DiscoverRequest(BaseModel):
    url: str
    follow_links: bool = False
    sitemap: bool = True
    js: bool = False
    discovery_threads: Optional[int] = Field(default=None, gt=0)
    # Discovery alone does not load-test assets unless asked to.
    no_assets: bool = True


class WarmRequest(BaseModel):
    url: str
    concurrency: int = Field(default=25, gt=0)
    duration: Optional[float] = Field(default=None, gt=0)
    repetitions: Optional[int] = Field(default=None, gt=0)
    delay: float = Field(default=1.0, ge=0)
    sitemap: bool = False
    follow_links: bool = False
    crawl: bool = False
    internet: bool = False
    no_assets: bool = False


def _config(**overrides: Any) -> WarmerConfig:
    cfg = WarmerConfig.from_env()
    for key, value in overrides.items():
        if value is not None:
            setattr(cfg, key, value)
    try:
        cfg.validate()
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return cfg


@app.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok", "version": __version__}


@app.post("/discover")
async def discover(req: DiscoverRequest) -> Dict[str, List[str]]:
    cfg = _config(**req.model_dump())
    orchestrator = Orchestrator(cfg)
    urls = await _discover_only(orchestrator)
    return {"urls": urls}


async def _discover_only(orchestrator: Orchestrator) -> List[str]:
    session = create_session()
    try:
        fetcher = make_fetcher(
            session,
            timeout=orchestrator.config.request_timeout,
            user_agent=orchestrator.user_agent,
        )
        return await orchestrator.discover(fetcher)
    except StartupError as exc:
        raise HTTPException(status_code=404, detail=f"{exc} {exc.hint or ''}".strip()) from exc
    finally:
        await session.close()


@app.post("/warm")
async def warm(req: WarmRequest) -> Dict[str, Any]:
    if not req.crawl and req.duration is None and req.repetitions is None:
        # An unbounded run would never return a response.
        raise HTTPException(status_code=422, detail="Set duration or repetitions, or use crawl mode")

    cfg = _config(**req.model_dump())
    orchestrator = Orchestrator(cfg)
    try:
        await orchestrator.run()
    except StartupError as exc:
        raise HTTPException(status_code=404, detail=f"{exc} {exc.hint or ''}".strip()) from exc
    report = orchestrator.finish()
    logger.info("API run for %s finished: %d transactions", cfg.url, report.metrics.transactions)
    return report.to_dict()
