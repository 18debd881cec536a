from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List

from ..config import WarmerConfig, parse_duration
from ..errors import DurationFormatError, StartupError
from ..report import RunReport, render_report
from ..runner import Orchestrator
from ..utils.loader import load_symbol
from ..utils.logging import setup_logging
from ..version import __version__

logger = logging.getLogger(__name__)


def _duration_arg(text: str) -> int:
    try:
        return parse_duration(text)
    except DurationFormatError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="sitewarmer",
        description="Warm a site's cache and load test it, siege style",
    )
    p.add_argument("url", nargs="?", default=None, help="Base URL (default http://localhost)")
    p.add_argument("-c", "--concurrent", type=int, default=None, help="Concurrent virtual users (default 25)")
    p.add_argument("-t", "--time", type=_duration_arg, default=None,
                   help="Run duration: a number followed by S, M or H (e.g. 30S, 5M, 1H)")
    p.add_argument("-r", "--repetitions", type=int, default=None, help="Requests per virtual user")
    p.add_argument("-d", "--delay", type=float, default=None,
                   help="Delay between requests in seconds, jittered by up to half (default 1)")
    p.add_argument("-v", "--verbose", action="store_true", help="Log every transaction")
    p.add_argument("--sitemap", action="store_true", help="Discover URLs from robots.txt / sitemap.xml")
    p.add_argument("-i", "--internet", action="store_true", help="Pick URLs at random instead of in order")
    p.add_argument("--no-assets", action="store_true", help="Do not fetch CSS, JS, images and icons")
    p.add_argument("--crawl", action="store_true", help="Visit every discovered URL exactly once")
    p.add_argument("--follow-links", action="store_true", help="Discover URLs by following same-host links")
    p.add_argument("--js", action="store_true", help="Use headless Chromium for --follow-links discovery")
    p.add_argument("--discovery-threads", type=int, default=None,
                   help="Discovery workers (default: half the CPU cores, between 2 and 8)")
    p.add_argument("--config", type=str, default=None, help="Path to config JSON")
    p.add_argument("--exporter", type=str, default=None, help="Exporter dotted path (module:ClassName)")
    p.add_argument("--output", type=str, default=None, help="Write the final report to this file")
    p.add_argument("--log-level", type=str, default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
    p.add_argument("--serve", action="store_true", help="Run REST API server instead of a CLI run")
    p.add_argument("--host", type=str, default="127.0.0.1", help="API host (when --serve)")
    p.add_argument("--port", type=int, default=8000, help="API port (when --serve)")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p


def _load_config(args: argparse.Namespace) -> WarmerConfig:
    if args.config:
        cfg = WarmerConfig.from_file(args.config)
    else:
        cfg = WarmerConfig.from_env()

    if args.url:
        cfg.url = args.url
    if args.concurrent is not None:
        cfg.concurrency = args.concurrent
    if args.time is not None:
        cfg.duration = args.time
    if args.repetitions is not None:
        cfg.repetitions = args.repetitions
    if args.delay is not None:
        cfg.delay = args.delay
    if args.discovery_threads is not None:
        cfg.discovery_threads = args.discovery_threads
    if args.exporter:
        cfg.exporter = args.exporter
    if args.output:
        cfg.output_path = args.output
    for flag in ("verbose", "sitemap", "internet", "no_assets", "crawl", "follow_links", "js"):
        if getattr(args, flag):
            setattr(cfg, flag, True)

    cfg.validate()
    return cfg


def run_server(host: str, port: int) -> None:
    try:
        import uvicorn  # type: ignore
    except Exception as exc:  # pragma: no cover - optional dep
        raise SystemExit("To run the API, install dependencies: pip install sitewarmer[api]") from exc
    uvicorn.run("sitewarmer.apis.app:app", host=host, port=port)


def export_report(cfg: WarmerConfig, report: RunReport) -> None:
    if not cfg.output_path:
        return
    try:
        exporter = load_symbol(cfg.exporter)()
        exporter.export(report, cfg.output_path)
    except Exception as exc:
        logger.warning("Failed to export report with %s: %r", cfg.exporter, exc)
        return
    logger.info("Report written to %s", cfg.output_path)


def run_cli(argv: List[str] | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    if args.serve:
        setup_logging(args.log_level)
        run_server(args.host, args.port)
        return 0

    try:
        cfg = _load_config(args)
    except (ValueError, OSError, TypeError) as exc:
        parser.error(str(exc))
    setup_logging(args.log_level, verbose=cfg.verbose)

    if not cfg.crawl and not cfg.bounded:
        logger.info("No --time or --repetitions given; running until interrupted (Ctrl-C)")

    orchestrator = Orchestrator(cfg)
    interrupted = False
    try:
        asyncio.run(orchestrator.run())
    except StartupError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        if exc.hint:
            print(exc.hint, file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        interrupted = True

    report = orchestrator.finish(interrupted=interrupted)
    print(render_report(report))
    export_report(cfg, report)
    return 0
