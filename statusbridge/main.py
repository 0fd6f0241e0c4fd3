#!/usr/bin/env python3
"""
statusbridge - Prometheus to Statuspage metrics bridge

Flow:
- Load settings (YAML file, environment, CLI) and the query definitions file
- Build one PrometheusSource and one Statuspage sink for the process lifetime
- Run every query once (as a backfill when --backfill is given) and push
- Then query and push again every --interval, until killed
- Optionally serve /health and /api/status on --status-port
"""

import argparse
import asyncio
import logging
from pathlib import Path

import uvicorn

from .config import BridgeConfig, build_config, load_queries
from .errors import ConfigError
from .prometheus import PrometheusSource
from .runner import QueryRunner
from .scheduler import Scheduler
from .sources import MetricSink
from .statuspage import LoggingSink, StatuspageSink
from .web import create_app

logger = logging.getLogger("statusbridge")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Push Prometheus query results to Statuspage system metrics")
    parser.add_argument("--settings", type=Path,
                        help="optional YAML settings file")
    parser.add_argument("--prometheus-url", dest="prometheus_url",
                        help="URL of Prometheus server (default: http://localhost:9090)")
    parser.add_argument("--statuspage-api-key", dest="statuspage_api_key",
                        help="Statuspage API key")
    parser.add_argument("--statuspage-page-id", dest="statuspage_page_id",
                        help="Statuspage page ID")
    parser.add_argument("--config",
                        help="query config file (default: queries.yaml)")
    parser.add_argument("--interval",
                        help="metric push interval, e.g. 30s (default: 30s)")
    parser.add_argument("--rounding", type=int,
                        help="round metric values to this many decimal places (default: 6)")
    parser.add_argument("--backfill",
                        help="backfill the data points in, for example, 5d")
    parser.add_argument("--timeout", type=float,
                        help="HTTP timeout in seconds (default: 30)")
    parser.add_argument("--status-host", dest="status_host",
                        help="bind address of the status app (default: 127.0.0.1)")
    parser.add_argument("--status-port", dest="status_port", type=int,
                        help="serve /health and /api/status on this port")
    parser.add_argument("--once", action="store_true", default=None,
                        help="run the first cycle only and exit")
    parser.add_argument("--dry-run", dest="dry_run", action="store_true", default=None,
                        help="log payloads instead of pushing them")
    parser.add_argument("--log-level", dest="log_level",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="logging level")
    return parser


def build_sink(config: BridgeConfig) -> MetricSink:
    if config.dry_run:
        return LoggingSink()
    return StatuspageSink(config.statuspage_api_key, config.statuspage_page_id, timeout=config.timeout)


def build_scheduler(config: BridgeConfig) -> Scheduler:
    """Wire collaborators once for the whole process."""
    queries = load_queries(Path(config.config))
    config.check_credentials()

    source = PrometheusSource(config.prometheus_url, timeout=config.timeout)
    runner = QueryRunner(source, queries, step=config.interval_delta, decimal=config.rounding)
    return Scheduler(runner, build_sink(config), interval=config.interval_delta, backfill=config.backfill_delta)


async def run_bridge(config: BridgeConfig, scheduler: Scheduler) -> None:
    if config.once or config.status_port is None:
        await scheduler.run(once=config.once)
        return

    server = uvicorn.Server(uvicorn.Config(
        create_app(scheduler),
        host=config.status_host,
        port=config.status_port,
        log_level="warning",
        access_log=False,
    ))
    logger.info(f"status app listening on {config.status_host}:{config.status_port}")
    await asyncio.gather(scheduler.run(), server.serve())


def main(argv=None):
    args = build_parser().parse_args(argv)

    try:
        config = build_config(args.settings, args)
    except ConfigError as e:
        raise SystemExit(f"ERROR: {e}")

    logging.basicConfig(level=getattr(logging, config.log_level), format=LOG_FORMAT)
    logger.info(
        f"statusbridge starting: prometheus={config.prometheus_url}, interval={config.interval}, "
        f"rounding={config.rounding}, backfill={config.backfill or 'none'}"
    )

    try:
        scheduler = build_scheduler(config)
    except ConfigError as e:
        logger.error(str(e))
        raise SystemExit(1)

    try:
        asyncio.run(run_bridge(config, scheduler))
    except KeyboardInterrupt:
        print("\nInterrupted. Bye!")


if __name__ == "__main__":
    main()
