#!/usr/bin/env python3
"""
Main / entry point for the SB family modem scraper.

With no -http-addr: scrape once, print metrics to stdout and exit.
With -http-addr: serve /metrics and re-scrape on every request.
"""
import argparse
import asyncio
import sys
from os import getenv

import structlog
from aiohttp import web
from arris.scrape import export_metrics
from arris.server import build_app, split_http_addr
from arris.session import ModemSession
from err.exceptions import ModemScrapeError
from util.const import DEFAULT_MODEM_ADDR, DEFAULT_MODEM_USERNAME, LogLevel

log = structlog.get_logger(__name__)


def configure_logging(level_name: str | None) -> LogLevel:
    """Logs always go to stderr; in one-shot mode stdout is reserved for the metrics."""
    if level_name not in LogLevel.__members__:
        log_level = LogLevel.INFO
    else:
        log_level = LogLevel[level_name]

    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(log_level.value),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )
    return log_level


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    # Everything defaults from env-vars; k8s makes it trivial to define those. Flags win if given.
    parser = argparse.ArgumentParser(description="Scrape an Arris SB modem into Prometheus metrics.")
    parser.add_argument(
        "-modem-addr", "--modem-addr",
        dest="modem_addr",
        default=getenv("MODEM_ADDR", DEFAULT_MODEM_ADDR),
        help="Modem address",
    )
    parser.add_argument(
        "-username", "--username",
        dest="username",
        default=getenv("MODEM_USERNAME", DEFAULT_MODEM_USERNAME),
        help="Modem username",
    )
    # Password defaults to the last 8 digits of the SN; impossible to guess so require user provides
    parser.add_argument(
        "-passwd", "--passwd",
        dest="passwd",
        default=getenv("MODEM_PASSWD", ""),
        help="Modem password (default: $MODEM_PASSWD)",
    )
    parser.add_argument(
        "-http-addr", "--http-addr",
        dest="http_addr",
        default=getenv("HTTP_ADDR", ""),
        help="Address like 0.0.0.0:1234. If provided, will run in server mode",
    )
    return parser.parse_args(argv)


async def run_once(session: ModemSession) -> int:
    """One-shot mode. Returns the process exit code."""
    async with session:
        try:
            await export_metrics(session, sys.stdout)
        except ModemScrapeError as e:
            log.error("Failed to scrape modem", error=str(e), error_type=type(e).__name__)
            return 1
    sys.stdout.flush()
    return 0


def serve(session: ModemSession, http_addr: str) -> None:
    host, port = split_http_addr(http_addr)
    log.info("Serving metrics", host=host, port=port)
    web.run_app(build_app(session), host=host, port=port, print=None)


def run(argv: list[str] | None = None) -> int:
    configure_logging(getenv("LOG_LEVEL"))
    args = parse_args(argv)

    if not args.passwd:
        log.warning("No modem password set; login will almost certainly fail. Set MODEM_PASSWD?")

    session = ModemSession(
        addr=args.modem_addr,
        username=args.username,
        password=args.passwd,
        ssl_ciphers=getenv("MODEM_TLS_CIPHERS") or None,
    )

    if args.http_addr:
        serve(session, args.http_addr)
        return 0
    return asyncio.run(run_once(session))


if __name__ == "__main__":
    sys.exit(run())
