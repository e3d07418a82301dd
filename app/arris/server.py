"""
Server mode: a single /metrics handler that re-scrapes the modem on every request.
"""

import io

import structlog
from aiohttp import web
from arris import metrics
from arris.scrape import export_metrics
from arris.session import ModemSession
from err.exceptions import ModemScrapeError
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

log = structlog.get_logger(__name__)

SESSION_KEY = web.AppKey("modem_session", ModemSession)


async def metrics_handler(request: web.Request) -> web.Response:
    """Scrape the modem and reply with whatever channel lines were written, then the meta metrics.

    On failure, the error is logged and the reply still goes out as a 200 with the partial body.
    Known limitation; Prometheus will happily ingest the partial scrape.
    """
    session = request.app[SESSION_KEY]
    buf = io.StringIO()
    try:
        await export_metrics(session, buf)
    except ModemScrapeError as e:
        log.error("Failed to scrape modem", error=str(e), error_type=type(e).__name__)
    else:
        log.info("Successfully fetched metrics")

    body = buf.getvalue().encode() + generate_latest(metrics.META_REGISTRY)
    return web.Response(body=body, headers={"Content-Type": CONTENT_TYPE_LATEST})


async def _close_session(app: web.Application) -> None:
    await app[SESSION_KEY].close()


def build_app(session: ModemSession) -> web.Application:
    app = web.Application()
    app[SESSION_KEY] = session
    app.router.add_get("/metrics", metrics_handler)
    app.on_cleanup.append(_close_session)
    return app


def split_http_addr(http_addr: str) -> tuple[str | None, int]:
    """'0.0.0.0:1234' -> ('0.0.0.0', 1234); ':1234' -> (None, 1234) which binds every interface."""
    host, sep, port = http_addr.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"Expected host:port, got '{http_addr}'")
    # [::1]:1234
    host = host.strip("[]")
    return (host or None), int(port)
