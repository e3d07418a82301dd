"""
Implementation of the login, page fetch and the full fetch -> parse -> write pipeline.
"""

import asyncio
import base64
import http.cookies
from collections.abc import Callable
from typing import TypeVar

import structlog
from aiohttp import ClientError
from arris import metrics, parse
from arris.session import ModemSession
from bs4 import BeautifulSoup
from err.exceptions import AuthenticationError, ModemScrapeError, NetworkError
from multidict import CIMultiDictProxy
from util.const import CONN_STATUS_ENDPOINT
from yarl import URL

log = structlog.get_logger(__name__)

T = TypeVar("T")


async def _get(
    session: ModemSession,
    url: str | URL,
    scrape_target: str,
    headers: dict[str, str] | None = None,
) -> tuple[int, str, CIMultiDictProxy]:
    """GET `url`, read the whole body. Any transport level failure becomes a NetworkError."""
    client = session.client()
    try:
        with metrics.s_meta_scrape_time.labels(scrape_target).time():
            async with client.get(url, headers=headers) as resp:
                metrics.c_meta_scrape_result.labels(resp.status, scrape_target).inc()
                body = await resp.text(errors="replace")
                return resp.status, body, resp.headers
    except (ClientError, asyncio.TimeoutError) as e:
        raise NetworkError(
            f"Request to modem failed. target={scrape_target}", payload=repr(e)
        ) from e


def _credentials(session: ModemSession) -> bytes:
    # user:pass has no way to carry a ':' in the username
    if ":" in session.username:
        raise AuthenticationError(
            "Modem username must not contain ':'", payload=session.username
        )
    # UTF-8 for both the header and the URL so the two halves of the login always agree
    return f"{session.username}:{session.password}".encode("utf-8")


def _basic_auth_header(session: ModemSession) -> dict[str, str]:
    return {"Authorization": f"Basic {base64.b64encode(_credentials(session)).decode()}"}


def _login_url(session: ModemSession) -> URL:
    # For reasons that I don't understand, the modem wants the Basic Auth string in the URL as well.
    # If the token is not sent in the URL, the modem will redirect to the login page.
    # If the basic auth header is not sent as well, the modem will redirect to the login page.
    ##
    creds = base64.urlsafe_b64encode(_credentials(session)).decode()
    # encoded=True: the modem wants the query string exactly as-is, padding and all
    return URL(f"{session.base_url}{CONN_STATUS_ENDPOINT}?login_{creds}", encoded=True)


def _status_url(session: ModemSession) -> URL:
    return URL(
        f"{session.base_url}{CONN_STATUS_ENDPOINT}?ct_{session.token}", encoded=True
    )


async def do_login(session: ModemSession) -> None:
    """Runs the login dance and stores the token on the session.

    Caller MUST already hold `session.lock`.

    An auth request will only succeed after the landing page has been presented so that has to be
    requested first; what it returns doesn't matter.
    If credentials are accepted, the body of the login response IS the token.
    """
    login_url = _login_url(session)
    auth_header = _basic_auth_header(session)

    status, _, _ = await _get(session, f"{session.base_url}/", "root")
    log.debug("Landing page", status=status)

    status, body, headers = await _get(session, login_url, "login", headers=auth_header)
    if status != 200:
        # In testing, i've only ever seen 401 and 200s
        if status == 401:
            _e = "Modem indicated authentication details are incorrect. Check for extra/incorrect quotes in your env-vars?"
        else:
            _e = "Failed to log in."
        raise AuthenticationError(_e, status_code=status)

    # Make sure whatever cookie came back with the token ends up in the jar too
    for set_cookie_header in headers.getall("Set-Cookie", []):
        cookie = http.cookies.SimpleCookie()
        cookie.load(set_cookie_header)
        session.client().cookie_jar.update_cookies(cookie)

    session.token = body
    log.info("Authenticated to modem", cookies=len(session.client().cookie_jar))


async def ensure_authenticated(session: ModemSession) -> ModemSession:
    """Log in unless we're already holding a token."""
    async with session.lock:
        if not session.token:
            await do_login(session)
    return session


async def _fetch_status_page(session: ModemSession) -> BeautifulSoup:
    status, body, _ = await _get(session, _status_url(session), "connection_data")
    if status != 200:
        # An expired token usually comes back as a 200 w/ the login page; let the caller sort out what this is.
        log.warning("Non 200/OK fetching connection status", status=status)
    return BeautifulSoup(body, "html.parser")


async def fetch_page(session: ModemSession) -> BeautifulSoup:
    """Fetch + parse the connection status page, logging in if needed.

    A cached token is tried first. If that lands on the Login page, the token is stale: log in again
    and fetch exactly once more. Whatever that second fetch returns is returned as-is; it's up to the
    caller to notice that it's still the Login page.
    """
    async with session.lock:
        if session.token:
            page = await _fetch_status_page(session)
            if not parse.is_login_page(page):
                return page
            log.warning("Cached token landed on Login page. Re-authing.")
            session.invalidate()

        await do_login(session)
        return await _fetch_status_page(session)


def _parse_and_count(
    parse_target: str, parse_fn: Callable[[BeautifulSoup], T], page: BeautifulSoup
) -> T:
    try:
        result = parse_fn(page)
    except ModemScrapeError:
        metrics.c_meta_parse_result.labels(parse_target, False).inc()
        raise
    metrics.c_meta_parse_result.labels(parse_target, True).inc()
    return result


async def export_metrics(session: ModemSession, sink: metrics.TextSink) -> None:
    """Fetch, parse and write every channel metric into `sink`.

    Downstream lines are written before the upstream table is even parsed so an upstream failure
    leaves the downstream lines in the sink.
    """
    page = await fetch_page(session)
    if parse.is_login_page(page):
        # Fresh token and still on the Login page; this token is no good either.
        session.invalidate()
        metrics.c_meta_parse_result.labels("login", False).inc()
        raise AuthenticationError("Unable to get past login page")

    downstream = _parse_and_count("conn_downstream", parse.parse_downstream, page)
    log.debug("Writing downstream channel metrics...", count=len(downstream))
    metrics.write_downstream_metrics(downstream, sink)

    upstream = _parse_and_count("conn_upstream", parse.parse_upstream, page)
    log.debug("Writing upstream channel metrics...", count=len(upstream))
    metrics.write_upstream_metrics(upstream, sink)
