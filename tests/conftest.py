"""Shared fixtures: canned modem pages and a fake modem that implements the login_/ct_ token dance."""

import base64
from pathlib import Path

import pytest
from aiohttp import web
from arris.session import ModemSession
from bs4 import BeautifulSoup
from structlog.testing import capture_logs

FIXTURES = Path(__file__).parent / "fixtures"

USERNAME = "admin"
PASSWORD = "hunter22"
TOKEN = "f3kAq9Zt0LmP"


@pytest.fixture(autouse=True)
def captured_logs():
    """Keep structlog from printing into captured stdout; tests can assert on the events instead."""
    with capture_logs() as logs:
        yield logs


@pytest.fixture
def status_html() -> str:
    return (FIXTURES / "cmconnectionstatus.html").read_text()


@pytest.fixture
def login_html() -> str:
    return (FIXTURES / "login.html").read_text()


@pytest.fixture
def status_soup(status_html) -> BeautifulSoup:
    return BeautifulSoup(status_html, "html.parser")


@pytest.fixture
def login_soup(login_html) -> BeautifulSoup:
    return BeautifulSoup(login_html, "html.parser")


class FakeModem:
    """Behaves like the SB modem web UI as far as the scraper is concerned.

    - GET /                                 -> login page
    - GET /cmconnectionstatus.html?login_X  -> token if X and the Basic Auth header match, else 401
    - GET /cmconnectionstatus.html?ct_T     -> status page if T is the current token, else login page
    """

    def __init__(self, status_html: str, login_html: str, password: str = PASSWORD):
        self.password = password
        self.status_html = status_html
        self.login_html = login_html
        self.token = TOKEN
        # Flip to False to have the modem bounce every token back to the login page
        self.accept_tokens = True
        self.root_hits = 0
        self.login_hits = 0
        self.status_hits = 0

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/", self.root)
        app.router.add_get("/cmconnectionstatus.html", self.connection_status)
        return app

    def _html(self, text: str) -> web.Response:
        return web.Response(text=text, content_type="text/html")

    async def root(self, request: web.Request) -> web.Response:
        self.root_hits += 1
        return self._html(self.login_html)

    async def connection_status(self, request: web.Request) -> web.Response:
        query = request.query_string
        if query.startswith("login_"):
            self.login_hits += 1
            raw_creds = f"{USERNAME}:{self.password}".encode("utf-8")
            creds = base64.urlsafe_b64encode(raw_creds).decode()
            auth_ok = request.headers.get("Authorization") == f"Basic {base64.b64encode(raw_creds).decode()}"
            if query != f"login_{creds}" or not auth_ok:
                return web.Response(status=401, text="")
            return web.Response(text=self.token, headers={"Set-Cookie": "sessionId=8f1c2b; Path=/"})
        if query.startswith("ct_"):
            self.status_hits += 1
            if self.accept_tokens and query == f"ct_{self.token}":
                return self._html(self.status_html)
        return self._html(self.login_html)


@pytest.fixture
async def modem(aiohttp_server, status_html, login_html):
    fake = FakeModem(status_html, login_html)
    fake.server = await aiohttp_server(fake.app())
    return fake


@pytest.fixture
async def session(modem):
    async with ModemSession(
        addr=f"{modem.server.host}:{modem.server.port}",
        username=USERNAME,
        password=PASSWORD,
        scheme="http",
    ) as s:
        yield s
