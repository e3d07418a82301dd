"""
Everything needed to talk to one modem: where it is, how to log in and the token the modem handed back.
"""

import asyncio
import ssl

import structlog
from aiohttp import ClientSession, CookieJar, TCPConnector
from util.const import DEFAULT_MODEM_ADDR, DEFAULT_MODEM_USERNAME, REQUEST_HEADERS

log = structlog.get_logger(__name__)


def make_modem_ssl_context(ciphers: str | None = None) -> ssl.SSLContext:
    """The modem presents a self-signed cert for an IP address so there is nothing to verify against.

    This trust exception is scoped to the modem session only; nothing else should use this context.
    Some firmware only speaks very old TLS; pass an OpenSSL cipher string (e.g. "AES128-GCM-SHA256")
    to pretend it's 2010.
    """
    ctx = ssl.create_default_context(purpose=ssl.Purpose.SERVER_AUTH)
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    if ciphers:
        ctx.set_ciphers(ciphers)
    return ctx


class ModemSession:
    """Address, credentials and the cached session token for a single modem.

    The lock serializes every interaction with the modem; it only tolerates one login dance at a time
    so concurrent scrapes just queue up behind whoever is currently talking to it.
    The token is empty until the first successful login.
    """

    def __init__(
        self,
        addr: str = DEFAULT_MODEM_ADDR,
        username: str = DEFAULT_MODEM_USERNAME,
        password: str = "",
        scheme: str = "https",
        ssl_ciphers: str | None = None,
    ):
        self.addr = addr
        self.username = username
        self.password = password
        self.scheme = scheme
        self.ssl_ciphers = ssl_ciphers
        self.token = ""
        self.lock = asyncio.Lock()
        self._client: ClientSession | None = None

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.addr}"

    def invalidate(self) -> None:
        """Forget the token; next fetch has to log in again."""
        self.token = ""

    def client(self) -> ClientSession:
        # Created lazily; aiohttp wants a running loop when the session is built.
        if self._client is None or self._client.closed:
            log.debug("Setting up connection to modem...", base_url=self.base_url)
            self._client = ClientSession(
                headers=REQUEST_HEADERS,
                # unsafe=True: tell aiohttp to allow cookies on IP addresses
                cookie_jar=CookieJar(unsafe=True),
                connector=TCPConnector(ssl=make_modem_ssl_context(self.ssl_ciphers)),
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def __aenter__(self) -> "ModemSession":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def __repr__(self) -> str:
        # Never leak the password or token into logs
        return f"ModemSession(addr={self.addr!r}, username={self.username!r}, has_token={bool(self.token)})"
