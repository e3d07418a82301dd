import logging
from enum import Enum

DEFAULT_MODEM_ADDR = "192.168.100.1"
# support docs don't indicate that the username _can_ be changed
DEFAULT_MODEM_USERNAME = "admin"

CONN_STATUS_ENDPOINT = "/cmconnectionstatus.html"

DOWNSTREAM_TABLE_TITLE = "Downstream Bonded Channels"
UPSTREAM_TABLE_TITLE = "Upstream Bonded Channels"
LOGIN_PAGE_MARKER = "Login"

# Unlikely that the modem cares but it's easy enough to pretend to be a browser just in case
REQUEST_HEADERS = {
    "User-Agent": "Mozilla/5.0 (X11; Linux x86_64; rv:123.4) Gecko/20100101 Firefox/123.4",
    "Accept": "*/*",
    "Accept-Language": "en-US,en;q=0.5",
    "Connection": "keep-alive",
    "Pragma": "no-cache",
    "Cache-Control": "no-cache",
}


class LogLevel(Enum):
    """Simple enum of supported log levels for easy validation"""

    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL
