"""Simple wrappers for the failure states a scrape can end in.

None of these are recovered from; they all propagate up to main / the /metrics handler.
"""


class ModemScrapeError(Exception):
    """Base for everything that can go wrong talking to / parsing the modem."""

    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message, status_code, payload)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def __str__(self):
        if self.status_code is not None:
            return f"{self.message} (status={self.status_code})"
        return str(self.message)


class NetworkError(ModemScrapeError):
    """Exception for transport / connection level failures."""


class AuthenticationError(ModemScrapeError):
    """Exception for rejected credentials or a page that is still the Login page after re-auth."""


class NotFoundError(ModemScrapeError):
    """Exception for an expected table heading that is missing from the page. Page layout changed?"""


class FormatError(ModemScrapeError):
    """Exception for a cell value that could not be converted. Firmware update changed the schema?"""
