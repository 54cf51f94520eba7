"""Scraping error taxonomy.

ConfigurationError: a required external capability (proxy, renderer) is
  missing. Reported once per source, never retried.
FetchError: non-2xx response, timeout or connection failure.
ParseError: every extraction strategy failed for a page.
"""


class ScrapeError(Exception):
    """Base class for errors raised inside a source scraper."""


class ConfigurationError(ScrapeError):
    pass


class FetchError(ScrapeError):
    def __init__(self, message: str, *, url: str = "", status: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status = status


class ParseError(ScrapeError):
    pass
