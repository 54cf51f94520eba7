"""Abstract base class for source scrapers.

Each source supplies a URL builder, a page size, a fetch mode and an ordered
tuple of extraction strategies. The shared ``scrape()`` loop handles paging,
throttling, strategy fallback, normalization and error capture.
"""

import logging
import math
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Literal

from jobscout.browser.session import BrowserSession
from jobscout.core.errors import ConfigurationError, FetchError, ParseError
from jobscout.core.schemas import RawPosting, RecruiterContact, ScrapeOptions, ScrapeResult
from jobscout.pipeline.normalizer import normalize_posting
from jobscout.pipeline.rate_limiter import RateLimiter
from jobscout.transport.http import HttpClient

logger = logging.getLogger(__name__)

FetchMode = Literal["proxy", "direct_then_proxy", "direct"]

# (html, page_url) -> candidates. Raise when the page has no payload of this kind.
Strategy = Callable[[str, str], list[RawPosting]]


class SourceScraper(ABC):
    """Base class that every source scraper must implement.

    Subclasses set ``page_size``, ``fetch_mode`` and (optionally)
    ``residential`` / ``needs_renderer`` / ``card_selectors`` as class
    attributes and implement the two abstract methods.
    """

    page_size: int = 25
    fetch_mode: FetchMode = "proxy"
    residential: bool = False
    needs_renderer: bool = False
    # Used by the renderer to decide when lazy-loaded results have settled.
    card_selectors: tuple[str, ...] = ()

    def __init__(
        self,
        http: HttpClient,
        rate_limiter: RateLimiter,
        renderer: BrowserSession | None = None,
    ) -> None:
        self._http = http
        self._rate_limiter = rate_limiter
        self._renderer = renderer

    @property
    @abstractmethod
    def platform_id(self) -> str:
        """Unique identifier for this source (e.g. 'indeed')."""

    @abstractmethod
    def build_search_url(self, options: ScrapeOptions, page: int) -> str:
        """Search URL for a one-based page number."""

    @abstractmethod
    def extraction_strategies(self) -> tuple[Strategy, ...]:
        """Strategies in preference order: structured data first, markup last."""

    def max_pages(self, options: ScrapeOptions) -> int:
        return max(1, math.ceil(options.max_results / self.page_size))

    async def scrape(self, options: ScrapeOptions) -> ScrapeResult:
        """Run one query against this source. Never raises.

        Postings gathered before a failure are kept; the failure is reported
        in ``ScrapeResult.errors``.
        """
        logger.info("[%s] Starting scrape for '%s'", self.platform_id, options.search_query)
        result = ScrapeResult()
        try:
            self.check_capabilities()
            await self.collect(options, result)
        except ConfigurationError as e:
            logger.warning("[%s] %s", self.platform_id, e)
            result.errors.append(f"{self.platform_id}: {e}")
        except Exception as e:
            logger.error("[%s] Scrape failed: %s", self.platform_id, e)
            result.errors.append(f"{self.platform_id}: {e}")

        result.postings = result.postings[: options.max_results]
        result.total_found = len(result.postings)
        logger.info(
            "[%s] Scrape complete: %d postings, %d errors",
            self.platform_id, result.total_found, len(result.errors),
        )
        return result

    def check_capabilities(self) -> None:
        """Raise ConfigurationError if a required proxy or renderer is missing."""
        if self.fetch_mode == "proxy" and not self._http.proxy_configured:
            msg = "proxy required but not configured"
            raise ConfigurationError(msg)
        if self.needs_renderer and self._renderer is None:
            msg = "browser renderer required but not available"
            raise ConfigurationError(msg)

    async def collect(self, options: ScrapeOptions, result: ScrapeResult) -> None:
        """Page through results until max_results or an empty page."""
        for page in range(1, self.max_pages(options) + 1):
            url = self.build_search_url(options, page)
            logger.info("[%s] Fetching page %d: %s", self.platform_id, page, url)
            raws = await self.fetch_and_extract(url)
            if not raws:
                logger.info("[%s] Page %d empty, stopping", self.platform_id, page)
                break
            accepted = self.accept(raws, options, result)
            logger.info(
                "[%s] Page %d: %d candidates, %d accepted",
                self.platform_id, page, len(raws), accepted,
            )
            if len(result.postings) >= options.max_results:
                break

    async def fetch_and_extract(self, url: str) -> list[RawPosting]:
        html = await self.fetch(url)
        return self.extract(html, url)

    async def fetch(self, url: str) -> str:
        """Fetch one page according to fetch_mode, throttling every network call."""
        if self.needs_renderer:
            if self._renderer is None:
                msg = "browser renderer required but not available"
                raise ConfigurationError(msg)
            await self._rate_limiter.throttle(self.platform_id)
            return await self._renderer.render(url, card_selectors=self.card_selectors)

        if self.fetch_mode == "proxy":
            await self._rate_limiter.throttle(self.platform_id)
            return await self._http.fetch_via_proxy(url, residential=self.residential)

        await self._rate_limiter.throttle(self.platform_id)
        if self.fetch_mode == "direct":
            return await self._http.fetch_direct(url)

        try:
            return await self._http.fetch_direct(url)
        except FetchError as e:
            if not self._http.proxy_configured:
                msg = f"direct fetch failed and proxy not configured ({e})"
                raise FetchError(msg, url=url, status=e.status) from e
            logger.info("[%s] Direct fetch failed, retrying through proxy", self.platform_id)
            await self._rate_limiter.throttle(self.platform_id)
            return await self._http.fetch_via_proxy(url, residential=self.residential)

    def extract(self, html: str, url: str) -> list[RawPosting]:
        """Try each strategy in order; return the first non-empty result.

        Raises ParseError only when every strategy raised.
        """
        failures: list[str] = []
        strategies = self.extraction_strategies()
        for strategy in strategies:
            name = getattr(strategy, "__name__", repr(strategy))
            try:
                raws = strategy(html, url)
            except Exception as e:
                logger.debug("[%s] Strategy %s failed: %s", self.platform_id, name, e)
                failures.append(f"{name}: {e}")
                continue
            if raws:
                logger.debug("[%s] Strategy %s yielded %d candidates", self.platform_id, name, len(raws))
                return raws
        if strategies and len(failures) == len(strategies):
            msg = f"all extraction strategies failed for {url}: {'; '.join(failures)}"
            raise ParseError(msg)
        return []

    def accept(
        self,
        raws: list[RawPosting],
        options: ScrapeOptions,
        result: ScrapeResult,
    ) -> int:
        """Normalize candidates into result; returns how many were kept."""
        accepted = 0
        for raw in raws:
            if len(result.postings) >= options.max_results:
                break
            posting = normalize_posting(raw, self.platform_id, posted_within=options.posted_within)
            if posting is None:
                continue
            result.postings.append(posting)
            accepted += 1
            if raw.recruiter is not None:
                _add_contact(result.recruiter_contacts, raw.recruiter, posting.company)
        return accepted


def _add_contact(contacts: list[RecruiterContact], contact: RecruiterContact, company: str) -> None:
    if not (contact.name or contact.email or contact.phone or contact.linkedin_url):
        return
    if contact.company is None:
        contact = contact.model_copy(update={"company": company})
    key = (contact.name, contact.email, contact.company)
    if any((c.name, c.email, c.company) == key for c in contacts):
        return
    contacts.append(contact)
