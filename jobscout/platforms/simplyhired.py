"""SimplyHired scraper: direct with proxy fallback, embedded state JSON, then cards."""

import logging
from typing import Any
from urllib.parse import quote_plus, urlencode

from bs4 import BeautifulSoup, Tag

from jobscout.core.errors import ParseError
from jobscout.core.schemas import RawPosting, ScrapeOptions
from jobscout.platforms.base import SourceScraper, Strategy
from jobscout.platforms.extract import (
    absolute_url,
    attr_of,
    dig,
    extract_js_object,
    find_cards,
    first_str,
    load_json_script,
    text_of,
)

logger = logging.getLogger(__name__)

BASE_URL = "https://www.simplyhired.com"

STATE_MARKER = "window.__INITIAL_STATE__"

# Listings with no location are US-wide.
DEFAULT_LOCATION = "United States"

FDB_DAYS: dict[str, str] = {"24h": "1", "3d": "3", "7d": "7", "14d": "14"}

CARD_SELECTORS: tuple[str, ...] = (
    '[data-testid="searchSerpJob"]',
    ".SerpJob-jobCard",
    "article[data-id]",
    "li[data-jobkey]",
)
TITLE_SELECTORS: tuple[str, ...] = ('[data-testid="searchSerpJobTitle"]', ".SerpJob-link", "h2 a", ".jobTitle")
COMPANY_SELECTORS: tuple[str, ...] = (
    '[data-testid="companyName"]',
    ".SerpJob-companyName",
    ".jobposting-company",
    "span.company",
)
LOCATION_SELECTORS: tuple[str, ...] = (
    '[data-testid="searchSerpJobLocation"]',
    ".SerpJob-location",
    ".location",
    "span.loc",
)
SALARY_SELECTORS: tuple[str, ...] = ('[data-testid="searchSerpJobSalary"]', ".SerpJob-salary", ".salary-range")
DATE_SELECTORS: tuple[str, ...] = ('[data-testid="searchSerpJobDateStamp"]', ".SerpJob-timestamp", ".posted-date")
LINK_SELECTORS: tuple[str, ...] = ('a[data-testid="searchSerpJobTitle"]', "h2 a", "a.SerpJob-link", "a.jobTitle")


class SimplyHiredScraper(SourceScraper):
    page_size = 20
    fetch_mode = "direct_then_proxy"

    @property
    def platform_id(self) -> str:
        return "simplyhired"

    def build_search_url(self, options: ScrapeOptions, page: int) -> str:
        params: dict[str, str] = {"q": options.search_query}
        if options.location:
            params["l"] = options.location
        if page > 1:
            params["pn"] = str(page)
        if options.remote:
            params["fjt"] = "remote"
        if options.posted_within in FDB_DAYS:
            params["fdb"] = FDB_DAYS[options.posted_within]
        return f"{BASE_URL}/search?{urlencode(params, quote_via=quote_plus)}"

    def extraction_strategies(self) -> tuple[Strategy, ...]:
        return (parse_initial_state, parse_next_data, parse_cards)


def parse_initial_state(html: str, page_url: str) -> list[RawPosting]:
    data = extract_js_object(html, STATE_MARKER)
    if data is None:
        msg = "__INITIAL_STATE__ payload not found"
        raise ParseError(msg)
    items = dig(data, "jobs", "results") or dig(data, "search", "results") or []
    return [_from_json(item, page_url) for item in items if isinstance(item, dict)]


def parse_next_data(html: str, page_url: str) -> list[RawPosting]:
    data = load_json_script(BeautifulSoup(html, "html.parser"), "script#__NEXT_DATA__")
    if data is None:
        msg = "__NEXT_DATA__ payload not found"
        raise ParseError(msg)
    items = dig(data, "props", "pageProps", "jobs", default=[])
    return [_from_json(item, page_url) for item in items if isinstance(item, dict)]


def _from_json(item: dict[str, Any], page_url: str) -> RawPosting:
    return RawPosting(
        external_id=first_str(item.get("pjid"), item.get("jobKey")),
        title=first_str(item.get("title")),
        company=first_str(item.get("company"), item.get("companyName")),
        location=first_str(item.get("location"), item.get("formattedLocation")) or DEFAULT_LOCATION,
        salary_text=first_str(item.get("salary"), item.get("estimatedSalary"), item.get("salaryInfo")),
        description=first_str(item.get("snippet")),
        posted_at_raw=first_str(item.get("postedDate"), item.get("dateOnIndeed"), item.get("dateRecency")) or "Today",
        apply_url=absolute_url(first_str(item.get("url"), item.get("jobUrl")), BASE_URL),
        source_url=page_url,
    )


def parse_cards(html: str, page_url: str) -> list[RawPosting]:
    soup = BeautifulSoup(html, "html.parser")
    return [_parse_card(card, page_url) for card in find_cards(soup, CARD_SELECTORS)]


def _parse_card(card: Tag, page_url: str) -> RawPosting:
    external_id = card.get("data-id") or card.get("data-jobkey")
    return RawPosting(
        external_id=external_id if isinstance(external_id, str) and external_id else None,
        title=text_of(card, TITLE_SELECTORS),
        company=text_of(card, COMPANY_SELECTORS),
        location=text_of(card, LOCATION_SELECTORS) or DEFAULT_LOCATION,
        salary_text=text_of(card, SALARY_SELECTORS) or None,
        posted_at_raw=text_of(card, DATE_SELECTORS) or "Today",
        apply_url=absolute_url(attr_of(card, LINK_SELECTORS, "href"), BASE_URL),
        source_url=page_url,
    )
