"""Built In scraper: direct with proxy fallback, JSON-LD then result cards."""

import logging
from urllib.parse import quote_plus, urlencode

from bs4 import BeautifulSoup, Tag

from jobscout.core.schemas import RawPosting, ScrapeOptions
from jobscout.platforms.base import SourceScraper, Strategy
from jobscout.platforms.extract import absolute_url, attr_of, find_cards, json_ld_postings, text_of

logger = logging.getLogger(__name__)

BASE_URL = "https://builtin.com"

DEFAULT_LOCATION = "United States"

DAYS_SINCE_UPDATED: dict[str, str] = {"24h": "1", "3d": "3", "7d": "7", "14d": "14"}

CARD_SELECTORS: tuple[str, ...] = ('[data-id="job-card"]', ".job-card", "article.job-listing", ".views-row")
TITLE_SELECTORS: tuple[str, ...] = ('[data-id="job-card-title"]', "h2 a", ".job-title a", '[data-testid="job-title"]')
COMPANY_SELECTORS: tuple[str, ...] = ('[data-id="company-title"]', ".company-name", '[data-testid="company-name"]')
LOCATION_SELECTORS: tuple[str, ...] = (".job-location", ".field--name-field-job-location", '[data-testid="location"]')
SALARY_SELECTORS: tuple[str, ...] = (".job-salary", ".field--name-field-salary-range")
DATE_SELECTORS: tuple[str, ...] = (".job-date", ".field--name-created", "time")
LINK_SELECTORS: tuple[str, ...] = ('a[data-id="job-card-title"]', "h2 a", ".job-title a", ".field--name-title a")


class BuiltInScraper(SourceScraper):
    page_size = 25
    fetch_mode = "direct_then_proxy"

    @property
    def platform_id(self) -> str:
        return "builtin"

    def build_search_url(self, options: ScrapeOptions, page: int) -> str:
        params: dict[str, str] = {"search": options.search_query}
        if page > 1:
            params["page"] = str(page)
        if options.remote:
            params["allRemote"] = "true"
        if options.posted_within in DAYS_SINCE_UPDATED:
            params["daysSinceUpdated"] = DAYS_SINCE_UPDATED[options.posted_within]
        return f"{BASE_URL}/jobs/search?{urlencode(params, quote_via=quote_plus)}"

    def extraction_strategies(self) -> tuple[Strategy, ...]:
        return (parse_json_ld, parse_cards)


def parse_json_ld(html: str, page_url: str) -> list[RawPosting]:
    postings = json_ld_postings(BeautifulSoup(html, "html.parser"), BASE_URL)
    return [
        p if p.location else p.model_copy(update={"location": DEFAULT_LOCATION})
        for p in postings
    ]


def parse_cards(html: str, page_url: str) -> list[RawPosting]:
    soup = BeautifulSoup(html, "html.parser")
    return [_parse_card(card, page_url) for card in find_cards(soup, CARD_SELECTORS)]


def _parse_card(card: Tag, page_url: str) -> RawPosting:
    external_id = card.get("data-nid") or card.get("data-job-id")
    url = absolute_url(attr_of(card, LINK_SELECTORS, "href"), BASE_URL)
    return RawPosting(
        external_id=external_id if isinstance(external_id, str) and external_id else None,
        title=text_of(card, TITLE_SELECTORS),
        company=text_of(card, COMPANY_SELECTORS),
        location=text_of(card, LOCATION_SELECTORS) or DEFAULT_LOCATION,
        salary_text=text_of(card, SALARY_SELECTORS) or None,
        posted_at_raw=text_of(card, DATE_SELECTORS) or "Today",
        apply_url=url,
        source_url=url,
    )
