"""ZipRecruiter scraper: datacenter proxy, JSON-LD, then ``article.job_result`` cards."""

import logging
from urllib.parse import quote_plus, urlencode

from bs4 import BeautifulSoup, Tag

from jobscout.core.schemas import RawPosting, ScrapeOptions
from jobscout.platforms.base import SourceScraper, Strategy
from jobscout.platforms.extract import absolute_url, attr_of, find_cards, json_ld_postings, text_of

logger = logging.getLogger(__name__)

BASE_URL = "https://www.ziprecruiter.com"

DAYS_MAP: dict[str, str] = {"24h": "1", "3d": "3", "7d": "10", "14d": "14", "30d": "30"}

CARD_SELECTORS: tuple[str, ...] = ("article.job_result", "div.job_content")
TITLE_SELECTORS: tuple[str, ...] = ("h2.title", "a.job_link", "h2")
COMPANY_SELECTORS: tuple[str, ...] = ("a.company_name", "p.company_name", '[data-testid="job-card-company"]')
LOCATION_SELECTORS: tuple[str, ...] = ("a.company_location", "p.location", '[data-testid="job-card-location"]')
SALARY_SELECTORS: tuple[str, ...] = ("p.perk_item--pay", "span.salary")
AGE_SELECTORS: tuple[str, ...] = ("p.job_age", "span.job_age")
LINK_SELECTORS: tuple[str, ...] = ("a.job_link", "h2 a")


class ZipRecruiterScraper(SourceScraper):
    page_size = 20
    fetch_mode = "proxy"

    @property
    def platform_id(self) -> str:
        return "ziprecruiter"

    def build_search_url(self, options: ScrapeOptions, page: int) -> str:
        params: dict[str, str] = {"search": options.search_query}
        if options.location:
            params["location"] = options.location
        if options.remote:
            params["refine_by_location_type"] = "only_remote"
        if options.posted_within is not None:
            params["days"] = DAYS_MAP[options.posted_within]
        if page > 1:
            params["page"] = str(page)
        return f"{BASE_URL}/jobs-search?{urlencode(params, quote_via=quote_plus)}"

    def extraction_strategies(self) -> tuple[Strategy, ...]:
        return (parse_json_ld, parse_cards)


def parse_json_ld(html: str, page_url: str) -> list[RawPosting]:
    return json_ld_postings(BeautifulSoup(html, "html.parser"), BASE_URL)


def parse_cards(html: str, page_url: str) -> list[RawPosting]:
    soup = BeautifulSoup(html, "html.parser")
    return [_parse_card(card, page_url) for card in find_cards(soup, CARD_SELECTORS)]


def _parse_card(card: Tag, page_url: str) -> RawPosting:
    external_id = card.get("data-job-id") or card.get("id")
    return RawPosting(
        external_id=external_id if isinstance(external_id, str) and external_id else None,
        title=text_of(card, TITLE_SELECTORS),
        company=text_of(card, COMPANY_SELECTORS),
        location=text_of(card, LOCATION_SELECTORS),
        salary_text=text_of(card, SALARY_SELECTORS) or None,
        posted_at_raw=text_of(card, AGE_SELECTORS) or None,
        apply_url=absolute_url(attr_of(card, LINK_SELECTORS, "href"), BASE_URL),
        source_url=page_url,
    )
