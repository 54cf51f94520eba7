"""Dice scraper: direct fetch with proxy fallback, ``__NEXT_DATA__`` then cards.

Dice listings often name the recruiter, so candidates carry a
RecruiterContact when one is present.
"""

import logging
from typing import Any
from urllib.parse import quote_plus, urlencode

from bs4 import BeautifulSoup, Tag

from jobscout.core.errors import ParseError
from jobscout.core.schemas import RawPosting, RecruiterContact, ScrapeOptions
from jobscout.platforms.base import SourceScraper, Strategy
from jobscout.platforms.extract import (
    absolute_url,
    attr_of,
    dig,
    find_cards,
    first_str,
    load_json_script,
    strip_html,
    text_of,
)

logger = logging.getLogger(__name__)

BASE_URL = "https://www.dice.com"

POSTED_DATE_MAP: dict[str, str] = {"24h": "ONE", "3d": "THREE", "7d": "SEVEN"}

CONTRACT_TYPES = frozenset({"c2c", "contract", "contracts"})

CARD_SELECTORS: tuple[str, ...] = (
    '[data-testid="job-search-serp-card"]',
    "dhi-search-card",
    "div.card.search-card",
)
TITLE_SELECTORS: tuple[str, ...] = ('[data-testid="job-search-job-detail-link"]', "a.card-title-link")
COMPANY_SELECTORS: tuple[str, ...] = ('[data-cy="search-result-company-name"]', '[data-cy="company-name"]')
LOCATION_SELECTORS: tuple[str, ...] = ('[data-cy="search-result-location"]', "span.search-result-location")
SALARY_SELECTORS: tuple[str, ...] = ('[data-cy="compensationText"]',)
EMPLOYMENT_SELECTORS: tuple[str, ...] = ('[data-cy="search-result-employment-type"]',)
DATE_SELECTORS: tuple[str, ...] = ('[data-cy="card-posted-date"]', "span.posted-date")
RECRUITER_SELECTORS: tuple[str, ...] = ('[data-cy="recruiter-name"]', "span.recruiter-name")
LINK_SELECTORS: tuple[str, ...] = TITLE_SELECTORS


class DiceScraper(SourceScraper):
    page_size = 20
    fetch_mode = "direct_then_proxy"

    @property
    def platform_id(self) -> str:
        return "dice"

    def build_search_url(self, options: ScrapeOptions, page: int) -> str:
        params: dict[str, str] = {"q": options.search_query, "pageSize": str(self.page_size)}
        if options.location:
            params["location"] = options.location
        if options.remote:
            params["filters.isRemote"] = "true"
        if CONTRACT_TYPES.intersection(t.lower() for t in options.employment_types):
            params["filters.employmentType"] = "CONTRACTS"
        if options.posted_within in POSTED_DATE_MAP:
            params["filters.postedDate"] = POSTED_DATE_MAP[options.posted_within]
        if page > 1:
            params["page"] = str(page)
        return f"{BASE_URL}/jobs?{urlencode(params, quote_via=quote_plus)}"

    def extraction_strategies(self) -> tuple[Strategy, ...]:
        return (parse_next_data, parse_cards)


def parse_next_data(html: str, page_url: str) -> list[RawPosting]:
    """Decode the job list from the Next.js bootstrap payload."""
    data = load_json_script(BeautifulSoup(html, "html.parser"), "script#__NEXT_DATA__")
    if data is None:
        msg = "__NEXT_DATA__ payload not found"
        raise ParseError(msg)
    page_props = dig(data, "props", "pageProps", default={})
    items = dig(page_props, "jobList", "data") or dig(page_props, "searchResults", "data") or []
    return [_from_json(item, page_url) for item in items if isinstance(item, dict)]


def _from_json(item: dict[str, Any], page_url: str) -> RawPosting:
    url = absolute_url(first_str(item.get("detailsPageUrl"), item.get("applyUrl")), BASE_URL)
    description_html = first_str(item.get("summary"), item.get("descriptionHtml"))
    return RawPosting(
        external_id=first_str(item.get("guid"), item.get("id")),
        title=first_str(item.get("title")),
        company=first_str(item.get("companyName")),
        location=first_str(dig(item, "jobLocation", "displayName"), item.get("location")),
        is_remote=bool(item.get("isRemote")),
        salary_text=first_str(item.get("salary")),
        employment_type=_employment(item.get("employmentType")),
        description=strip_html(description_html),
        description_html=description_html,
        posted_at_raw=first_str(item.get("postedDate"), item.get("modifiedDate")),
        apply_url=url,
        source_url=page_url,
        recruiter=_recruiter(item),
    )


def _employment(value: Any) -> str | None:
    if isinstance(value, list):
        value = value[0] if value else None
    text = first_str(value)
    return text.lower() if text else None


def _recruiter(item: dict[str, Any]) -> RecruiterContact | None:
    name = first_str(dig(item, "recruiter", "name"), item.get("recruiterName"), item.get("contactName"))
    email = first_str(dig(item, "recruiter", "email"), item.get("contactEmail"))
    phone = first_str(dig(item, "recruiter", "phone"), item.get("contactPhone"))
    if not (name or email or phone):
        return None
    return RecruiterContact(
        name=name,
        email=email,
        phone=phone,
        title=first_str(dig(item, "recruiter", "title")),
        company=first_str(item.get("companyName")),
        source="dice",
    )


def parse_cards(html: str, page_url: str) -> list[RawPosting]:
    soup = BeautifulSoup(html, "html.parser")
    return [_parse_card(card, page_url) for card in find_cards(soup, CARD_SELECTORS)]


def _parse_card(card: Tag, page_url: str) -> RawPosting:
    company = text_of(card, COMPANY_SELECTORS)
    recruiter_name = text_of(card, RECRUITER_SELECTORS)
    recruiter = (
        RecruiterContact(name=recruiter_name, company=company or None, source="dice")
        if recruiter_name
        else None
    )
    external_id = attr_of(card, LINK_SELECTORS, "id") or card.get("data-id")
    return RawPosting(
        external_id=external_id if isinstance(external_id, str) and external_id else None,
        title=text_of(card, TITLE_SELECTORS),
        company=company,
        location=text_of(card, LOCATION_SELECTORS),
        salary_text=text_of(card, SALARY_SELECTORS) or None,
        employment_type=text_of(card, EMPLOYMENT_SELECTORS).lower() or None,
        posted_at_raw=text_of(card, DATE_SELECTORS) or None,
        apply_url=absolute_url(attr_of(card, LINK_SELECTORS, "href"), BASE_URL),
        source_url=page_url,
        recruiter=recruiter,
    )
