"""Glassdoor scraper: proxied browser render, embedded listings JSON, then cards.

Result pages are client-rendered, so HTML comes from the shared
BrowserSession (which routes through the residential proxy).
"""

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
    text_of,
)

logger = logging.getLogger(__name__)

BASE_URL = "https://www.glassdoor.com"

LISTINGS_MARKER = '"jobListings":'

FROM_AGE_DAYS: dict[str, str] = {"24h": "1", "3d": "3", "7d": "7", "14d": "14", "30d": "30"}

CARD_SELECTORS: tuple[str, ...] = ('li[data-test="jobListing"]', "li.react-job-listing")
TITLE_SELECTORS: tuple[str, ...] = ('[data-test="job-title"]', "a.jobLink")
COMPANY_SELECTORS: tuple[str, ...] = ('[class*="EmployerProfile_compactEmployerName"]', '[data-test="employer-name"]')
LOCATION_SELECTORS: tuple[str, ...] = ('[data-test="emp-location"]',)
SALARY_SELECTORS: tuple[str, ...] = ('[data-test="detailSalary"]',)
AGE_SELECTORS: tuple[str, ...] = ('[data-test="job-age"]',)
LINK_SELECTORS: tuple[str, ...] = ('a[data-test="job-title"]', "a.jobLink")


class GlassdoorScraper(SourceScraper):
    page_size = 30
    fetch_mode = "proxy"
    residential = True
    needs_renderer = True
    card_selectors = CARD_SELECTORS

    @property
    def platform_id(self) -> str:
        return "glassdoor"

    def build_search_url(self, options: ScrapeOptions, page: int) -> str:
        params: dict[str, str] = {"sc.keyword": options.search_query, "sortBy": "date_desc"}
        if options.location:
            params["locKeyword"] = options.location
        if options.remote:
            params["remoteWorkType"] = "1"
        if options.posted_within is not None:
            params["fromAge"] = FROM_AGE_DAYS[options.posted_within]
        if page > 1:
            params["p"] = str(page)
        return f"{BASE_URL}/Job/jobs.htm?{urlencode(params, quote_via=quote_plus)}"

    def extraction_strategies(self) -> tuple[Strategy, ...]:
        return (parse_listings_json, parse_cards)


def parse_listings_json(html: str, page_url: str) -> list[RawPosting]:
    """Decode the ``jobListings`` block from the page's Apollo state."""
    data = extract_js_object(html, LISTINGS_MARKER)
    if data is None:
        msg = "jobListings payload not found"
        raise ParseError(msg)
    listings = dig(data, "jobListings", default=[])
    return [_from_json(item, page_url) for item in listings if isinstance(item, dict)]


def _from_json(item: dict[str, Any], page_url: str) -> RawPosting:
    header = dig(item, "jobview", "header", default={})
    job = dig(item, "jobview", "job", default={})
    age_days = header.get("ageInDays")
    return RawPosting(
        external_id=first_str(job.get("listingId"), header.get("jobViewUrl")),
        title=first_str(job.get("jobTitleText"), header.get("jobTitleText")),
        company=first_str(header.get("employerNameFromSearch"), dig(header, "employer", "name")),
        location=first_str(header.get("locationName")),
        is_remote="REMOTE" in str(header.get("remoteWorkTypes") or "").upper(),
        salary_text=_pay_text(header),
        description=first_str(job.get("descriptionFragmentsText")),
        posted_at_raw=f"{age_days} days ago" if isinstance(age_days, int) and age_days > 0 else "today",
        apply_url=absolute_url(first_str(header.get("jobLink"), header.get("seoJobLink")), BASE_URL),
        source_url=page_url,
    )


def _pay_text(header: dict[str, Any]) -> str | None:
    low = dig(header, "payPeriodAdjustedPay", "p10")
    high = dig(header, "payPeriodAdjustedPay", "p90")
    if low is None:
        return None
    period = str(header.get("payPeriod") or "ANNUAL").upper()
    suffix = "/hr" if period == "HOURLY" else "/yr"
    return f"${low}-${high or low}{suffix}"


def parse_cards(html: str, page_url: str) -> list[RawPosting]:
    soup = BeautifulSoup(html, "html.parser")
    return [_parse_card(card, page_url) for card in find_cards(soup, CARD_SELECTORS)]


def _parse_card(card: Tag, page_url: str) -> RawPosting:
    external_id = card.get("data-jobid") or card.get("data-id")
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
