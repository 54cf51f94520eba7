"""Indeed scraper: datacenter proxy, embedded mosaic JSON, then result cards."""

import logging
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote_plus, urlencode

from bs4 import BeautifulSoup

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
    strip_html,
    text_of,
)

logger = logging.getLogger(__name__)

BASE_URL = "https://www.indeed.com"

MOSAIC_MARKER = 'window.mosaic.providerData["mosaic-provider-jobcards"]='

FROMAGE_DAYS: dict[str, str] = {"24h": "1", "3d": "3", "7d": "7", "14d": "14"}

CARD_SELECTORS: tuple[str, ...] = (
    "div.job_seen_beacon",
    "td.resultContent",
    "div.cardOutline",
)
TITLE_SELECTORS: tuple[str, ...] = ("h2.jobTitle span[title]", "h2.jobTitle a span", "h2.jobTitle")
COMPANY_SELECTORS: tuple[str, ...] = ('[data-testid="company-name"]', "span.companyName")
LOCATION_SELECTORS: tuple[str, ...] = ('[data-testid="text-location"]', "div.companyLocation")
SALARY_SELECTORS: tuple[str, ...] = ("div.salary-snippet-container", "div.metadata.salary-snippet-container")
DATE_SELECTORS: tuple[str, ...] = ("span.date", '[data-testid="myJobsStateDate"]')
LINK_SELECTORS: tuple[str, ...] = ("h2.jobTitle a", "a[data-jk]")


class IndeedScraper(SourceScraper):
    page_size = 10
    fetch_mode = "proxy"

    @property
    def platform_id(self) -> str:
        return "indeed"

    def build_search_url(self, options: ScrapeOptions, page: int) -> str:
        params: dict[str, str] = {"q": options.search_query, "sort": "date"}
        if options.location:
            params["l"] = options.location
        if options.remote:
            params["remotejob"] = "1"
        if options.posted_within in FROMAGE_DAYS:
            params["fromage"] = FROMAGE_DAYS[options.posted_within]
        if page > 1:
            params["start"] = str((page - 1) * self.page_size)
        return f"{BASE_URL}/jobs?{urlencode(params, quote_via=quote_plus)}"

    def extraction_strategies(self) -> tuple[Strategy, ...]:
        return (parse_mosaic_json, parse_cards)


def parse_mosaic_json(html: str, page_url: str) -> list[RawPosting]:
    """Decode the job-cards provider payload Indeed embeds in the page."""
    data = extract_js_object(html, MOSAIC_MARKER)
    if data is None:
        msg = "mosaic job-cards payload not found"
        raise ParseError(msg)
    results = dig(data, "metaData", "mosaicProviderJobCardsModel", "results", default=[])
    postings: list[RawPosting] = []
    for item in results:
        jobkey = first_str(item.get("jobkey"))
        postings.append(
            RawPosting(
                external_id=jobkey,
                title=first_str(item.get("displayTitle"), item.get("title")),
                company=first_str(item.get("company"), item.get("truncatedCompany")),
                location=first_str(item.get("formattedLocation")),
                is_remote=bool(item.get("remoteLocation")),
                salary_text=first_str(dig(item, "salarySnippet", "text"), dig(item, "extractedSalary", "text")),
                employment_type=_first_job_type(item.get("jobTypes")),
                description=strip_html(item.get("snippet")),
                posted_at_raw=_pub_date(item.get("pubDate")) or first_str(item.get("formattedRelativeTime")),
                apply_url=f"{BASE_URL}/viewjob?jk={jobkey}" if jobkey else None,
                source_url=page_url,
            )
        )
    return postings


def _first_job_type(job_types: Any) -> str | None:
    if isinstance(job_types, list) and job_types:
        value = first_str(job_types[0])
        return value.lower() if value else None
    return None


def _pub_date(value: Any) -> str | None:
    """pubDate is epoch milliseconds."""
    if not isinstance(value, (int, float)) or value <= 0:
        return None
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc).isoformat()


def parse_cards(html: str, page_url: str) -> list[RawPosting]:
    soup = BeautifulSoup(html, "html.parser")
    postings: list[RawPosting] = []
    for card in find_cards(soup, CARD_SELECTORS):
        jobkey = attr_of(card, ("a[data-jk]",), "data-jk")
        href = attr_of(card, LINK_SELECTORS, "href")
        apply_url = f"{BASE_URL}/viewjob?jk={jobkey}" if jobkey else absolute_url(href, BASE_URL)
        postings.append(
            RawPosting(
                external_id=jobkey or None,
                title=text_of(card, TITLE_SELECTORS),
                company=text_of(card, COMPANY_SELECTORS),
                location=text_of(card, LOCATION_SELECTORS),
                salary_text=text_of(card, SALARY_SELECTORS) or None,
                posted_at_raw=text_of(card, DATE_SELECTORS) or None,
                apply_url=apply_url,
                source_url=page_url,
            )
        )
    return postings
