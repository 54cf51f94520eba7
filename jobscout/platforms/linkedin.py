"""LinkedIn scraper: residential proxy against the guest jobs API.

Guest result pages are HTML fragments of ``div.base-card`` items; full
search pages may also carry JSON-LD, which is tried first.
"""

import logging
from urllib.parse import quote_plus, urlencode, urlparse, urlunparse

from bs4 import BeautifulSoup, Tag

from jobscout.core.schemas import RawPosting, ScrapeOptions
from jobscout.platforms.base import SourceScraper, Strategy
from jobscout.platforms.extract import attr_of, find_cards, json_ld_postings, text_of

logger = logging.getLogger(__name__)

LINKEDIN_BASE = "https://www.linkedin.com"
GUEST_SEARCH_URL = f"{LINKEDIN_BASE}/jobs-guest/jobs/api/seeMoreJobPostings/search"

RESULTS_PER_PAGE = 25

# --- Mapping dicts (URL concern) ---

TIME_POSTED_MAP: dict[str, str] = {
    "24h": "r86400",
    "3d": "r259200",
    "7d": "r604800",
    "14d": "r1209600",
    "30d": "r2592000",
}

JOB_TYPE_MAP: dict[str, str] = {
    "full-time": "F",
    "fulltime": "F",
    "part-time": "P",
    "contract": "C",
    "c2c": "C",
    "temporary": "T",
    "internship": "I",
}

# --- Selectors, most stable first ---

CARD_SELECTORS: tuple[str, ...] = ("div.base-card", "div.base-search-card", "div.job-search-card")
TITLE_SELECTORS: tuple[str, ...] = ("h3.base-search-card__title", "h3")
COMPANY_SELECTORS: tuple[str, ...] = ("h4.base-search-card__subtitle", "a.hidden-nested-link", "h4")
LOCATION_SELECTORS: tuple[str, ...] = ("span.job-search-card__location",)
SALARY_SELECTORS: tuple[str, ...] = ("span.job-search-card__salary-info",)
LINK_SELECTORS: tuple[str, ...] = ("a.base-card__full-link", 'a[href*="/jobs/view/"]')
JOB_ID_ATTR = "data-entity-urn"
JOB_ID_ATTR_FALLBACK = "data-id"


class LinkedInScraper(SourceScraper):
    page_size = RESULTS_PER_PAGE
    fetch_mode = "proxy"
    residential = True

    @property
    def platform_id(self) -> str:
        return "linkedin"

    def build_search_url(self, options: ScrapeOptions, page: int) -> str:
        params: dict[str, str] = {"keywords": options.search_query, "sortBy": "DD"}
        if options.location:
            params["location"] = options.location
        if options.remote:
            params["f_WT"] = "2"
        if options.posted_within is not None:
            params["f_TPR"] = TIME_POSTED_MAP[options.posted_within]
        job_types = _map_values(options.employment_types, JOB_TYPE_MAP, "employment_type")
        if job_types:
            params["f_JT"] = ",".join(dict.fromkeys(job_types))
        if page > 1:
            params["start"] = str((page - 1) * RESULTS_PER_PAGE)
        return f"{GUEST_SEARCH_URL}?{urlencode(params, quote_via=quote_plus)}"

    def extraction_strategies(self) -> tuple[Strategy, ...]:
        return (parse_json_ld, parse_cards)


def build_job_url(job_id: str) -> str:
    """Canonical LinkedIn job detail URL."""
    return f"{LINKEDIN_BASE}/jobs/view/{job_id}/"


def parse_json_ld(html: str, page_url: str) -> list[RawPosting]:
    return json_ld_postings(BeautifulSoup(html, "html.parser"), LINKEDIN_BASE)


def parse_cards(html: str, page_url: str) -> list[RawPosting]:
    soup = BeautifulSoup(html, "html.parser")
    return [_parse_card(card, page_url) for card in find_cards(soup, CARD_SELECTORS)]


def _parse_card(card: Tag, page_url: str) -> RawPosting:
    job_id = _parse_external_id(card)
    href = attr_of(card, LINK_SELECTORS, "href")
    if href:
        url = clean_url(href)
    elif job_id:
        url = build_job_url(job_id)
    else:
        url = None
    posted = attr_of(card, ("time",), "datetime") or text_of(card, ("time",))
    return RawPosting(
        external_id=job_id,
        title=text_of(card, TITLE_SELECTORS),
        company=text_of(card, COMPANY_SELECTORS),
        location=text_of(card, LOCATION_SELECTORS),
        salary_text=text_of(card, SALARY_SELECTORS) or None,
        posted_at_raw=posted or None,
        apply_url=url,
        source_url=page_url,
    )


def _parse_external_id(card: Tag) -> str | None:
    """Job ID from ``urn:li:jobPosting:<id>`` (primary) or data-id (fallback)."""
    for el in (card, card.find(attrs={JOB_ID_ATTR: True})):
        if el is None:
            continue
        urn = el.get(JOB_ID_ATTR)
        if isinstance(urn, str) and urn.strip():
            return urn.strip().rsplit(":", 1)[-1]
    job_id = card.get(JOB_ID_ATTR_FALLBACK)
    if isinstance(job_id, str) and job_id.strip():
        return job_id.strip()
    return None


def clean_url(href: str) -> str:
    """Strip tracking query params and fragment, make absolute."""
    parsed = urlparse(href)
    if not parsed.scheme:
        parsed = urlparse(f"{LINKEDIN_BASE}{href}")
    return urlunparse((parsed.scheme, parsed.netloc, parsed.path, "", "", ""))


def _map_values(values: tuple[str, ...], mapping: dict[str, str], field_name: str) -> list[str]:
    """Map user-facing filter values to LinkedIn URL codes.

    Unknown values are logged and skipped (never crash).
    """
    codes: list[str] = []
    for v in values:
        code = mapping.get(v.lower().strip())
        if code is None:
            logger.warning("Unknown %s value '%s', skipping", field_name, v)
        else:
            codes.append(code)
    return codes
