"""We Work Remotely scraper: direct fetch, static HTML, every posting remote.

The search page is fetched first. If it yields fewer than ``max_results``,
up to two category pages matched from the query are scanned, keeping only
listings whose title or description mentions a query term.
"""

import logging
from urllib.parse import quote

from bs4 import BeautifulSoup, Tag

from jobscout.core.schemas import RawPosting, ScrapeOptions, ScrapeResult
from jobscout.platforms.base import SourceScraper, Strategy
from jobscout.platforms.extract import absolute_url, attr_of, find_cards, text_of

logger = logging.getLogger(__name__)

BASE_URL = "https://weworkremotely.com"

MAX_CATEGORIES = 2

# Category slug -> query fragments that select it.
CATEGORY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "programming": (
        "software", "developer", "engineer", "programming", "backend", "frontend",
        "fullstack", "full-stack", "python", "java", "react", "node",
    ),
    "devops-sysadmin": ("devops", "sysadmin", "infrastructure", "cloud", "aws", "platform", "site reliability"),
    "product": ("product manager", "product owner", "product lead"),
    "design": ("designer", "ux", "ui", "graphic", "design"),
    "data": (
        "data", "analytics", "machine learning", "ai", "artificial intelligence",
        "ml", "data engineer", "data scientist",
    ),
    "management-finance": ("manager", "finance", "business", "strategy", "analyst", "operations"),
    "customer-support": ("customer", "support", "success"),
    "sales-marketing": ("sales", "marketing", "growth", "seo"),
}

DEFAULT_CATEGORY = "programming"

LISTING_SELECTORS: tuple[str, ...] = ("li.feature", "li.listing-item", "section.jobs article li")
FALLBACK_SELECTORS: tuple[str, ...] = ("article.job", ".job-listing", "[data-job-id]")
TITLE_SELECTORS: tuple[str, ...] = (".title", "h3", '[class*="title"]')
COMPANY_SELECTORS: tuple[str, ...] = (".company", '[class*="company"]')
REGION_SELECTORS: tuple[str, ...] = (".region", '[class*="region"]')
DATE_SELECTORS: tuple[str, ...] = ("time", ".date", '[class*="date"]')


class WeWorkRemotelyScraper(SourceScraper):
    page_size = 100
    fetch_mode = "direct"

    @property
    def platform_id(self) -> str:
        return "weworkremotely"

    def build_search_url(self, options: ScrapeOptions, page: int) -> str:
        # Single results page; page is ignored.
        return f"{BASE_URL}/remote-jobs/search?utf8=%E2%9C%93&term={quote(options.search_query)}"

    def extraction_strategies(self) -> tuple[Strategy, ...]:
        return (parse_listings, parse_fallback_listings)

    async def collect(self, options: ScrapeOptions, result: ScrapeResult) -> None:
        url = self.build_search_url(options, 1)
        logger.info("[%s] Fetching: %s", self.platform_id, url)
        raws = await self.fetch_and_extract(url)
        accepted = self.accept(raws, options, result)
        logger.info("[%s] Search page: %d candidates, %d accepted", self.platform_id, len(raws), accepted)

        for category in match_categories(options.search_query):
            if len(result.postings) >= options.max_results:
                break
            category_url = f"{BASE_URL}/categories/remote-{category}-jobs"
            logger.info("[%s] Fetching category: %s", self.platform_id, category_url)
            try:
                category_raws = await self.fetch_and_extract(category_url)
            except Exception as e:
                logger.warning("[%s] Category %s failed: %s", self.platform_id, category, e)
                result.errors.append(f"{self.platform_id}: category {category}: {e}")
                continue
            relevant = [r for r in category_raws if is_relevant(r, options.search_query)]
            self.accept(relevant, options, result)


def match_categories(query: str) -> list[str]:
    """Categories whose keywords appear in the query (at most two)."""
    lowered = query.lower()
    categories = [
        category
        for category, keywords in CATEGORY_KEYWORDS.items()
        if any(kw in lowered for kw in keywords)
    ]
    return (categories or [DEFAULT_CATEGORY])[:MAX_CATEGORIES]


def is_relevant(raw: RawPosting, query: str) -> bool:
    """True if any query term appears in the title or description."""
    haystack = f"{raw.title or ''} {raw.description or ''}".lower()
    return any(term in haystack for term in query.lower().split())


def parse_listings(html: str, page_url: str) -> list[RawPosting]:
    soup = BeautifulSoup(html, "html.parser")
    postings: list[RawPosting] = []
    for item in find_cards(soup, LISTING_SELECTORS):
        raw = _parse_listing(item)
        if raw is not None:
            postings.append(raw)
    return postings


def _parse_listing(item: Tag) -> RawPosting | None:
    if "view-all" in (item.get("class") or []):
        return None
    link = item.select_one('a[href*="/remote-jobs/"]')
    if link is None:
        return None
    url = absolute_url(link.get("href"), BASE_URL)
    title = text_of(item, TITLE_SELECTORS) or " ".join(link.get_text(" ").split())
    company = text_of(item, COMPANY_SELECTORS)
    if not (title and company):
        return None
    return RawPosting(
        title=title,
        company=company,
        location=text_of(item, REGION_SELECTORS) or "Remote",
        is_remote=True,
        posted_at_raw=attr_of(item, ("time",), "datetime") or text_of(item, DATE_SELECTORS) or "Today",
        apply_url=url,
        source_url=url,
    )


def parse_fallback_listings(html: str, page_url: str) -> list[RawPosting]:
    """Older article-style markup."""
    soup = BeautifulSoup(html, "html.parser")
    postings: list[RawPosting] = []
    for item in find_cards(soup, FALLBACK_SELECTORS):
        title = text_of(item, ("h2", "h3", ".job-title"))
        company = text_of(item, (".company-name", ".employer"))
        if not (title and company):
            continue
        url = absolute_url(attr_of(item, ("a",), "href"), BASE_URL)
        postings.append(
            RawPosting(
                title=title,
                company=company,
                location="Remote",
                is_remote=True,
                posted_at_raw=attr_of(item, ("time",), "datetime") or "Today",
                apply_url=url,
                source_url=url,
            )
        )
    return postings
