"""Tests for per-source URL builders and extraction strategies, on HTML fixtures."""

import json
from urllib.parse import parse_qs, urlparse
from unittest.mock import AsyncMock, MagicMock

import pytest

from jobscout.core.errors import ParseError
from jobscout.core.schemas import ScrapeOptions
from jobscout.pipeline.rate_limiter import RateLimiter
from jobscout.platforms import builtin, dice, glassdoor, indeed, linkedin, simplyhired, weworkremotely, ziprecruiter

PAGE = "https://example.test/search"


def _http(pages: dict[str, str] | None = None, default: str = "<html></html>") -> MagicMock:
    http = MagicMock()
    http.proxy_configured = True
    pages = pages or {}

    async def fetch(url: str, **kwargs: object) -> str:
        for fragment, html in pages.items():
            if fragment in url:
                return html
        return default

    http.fetch_direct = AsyncMock(side_effect=fetch)
    http.fetch_via_proxy = AsyncMock(side_effect=fetch)
    return http


def _query(url: str) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(urlparse(url).query).items()}


def _ld(node: dict[str, object]) -> str:
    return f'<html><script type="application/ld+json">{json.dumps(node)}</script></html>'


FULL = ScrapeOptions(
    search_query="python developer",
    location="Austin, TX",
    max_results=50,
    posted_within="3d",
    remote=True,
    employment_types=("contract", "c2c"),
)
BARE = ScrapeOptions(search_query="python developer")


# ---------------------------------------------------------------------------
# Indeed
# ---------------------------------------------------------------------------


class TestIndeed:
    def _scraper(self) -> indeed.IndeedScraper:
        return indeed.IndeedScraper(_http(), RateLimiter())

    def test_url_first_page(self) -> None:
        url = self._scraper().build_search_url(FULL, 1)
        assert url.startswith("https://www.indeed.com/jobs?")
        q = _query(url)
        assert q == {"q": "python developer", "sort": "date", "l": "Austin, TX", "remotejob": "1", "fromage": "3"}

    def test_url_paging(self) -> None:
        assert _query(self._scraper().build_search_url(BARE, 3))["start"] == "20"

    def test_fetch_profile(self) -> None:
        assert indeed.IndeedScraper.fetch_mode == "proxy"
        assert indeed.IndeedScraper.page_size == 10

    def test_mosaic_json(self) -> None:
        payload = {
            "metaData": {
                "mosaicProviderJobCardsModel": {
                    "results": [{
                        "jobkey": "abc123",
                        "displayTitle": "Python Developer",
                        "company": "Acme",
                        "formattedLocation": "Remote",
                        "remoteLocation": True,
                        "salarySnippet": {"text": "$70 - $80 an hour"},
                        "jobTypes": ["Contract"],
                        "snippet": "<ul><li>Django</li></ul>",
                        "pubDate": 1748779200000,
                    }],
                },
            },
        }
        html = f'<script>{indeed.MOSAIC_MARKER}{json.dumps(payload)};</script>'
        [raw] = indeed.parse_mosaic_json(html, PAGE)
        assert raw.external_id == "abc123"
        assert raw.apply_url == "https://www.indeed.com/viewjob?jk=abc123"
        assert raw.is_remote is True
        assert raw.employment_type == "contract"
        assert raw.description == "Django"
        assert raw.posted_at_raw is not None
        assert raw.posted_at_raw.startswith("2025-06-01")

    def test_mosaic_missing_raises(self) -> None:
        with pytest.raises(ParseError):
            indeed.parse_mosaic_json("<html></html>", PAGE)

    def test_cards(self) -> None:
        html = """
        <div class="job_seen_beacon">
          <h2 class="jobTitle"><a data-jk="k1" href="/rc/clk?jk=k1"><span title="Python Dev">Python Dev</span></a></h2>
          <span data-testid="company-name">Acme</span>
          <div data-testid="text-location">Austin, TX</div>
          <div class="salary-snippet-container">$60 an hour</div>
          <span class="date">Posted 2 days ago</span>
        </div>
        """
        [raw] = indeed.parse_cards(html, PAGE)
        assert raw.title == "Python Dev"
        assert raw.company == "Acme"
        assert raw.location == "Austin, TX"
        assert raw.apply_url == "https://www.indeed.com/viewjob?jk=k1"
        assert raw.posted_at_raw == "Posted 2 days ago"

    def test_strategy_order(self) -> None:
        assert self._scraper().extraction_strategies() == (indeed.parse_mosaic_json, indeed.parse_cards)


# ---------------------------------------------------------------------------
# LinkedIn
# ---------------------------------------------------------------------------


class TestLinkedIn:
    def _scraper(self) -> linkedin.LinkedInScraper:
        return linkedin.LinkedInScraper(_http(), RateLimiter())

    def test_url(self) -> None:
        url = self._scraper().build_search_url(FULL, 1)
        assert url.startswith(linkedin.GUEST_SEARCH_URL)
        q = _query(url)
        assert q["keywords"] == "python developer"
        assert q["sortBy"] == "DD"
        assert q["f_WT"] == "2"
        assert q["f_TPR"] == "r259200"
        assert q["f_JT"] == "C"
        assert "start" not in q

    def test_url_paging(self) -> None:
        assert _query(self._scraper().build_search_url(BARE, 2))["start"] == "25"

    def test_unknown_job_type_skipped(self) -> None:
        options = ScrapeOptions(search_query="python", employment_types=("gig",))
        assert "f_JT" not in _query(self._scraper().build_search_url(options, 1))

    def test_residential_proxy(self) -> None:
        assert linkedin.LinkedInScraper.fetch_mode == "proxy"
        assert linkedin.LinkedInScraper.residential is True

    def test_cards(self) -> None:
        html = """
        <li><div class="base-card" data-entity-urn="urn:li:jobPosting:3901">
          <a class="base-card__full-link" href="https://www.linkedin.com/jobs/view/python-dev-3901?refId=x&trk=y"></a>
          <h3 class="base-search-card__title"> Python Developer </h3>
          <h4 class="base-search-card__subtitle">Acme</h4>
          <span class="job-search-card__location">United States</span>
          <time datetime="2025-05-31">1 day ago</time>
        </div></li>
        """
        [raw] = linkedin.parse_cards(html, PAGE)
        assert raw.external_id == "3901"
        assert raw.title == "Python Developer"
        assert raw.company == "Acme"
        assert raw.apply_url == "https://www.linkedin.com/jobs/view/python-dev-3901"
        assert raw.posted_at_raw == "2025-05-31"

    def test_card_id_fallback_builds_url(self) -> None:
        html = '<div class="base-card" data-id="77"><h3>Dev</h3><h4>Acme</h4></div>'
        [raw] = linkedin.parse_cards(html, PAGE)
        assert raw.external_id == "77"
        assert raw.apply_url == "https://www.linkedin.com/jobs/view/77/"

    def test_clean_url(self) -> None:
        assert linkedin.clean_url("/jobs/view/1?trk=abc#x") == "https://www.linkedin.com/jobs/view/1"

    def test_json_ld_first(self) -> None:
        html = _ld({"@type": "JobPosting", "title": "Dev", "hiringOrganization": {"name": "Acme"},
                    "url": "https://www.linkedin.com/jobs/view/5/"})
        raws = self._scraper().extract(html, PAGE)
        assert [r.title for r in raws] == ["Dev"]


# ---------------------------------------------------------------------------
# Dice
# ---------------------------------------------------------------------------


class TestDice:
    def _scraper(self) -> dice.DiceScraper:
        return dice.DiceScraper(_http(), RateLimiter())

    def test_url(self) -> None:
        q = _query(self._scraper().build_search_url(FULL, 2))
        assert q["q"] == "python developer"
        assert q["pageSize"] == "20"
        assert q["filters.isRemote"] == "true"
        assert q["filters.employmentType"] == "CONTRACTS"
        assert q["filters.postedDate"] == "THREE"
        assert q["page"] == "2"

    def test_url_without_contract_types(self) -> None:
        q = _query(self._scraper().build_search_url(BARE, 1))
        assert "filters.employmentType" not in q
        assert "page" not in q

    def test_direct_then_proxy(self) -> None:
        assert dice.DiceScraper.fetch_mode == "direct_then_proxy"

    def test_next_data_with_recruiter(self) -> None:
        data = {"props": {"pageProps": {"jobList": {"data": [{
            "guid": "g-1",
            "title": "Python Developer",
            "companyName": "Acme",
            "jobLocation": {"displayName": "Remote"},
            "isRemote": True,
            "salary": "$70-$80/hr",
            "employmentType": "CONTRACTS",
            "summary": "<p>Python and AWS</p>",
            "postedDate": "2025-05-31T10:00:00Z",
            "detailsPageUrl": "/job-detail/g-1",
            "recruiter": {"name": "Jane Roe", "email": "jane@acme.com"},
        }]}}}}
        html = f'<script id="__NEXT_DATA__" type="application/json">{json.dumps(data)}</script>'
        [raw] = dice.parse_next_data(html, PAGE)
        assert raw.external_id == "g-1"
        assert raw.apply_url == "https://www.dice.com/job-detail/g-1"
        assert raw.description == "Python and AWS"
        assert raw.employment_type == "contracts"
        assert raw.recruiter is not None
        assert raw.recruiter.name == "Jane Roe"
        assert raw.recruiter.company == "Acme"
        assert raw.recruiter.source == "dice"

    def test_next_data_search_results_path(self) -> None:
        data = {"props": {"pageProps": {"searchResults": {"data": [{"title": "Dev", "companyName": "A"}]}}}}
        html = f'<script id="__NEXT_DATA__">{json.dumps(data)}</script>'
        [raw] = dice.parse_next_data(html, PAGE)
        assert raw.recruiter is None

    def test_next_data_missing_raises(self) -> None:
        with pytest.raises(ParseError):
            dice.parse_next_data("<html></html>", PAGE)

    def test_cards_with_recruiter(self) -> None:
        html = """
        <div data-testid="job-search-serp-card">
          <a data-testid="job-search-job-detail-link" id="j-9" href="/job-detail/j-9">Data Engineer</a>
          <span data-cy="search-result-company-name">Globex</span>
          <span data-cy="search-result-location">Austin, TX</span>
          <span data-cy="card-posted-date">Today</span>
          <span data-cy="recruiter-name">John Smith</span>
        </div>
        """
        [raw] = dice.parse_cards(html, PAGE)
        assert raw.external_id == "j-9"
        assert raw.title == "Data Engineer"
        assert raw.apply_url == "https://www.dice.com/job-detail/j-9"
        assert raw.recruiter is not None
        assert raw.recruiter.name == "John Smith"
        assert raw.recruiter.company == "Globex"

    async def test_scrape_emits_contacts(self) -> None:
        data = {"props": {"pageProps": {"jobList": {"data": [{
            "title": "Python Developer", "companyName": "Acme", "jobLocation": {"displayName": "Remote"},
            "detailsPageUrl": "/job-detail/1", "recruiterName": "Jane Roe",
        }]}}}}
        html = f'<script id="__NEXT_DATA__">{json.dumps(data)}</script>'
        scraper = dice.DiceScraper(_http({"page=": "<html></html>"}, default=html), RateLimiter())
        result = await scraper.scrape(ScrapeOptions(search_query="python", max_results=40))
        assert len(result.postings) == 1
        assert [c.name for c in result.recruiter_contacts] == ["Jane Roe"]


# ---------------------------------------------------------------------------
# Glassdoor
# ---------------------------------------------------------------------------


class TestGlassdoor:
    def test_url(self) -> None:
        scraper = glassdoor.GlassdoorScraper(_http(), RateLimiter())
        q = _query(scraper.build_search_url(FULL, 2))
        assert q["sc.keyword"] == "python developer"
        assert q["sortBy"] == "date_desc"
        assert q["locKeyword"] == "Austin, TX"
        assert q["remoteWorkType"] == "1"
        assert q["fromAge"] == "3"
        assert q["p"] == "2"

    def test_needs_renderer(self) -> None:
        assert glassdoor.GlassdoorScraper.needs_renderer is True
        assert glassdoor.GlassdoorScraper.card_selectors == glassdoor.CARD_SELECTORS

    async def test_without_renderer_reports_config_error(self) -> None:
        scraper = glassdoor.GlassdoorScraper(_http(), RateLimiter())
        result = await scraper.scrape(BARE)
        assert result.errors == ["glassdoor: browser renderer required but not available"]

    def test_listings_json(self) -> None:
        listings = {"jobListings": [{"jobview": {
            "header": {
                "employerNameFromSearch": "Acme",
                "locationName": "Remote",
                "remoteWorkTypes": ["WORK_FROM_HOME_REMOTE"],
                "payPeriodAdjustedPay": {"p10": 120000, "p90": 150000},
                "payPeriod": "ANNUAL",
                "ageInDays": 2,
                "jobLink": "/job-listing/acme-JV_1.htm",
            },
            "job": {"listingId": 555, "jobTitleText": "Platform Engineer", "descriptionFragmentsText": "Go"},
        }}]}
        html = f'<script>apolloState = {{"data": {{"jobListings": {json.dumps(listings)}}}}}</script>'
        [raw] = glassdoor.parse_listings_json(html, PAGE)
        assert raw.external_id == "555"
        assert raw.title == "Platform Engineer"
        assert raw.company == "Acme"
        assert raw.is_remote is True
        assert raw.salary_text == "$120000-$150000/yr"
        assert raw.posted_at_raw == "2 days ago"
        assert raw.apply_url == "https://www.glassdoor.com/job-listing/acme-JV_1.htm"

    def test_cards(self) -> None:
        html = """
        <li data-test="jobListing" data-jobid="42">
          <a data-test="job-title" href="/job-listing/x-JV_42.htm">SRE</a>
          <span data-test="employer-name">Initech</span>
          <div data-test="emp-location">Denver, CO</div>
          <div data-test="job-age">24h</div>
        </li>
        """
        [raw] = glassdoor.parse_cards(html, PAGE)
        assert raw.external_id == "42"
        assert raw.title == "SRE"
        assert raw.company == "Initech"
        assert raw.posted_at_raw == "24h"


# ---------------------------------------------------------------------------
# ZipRecruiter
# ---------------------------------------------------------------------------


class TestZipRecruiter:
    def test_url(self) -> None:
        scraper = ziprecruiter.ZipRecruiterScraper(_http(), RateLimiter())
        q = _query(scraper.build_search_url(FULL, 2))
        assert q == {
            "search": "python developer",
            "location": "Austin, TX",
            "refine_by_location_type": "only_remote",
            "days": "3",
            "page": "2",
        }

    def test_json_ld(self) -> None:
        html = _ld({"@type": "JobPosting", "title": "Dev", "hiringOrganization": {"name": "Acme"},
                    "jobLocationType": "TELECOMMUTE", "url": "/c/Acme/Job/Dev?jid=1"})
        [raw] = ziprecruiter.parse_json_ld(html, PAGE)
        assert raw.apply_url == "https://www.ziprecruiter.com/c/Acme/Job/Dev?jid=1"
        assert raw.location == "Remote"

    def test_cards(self) -> None:
        html = """
        <article class="job_result" data-job-id="z1">
          <h2 class="title"><a class="job_link" href="/job/z1">Backend Engineer</a></h2>
          <a class="company_name">Globex</a>
          <a class="company_location">Remote</a>
          <p class="job_age">3 days ago</p>
        </article>
        """
        [raw] = ziprecruiter.parse_cards(html, PAGE)
        assert raw.external_id == "z1"
        assert raw.title == "Backend Engineer"
        assert raw.apply_url == "https://www.ziprecruiter.com/job/z1"


# ---------------------------------------------------------------------------
# SimplyHired
# ---------------------------------------------------------------------------


class TestSimplyHired:
    def test_url(self) -> None:
        scraper = simplyhired.SimplyHiredScraper(_http(), RateLimiter())
        q = _query(scraper.build_search_url(FULL, 2))
        assert q == {"q": "python developer", "l": "Austin, TX", "pn": "2", "fjt": "remote", "fdb": "3"}

    def test_initial_state(self) -> None:
        state = {"jobs": {"results": [{"jobKey": "s1", "title": "Dev", "company": "Acme", "url": "/job/s1"}]}}
        html = f"<script>window.__INITIAL_STATE__ = {json.dumps(state)};</script>"
        [raw] = simplyhired.parse_initial_state(html, PAGE)
        assert raw.external_id == "s1"
        assert raw.location == "United States"
        assert raw.posted_at_raw == "Today"
        assert raw.apply_url == "https://www.simplyhired.com/job/s1"

    def test_falls_back_to_next_data(self) -> None:
        data = {"props": {"pageProps": {"jobs": [{"title": "Dev", "companyName": "Acme", "location": "Remote",
                                                  "jobUrl": "/job/s2"}]}}}
        html = f'<script id="__NEXT_DATA__">{json.dumps(data)}</script>'
        scraper = simplyhired.SimplyHiredScraper(_http(), RateLimiter())
        [raw] = scraper.extract(html, PAGE)
        assert raw.location == "Remote"

    def test_cards(self) -> None:
        html = """
        <li data-jobkey="s3">
          <h2><a href="/job/s3">QA Engineer</a></h2>
          <span class="company">Initech</span>
        </li>
        """
        [raw] = simplyhired.parse_cards(html, PAGE)
        assert raw.external_id == "s3"
        assert raw.title == "QA Engineer"
        assert raw.location == "United States"


# ---------------------------------------------------------------------------
# Built In
# ---------------------------------------------------------------------------


class TestBuiltIn:
    def test_url(self) -> None:
        scraper = builtin.BuiltInScraper(_http(), RateLimiter())
        q = _query(scraper.build_search_url(FULL, 2))
        assert q == {"search": "python developer", "page": "2", "allRemote": "true", "daysSinceUpdated": "3"}

    def test_json_ld_default_location(self) -> None:
        html = _ld({"@type": "JobPosting", "title": "Dev", "hiringOrganization": {"name": "Acme"},
                    "url": "/job/dev/1"})
        [raw] = builtin.parse_json_ld(html, PAGE)
        assert raw.location == "United States"
        assert raw.apply_url == "https://builtin.com/job/dev/1"

    def test_cards(self) -> None:
        html = """
        <div data-id="job-card" data-job-id="b1">
          <a data-id="job-card-title" href="/job/eng/b1">ML Engineer</a>
          <a data-id="company-title">Acme AI</a>
        </div>
        """
        [raw] = builtin.parse_cards(html, PAGE)
        assert raw.external_id == "b1"
        assert raw.title == "ML Engineer"
        assert raw.company == "Acme AI"
        assert raw.location == "United States"
        assert raw.posted_at_raw == "Today"


# ---------------------------------------------------------------------------
# We Work Remotely
# ---------------------------------------------------------------------------

WWR_SEARCH = """
<section class="jobs"><ul>
  <li class="feature">
    <a href="/remote-jobs/acme-python-developer">
      <span class="company">Acme</span>
      <span class="title">Python Developer</span>
      <span class="region">Anywhere in the World</span>
      <time datetime="2025-05-31T12:00:00Z"></time>
    </a>
  </li>
  <li class="view-all"><a href="/remote-jobs/search">View all</a></li>
</ul></section>
"""

WWR_CATEGORY = """
<section class="jobs"><ul>
  <li class="feature"><a href="/remote-jobs/globex-python-engineer">
    <span class="company">Globex</span><span class="title">Senior Python Engineer</span></a></li>
  <li class="feature"><a href="/remote-jobs/initech-ios">
    <span class="company">Initech</span><span class="title">iOS Engineer</span></a></li>
</ul></section>
"""


class TestWeWorkRemotely:
    def test_url_ignores_page(self) -> None:
        scraper = weworkremotely.WeWorkRemotelyScraper(_http(), RateLimiter())
        url = scraper.build_search_url(BARE, 3)
        assert url == "https://weworkremotely.com/remote-jobs/search?utf8=%E2%9C%93&term=python%20developer"

    def test_direct_mode(self) -> None:
        assert weworkremotely.WeWorkRemotelyScraper.fetch_mode == "direct"

    def test_listings(self) -> None:
        [raw] = weworkremotely.parse_listings(WWR_SEARCH, PAGE)
        assert raw.title == "Python Developer"
        assert raw.company == "Acme"
        assert raw.location == "Anywhere in the World"
        assert raw.is_remote is True
        assert raw.posted_at_raw == "2025-05-31T12:00:00Z"
        assert raw.apply_url == "https://weworkremotely.com/remote-jobs/acme-python-developer"

    def test_fallback_listings(self) -> None:
        html = '<article class="job"><h2>Go Dev</h2><span class="company-name">Acme</span><a href="/x"></a></article>'
        [raw] = weworkremotely.parse_fallback_listings(html, PAGE)
        assert raw.location == "Remote"
        assert raw.apply_url == "https://weworkremotely.com/x"

    @pytest.mark.parametrize(
        ("query", "expected"),
        [
            ("python developer", ["programming"]),
            ("devops engineer", ["programming", "devops-sysadmin"]),
            ("accountant", ["programming"]),
            ("customer support", ["customer-support"]),
        ],
    )
    def test_match_categories(self, query: str, expected: list[str]) -> None:
        assert weworkremotely.match_categories(query) == expected

    async def test_collect_scans_categories(self) -> None:
        http = _http({"/remote-jobs/search": WWR_SEARCH, "/categories/remote-programming-jobs": WWR_CATEGORY})
        scraper = weworkremotely.WeWorkRemotelyScraper(http, RateLimiter())
        result = await scraper.scrape(ScrapeOptions(search_query="python", max_results=10))
        titles = [p.title for p in result.postings]
        assert titles == ["Python Developer", "Senior Python Engineer"]
        assert all(p.is_remote for p in result.postings)
        assert result.errors == []
        http.fetch_via_proxy.assert_not_called()

    async def test_category_failure_recorded(self) -> None:
        http = _http({"/remote-jobs/search": WWR_SEARCH})

        async def fetch(url: str) -> str:
            if "categories" in url:
                msg = "boom"
                raise RuntimeError(msg)
            return WWR_SEARCH

        http.fetch_direct = AsyncMock(side_effect=fetch)
        scraper = weworkremotely.WeWorkRemotelyScraper(http, RateLimiter())
        result = await scraper.scrape(ScrapeOptions(search_query="python", max_results=10))
        assert len(result.postings) == 1
        assert result.errors == ["weworkremotely: category programming: boom"]
