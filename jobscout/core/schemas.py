"""Core data models for the job discovery pipeline."""

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

PostedWithin = Literal["24h", "3d", "7d", "14d", "30d"]
SalaryType = Literal["hourly", "annual"]
RunStatus = Literal["running", "completed", "partial", "failed"]
LogStatus = Literal["success", "error"]

# Freshness window for each posted_within value, in hours.
POSTED_WITHIN_HOURS: dict[str, int] = {
    "24h": 24,
    "3d": 72,
    "7d": 168,
    "14d": 336,
    "30d": 720,
}


class ScrapeOptions(BaseModel):
    """One scrape request. Immutable per invocation."""

    model_config = ConfigDict(frozen=True)

    search_query: str
    location: str | None = None
    max_results: int = Field(default=30, ge=1, le=500)
    posted_within: PostedWithin | None = None
    remote: bool = False
    employment_types: tuple[str, ...] = ()

    @field_validator("search_query")
    @classmethod
    def query_not_empty(cls, v: str) -> str:
        if not v.strip():
            msg = "search_query must not be empty"
            raise ValueError(msg)
        return v.strip()


class RecruiterContact(BaseModel):
    """Recruiter or hiring-team contact exposed by some sources."""

    model_config = ConfigDict(frozen=True)

    name: str | None = None
    email: str | None = None
    phone: str | None = None
    linkedin_url: str | None = None
    company: str | None = None
    title: str | None = None
    source: str


class RawPosting(BaseModel):
    """A candidate posting as decoded from one page, before normalization.

    Every field is optional: source payloads are untrusted and a strategy
    fills in whatever it could find.
    """

    external_id: str | None = None
    title: str | None = None
    company: str | None = None
    location: str | None = None
    is_remote: bool = False
    salary_text: str | None = None
    employment_type: str | None = None
    description: str | None = None
    description_html: str | None = None
    requirements: str | None = None
    posted_at_raw: str | None = None
    apply_url: str | None = None
    source_url: str | None = None
    recruiter: RecruiterContact | None = None


class ScrapedPosting(BaseModel):
    """A normalized job posting from one source.

    Frozen. salary_min / salary_max are always hourly figures; annual
    salaries are divided by 2080 during normalization.
    """

    model_config = ConfigDict(frozen=True)

    platform: str
    external_id: str | None = None
    title: str
    company: str
    location: str
    is_remote: bool = False
    salary_text: str | None = None
    salary_min: float | None = None
    salary_max: float | None = None
    salary_type: SalaryType | None = None
    employment_type: str | None = None
    description: str | None = None
    description_html: str | None = None
    requirements: str | None = None
    posted_at: datetime
    posted_at_raw: str = ""
    apply_url: str
    source_url: str | None = None
    dedup_hash: str


class ScrapeResult(BaseModel):
    """What a single source scraper returns for one query."""

    postings: list[ScrapedPosting] = Field(default_factory=list)
    recruiter_contacts: list[RecruiterContact] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    total_found: int = 0
    # Newly saved count is only known after persisting (ScrapeSummary.new_jobs); scrapers leave 0.
    new_jobs: int = 0


class ScrapeRun(BaseModel):
    """One orchestrator invocation across a set of sources."""

    id: str
    requested_by: str | None = None
    trigger_type: str = "on_demand"
    status: RunStatus = "running"
    platforms: list[str] = Field(default_factory=list)
    profiles_used: list[str] = Field(default_factory=list)
    total_found: int = 0
    new_jobs: int = 0
    errors: int = 0
    duration_ms: int | None = None
    started_at: datetime
    completed_at: datetime | None = None
    error_summary: str | None = None


class ScrapeLog(BaseModel):
    """Outcome of one source within one run."""

    run_id: str
    platform: str
    status: LogStatus
    url: str = ""
    duration_ms: int = 0
    jobs_found: int = 0
    error_message: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ScrapeSummary(BaseModel):
    """Aggregate result of ScrapeOrchestrator.scrape_all."""

    run_id: str
    status: RunStatus
    total_found: int
    new_jobs: int
    duplicates: int
    errors: list[str] = Field(default_factory=list)


class JobMatch(BaseModel):
    """A posting paired with its résumé match score."""

    model_config = ConfigDict(frozen=True)

    posting: ScrapedPosting
    score: float = Field(default=0.0, ge=0.0, le=100.0)
    reasons: list[str] = Field(default_factory=list)
    why_good_fit: str = ""
    factors: dict[str, float] = Field(default_factory=dict)


class PostingFilter(BaseModel):
    """Query filters for stored postings. Salary bounds are hourly."""

    platform: str | None = None
    is_remote: bool | None = None
    min_salary: float | None = Field(default=None, gt=0.0)
    max_salary: float | None = Field(default=None, gt=0.0)
    employment_type: str | None = None
    company: str | None = None
    location: str | None = None
    search: str | None = None
    posted_after: datetime | None = None
    posted_before: datetime | None = None
    limit: int = Field(default=50, ge=1, le=100)
    offset: int = Field(default=0, ge=0)
    order_by: Literal["posted_at", "salary_max", "created_at"] = "posted_at"
    order_dir: Literal["asc", "desc"] = "desc"


class StoredPosting(ScrapedPosting):
    """A persisted posting with its row id and insertion time."""

    id: int
    created_at: datetime
