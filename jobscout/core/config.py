"""Configuration models and YAML loader for the job discovery pipeline."""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from jobscout.core.schemas import PostedWithin, ScrapeOptions
from jobscout.profile.schema import SearchProfile

# Requests per second per source. Unlisted sources are not throttled.
DEFAULT_RATE_LIMITS: dict[str, float] = {
    "indeed": 2.0,
    "dice": 3.0,
    "linkedin": 0.5,
    "glassdoor": 2.0,
    "ziprecruiter": 2.0,
    "simplyhired": 2.0,
    "builtin": 3.0,
    "weworkremotely": 3.0,
}

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class SearchConfig(BaseModel):
    """A saved scrape request."""

    query: str
    location: str | None = None
    max_results: int = Field(default=30, ge=1, le=500)
    posted_within: PostedWithin | None = "24h"
    remote: bool = False
    employment_types: list[str] = Field(default_factory=list)
    platforms: list[str] = Field(default_factory=lambda: ["indeed", "dice", "linkedin"])

    @field_validator("query")
    @classmethod
    def query_not_empty(cls, v: str) -> str:
        if not v.strip():
            msg = "query must not be empty"
            raise ValueError(msg)
        return v.strip()

    @field_validator("platforms")
    @classmethod
    def at_least_one_platform(cls, v: list[str]) -> list[str]:
        platforms = [p.lower().strip() for p in v if p.strip()]
        if not platforms:
            msg = "at least one platform must be configured"
            raise ValueError(msg)
        return platforms

    def to_options(self) -> ScrapeOptions:
        return ScrapeOptions(
            search_query=self.query,
            location=self.location,
            max_results=self.max_results,
            posted_within=self.posted_within,
            remote=self.remote,
            employment_types=tuple(self.employment_types),
        )


class HttpConfig(BaseModel):
    """Direct HTTP fetch settings."""

    timeout_s: float = Field(default=30.0, gt=0.0, le=300.0)
    user_agent: str = DEFAULT_USER_AGENT


class ProxyConfig(BaseModel):
    """Residential / datacenter proxy credentials.

    Empty credentials mean "no proxy available"; sources that require one
    report a configuration error instead of attempting a direct call.
    """

    customer_id: str = Field(default_factory=lambda: os.environ.get("BRIGHT_DATA_CUSTOMER_ID", ""))
    api_key: str = Field(default_factory=lambda: os.environ.get("BRIGHT_DATA_API_KEY", ""))
    zone: str = Field(default_factory=lambda: os.environ.get("BRIGHT_DATA_ZONE", "scraping_browser"))
    host: str = "brd.superproxy.io"
    port: int = Field(default=33335, ge=1, le=65535)
    residential_suffix: str = "-country-us"


class BrowserConfig(BaseModel):
    """Browser session configuration for rendered sources."""

    headless: bool = False
    cookies_path: str | None = None
    timeout_ms: int = Field(default=30000, ge=1000)


class ScoringConfig(BaseModel):
    """Factor weights for résumé-to-job match scoring."""

    skills_weight: float = Field(default=0.40, ge=0.0, le=1.0)
    title_weight: float = Field(default=0.20, ge=0.0, le=1.0)
    salary_weight: float = Field(default=0.15, ge=0.0, le=1.0)
    location_weight: float = Field(default=0.10, ge=0.0, le=1.0)
    remote_weight: float = Field(default=0.10, ge=0.0, le=1.0)
    recency_weight: float = Field(default=0.05, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def weights_sum_to_one(self) -> "ScoringConfig":
        total = (
            self.skills_weight + self.title_weight + self.salary_weight
            + self.location_weight + self.remote_weight + self.recency_weight
        )
        if abs(total - 1.0) > 1e-6:
            msg = f"scoring weights must sum to 1.0, got {total:.3f}"
            raise ValueError(msg)
        return self


class OrchestratorConfig(BaseModel):
    """Fan-out settings."""

    source_timeout_s: float = Field(default=300.0, gt=0.0)


class DatabaseConfig(BaseModel):
    """Database configuration."""

    path: str = "data/jobs.db"


class Settings(BaseModel):
    """Top-level settings loaded from YAML."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)
    proxy: ProxyConfig = Field(default_factory=ProxyConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    orchestrator: OrchestratorConfig = Field(default_factory=OrchestratorConfig)
    rate_limits: dict[str, float] = Field(default_factory=lambda: dict(DEFAULT_RATE_LIMITS))
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    searches: list[SearchConfig] = Field(default_factory=list)
    profiles: list[SearchProfile] = Field(default_factory=list)
    resume_path: str | None = None

    @field_validator("rate_limits")
    @classmethod
    def rates_positive(cls, v: dict[str, float]) -> dict[str, float]:
        for platform, rps in v.items():
            if rps <= 0:
                msg = f"rate limit for '{platform}' must be positive, got {rps}"
                raise ValueError(msg)
        return {k.lower(): rps for k, rps in v.items()}

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file.

        Rate limits given in YAML are merged over the built-in defaults.
        """
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        if "rate_limits" in raw:
            raw["rate_limits"] = {**DEFAULT_RATE_LIMITS, **(raw["rate_limits"] or {})}
        return cls.model_validate(raw)

    def active_profiles(self) -> list[SearchProfile]:
        return [p for p in self.profiles if p.is_active]
