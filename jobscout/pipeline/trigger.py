"""On-demand scrape trigger: validate a request payload, run it, shape the summary."""

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from jobscout.core.schemas import PostedWithin, ScrapeOptions
from jobscout.pipeline.orchestrator import ScrapeOrchestrator, summary_payload
from jobscout.platforms import available_platforms

logger = logging.getLogger(__name__)


class TriggerRequest(BaseModel):
    """Scrape request as sent by a caller. Accepts camelCase or snake_case keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    search_query: str = Field(min_length=1, max_length=200)
    location: str | None = Field(default=None, max_length=100)
    max_results: int = Field(default=100, ge=1, le=500)
    posted_within: PostedWithin = "24h"
    remote: bool = True
    employment_types: list[str] = Field(default_factory=lambda: ["contract", "c2c"])
    platforms: list[str] = Field(default_factory=lambda: ["indeed", "dice", "linkedin"], min_length=1)

    @field_validator("search_query")
    @classmethod
    def query_not_blank(cls, v: str) -> str:
        if not v.strip():
            msg = "searchQuery must not be blank"
            raise ValueError(msg)
        return v.strip()

    @field_validator("platforms")
    @classmethod
    def known_platforms(cls, v: list[str]) -> list[str]:
        platforms = [p.lower().strip() for p in v]
        known = set(available_platforms())
        unknown = [p for p in platforms if p not in known]
        if unknown:
            msg = f"Unknown platform(s): {', '.join(unknown)}. Available: {', '.join(sorted(known))}"
            raise ValueError(msg)
        return platforms

    def to_options(self) -> ScrapeOptions:
        return ScrapeOptions(
            search_query=self.search_query,
            location=self.location,
            max_results=self.max_results,
            posted_within=self.posted_within,
            remote=self.remote,
            employment_types=tuple(self.employment_types),
        )


async def trigger_scrape(
    request: TriggerRequest | Mapping[str, Any],
    orchestrator: ScrapeOrchestrator,
    *,
    requested_by: str | None = None,
) -> dict[str, Any]:
    """Run one on-demand scrape.

    Raises pydantic.ValidationError for an invalid payload. Source failures
    never raise; they are listed under "errors".

    Returns:
        {totalFound, newJobs, duplicates, errors, platforms, query}
    """
    if not isinstance(request, TriggerRequest):
        request = TriggerRequest.model_validate(request)

    logger.info("Triggered scrape '%s' on %s", request.search_query, ", ".join(request.platforms))
    summary = await orchestrator.scrape_all(
        request.to_options(),
        request.platforms,
        requested_by=requested_by,
        trigger_type="on_demand",
    )
    return summary_payload(summary, request.platforms, request.search_query)
