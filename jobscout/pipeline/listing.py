"""Stored-posting listing with optional keyword filtering and résumé scoring.

Without profiles or a résumé this is a plain filtered, paged query. With
profiles, a SQL LIKE prefilter narrows candidates and the word-boundary
matcher removes false positives before paging. With a résumé, each item
carries its match score and reasons.
"""

import logging
import sqlite3
from datetime import datetime

from pydantic import BaseModel, Field

from jobscout.core.config import ScoringConfig
from jobscout.core.db import iter_postings, query_postings
from jobscout.core.schemas import PostingFilter, StoredPosting
from jobscout.pipeline.matcher import KeywordMatcher, KeywordVerdict
from jobscout.pipeline.normalizer import format_relative_time
from jobscout.pipeline.scorer import calculate_match
from jobscout.profile.schema import ParsedResume, SearchProfile

logger = logging.getLogger(__name__)


class ListedPosting(BaseModel):
    posting: StoredPosting
    posted_ago: str
    match_score: float | None = None
    match_reasons: list[str] = Field(default_factory=list)
    why_good_fit: str | None = None
    keyword_score: float | None = None
    keyword_labels: list[str] = Field(default_factory=list)


class PostingPage(BaseModel):
    items: list[ListedPosting]
    total: int
    limit: int
    offset: int


def list_postings(
    conn: sqlite3.Connection,
    filters: PostingFilter,
    resume: ParsedResume | None = None,
    profiles: list[SearchProfile] | None = None,
    *,
    scoring: ScoringConfig | None = None,
    now: datetime | None = None,
) -> PostingPage:
    """Return one page of stored postings, annotated when résumé/profiles are given.

    Storage order (filters.order_by / order_dir) is preserved; scoring
    annotates but does not re-sort.
    """
    matcher = KeywordMatcher(profiles) if profiles else None
    verdicts: dict[int, KeywordVerdict] = {}

    if matcher is None or (not matcher.groups and not matcher.exclude_keywords):
        postings, total = query_postings(conn, filters)
    else:
        candidates = iter_postings(conn, filters, matcher.sql_patterns())
        verdicts = {p.id: matcher.match(p) for p in candidates}
        kept = [p for p in candidates if verdicts[p.id].included]
        logger.debug("Keyword filter kept %d of %d postings", len(kept), len(candidates))
        total = len(kept)
        postings = kept[filters.offset : filters.offset + filters.limit]

    items: list[ListedPosting] = []
    for posting in postings:
        item = ListedPosting(posting=posting, posted_ago=format_relative_time(posting.posted_at, now))
        verdict = verdicts.get(posting.id)
        if verdict is not None:
            item.keyword_score = verdict.score
            item.keyword_labels = verdict.labels
        if resume is not None:
            match = calculate_match(posting, resume, scoring, now)
            item.match_score = match.score
            item.match_reasons = match.reasons
            item.why_good_fit = match.why_good_fit
        items.append(item)

    return PostingPage(items=items, total=total, limit=filters.limit, offset=filters.offset)
