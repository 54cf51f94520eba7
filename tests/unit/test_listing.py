"""Tests for listing stored postings with keyword filtering and résumé scoring."""

import sqlite3
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from jobscout.core.db import init_db, insert_posting
from jobscout.core.schemas import PostingFilter, ScrapedPosting
from jobscout.pipeline.listing import list_postings
from jobscout.pipeline.normalizer import dedup_hash
from jobscout.profile.schema import ParsedResume, SearchProfile

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def _posting(title: str, hours_ago: float = 1, **kw: object) -> ScrapedPosting:
    data: dict[str, object] = {
        "platform": "dice",
        "title": title,
        "company": "Acme",
        "location": "Remote",
        "is_remote": True,
        "posted_at": NOW - timedelta(hours=hours_ago),
        "apply_url": f"https://example.com/{title.replace(' ', '-')}",
        "dedup_hash": dedup_hash(title, "Acme", "Remote"),
    }
    data.update(kw)
    return ScrapedPosting(**data)  # type: ignore[arg-type]


@pytest.fixture()
def db(tmp_path: Path) -> sqlite3.Connection:
    conn = init_db(tmp_path / "test.db")
    for i, title in enumerate(["AI Architect II", "Media Architect", "Junior AI Architect", "Python Developer"]):
        insert_posting(conn, _posting(title, hours_ago=i + 1))
    return conn


class TestPlainListing:
    def test_newest_first(self, db: sqlite3.Connection) -> None:
        page = list_postings(db, PostingFilter(), now=NOW)
        assert page.total == 4
        assert [i.posting.title for i in page.items] == [
            "AI Architect II", "Media Architect", "Junior AI Architect", "Python Developer",
        ]
        assert page.items[0].posted_ago == "1 hour ago"
        assert page.items[0].match_score is None
        assert page.items[0].keyword_labels == []

    def test_paging(self, db: sqlite3.Connection) -> None:
        page = list_postings(db, PostingFilter(limit=2, offset=2), now=NOW)
        assert page.total == 4
        assert page.limit == 2
        assert page.offset == 2
        assert [i.posting.title for i in page.items] == ["Junior AI Architect", "Python Developer"]


class TestProfileFiltering:
    PROFILE = SearchProfile(name="AI", job_titles=["Senior AI Architect"], exclude_keywords=["junior"])

    def test_word_boundary_and_exclusion(self, db: sqlite3.Connection) -> None:
        page = list_postings(db, PostingFilter(), profiles=[self.PROFILE], now=NOW)
        assert page.total == 1
        item = page.items[0]
        assert item.posting.title == "AI Architect II"
        assert item.keyword_score == 100.0
        assert item.keyword_labels == ['Matches "Senior AI Architect" from AI']

    def test_inactive_profiles_do_not_filter(self, db: sqlite3.Connection) -> None:
        inactive = self.PROFILE.model_copy(update={"is_active": False})
        page = list_postings(db, PostingFilter(), profiles=[inactive], now=NOW)
        assert page.total == 4

    def test_paging_after_filtering(self, db: sqlite3.Connection) -> None:
        profile = SearchProfile(name="Arch", job_titles=["Architect"])
        page = list_postings(db, PostingFilter(limit=1, offset=1), profiles=[profile], now=NOW)
        assert page.total == 3
        assert [i.posting.title for i in page.items] == ["Media Architect"]


class TestResumeScoring:
    def test_scores_annotate_without_reordering(self, db: sqlite3.Connection) -> None:
        resume = ParsedResume.model_validate({
            "skills": {"technical": ["Python"]},
            "experience": {"job_titles": ["Python Developer"]},
        })
        page = list_postings(db, PostingFilter(), resume=resume, now=NOW)
        titles = [i.posting.title for i in page.items]
        assert titles[-1] == "Python Developer"
        scores = {i.posting.title: i.match_score for i in page.items}
        assert all(s is not None for s in scores.values())
        assert scores["Python Developer"] > scores["Media Architect"]  # type: ignore[operator]
        assert page.items[-1].why_good_fit
