"""Tests for résumé-to-job match scoring."""

from datetime import datetime, timedelta, timezone

import pytest

from jobscout.core.config import ScoringConfig
from jobscout.core.schemas import ScrapedPosting
from jobscout.pipeline.scorer import (
    DEFAULT_REASON,
    calculate_match,
    fit_explanation,
    score_location,
    score_postings,
    score_recency,
    score_remote,
    score_salary,
    score_skills,
    score_title,
)
from jobscout.profile.schema import ParsedResume

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def _posting(**overrides: object) -> ScrapedPosting:
    data: dict[str, object] = {
        "platform": "dice",
        "title": "Senior Python Engineer",
        "company": "Acme",
        "location": "Remote",
        "is_remote": True,
        "description": "Python, AWS and Kubernetes",
        "salary_min": 80.0,
        "salary_max": 90.0,
        "posted_at": NOW - timedelta(hours=1),
        "apply_url": "https://example.com/1",
        "dedup_hash": "h1",
    }
    data.update(overrides)
    return ScrapedPosting(**data)  # type: ignore[arg-type]


def _resume(**preferences: object) -> ParsedResume:
    prefs: dict[str, object] = {
        "min_salary": 70,
        "max_salary": 95,
        "salary_period": "hourly",
        "locations": ["Remote"],
        "remote_preference": "only",
    }
    prefs.update(preferences)
    return ParsedResume.model_validate({
        "skills": {"technical": ["Python", "AWS"]},
        "experience": {"job_titles": ["Python Engineer"]},
        "preferences": prefs,
    })


# ---------------------------------------------------------------------------
# Individual factors
# ---------------------------------------------------------------------------


class TestScoreSkills:
    def test_all_found(self) -> None:
        reasons: list[str] = []
        assert score_skills(_posting(), _resume(), reasons) == 1.0
        assert reasons == ["Skills match: Python, AWS"]

    def test_partial_with_more_suffix(self) -> None:
        resume = ParsedResume.model_validate(
            {"skills": {"technical": ["Python", "AWS", "Docker", "SQL", "Terraform", "Rust"]}},
        )
        reasons: list[str] = []
        score = score_skills(_posting(description="Python AWS Docker SQL Terraform"), resume, reasons)
        assert score == pytest.approx(5 / 6)
        assert reasons == ["Skills match: Python, AWS, Docker, SQL +1 more"]

    def test_requirements_searched(self) -> None:
        resume = ParsedResume.model_validate({"skills": {"technical": ["Rust"]}})
        assert score_skills(_posting(description=None, requirements="Rust experience"), resume, []) == 1.0

    def test_no_skills_is_neutral(self) -> None:
        assert score_skills(_posting(), ParsedResume(), []) == 0.5


class TestScoreTitle:
    def test_containment(self) -> None:
        reasons: list[str] = []
        assert score_title(_posting(), _resume(), reasons) == 1.0
        assert reasons == ["Role aligns with your experience as Python Engineer"]

    def test_seniority_overlap(self) -> None:
        resume = ParsedResume.model_validate({"experience": {"job_titles": ["Senior Backend Developer"]}})
        assert score_title(_posting(title="Senior Data Engineer"), resume, []) == 0.8

    def test_no_alignment(self) -> None:
        resume = ParsedResume.model_validate({"experience": {"job_titles": ["Accountant"]}})
        assert score_title(_posting(title="Data Engineer"), resume, []) == 0.3

    def test_desired_roles_count(self) -> None:
        resume = ParsedResume.model_validate({"preferences": {"desired_roles": ["Data Engineer"]}})
        assert score_title(_posting(title="Data Engineer"), resume, []) == 1.0


class TestScoreSalary:
    def test_hourly_overlap(self) -> None:
        reasons: list[str] = []
        assert score_salary(_posting(), _resume(), reasons) == 1.0
        assert reasons == ["Salary $80-$90/hr fits your range"]

    def test_annual_preferences_compared_in_dollars(self) -> None:
        resume = _resume(min_salary=150_000, max_salary=180_000, salary_period="annual")
        assert score_salary(_posting(), resume, []) == 1.0

    def test_close_gap(self) -> None:
        assert score_salary(_posting(salary_min=60.0, salary_max=65.0), _resume(), []) == 0.7

    def test_far_off(self) -> None:
        assert score_salary(_posting(salary_min=30.0, salary_max=40.0), _resume(), []) == 0.2

    def test_single_sided_posting(self) -> None:
        assert score_salary(_posting(salary_min=None, salary_max=85.0), _resume(), []) == 1.0

    def test_preference_floor_only(self) -> None:
        # 95/hr floor vs an 80-90/hr posting: $10,400 a year short.
        assert score_salary(_posting(), _resume(max_salary=None, min_salary=95), []) == 0.7

    def test_preference_ceiling_only(self) -> None:
        reasons: list[str] = []
        assert score_salary(_posting(), _resume(min_salary=None, max_salary=85), reasons) == 1.0
        assert reasons == ["Salary $80-$90/hr fits your range"]

    def test_unknown_posting_salary(self) -> None:
        assert score_salary(_posting(salary_min=None, salary_max=None), _resume(), []) == 0.5

    def test_no_preferences(self) -> None:
        assert score_salary(_posting(), ParsedResume(), []) == 0.5


class TestScoreLocation:
    def test_substring(self) -> None:
        resume = _resume(locations=["Austin"])
        assert score_location(_posting(location="Austin, TX"), resume, []) == 1.0

    def test_remote_preferred(self) -> None:
        assert score_location(_posting(location="Austin, TX"), _resume(), []) == 0.7

    def test_elsewhere(self) -> None:
        resume = _resume(locations=["Chicago"])
        assert score_location(_posting(location="Austin, TX"), resume, []) == 0.3


class TestScoreRemote:
    def test_remote_only_match(self) -> None:
        assert score_remote(_posting(), _resume(), []) == 1.0

    def test_remote_only_onsite(self) -> None:
        assert score_remote(_posting(is_remote=False), _resume(), []) == 0.0

    @pytest.mark.parametrize("pref", ["hybrid", "no-preference"])
    def test_other_preferences_neutral(self, pref: str) -> None:
        assert score_remote(_posting(), _resume(remote_preference=pref), []) == 0.5


class TestScoreRecency:
    @pytest.mark.parametrize(
        ("hours", "expected"),
        [(1, 1.0), (5.9, 1.0), (12, 0.8), (48, 0.5), (100, 0.2)],
    )
    def test_tiers(self, hours: float, expected: float) -> None:
        posting = _posting(posted_at=NOW - timedelta(hours=hours))
        assert score_recency(posting, NOW) == expected


# ---------------------------------------------------------------------------
# Combined score
# ---------------------------------------------------------------------------


class TestCalculateMatch:
    def test_perfect_match(self) -> None:
        match = calculate_match(_posting(), _resume(), now=NOW)
        assert match.score == 100.0
        assert match.factors == {
            "skills": 1.0, "title": 1.0, "salary": 1.0,
            "location": 1.0, "remote": 1.0, "recency": 1.0,
        }
        assert match.why_good_fit == (
            "Excellent match! Skills match: Python, AWS. "
            "Role aligns with your experience as Python Engineer."
        )

    def test_empty_resume_default_reason(self) -> None:
        match = calculate_match(_posting(), ParsedResume(), now=NOW)
        assert match.score == pytest.approx(46.5)
        assert match.reasons == [DEFAULT_REASON]
        assert match.why_good_fit == "Explore if interested in this direction."

    def test_remote_only_penalizes_onsite(self) -> None:
        remote = calculate_match(_posting(), _resume(), now=NOW)
        onsite = calculate_match(_posting(is_remote=False), _resume(), now=NOW)
        assert onsite.factors["remote"] == 0.0
        assert onsite.score < remote.score

    def test_custom_weights(self) -> None:
        config = ScoringConfig(
            skills_weight=0.0, title_weight=0.0, salary_weight=0.0,
            location_weight=0.0, remote_weight=0.0, recency_weight=1.0,
        )
        posting = _posting(posted_at=NOW - timedelta(hours=100))
        assert calculate_match(posting, _resume(), config, NOW).score == 20.0

    def test_score_within_bounds(self) -> None:
        posting = _posting(title="Chef", description=None, location="Paris", is_remote=False,
                           salary_min=None, salary_max=None, posted_at=NOW - timedelta(days=30))
        match = calculate_match(posting, _resume(), now=NOW)
        assert 0.0 <= match.score <= 100.0


class TestScorePostings:
    def test_sorted_descending(self) -> None:
        postings = [
            _posting(title="Chef", is_remote=False, dedup_hash="a"),
            _posting(dedup_hash="b"),
        ]
        matches = score_postings(postings, _resume(), now=NOW)
        assert [m.posting.dedup_hash for m in matches] == ["b", "a"]
        assert matches[0].score >= matches[1].score


class TestFitExplanation:
    def test_excellent(self) -> None:
        assert fit_explanation(90, ["A", "B", "C"]) == "Excellent match! A. B."

    def test_good(self) -> None:
        assert fit_explanation(72, ["A", "B"]) == "Good fit. A."

    def test_potential(self) -> None:
        assert fit_explanation(55, ["A"]) == "Potential opportunity. A."

    def test_low(self) -> None:
        assert fit_explanation(10, ["A"]) == "Explore if interested in this direction."
