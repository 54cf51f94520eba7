"""Résumé-to-job match scoring.

Six factors, each 0.0-1.0, combined with the weights in ScoringConfig
(skills .40, title .20, salary .15, location .10, remote .10, recency .05).
Score range: 0-100.
"""

import logging
from datetime import datetime, timezone

from jobscout.core.config import ScoringConfig
from jobscout.core.schemas import JobMatch, ScrapedPosting
from jobscout.pipeline.normalizer import HOURS_PER_YEAR
from jobscout.profile.schema import ParsedResume

logger = logging.getLogger(__name__)

SENIORITY_KEYWORDS = ("senior", "staff", "principal", "lead", "director", "head", "vp")

# Annual-dollar gap under which non-overlapping ranges still count as close.
SALARY_CLOSE_GAP = 20_000

DEFAULT_REASON = "Matches your search criteria"


def score_skills(posting: ScrapedPosting, resume: ParsedResume, reasons: list[str]) -> float:
    """Fraction of résumé skills found as substrings of title + description + requirements."""
    skills = [s for s in (*resume.skills.technical, *resume.skills.soft) if s.strip()]
    if not skills:
        return 0.5
    text = f"{posting.title} {posting.description or ''} {posting.requirements or ''}".lower()
    matched = [s for s in skills if s.lower().strip() in text]
    if matched:
        top = ", ".join(matched[:4])
        more = f" +{len(matched) - 4} more" if len(matched) > 4 else ""
        reasons.append(f"Skills match: {top}{more}")
    return len(matched) / len(skills)


def score_title(posting: ScrapedPosting, resume: ParsedResume, reasons: list[str]) -> float:
    """1.0 containment match, 0.8 shared seniority keyword, else 0.3."""
    job_title = posting.title.lower()
    roles = [r for r in (*resume.experience.job_titles, *resume.preferences.desired_roles) if r.strip()]
    for role in roles:
        role_lower = role.lower().strip()
        if role_lower in job_title or job_title in role_lower:
            reasons.append(f"Role aligns with your experience as {role}")
            return 1.0
    job_levels = {kw for kw in SENIORITY_KEYWORDS if kw in job_title.split()}
    if job_levels:
        for role in roles:
            if job_levels.intersection(role.lower().split()):
                reasons.append("Seniority level matches your background")
                return 0.8
    return 0.3


def _salary_range(low: float | None, high: float | None) -> tuple[float, float] | None:
    """(min, max) with a missing end taken from the other, or None if both are missing."""
    if low is not None and high is not None:
        return low, high
    if low is not None:
        return low, low
    if high is not None:
        return high, high
    return None


def score_salary(posting: ScrapedPosting, resume: ParsedResume, reasons: list[str]) -> float:
    """Compare in annual dollars: overlap 1.0, gap < 20k 0.7, unknown 0.5, else 0.2."""
    prefs = resume.preferences
    job = _salary_range(posting.salary_min, posting.salary_max)
    wanted = _salary_range(prefs.min_salary, prefs.max_salary)
    if job is None or wanted is None:
        return 0.5

    # Posting figures are always hourly.
    job_min, job_max = job[0] * HOURS_PER_YEAR, job[1] * HOURS_PER_YEAR
    scale = HOURS_PER_YEAR if prefs.salary_period == "hourly" else 1
    user_min, user_max = wanted[0] * scale, wanted[1] * scale

    if job_max >= user_min and job_min <= user_max:
        reasons.append(f"Salary ${job[0]:g}-${job[1]:g}/hr fits your range")
        return 1.0
    gap = min(abs(job_max - user_min), abs(job_min - user_max))
    if gap < SALARY_CLOSE_GAP:
        return 0.7
    return 0.2


def score_location(posting: ScrapedPosting, resume: ParsedResume, reasons: list[str]) -> float:
    """1.0 substring match either way, 0.7 if remote/anywhere is preferred, else 0.3."""
    location = posting.location.lower()
    preferred = [loc.lower().strip() for loc in resume.preferences.locations if loc.strip()]
    for loc in preferred:
        if loc in location or location in loc:
            reasons.append(f"Location: {posting.location}")
            return 1.0
    if any("remote" in loc or "anywhere" in loc for loc in preferred):
        return 0.7
    return 0.3


def score_remote(posting: ScrapedPosting, resume: ParsedResume, reasons: list[str]) -> float:
    """Remote-only preference: 1.0 for remote, 0.0 otherwise. Any other preference: 0.5."""
    if resume.preferences.remote_preference == "only":
        if posting.is_remote:
            reasons.append("Remote position matches your preference")
            return 1.0
        return 0.0
    return 0.5


def score_recency(posting: ScrapedPosting, now: datetime | None = None) -> float:
    now = now or datetime.now(timezone.utc)
    hours = (now - posting.posted_at).total_seconds() / 3600
    if hours < 6:
        return 1.0
    if hours < 24:
        return 0.8
    if hours < 72:
        return 0.5
    return 0.2


def calculate_match(
    posting: ScrapedPosting,
    resume: ParsedResume,
    config: ScoringConfig | None = None,
    now: datetime | None = None,
) -> JobMatch:
    """Score one posting against a résumé.

    Returns:
        JobMatch with score 0-100 (one decimal), reasons, a fit explanation
        and the individual factor values.
    """
    config = config or ScoringConfig()
    reasons: list[str] = []
    factors = {
        "skills": score_skills(posting, resume, reasons),
        "title": score_title(posting, resume, reasons),
        "salary": score_salary(posting, resume, reasons),
        "location": score_location(posting, resume, reasons),
        "remote": score_remote(posting, resume, reasons),
        "recency": score_recency(posting, now),
    }
    raw = (
        factors["skills"] * config.skills_weight
        + factors["title"] * config.title_weight
        + factors["salary"] * config.salary_weight
        + factors["location"] * config.location_weight
        + factors["remote"] * config.remote_weight
        + factors["recency"] * config.recency_weight
    )
    score = max(0.0, min(100.0, round(raw * 100, 1)))
    reasons = reasons or [DEFAULT_REASON]
    return JobMatch(
        posting=posting,
        score=score,
        reasons=reasons,
        why_good_fit=fit_explanation(score, reasons),
        factors=factors,
    )


def score_postings(
    postings: list[ScrapedPosting],
    resume: ParsedResume,
    config: ScoringConfig | None = None,
    now: datetime | None = None,
) -> list[JobMatch]:
    """Score a batch of postings, returning JobMatch list sorted by score desc."""
    matches = [calculate_match(p, resume, config, now) for p in postings]
    matches.sort(key=lambda m: m.score, reverse=True)
    return matches


def fit_explanation(score: float, reasons: list[str]) -> str:
    """Tiered natural-language summary keyed off the score."""
    if score >= 85:
        return f"Excellent match! {'. '.join(reasons[:2])}."
    if score >= 70:
        return f"Good fit. {reasons[0] if reasons else 'Aligns with your profile'}."
    if score >= 50:
        return f"Potential opportunity. {reasons[0] if reasons else 'Some alignment with your background'}."
    return "Explore if interested in this direction."
