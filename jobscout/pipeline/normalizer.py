"""Pure normalization helpers: dates, salaries, remote detection, dedup hash.

Everything here is best-effort. Unparseable dates become "now", salaries
without numbers become an empty SalaryInfo; nothing raises on bad input.
"""

import hashlib
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import NamedTuple

from jobscout.core.schemas import (
    POSTED_WITHIN_HOURS,
    RawPosting,
    SalaryType,
    ScrapedPosting,
)

logger = logging.getLogger(__name__)

HOURS_PER_YEAR = 2080

REMOTE_KEYWORDS = ("remote", "work from home", "wfh", "telecommute", "anywhere")

_JUST_POSTED = ("just posted", "posted today", "today", "just now")

# Relative-age patterns, checked in order. Each maps to a timedelta factory.
_RELATIVE_PATTERNS: list[tuple[re.Pattern[str], timedelta]] = [
    (re.compile(r"(\d+)\+?\s*(?:minutes?|mins?|m)\b"), timedelta(minutes=1)),
    (re.compile(r"(\d+)\+?\s*(?:hours?|hrs?|h)\b"), timedelta(hours=1)),
    (re.compile(r"(\d+)\+?\s*(?:days?|d)\b"), timedelta(days=1)),
    (re.compile(r"(\d+)\+?\s*(?:weeks?|wks?|w)\b"), timedelta(weeks=1)),
    (re.compile(r"(\d+)\+?\s*(?:months?|mos?)\b"), timedelta(days=30)),
]

_HOURLY_MARKERS = re.compile(r"/\s*h(?:ou)?r\b|per\s+hour|hourly|an\s+hour")
_ANNUAL_MARKERS = re.compile(r"/\s*y(?:ea)?r\b|per\s+year|annually|a\s+year|yearly|\d\s*k\b")
_THOUSANDS = re.compile(r"\d\s*k\b")
_NUMBER = re.compile(r"\d[\d,]*(?:\.\d+)?")


class SalaryInfo(NamedTuple):
    """Parsed salary range. min/max are hourly figures."""

    min: float | None = None
    max: float | None = None
    period: SalaryType | None = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_posted_date(raw: str | None, now: datetime | None = None) -> datetime:
    """Convert a free-text posting age into an absolute UTC timestamp.

    Accepts "Just posted", "3 hours ago", "2d", "30+ days ago" and ISO
    strings. Anything unrecognised returns ``now``.
    """
    now = now or _utcnow()
    if not raw:
        return now
    text = raw.strip().lower()

    if any(text == p or text.startswith(p) for p in _JUST_POSTED):
        return now

    parsed = _parse_iso(raw.strip())
    if parsed is not None:
        return parsed

    for pattern, unit in _RELATIVE_PATTERNS:
        match = pattern.search(text)
        if match:
            return now - unit * int(match.group(1))

    if "yesterday" in text:
        return now - timedelta(days=1)

    logger.debug("Unrecognised posted date '%s', defaulting to now", raw)
    return now


def _parse_iso(text: str) -> datetime | None:
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def is_posted_within(posted_at: datetime, hours: float, now: datetime | None = None) -> bool:
    """Return True if posted_at is no older than ``hours``."""
    now = now or _utcnow()
    return (now - posted_at) <= timedelta(hours=hours)


def format_relative_time(posted_at: datetime, now: datetime | None = None) -> str:
    """Render a timestamp as "5 minutes ago" / "3 hours ago" / "2 days ago"."""
    now = now or _utcnow()
    minutes = int((now - posted_at).total_seconds() // 60)
    if minutes < 60:
        return "1 minute ago" if minutes == 1 else f"{max(minutes, 0)} minutes ago"
    hours = minutes // 60
    if hours < 24:
        return "1 hour ago" if hours == 1 else f"{hours} hours ago"
    days = hours // 24
    if days < 30:
        return "1 day ago" if days == 1 else f"{days} days ago"
    months = days // 30
    return "1 month ago" if months == 1 else f"{months} months ago"


def parse_salary(text: str | None) -> SalaryInfo:
    """Parse free-text salary into an hourly min/max and original period.

    "$85-95/hr"              -> (85, 95, "hourly")
    "$140,000-$180,000/year" -> (67.31, 86.54, "annual")
    "$100k-120k"             -> (48.08, 57.69, "annual")
    """
    if not text:
        return SalaryInfo()
    lowered = text.lower()

    numbers = [float(n.replace(",", "")) for n in _NUMBER.findall(lowered)]
    numbers = [n for n in numbers if n > 0][:2]
    if not numbers:
        return SalaryInfo()

    if _THOUSANDS.search(lowered):
        numbers = [n * 1000 if n < 1000 else n for n in numbers]

    period: SalaryType | None
    if _HOURLY_MARKERS.search(lowered):
        period = "hourly"
    elif _ANNUAL_MARKERS.search(lowered):
        period = "annual"
    else:
        # No unit marker: a four-plus digit figure is not an hourly rate.
        period = "annual" if max(numbers) >= 1000 else "hourly"

    low = numbers[0]
    high = numbers[1] if len(numbers) > 1 else numbers[0]
    if period == "annual":
        low /= HOURS_PER_YEAR
        high /= HOURS_PER_YEAR
    if high < low:
        low, high = high, low
    return SalaryInfo(round(low, 2), round(high, 2), period)


def detect_remote(title: str, location: str, description: str | None = None) -> bool:
    """Return True if any remote keyword appears in title, location or description."""
    haystack = " ".join((title, location, description or "")).lower()
    return any(kw in haystack for kw in REMOTE_KEYWORDS)


def normalize_string(value: str) -> str:
    """Lower-case, drop non-alphanumerics, collapse whitespace."""
    value = re.sub(r"[^a-z0-9\s]", "", value.lower())
    return re.sub(r"\s+", " ", value).strip()


def dedup_hash(title: str, company: str, location: str) -> str:
    """SHA-256 over normalized (title, company, location)."""
    combined = "-".join(normalize_string(v) for v in (title, company, location))
    return hashlib.sha256(combined.encode("utf-8")).hexdigest()


def normalize_posting(
    raw: RawPosting,
    platform: str,
    *,
    posted_within: str | None = None,
    now: datetime | None = None,
) -> ScrapedPosting | None:
    """Turn a RawPosting into a ScrapedPosting, or None if it must be dropped.

    Drops candidates missing title, company, location or apply URL, and
    candidates older than the ``posted_within`` window when one is given.
    """
    title = (raw.title or "").strip()
    company = (raw.company or "").strip()
    location = (raw.location or "").strip()
    apply_url = (raw.apply_url or "").strip()
    if not (title and company and location and apply_url):
        logger.debug("[%s] Missing required fields, skipping '%s'", platform, title)
        return None

    now = now or _utcnow()
    posted_at = normalize_posted_date(raw.posted_at_raw, now)
    if posted_within is not None:
        hours = POSTED_WITHIN_HOURS[posted_within]
        if not is_posted_within(posted_at, hours, now):
            logger.debug("[%s] Older than %s, skipping '%s'", platform, posted_within, title)
            return None

    salary = parse_salary(raw.salary_text)
    is_remote = raw.is_remote or detect_remote(title, location, raw.description)

    return ScrapedPosting(
        platform=platform,
        external_id=raw.external_id or None,
        title=title,
        company=company,
        location=location,
        is_remote=is_remote,
        salary_text=raw.salary_text or None,
        salary_min=salary.min,
        salary_max=salary.max,
        salary_type=salary.period,
        employment_type=raw.employment_type or None,
        description=raw.description or None,
        description_html=raw.description_html or None,
        requirements=raw.requirements or None,
        posted_at=posted_at,
        posted_at_raw=raw.posted_at_raw or "",
        apply_url=apply_url,
        source_url=raw.source_url or None,
        dedup_hash=dedup_hash(title, company, location),
    )
