"""Strict keyword matching of postings against search profiles.

Each profile job title becomes one keyword group of significant words.
A posting title matches a group only if every word appears as a whole word;
it matches the user if it matches any group (AND within, OR across).

Filter order in the chain:
  1. ExcludeKeywordsFilter: substring, title + description, case-insensitive
  2. ProfileTitleFilter:    word-boundary match against keyword groups
"""

import logging
import re
from collections.abc import Callable, Iterable
from typing import NamedTuple

from jobscout.core.schemas import ScrapedPosting
from jobscout.profile.schema import SearchProfile

logger = logging.getLogger(__name__)

SENIORITY_WORDS = frozenset({
    "senior", "sr", "sr.", "junior", "jr", "jr.", "lead", "principal",
    "staff", "associate", "entry", "mid", "intern", "level",
    "i", "ii", "iii", "iv", "v",
})

STOPWORDS = frozenset({
    "the", "a", "an", "and", "or", "of", "for", "in", "at", "to", "with",
    "is", "are", "was", "were", "be", "been", "on", "by", "from", "into",
    "through", "no", "not", "but", "also", "very", "too", "so",
})

_PUNCTUATION = re.compile(r"[^a-z0-9\s\-/.]")
_SPLIT = re.compile(r"[\s\-/]+")

# A filter is a callable that takes postings and returns a subset.
Filter = Callable[[list[ScrapedPosting]], list[ScrapedPosting]]


class KeywordGroup(NamedTuple):
    """Significant words from one profile job title, with provenance."""

    words: tuple[str, ...]
    original_title: str
    profile_name: str


class KeywordVerdict(NamedTuple):
    included: bool
    excluded: bool
    score: float
    labels: list[str]


def extract_significant_words(title: str) -> list[str]:
    """Lower-case, strip punctuation, split, drop seniority words and stopwords.

    "Senior AI Architect" -> ["ai", "architect"]
    """
    text = _PUNCTUATION.sub(" ", title.lower())
    words: list[str] = []
    for raw in _SPLIT.split(text):
        if raw in SENIORITY_WORDS:
            continue
        word = raw.strip(".")
        if len(word) < 2 or word in SENIORITY_WORDS or word in STOPWORDS:
            continue
        words.append(word)
    return words


def build_keyword_groups(profiles: Iterable[SearchProfile]) -> list[KeywordGroup]:
    """One group per profile job title. Titles with no significant words are skipped."""
    groups: list[KeywordGroup] = []
    for profile in profiles:
        for title in profile.job_titles:
            words = extract_significant_words(title)
            if words:
                groups.append(KeywordGroup(tuple(words), title, profile.name))
    return groups


def _contains_whole_word(text: str, word: str) -> bool:
    return re.search(rf"\b{re.escape(word)}\b", text, re.IGNORECASE) is not None


def matches_keyword_group(title: str, group: KeywordGroup) -> bool:
    """True if every group word appears in title as a whole word."""
    return all(_contains_whole_word(title, word) for word in group.words)


def find_matching_groups(title: str, groups: Iterable[KeywordGroup]) -> list[KeywordGroup]:
    """Matching groups, most specific (most words) first."""
    matched = [g for g in groups if matches_keyword_group(title, g)]
    matched.sort(key=lambda g: len(g.words), reverse=True)
    return matched


def should_exclude_posting(title: str, description: str | None, exclude_keywords: Iterable[str]) -> bool:
    """True if any exclude keyword is a substring of title + description."""
    keywords = [kw.lower().strip() for kw in exclude_keywords if kw.strip()]
    if not keywords:
        return False
    text = f"{title} {description or ''}".lower()
    return any(kw in text for kw in keywords)


def calculate_keyword_score(title: str, matching_groups: list[KeywordGroup]) -> float:
    """0-100 coverage score from the best group, plus a multi-profile bonus.

    70% weight on how much of the profile phrase the title covers, 30% on how
    much of the title the profile phrase explains.
    """
    if not matching_groups:
        return 0.0
    best = matching_groups[0]
    title_words = extract_significant_words(title)
    profile_words = set(best.words)
    job_words = set(title_words)

    profile_in_job = sum(1 for w in best.words if w in job_words) / len(best.words)
    job_in_profile = sum(1 for w in title_words if w in profile_words) / max(len(title_words), 1)
    overlap = profile_in_job * 0.7 + job_in_profile * 0.3
    bonus = min(0.1, (len(matching_groups) - 1) * 0.05)
    return float(round(min(1.0, overlap + bonus) * 100))


def build_match_reasons(matching_groups: list[KeywordGroup]) -> list[str]:
    """One label per matching profile, in match order."""
    reasons: list[str] = []
    seen: set[str] = set()
    for group in matching_groups:
        if group.profile_name in seen:
            continue
        seen.add(group.profile_name)
        reasons.append(f'Matches "{group.original_title}" from {group.profile_name}')
    return reasons


def build_sql_patterns(groups: Iterable[KeywordGroup]) -> list[list[str]]:
    """LIKE patterns per group, for a substring prefilter in SQL.

    LIKE is looser than the word-boundary check, so results must still be
    post-filtered with matches_keyword_group.
    """
    return [[f"%{word}%" for word in group.words] for group in groups]


class ExcludeKeywordsFilter:
    """Remove postings whose title or description contains any excluded keyword."""

    def __init__(self, exclude_keywords: Iterable[str]) -> None:
        self._keywords = [kw.lower().strip() for kw in exclude_keywords if kw.strip()]

    def __call__(self, postings: list[ScrapedPosting]) -> list[ScrapedPosting]:
        if not self._keywords:
            return postings
        result = [
            p for p in postings
            if not should_exclude_posting(p.title, p.description, self._keywords)
        ]
        excluded = len(postings) - len(result)
        if excluded:
            logger.debug("ExcludeKeywordsFilter: removed %d postings", excluded)
        return result


class ProfileTitleFilter:
    """Keep only postings whose title matches at least one keyword group.

    With no groups the filter is a no-op.
    """

    def __init__(self, groups: list[KeywordGroup]) -> None:
        self._groups = groups

    def __call__(self, postings: list[ScrapedPosting]) -> list[ScrapedPosting]:
        if not self._groups:
            return postings
        result = [p for p in postings if find_matching_groups(p.title, self._groups)]
        removed = len(postings) - len(result)
        if removed:
            logger.debug("ProfileTitleFilter: removed %d postings", removed)
        return result


class KeywordMatcher:
    """Verdicts for postings against a set of search profiles.

    Only active profiles contribute groups and exclude keywords.
    """

    def __init__(self, profiles: Iterable[SearchProfile]) -> None:
        active = [p for p in profiles if p.is_active]
        self.groups = build_keyword_groups(active)
        self.exclude_keywords = list(dict.fromkeys(
            kw for p in active for kw in p.exclude_keywords if kw.strip()
        ))

    def match(self, posting: ScrapedPosting) -> KeywordVerdict:
        if should_exclude_posting(posting.title, posting.description, self.exclude_keywords):
            return KeywordVerdict(included=False, excluded=True, score=0.0, labels=[])
        if not self.groups:
            return KeywordVerdict(included=True, excluded=False, score=0.0, labels=[])
        matching = find_matching_groups(posting.title, self.groups)
        return KeywordVerdict(
            included=bool(matching),
            excluded=False,
            score=calculate_keyword_score(posting.title, matching),
            labels=build_match_reasons(matching),
        )

    def filters(self) -> list[Filter]:
        return [ExcludeKeywordsFilter(self.exclude_keywords), ProfileTitleFilter(self.groups)]

    def sql_patterns(self) -> list[list[str]] | None:
        """LIKE prefilter groups, or None when there is nothing to prefilter on."""
        return build_sql_patterns(self.groups) if self.groups else None

    def __call__(self, postings: list[ScrapedPosting]) -> list[ScrapedPosting]:
        return run_filter_chain(postings, self.filters())


def run_filter_chain(
    postings: list[ScrapedPosting],
    filters: list[Filter],
) -> list[ScrapedPosting]:
    """Apply filters in order, returning the surviving postings."""
    result = postings
    for f in filters:
        result = f(result)
    return result
