"""Source scraper registry with lazy loading.

Usage:
    from jobscout.platforms import build_scrapers, get_scraper

    scraper = get_scraper("indeed", http=http, rate_limiter=limiter)
    result = await scraper.scrape(options)

Adding a source is one module under ``jobscout/platforms/`` plus one
``_REGISTRY`` entry.
"""

from __future__ import annotations

import importlib
from collections.abc import Iterable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from jobscout.browser.session import BrowserSession
    from jobscout.pipeline.rate_limiter import RateLimiter
    from jobscout.platforms.base import SourceScraper
    from jobscout.transport.http import HttpClient

__all__ = ["available_platforms", "build_scrapers", "get_scraper"]

# Lazy registry: maps platform name → (module_path, class_name)
_REGISTRY: dict[str, tuple[str, str]] = {
    "indeed": ("jobscout.platforms.indeed", "IndeedScraper"),
    "linkedin": ("jobscout.platforms.linkedin", "LinkedInScraper"),
    "dice": ("jobscout.platforms.dice", "DiceScraper"),
    "glassdoor": ("jobscout.platforms.glassdoor", "GlassdoorScraper"),
    "ziprecruiter": ("jobscout.platforms.ziprecruiter", "ZipRecruiterScraper"),
    "simplyhired": ("jobscout.platforms.simplyhired", "SimplyHiredScraper"),
    "builtin": ("jobscout.platforms.builtin", "BuiltInScraper"),
    "weworkremotely": ("jobscout.platforms.weworkremotely", "WeWorkRemotelyScraper"),
}


def get_scraper(
    name: str,
    *,
    http: HttpClient,
    rate_limiter: RateLimiter,
    renderer: BrowserSession | None = None,
) -> SourceScraper:
    """Instantiate and return a source scraper by name.

    Raises:
        ValueError: If the platform name is unknown.
    """
    key = name.lower().strip()
    if key not in _REGISTRY:
        valid = ", ".join(sorted(_REGISTRY))
        msg = f"Unknown platform '{name}'. Available: {valid}"
        raise ValueError(msg)

    module_path, class_name = _REGISTRY[key]
    module = importlib.import_module(module_path)
    cls = getattr(module, class_name)
    return cls(http, rate_limiter, renderer)  # type: ignore[no-any-return]


def build_scrapers(
    names: Iterable[str],
    *,
    http: HttpClient,
    rate_limiter: RateLimiter,
    renderer: BrowserSession | None = None,
) -> dict[str, SourceScraper]:
    """Scrapers for every known name; unknown names are left out.

    The orchestrator reports names missing from the mapping as errors.
    """
    return {
        name: get_scraper(name, http=http, rate_limiter=rate_limiter, renderer=renderer)
        for name in dict.fromkeys(n.lower().strip() for n in names)
        if name in _REGISTRY
    }


def is_known_platform(name: str) -> bool:
    return name.lower().strip() in _REGISTRY


def available_platforms() -> list[str]:
    """Return sorted list of registered platform names."""
    return sorted(_REGISTRY)
