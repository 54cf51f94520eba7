"""Helpers that let lazily-loaded result lists settle before the HTML is read."""

import asyncio
import logging
import random
from typing import Any

logger = logging.getLogger(__name__)

MAX_SETTLE_ROUNDS = 5

# Lower bound for the pause between scrolls, whatever the caller asks for.
MIN_PAUSE_S = 0.5


async def jitter(base_s: float, spread_s: float = 0.5) -> float:
    """Sleep base_s plus a random extra of up to spread_s. Returns the pause."""
    pause = max(base_s, 0.0) + random.uniform(0.0, max(spread_s, 0.0))
    await asyncio.sleep(pause)
    return pause


async def count_cards(page: Any, selectors: tuple[str, ...]) -> int:
    """Number of result cards, using the first selector that matches any."""
    for selector in selectors:
        n = await page.locator(selector).count()
        if n:
            return int(n)
    return 0


async def settle_results(
    page: Any,
    *,
    card_selectors: tuple[str, ...],
    max_rounds: int = MAX_SETTLE_ROUNDS,
    pause_s: float = 0.75,
) -> int:
    """Scroll to the bottom until the card count stops growing.

    Returns the highest card count seen.
    """
    pause_s = max(pause_s, MIN_PAUSE_S)
    best = 0
    for round_no in range(1, max_rounds + 1):
        n = await count_cards(page, card_selectors)
        if round_no > 1 and n <= best:
            logger.debug("Results settled at %d cards after %d rounds", best, round_no - 1)
            break
        best = max(best, n)
        await page.evaluate("window.scrollBy(0, document.body.scrollHeight)")
        await jitter(pause_s)
    return best
