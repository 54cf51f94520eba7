"""Browser session for sources whose result pages need JavaScript rendering.

One browser, one context, one page per session. Traffic goes through the
residential proxy when one is configured. Cookies are optional.
"""

import asyncio
import json
import logging
from contextlib import AsyncExitStack
from pathlib import Path
from types import TracebackType
from typing import Any

from patchright.async_api import BrowserContext, Page, async_playwright

from jobscout.browser.actions import settle_results
from jobscout.core.config import BrowserConfig
from jobscout.core.errors import FetchError
from jobscout.transport.proxy import ProxyProvider

logger = logging.getLogger(__name__)


class BrowserSession:
    """Renders pages in a single patchright tab, one navigation at a time.

    Usage::

        async with BrowserSession(config, proxy) as session:
            html = await session.render("https://...", card_selectors=("li.job",))
    """

    def __init__(self, config: BrowserConfig, proxy: ProxyProvider | None = None) -> None:
        self._config = config
        self._proxy = proxy
        self._stack: AsyncExitStack | None = None
        self._page: Page | None = None
        self._lock = asyncio.Lock()

    @property
    def page(self) -> Page:
        if self._page is None:
            msg = "BrowserSession not entered; use 'async with'"
            raise RuntimeError(msg)
        return self._page

    def launch_options(self) -> dict[str, Any]:
        options: dict[str, Any] = {"headless": self._config.headless}
        if self._proxy is not None and self._proxy.is_configured:
            options["proxy"] = self._proxy.browser_proxy(residential=True)
        return options

    async def __aenter__(self) -> "BrowserSession":
        stack = AsyncExitStack()
        try:
            pw = await stack.enter_async_context(async_playwright())
            browser = await pw.chromium.launch(**self.launch_options())
            stack.push_async_callback(browser.close)
            context = await browser.new_context()
            stack.push_async_callback(context.close)
            await self._add_cookies(context)
            context.set_default_timeout(self._config.timeout_ms)
            self._page = await context.new_page()
        except BaseException:
            await stack.aclose()
            raise
        self._stack = stack
        logger.debug("Browser session ready (headless=%s)", self._config.headless)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        stack, self._stack, self._page = self._stack, None, None
        if stack is not None:
            await stack.aclose()

    async def _add_cookies(self, context: BrowserContext) -> None:
        cookies = _load_cookies(self._config.cookies_path)
        if cookies:
            await context.add_cookies(cookies)  # type: ignore[arg-type]
            logger.info("Loaded %d cookies from %s", len(cookies), self._config.cookies_path)

    async def render(self, url: str, *, card_selectors: tuple[str, ...] = ()) -> str:
        """Navigate to url and return the rendered HTML.

        When card_selectors is given the page is scrolled until the card
        count stabilizes so lazily-loaded results are included. Navigation
        failures are raised as FetchError.
        """
        async with self._lock:
            page = self.page
            try:
                await page.goto(url, timeout=self._config.timeout_ms)
                if card_selectors:
                    await settle_results(page, card_selectors=card_selectors)
                return await page.content()  # type: ignore[no-any-return]
            except Exception as e:
                msg = f"Browser navigation failed for {url}: {e}"
                raise FetchError(msg, url=url) from e


def _load_cookies(path: str | None) -> list[dict[str, Any]]:
    """Cookies from a browser-export JSON array; entries without name/value are dropped.

    Any read or decode problem yields an empty list: cookies are optional.
    """
    if not path:
        return []
    cookie_path = Path(path)
    if not cookie_path.is_file():
        logger.debug("No cookie file at %s", path)
        return []
    try:
        data = json.loads(cookie_path.read_text())
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Ignoring unreadable cookie file %s: %s", path, e)
        return []
    if not isinstance(data, list):
        logger.warning("Ignoring cookie file %s: expected a JSON array", path)
        return []
    cookies = [c for c in data if isinstance(c, dict) and c.get("name") and "value" in c]
    if len(cookies) < len(data):
        logger.debug("Dropped %d malformed cookie entries", len(data) - len(cookies))
    return cookies
