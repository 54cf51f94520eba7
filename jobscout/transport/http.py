"""Async HTTP transport: direct fetch and proxied fetch with a bounded timeout."""

import asyncio
import logging
from types import TracebackType

import aiohttp

from jobscout.core.config import HttpConfig
from jobscout.core.errors import ConfigurationError, FetchError
from jobscout.transport.proxy import ProxyProvider

logger = logging.getLogger(__name__)


class HttpClient:
    """Async context manager owning one aiohttp session.

    Usage::

        async with HttpClient(settings.http, ProxyProvider(settings.proxy)) as http:
            html = await http.fetch_direct("https://...")
    """

    def __init__(
        self,
        config: HttpConfig,
        proxy: ProxyProvider | None = None,
        *,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config
        self._proxy = proxy
        self._session = session
        self._owns_session = session is None

    @property
    def proxy_configured(self) -> bool:
        return self._proxy is not None and self._proxy.is_configured

    @property
    def proxy(self) -> ProxyProvider | None:
        return self._proxy

    async def __aenter__(self) -> "HttpClient":
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._config.timeout_s),
                headers={
                    "User-Agent": self._config.user_agent,
                    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                    "Accept-Language": "en-US,en;q=0.9",
                },
            )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    async def fetch_direct(self, url: str) -> str:
        """GET url without a proxy. Raises FetchError on any failure."""
        return await self._get(url)

    async def fetch_via_proxy(self, url: str, *, residential: bool = False) -> str:
        """GET url through the configured proxy.

        Raises ConfigurationError if no proxy is configured.
        """
        if self._proxy is None or not self._proxy.is_configured:
            msg = "Proxy not configured"
            raise ConfigurationError(msg)
        return await self._get(url, proxy=self._proxy.proxy_url(residential=residential))

    async def _get(self, url: str, proxy: str | None = None) -> str:
        if self._session is None:
            msg = "HttpClient not entered; use 'async with'"
            raise RuntimeError(msg)
        via = "proxy" if proxy else "direct"
        try:
            async with self._session.get(url, proxy=proxy) as response:
                if response.status >= 400:
                    msg = f"HTTP {response.status} for {url} ({via})"
                    raise FetchError(msg, url=url, status=response.status)
                # Pages with stray bytes still parse; bad bytes become U+FFFD.
                text = await response.text(errors="replace")
        except asyncio.TimeoutError as e:
            msg = f"Timed out after {self._config.timeout_s:.0f}s fetching {url} ({via})"
            raise FetchError(msg, url=url) from e
        except aiohttp.ClientError as e:
            msg = f"Request failed for {url} ({via}): {e}"
            raise FetchError(msg, url=url) from e
        logger.debug("Fetched %s via %s: %d bytes", url, via, len(text))
        return text
