"""Residential / datacenter proxy provider (Bright Data superproxy format)."""

import logging

from jobscout.core.config import ProxyConfig

logger = logging.getLogger(__name__)


class ProxyProvider:
    """Builds proxy endpoints for HTTP and browser transports.

    Usage::

        provider = ProxyProvider(settings.proxy)
        if provider.is_configured:
            url = provider.proxy_url(residential=True)
    """

    def __init__(self, config: ProxyConfig) -> None:
        self._config = config
        if not self.is_configured:
            logger.info("Proxy credentials not configured; proxy-only sources will be skipped")

    @property
    def is_configured(self) -> bool:
        return bool(self._config.api_key and self._config.customer_id)

    def username(self, *, residential: bool = False) -> str:
        suffix = self._config.residential_suffix if residential else ""
        return f"brd-customer-{self._config.customer_id}-zone-{self._config.zone}{suffix}"

    def proxy_url(self, *, residential: bool = False) -> str:
        """Proxy URL with inline credentials, for aiohttp's ``proxy=``."""
        return (
            f"http://{self.username(residential=residential)}:{self._config.api_key}"
            f"@{self._config.host}:{self._config.port}"
        )

    def browser_proxy(self, *, residential: bool = False) -> dict[str, str]:
        """Proxy settings in the shape patchright's ``launch(proxy=...)`` expects."""
        return {
            "server": f"http://{self._config.host}:{self._config.port}",
            "username": self.username(residential=residential),
            "password": self._config.api_key,
        }
