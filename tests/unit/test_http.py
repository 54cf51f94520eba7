"""Tests for the async HTTP client, using a mocked aiohttp session."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from jobscout.core.config import HttpConfig, ProxyConfig
from jobscout.core.errors import ConfigurationError, FetchError
from jobscout.transport.http import HttpClient
from jobscout.transport.proxy import ProxyProvider


def _session(status: int = 200, body: str = "<html></html>") -> MagicMock:
    response = MagicMock(status=status)
    response.text = AsyncMock(return_value=body)
    session = MagicMock()
    session.get.return_value.__aenter__.return_value = response
    session.get.return_value.__aexit__.return_value = False
    session.close = AsyncMock()
    return session


def _proxy() -> ProxyProvider:
    return ProxyProvider(ProxyConfig(customer_id="c1", api_key="k", zone="z"))


class TestFetch:
    async def test_direct(self) -> None:
        session = _session(body="ok")
        async with HttpClient(HttpConfig(), session=session) as http:
            assert await http.fetch_direct("https://example.com") == "ok"
        session.get.assert_called_once_with("https://example.com", proxy=None)

    async def test_via_proxy(self) -> None:
        session = _session()
        async with HttpClient(HttpConfig(), _proxy(), session=session) as http:
            assert http.proxy_configured is True
            await http.fetch_via_proxy("https://example.com", residential=True)
        proxy_url = session.get.call_args.kwargs["proxy"]
        assert proxy_url.startswith("http://brd-customer-c1-zone-z-country-us:k@")

    async def test_proxy_not_configured(self) -> None:
        async with HttpClient(HttpConfig(), session=_session()) as http:
            assert http.proxy_configured is False
            with pytest.raises(ConfigurationError, match="Proxy not configured"):
                await http.fetch_via_proxy("https://example.com")

    async def test_http_error_status(self) -> None:
        async with HttpClient(HttpConfig(), session=_session(status=403)) as http:
            with pytest.raises(FetchError, match="HTTP 403") as exc_info:
                await http.fetch_direct("https://example.com")
        assert exc_info.value.status == 403
        assert exc_info.value.url == "https://example.com"

    async def test_timeout(self) -> None:
        session = _session()
        session.get.side_effect = asyncio.TimeoutError()
        async with HttpClient(HttpConfig(timeout_s=5), session=session) as http:
            with pytest.raises(FetchError, match="Timed out after 5s"):
                await http.fetch_direct("https://example.com")

    async def test_client_error(self) -> None:
        session = _session()
        session.get.side_effect = aiohttp.ClientConnectionError("refused")
        async with HttpClient(HttpConfig(), session=session) as http:
            with pytest.raises(FetchError, match="refused"):
                await http.fetch_direct("https://example.com")

    async def test_invalid_utf8_is_replaced(self) -> None:
        body = b"<html>caf\xe9 jobs</html>"

        async def text(encoding: str | None = None, errors: str = "strict") -> str:
            return body.decode(encoding or "utf-8", errors)

        session = _session()
        session.get.return_value.__aenter__.return_value.text = text
        async with HttpClient(HttpConfig(), session=session) as http:
            html = await http.fetch_direct("https://example.com")
        assert html == "<html>caf� jobs</html>"

    async def test_not_entered(self) -> None:
        with pytest.raises(RuntimeError, match="not entered"):
            await HttpClient(HttpConfig()).fetch_direct("https://example.com")


class TestLifecycle:
    async def test_injected_session_not_closed(self) -> None:
        session = _session()
        async with HttpClient(HttpConfig(), session=session):
            pass
        session.close.assert_not_awaited()
