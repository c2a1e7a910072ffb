"""Tests for price_archive.ingestion.coingecko (CoinGeckoProvider)."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import httpx
import pytest
import respx

from price_archive.core.config import CoinGeckoConfig
from price_archive.core.exceptions import ConfigError, MaxRetriesExceeded, ProviderError
from price_archive.core.models import FetchWindow
from price_archive.ingestion.client import RetryingClient
from price_archive.ingestion.coingecko import CoinGeckoProvider

RANGE_URL = "https://cg.test/api/v3/coins/ethereum/market_chart/range"

FEB_1 = 1738368000000
HOUR = 3_600_000


# --- Fixtures ---


@pytest.fixture
async def provider(coingecko_config: CoinGeckoConfig, coingecko_keys, sleeper):
    client = RetryingClient(coingecko_config.base_url, coingecko_config, sleep=sleeper)
    async with CoinGeckoProvider(coingecko_config, client=client) as p:
        yield p


@pytest.fixture
def market_chart_body() -> str:
    """Range response with padding on both sides of Feb 1-2, 2025."""
    return (
        '{"prices": ['
        f"[{FEB_1 - 1000}, 3000.5], "
        f"[{FEB_1}, 3100.25], "
        f"[{FEB_1 + 23 * HOUR}, 3105.123456789], "
        f"[{FEB_1 + 24 * HOUR}, 3200], "
        f"[{FEB_1 + 48 * HOUR}, 3300.0]"
        '], "market_caps": [], "total_volumes": []}'
    )


# --- fetch ---


class TestFetch:
    @respx.mock
    async def test_daily_closing_values(self, provider, market_chart_body):
        respx.get(RANGE_URL).mock(return_value=httpx.Response(200, text=market_chart_body))
        window = FetchWindow(start=date(2025, 2, 1), end=date(2025, 2, 2))

        result = await provider.fetch("ETH", window)

        assert [(o.date, str(o.value)) for o in result] == [
            (date(2025, 2, 1), "3105.123456789"),
            (date(2025, 2, 2), "3200"),
        ]

    @respx.mock
    async def test_request_shape(self, provider, feb_2025_window):
        route = respx.get(RANGE_URL).mock(return_value=httpx.Response(200, json={"prices": []}))

        await provider.fetch("ETH", feb_2025_window)

        request = route.calls.last.request
        assert request.url.params["from"] == "1738368000"
        assert request.url.params["to"] == "1740787199"
        assert request.url.params["vs_currency"] == "usd"
        assert request.headers["x-cg-demo-api-key"] in {"key-one", "key-two"}

    @respx.mock
    async def test_uses_both_keys(self, provider, feb_2025_window, monkeypatch):
        route = respx.get(RANGE_URL).mock(return_value=httpx.Response(200, json={"prices": []}))
        picks = iter([0, 1])
        monkeypatch.setattr(
            "price_archive.ingestion.coingecko.random.choice", lambda keys: keys[next(picks)]
        )

        await provider.fetch("ETH", feb_2025_window)
        await provider.fetch("ETH", feb_2025_window)

        sent = [call.request.headers["x-cg-demo-api-key"] for call in route.calls]
        assert sent == ["key-one", "key-two"]

    @respx.mock
    async def test_empty_prices(self, provider, feb_2025_window):
        respx.get(RANGE_URL).mock(return_value=httpx.Response(200, json={"prices": []}))
        assert await provider.fetch("ETH", feb_2025_window) == []

    @respx.mock
    async def test_symbol_mapping(self, provider, feb_2025_window):
        route = respx.get("https://cg.test/api/v3/coins/staked-ether/market_chart/range").mock(
            return_value=httpx.Response(200, json={"prices": [[FEB_1, 3000]]})
        )

        result = await provider.fetch("stETH", feb_2025_window)

        assert route.call_count == 1
        assert result[0].value == Decimal(3000)


class TestFetchErrors:
    @respx.mock
    async def test_missing_prices_key(self, provider, feb_2025_window):
        respx.get(RANGE_URL).mock(return_value=httpx.Response(200, json={"error": "coin not found"}))

        with pytest.raises(ProviderError, match="no 'prices' list"):
            await provider.fetch("ETH", feb_2025_window)

    @respx.mock
    async def test_unknown_asset_makes_no_request(self, provider, feb_2025_window):
        with pytest.raises(ConfigError, match="not supported"):
            await provider.fetch("DOGE", feb_2025_window)

    @respx.mock
    async def test_missing_key_makes_no_request(self, provider, feb_2025_window, monkeypatch):
        monkeypatch.delenv("COINGECKO_API_KEY_2")

        with pytest.raises(ConfigError, match="COINGECKO_API_KEY_2"):
            await provider.fetch("ETH", feb_2025_window)

    @respx.mock
    async def test_rate_limited_throughout(self, provider, feb_2025_window, sleeper):
        route = respx.get(RANGE_URL).mock(
            return_value=httpx.Response(429, headers={"Retry-After": "0"})
        )

        with pytest.raises(MaxRetriesExceeded):
            await provider.fetch("ETH", feb_2025_window)

        assert route.call_count == 3
        assert sleeper.calls == [1.0, 1.0]
