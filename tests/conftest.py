"""Shared pytest fixtures for price-archive."""

from datetime import date
from decimal import Decimal

import pytest

from price_archive.core.config import CoinGeckoConfig, CurrencyFreaksConfig
from price_archive.core.models import FetchWindow, MergeScope, Observation


@pytest.fixture
def today() -> date:
    return date(2025, 6, 15)


@pytest.fixture
def make_obs():
    """Factory: make_obs("2025-02-01", "100.0") -> Observation."""

    def _make(day: str, value: str) -> Observation:
        return Observation(date=date.fromisoformat(day), value=Decimal(value))

    return _make


@pytest.fixture
def feb_2025_scope() -> MergeScope:
    return MergeScope(start=date(2025, 2, 1), end=date(2025, 2, 28))


@pytest.fixture
def feb_2025_window() -> FetchWindow:
    return FetchWindow(start=date(2025, 2, 1), end=date(2025, 2, 28))


@pytest.fixture
def coingecko_config() -> CoinGeckoConfig:
    """Fast CoinGecko config: no pacing delays, small retry budget."""
    return CoinGeckoConfig(
        base_url="https://cg.test/api/v3",
        max_retries=2,
        request_delay=0.0,
        rate_limit=1000,
    )


@pytest.fixture
def currencyfreaks_config() -> CurrencyFreaksConfig:
    return CurrencyFreaksConfig(
        base_url="https://cf.test/v2.0",
        max_retries=1,
        request_delay=0.0,
        rate_limit=1000,
    )


@pytest.fixture
def coingecko_keys(monkeypatch):
    monkeypatch.setenv("COINGECKO_API_KEY_1", "key-one")
    monkeypatch.setenv("COINGECKO_API_KEY_2", "key-two")


@pytest.fixture
def currencyfreaks_key(monkeypatch):
    monkeypatch.setenv("CURRENCY_FREAKS_API_KEY", "cf-key")


class SleepRecorder:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()
