"""CoinGecko crypto price provider.

Uses the ``/coins/{id}/market_chart/range`` endpoint, which returns every
sample between two unix timestamps as ``{"prices": [[ts_ms, price], ...]}``.
Intraday samples are collapsed to one closing value per UTC day.
"""

from __future__ import annotations

import logging
import random

from price_archive.core.assets import coingecko_id
from price_archive.core.config import CoinGeckoConfig, resolve_api_key
from price_archive.core.exceptions import ProviderError
from price_archive.core.models import FetchWindow, Observation
from price_archive.ingestion.client import RetryingClient
from price_archive.ingestion.normalize import normalize_samples

logger = logging.getLogger(__name__)

_RANGE_PATH = "/coins/{coin_id}/market_chart/range"


class CoinGeckoProvider:
    """Fetches daily USD closing prices for crypto assets.

    Parameters
    ----------
    config : CoinGeckoConfig
        Endpoint, credentials and retry settings.
    client : RetryingClient | None
        Pre-built client (useful for testing). Built from config if None.
    """

    name = "coingecko"

    def __init__(self, config: CoinGeckoConfig, client: RetryingClient | None = None) -> None:
        self._config = config
        self._client = client or RetryingClient(config.base_url, config, provider="CoinGecko")

    async def __aenter__(self) -> CoinGeckoProvider:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.close()

    def _api_key(self) -> str:
        """Pick one of the configured keys at random to spread per-key limits."""
        keys = [resolve_api_key(env_name) for env_name in self._config.api_key_envs]
        return random.choice(keys)

    async def fetch(self, asset: str, window: FetchWindow) -> list[Observation]:
        """Fetch one observation per day of ``window`` for ``asset``.

        Raises:
            ConfigError: Unknown asset or missing API key.
            ProviderError: Response lacks a ``prices`` list.
            MaxRetriesExceeded: Transient failures outlasted every retry.
        """
        coin_id = coingecko_id(asset)
        api_key = self._api_key()

        logger.debug("Fetching %s (%s) for %s", asset, coin_id, window)
        data = await self._client.get_json(
            _RANGE_PATH.format(coin_id=coin_id),
            params={
                "from": str(window.from_timestamp),
                "to": str(window.to_timestamp),
                "vs_currency": self._config.vs_currency,
            },
            headers={self._config.api_key_header: api_key},
        )

        prices = data.get("prices") if isinstance(data, dict) else None
        if not isinstance(prices, list):
            raise ProviderError(
                f"CoinGecko response for {asset} has no 'prices' list",
                context={"asset": asset, "coin_id": coin_id},
            )

        observations = normalize_samples(prices)
        # The range endpoint may pad the edges; keep only requested days
        return [obs for obs in observations if window.contains(obs.date)]
