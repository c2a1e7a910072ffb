"""CurrencyFreaks forex rate provider.

The historical endpoint has no range query: it answers one date at a time
with USD-based rates (``{"base": "USD", "rates": {"GBP": "0.787"}}``). The
archive stores the reciprocal (USD per unit of the asset), rounded to four
decimal places, so a window costs one request per day.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from price_archive.core.config import CurrencyFreaksConfig, resolve_api_key
from price_archive.core.exceptions import MaxRetriesExceeded, ProviderError
from price_archive.core.models import FetchWindow, Observation
from price_archive.ingestion.client import RetryingClient
from price_archive.ingestion.normalize import to_decimal

logger = logging.getLogger(__name__)

_HISTORICAL_PATH = "/rates/historical"


def invert_rate(rate: Decimal, decimal_places: int = 4) -> Decimal:
    """Reciprocal of ``rate`` rounded half-up, trailing zeros dropped.

    >>> invert_rate(Decimal("0.8"))
    Decimal('1.25')
    """
    quantum = Decimal(1).scaleb(-decimal_places)
    inverted = (Decimal(1) / rate).quantize(quantum, rounding=ROUND_HALF_UP)
    normalized = inverted.normalize()
    # normalize() turns 100.0000 into 1E+2; keep a plain exponent of zero instead
    if normalized.as_tuple().exponent > 0:
        normalized = normalized.quantize(Decimal(1))
    return normalized


class CurrencyFreaksProvider:
    """Fetches daily <asset>/USD rates, one request per calendar day.

    Parameters
    ----------
    config : CurrencyFreaksConfig
        Endpoint, credentials and retry settings.
    client : RetryingClient | None
        Pre-built client (useful for testing). Built from config if None.
    """

    name = "currencyfreaks"

    def __init__(
        self, config: CurrencyFreaksConfig, client: RetryingClient | None = None
    ) -> None:
        self._config = config
        self._client = client or RetryingClient(
            config.base_url, config, provider="CurrencyFreaks"
        )

    async def __aenter__(self) -> CurrencyFreaksProvider:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.close()

    async def fetch_rate(self, api_key: str, asset: str, day: date) -> Observation | None:
        """Fetch the rate for a single day.

        Returns:
            The inverted, rounded rate, or None when the response carries no
            usable rate for ``asset``.

        Raises:
            ProviderError: Non-retryable HTTP error or malformed body.
            MaxRetriesExceeded: Transient failures outlasted every retry.
        """
        data = await self._client.get_json(
            _HISTORICAL_PATH,
            params={"apikey": api_key, "date": day.isoformat()},
        )
        rates = data.get("rates") if isinstance(data, dict) else None
        raw = rates.get(asset) if isinstance(rates, dict) else None
        if raw is None:
            logger.warning("No %s rate found for %s", asset, day)
            return None

        try:
            rate = to_decimal(raw)
        except ValueError:
            rate = None
        if rate is None or rate <= 0:
            logger.warning("Invalid %s rate %r for %s", asset, raw, day)
            return None

        return Observation(date=day, value=invert_rate(rate, self._config.decimal_places))

    async def fetch(self, asset: str, window: FetchWindow) -> list[Observation]:
        """Fetch every day of ``window``, skipping days that fail.

        The API key is resolved once up front, so a missing key raises
        ConfigError before any request is made. A day whose request fails
        is logged and left out, and the usual request delay still follows
        it; the remaining days are still fetched. If every day fails, the
        last error is raised.
        """
        api_key = resolve_api_key(self._config.api_key_env)

        observations: list[Observation] = []
        failed: list[str] = []
        last_error: Exception | None = None
        for day in window.days():
            try:
                obs = await self.fetch_rate(api_key, asset, day)
            except (MaxRetriesExceeded, ProviderError) as e:
                logger.error("Failed to fetch %s rate for %s: %s", asset, day, e)
                failed.append(day.isoformat())
                last_error = e
                # successful calls pause inside the client; failed ones pause here
                await self._client.pause()
                continue
            if obs is not None:
                observations.append(obs)

        if last_error is not None and len(failed) == len(window):
            raise last_error
        if failed:
            logger.warning(
                "%s: %d of %d days failed (%s)",
                asset, len(failed), len(window), ", ".join(failed),
            )
        return observations
