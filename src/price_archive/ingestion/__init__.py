"""Ingestion: date windows, the retrying HTTP client, and price providers."""

from price_archive.ingestion.client import RetryingClient
from price_archive.ingestion.coingecko import CoinGeckoProvider
from price_archive.ingestion.currencyfreaks import CurrencyFreaksProvider, invert_rate
from price_archive.ingestion.normalize import normalize_samples

__all__ = [
    "CoinGeckoProvider",
    "CurrencyFreaksProvider",
    "RetryingClient",
    "invert_rate",
    "normalize_samples",
]
