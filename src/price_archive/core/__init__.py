"""price_archive.core - Foundation types, config, and exceptions."""

from price_archive.core.assets import COIN_CONFIGS, FOREX_ASSETS, CoinConfig, coingecko_id
from price_archive.core.config import (
    ArchiveConfig,
    CoinGeckoConfig,
    CurrencyFreaksConfig,
    RetryConfig,
    StorageConfig,
    load_config,
    resolve_api_key,
)
from price_archive.core.exceptions import (
    ConfigError,
    FetchError,
    FutureDateError,
    InvalidRangeError,
    MalformedRowError,
    MaxRetriesExceeded,
    NetworkError,
    NoValidRangeError,
    PriceArchiveError,
    ProviderError,
    RateLimitError,
    ServerError,
    StorageError,
)
from price_archive.core.models import (
    FetchWindow,
    IsoDay,
    MergePolicy,
    MergeResult,
    MergeScope,
    Observation,
    SeriesReadResult,
    Symbol,
    UnitOutcome,
    UnitStatus,
    WorkUnit,
)

__all__ = [
    # Type aliases
    "IsoDay",
    "Symbol",
    # Enums
    "MergePolicy",
    "UnitStatus",
    # Series models
    "Observation",
    "FetchWindow",
    "MergeScope",
    "MergeResult",
    "SeriesReadResult",
    # Batch models
    "WorkUnit",
    "UnitOutcome",
    # Assets
    "COIN_CONFIGS",
    "FOREX_ASSETS",
    "CoinConfig",
    "coingecko_id",
    # Config
    "ArchiveConfig",
    "CoinGeckoConfig",
    "CurrencyFreaksConfig",
    "RetryConfig",
    "StorageConfig",
    "load_config",
    "resolve_api_key",
    # Exceptions
    "PriceArchiveError",
    "ConfigError",
    "FetchError",
    "RateLimitError",
    "ServerError",
    "NetworkError",
    "ProviderError",
    "MaxRetriesExceeded",
    "InvalidRangeError",
    "NoValidRangeError",
    "FutureDateError",
    "StorageError",
    "MalformedRowError",
]
