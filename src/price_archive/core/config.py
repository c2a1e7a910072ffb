"""Configuration loading, validation, and access."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from price_archive.core.exceptions import ConfigError
from price_archive.core.models import MergePolicy


class RetryConfig(BaseModel):
    """Retry and pacing settings shared by every provider client."""

    model_config = ConfigDict(frozen=True)

    max_retries: int = 5
    retry_base_delay: float = 1.0
    min_retry_wait: float = 1.0
    max_retry_wait: float = 60.0
    request_delay: float = 0.0
    rate_limit: int = 30
    request_timeout: float = 30.0

    @field_validator("max_retries")
    @classmethod
    def max_retries_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("max_retries must be >= 0")
        return v

    @field_validator("retry_base_delay", "min_retry_wait", "request_delay")
    @classmethod
    def delay_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("delays must be >= 0")
        return v

    @field_validator("rate_limit")
    @classmethod
    def rate_limit_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("rate_limit must be >= 1 request per minute")
        return v

    @model_validator(mode="after")
    def max_wait_covers_min_wait(self) -> RetryConfig:
        if self.max_retry_wait < self.min_retry_wait:
            raise ValueError("max_retry_wait must be >= min_retry_wait")
        return self


class CoinGeckoConfig(RetryConfig):
    """CoinGecko market_chart/range access configuration."""

    model_config = ConfigDict(frozen=True)

    base_url: str = "https://api.coingecko.com/api/v3"
    api_key_envs: tuple[str, ...] = ("COINGECKO_API_KEY_1", "COINGECKO_API_KEY_2")
    api_key_header: str = "x-cg-demo-api-key"
    vs_currency: str = "usd"
    max_lookback_days: int = 365
    max_retries: int = 5
    request_delay: float = 2.0
    rate_limit: int = 30

    @field_validator("api_key_envs")
    @classmethod
    def at_least_one_key(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        if not v:
            raise ValueError("api_key_envs must name at least one environment variable")
        return v

    @field_validator("max_lookback_days")
    @classmethod
    def lookback_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_lookback_days must be >= 1")
        return v


class CurrencyFreaksConfig(RetryConfig):
    """CurrencyFreaks historical-rates access configuration."""

    model_config = ConfigDict(frozen=True)

    base_url: str = "https://api.currencyfreaks.com/v2.0"
    api_key_env: str = "CURRENCY_FREAKS_API_KEY"
    min_year: int = 2022
    decimal_places: int = 4
    max_retries: int = 3
    request_delay: float = 0.5
    rate_limit: int = 60

    @field_validator("decimal_places")
    @classmethod
    def decimal_places_range(cls, v: int) -> int:
        if v < 0 or v > 12:
            raise ValueError("decimal_places must be between 0 and 12")
        return v


class StorageConfig(BaseModel):
    """Where series files live and how merges treat existing values."""

    model_config = ConfigDict(frozen=True)

    data_dir: str = "."
    crypto_dir: str = "crypto"
    forex_dir: str = "forex"
    crypto_policy: MergePolicy = MergePolicy.OVERWRITE
    forex_policy: MergePolicy = MergePolicy.OVERWRITE

    @property
    def crypto_path(self) -> Path:
        return Path(self.data_dir) / self.crypto_dir

    @property
    def forex_path(self) -> Path:
        return Path(self.data_dir) / self.forex_dir


class ArchiveConfig(BaseModel):
    """Root configuration for the entire price-archive system."""

    model_config = ConfigDict(frozen=True)

    coingecko: CoinGeckoConfig = CoinGeckoConfig()
    currencyfreaks: CurrencyFreaksConfig = CurrencyFreaksConfig()
    storage: StorageConfig = StorageConfig()
    unit_timeout: float | None = None

    @field_validator("unit_timeout")
    @classmethod
    def timeout_positive(cls, v: float | None) -> float | None:
        if v is not None and v <= 0:
            raise ValueError("unit_timeout must be > 0")
        return v


def resolve_api_key(env_name: str) -> str:
    """Read an API key from the environment at call time.

    Raises:
        ConfigError: If the variable is unset or blank.
    """
    value = os.environ.get(env_name, "").strip()
    if not value:
        raise ConfigError(
            f"{env_name} environment variable is not set",
            context={"field": env_name, "value": None},
        )
    return value


def load_config(
    config_path: str | None = None,
    env_prefix: str = "PRICE_ARCHIVE_",
) -> ArchiveConfig:
    """Load configuration from environment + YAML file + defaults.

    Resolution order (highest priority first):
    1. Environment variables (PRICE_ARCHIVE_STORAGE__DATA_DIR, etc.)
    2. YAML file at config_path
    3. Built-in defaults

    Nested keys use double-underscore in env vars:
        PRICE_ARCHIVE_COINGECKO__MAX_RETRIES=3  ->  coingecko.max_retries = 3
    """
    try:
        yaml_path = _resolve_config_path(config_path, env_prefix)
        base: dict = {}
        if yaml_path is not None:
            base = _load_yaml(yaml_path)

        merged = _merge_env_vars(base, env_prefix)
        return ArchiveConfig.model_validate(merged)
    except Exception as e:
        if isinstance(e, ConfigError):
            raise
        raise ConfigError(str(e), context={"source": "load_config"}) from e


def _resolve_config_path(explicit: str | None, env_prefix: str) -> Path | None:
    """Determine config file path.

    The env variable and default file name follow ``env_prefix``:
    PRICE_ARCHIVE_ gives PRICE_ARCHIVE_CONFIG and price-archive.yml.
    """
    if explicit is not None:
        p = Path(explicit)
        if not p.exists():
            raise ConfigError(
                f"Config file not found: {explicit}",
                context={"field": "config_path", "value": explicit},
            )
        return p

    env_var = f"{env_prefix}CONFIG"
    env_path = os.environ.get(env_var)
    if env_path:
        p = Path(env_path)
        if not p.exists():
            raise ConfigError(
                f"Config file from {env_var} not found: {env_path}",
                context={"field": env_var, "value": env_path},
            )
        return p

    default = Path(env_prefix.rstrip("_").lower().replace("_", "-") + ".yml")
    if default.exists():
        return default

    return None


def _load_yaml(path: Path) -> dict:
    """Load and parse YAML file."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(
                f"YAML config must be a mapping, got {type(data).__name__}",
                context={"field": "config_file", "value": str(path)},
            )
        return data
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Failed to parse YAML config: {e}",
            context={"field": "config_file", "value": str(path)},
        ) from e


def _merge_env_vars(base: dict, prefix: str) -> dict:
    """Overlay environment variables onto base config dict.

    Double-underscore separates nesting levels.
    Values are auto-cast: "true"/"false" -> bool, numeric strings -> int/float.
    """
    result = dict(base)

    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue

        remainder = key[len(prefix) :]
        parts = [p.lower() for p in remainder.split("__")]

        # Skip the CONFIG env var itself
        if parts == ["config"]:
            continue

        cast_value = _auto_cast(value)

        target = result
        for part in parts[:-1]:
            nested = target.get(part)
            target[part] = dict(nested) if isinstance(nested, dict) else {}
            target = target[part]
        target[parts[-1]] = cast_value

    return result


def _auto_cast(value: str) -> str | int | float | bool:
    """Auto-cast string values from environment variables."""
    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    return value
