"""Static asset table: ticker symbol → provider-specific identifier.

Built once at import time and exposed read-only.
"""

from __future__ import annotations

from types import MappingProxyType

from pydantic import BaseModel, ConfigDict

from price_archive.core.exceptions import ConfigError


class CoinConfig(BaseModel):
    """Provider identifiers for one crypto asset."""

    model_config = ConfigDict(frozen=True)

    coingecko_id: str


COIN_CONFIGS: MappingProxyType[str, CoinConfig] = MappingProxyType(
    {
        "AAVE": CoinConfig(coingecko_id="aave"),
        "AVAX": CoinConfig(coingecko_id="avalanche-2"),
        "BERA": CoinConfig(coingecko_id="berachain-bera"),
        "BNB": CoinConfig(coingecko_id="binancecoin"),
        "CHZ": CoinConfig(coingecko_id="chiliz"),
        "COMP": CoinConfig(coingecko_id="compound-governance-token"),
        "ETH": CoinConfig(coingecko_id="ethereum"),
        "GRT": CoinConfig(coingecko_id="the-graph"),
        "HYPE": CoinConfig(coingecko_id="hyperliquid"),
        "OP": CoinConfig(coingecko_id="optimism"),
        "POL": CoinConfig(coingecko_id="polygon-ecosystem-token"),
        "S": CoinConfig(coingecko_id="sonic-3"),
        "SAFE": CoinConfig(coingecko_id="safe"),
        "SCR": CoinConfig(coingecko_id="scroll"),
        "SEI": CoinConfig(coingecko_id="sei-network"),
        "SOL": CoinConfig(coingecko_id="solana"),
        "SOPH": CoinConfig(coingecko_id="sophon"),
        "stETH": CoinConfig(coingecko_id="staked-ether"),
        "USDC": CoinConfig(coingecko_id="usd-coin"),
        "USDT": CoinConfig(coingecko_id="tether"),
        "XDC": CoinConfig(coingecko_id="xdce-crowd-sale"),
    }
)

# Forex quote currencies tracked against USD.
FOREX_ASSETS: tuple[str, ...] = ("GBP",)


def supported_coins() -> list[str]:
    return sorted(COIN_CONFIGS)


def coingecko_id(symbol: str) -> str:
    """Look up the CoinGecko id for a ticker symbol (case-sensitive: stETH)."""
    config = COIN_CONFIGS.get(symbol)
    if config is None:
        raise ConfigError(
            f"Currency {symbol!r} is not supported. "
            f"Available currencies: {', '.join(supported_coins())}, all",
            context={"field": "currency", "value": symbol},
        )
    return config.coingecko_id
