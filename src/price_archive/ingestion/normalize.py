"""Collapse raw provider samples into one observation per UTC day."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from price_archive.core.exceptions import ProviderError
from price_archive.core.models import Observation

logger = logging.getLogger(__name__)


def to_decimal(value: Any) -> Decimal:
    """Convert a provider value to Decimal without going through binary float.

    Raises:
        ValueError: If the value is not a finite number.
    """
    if isinstance(value, bool):
        raise ValueError(f"not a number: {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as e:
            raise ValueError(f"not a number: {value!r}") from e
    elif isinstance(value, float):
        result = Decimal(repr(value))
    else:
        raise ValueError(f"not a number: {value!r}")
    if not result.is_finite():
        raise ValueError(f"not a finite number: {value!r}")
    return result


def utc_day(timestamp_ms: int | float | Decimal) -> date:
    """UTC calendar day of a millisecond unix timestamp."""
    return datetime.fromtimestamp(float(timestamp_ms) / 1000, tz=timezone.utc).date()


def normalize_samples(samples: Iterable[Sequence[Any]]) -> list[Observation]:
    """Reduce ``(timestamp_ms, value)`` samples to one Observation per day.

    Samples are ordered by timestamp (stably, so equal timestamps keep their
    response order) and the last sample of each UTC day wins. Days without
    samples are absent from the result.

    Returns:
        Observations sorted ascending by date.

    Raises:
        ProviderError: If a sample is not a ``[timestamp, value]`` pair of numbers.
    """
    parsed: list[tuple[Decimal, Decimal]] = []
    for index, sample in enumerate(samples):
        try:
            timestamp, value = sample
            parsed.append((to_decimal(timestamp), to_decimal(value)))
        except (TypeError, ValueError) as e:
            raise ProviderError(
                f"Malformed price sample at index {index}: {sample!r}",
                context={"index": index, "sample": repr(sample)[:200]},
            ) from e

    parsed.sort(key=lambda pair: pair[0])

    by_day: dict[date, Decimal] = {}
    for timestamp, value in parsed:
        by_day[utc_day(timestamp)] = value

    if len(by_day) < len(parsed):
        logger.debug("Collapsed %d samples into %d daily observations", len(parsed), len(by_day))

    return [Observation(date=day, value=value) for day, value in sorted(by_day.items())]
