"""Date-range calculator: turn a (year, month) or "last N days" request into
an inclusive UTC day window a provider can be asked for.

Two edge rules shape every window:

- Today's value is never final, so a window ends at yesterday at the latest.
- Providers with a lookback limit refuse days older than
  ``today - max_lookback_days``; a month straddling that day is clamped to
  start there, a month wholly before it is rejected.

Every function takes ``today`` explicitly so results are reproducible.
"""

from __future__ import annotations

import calendar
from datetime import date, timedelta

from price_archive.core.exceptions import (
    FutureDateError,
    InvalidRangeError,
    NoValidRangeError,
)
from price_archive.core.models import FetchWindow, MergeScope

ALL_MONTHS = "all"


def _fmt_month(year: int, month: int) -> str:
    return f"{year}-{month:02d}"


def last_day_of_month(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def earliest_allowed_day(today: date, max_lookback_days: int) -> date:
    return today - timedelta(days=max_lookback_days)


def earliest_allowed_month(today: date, max_lookback_days: int) -> tuple[int, int]:
    """Return (year, month) containing the oldest day a provider will serve."""
    earliest = earliest_allowed_day(today, max_lookback_days)
    return earliest.year, earliest.month


def parse_year(value: str | int) -> int:
    """Parse a four-digit year.

    Raises:
        InvalidRangeError: If the value is not a YYYY year.
    """
    text = str(value).strip()
    if len(text) != 4 or not text.isdigit():
        raise InvalidRangeError(
            "Year must be in YYYY format",
            context={"field": "year", "value": text},
        )
    return int(text)


def parse_month(value: str | int) -> int:
    """Parse a month number given as ``1``, ``01`` … ``12``.

    Raises:
        InvalidRangeError: If the value is not a month between 1 and 12.
    """
    text = str(value).strip()
    if not text.isdigit() or not 1 <= int(text) <= 12:
        raise InvalidRangeError(
            "Month must be between 01 and 12 or 'all'",
            context={"field": "month", "value": text},
        )
    return int(text)


def month_window(
    year: int,
    month: int,
    *,
    today: date,
    max_lookback_days: int | None = None,
) -> FetchWindow:
    """Compute the fetch window for one calendar month.

    Args:
        year: Four-digit year.
        month: Month number (1-12).
        today: Current UTC date.
        max_lookback_days: Provider lookback limit, or None for unlimited.

    Returns:
        Inclusive window: the full month for past months, the 1st through
        yesterday for the current month, clamped to the lookback limit.

    Raises:
        FutureDateError: The month lies after the current month.
        NoValidRangeError: The month is wholly outside the lookback limit or
            has no complete day yet.
    """
    month = parse_month(month)
    requested = _fmt_month(year, month)

    if (year, month) > (today.year, today.month):
        raise FutureDateError(
            "Cannot fetch prices for future dates",
            context={"requested": requested, "latest": _fmt_month(today.year, today.month)},
        )

    yesterday = today - timedelta(days=1)
    start = date(year, month, 1)
    if (year, month) == (today.year, today.month):
        end = yesterday
    else:
        end = last_day_of_month(year, month)

    if max_lookback_days is not None:
        earliest = earliest_allowed_day(today, max_lookback_days)
        if end < earliest:
            raise NoValidRangeError(
                f"Cannot fetch prices more than {max_lookback_days} days in the past. "
                f"Earliest allowed: {_fmt_month(earliest.year, earliest.month)}",
                context={
                    "requested": requested,
                    "earliest": _fmt_month(earliest.year, earliest.month),
                    "latest": yesterday.isoformat(),
                },
            )
        start = max(start, earliest)

    if start > end:
        raise NoValidRangeError(
            f"No complete day available for {requested} yet. "
            f"Valid range ends at {yesterday.isoformat()}",
            context={"requested": requested, "earliest": start.isoformat(), "latest": end.isoformat()},
        )

    return FetchWindow(start=start, end=end)


def month_scope(year: int, month: int) -> MergeScope:
    """Merge scope of a month request: the whole calendar month."""
    return MergeScope(start=date(year, month, 1), end=last_day_of_month(year, month))


def recent_days_window(
    days: int,
    *,
    today: date,
    max_lookback_days: int | None = None,
) -> FetchWindow:
    """Window covering the most recent ``days`` complete days.

    The window is ``[today - days, yesterday]``: today is always excluded.

    Raises:
        NoValidRangeError: ``days`` is not positive or exceeds the lookback limit.
    """
    if days < 1:
        raise NoValidRangeError(
            "Recent days must be a positive integer",
            context={"field": "days", "value": days},
        )
    if max_lookback_days is not None and days > max_lookback_days:
        earliest = _fmt_month(*earliest_allowed_month(today, max_lookback_days))
        raise NoValidRangeError(
            f"Cannot fetch prices more than {max_lookback_days} days in the past. "
            f"Earliest allowed: {earliest}",
            context={"field": "days", "value": days, "earliest": earliest},
        )
    return FetchWindow(start=today - timedelta(days=days), end=today - timedelta(days=1))


def resolve_months(
    year: int,
    month_spec: str | int,
    *,
    today: date,
    max_lookback_days: int | None = None,
    min_year: int | None = None,
) -> list[int]:
    """Expand a month argument into the list of months to process.

    ``"all"`` covers every month of ``year`` a provider can serve: from the
    earliest allowed month (when ``year`` is the lookback year) through the
    current month (when ``year`` is the current year). An explicit month is
    returned as-is; its window is validated later, per unit.

    Raises:
        FutureDateError: ``year`` is after the current year.
        NoValidRangeError: No month of ``year`` is fetchable.
        InvalidRangeError: ``month_spec`` is neither "all" nor a month number.
    """
    if year > today.year:
        raise FutureDateError(
            "Cannot fetch prices for future dates",
            context={"requested": str(year), "latest": str(today.year)},
        )
    if min_year is not None and year < min_year:
        raise NoValidRangeError(
            f"Year must be in YYYY format (starting from {min_year})",
            context={"requested": str(year), "earliest": str(min_year)},
        )

    if str(month_spec).strip().lower() != ALL_MONTHS:
        return [parse_month(month_spec)]

    first = 1
    earliest_year, earliest_month = 1, 1
    if max_lookback_days is not None:
        earliest_year, earliest_month = earliest_allowed_month(today, max_lookback_days)
        if year < earliest_year:
            first = 13
        elif year == earliest_year:
            first = earliest_month
    last = today.month if year == today.year else 12

    if last < first:
        raise NoValidRangeError(
            f"No valid months available for year {year}. "
            f"Valid range is {_fmt_month(earliest_year, earliest_month)} "
            f"to {_fmt_month(today.year, today.month)}",
            context={
                "requested": str(year),
                "earliest": _fmt_month(earliest_year, earliest_month),
                "latest": _fmt_month(today.year, today.month),
            },
        )

    return list(range(first, last + 1))
