"""Merge engine: reconcile fetched observations with a persisted series."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date
from decimal import Decimal

from price_archive.core.models import MergePolicy, MergeResult, MergeScope, Observation

logger = logging.getLogger(__name__)


def dedupe_series(observations: Iterable[Observation]) -> list[Observation]:
    """Collapse duplicate dates (last one wins) and sort ascending."""
    by_date: dict[date, Observation] = {}
    for obs in observations:
        by_date[obs.date] = obs
    return [by_date[day] for day in sorted(by_date)]


def merge_series(
    existing: Iterable[Observation],
    new: Iterable[Observation],
    scope: MergeScope,
    policy: MergePolicy = MergePolicy.OVERWRITE,
) -> MergeResult:
    """Merge ``new`` observations into ``existing`` within ``scope``.

    Policies:
        OVERWRITE: a new date is added; an existing date in scope is replaced
            when its value differs numerically.
        FILL_ONLY: a new date is added; an existing date is never touched.

    New observations outside ``scope`` are ignored under both policies, and
    existing observations outside ``scope`` pass through unchanged.

    Returns:
        MergeResult whose series is sorted ascending with unique dates, and
        whose changed_count is the number of dates added or replaced.
    """
    merged: dict[date, Observation] = {obs.date: obs for obs in existing}
    incoming: dict[date, Decimal] = {}
    for obs in new:
        if scope.contains(obs.date):
            incoming[obs.date] = obs.value

    changed = 0
    for day, value in incoming.items():
        current = merged.get(day)
        if current is None:
            merged[day] = Observation(date=day, value=value)
            changed += 1
        elif policy == MergePolicy.OVERWRITE and current.value != value:
            logger.debug("Replacing %s: %s -> %s", day, current.value, value)
            merged[day] = Observation(date=day, value=value)
            changed += 1

    return MergeResult(series=[merged[day] for day in sorted(merged)], changed_count=changed)
