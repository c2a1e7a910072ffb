"""Batch orchestrator: drive window → fetch → merge → persist across
every (asset, period) unit, one at a time, and summarize the outcomes.

Units run strictly sequentially. Pacing between provider calls is the
provider client's job; the orchestrator never fans out.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

from price_archive.core.exceptions import NetworkError
from price_archive.core.models import (
    FetchWindow,
    MergePolicy,
    MergeScope,
    Observation,
    UnitOutcome,
    UnitStatus,
    WorkUnit,
)
from price_archive.ingestion.windows import month_scope, month_window, recent_days_window
from price_archive.storage.tsv import TsvSeriesStore

logger = logging.getLogger(__name__)


@runtime_checkable
class Fetcher(Protocol):
    """Anything that turns (asset, window) into daily observations."""

    async def fetch(self, asset: str, window: FetchWindow) -> list[Observation]: ...


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def plan_month_units(assets: Sequence[str], year: int, months: Sequence[int]) -> list[WorkUnit]:
    """Cartesian product of assets × months, asset-major."""
    return [WorkUnit(asset=asset, year=year, month=month) for asset in assets for month in months]


def plan_recent_units(assets: Sequence[str], days: int) -> list[WorkUnit]:
    return [WorkUnit(asset=asset, days=days) for asset in assets]


class FetchPipeline:
    """Runs WorkUnits through fetch → merge → persist.

    Parameters
    ----------
    fetcher : Fetcher
        Provider producing observations for an (asset, window) pair.
    store : TsvSeriesStore
        Series files the merged results are written to.
    policy : MergePolicy
        Conflict policy for dates already present in a file.
    today : date | None
        Current UTC date; resolved once at construction if None.
    max_lookback_days : int | None
        Provider lookback limit applied to every window.
    unit_timeout : float | None
        Seconds allowed for one unit's entire retrying fetch.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        store: TsvSeriesStore,
        *,
        policy: MergePolicy = MergePolicy.OVERWRITE,
        today: date | None = None,
        max_lookback_days: int | None = None,
        unit_timeout: float | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._store = store
        self._policy = policy
        self._today = today or utc_today()
        self._max_lookback_days = max_lookback_days
        self._unit_timeout = unit_timeout

    @property
    def today(self) -> date:
        return self._today

    def plan_window(self, unit: WorkUnit) -> tuple[FetchWindow, MergeScope]:
        """Resolve a unit's fetch window and the scope its merge may modify."""
        if unit.days is not None:
            window = recent_days_window(
                unit.days, today=self._today, max_lookback_days=self._max_lookback_days
            )
            return window, MergeScope(start=window.start, end=window.end)

        window = month_window(
            unit.year, unit.month, today=self._today, max_lookback_days=self._max_lookback_days
        )
        return window, month_scope(unit.year, unit.month)

    async def _fetch(self, asset: str, window: FetchWindow) -> list[Observation]:
        if self._unit_timeout is None:
            return await self._fetcher.fetch(asset, window)
        try:
            return await asyncio.wait_for(self._fetcher.fetch(asset, window), self._unit_timeout)
        except TimeoutError as e:
            raise NetworkError(
                f"Fetch timed out after {self._unit_timeout:g}s",
                context={"asset": asset, "window": str(window)},
            ) from e

    async def run_unit(self, unit: WorkUnit) -> UnitOutcome:
        """Process one unit. Never raises: failures become an ERROR outcome."""
        try:
            window, scope = self.plan_window(unit)
            observations = await self._fetch(unit.asset, window)
            update = self._store.update(unit.asset, observations, scope, self._policy)
        except Exception as exc:
            logger.error("%s %s failed: %s", unit.asset, unit.period, exc)
            return UnitOutcome(
                asset=unit.asset,
                period=unit.period,
                status=UnitStatus.ERROR,
                error=str(exc) or type(exc).__name__,
            )

        if update.malformed_rows:
            logger.warning(
                "%s: %d malformed rows skipped in %s", unit.asset, update.malformed_rows, update.path
            )

        return UnitOutcome(
            asset=unit.asset,
            period=unit.period,
            status=UnitStatus.SUCCESS if update.changed_count > 0 else UnitStatus.SKIPPED,
            changed_count=update.changed_count,
            path=str(update.path),
        )

    async def run(
        self,
        units: Iterable[WorkUnit],
        on_start: Callable[[WorkUnit], None] | None = None,
        on_outcome: Callable[[WorkUnit, UnitOutcome], None] | None = None,
    ) -> list[UnitOutcome]:
        """Process units in order. Outcomes are returned in the same order."""
        outcomes: list[UnitOutcome] = []
        for unit in units:
            if on_start is not None:
                on_start(unit)
            outcome = await self.run_unit(unit)
            outcomes.append(outcome)
            if on_outcome is not None:
                on_outcome(unit, outcome)
        return outcomes


# --- Reporting ---


@dataclass
class OutcomeGroups:
    successful: list[UnitOutcome] = field(default_factory=list)
    skipped: list[UnitOutcome] = field(default_factory=list)
    failed: list[UnitOutcome] = field(default_factory=list)


class AssetSummary(BaseModel):
    """Per-asset roll-up of every non-failed unit."""

    model_config = ConfigDict(frozen=True)

    asset: str
    periods: list[str]
    total_changed: int
    has_success: bool
    path: str | None = None

    @property
    def period_display(self) -> str:
        ordered = sorted(self.periods)
        if len(ordered) == 1:
            return ordered[0]
        return f"{ordered[0]} to {ordered[-1]}"


def group_outcomes(outcomes: Iterable[UnitOutcome]) -> OutcomeGroups:
    groups = OutcomeGroups()
    for outcome in outcomes:
        if outcome.status == UnitStatus.SUCCESS:
            groups.successful.append(outcome)
        elif outcome.status == UnitStatus.SKIPPED:
            groups.skipped.append(outcome)
        else:
            groups.failed.append(outcome)
    return groups


def aggregate_outcomes(outcomes: Iterable[UnitOutcome]) -> list[AssetSummary]:
    """Roll successful and skipped outcomes up per asset, sorted by asset."""
    rollup: dict[str, dict] = {}
    for outcome in outcomes:
        if outcome.status == UnitStatus.ERROR:
            continue
        entry = rollup.setdefault(
            outcome.asset,
            {"periods": [], "total_changed": 0, "has_success": False, "path": outcome.path},
        )
        entry["periods"].append(outcome.period)
        entry["total_changed"] += outcome.changed_count
        entry["has_success"] = entry["has_success"] or outcome.status == UnitStatus.SUCCESS

    return [AssetSummary(asset=asset, **rollup[asset]) for asset in sorted(rollup)]


def exit_code(outcomes: Iterable[UnitOutcome]) -> int:
    """1 if any unit failed, else 0."""
    return 1 if any(o.status == UnitStatus.ERROR for o in outcomes) else 0
