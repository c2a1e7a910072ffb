"""Pydantic data models - the system's type contracts."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

# --- Type Aliases ---

Symbol = str
IsoDay = str

# --- Enumerations ---


class MergePolicy(StrEnum):
    """Conflict policy applied when fetched values meet persisted ones."""

    OVERWRITE = "overwrite"
    FILL_ONLY = "fill_only"


class UnitStatus(StrEnum):
    """Outcome of one (asset, period) unit of work."""

    SUCCESS = "success"
    SKIPPED = "skipped"
    ERROR = "error"


# --- Series Models ---


class Observation(BaseModel):
    """The canonical value of one asset on one UTC calendar day."""

    model_config = ConfigDict(frozen=True)

    date: date
    value: Decimal

    @field_validator("value")
    @classmethod
    def value_must_be_finite(cls, v: Decimal) -> Decimal:
        if not v.is_finite():
            raise ValueError(f"value must be finite, got {v}")
        return v


class _DayRange(BaseModel):
    """Inclusive range of UTC calendar days."""

    model_config = ConfigDict(frozen=True)

    start: date
    end: date

    @model_validator(mode="after")
    def start_not_after_end(self):
        if self.start > self.end:
            raise ValueError(f"start ({self.start}) must not be after end ({self.end})")
        return self

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def days(self) -> Iterator[date]:
        """Yield every calendar day in the range, ascending."""
        current = self.start
        while current <= self.end:
            yield current
            current += timedelta(days=1)

    def __len__(self) -> int:
        return (self.end - self.start).days + 1

    def __str__(self) -> str:
        return f"{self.start.isoformat()}..{self.end.isoformat()}"


class FetchWindow(_DayRange):
    """Day range handed to a provider.

    Providers with a timestamp range query use ``from_timestamp`` (start of
    the first day) and ``to_timestamp`` (last second of the final day).
    """

    @property
    def from_timestamp(self) -> int:
        return int(datetime.combine(self.start, time.min, tzinfo=timezone.utc).timestamp())

    @property
    def to_timestamp(self) -> int:
        end_of_day = time(23, 59, 59)
        return int(datetime.combine(self.end, end_of_day, tzinfo=timezone.utc).timestamp())


class MergeScope(_DayRange):
    """Days a merge is permitted to add or modify."""


@dataclass(frozen=True)
class MergeResult:
    """Merged series plus the number of dates added or changed."""

    series: list[Observation]
    changed_count: int


@dataclass(frozen=True)
class SeriesReadResult:
    """Observations parsed from a series file and the count of rows dropped."""

    observations: list[Observation] = field(default_factory=list)
    malformed_rows: int = 0


# --- Batch Models ---


class WorkUnit(BaseModel):
    """One (asset, period) pair driven through fetch → merge → persist.

    Exactly one of ``month`` (with ``year``) or ``days`` is set.
    """

    model_config = ConfigDict(frozen=True)

    asset: Symbol
    year: int | None = None
    month: int | None = None
    days: int | None = None

    @model_validator(mode="after")
    def one_period_kind(self) -> WorkUnit:
        monthly = self.year is not None and self.month is not None
        if monthly == (self.days is not None):
            raise ValueError("a work unit needs either year+month or days")
        return self

    @property
    def period(self) -> str:
        if self.days is not None:
            return f"last {self.days} days"
        return f"{self.year}-{self.month:02d}"


class UnitOutcome(BaseModel):
    """Result of processing a single WorkUnit."""

    model_config = ConfigDict(frozen=True)

    asset: Symbol
    period: str
    status: UnitStatus
    changed_count: int = 0
    error: str | None = None
    path: str | None = None
