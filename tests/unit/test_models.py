"""Tests for price_archive.core.models."""

from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from price_archive.core.models import (
    FetchWindow,
    MergePolicy,
    MergeScope,
    Observation,
    UnitOutcome,
    UnitStatus,
    WorkUnit,
)


class TestObservation:
    def test_valid(self):
        obs = Observation(date=date(2025, 2, 1), value=Decimal("3150.12"))
        assert obs.value == Decimal("3150.12")

    def test_frozen(self):
        obs = Observation(date=date(2025, 2, 1), value=Decimal("1"))
        with pytest.raises(ValidationError):
            obs.value = Decimal("2")

    @pytest.mark.parametrize("bad", [Decimal("NaN"), Decimal("Infinity")])
    def test_non_finite_rejected(self, bad):
        with pytest.raises(ValidationError):
            Observation(date=date(2025, 2, 1), value=bad)


class TestDayRanges:
    def test_inverted_range_rejected(self):
        with pytest.raises(ValidationError):
            FetchWindow(start=date(2025, 2, 2), end=date(2025, 2, 1))

    def test_single_day(self):
        window = FetchWindow(start=date(2025, 2, 1), end=date(2025, 2, 1))
        assert len(window) == 1
        assert list(window.days()) == [date(2025, 2, 1)]

    def test_len_and_days(self, feb_2025_window):
        days = list(feb_2025_window.days())
        assert len(feb_2025_window) == 28
        assert days[0] == date(2025, 2, 1)
        assert days[-1] == date(2025, 2, 28)

    def test_contains_is_inclusive(self, feb_2025_scope):
        assert feb_2025_scope.contains(date(2025, 2, 1))
        assert feb_2025_scope.contains(date(2025, 2, 28))
        assert not feb_2025_scope.contains(date(2025, 1, 31))
        assert not feb_2025_scope.contains(date(2025, 3, 1))

    def test_timestamps_cover_whole_days(self, feb_2025_window):
        assert feb_2025_window.from_timestamp == 1738368000  # 2025-02-01T00:00:00Z
        assert feb_2025_window.to_timestamp == 1740787199  # 2025-02-28T23:59:59Z

    def test_str(self):
        scope = MergeScope(start=date(2025, 2, 1), end=date(2025, 2, 28))
        assert str(scope) == "2025-02-01..2025-02-28"


class TestWorkUnit:
    def test_month_period(self):
        assert WorkUnit(asset="ETH", year=2025, month=2).period == "2025-02"

    def test_recent_period(self):
        assert WorkUnit(asset="ETH", days=7).period == "last 7 days"

    def test_needs_one_period_kind(self):
        with pytest.raises(ValidationError):
            WorkUnit(asset="ETH")
        with pytest.raises(ValidationError):
            WorkUnit(asset="ETH", year=2025, month=2, days=7)
        with pytest.raises(ValidationError):
            WorkUnit(asset="ETH", year=2025)


class TestEnums:
    def test_merge_policy_values(self):
        assert MergePolicy("overwrite") is MergePolicy.OVERWRITE
        assert MergePolicy("fill_only") is MergePolicy.FILL_ONLY

    def test_outcome_defaults(self):
        outcome = UnitOutcome(asset="ETH", period="2025-02", status=UnitStatus.SKIPPED)
        assert outcome.changed_count == 0
        assert outcome.error is None
        assert outcome.path is None
