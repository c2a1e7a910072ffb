"""Tests for price_archive.storage.merge."""

from datetime import date
from decimal import Decimal

from price_archive.core.models import MergePolicy
from price_archive.storage.merge import dedupe_series, merge_series


class TestDedupeSeries:
    def test_last_wins_and_sorted(self, make_obs):
        series = dedupe_series(
            [
                make_obs("2025-02-03", "3"),
                make_obs("2025-02-01", "1"),
                make_obs("2025-02-03", "33"),
            ]
        )
        assert [(o.date.day, o.value) for o in series] == [(1, Decimal("1")), (3, Decimal("33"))]


class TestOverwritePolicy:
    def test_adds_new_dates(self, make_obs, feb_2025_scope):
        existing = [make_obs("2025-02-01", "100.0")]
        new = [make_obs("2025-02-02", "101.0"), make_obs("2025-02-03", "102.0")]

        result = merge_series(existing, new, feb_2025_scope)

        assert result.changed_count == 2
        assert [o.date.day for o in result.series] == [1, 2, 3]

    def test_replaces_differing_value(self, make_obs, feb_2025_scope):
        existing = [make_obs("2025-02-01", "100.0"), make_obs("2025-02-02", "101.0")]
        new = [make_obs("2025-02-02", "101.5")]

        result = merge_series(existing, new, feb_2025_scope, MergePolicy.OVERWRITE)

        assert result.changed_count == 1
        assert result.series[1].value == Decimal("101.5")

    def test_equal_value_is_not_a_change(self, make_obs, feb_2025_scope):
        existing = [make_obs("2025-02-01", "100.0")]
        new = [make_obs("2025-02-01", "100.00")]

        result = merge_series(existing, new, feb_2025_scope)

        assert result.changed_count == 0
        # the persisted text is kept
        assert str(result.series[0].value) == "100.0"

    def test_rerun_changes_nothing(self, make_obs, feb_2025_scope):
        new = [make_obs("2025-02-01", "100.0"), make_obs("2025-02-02", "101.0")]
        first = merge_series([], new, feb_2025_scope)
        second = merge_series(first.series, new, feb_2025_scope)
        assert first.changed_count == 2
        assert second.changed_count == 0
        assert second.series == first.series


class TestFillOnlyPolicy:
    def test_keeps_existing_values(self, make_obs, feb_2025_scope):
        existing = [make_obs("2025-02-01", "100.0"), make_obs("2025-02-02", "101.0")]
        new = [make_obs("2025-02-02", "999.0"), make_obs("2025-02-03", "102.0")]

        result = merge_series(existing, new, feb_2025_scope, MergePolicy.FILL_ONLY)

        assert result.changed_count == 1
        values = {o.date.day: o.value for o in result.series}
        assert values == {1: Decimal("100.0"), 2: Decimal("101.0"), 3: Decimal("102.0")}


class TestScope:
    def test_out_of_scope_new_values_ignored(self, make_obs, feb_2025_scope):
        new = [make_obs("2025-01-31", "99.0"), make_obs("2025-02-01", "100.0")]

        result = merge_series([], new, feb_2025_scope)

        assert result.changed_count == 1
        assert [o.date for o in result.series] == [date(2025, 2, 1)]

    def test_out_of_scope_existing_untouched(self, make_obs, feb_2025_scope):
        existing = [make_obs("2025-01-31", "99.0"), make_obs("2025-03-01", "103.0")]
        new = [make_obs("2025-01-31", "0.5"), make_obs("2025-02-15", "101.0")]

        result = merge_series(existing, new, feb_2025_scope)

        values = {o.date: o.value for o in result.series}
        assert values[date(2025, 1, 31)] == Decimal("99.0")
        assert values[date(2025, 3, 1)] == Decimal("103.0")
        assert result.changed_count == 1
        assert [o.date for o in result.series] == sorted(values)

    def test_duplicate_new_dates_last_wins(self, make_obs, feb_2025_scope):
        new = [make_obs("2025-02-01", "1"), make_obs("2025-02-01", "2")]

        result = merge_series([], new, feb_2025_scope)

        assert result.changed_count == 1
        assert result.series[0].value == Decimal("2")
