"""Tests for price_archive.ingestion.normalize."""

from datetime import date
from decimal import Decimal

import pytest

from price_archive.core.exceptions import ProviderError
from price_archive.ingestion.normalize import normalize_samples, to_decimal, utc_day

FEB_1 = 1738368000000  # 2025-02-01T00:00:00Z in ms
HOUR = 3_600_000
DAY = 24 * HOUR


class TestToDecimal:
    def test_decimal_passthrough(self):
        assert to_decimal(Decimal("3150.123456789")) == Decimal("3150.123456789")

    def test_str_keeps_text(self):
        assert str(to_decimal("0.787")) == "0.787"

    def test_int(self):
        assert to_decimal(42) == Decimal(42)

    def test_float_uses_shortest_repr(self):
        assert str(to_decimal(0.1)) == "0.1"

    @pytest.mark.parametrize("bad", [True, None, "abc", "NaN", float("inf"), [1]])
    def test_rejects(self, bad):
        with pytest.raises(ValueError):
            to_decimal(bad)


class TestUtcDay:
    def test_midnight_belongs_to_new_day(self):
        assert utc_day(FEB_1) == date(2025, 2, 1)

    def test_last_millisecond_belongs_to_previous_day(self):
        assert utc_day(FEB_1 - 1) == date(2025, 1, 31)


class TestNormalizeSamples:
    def test_last_sample_of_day_wins(self):
        samples = [
            [FEB_1, Decimal("100")],
            [FEB_1 + 12 * HOUR, Decimal("105.5")],
            [FEB_1 + DAY, Decimal("110")],
        ]
        result = normalize_samples(samples)
        assert [(o.date, o.value) for o in result] == [
            (date(2025, 2, 1), Decimal("105.5")),
            (date(2025, 2, 2), Decimal("110")),
        ]

    def test_unordered_samples_are_sorted_first(self):
        samples = [
            [FEB_1 + 12 * HOUR, Decimal("105.5")],
            [FEB_1 + DAY, Decimal("110")],
            [FEB_1, Decimal("100")],
        ]
        result = normalize_samples(samples)
        assert result[0].value == Decimal("105.5")
        assert [o.date for o in result] == [date(2025, 2, 1), date(2025, 2, 2)]

    def test_equal_timestamps_keep_response_order(self):
        samples = [[FEB_1, Decimal("1")], [FEB_1, Decimal("2")]]
        assert normalize_samples(samples)[0].value == Decimal("2")

    def test_gaps_stay_gaps(self):
        samples = [[FEB_1, Decimal("1")], [FEB_1 + 3 * DAY, Decimal("4")]]
        assert [o.date for o in normalize_samples(samples)] == [
            date(2025, 2, 1),
            date(2025, 2, 4),
        ]

    def test_empty(self):
        assert normalize_samples([]) == []

    @pytest.mark.parametrize(
        "sample",
        [[FEB_1], [FEB_1, "x"], None, [FEB_1, Decimal("1"), Decimal("2")], [FEB_1, None]],
    )
    def test_malformed_sample(self, sample):
        with pytest.raises(ProviderError, match="index 1"):
            normalize_samples([[FEB_1, Decimal("1")], sample])
