"""Tests for price_archive.core.exceptions."""

import pytest

from price_archive.core.exceptions import (
    ConfigError,
    FetchError,
    FutureDateError,
    InvalidRangeError,
    MalformedRowError,
    MaxRetriesExceeded,
    NetworkError,
    NoValidRangeError,
    PriceArchiveError,
    ProviderError,
    RateLimitError,
    ServerError,
    StorageError,
)


class TestExceptionHierarchy:
    """Verify the exception class hierarchy."""

    @pytest.mark.parametrize(
        "exc_cls",
        [ConfigError, FetchError, InvalidRangeError, StorageError],
    )
    def test_top_level_subclasses(self, exc_cls):
        assert issubclass(exc_cls, PriceArchiveError)

    @pytest.mark.parametrize(
        "exc_cls",
        [RateLimitError, ServerError, NetworkError, ProviderError, MaxRetriesExceeded],
    )
    def test_fetch_failures(self, exc_cls):
        assert issubclass(exc_cls, FetchError)

    def test_range_errors(self):
        assert issubclass(NoValidRangeError, InvalidRangeError)
        assert issubclass(FutureDateError, InvalidRangeError)

    def test_malformed_row_is_storage_error(self):
        assert issubclass(MalformedRowError, StorageError)

    def test_catch_all_with_base(self):
        with pytest.raises(PriceArchiveError):
            raise ServerError("boom")


class TestExceptionContext:
    def test_default_context_is_empty_dict(self):
        err = PriceArchiveError("msg")
        assert err.context == {}
        assert str(err) == "msg"

    def test_context_preserved(self):
        err = ConfigError("bad key", context={"field": "COINGECKO_API_KEY_1"})
        assert err.context["field"] == "COINGECKO_API_KEY_1"

    def test_rate_limit_carries_retry_after(self):
        err = RateLimitError("slow down", retry_after=12.0)
        assert err.retry_after == 12.0
        assert RateLimitError("slow down").retry_after is None

    def test_max_retries_carries_last_error(self):
        cause = ServerError("503")
        err = MaxRetriesExceeded("gave up", context={"attempts": 4}, last_error=cause)
        assert err.last_error is cause
        assert err.context["attempts"] == 4
