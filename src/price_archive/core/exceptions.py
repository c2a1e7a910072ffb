"""Custom exception hierarchy for price-archive."""

from typing import Any


class PriceArchiveError(Exception):
    """Base exception for all price-archive errors.

    All exceptions carry an optional `context` dict for structured error
    metadata that can be logged or serialized without parsing the message.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.context = context or {}


class ConfigError(PriceArchiveError):
    """Invalid or missing configuration (including API credentials).

    Policy: fatal, never retried. Aborts the current unit immediately.

    Context keys:
        field: str - the config field or environment variable that failed
        value: Any - the invalid value (redacted for secrets)
    """


class FetchError(PriceArchiveError):
    """A provider request failed.

    Context keys:
        url: str - the URL that was being fetched
        status_code: int | None - HTTP status code if applicable
    """


class RateLimitError(FetchError):
    """Provider returned HTTP 429.

    Policy: backoff and retry (handled by RetryingClient internally).

    Context keys:
        retry_after: float | None - provider-supplied wait in seconds
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        retry_after: float | None = None,
    ):
        super().__init__(message, context)
        self.retry_after = retry_after


class ServerError(FetchError):
    """Provider returned HTTP 5xx.

    Policy: retried under the same backoff schedule as RateLimitError.
    """


class NetworkError(FetchError):
    """Connection, DNS, or transport-level timeout failure.

    Policy: retried under the same backoff schedule as RateLimitError.
    """


class ProviderError(FetchError):
    """Non-retryable provider failure: 4xx other than 429, or a response
    body that does not have the documented shape.
    """


class MaxRetriesExceeded(FetchError):
    """All retry attempts were spent on transient failures.

    Policy: fatal for the unit. Carries the last underlying error.

    Context keys:
        attempts: int - number of requests issued
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        last_error: Exception | None = None,
    ):
        super().__init__(message, context)
        self.last_error = last_error


class InvalidRangeError(PriceArchiveError):
    """Requested period does not resolve to a fetchable day range.

    Policy: fatal for the unit, reported, does not abort the batch.
    """


class NoValidRangeError(InvalidRangeError):
    """Resolved window is empty, inverted, or outside the lookback limit.

    Context keys:
        earliest: str - earliest allowed day or month
        latest: str - latest allowed day or month
    """


class FutureDateError(InvalidRangeError):
    """Requested period lies wholly in the future."""


class StorageError(PriceArchiveError):
    """Reading or writing a series file failed.

    Policy: raise immediately. A half-written series is worse than none.

    Context keys:
        path: str - the series file involved
    """


class MalformedRowError(StorageError):
    """A row in an existing series file could not be parsed.

    Policy: log and skip the row. Does not abort the merge.

    Context keys:
        line_number: int - 1-based line in the file
        row: str - the raw row text
    """
