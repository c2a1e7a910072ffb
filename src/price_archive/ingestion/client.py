"""Rate-limited, retrying async HTTP client shared by all price providers."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from decimal import Decimal
from typing import Any

import httpx
from aiolimiter import AsyncLimiter

from price_archive.core.config import RetryConfig
from price_archive.core.exceptions import (
    FetchError,
    MaxRetriesExceeded,
    NetworkError,
    ProviderError,
    RateLimitError,
    ServerError,
)

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


def parse_retry_after(value: str | None) -> float | None:
    """Parse a Retry-After header given in seconds. Returns None if absent or unusable."""
    if not value:
        return None
    try:
        seconds = float(value)
    except ValueError:
        return None
    return max(seconds, 0.0)


class RetryingClient:
    """Async client that performs one logical request per call, surviving
    transient failure and pacing itself under a provider's rate limit.

    Pacing:
        - aiolimiter.AsyncLimiter caps the rate at ``rate_limit`` requests
          per minute across every attempt.
        - ``request_delay`` seconds are slept after every successful call.

    Retry policy:
        - HTTP 429: wait for the Retry-After value when given, else
          exponential backoff ``retry_base_delay * 2**attempt``.
        - HTTP 5xx and transport errors: same exponential backoff.
        - Every wait is at least ``min_retry_wait``. Exponential waits are
          capped at ``max_retry_wait``; a provider Retry-After is not.
        - Other HTTP errors: raise ProviderError immediately (no retry).
        - After ``max_retries`` retries: raise MaxRetriesExceeded.

    Use via ``async with RetryingClient(config.base_url, config) as client:``.
    """

    def __init__(
        self,
        base_url: str,
        retry: RetryConfig,
        *,
        provider: str = "provider",
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._retry = retry
        self._provider = provider
        self._sleep = sleep
        self._limiter = AsyncLimiter(max_rate=retry.rate_limit, time_period=60.0)
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(retry.request_timeout),
            follow_redirects=True,
        )

    async def __aenter__(self) -> RetryingClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client. Called automatically by __aexit__."""
        await self._client.aclose()

    def compute_backoff(self, attempt: int, retry_after: float | None = None) -> float:
        """Seconds to wait before retry number ``attempt + 1``."""
        if retry_after is not None:
            return max(retry_after, self._retry.min_retry_wait)
        wait = self._retry.retry_base_delay * 2**attempt
        wait = max(wait, self._retry.min_retry_wait)
        return min(wait, self._retry.max_retry_wait)

    async def pause(self) -> None:
        """Sleep the configured ``request_delay`` between logical requests."""
        if self._retry.request_delay > 0:
            await self._sleep(self._retry.request_delay)

    async def get_json(
        self,
        path: str,
        *,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """GET ``path`` and decode the JSON body, retrying transient failures.

        Floats in the body are decoded as Decimal so provider values keep
        their exact text.

        Raises:
            ProviderError: Non-retryable HTTP status or undecodable body.
            MaxRetriesExceeded: Transient failures outlasted every retry.
        """
        max_retries = self._retry.max_retries
        last_error: FetchError | None = None

        for attempt in range(max_retries + 1):
            try:
                response = await self._send(path, params, headers)
                data = self._decode(response)
            except (RateLimitError, ServerError, NetworkError) as e:
                last_error = e
                if attempt >= max_retries:
                    break
                retry_after = e.retry_after if isinstance(e, RateLimitError) else None
                delay = self.compute_backoff(attempt, retry_after)
                logger.warning(
                    "%s on %s %s, retrying in %.1fs (attempt %d/%d)",
                    type(e).__name__, self._provider, path, delay,
                    attempt + 1, max_retries + 1,
                )
                await self._sleep(delay)
                continue

            await self.pause()
            return data

        logger.error(
            "Giving up on %s %s after %d attempts: %s",
            self._provider, path, max_retries + 1, last_error,
        )
        raise MaxRetriesExceeded(
            f"Max retries ({max_retries}) exceeded for {self._provider} {path}: {last_error}",
            context={"url": path, "attempts": max_retries + 1},
            last_error=last_error,
        ) from last_error

    async def _send(
        self,
        path: str,
        params: dict[str, str] | None,
        headers: dict[str, str] | None,
    ) -> httpx.Response:
        """Issue a single request and classify its failure, if any."""
        await self._limiter.acquire()
        try:
            response = await self._client.get(path, params=params, headers=headers)
        except httpx.TransportError as e:
            raise NetworkError(
                f"Network error from {self._provider}: {e}",
                context={"url": path, "error": str(e)},
            ) from e

        status = response.status_code
        if status == 429:
            retry_after = parse_retry_after(response.headers.get("Retry-After"))
            raise RateLimitError(
                f"Rate limited by {self._provider} (429)",
                context={"url": path, "status_code": status, "retry_after": retry_after},
                retry_after=retry_after,
            )
        if status >= 500:
            raise ServerError(
                f"Server error {status} from {self._provider}",
                context={"url": path, "status_code": status},
            )
        if not response.is_success:
            raise ProviderError(
                f"HTTP {status} from {self._provider} {path}",
                context={"url": path, "status_code": status, "body": response.text[:200]},
            )
        return response

    def _decode(self, response: httpx.Response) -> Any:
        try:
            return json.loads(response.text, parse_float=Decimal)
        except ValueError as e:
            raise ProviderError(
                f"Invalid JSON from {self._provider}: {e}",
                context={"url": str(response.url), "body": response.text[:200]},
            ) from e
