"""Async fetch core with bounded concurrency and retry logic.

Every blocking provider call (requests or yfinance) runs in one shared
thread pool behind a semaphore, with exponential backoff on transient
errors.
"""

import asyncio
import logging
import os
import random
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, TypeVar

import requests
from requests.exceptions import ConnectionError as RequestsConnectionError
from requests.exceptions import HTTPError, Timeout

from vendor_risk_mcp.data.cache import response_cache

logger = logging.getLogger(__name__)

# Bounded concurrency for provider calls
_max_workers = int(os.environ.get("HTTP_MAX_WORKERS", "8"))
_executor = ThreadPoolExecutor(max_workers=_max_workers)
_fetch_semaphore = asyncio.Semaphore(_max_workers)

# Retry configuration
_max_retries = int(os.environ.get("HTTP_MAX_RETRIES", "3"))
_base_delay = float(os.environ.get("HTTP_BASE_DELAY", "1.0"))  # seconds
_max_delay = float(os.environ.get("HTTP_MAX_DELAY", "30.0"))  # seconds
_request_timeout = float(os.environ.get("HTTP_REQUEST_TIMEOUT", "15.0"))  # seconds

# Query parameters never written into cache keys
_SECRET_PARAMS = frozenset({"api_key", "apikey", "apiKey", "X-API-KEY"})

# Shutdown coordination
shutdown_event = asyncio.Event()

T = TypeVar("T")


class ServerShuttingDownError(Exception):
    """Raised when server is shutting down."""

    pass


class ProviderRetryError(Exception):
    """Raised when a provider call fails after all retries."""

    def __init__(self, message: str, last_error: Exception | None = None):
        super().__init__(message)
        self.last_error = last_error


def _is_retryable_error(error: Exception) -> tuple[bool, int]:
    """
    Check if an error is retryable (transient).

    Returns:
        Tuple of (is_retryable, max_retries_for_this_error)
    """
    if isinstance(error, HTTPError) and error.response is not None:
        status_code = error.response.status_code
        if status_code == 401:
            # yfinance crumb refresh occasionally recovers after one retry
            return (True, 1)
        if status_code == 429 or 500 <= status_code < 600:
            return (True, _max_retries)
        return (False, 0)

    if isinstance(error, (RequestsConnectionError, Timeout)):
        return (True, _max_retries)

    error_str = str(error).lower()
    if "invalid crumb" in error_str:
        return (True, 1)

    retryable_patterns = [
        "rate limit",
        "too many requests",
        "connection",
        "timed out",
        "temporary",
    ]
    if any(pattern in error_str for pattern in retryable_patterns):
        return (True, _max_retries)

    return (False, 0)


def _calculate_backoff(attempt: int) -> float:
    """Calculate delay with exponential backoff and jitter."""
    delay = _base_delay * (2**attempt)
    # Jitter (±25%)
    jitter = delay * 0.25 * (2 * random.random() - 1)
    return min(delay + jitter, _max_delay)


@dataclass
class RetryResult:
    """Result of a retry operation."""

    result: Any
    attempts: int
    total_backoff_seconds: float


async def retry_with_backoff(
    operation_name: str,
    sync_func: Callable[[], T],
    max_retries: int = _max_retries,
) -> RetryResult:
    """
    Execute a synchronous function in the executor with retry logic.

    Args:
        operation_name: Name for logging (e.g., "edgar:filings(AAPL)")
        sync_func: Synchronous function to execute
        max_retries: Maximum number of retry attempts

    Returns:
        RetryResult with result and attempt count

    Raises:
        ProviderRetryError: If all retries exhausted
        ServerShuttingDownError: If server is shutting down
    """
    last_error: Exception | None = None
    total_backoff = 0.0

    for attempt in range(max_retries + 1):
        if shutdown_event.is_set():
            raise ServerShuttingDownError("Server is shutting down")

        try:
            loop = asyncio.get_running_loop()
            result = await loop.run_in_executor(_executor, sync_func)
            return RetryResult(
                result=result,
                attempts=attempt + 1,
                total_backoff_seconds=round(total_backoff, 2),
            )
        except Exception as e:
            last_error = e
            is_retryable, error_max_retries = _is_retryable_error(e)
            if not is_retryable:
                raise

            effective_max_retries = min(max_retries, error_max_retries)
            if attempt >= effective_max_retries:
                logger.warning(
                    f"{operation_name}: Failed after {attempt + 1} attempts "
                    f"(limit={effective_max_retries + 1}). Last error: {e}"
                )
                raise ProviderRetryError(
                    f"Failed after {attempt + 1} attempts: {e}",
                    last_error=last_error,
                ) from e

            delay = _calculate_backoff(attempt)
            total_backoff += delay
            logger.info(
                f"{operation_name}: Attempt {attempt + 1} failed ({e}). "
                f"Retrying in {delay:.1f}s..."
            )
            await asyncio.sleep(delay)

    raise ProviderRetryError(
        f"Failed after {max_retries + 1} attempts",
        last_error=last_error,
    )


async def run_blocking(operation_name: str, sync_func: Callable[[], T]) -> T:
    """Run a blocking call under the shared semaphore with retries."""
    if shutdown_event.is_set():
        raise ServerShuttingDownError("Server is shutting down")

    async with _fetch_semaphore:
        retry_result = await retry_with_backoff(operation_name, sync_func)
        return retry_result.result


def cache_key(url: str, params: dict[str, Any] | None = None) -> str:
    """Canonical cache key for a GET request, without credentials."""
    if not params:
        return url
    visible = sorted(
        (k, str(v)) for k, v in params.items() if k not in _SECRET_PARAMS
    )
    query = "&".join(f"{k}={v}" for k, v in visible)
    return f"{url}?{query}" if query else url


async def fetch_json(
    url: str,
    *,
    label: str,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    method: str = "GET",
    json_body: dict[str, Any] | None = None,
    cache_ttl: int | None = None,
) -> Any:
    """
    Fetch and decode a JSON document.

    Args:
        url: Endpoint URL
        label: Provider label used in error messages and logs
        params: Query parameters
        headers: Request headers
        method: HTTP method (GET or POST)
        json_body: JSON payload for POST requests
        cache_ttl: When set, GET responses are cached on disk for this many seconds

    Raises:
        HTTPError: On a non-2xx response (after retries for transient codes)
        ProviderRetryError: If all retries exhausted
        ValueError: If the body is not JSON
    """
    key = cache_key(url, params) if cache_ttl and method == "GET" else None
    if key is not None:
        cached = response_cache.get(key)
        if cached is not None:
            logger.debug(f"{label}: cache hit for {key}")
            return cached

    def _fetch() -> Any:
        response = requests.request(
            method,
            url,
            params=params,
            headers=headers,
            json=json_body,
            timeout=_request_timeout,
        )
        if not response.ok:
            raise HTTPError(
                f"{label} returned {response.status_code}: {response.reason}",
                response=response,
            )
        try:
            return response.json()
        except ValueError as e:
            raise ValueError(f"{label} returned a non-JSON body") from e

    payload = await run_blocking(f"{label}({url})", _fetch)
    if key is not None:
        response_cache.set(key, payload, ttl=cache_ttl)
    return payload


async def shutdown_executor() -> None:
    """Cleanup on server shutdown."""
    shutdown_event.set()
    _executor.shutdown(wait=False, cancel_futures=True)
