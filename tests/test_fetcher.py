"""Tests for the fetch core and response cache."""

import asyncio
from unittest.mock import MagicMock, patch

import pytest
import requests
from requests.exceptions import HTTPError

from vendor_risk_mcp.data.cache import ResponseCache
from vendor_risk_mcp.data.fetcher import (
    ProviderRetryError,
    _is_retryable_error,
    cache_key,
    retry_with_backoff,
)


def _http_error(status: int) -> HTTPError:
    response = requests.Response()
    response.status_code = status
    return HTTPError(f"HTTP {status}", response=response)


class TestCacheKey:
    def test_sorted_and_without_credentials(self) -> None:
        key = cache_key(
            "https://api.stlouisfed.org/fred/series/observations",
            {"series_id": "GSCPI", "api_key": "secret", "file_type": "json"},
        )
        assert key == (
            "https://api.stlouisfed.org/fred/series/observations"
            "?file_type=json&series_id=GSCPI"
        )
        assert "secret" not in key

    def test_no_params(self) -> None:
        assert cache_key("https://www.sec.gov/files/company_tickers.json") == (
            "https://www.sec.gov/files/company_tickers.json"
        )
        assert cache_key("https://x", {"apiKey": "secret"}) == "https://x"


class TestRetryClassification:
    """Tests for _is_retryable_error."""

    @pytest.mark.parametrize("status", [429, 500, 503])
    def test_transient_status(self, status: int) -> None:
        retryable, limit = _is_retryable_error(_http_error(status))
        assert retryable
        assert limit >= 1

    def test_unauthorized_retries_once(self) -> None:
        assert _is_retryable_error(_http_error(401)) == (True, 1)

    @pytest.mark.parametrize("status", [400, 403, 404])
    def test_client_errors_are_final(self, status: int) -> None:
        assert _is_retryable_error(_http_error(status)) == (False, 0)

    def test_connection_error(self) -> None:
        retryable, _ = _is_retryable_error(requests.exceptions.ConnectionError("reset"))
        assert retryable

    def test_plain_value_error(self) -> None:
        assert _is_retryable_error(ValueError("Invalid symbol: ZZZZ")) == (False, 0)


class TestRetryWithBackoff:
    """Tests for retry_with_backoff."""

    def test_succeeds_after_transient_failures(self) -> None:
        func = MagicMock(
            side_effect=[
                requests.exceptions.ConnectionError("reset"),
                requests.exceptions.Timeout("slow"),
                {"ok": True},
            ]
        )
        with patch("vendor_risk_mcp.data.fetcher._calculate_backoff", return_value=0.0):
            result = asyncio.run(retry_with_backoff("test", func, max_retries=3))

        assert result.result == {"ok": True}
        assert result.attempts == 3

    def test_non_retryable_raises_immediately(self) -> None:
        func = MagicMock(side_effect=_http_error(404))
        with pytest.raises(HTTPError):
            asyncio.run(retry_with_backoff("test", func, max_retries=3))
        assert func.call_count == 1

    def test_exhausted(self) -> None:
        func = MagicMock(side_effect=_http_error(503))
        with patch("vendor_risk_mcp.data.fetcher._calculate_backoff", return_value=0.0):
            with pytest.raises(ProviderRetryError) as exc_info:
                asyncio.run(retry_with_backoff("test", func, max_retries=2))

        assert func.call_count == 3
        assert isinstance(exc_info.value.last_error, HTTPError)


class TestResponseCache:
    def test_round_trip_and_metadata(self, tmp_path) -> None:
        cache = ResponseCache(cache_dir=str(tmp_path))
        cache.set("https://x?a=1", {"data": [1, 2]}, ttl=60)

        assert cache.get("https://x?a=1") == {"data": [1, 2]}
        assert cache.exists("https://x?a=1")
        assert "stored_at" in cache.get_metadata("https://x?a=1")
        assert cache.get("https://missing") is None

        cache.clear()
        assert cache.get("https://x?a=1") is None
