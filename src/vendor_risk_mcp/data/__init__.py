"""Data layer for fetching and caching provider data."""

from vendor_risk_mcp.data.cache import ResponseCache, response_cache
from vendor_risk_mcp.data.fetcher import (
    ProviderRetryError,
    RetryResult,
    ServerShuttingDownError,
    fetch_json,
    run_blocking,
    shutdown_executor,
)
from vendor_risk_mcp.data.yfinance_client import (
    US_EXCHANGES,
    fetch_history_rows,
    fetch_info,
    fetch_statement,
    search_symbols,
)

__all__ = [
    # Cache
    "ResponseCache",
    "response_cache",
    # Fetch core
    "ProviderRetryError",
    "RetryResult",
    "ServerShuttingDownError",
    "fetch_json",
    "run_blocking",
    "shutdown_executor",
    # yfinance
    "US_EXCHANGES",
    "fetch_history_rows",
    "fetch_info",
    "fetch_statement",
    "search_symbols",
]
