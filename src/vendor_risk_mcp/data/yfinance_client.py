"""Async yfinance client built on the shared fetch core."""

import asyncio
import logging
import math
from typing import Any

import pandas as pd
import yfinance as yf
from yfinance import Search

from vendor_risk_mcp.data.fetcher import ServerShuttingDownError, run_blocking, shutdown_event
from vendor_risk_mcp.utils.ohlcv import df_to_rows, standardize_history
from vendor_risk_mcp.utils.sanitize import sanitize_text

logger = logging.getLogger(__name__)

# US exchanges preferred when resolving names to tickers
US_EXCHANGES = {"NYSE", "NASDAQ", "NMS", "NYQ", "NGM", "PCX", "AMEX", "BTS", "NCM", "ASE"}

STATEMENT_ATTRIBUTES = {
    "income": "quarterly_income_stmt",
    "balance": "quarterly_balance_sheet",
    "cashflow": "quarterly_cashflow",
    "annual_income": "income_stmt",
    "annual_balance": "balance_sheet",
    "annual_cashflow": "cashflow",
}


def has_value(v: Any) -> bool:
    """
    Check if a value is truly present (not None, NaN, or empty string).

    yfinance often uses float("nan") for missing numerics, which passes
    `is not None` but should be treated as missing.
    """
    if v is None:
        return False
    if isinstance(v, float) and math.isnan(v):
        return False
    if isinstance(v, str) and v.strip() == "":
        return False
    return True


# Singleflight cache for deduplicating concurrent fetch_info calls
# Key: symbol (uppercase), Value: asyncio.Task returning the info dict
_info_singleflight: dict[str, "asyncio.Task[dict[str, Any]]"] = {}


def _release_info_task(symbol: str, task: "asyncio.Task[dict[str, Any]]") -> None:
    """Drop a finished fetch from the singleflight map and consume its outcome."""
    if _info_singleflight.get(symbol) is task:
        del _info_singleflight[symbol]
    if not task.cancelled():
        # marks the exception retrieved
        task.exception()


async def _fetch_info_raw(symbol: str) -> dict[str, Any]:
    def _fetch() -> dict[str, Any]:
        info = yf.Ticker(symbol).info
        if not info or not any(
            has_value(info.get(k)) for k in ("longName", "shortName", "regularMarketPrice")
        ):
            raise ValueError(f"Invalid symbol: {symbol}")
        return info

    return await run_blocking(f"fetch_info({symbol})", _fetch)


async def fetch_info(symbol: str) -> dict[str, Any]:
    """
    Fetch ticker info with retry logic and singleflight.

    Profile, quote and health adapters all read `Ticker.info` during one
    aggregation; concurrent callers for the same symbol share one fetch.

    Raises:
        ServerShuttingDownError: If server is shutting down
        ProviderRetryError: If all retries exhausted for retryable errors
        ValueError: If symbol is invalid
    """
    if shutdown_event.is_set():
        raise ServerShuttingDownError("Server is shutting down")

    normalized_symbol = symbol.upper().strip()

    # Lookup and insert run without an await, so no other caller interleaves
    task = _info_singleflight.get(normalized_symbol)
    if task is None:
        task = asyncio.create_task(_fetch_info_raw(normalized_symbol))
        _info_singleflight[normalized_symbol] = task
        task.add_done_callback(
            lambda done, key=normalized_symbol: _release_info_task(key, done)
        )
    else:
        logger.debug(f"fetch_info({normalized_symbol}): joining existing singleflight")

    # Every caller shields the shared task; a waiter's timeout never cancels it
    return await asyncio.shield(task)


async def fetch_history_rows(symbol: str, start: str) -> list[dict[str, Any]]:
    """
    Fetch daily price history from `start` (YYYY-MM-DD) to today.

    Returns:
        Standardized rows, oldest first

    Raises:
        ValueError: If no data returned
    """
    normalized_symbol = symbol.upper().strip()

    def _fetch() -> list[dict[str, Any]]:
        df = yf.Ticker(normalized_symbol).history(start=start, auto_adjust=False)
        if df is None or df.empty:
            raise ValueError(f"No price history returned for {normalized_symbol}")
        return df_to_rows(standardize_history(df))

    return await run_blocking(f"fetch_history({normalized_symbol})", _fetch)


async def fetch_statement(symbol: str, kind: str) -> pd.DataFrame:
    """
    Fetch one financial statement frame.

    Args:
        symbol: Ticker symbol
        kind: Key of STATEMENT_ATTRIBUTES (e.g. "income", "annual_balance")

    Raises:
        ValueError: If the statement is empty
    """
    normalized_symbol = symbol.upper().strip()
    attribute = STATEMENT_ATTRIBUTES[kind]

    def _fetch() -> pd.DataFrame:
        df = getattr(yf.Ticker(normalized_symbol), attribute)
        if df is None or df.empty:
            raise ValueError(f"No {kind} statement returned for {normalized_symbol}")
        return df

    return await run_blocking(f"fetch_statement({normalized_symbol}, {kind})", _fetch)


async def search_symbols(query: str, limit: int = 10) -> list[dict[str, Any]]:
    """
    Search for equity symbols on US exchanges.

    Returns:
        List of {"symbol", "name", "exchange"} dicts in search rank order
    """

    def _search() -> list[dict[str, Any]]:
        search = Search(query)
        results = []
        for quote in search.quotes[:limit]:
            exchange = quote.get("exchange", "")
            if exchange not in US_EXCHANGES or quote.get("quoteType") not in (None, "EQUITY"):
                continue
            results.append(
                {
                    "symbol": quote.get("symbol"),
                    "name": sanitize_text(quote.get("longname") or quote.get("shortname")),
                    "exchange": exchange,
                }
            )
        return results

    return await run_blocking(f"search_symbols({query!r})", _search)
