"""Tests for provider fan-out and merging."""

import asyncio
import logging
import time
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest

from vendor_risk_mcp.models import CompanyIdentifier, NewsArticle, SourceResult
from vendor_risk_mcp.pipeline.aggregator import (
    _guarded,
    aggregate_batch,
    aggregate_company_data,
    history_start_date,
)

MODULE = "vendor_risk_mcp.pipeline.aggregator"

FETCHERS = {
    "fetch_company_profile": "yfinance:profile",
    "fetch_stock_quote": "yfinance:quote",
    "fetch_historical_prices": "yfinance:historical",
    "fetch_income_statements": "yfinance:income",
    "fetch_balance_sheets": "yfinance:balance",
    "fetch_cash_flows": "yfinance:cashflow",
    "fetch_financial_health": "yfinance:health",
    "fetch_sec_filings": "edgar:filings",
    "fetch_supply_chain_news": "newsapi:supply-chain",
    "fetch_litigation_news": "newsapi:litigation",
    "fetch_supply_chain_indicators": "fred:macro",
    "fetch_environmental_violations": "epa:violations",
    "fetch_osha_inspections": "osha:inspections",
    "research_company_supply_chain": "firecrawl:research",
}


def _article(url: str) -> NewsArticle:
    return NewsArticle(title="Headline", url=url, published_at="2026-06-01")


def _mocks(**overrides):
    """AsyncMock per provider, each returning a successful result."""
    mocks = {}
    for name, source in FETCHERS.items():
        data = [_article(f"https://example.com/{source}")] if "news" in name else [source]
        mocks[name] = AsyncMock(return_value=SourceResult.ok(source, data))
    mocks.update(overrides)
    return mocks


class TestHistoryStartDate:
    def test_two_years_back(self) -> None:
        now = datetime(2026, 10, 18, tzinfo=timezone.utc)
        assert history_start_date(now) == "2024-10-18"

    def test_leap_day(self) -> None:
        now = datetime(2028, 2, 29, tzinfo=timezone.utc)
        assert history_start_date(now) == "2026-02-28"


class TestAggregateCompanyData:
    """Tests for aggregate_company_data."""

    def test_all_providers_succeed(self, company: CompanyIdentifier) -> None:
        mocks = _mocks()
        with patch.multiple(MODULE, **mocks):
            result = asyncio.run(aggregate_company_data(company))

        assert result.company == company
        assert result.failed_sources() == []
        assert result.news.source == "newsapi:merged"
        assert len(result.news.data) == 2
        mocks["fetch_company_profile"].assert_awaited_once_with("ACME")
        mocks["fetch_supply_chain_news"].assert_awaited_once_with("Acme Corp", "ACME")

    def test_failures_are_isolated(self, company: CompanyIdentifier) -> None:
        """Two failing providers leave the other results intact."""
        mocks = _mocks(
            fetch_osha_inspections=AsyncMock(
                return_value=SourceResult.fail("osha:inspections", "HTTP 503")
            ),
            fetch_stock_quote=AsyncMock(side_effect=RuntimeError("socket closed")),
        )
        with patch.multiple(MODULE, **mocks):
            result = asyncio.run(aggregate_company_data(company))

        failed = {r.source: r.error for r in result.failed_sources()}
        assert failed == {
            "osha:inspections": "HTTP 503",
            "yfinance:quote": "socket closed",
        }
        assert result.profile.success
        assert result.web_research.success

    def test_slow_provider_times_out(
        self, company: CompanyIdentifier, caplog: pytest.LogCaptureFixture
    ) -> None:
        async def hang(*args, **kwargs):
            await asyncio.sleep(5)

        mocks = _mocks(fetch_sec_filings=hang)
        with patch.multiple(MODULE, **mocks), caplog.at_level(logging.WARNING):
            result = asyncio.run(aggregate_company_data(company, timeout=0.05))

        assert not result.sec_filings.success
        assert result.sec_filings.source == "edgar:filings"
        assert "timed out" in result.sec_filings.error
        assert result.stock_quote.success
        assert "edgar:filings: timed out" in caplog.text

    def test_ticker_used_as_name_fallback(self) -> None:
        mocks = _mocks()
        with patch.multiple(MODULE, **mocks):
            asyncio.run(aggregate_company_data(CompanyIdentifier(ticker="cat")))

        mocks["fetch_osha_inspections"].assert_awaited_once_with("CAT")

    def test_rejects_non_identifier(self) -> None:
        with pytest.raises(TypeError):
            asyncio.run(aggregate_company_data({"ticker": "ACME"}))


class TestAggregateBatch:
    def test_preserves_order(self) -> None:
        companies = [CompanyIdentifier(ticker=t) for t in ("AAA", "BBB", "CCC")]
        with patch.multiple(MODULE, **_mocks()):
            results = asyncio.run(aggregate_batch(companies))

        assert [r.company.ticker for r in results] == ["AAA", "BBB", "CCC"]


class SlowTicker:
    """Stand-in for yf.Ticker whose `info` blocks like a slow upstream."""

    delay = 0.45
    calls = 0

    def __init__(self, symbol: str):
        self.symbol = symbol

    @property
    def info(self) -> dict:
        type(self).calls += 1
        time.sleep(self.delay)
        return {
            "symbol": self.symbol,
            "longName": "Acme Corporation",
            "currentPrice": 25.0,
            "regularMarketPreviousClose": 24.0,
            "marketCap": 5e9,
        }


class TestSharedInfoFetch:
    """Concurrent runs for one ticker share a Ticker.info fetch."""

    def test_timed_out_run_does_not_cancel_overlapping_run(
        self, company: CompanyIdentifier
    ) -> None:
        mocks = _mocks()
        for name in ("fetch_company_profile", "fetch_stock_quote", "fetch_financial_health"):
            del mocks[name]
        SlowTicker.calls = 0

        async def overlapping_runs():
            first = asyncio.create_task(aggregate_company_data(company, timeout=0.3))
            await asyncio.sleep(0.25)
            second = asyncio.create_task(aggregate_company_data(company, timeout=0.3))
            return await first, await second

        with (
            patch.multiple(MODULE, **mocks),
            patch("vendor_risk_mcp.data.yfinance_client.yf.Ticker", SlowTicker),
            patch(
                "vendor_risk_mcp.sources.market.fetch_statement",
                AsyncMock(side_effect=ValueError("no statements")),
            ),
        ):
            first, second = asyncio.run(overlapping_runs())

        for result in (first.profile, first.stock_quote, first.financial_health):
            assert not result.success
            assert "timed out" in result.error

        assert second.profile.success
        assert second.profile.data.company_name == "Acme Corporation"
        assert second.stock_quote.success
        assert second.financial_health.success
        assert second.failed_sources() == []
        assert SlowTicker.calls == 1


class TestGuarded:
    """Tests for the per-provider wrapper."""

    def test_inner_cancellation_becomes_failed_result(self) -> None:
        async def cancelled_fetch():
            raise asyncio.CancelledError()

        result = asyncio.run(_guarded("yfinance:profile", cancelled_fetch(), 1.0))

        assert not result.success
        assert result.source == "yfinance:profile"
        assert "cancelled" in result.error

    def test_cancelling_the_run_still_propagates(self) -> None:
        async def cancel_run():
            task = asyncio.create_task(
                _guarded("edgar:filings", asyncio.sleep(5), 10.0)
            )
            await asyncio.sleep(0.01)
            task.cancel()
            await task

        with pytest.raises(asyncio.CancelledError):
            asyncio.run(cancel_run())
