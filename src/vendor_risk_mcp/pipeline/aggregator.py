"""Fan out to every provider for one company and merge the results."""

import asyncio
import logging
import os
from collections.abc import Awaitable
from datetime import datetime, timezone
from time import perf_counter

from vendor_risk_mcp.models import AggregatedCompanyData, CompanyIdentifier, SourceResult
from vendor_risk_mcp.sources import (
    fetch_balance_sheets,
    fetch_cash_flows,
    fetch_company_profile,
    fetch_environmental_violations,
    fetch_financial_health,
    fetch_historical_prices,
    fetch_income_statements,
    fetch_litigation_news,
    fetch_osha_inspections,
    fetch_sec_filings,
    fetch_stock_quote,
    fetch_supply_chain_indicators,
    fetch_supply_chain_news,
    merge_news_results,
    research_company_supply_chain,
)
from vendor_risk_mcp.sources.base import describe_error

logger = logging.getLogger(__name__)

PROVIDER_TIMEOUT = float(os.environ.get("PROVIDER_TIMEOUT", "20.0"))  # seconds


def history_start_date(now: datetime | None = None) -> str:
    """Start of the historical price window: two years before `now`."""
    now = now or datetime.now(timezone.utc)
    try:
        start = now.replace(year=now.year - 2)
    except ValueError:
        # Feb 29 -> Feb 28
        start = now.replace(year=now.year - 2, day=28)
    return start.strftime("%Y-%m-%d")


async def _guarded(
    source: str,
    fetch: Awaitable[SourceResult],
    timeout: float,
) -> SourceResult:
    """Bound one provider call; a timeout or stray exception becomes a failed result."""
    try:
        return await asyncio.wait_for(fetch, timeout=timeout)
    except TimeoutError:
        logger.warning(f"{source}: timed out after {timeout:g}s")
        return SourceResult.fail(source, f"timed out after {timeout:g}s")
    except asyncio.CancelledError:
        current = asyncio.current_task()
        if current is not None and current.cancelling():
            raise
        # Cancellation came from a shared inner fetch, not from this run
        logger.warning(f"{source}: provider call was cancelled")
        return SourceResult.fail(source, "provider call was cancelled")
    except Exception as e:
        logger.warning(f"{source}: unexpected error: {e}")
        return SourceResult.fail(source, describe_error(e))


async def aggregate_company_data(
    company: CompanyIdentifier,
    timeout: float | None = None,
    now: datetime | None = None,
) -> AggregatedCompanyData:
    """
    Fetch every provider for one company concurrently.

    Provider failures and timeouts are recorded as failed SourceResults
    and never abort the other fetches.

    Args:
        company: Resolved company
        timeout: Per-provider timeout in seconds (default: PROVIDER_TIMEOUT)
        now: Reference time for the historical window (default: now)

    Raises:
        TypeError: If `company` is not a CompanyIdentifier
    """
    if not isinstance(company, CompanyIdentifier):
        raise TypeError(f"expected CompanyIdentifier, got {type(company).__name__}")

    timeout = PROVIDER_TIMEOUT if timeout is None else timeout
    ticker = company.ticker
    company_name = company.name or ticker
    from_date = history_start_date(now)
    start = perf_counter()

    fetches = {
        "yfinance:profile": fetch_company_profile(ticker),
        "yfinance:quote": fetch_stock_quote(ticker),
        "yfinance:historical": fetch_historical_prices(ticker, from_date),
        "yfinance:income": fetch_income_statements(ticker, 8),
        "yfinance:balance": fetch_balance_sheets(ticker, 8),
        "yfinance:cashflow": fetch_cash_flows(ticker, 8),
        "yfinance:health": fetch_financial_health(ticker),
        "edgar:filings": fetch_sec_filings(ticker),
        "newsapi:supply-chain": fetch_supply_chain_news(company_name, ticker),
        "newsapi:litigation": fetch_litigation_news(company_name, ticker),
        "fred:macro": fetch_supply_chain_indicators(from_date),
        "epa:violations": fetch_environmental_violations(company_name),
        "osha:inspections": fetch_osha_inspections(company_name),
        "firecrawl:research": research_company_supply_chain(company_name, ticker),
    }
    results = await asyncio.gather(
        *(_guarded(source, fetch, timeout) for source, fetch in fetches.items())
    )
    (
        profile,
        stock_quote,
        historical_prices,
        income_statements,
        balance_sheets,
        cash_flows,
        financial_health,
        sec_filings,
        supply_chain_news,
        litigation_news,
        macro_indicators,
        environmental_violations,
        osha_inspections,
        web_research,
    ) = results

    aggregated = AggregatedCompanyData(
        company=company,
        profile=profile,
        stock_quote=stock_quote,
        historical_prices=historical_prices,
        income_statements=income_statements,
        balance_sheets=balance_sheets,
        cash_flows=cash_flows,
        financial_health=financial_health,
        sec_filings=sec_filings,
        news=merge_news_results(supply_chain_news, litigation_news),
        macro_indicators=macro_indicators,
        environmental_violations=environmental_violations,
        osha_inspections=osha_inspections,
        web_research=web_research,
    )
    failed = aggregated.failed_sources()
    logger.info(
        f"aggregate({ticker}): {len(aggregated.source_results()) - len(failed)} ok, "
        f"{len(failed)} failed in {perf_counter() - start:.1f}s"
    )
    return aggregated


async def aggregate_batch(
    companies: list[CompanyIdentifier],
    timeout: float | None = None,
) -> list[AggregatedCompanyData]:
    """Aggregate independent companies in parallel, preserving input order."""
    return list(
        await asyncio.gather(*(aggregate_company_data(c, timeout) for c in companies))
    )
