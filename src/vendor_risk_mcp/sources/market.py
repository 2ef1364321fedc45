"""Market data adapters backed by yfinance."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

import pandas as pd
from pydantic import ValidationError

from vendor_risk_mcp.data.yfinance_client import (
    fetch_history_rows,
    fetch_info,
    fetch_statement,
    has_value,
)
from vendor_risk_mcp.models import (
    BalanceSheet,
    CashFlowStatement,
    CompanyProfile,
    FinancialHealth,
    HistoricalPrice,
    IncomeStatement,
    SourceResult,
    StockQuote,
    parse_items,
    to_finite_float,
)
from vendor_risk_mcp.sources.base import describe_error
from vendor_risk_mcp.utils.indicators import calculate_altman_z, calculate_piotroski
from vendor_risk_mcp.utils.sanitize import sanitize_text
from vendor_risk_mcp.utils.statements import (
    BALANCE_LINES,
    CASHFLOW_LINES,
    INCOME_LINES,
    safe_ratio,
    statement_records,
)

logger = logging.getLogger(__name__)


def _first_value(info: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if has_value(info.get(key)):
            return info[key]
    return None


def _period_label(date: str) -> str:
    month = int(date[5:7])
    return f"Q{(month - 1) // 3 + 1}"


async def fetch_company_profile(ticker: str) -> SourceResult:
    source = "yfinance:profile"
    try:
        info = await fetch_info(ticker)
        raw = {
            "symbol": info.get("symbol") or ticker,
            "company_name": _first_value(info, "longName", "shortName") or ticker,
            "sector": info.get("sector"),
            "industry": info.get("industry"),
            "country": info.get("country"),
            "exchange": _first_value(info, "fullExchangeName", "exchange"),
            "market_cap": info.get("marketCap"),
            "employees": info.get("fullTimeEmployees"),
            "description": sanitize_text(info.get("longBusinessSummary"), max_length=2000),
            "website": info.get("website"),
        }
        try:
            profile = CompanyProfile.model_validate(raw)
        except ValidationError:
            return SourceResult.fail(source, f"Invalid profile payload for {ticker}")
        return SourceResult.ok(source, profile)
    except Exception as e:
        logger.warning(f"{source}({ticker}) failed: {e}")
        return SourceResult.fail(source, describe_error(e))


async def fetch_stock_quote(ticker: str) -> SourceResult:
    source = "yfinance:quote"
    try:
        info = await fetch_info(ticker)
        price = to_finite_float(_first_value(info, "currentPrice", "regularMarketPrice"))
        previous = to_finite_float(
            _first_value(info, "regularMarketPreviousClose", "previousClose")
        )
        change = to_finite_float(info.get("regularMarketChange"))
        if change is None and price is not None and previous is not None:
            change = price - previous
        change_percent = to_finite_float(info.get("regularMarketChangePercent"))
        if change_percent is None and change is not None and previous:
            change_percent = change / previous * 100

        market_time = to_finite_float(info.get("regularMarketTime"))
        timestamp = (
            datetime.fromtimestamp(market_time, tz=timezone.utc)
            if market_time is not None
            else datetime.now(timezone.utc)
        )
        raw = {
            "symbol": info.get("symbol") or ticker,
            "price": price,
            "change": change,
            "change_percent": change_percent,
            "volume": _first_value(info, "regularMarketVolume", "volume"),
            "market_cap": info.get("marketCap"),
            "pe": info.get("trailingPE"),
            "timestamp": timestamp.isoformat(),
        }
        try:
            quote = StockQuote.model_validate(raw)
        except ValidationError:
            return SourceResult.fail(source, f"No quote data for {ticker}")
        return SourceResult.ok(source, quote)
    except Exception as e:
        logger.warning(f"{source}({ticker}) failed: {e}")
        return SourceResult.fail(source, describe_error(e))


async def fetch_historical_prices(ticker: str, from_date: str) -> SourceResult:
    """Daily prices from `from_date`, oldest first."""
    source = "yfinance:historical"
    try:
        rows = await fetch_history_rows(ticker, from_date)
        return SourceResult.ok(source, parse_items(HistoricalPrice, rows))
    except Exception as e:
        logger.warning(f"{source}({ticker}) failed: {e}")
        return SourceResult.fail(source, describe_error(e))


async def fetch_income_statements(ticker: str, limit: int = 8) -> SourceResult:
    source = "yfinance:income"
    try:
        df = await fetch_statement(ticker, "income")
        rows = []
        for record in statement_records(df, INCOME_LINES, limit):
            revenue = record["revenue"]
            rows.append(
                {
                    **record,
                    "period": _period_label(record["date"]),
                    "gross_profit_ratio": safe_ratio(record["gross_profit"], revenue),
                    "operating_income_ratio": safe_ratio(record["operating_income"], revenue),
                    "net_income_ratio": safe_ratio(record["net_income"], revenue),
                }
            )
        return SourceResult.ok(source, parse_items(IncomeStatement, rows))
    except Exception as e:
        logger.warning(f"{source}({ticker}) failed: {e}")
        return SourceResult.fail(source, describe_error(e))


async def fetch_balance_sheets(ticker: str, limit: int = 8) -> SourceResult:
    source = "yfinance:balance"
    try:
        df = await fetch_statement(ticker, "balance")
        rows = [
            {**record, "period": _period_label(record["date"])}
            for record in statement_records(df, BALANCE_LINES, limit)
        ]
        return SourceResult.ok(source, parse_items(BalanceSheet, rows))
    except Exception as e:
        logger.warning(f"{source}({ticker}) failed: {e}")
        return SourceResult.fail(source, describe_error(e))


async def fetch_cash_flows(ticker: str, limit: int = 8) -> SourceResult:
    source = "yfinance:cashflow"
    try:
        df = await fetch_statement(ticker, "cashflow")
        rows = [
            {**record, "period": _period_label(record["date"])}
            for record in statement_records(df, CASHFLOW_LINES, limit)
        ]
        return SourceResult.ok(source, parse_items(CashFlowStatement, rows))
    except Exception as e:
        logger.warning(f"{source}({ticker}) failed: {e}")
        return SourceResult.fail(source, describe_error(e))


def _annual_years(
    income: pd.DataFrame | None,
    balance: pd.DataFrame | None,
    cashflow: pd.DataFrame | None,
) -> list[dict[str, Any]]:
    """Merge annual statements into one record per fiscal year, newest first."""
    by_date: dict[str, dict[str, Any]] = {}
    for df, lines in ((income, INCOME_LINES), (balance, BALANCE_LINES), (cashflow, CASHFLOW_LINES)):
        for record in statement_records(df, lines, limit=2):
            by_date.setdefault(record["date"], {}).update(record)
    return [by_date[d] for d in sorted(by_date, reverse=True)][:2]


def compute_health_scores(
    years: list[dict[str, Any]],
    market_cap: float | None,
) -> dict[str, float | None]:
    """Altman Z from the latest fiscal year, Piotroski from the latest two."""
    scores: dict[str, float | None] = {"altman_z_score": None, "piotroski_score": None}
    if not years:
        return scores

    latest = years[0]
    working_capital = latest.get("working_capital")
    if working_capital is None and latest.get("total_current_assets") is not None:
        working_capital = latest["total_current_assets"] - (latest.get("total_current_liabilities") or 0.0)
    inputs = {
        "working_capital": working_capital,
        "retained_earnings": latest.get("retained_earnings"),
        "ebit": latest.get("ebit"),
        "market_value_equity": market_cap,
        "sales": latest.get("revenue"),
        "total_assets": latest.get("total_assets"),
        "total_liabilities": latest.get("total_liabilities"),
    }
    if all(v is not None for v in inputs.values()):
        scores["altman_z_score"] = calculate_altman_z(**inputs)

    if len(years) == 2:
        def _piotroski_inputs(year: dict[str, Any]) -> dict[str, float | None]:
            return {
                "net_income": year.get("net_income"),
                "total_assets": year.get("total_assets"),
                "operating_cash_flow": year.get("operating_cash_flow"),
                "long_term_debt": year.get("long_term_debt"),
                "current_assets": year.get("total_current_assets"),
                "current_liabilities": year.get("total_current_liabilities"),
                "shares_outstanding": year.get("shares_outstanding"),
                "gross_profit": year.get("gross_profit"),
                "revenue": year.get("revenue"),
            }

        score = calculate_piotroski(_piotroski_inputs(years[0]), _piotroski_inputs(years[1]))
        scores["piotroski_score"] = float(score) if score is not None else None

    return scores


async def fetch_financial_health(ticker: str) -> SourceResult:
    source = "yfinance:health"
    try:
        info = await fetch_info(ticker)
        statements = await asyncio.gather(
            fetch_statement(ticker, "annual_income"),
            fetch_statement(ticker, "annual_balance"),
            fetch_statement(ticker, "annual_cashflow"),
            return_exceptions=True,
        )
        income, balance, cashflow = (
            None if isinstance(s, BaseException) else s for s in statements
        )
        for kind, result in zip(("income", "balance", "cashflow"), statements):
            if isinstance(result, BaseException):
                logger.info(f"{source}({ticker}): annual {kind} unavailable: {result}")

        scores = compute_health_scores(
            _annual_years(income, balance, cashflow),
            to_finite_float(info.get("marketCap")),
        )

        debt_to_equity = to_finite_float(info.get("debtToEquity"))
        if debt_to_equity is not None:
            # yfinance reports debt/equity as a percentage
            debt_to_equity = debt_to_equity / 100

        health = FinancialHealth.model_validate(
            {
                **scores,
                "debt_to_equity": debt_to_equity,
                "current_ratio": info.get("currentRatio"),
                "quick_ratio": info.get("quickRatio"),
                "return_on_equity": info.get("returnOnEquity"),
                "return_on_assets": info.get("returnOnAssets"),
            }
        )
        return SourceResult.ok(source, health)
    except Exception as e:
        logger.warning(f"{source}({ticker}) failed: {e}")
        return SourceResult.fail(source, describe_error(e))
