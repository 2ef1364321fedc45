"""Provider adapters; each returns a SourceResult and never raises."""

from vendor_risk_mcp.sources.edgar import fetch_sec_filings
from vendor_risk_mcp.sources.epa import fetch_environmental_violations
from vendor_risk_mcp.sources.fred import SUPPLY_CHAIN_SERIES, fetch_supply_chain_indicators
from vendor_risk_mcp.sources.market import (
    fetch_balance_sheets,
    fetch_cash_flows,
    fetch_company_profile,
    fetch_financial_health,
    fetch_historical_prices,
    fetch_income_statements,
    fetch_stock_quote,
)
from vendor_risk_mcp.sources.news import (
    fetch_litigation_news,
    fetch_supply_chain_news,
    merge_news_results,
)
from vendor_risk_mcp.sources.osha import fetch_osha_inspections
from vendor_risk_mcp.sources.web import research_company_supply_chain

__all__ = [
    "SUPPLY_CHAIN_SERIES",
    "fetch_balance_sheets",
    "fetch_cash_flows",
    "fetch_company_profile",
    "fetch_environmental_violations",
    "fetch_financial_health",
    "fetch_historical_prices",
    "fetch_income_statements",
    "fetch_litigation_news",
    "fetch_osha_inspections",
    "fetch_sec_filings",
    "fetch_stock_quote",
    "fetch_supply_chain_indicators",
    "fetch_supply_chain_news",
    "merge_news_results",
    "research_company_supply_chain",
]
