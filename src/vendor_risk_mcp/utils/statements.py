"""Financial statement frame helpers.

yfinance statements are DataFrames with line items as the index and one
column per fiscal period, newest first.
"""

from collections.abc import Mapping, Sequence
from typing import Any

import pandas as pd

from vendor_risk_mcp.models import to_finite_float

INCOME_LINES: dict[str, tuple[str, ...]] = {
    "revenue": ("Total Revenue", "Operating Revenue"),
    "gross_profit": ("Gross Profit",),
    "operating_income": ("Operating Income", "EBIT"),
    "net_income": ("Net Income", "Net Income Common Stockholders"),
    "eps": ("Basic EPS",),
    "eps_diluted": ("Diluted EPS",),
    "ebit": ("EBIT", "Operating Income"),
}

BALANCE_LINES: dict[str, tuple[str, ...]] = {
    "total_assets": ("Total Assets",),
    "total_liabilities": ("Total Liabilities Net Minority Interest", "Total Liabilities"),
    "total_equity": ("Stockholders Equity", "Total Equity Gross Minority Interest"),
    "total_debt": ("Total Debt",),
    "long_term_debt": ("Long Term Debt",),
    "cash_and_equivalents": ("Cash And Cash Equivalents",),
    "net_debt": ("Net Debt",),
    "total_current_assets": ("Current Assets",),
    "total_current_liabilities": ("Current Liabilities",),
    "working_capital": ("Working Capital",),
    "retained_earnings": ("Retained Earnings",),
    "shares_outstanding": ("Ordinary Shares Number", "Share Issued"),
}

CASHFLOW_LINES: dict[str, tuple[str, ...]] = {
    "operating_cash_flow": ("Operating Cash Flow",),
    "capital_expenditure": ("Capital Expenditure",),
    "free_cash_flow": ("Free Cash Flow",),
    "dividends_paid": ("Cash Dividends Paid", "Common Stock Dividend Paid"),
    "net_cash_from_financing": ("Financing Cash Flow",),
    "net_cash_from_investing": ("Investing Cash Flow",),
}


def _line_value(df: pd.DataFrame, column: Any, labels: Sequence[str]) -> float | None:
    for label in labels:
        if label in df.index:
            value = to_finite_float(df.at[label, column])
            if value is not None:
                return value
    return None


def statement_records(
    df: pd.DataFrame | None,
    lines: Mapping[str, Sequence[str]],
    limit: int = 8,
) -> list[dict[str, Any]]:
    """
    Flatten a statement frame into one record per period, newest first.

    Args:
        df: Statement DataFrame (may be None or empty)
        lines: Output field -> candidate line item labels
        limit: Maximum number of periods

    Returns:
        List of dicts with "date" plus one key per output field
    """
    if df is None or df.empty:
        return []

    columns = sorted(df.columns, key=lambda c: pd.Timestamp(c), reverse=True)[:limit]
    records = []
    for column in columns:
        record: dict[str, Any] = {"date": pd.Timestamp(column).strftime("%Y-%m-%d")}
        for field, labels in lines.items():
            record[field] = _line_value(df, column, labels)
        records.append(record)
    return records


def safe_ratio(numerator: float | None, denominator: float | None) -> float | None:
    """Ratio of two optional numbers, or None when undefined."""
    if numerator is None or not denominator:
        return None
    return numerator / denominator
