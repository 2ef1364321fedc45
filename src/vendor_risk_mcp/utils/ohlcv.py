"""Price history standardization utilities."""

import math

import pandas as pd

CANONICAL_COLUMNS = ["date", "open", "high", "low", "close", "adj_close", "volume", "vwap"]


def standardize_history(df: pd.DataFrame) -> pd.DataFrame:
    """
    Standardize a yfinance history frame to a consistent schema.

    Output columns (always, in this order):
    date, open, high, low, close, adj_close, volume, vwap.
    Rows are ordered oldest first; vwap is the daily typical price.

    Args:
        df: Raw DataFrame from yfinance (auto_adjust=False)

    Returns:
        Standardized DataFrame
    """
    df = df.copy()

    if isinstance(df.columns, pd.MultiIndex):
        df.columns = df.columns.get_level_values(0)

    df.columns = [str(c).lower().replace(" ", "_") for c in df.columns]
    df = df.reset_index()
    df.columns = [str(c).lower() for c in df.columns]

    date_cols = [c for c in df.columns if c in ("date", "datetime", "index")]
    if date_cols:
        df = df.rename(columns={date_cols[0]: "date"})

    if "date" in df.columns and pd.api.types.is_datetime64_any_dtype(df["date"]):
        df["date"] = df["date"].dt.strftime("%Y-%m-%d")

    for col in CANONICAL_COLUMNS:
        if col not in df.columns:
            df[col] = pd.NA

    if df["vwap"].isna().all():
        df["vwap"] = (df["high"] + df["low"] + df["close"]) / 3

    df = df.sort_values("date")
    return df[CANONICAL_COLUMNS]


def df_to_rows(df: pd.DataFrame) -> list[dict]:
    """Convert to list of dicts with NaN replaced by None."""
    rows = df.to_dict("records")
    return [
        {
            k: (None if isinstance(v, float) and math.isnan(v) else v)
            for k, v in row.items()
        }
        for row in rows
    ]
