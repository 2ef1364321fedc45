"""Risk indicator calculations on prices and statements."""

import math
from collections.abc import Mapping, Sequence

import numpy as np

TRADING_DAYS = 252


def calculate_log_volatility(
    closes: Sequence[float],
    window: int = TRADING_DAYS + 1,
    min_prices: int = 10,
    min_returns: int = 5,
) -> float | None:
    """
    Calculate annualized volatility from daily log returns.

    Uses the most recent `window` closes (ordered oldest first). Returns
    whose previous close is not positive are skipped.

    Args:
        closes: Close prices, oldest first
        window: Number of trailing closes to use (default: 253)
        min_prices: Minimum closes required
        min_returns: Minimum usable returns required

    Returns:
        Annualized volatility as decimal (0.25 = 25%), or None if insufficient data
    """
    if len(closes) < min_prices:
        return None

    recent = np.asarray(closes[-window:], dtype=float)
    prev, curr = recent[:-1], recent[1:]
    mask = (prev > 0) & (curr > 0)
    returns = np.log(curr[mask] / prev[mask])
    if len(returns) < min_returns:
        return None

    # Sample standard deviation (n - 1)
    std = float(np.std(returns, ddof=1))
    if not math.isfinite(std):
        return None
    return std * math.sqrt(TRADING_DAYS)


def mean_abs_daily_return(closes: Sequence[float]) -> float | None:
    """Mean absolute simple return between consecutive closes."""
    moves = [
        abs((curr - prev) / prev)
        for prev, curr in zip(closes, closes[1:])
        if prev
    ]
    if not moves:
        return None
    return sum(moves) / len(moves)


def group_closes_by_month(rows: Sequence[tuple[str, float]]) -> dict[str, list[float]]:
    """
    Group (date, close) pairs by calendar month.

    Returns:
        Ordered dict of "YYYY-MM" -> closes, months ascending and closes
        in date order within each month.
    """
    groups: dict[str, list[float]] = {}
    for date, close in sorted(rows, key=lambda r: r[0]):
        groups.setdefault(date[:7], []).append(close)
    return groups


def calculate_altman_z(
    *,
    working_capital: float,
    retained_earnings: float,
    ebit: float,
    market_value_equity: float,
    sales: float,
    total_assets: float,
    total_liabilities: float,
) -> float | None:
    """
    Calculate the Altman Z-Score (original public-company form).

    Z = 1.2 WC/TA + 1.4 RE/TA + 3.3 EBIT/TA + 0.6 MVE/TL + 1.0 Sales/TA

    Returns:
        Z-Score, or None if total assets or liabilities are not positive
    """
    if total_assets <= 0 or total_liabilities <= 0:
        return None

    z = (
        1.2 * working_capital / total_assets
        + 1.4 * retained_earnings / total_assets
        + 3.3 * ebit / total_assets
        + 0.6 * market_value_equity / total_liabilities
        + 1.0 * sales / total_assets
    )
    return z if math.isfinite(z) else None


def _ratio(numerator: float | None, denominator: float | None) -> float | None:
    if numerator is None or not denominator:
        return None
    return numerator / denominator


def _improved(current: float | None, prior: float | None, higher_is_better: bool = True) -> bool:
    if current is None or prior is None:
        return False
    return current > prior if higher_is_better else current < prior


def calculate_piotroski(
    current: Mapping[str, float | None],
    prior: Mapping[str, float | None],
) -> int | None:
    """
    Calculate the Piotroski F-Score from two fiscal years.

    Expected keys: net_income, total_assets, operating_cash_flow,
    long_term_debt, current_assets, current_liabilities,
    shares_outstanding, gross_profit, revenue. A criterion whose inputs
    are missing scores 0.

    Returns:
        Score 0-9, or None if net income or total assets are missing
        for either year
    """
    for year in (current, prior):
        if year.get("net_income") is None or not year.get("total_assets"):
            return None

    roa = _ratio(current["net_income"], current["total_assets"])
    prior_roa = _ratio(prior["net_income"], prior["total_assets"])
    cfo = current.get("operating_cash_flow")

    checks = [
        roa is not None and roa > 0,
        cfo is not None and cfo > 0,
        _improved(roa, prior_roa),
        cfo is not None and cfo > current["net_income"],
        _improved(
            _ratio(current.get("long_term_debt"), current["total_assets"]),
            _ratio(prior.get("long_term_debt"), prior["total_assets"]),
            higher_is_better=False,
        ),
        _improved(
            _ratio(current.get("current_assets"), current.get("current_liabilities")),
            _ratio(prior.get("current_assets"), prior.get("current_liabilities")),
        ),
        (
            current.get("shares_outstanding") is not None
            and prior.get("shares_outstanding") is not None
            and current["shares_outstanding"] <= prior["shares_outstanding"]
        ),
        _improved(
            _ratio(current.get("gross_profit"), current.get("revenue")),
            _ratio(prior.get("gross_profit"), prior.get("revenue")),
        ),
        _improved(
            _ratio(current.get("revenue"), current["total_assets"]),
            _ratio(prior.get("revenue"), prior["total_assets"]),
        ),
    ]
    return sum(1 for passed in checks if passed)
