"""Build the client-facing response for each dashboard tab."""

import random
from datetime import datetime, timezone

from vendor_risk_mcp.models import (
    AggregatedCompanyData,
    CategoryBreakdown,
    CategoryScoreEntry,
    ComparedVendor,
    IndustryInfo,
    RiskBreakdown,
    RiskScoreResult,
    SubCategory,
    TrendPoint,
    VendorOverview,
)
from vendor_risk_mcp.pipeline.scorer import clamp_score, round_half_up
from vendor_risk_mcp.utils.indicators import group_closes_by_month, mean_abs_daily_return

TREND_MONTHS = 12
TREND_MIN_PRICES = 20
TREND_JITTER = 10

EMPLOYEE_BANDS = [
    (100, "1–100"),
    (500, "100–500"),
    (1_000, "500–1,000"),
    (5_000, "1,000–5,000"),
    (10_000, "5,000–10,000"),
    (50_000, "10,000–50,000"),
    (100_000, "50,000–100,000"),
]

# Estimated revenue (market cap / 3) upper bounds
REVENUE_BANDS = [
    (1e6, "<1M"),
    (10e6, "1M–10M"),
    (100e6, "10M–100M"),
    (1e9, "100M–1B"),
    (5e9, "1B–5B"),
    (10e9, "5B–10B"),
    (50e9, "10B–50B"),
]


def employee_range(count: float | None) -> str:
    if not count:
        return "Unknown"
    for upper, label in EMPLOYEE_BANDS:
        if count < upper:
            return label
    return "100,000+"


def revenue_range(market_cap: float | None) -> str:
    if not market_cap:
        return "Unknown"
    estimated = market_cap / 3
    for upper, label in REVENUE_BANDS:
        if estimated < upper:
            return label
    return "50B+"


def shift_month(month: str, delta: int) -> str:
    """Add `delta` months to a "YYYY-MM" key."""
    year, mon = int(month[:4]), int(month[5:7])
    index = year * 12 + (mon - 1) + delta
    return f"{index // 12:04d}-{index % 12 + 1:02d}"


def generate_risk_trend(
    aggregated: AggregatedCompanyData,
    current_risk: int,
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> list[TrendPoint]:
    """
    Synthesize a 12-month risk trend from monthly-grouped closes.

    Each month with at least two closes scores
    round(current * 0.7 + mean |daily return| * 800); thinner months take
    the current score. Missing months are padded before the earliest
    month with the current score plus jitter in [-5, 5]. The result always
    has exactly 12 points in ascending month order.
    """
    rng = rng or random.Random()
    now = now or datetime.now(timezone.utc)

    points: list[TrendPoint] = []
    prices = aggregated.historical_prices.data if aggregated.historical_prices.success else []
    if len(prices) > TREND_MIN_PRICES:
        months = group_closes_by_month([(p.date, p.close) for p in prices])
        for month in list(months)[-TREND_MONTHS:]:
            closes = months[month]
            if len(closes) < 2:
                points.append(TrendPoint(month=month, risk_score=current_risk))
                continue
            avg_move = mean_abs_daily_return(closes) or 0.0
            score = min(100, round_half_up(current_risk * 0.7 + avg_move * 800))
            points.append(TrendPoint(month=month, risk_score=clamp_score(score)))

    anchor = points[0].month if points else shift_month(now.strftime("%Y-%m"), 1)
    padding = []
    for offset in range(TREND_MONTHS - len(points), 0, -1):
        jitter = round_half_up((rng.random() - 0.5) * TREND_JITTER)
        padding.append(
            TrendPoint(
                month=shift_month(anchor, -offset),
                risk_score=clamp_score(current_risk + jitter),
            )
        )
    return padding + points


def build_overview_response(
    vendor_id: str,
    vendor_name: str,
    aggregated: AggregatedCompanyData,
    scores: RiskScoreResult,
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> VendorOverview:
    profile = aggregated.profile.data if aggregated.profile.success else None
    quote = aggregated.stock_quote.data if aggregated.stock_quote.success else None

    industry = IndustryInfo(
        sector=profile.sector if profile else "Unknown",
        sub_sector=profile.industry if profile else "Unknown",
        hq_country=profile.country if profile else "Unknown",
        employee_count_range=employee_range(profile.employees if profile else None),
        revenue_range_usd=revenue_range(quote.market_cap if quote else None),
        founded_year=profile.founded_year if profile else None,
        description=(
            profile.description[:500]
            if profile and profile.description
            else "No description available."
        ),
    )
    return VendorOverview(
        vendor_id=vendor_id,
        vendor_name=vendor_name,
        risk_distribution=scores.risk_distribution,
        risk_level=scores.overall_risk_level,
        resilience_rating=scores.resilience_rating,
        resilience_score=scores.overall_resilience_score,
        resilience_factors=scores.resilience_factors,
        industry=industry,
        risk_trend_12m=generate_risk_trend(
            aggregated, scores.overall_risk_score, rng=rng, now=now
        ),
    )


def build_risk_breakdown_response(
    vendor_id: str,
    scores: RiskScoreResult,
    narratives: dict[str, tuple[str, list[SubCategory]]],
) -> RiskBreakdown:
    """
    Merge category scores with generated narratives.

    Args:
        narratives: category id -> (description, sub-categories); missing
            categories get a generic description and no sub-categories
    """
    categories = []
    for cs in scores.category_scores:
        description, sub_categories = narratives.get(
            cs.category, (f"{cs.label} risk assessment based on available data.", [])
        )
        categories.append(
            CategoryBreakdown(
                id=cs.category,
                label=cs.label,
                risk_score=cs.risk_score,
                risk_level=cs.risk_level,
                resilience_score=cs.resilience_score,
                description=description,
                sub_categories=sub_categories,
            )
        )
    return RiskBreakdown(
        vendor_id=vendor_id,
        overall_risk_score=scores.overall_risk_score,
        overall_risk_level=scores.overall_risk_level,
        overall_resilience_score=scores.overall_resilience_score,
        categories=categories,
    )


def build_compared_vendor(
    vendor_id: str, vendor_name: str, scores: RiskScoreResult
) -> ComparedVendor:
    return ComparedVendor(
        vendor_id=vendor_id,
        vendor_name=vendor_name,
        overall_risk_score=scores.overall_risk_score,
        resilience_score=scores.overall_resilience_score,
        category_scores=[
            CategoryScoreEntry(category=cs.label, risk_score=cs.risk_score)
            for cs in scores.category_scores
        ],
    )
