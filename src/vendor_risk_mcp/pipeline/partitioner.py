"""Extract category-tagged numeric variables from research data.

Every variable carries a finite value; absent, null or non-finite source
fields are omitted rather than defaulted to zero.
"""

import math
from collections import Counter
from typing import get_args

from vendor_risk_mcp.models import (
    AggregatedCompanyData,
    EvaluatedData,
    IndustrySector,
    PartitionedVariable,
    PartitionedVariables,
    VariableCategory,
)
from vendor_risk_mcp.utils.indicators import calculate_log_volatility

INDUSTRY_SECTORS: tuple[str, ...] = get_args(IndustrySector)

SECTOR_ALIASES: dict[str, str] = {
    "technology": "Technology",
    "information technology": "Technology",
    "tech": "Technology",
    "software": "Technology",
    "communication services": "Telecommunications",
    "telecommunications": "Telecommunications",
    "telecom": "Telecommunications",
    "healthcare": "Healthcare",
    "health care": "Healthcare",
    "pharmaceuticals": "Healthcare",
    "biotech": "Healthcare",
    "biotechnology": "Healthcare",
    "financial services": "Finance",
    "financials": "Finance",
    "finance": "Finance",
    "banking": "Finance",
    "insurance": "Finance",
    "energy": "Energy",
    "oil & gas": "Energy",
    "oil and gas": "Energy",
    "renewable energy": "Energy",
    "basic materials": "Natural Resources",
    "materials": "Natural Resources",
    "mining": "Natural Resources",
    "metals": "Natural Resources",
    "natural resources": "Natural Resources",
    "industrials": "Industrials",
    "industrial": "Industrials",
    "manufacturing": "Industrials",
    "construction": "Industrials",
    "aerospace": "Industrials",
    "consumer cyclical": "Consumer Discretionary",
    "consumer discretionary": "Consumer Discretionary",
    "retail": "Consumer Discretionary",
    "automotive": "Consumer Discretionary",
    "consumer defensive": "Consumer Staples",
    "consumer staples": "Consumer Staples",
    "food & beverage": "Consumer Staples",
    "utilities": "Utilities",
    "real estate": "Real Estate",
    "reit": "Real Estate",
    "transportation": "Transportation",
    "logistics": "Transportation",
    "airlines": "Transportation",
    "shipping": "Transportation",
    "agriculture": "Agriculture",
    "farming": "Agriculture",
    "defense": "Defense",
    "military": "Defense",
    "aerospace & defense": "Defense",
}

SEVERITY_ORDINAL = {"low": 1, "medium": 2, "high": 3, "critical": 4}

# FRED series -> (category, variable name)
MACRO_SERIES_CATEGORY: dict[str, tuple[VariableCategory, str]] = {
    "DCOILWTICO": ("financial", "crude_oil_wti_price"),
    "PCUOMFG": ("financial", "ppi_manufacturing"),
    "PPIACO": ("financial", "ppi_all_commodities"),
    "GSCPI": ("operational", "global_supply_chain_pressure_index"),
    "MANEMP": ("operational", "manufacturing_employment"),
    "NAPMII": ("operational", "ism_inventories_index"),
    "NAPMSDI": ("operational", "ism_supplier_deliveries_index"),
    "TOTALSA": ("operational", "total_vehicle_sales"),
    "BOPGSTB": ("geographical", "trade_balance_goods_services"),
}

ETHICAL_SIGNAL_CATEGORIES = ("regulatory", "litigation", "environmental", "safety")


def resolve_industry(sector_raw: str | None) -> str:
    """
    Map a raw sector string to an IndustrySector.

    Exact alias first, then substring match in either direction, then a
    direct sector name match; otherwise "Unknown".
    """
    if not sector_raw or sector_raw == "Unknown":
        return "Unknown"
    normalized = sector_raw.lower().strip()
    if not normalized:
        return "Unknown"
    if normalized in SECTOR_ALIASES:
        return SECTOR_ALIASES[normalized]

    for alias, sector in SECTOR_ALIASES.items():
        if alias in normalized or normalized in alias:
            return sector

    for sector in INDUSTRY_SECTORS:
        if sector.lower() == normalized:
            return sector

    return "Unknown"


class _Collector:
    """Accumulates variables for one category, skipping missing values."""

    def __init__(self, category: VariableCategory, industry: str):
        self.category = category
        self.industry = industry
        self.variables: list[PartitionedVariable] = []

    def add(self, name: str, value: float | int | None) -> None:
        if value is None or isinstance(value, bool):
            return
        value = float(value)
        if not math.isfinite(value):
            return
        self.variables.append(
            PartitionedVariable(
                name=name, value=value, category=self.category, industry=self.industry
            )
        )

    def add_signal_stats(self, evaluated: EvaluatedData, signal_category: str) -> None:
        signals = [s for s in evaluated.risk_signals if s.category == signal_category]
        self.add(f"{signal_category}_risk_signal_count", len(signals))
        self.add(
            f"{signal_category}_risk_severity_score",
            sum(SEVERITY_ORDINAL.get(s.severity, 0) for s in signals),
        )

    def add_macro(self, data: AggregatedCompanyData) -> None:
        if not data.macro_indicators.success:
            return
        for indicator in data.macro_indicators.data:
            mapping = MACRO_SERIES_CATEGORY.get(indicator.series_id)
            if mapping is None or mapping[0] != self.category:
                continue
            if indicator.observations:
                self.add(mapping[1], indicator.observations[0].value)


def compute_historical_volatility(data: AggregatedCompanyData) -> float | None:
    """Annualized log-return volatility over the most recent 253 closes."""
    if not data.historical_prices.success:
        return None
    prices = sorted(data.historical_prices.data, key=lambda p: p.date)
    return calculate_log_volatility([p.close for p in prices])


def _financial(
    data: AggregatedCompanyData, evaluated: EvaluatedData | None, industry: str
) -> list[PartitionedVariable]:
    out = _Collector("financial", industry)
    if data.stock_quote.success:
        quote = data.stock_quote.data
        out.add("stock_price", quote.price)
        out.add("price_change_pct", quote.change_percent)
        out.add("trading_volume", quote.volume)
        out.add("market_cap", quote.market_cap)
        out.add("pe_ratio", quote.pe)

    if data.financial_health.success:
        health = data.financial_health.data
        out.add("altman_z_score", health.altman_z_score)
        out.add("piotroski_score", health.piotroski_score)
        out.add("debt_to_equity", health.debt_to_equity)
        out.add("current_ratio", health.current_ratio)
        out.add("quick_ratio", health.quick_ratio)
        out.add("return_on_equity", health.return_on_equity)
        out.add("return_on_assets", health.return_on_assets)

    out.add("annualized_volatility", compute_historical_volatility(data))

    if evaluated is not None:
        out.add_signal_stats(evaluated, "financial")

    out.add_macro(data)
    return out.variables


def _operational(
    data: AggregatedCompanyData, evaluated: EvaluatedData | None, industry: str
) -> list[PartitionedVariable]:
    out = _Collector("operational", industry)
    if data.profile.success:
        out.add("employee_count", data.profile.data.employees)

    if evaluated is not None:
        out.add_signal_stats(evaluated, "supply_chain")
        out.add("supply_chain_insight_count", len(evaluated.supply_chain_insights))

    if data.sec_filings.success:
        out.add("sec_filing_count", len(data.sec_filings.data))
    if data.news.success:
        out.add("news_article_count", len(data.news.data))
    if data.osha_inspections.success:
        out.add("labor_safety_inspection_count", len(data.osha_inspections.data))

    out.add_macro(data)
    return out.variables


def _geographical(data: AggregatedCompanyData, industry: str) -> list[PartitionedVariable]:
    out = _Collector("geographical", industry)
    if data.environmental_violations.success and data.environmental_violations.data:
        violations = data.environmental_violations.data
        state_counts = Counter(v.state for v in violations if v.state != "Unknown")
        out.add("facility_state_count", len(state_counts))
        out.add("facility_count", len(violations))
        known = sum(state_counts.values())
        if known > 0:
            out.add("geographic_concentration_ratio", max(state_counts.values()) / known)

    out.add_macro(data)
    return out.variables


def _ethical(
    data: AggregatedCompanyData, evaluated: EvaluatedData | None, industry: str
) -> list[PartitionedVariable]:
    out = _Collector("ethical", industry)
    if data.environmental_violations.success:
        violations = data.environmental_violations.data
        out.add("environmental_violation_count", len(violations))
        out.add(
            "environmental_total_penalties",
            sum(v.penalty_amount or 0.0 for v in violations),
        )

    if data.osha_inspections.success:
        out.add(
            "labor_safety_total_penalties",
            sum(i.penalty_amount for i in data.osha_inspections.data),
        )

    if evaluated is not None:
        for signal_category in ETHICAL_SIGNAL_CATEGORIES:
            out.add_signal_stats(evaluated, signal_category)

    return out.variables


def partition_variables(
    aggregated: AggregatedCompanyData,
    evaluated: EvaluatedData | None,
) -> PartitionedVariables:
    """Partition one company's data into the four risk categories."""
    sector = aggregated.profile.data.sector if aggregated.profile.success else None
    industry = resolve_industry(sector)
    return PartitionedVariables(
        company=aggregated.company,
        industry=industry,
        financial=_financial(aggregated, evaluated, industry),
        operational=_operational(aggregated, evaluated, industry),
        geographical=_geographical(aggregated, industry),
        ethical=_ethical(aggregated, evaluated, industry),
    )


def partition_batch(
    aggregated_batch: list[AggregatedCompanyData],
    evaluated_batch: list[EvaluatedData | None] | None = None,
) -> list[PartitionedVariables]:
    """Partition a batch; evaluations are paired with companies by index."""
    evaluated_batch = evaluated_batch or []
    return [
        partition_variables(
            aggregated,
            evaluated_batch[i] if i < len(evaluated_batch) else None,
        )
        for i, aggregated in enumerate(aggregated_batch)
    ]
