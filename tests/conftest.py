"""Pytest configuration and fixtures."""

import random
from collections.abc import Callable
from typing import Any

import pytest
from pydantic import BaseModel, ValidationError

from vendor_risk_mcp.models import (
    AggregatedCompanyData,
    CompanyIdentifier,
    CompanyProfile,
    EnvironmentalViolation,
    EvaluatedData,
    FinancialHealth,
    HistoricalPrice,
    MacroIndicator,
    MacroObservation,
    NewsArticle,
    OshaInspection,
    RiskSignal,
    SourceResult,
    StockQuote,
    VendorAnalysisResult,
)
from vendor_risk_mcp.pipeline.builders import (
    build_overview_response,
    build_risk_breakdown_response,
)
from vendor_risk_mcp.pipeline.generators import (
    build_fallback_category_descriptions,
    build_fallback_dependencies,
)
from vendor_risk_mcp.pipeline.partitioner import partition_variables
from vendor_risk_mcp.pipeline.scorer import (
    compute_risk_scores,
    resilience_rating_from_score,
    risk_level_from_score,
)
from vendor_risk_mcp.reasoning import ReasoningError

SOURCE_TAGS = {
    "profile": "yfinance:profile",
    "stock_quote": "yfinance:quote",
    "historical_prices": "yfinance:historical",
    "income_statements": "yfinance:income",
    "balance_sheets": "yfinance:balance",
    "cash_flows": "yfinance:cashflow",
    "financial_health": "yfinance:health",
    "sec_filings": "edgar:filings",
    "news": "newsapi:merged",
    "macro_indicators": "fred:macro",
    "environmental_violations": "epa:violations",
    "osha_inspections": "osha:inspections",
    "web_research": "firecrawl:research",
}


class FakeReasoningService:
    """
    Reasoning stand-in keyed by output schema name.

    A reply may be a schema instance, a dict validated into the schema, or
    an exception to raise. Unconfigured schemas and dicts that fail
    validation raise ReasoningError, as the OpenAI backend does.
    """

    def __init__(self, replies: dict[str, Any] | None = None):
        self.replies = replies or {}
        self.calls: list[dict[str, Any]] = []

    async def generate_structured(self, *, system: str, prompt: str, schema: type[BaseModel]):
        self.calls.append({"system": system, "prompt": prompt, "schema": schema.__name__})
        reply = self.replies.get(schema.__name__)
        if reply is None:
            raise ReasoningError(f"no reply configured for {schema.__name__}")
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, dict):
            try:
                return schema.model_validate(reply)
            except ValidationError as e:
                raise ReasoningError(f"{schema.__name__} reply did not match schema") from e
        return reply


@pytest.fixture
def company() -> CompanyIdentifier:
    return CompanyIdentifier(ticker="acme", name="Acme Corp")


@pytest.fixture
def make_aggregated(company: CompanyIdentifier) -> Callable[..., AggregatedCompanyData]:
    """Factory: every source failed unless given as `name=data` keyword."""

    def _make(**data: Any) -> AggregatedCompanyData:
        fields: dict[str, SourceResult] = {}
        for name, tag in SOURCE_TAGS.items():
            if name in data:
                fields[name] = SourceResult.ok(tag, data[name])
            else:
                fields[name] = SourceResult.fail(tag, f"{tag} unavailable")
        return AggregatedCompanyData(company=company, **fields)

    return _make


@pytest.fixture
def sample_profile() -> CompanyProfile:
    return CompanyProfile(
        symbol="ACME",
        company_name="Acme Corp",
        sector="Industrials",
        industry="Specialty Industrial Machinery",
        country="United States",
        exchange="NYSE",
        market_cap=30e9,
        employees=12_000,
        description="Acme makes anvils, rockets and industrial equipment.",
    )


@pytest.fixture
def sample_prices() -> list[HistoricalPrice]:
    """Sixty trading days across three months with a steady 1% daily move."""
    prices = []
    close = 100.0
    for month in (4, 5, 6):
        for day in range(1, 21):
            prices.append(HistoricalPrice(date=f"2026-{month:02d}-{day:02d}", close=close))
            close *= 1.01
    return prices


@pytest.fixture
def sample_violations() -> list[EnvironmentalViolation]:
    return [
        EnvironmentalViolation(facility_name="Plant 1", state="TX", penalty_amount=20_000),
        EnvironmentalViolation(facility_name="Plant 2", state="TX", penalty_amount=5_000),
        EnvironmentalViolation(facility_name="Plant 3", state="OH"),
        EnvironmentalViolation(facility_name="Plant 4", state=None),
    ]


@pytest.fixture
def aggregated_full(
    make_aggregated: Callable[..., AggregatedCompanyData],
    sample_profile: CompanyProfile,
    sample_prices: list[HistoricalPrice],
    sample_violations: list[EnvironmentalViolation],
) -> AggregatedCompanyData:
    return make_aggregated(
        profile=sample_profile,
        stock_quote=StockQuote(
            symbol="ACME",
            price=120.5,
            change_percent=-3.2,
            volume=1_500_000,
            market_cap=30e9,
            pe=18.4,
            timestamp="2026-06-30T20:00:00+00:00",
        ),
        historical_prices=sample_prices,
        financial_health=FinancialHealth(
            altman_z_score=3.5,
            debt_to_equity=2.5,
            current_ratio=1.8,
            return_on_equity=0.15,
        ),
        sec_filings=[],
        news=[
            NewsArticle(
                title="Acme faces supplier shortage",
                url="https://news.example.com/acme-shortage",
                published_at="2026-06-01T00:00:00Z",
            )
        ],
        macro_indicators=[
            MacroIndicator(
                series_id="GSCPI",
                series_name="Global Supply Chain Pressure Index",
                observations=[
                    MacroObservation(date="2026-05-01", value=0.8),
                    MacroObservation(date="2026-04-01", value=0.4),
                ],
            ),
            MacroIndicator(
                series_id="DCOILWTICO",
                series_name="Crude Oil Prices: WTI",
                observations=[MacroObservation(date="2026-06-29", value=None)],
            ),
            MacroIndicator(
                series_id="BOPGSTB",
                series_name="Trade Balance",
                observations=[MacroObservation(date="2026-04-01", value=-75_000)],
            ),
        ],
        environmental_violations=sample_violations,
        osha_inspections=[
            OshaInspection(activity_number="1", penalty_amount=12_000),
            OshaInspection(activity_number="2", penalty_amount="3,500"),
        ],
    )


@pytest.fixture
def evaluated(company: CompanyIdentifier) -> EvaluatedData:
    return EvaluatedData(
        company=company,
        risk_signals=[
            RiskSignal(category="financial", signal="Rising leverage", severity="high"),
            RiskSignal(category="supply_chain", signal="Single-source castings", severity="medium"),
            RiskSignal(category="litigation", signal="Product liability suit", severity="low"),
            RiskSignal(category="safety", signal="Repeat OSHA citations", severity="critical"),
        ],
        supply_chain_insights=["Castings sourced from one foundry in Ohio"],
        recommended_for_model=True,
        evaluation_summary="Moderate risk driven by leverage and supplier concentration.",
    )


@pytest.fixture
def fake_reasoning() -> FakeReasoningService:
    return FakeReasoningService()


@pytest.fixture
def make_reasoning() -> Callable[..., FakeReasoningService]:
    """Factory for a reasoning stand-in with canned replies."""
    return FakeReasoningService


@pytest.fixture
def make_result(
    make_aggregated: Callable[..., AggregatedCompanyData],
) -> Callable[..., VendorAnalysisResult]:
    """Factory for a completed analysis with chosen overall and category risk."""

    def _make(
        vendor_id: str,
        vendor_name: str,
        overall_risk: int = 50,
        category_risks: list[int] | None = None,
        resilience: int = 50,
    ) -> VendorAnalysisResult:
        rng = random.Random(0)
        aggregated = make_aggregated()
        partitioned = partition_variables(aggregated, None)
        scores = compute_risk_scores(partitioned, None, rng=rng)

        category_scores = scores.category_scores
        if category_risks is not None:
            category_scores = [
                cs.model_copy(
                    update={"risk_score": risk, "risk_level": risk_level_from_score(risk)}
                )
                for cs, risk in zip(category_scores, category_risks)
            ]
        scores = scores.model_copy(
            update={
                "overall_risk_score": overall_risk,
                "overall_risk_level": risk_level_from_score(overall_risk),
                "overall_resilience_score": resilience,
                "resilience_rating": resilience_rating_from_score(resilience),
                "category_scores": category_scores,
            }
        )
        return VendorAnalysisResult(
            vendor_id=vendor_id,
            vendor_name=vendor_name,
            ticker="ACME",
            aggregated=aggregated,
            partitioned=partitioned,
            scores=scores,
            overview=build_overview_response(vendor_id, vendor_name, aggregated, scores, rng=rng),
            dependencies=build_fallback_dependencies(vendor_id, aggregated),
            risk_breakdown=build_risk_breakdown_response(
                vendor_id, scores, build_fallback_category_descriptions(scores, rng=rng)
            ),
        )

    return _make
