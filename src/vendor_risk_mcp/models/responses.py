"""Client-facing response shapes served per dashboard tab."""

from typing import Literal

from pydantic import BaseModel, Field

from vendor_risk_mcp.models.research import (
    AggregatedCompanyData,
    EvaluatedData,
    PartitionedVariables,
    ResilienceFactor,
    ResilienceRating,
    RiskDistributionSlice,
    RiskLevel,
    RiskScoreResult,
    Score,
    VariableCategory,
)

Criticality = RiskLevel
Confidence = Literal["Low", "Moderate", "High"]


class IndustryInfo(BaseModel):
    sector: str
    sub_sector: str
    hq_country: str
    employee_count_range: str
    revenue_range_usd: str
    founded_year: int | None = None
    description: str = ""


class TrendPoint(BaseModel):
    month: str
    risk_score: Score


class VendorOverview(BaseModel):
    vendor_id: str
    vendor_name: str
    risk_distribution: list[RiskDistributionSlice]
    risk_level: RiskLevel
    resilience_rating: ResilienceRating
    resilience_score: Score
    resilience_score_max: int = 100
    resilience_factors: list[ResilienceFactor]
    industry: IndustryInfo
    risk_trend_12m: list[TrendPoint]


class Tier3Supplier(BaseModel):
    id: str
    name: str
    sector: str
    country: str
    risk_level: RiskLevel
    criticality: Criticality
    dependency_type: str


class Tier2Supplier(BaseModel):
    id: str
    name: str
    sector: str
    country: str
    risk_level: RiskLevel
    criticality: Criticality
    dependency_type: str
    tier3_suppliers: list[Tier3Supplier] = Field(default_factory=list)


class ConcentrationRisk(BaseModel):
    label: str
    severity: RiskLevel
    description: str


class DependencySummary(BaseModel):
    tier2_count: int
    tier3_count: int
    countries_represented: int
    sectors_represented: int
    critical_dependency_count: int


class DependencyResponse(BaseModel):
    vendor_id: str
    summary: DependencySummary
    concentration_risks: list[ConcentrationRisk]
    tier2_suppliers: list[Tier2Supplier]


class SubCategory(BaseModel):
    label: str
    risk_score: Score
    description: str


class CategoryBreakdown(BaseModel):
    id: VariableCategory
    label: str
    risk_score: Score
    risk_level: RiskLevel
    resilience_score: Score
    description: str
    sub_categories: list[SubCategory]


class RiskBreakdown(BaseModel):
    vendor_id: str
    overall_risk_score: Score
    overall_risk_level: RiskLevel
    overall_resilience_score: Score
    categories: list[CategoryBreakdown]


class Recommendation(BaseModel):
    winner_vendor_id: str
    winner_vendor_name: str
    confidence: Confidence
    summary: str
    reasons: list[str]


class CategoryScoreEntry(BaseModel):
    category: str
    risk_score: Score


class ComparedVendor(BaseModel):
    vendor_id: str
    vendor_name: str
    overall_risk_score: Score
    resilience_score: Score
    category_scores: list[CategoryScoreEntry]


class ComparisonResponse(BaseModel):
    recommendation: Recommendation
    vendors: list[ComparedVendor]


class VendorAnalysisResult(BaseModel):
    """Everything stored for one completed vendor run."""

    vendor_id: str
    vendor_name: str
    ticker: str
    aggregated: AggregatedCompanyData
    evaluated: EvaluatedData | None = None
    partitioned: PartitionedVariables
    scores: RiskScoreResult
    overview: VendorOverview
    dependencies: DependencyResponse
    risk_breakdown: RiskBreakdown
