"""Pydantic models for research records and client responses."""

from vendor_risk_mcp.models.research import (
    VARIABLE_CATEGORIES,
    AggregatedCompanyData,
    BalanceSheet,
    CashFlowStatement,
    CategoryRiskScore,
    CompanyIdentifier,
    CompanyProfile,
    EnvironmentalViolation,
    EvaluatedData,
    FinancialHealth,
    HistoricalPrice,
    IncomeStatement,
    IndustrySector,
    MacroIndicator,
    MacroObservation,
    NewsArticle,
    OshaInspection,
    PartitionedVariable,
    PartitionedVariables,
    ResilienceFactor,
    RiskDistributionSlice,
    RiskScoreResult,
    RiskSignal,
    SecFiling,
    SourceResult,
    StockQuote,
    VariableCategory,
    WebResearchItem,
    WebResearchResult,
    parse_items,
    to_finite_float,
    utc_now_iso,
)
from vendor_risk_mcp.models.responses import (
    CategoryBreakdown,
    CategoryScoreEntry,
    ComparedVendor,
    ComparisonResponse,
    ConcentrationRisk,
    DependencyResponse,
    DependencySummary,
    IndustryInfo,
    Recommendation,
    RiskBreakdown,
    SubCategory,
    Tier2Supplier,
    Tier3Supplier,
    TrendPoint,
    VendorAnalysisResult,
    VendorOverview,
)

__all__ = [
    # Research records
    "VARIABLE_CATEGORIES",
    "AggregatedCompanyData",
    "BalanceSheet",
    "CashFlowStatement",
    "CategoryRiskScore",
    "CompanyIdentifier",
    "CompanyProfile",
    "EnvironmentalViolation",
    "EvaluatedData",
    "FinancialHealth",
    "HistoricalPrice",
    "IncomeStatement",
    "IndustrySector",
    "MacroIndicator",
    "MacroObservation",
    "NewsArticle",
    "OshaInspection",
    "PartitionedVariable",
    "PartitionedVariables",
    "ResilienceFactor",
    "RiskDistributionSlice",
    "RiskScoreResult",
    "RiskSignal",
    "SecFiling",
    "SourceResult",
    "StockQuote",
    "VariableCategory",
    "WebResearchItem",
    "WebResearchResult",
    "parse_items",
    "to_finite_float",
    "utc_now_iso",
    # Responses
    "CategoryBreakdown",
    "CategoryScoreEntry",
    "ComparedVendor",
    "ComparisonResponse",
    "ConcentrationRisk",
    "DependencyResponse",
    "DependencySummary",
    "IndustryInfo",
    "Recommendation",
    "RiskBreakdown",
    "SubCategory",
    "Tier2Supplier",
    "Tier3Supplier",
    "TrendPoint",
    "VendorAnalysisResult",
    "VendorOverview",
]
