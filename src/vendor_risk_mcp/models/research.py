"""Typed records produced by the research pipeline.

Provider payloads are validated into these models at the adapter edge.
Optional numeric fields accept numbers or numeric strings; anything that
cannot be read as a finite float becomes None rather than zero.
"""

import math
from datetime import datetime, timezone
from typing import Annotated, Any, Generic, Literal, TypeVar

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


def to_finite_float(value: Any) -> float | None:
    """Coerce a raw provider value to a finite float, or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _text_or(default: str):
    def _coerce(value: Any) -> str:
        if value is None:
            return default
        text = str(value).strip()
        return text or default

    return _coerce


OptionalNumber = Annotated[float | None, BeforeValidator(to_finite_float)]
# Required numbers: an unreadable value fails validation and the item is dropped
Number = Annotated[float, BeforeValidator(to_finite_float)]
UnknownText = Annotated[str, BeforeValidator(_text_or("Unknown"))]
Text = Annotated[str, BeforeValidator(_text_or(""))]


def parse_items(model: type[M], items: Any) -> list[M]:
    """Validate a raw list item by item, dropping invalid entries."""
    if not isinstance(items, list):
        return []
    parsed: list[M] = []
    for item in items:
        try:
            parsed.append(model.model_validate(item))
        except ValidationError:
            continue
    return parsed


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class CompanyIdentifier(BaseModel):
    """Handle for one company; immutable once resolved."""

    model_config = ConfigDict(frozen=True)

    ticker: str = Field(min_length=1, max_length=12)
    name: str | None = None
    cik: str | None = None

    @field_validator("ticker", mode="before")
    @classmethod
    def _normalize_ticker(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value


class SourceResult(BaseModel, Generic[T]):
    """Uniform wrapper returned by every provider fetch."""

    model_config = ConfigDict(frozen=True)

    source: str
    success: bool
    data: T | None = None
    error: str | None = None
    fetched_at: str = Field(default_factory=utc_now_iso)

    @model_validator(mode="after")
    def _check_consistency(self) -> "SourceResult[T]":
        if self.success and (self.data is None or self.error is not None):
            raise ValueError("successful result must carry data and no error")
        if not self.success and (self.data is not None or not self.error):
            raise ValueError("failed result must carry an error and no data")
        return self

    @classmethod
    def ok(cls, source: str, data: Any) -> "SourceResult":
        return cls(source=source, success=True, data=data)

    @classmethod
    def fail(cls, source: str, error: str) -> "SourceResult":
        return cls(source=source, success=False, error=error or "Unknown error")


class CompanyProfile(BaseModel):
    symbol: str
    company_name: str
    sector: UnknownText = "Unknown"
    industry: UnknownText = "Unknown"
    country: UnknownText = "Unknown"
    exchange: UnknownText = "Unknown"
    market_cap: OptionalNumber = None
    employees: OptionalNumber = None
    description: Text = ""
    website: Text = ""
    cik: Text = ""
    founded_year: int | None = None


class StockQuote(BaseModel):
    symbol: str
    price: Number
    change: OptionalNumber = None
    change_percent: OptionalNumber = None
    volume: OptionalNumber = None
    market_cap: OptionalNumber = None
    pe: OptionalNumber = None
    timestamp: str


class HistoricalPrice(BaseModel):
    date: str
    open: OptionalNumber = None
    high: OptionalNumber = None
    low: OptionalNumber = None
    close: Number
    adj_close: OptionalNumber = None
    volume: OptionalNumber = None
    vwap: OptionalNumber = None


class IncomeStatement(BaseModel):
    date: str
    period: str
    revenue: OptionalNumber = None
    gross_profit: OptionalNumber = None
    operating_income: OptionalNumber = None
    net_income: OptionalNumber = None
    eps: OptionalNumber = None
    eps_diluted: OptionalNumber = None
    gross_profit_ratio: OptionalNumber = None
    operating_income_ratio: OptionalNumber = None
    net_income_ratio: OptionalNumber = None


class BalanceSheet(BaseModel):
    date: str
    period: str
    total_assets: OptionalNumber = None
    total_liabilities: OptionalNumber = None
    total_equity: OptionalNumber = None
    total_debt: OptionalNumber = None
    cash_and_equivalents: OptionalNumber = None
    net_debt: OptionalNumber = None
    total_current_assets: OptionalNumber = None
    total_current_liabilities: OptionalNumber = None


class CashFlowStatement(BaseModel):
    date: str
    period: str
    operating_cash_flow: OptionalNumber = None
    capital_expenditure: OptionalNumber = None
    free_cash_flow: OptionalNumber = None
    dividends_paid: OptionalNumber = None
    net_cash_from_financing: OptionalNumber = None
    net_cash_from_investing: OptionalNumber = None


class FinancialHealth(BaseModel):
    altman_z_score: OptionalNumber = None
    piotroski_score: OptionalNumber = None
    debt_to_equity: OptionalNumber = None
    current_ratio: OptionalNumber = None
    quick_ratio: OptionalNumber = None
    return_on_equity: OptionalNumber = None
    return_on_assets: OptionalNumber = None


class SecFiling(BaseModel):
    accession_number: str
    filing_date: str
    form: str
    description: Text = ""
    document_url: Text = ""
    filing_url: Text = ""


class NewsArticle(BaseModel):
    title: str = Field(min_length=1)
    description: str | None = None
    url: str = Field(min_length=1)
    source: UnknownText = "Unknown"
    published_at: str
    content: str | None = None


class MacroObservation(BaseModel):
    date: str
    value: OptionalNumber = None


class MacroIndicator(BaseModel):
    series_id: str
    series_name: str
    observations: list[MacroObservation]
    units: Text = ""
    frequency: Text = ""


class EnvironmentalViolation(BaseModel):
    facility_name: UnknownText = "Unknown"
    facility_id: Text = ""
    state: UnknownText = "Unknown"
    violation_date: str | None = None
    violation_type: UnknownText = "Unknown"
    compliance_status: UnknownText = "Unknown"
    penalty_amount: OptionalNumber = None
    program_area: UnknownText = "Unknown"


class OshaInspection(BaseModel):
    activity_number: str
    establishment_name: UnknownText = "Unknown"
    site_state: UnknownText = "Unknown"
    open_date: Text = ""
    close_date: str | None = None
    violation_type: str | None = None
    penalty_amount: Annotated[float, BeforeValidator(lambda v: to_finite_float(v) or 0.0)] = 0.0
    inspection_type: UnknownText = "Unknown"
    industry: UnknownText = "Unknown"


class WebResearchItem(BaseModel):
    url: str
    title: Text = ""
    content: Text = ""
    source: Text = "web"


class WebResearchResult(BaseModel):
    query: str
    results: list[WebResearchItem]


class AggregatedCompanyData(BaseModel):
    """One company plus one SourceResult per provider."""

    model_config = ConfigDict(frozen=True)

    company: CompanyIdentifier
    profile: SourceResult
    stock_quote: SourceResult
    historical_prices: SourceResult
    income_statements: SourceResult
    balance_sheets: SourceResult
    cash_flows: SourceResult
    financial_health: SourceResult
    sec_filings: SourceResult
    news: SourceResult
    macro_indicators: SourceResult
    environmental_violations: SourceResult
    osha_inspections: SourceResult
    web_research: SourceResult

    def source_results(self) -> dict[str, SourceResult]:
        return {
            name: value
            for name, value in self
            if isinstance(value, SourceResult)
        }

    def failed_sources(self) -> list[SourceResult]:
        return [r for r in self.source_results().values() if not r.success]


Severity = Literal["low", "medium", "high", "critical"]
SignalCategory = Literal[
    "financial",
    "supply_chain",
    "regulatory",
    "litigation",
    "environmental",
    "safety",
    "macro",
]


class RiskSignal(BaseModel):
    category: SignalCategory
    signal: str
    severity: Severity
    data_points: list[dict[str, Any]] = Field(default_factory=list)
    reasoning: str = ""


class EvaluatedData(BaseModel):
    company: CompanyIdentifier
    risk_signals: list[RiskSignal] = Field(default_factory=list)
    relevant_financials: dict[str, Any] = Field(default_factory=dict)
    relevant_news: list[NewsArticle] = Field(default_factory=list)
    supply_chain_insights: list[str] = Field(default_factory=list)
    recommended_for_model: bool = False
    evaluation_summary: str = ""


VariableCategory = Literal["financial", "operational", "geographical", "ethical"]
VARIABLE_CATEGORIES: tuple[VariableCategory, ...] = (
    "financial",
    "operational",
    "geographical",
    "ethical",
)

IndustrySector = Literal[
    "Technology",
    "Telecommunications",
    "Healthcare",
    "Finance",
    "Energy",
    "Natural Resources",
    "Industrials",
    "Consumer Discretionary",
    "Consumer Staples",
    "Utilities",
    "Real Estate",
    "Transportation",
    "Agriculture",
    "Defense",
    "Unknown",
]


class PartitionedVariable(BaseModel):
    name: str
    value: float = Field(allow_inf_nan=False)
    category: VariableCategory
    industry: IndustrySector


class PartitionedVariables(BaseModel):
    company: CompanyIdentifier
    industry: IndustrySector
    financial: list[PartitionedVariable] = Field(default_factory=list)
    operational: list[PartitionedVariable] = Field(default_factory=list)
    geographical: list[PartitionedVariable] = Field(default_factory=list)
    ethical: list[PartitionedVariable] = Field(default_factory=list)

    def for_category(self, category: VariableCategory) -> list[PartitionedVariable]:
        return getattr(self, category)

    def as_mapping(self, category: VariableCategory) -> dict[str, float]:
        return {v.name: v.value for v in self.for_category(category)}


RiskLevel = Literal["Low", "Moderate", "High", "Critical"]
ResilienceRating = Literal["Poor", "Moderate", "Strong", "Excellent"]
Score = Annotated[int, Field(ge=0, le=100)]


class CategoryRiskScore(BaseModel):
    category: VariableCategory
    label: str
    risk_score: Score
    resilience_score: Score
    risk_level: RiskLevel


class RiskDistributionSlice(BaseModel):
    label: str
    percentage: float


class ResilienceFactor(BaseModel):
    label: str
    score: Score


class RiskScoreResult(BaseModel):
    overall_risk_score: Score
    overall_risk_level: RiskLevel
    overall_resilience_score: Score
    resilience_rating: ResilienceRating
    category_scores: list[CategoryRiskScore]
    risk_distribution: list[RiskDistributionSlice]
    resilience_factors: list[ResilienceFactor]

    def category(self, category: VariableCategory) -> CategoryRiskScore:
        for score in self.category_scores:
            if score.category == category:
                return score
        raise KeyError(category)
