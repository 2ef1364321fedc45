"""Reasoning-backed narrative passes and their deterministic fallbacks.

Each generator raises ReasoningError on failure; the analyzer decides when
to use the matching `build_fallback_*` function instead.
"""

import logging
import random

from pydantic import BaseModel, Field

from vendor_risk_mcp.models import (
    AggregatedCompanyData,
    ComparisonResponse,
    ConcentrationRisk,
    DependencyResponse,
    DependencySummary,
    EvaluatedData,
    Recommendation,
    RiskScoreResult,
    SubCategory,
    Tier2Supplier,
    Tier3Supplier,
    VariableCategory,
    VendorAnalysisResult,
)
from vendor_risk_mcp.models.research import RiskLevel
from vendor_risk_mcp.models.responses import Confidence
from vendor_risk_mcp.pipeline.builders import build_compared_vendor
from vendor_risk_mcp.pipeline.scorer import clamp_score, round_half_up
from vendor_risk_mcp.prompts.templates import get_system_prompt
from vendor_risk_mcp.reasoning import ReasoningService

logger = logging.getLogger(__name__)

Narratives = dict[str, tuple[str, list[SubCategory]]]

SUB_SCORE_JITTER = 15


# Structured outputs requested from the reasoning service


class SubCategoryOutput(BaseModel):
    label: str = Field(description="Sub-category name, e.g. 'Debt-to-Equity Ratio'")
    risk_score: float = Field(
        allow_inf_nan=False, description="Risk score 0-100 for this sub-category"
    )
    description: str = Field(description="One sentence explaining the risk")


class CategoryNarrativeOutput(BaseModel):
    category_id: VariableCategory
    description: str = Field(
        description="2-3 sentence explanation of this risk category for this vendor"
    )
    sub_categories: list[SubCategoryOutput] = Field(min_length=2, max_length=5)


class CategoryDescriptionsOutput(BaseModel):
    categories: list[CategoryNarrativeOutput]


class SupplierOutput(BaseModel):
    name: str
    sector: str
    country: str
    risk_level: RiskLevel
    criticality: RiskLevel
    dependency_type: str = Field(
        description="e.g. 'Raw Material', 'Component', 'Service', 'Logistics'"
    )


class Tier2SupplierOutput(SupplierOutput):
    tier3_suppliers: list[SupplierOutput] = Field(default_factory=list)


class GeneratedTier2Supplier(Tier2SupplierOutput):
    tier3_suppliers: list[SupplierOutput] = Field(min_length=1, max_length=3)


class DependencyTreeOutput(BaseModel):
    concentration_risks: list[ConcentrationRisk]
    tier2_suppliers: list[GeneratedTier2Supplier] = Field(min_length=3, max_length=6)


class ComparisonOutput(BaseModel):
    winner_index: int = Field(description="0-based index of the recommended vendor")
    confidence: Confidence
    summary: str = Field(description="2-3 sentence recommendation summary")
    reasons: list[str] = Field(min_length=2, max_length=5)


# Category narratives


def _company_header(aggregated: AggregatedCompanyData) -> str:
    company = aggregated.company
    sector = aggregated.profile.data.sector if aggregated.profile.success else "Unknown"
    return f"Company: {company.ticker} ({company.name or 'Unknown'})\nSector: {sector}"


async def generate_category_descriptions(
    aggregated: AggregatedCompanyData,
    evaluated: EvaluatedData,
    scores: RiskScoreResult,
    reasoning: ReasoningService,
) -> Narratives:
    """Category descriptions and sub-categories grounded in the evaluation."""
    score_lines = "\n".join(
        f"- {cs.label}: {cs.risk_score}/100 ({cs.risk_level})" for cs in scores.category_scores
    )
    signal_lines = "\n".join(
        f"- [{s.severity}] {s.category}: {s.signal}" for s in evaluated.risk_signals
    )
    prompt = (
        f"{_company_header(aggregated)}\n\n"
        f"Risk Scores:\n{score_lines}\n\n"
        f"Evaluation Summary: {evaluated.evaluation_summary}\n\n"
        f"Risk Signals:\n{signal_lines}\n\n"
        f"Supply Chain Insights:\n" + "\n".join(evaluated.supply_chain_insights) + "\n\n"
        "Generate category descriptions and sub-categories for: financial, operational, "
        "geographical, ethical.\n"
        "Each sub-category risk_score should be consistent with the parent category score."
    )
    output = await reasoning.generate_structured(
        system=get_system_prompt("category_descriptions"),
        prompt=prompt,
        schema=CategoryDescriptionsOutput,
    )
    return {
        c.category_id: (
            c.description,
            [
                SubCategory(
                    label=sc.label,
                    risk_score=clamp_score(sc.risk_score),
                    description=sc.description,
                )
                for sc in c.sub_categories
            ],
        )
        for c in output.categories
    }


FALLBACK_NARRATIVES: dict[str, tuple[str, list[tuple[str, str]]]] = {
    "financial": (
        "Financial risk assessment based on market data, health scores, and cost indicators.",
        [
            ("Debt & Leverage", "Assessed from debt-to-equity and current ratio metrics."),
            ("Profitability", "Evaluated using return on equity and return on assets."),
            ("Market Volatility", "Measured from historical price volatility."),
        ],
    ),
    "operational": (
        "Operational risk covering supply chain complexity, labor factors, and "
        "throughput indicators.",
        [
            ("Supply Chain Pressure", "Global supply chain pressure index and delivery metrics."),
            ("Workforce Stability", "Employee count and labor market signals."),
            ("Operational Activity", "SEC filing and news volume as activity proxies."),
        ],
    ),
    "geographical": (
        "Geographic risk based on facility distribution, trade exposure, and regional "
        "concentration.",
        [
            ("Geographic Concentration", "Degree of facility concentration in single regions."),
            ("Trade Exposure", "Assessed from trade balance and import/export data."),
        ],
    ),
    "ethical": (
        "Regulatory and ethical risk from environmental violations, compliance, and "
        "litigation signals.",
        [
            ("Environmental Compliance", "Environmental violation count and penalty amounts."),
            ("Regulatory Risk", "Regulatory and litigation signal assessment."),
            ("Safety Record", "Workplace safety and OSHA compliance signals."),
        ],
    ),
}


def build_fallback_category_descriptions(
    scores: RiskScoreResult,
    rng: random.Random | None = None,
) -> Narratives:
    """Template narratives with sub-scores jittered around the category score."""
    rng = rng or random.Random()
    narratives: Narratives = {}
    for cs in scores.category_scores:
        description, subs = FALLBACK_NARRATIVES.get(
            cs.category,
            (f"{cs.label} risk assessment.", [("General", "Assessment based on available data.")]),
        )
        narratives[cs.category] = (
            description,
            [
                SubCategory(
                    label=label,
                    risk_score=clamp_score(
                        cs.risk_score + round_half_up((rng.random() - 0.5) * SUB_SCORE_JITTER)
                    ),
                    description=text,
                )
                for label, text in subs
            ],
        )
    return narratives


# Dependency tree


def _node_id(n: int) -> str:
    return f"n_{n:03d}"


def summarize_dependencies(tier2: list[Tier2Supplier]) -> DependencySummary:
    """Counts over the actual tree; High and Critical criticality count as critical."""
    nodes: list[Tier2Supplier | Tier3Supplier] = []
    for t2 in tier2:
        nodes.append(t2)
        nodes.extend(t2.tier3_suppliers)
    return DependencySummary(
        tier2_count=len(tier2),
        tier3_count=len(nodes) - len(tier2),
        countries_represented=len({n.country for n in nodes}),
        sectors_represented=len({n.sector for n in nodes}),
        critical_dependency_count=sum(1 for n in nodes if n.criticality in ("High", "Critical")),
    )


def assemble_dependency_tree(
    vendor_id: str,
    tier2_outputs: list[Tier2SupplierOutput],
    concentration_risks: list[ConcentrationRisk],
) -> DependencyResponse:
    """Assign n_001, n_002, ... depth-first and compute the summary."""
    counter = 0
    tier2: list[Tier2Supplier] = []
    for t2 in tier2_outputs:
        counter += 1
        t2_id = _node_id(counter)
        tier3 = []
        for t3 in t2.tier3_suppliers:
            counter += 1
            tier3.append(Tier3Supplier(id=_node_id(counter), **t3.model_dump()))
        tier2.append(
            Tier2Supplier(
                id=t2_id,
                **t2.model_dump(exclude={"tier3_suppliers"}),
                tier3_suppliers=tier3,
            )
        )
    return DependencyResponse(
        vendor_id=vendor_id,
        summary=summarize_dependencies(tier2),
        concentration_risks=concentration_risks,
        tier2_suppliers=tier2,
    )


async def generate_dependency_tree(
    vendor_id: str,
    aggregated: AggregatedCompanyData,
    evaluated: EvaluatedData,
    reasoning: ReasoningService,
) -> DependencyResponse:
    """Tier 2/3 supplier tree inferred from profile, evaluation and web research."""
    profile = aggregated.profile.data if aggregated.profile.success else None
    supply_signals = "\n".join(
        f"- [{s.severity}] {s.signal}: {s.reasoning}"
        for s in evaluated.risk_signals
        if s.category == "supply_chain"
    )
    research = []
    if aggregated.web_research.success:
        research = [item for wr in aggregated.web_research.data for item in wr.results][:3]
    research_lines = "\n".join(f"- {r.title}: {r.content[:200]}" for r in research)
    insights = "\n".join(evaluated.supply_chain_insights)

    prompt = (
        f"{_company_header(aggregated)}\n"
        f"Industry: {profile.industry if profile else 'Unknown'}\n"
        f"Country: {profile.country if profile else 'Unknown'}\n"
        f"Description: {profile.description[:500] if profile and profile.description else 'N/A'}\n\n"
        "Supply Chain Insights from Risk Evaluation:\n"
        f"{insights or 'No specific insights available.'}\n\n"
        f"Risk Signals:\n{supply_signals or 'No supply chain risk signals.'}\n\n"
        f"Web Research:\n{research_lines or 'No web research data.'}\n\n"
        "Generate a realistic supply chain dependency tree with tier 2 and tier 3 suppliers."
    )
    output = await reasoning.generate_structured(
        system=get_system_prompt("dependency_tree"),
        prompt=prompt,
        schema=DependencyTreeOutput,
    )
    logger.info(
        f"dependency_tree({aggregated.company.ticker}): "
        f"{len(output.tier2_suppliers)} tier 2 suppliers"
    )
    return assemble_dependency_tree(vendor_id, output.tier2_suppliers, output.concentration_risks)


def build_fallback_dependencies(
    vendor_id: str, aggregated: AggregatedCompanyData
) -> DependencyResponse:
    """Static three-supplier skeleton seeded from the company's sector and country."""
    profile = aggregated.profile.data if aggregated.profile.success else None
    sector = profile.sector if profile else "Unknown"
    country = profile.country if profile else "US"

    tier2 = [
        Tier2SupplierOutput(
            name=f"{sector} Component Supplier A",
            sector="Components",
            country=country,
            risk_level="Moderate",
            criticality="High",
            dependency_type="Component",
            tier3_suppliers=[
                SupplierOutput(
                    name="Raw Material Provider A",
                    sector="Raw Materials",
                    country="China",
                    risk_level="Moderate",
                    criticality="Moderate",
                    dependency_type="Raw Material",
                )
            ],
        ),
        Tier2SupplierOutput(
            name=f"{sector} Service Provider B",
            sector="Services",
            country="United States",
            risk_level="Low",
            criticality="Moderate",
            dependency_type="Service",
            tier3_suppliers=[
                SupplierOutput(
                    name="Cloud Infrastructure Provider",
                    sector="Technology",
                    country="United States",
                    risk_level="Low",
                    criticality="High",
                    dependency_type="Service",
                )
            ],
        ),
        Tier2SupplierOutput(
            name="Logistics Partner C",
            sector="Transportation",
            country="Germany",
            risk_level="Low",
            criticality="Moderate",
            dependency_type="Logistics",
        ),
    ]
    concentration = [
        ConcentrationRisk(
            label="Limited data availability",
            severity="Moderate",
            description=(
                "Dependency analysis is limited due to unavailable LLM evaluation. "
                "Data shown is estimated based on industry norms."
            ),
        )
    ]
    return assemble_dependency_tree(vendor_id, tier2, concentration)


# Comparison


async def generate_comparison(
    vendors: list[VendorAnalysisResult],
    reasoning: ReasoningService,
) -> ComparisonResponse:
    """Ask the reasoning service to pick the best vendor; vendors keep request order."""
    blocks = []
    for i, v in enumerate(vendors):
        categories = ", ".join(
            f"{cs.label}: {cs.risk_score}/100" for cs in v.scores.category_scores
        )
        summary = v.evaluated.evaluation_summary if v.evaluated else "No evaluation available."
        blocks.append(
            f"Vendor {i}: {v.vendor_name} ({v.vendor_id})\n"
            f"  Overall Risk: {v.scores.overall_risk_score}/100 | "
            f"Resilience: {v.scores.overall_resilience_score}/100\n"
            f"  {categories}\n"
            f"  Summary: {summary}"
        )
    prompt = (
        "Compare these vendors and recommend the best one:\n\n"
        + "\n\n".join(blocks)
        + "\n\nRecommend the vendor with the lowest aggregate risk and strongest "
        "resilience. Provide specific, data-backed reasons."
    )
    output = await reasoning.generate_structured(
        system=get_system_prompt("comparison"),
        prompt=prompt,
        schema=ComparisonOutput,
    )
    winner = vendors[max(0, min(output.winner_index, len(vendors) - 1))]
    return ComparisonResponse(
        recommendation=Recommendation(
            winner_vendor_id=winner.vendor_id,
            winner_vendor_name=winner.vendor_name,
            confidence=output.confidence,
            summary=output.summary,
            reasons=output.reasons,
        ),
        vendors=[build_compared_vendor(v.vendor_id, v.vendor_name, v.scores) for v in vendors],
    )


def build_fallback_comparison(vendors: list[VendorAnalysisResult]) -> ComparisonResponse:
    """Lowest overall risk wins; ties go to the earliest vendor in request order."""
    winner = min(vendors, key=lambda v: v.scores.overall_risk_score)
    scores = winner.scores
    avg_risk = round_half_up(
        sum(v.scores.overall_risk_score for v in vendors) / len(vendors)
    )

    reasons = [
        f"Lowest overall risk score: {scores.overall_risk_score}/100 "
        f"vs peer average of {avg_risk}/100",
        f"Resilience score of {scores.overall_resilience_score}/100 ({scores.resilience_rating})",
    ]
    reasons += [
        f"Strong {cs.label.lower()} profile with risk score of {cs.risk_score}/100"
        for cs in scores.category_scores
        if cs.risk_score < 50
    ][:2]

    return ComparisonResponse(
        recommendation=Recommendation(
            winner_vendor_id=winner.vendor_id,
            winner_vendor_name=winner.vendor_name,
            confidence="High" if scores.overall_risk_score < avg_risk - 10 else "Moderate",
            summary=(
                f"{winner.vendor_name} presents the lowest aggregate risk score "
                f"({scores.overall_risk_score}/100) with a resilience rating of "
                f"{scores.resilience_rating}."
            ),
            reasons=reasons[:5],
        ),
        vendors=[build_compared_vendor(v.vendor_id, v.vendor_name, v.scores) for v in vendors],
    )
