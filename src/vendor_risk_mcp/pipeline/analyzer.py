"""End-to-end vendor analysis pipeline and the batch research pipeline."""

import logging
import random
from time import perf_counter
from typing import Any

from vendor_risk_mcp.models import (
    CompanyIdentifier,
    ComparisonResponse,
    DependencyResponse,
    VendorAnalysisResult,
)
from vendor_risk_mcp.pipeline.aggregator import aggregate_batch, aggregate_company_data
from vendor_risk_mcp.pipeline.builders import (
    build_overview_response,
    build_risk_breakdown_response,
)
from vendor_risk_mcp.pipeline.evaluator import evaluate_batch, evaluate_or_none
from vendor_risk_mcp.pipeline.generators import (
    Narratives,
    build_fallback_category_descriptions,
    build_fallback_comparison,
    build_fallback_dependencies,
    generate_category_descriptions,
    generate_comparison,
    generate_dependency_tree,
)
from vendor_risk_mcp.pipeline.partitioner import partition_batch, partition_variables
from vendor_risk_mcp.pipeline.resolver import resolve_vendor
from vendor_risk_mcp.pipeline.scorer import compute_risk_scores
from vendor_risk_mcp.reasoning import ReasoningError, ReasoningService

logger = logging.getLogger(__name__)


async def run_vendor_pipeline(
    vendor_id: str,
    vendor_name: str,
    *,
    reasoning: ReasoningService,
    rng: random.Random | None = None,
) -> VendorAnalysisResult:
    """
    Resolve, aggregate, evaluate, partition, score and build every tab.

    Only resolution is fatal. Evaluation and both narrative passes fall
    back to deterministic output when the reasoning service fails.

    Raises:
        ResolutionError: If the vendor name cannot be resolved to a ticker
    """
    rng = rng or random.Random()
    start = perf_counter()

    company = await resolve_vendor(vendor_name, reasoning)
    ticker = company.ticker

    aggregated = await aggregate_company_data(company)
    evaluated = await evaluate_or_none(aggregated, reasoning)

    partitioned = partition_variables(aggregated, evaluated)
    scores = compute_risk_scores(partitioned, evaluated, rng=rng)
    logger.info(
        f"pipeline({vendor_id}, {ticker}): overall risk {scores.overall_risk_score} "
        f"({scores.overall_risk_level})"
    )

    overview = build_overview_response(vendor_id, vendor_name, aggregated, scores, rng=rng)

    narratives: Narratives | None = None
    if evaluated is not None:
        try:
            narratives = await generate_category_descriptions(
                aggregated, evaluated, scores, reasoning
            )
        except ReasoningError as e:
            logger.warning(f"pipeline({vendor_id}): category descriptions fell back: {e}")
    if narratives is None:
        narratives = build_fallback_category_descriptions(scores, rng=rng)
    risk_breakdown = build_risk_breakdown_response(vendor_id, scores, narratives)

    dependencies: DependencyResponse | None = None
    if evaluated is not None:
        try:
            dependencies = await generate_dependency_tree(
                vendor_id, aggregated, evaluated, reasoning
            )
        except ReasoningError as e:
            logger.warning(f"pipeline({vendor_id}): dependency tree fell back: {e}")
    if dependencies is None:
        dependencies = build_fallback_dependencies(vendor_id, aggregated)

    logger.info(f"pipeline({vendor_id}, {ticker}): complete in {perf_counter() - start:.1f}s")
    return VendorAnalysisResult(
        vendor_id=vendor_id,
        vendor_name=vendor_name,
        ticker=ticker,
        aggregated=aggregated,
        evaluated=evaluated,
        partitioned=partitioned,
        scores=scores,
        overview=overview,
        dependencies=dependencies,
        risk_breakdown=risk_breakdown,
    )


async def compare_vendor_results(
    vendors: list[VendorAnalysisResult],
    reasoning: ReasoningService,
) -> ComparisonResponse:
    """Reasoning-backed comparison, or the lowest-risk fallback on failure."""
    try:
        return await generate_comparison(vendors, reasoning)
    except ReasoningError as e:
        logger.warning(f"compare: reasoning failed, using fallback: {e}")
    return build_fallback_comparison(vendors)


async def research_companies(
    companies: list[CompanyIdentifier],
    skip_evaluation: bool,
    reasoning: ReasoningService,
) -> dict[str, Any]:
    """
    Batch research for downstream quantitative models.

    Companies are aggregated in parallel and evaluated one at a time. A
    company whose evaluation fails appears as null in `results` and is
    partitioned without evaluation variables.
    """
    aggregated = await aggregate_batch(companies)

    if skip_evaluation:
        return {
            "status": "success",
            "pipeline": "aggregate-only",
            "results": [a.model_dump(mode="json") for a in aggregated],
            "model_variables": [
                p.model_dump(mode="json") for p in partition_batch(aggregated)
            ],
        }

    evaluated = await evaluate_batch(aggregated, reasoning)

    return {
        "status": "success",
        "pipeline": "aggregate-and-evaluate",
        "results": [e.model_dump(mode="json") if e else None for e in evaluated],
        "aggregated_data": [a.model_dump(mode="json") for a in aggregated],
        "model_variables": [
            p.model_dump(mode="json") for p in partition_batch(aggregated, evaluated)
        ],
    }
