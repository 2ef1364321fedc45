"""Vendor risk pipeline stages: aggregate, evaluate, partition, score, build."""

from vendor_risk_mcp.pipeline.aggregator import aggregate_batch, aggregate_company_data
from vendor_risk_mcp.pipeline.analyzer import (
    compare_vendor_results,
    research_companies,
    run_vendor_pipeline,
)
from vendor_risk_mcp.pipeline.evaluator import (
    evaluate_batch,
    evaluate_company_data,
    evaluate_or_none,
)
from vendor_risk_mcp.pipeline.partitioner import (
    partition_batch,
    partition_variables,
    resolve_industry,
)
from vendor_risk_mcp.pipeline.resolver import ResolutionError, resolve_vendor
from vendor_risk_mcp.pipeline.scorer import (
    compute_risk_scores,
    resilience_rating_from_score,
    risk_level_from_score,
)

__all__ = [
    # Stages
    "aggregate_batch",
    "aggregate_company_data",
    "evaluate_batch",
    "evaluate_company_data",
    "evaluate_or_none",
    "partition_batch",
    "partition_variables",
    "resolve_industry",
    "compute_risk_scores",
    "resilience_rating_from_score",
    "risk_level_from_score",
    # Resolution
    "ResolutionError",
    "resolve_vendor",
    # Orchestration
    "compare_vendor_results",
    "research_companies",
    "run_vendor_pipeline",
]
