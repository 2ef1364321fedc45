"""Deterministic risk scoring.

Known benchmark variables map to 0-100 risk contributions through fixed
step functions; evaluation signal severities supply a second, qualitative
contribution. The only randomness is the resilience jitter, drawn from an
injectable random.Random.
"""

import math
import random
from collections.abc import Callable

from vendor_risk_mcp.models import (
    VARIABLE_CATEGORIES,
    CategoryRiskScore,
    EvaluatedData,
    PartitionedVariables,
    ResilienceFactor,
    RiskDistributionSlice,
    RiskScoreResult,
    VariableCategory,
)

RiskFn = Callable[[float], float]

CATEGORY_WEIGHTS: dict[VariableCategory, float] = {
    "financial": 0.35,
    "operational": 0.25,
    "geographical": 0.20,
    "ethical": 0.20,
}

CATEGORY_LABELS: dict[VariableCategory, str] = {
    "financial": "Financial",
    "operational": "Operational",
    "geographical": "Geopolitical",
    "ethical": "Regulatory & Ethical",
}

# Evaluation signal categories feeding each scoring category
EVALUATION_CATEGORY_FILTER: dict[VariableCategory, tuple[str, ...]] = {
    "financial": ("financial", "macro"),
    "operational": ("supply_chain",),
    "geographical": ("supply_chain", "macro"),
    "ethical": ("regulatory", "litigation", "environmental", "safety"),
}

SEVERITY_WEIGHTS = {"low": 10, "medium": 30, "high": 60, "critical": 90}
DEFAULT_SEVERITY_WEIGHT = 30

NO_EVALUATION_RISK = 50
NO_SIGNAL_RISK = 35

BENCHMARK_WEIGHT = 0.6
EVALUATION_WEIGHT = 0.4

RESILIENCE_JITTER = 4.0


def round_half_up(value: float) -> int:
    """Round halves toward +inf; Python's round() rounds halves to even."""
    return math.floor(value + 0.5)


def clamp_score(value: float) -> int:
    """Round and clamp to an integer score in [0, 100]."""
    return max(0, min(100, round_half_up(value)))


def _above(*steps: tuple[float, float], otherwise: float) -> RiskFn:
    """Step function: first (threshold, risk) with value > threshold wins."""

    def fn(v: float) -> float:
        for threshold, risk in steps:
            if v > threshold:
                return risk
        return otherwise

    return fn


def _below(*steps: tuple[float, float], otherwise: float) -> RiskFn:
    """Step function: first (threshold, risk) with value < threshold wins."""

    def fn(v: float) -> float:
        for threshold, risk in steps:
            if v < threshold:
                return risk
        return otherwise

    return fn


def _zero_then_below(zero_risk: float, *steps: tuple[float, float], otherwise: float) -> RiskFn:
    below = _below(*steps, otherwise=otherwise)

    def fn(v: float) -> float:
        return zero_risk if v == 0 else below(v)

    return fn


def _scaled(factor: float) -> RiskFn:
    return lambda v: min(100.0, v * factor)


BENCHMARKS: dict[VariableCategory, dict[str, RiskFn]] = {
    "financial": {
        "altman_z_score": _above((2.99, 15), (1.81, 50), otherwise=85),
        "piotroski_score": lambda v: max(0.0, min(100.0, (9 - v) * 11)),
        "debt_to_equity": _below((0.5, 15), (1.0, 30), (2.0, 55), (3.0, 75), otherwise=90),
        "current_ratio": _above((2.0, 10), (1.5, 25), (1.0, 50), otherwise=80),
        "quick_ratio": _above((1.5, 10), (1.0, 30), (0.5, 60), otherwise=85),
        "annualized_volatility": _below((0.2, 15), (0.35, 35), (0.5, 60), otherwise=85),
        "return_on_equity": _above((0.2, 10), (0.1, 25), (0.0, 45), otherwise=80),
        "return_on_assets": _above((0.1, 10), (0.05, 30), (0.0, 50), otherwise=80),
        "price_change_pct": lambda v: _below(
            (2, 15), (5, 35), (10, 60), otherwise=80
        )(abs(v)),
    },
    "operational": {
        "supply_chain_risk_severity_score": _scaled(20),
        "supply_chain_risk_signal_count": _scaled(15),
        # GSCPI: 0 is average, positive means pressure
        "global_supply_chain_pressure_index": _below(
            (-0.5, 15), (0.5, 35), (1.5, 60), otherwise=85
        ),
        # above 50 means slower deliveries
        "ism_supplier_deliveries_index": _below((50, 20), (55, 40), (60, 65), otherwise=85),
    },
    "geographical": {
        "geographic_concentration_ratio": _below(
            (0.3, 15), (0.5, 35), (0.7, 60), otherwise=85
        ),
        "facility_state_count": _above((10, 15), (5, 30), (2, 50), otherwise=75),
    },
    "ethical": {
        "environmental_violation_count": _zero_then_below(
            10, (3, 35), (10, 60), otherwise=85
        ),
        "environmental_total_penalties": _zero_then_below(
            10, (50_000, 30), (500_000, 55), (5_000_000, 75), otherwise=90
        ),
        "regulatory_risk_severity_score": _scaled(18),
        "litigation_risk_severity_score": _scaled(18),
        "environmental_risk_severity_score": _scaled(18),
        "safety_risk_severity_score": _scaled(18),
    },
}


def risk_level_from_score(score: float) -> str:
    if score < 30:
        return "Low"
    if score < 55:
        return "Moderate"
    if score < 75:
        return "High"
    return "Critical"


def resilience_rating_from_score(score: float) -> str:
    if score < 30:
        return "Poor"
    if score < 55:
        return "Moderate"
    if score < 75:
        return "Strong"
    return "Excellent"


def compute_evaluation_risk(
    evaluated: EvaluatedData | None, category: VariableCategory
) -> int:
    """
    Qualitative risk for one category from evaluation signals.

    50 when no evaluation exists, 35 when it has no matching signals,
    otherwise min(100, round(mean severity weight + 3 per signal)).
    """
    if evaluated is None:
        return NO_EVALUATION_RISK

    wanted = EVALUATION_CATEGORY_FILTER[category]
    signals = [s for s in evaluated.risk_signals if s.category in wanted]
    if not signals:
        return NO_SIGNAL_RISK

    mean_weight = sum(
        SEVERITY_WEIGHTS.get(s.severity, DEFAULT_SEVERITY_WEIGHT) for s in signals
    ) / len(signals)
    return min(100, round_half_up(mean_weight + len(signals) * 3))


def benchmark_risks(variables: dict[str, float], category: VariableCategory) -> list[float]:
    """Risk contribution of every benchmark variable present for `category`."""
    return [
        fn(variables[name])
        for name, fn in BENCHMARKS[category].items()
        if name in variables
    ]


def score_category(
    variables: dict[str, float],
    category: VariableCategory,
    evaluation_risk: int,
) -> int:
    """Blend benchmark average (60%) with evaluation risk (40%)."""
    risks = benchmark_risks(variables, category)
    if not risks:
        return evaluation_risk
    average = sum(risks) / len(risks)
    return clamp_score(average * BENCHMARK_WEIGHT + evaluation_risk * EVALUATION_WEIGHT)


def compute_risk_distribution(
    category_scores: list[CategoryRiskScore],
) -> list[RiskDistributionSlice]:
    """Share of summed category risk, one decimal; an equal split when the sum is zero."""
    total = sum(s.risk_score for s in category_scores)
    return [
        RiskDistributionSlice(
            label=s.label,
            percentage=round_half_up(s.risk_score / total * 1000) / 10 if total > 0 else 25.0,
        )
        for s in category_scores
    ]


def compute_risk_scores(
    partitioned: PartitionedVariables,
    evaluated: EvaluatedData | None,
    rng: random.Random | None = None,
) -> RiskScoreResult:
    """
    Score all four categories and derive overall risk and resilience.

    Args:
        partitioned: Category-tagged variables for one company
        evaluated: Evaluation output, or None when unavailable
        rng: Source of resilience jitter; seeded instances give exact results
    """
    rng = rng or random.Random()

    category_scores = []
    for category in VARIABLE_CATEGORIES:
        evaluation_risk = compute_evaluation_risk(evaluated, category)
        risk = score_category(partitioned.as_mapping(category), category, evaluation_risk)
        resilience = clamp_score(
            100 - risk + rng.uniform(-RESILIENCE_JITTER, RESILIENCE_JITTER)
        )
        category_scores.append(
            CategoryRiskScore(
                category=category,
                label=CATEGORY_LABELS[category],
                risk_score=risk,
                resilience_score=resilience,
                risk_level=risk_level_from_score(risk),
            )
        )

    overall_risk = clamp_score(
        sum(s.risk_score * CATEGORY_WEIGHTS[s.category] for s in category_scores)
    )
    overall_resilience = clamp_score(
        sum(s.resilience_score * CATEGORY_WEIGHTS[s.category] for s in category_scores)
    )

    risk_distribution = compute_risk_distribution(category_scores)

    by_category = {s.category: s for s in category_scores}
    resilience_factors = [
        ResilienceFactor(
            label="Geographic Diversification",
            score=by_category["geographical"].resilience_score,
        ),
        ResilienceFactor(
            label="Financial Stability", score=by_category["financial"].resilience_score
        ),
        ResilienceFactor(
            label="Operational Redundancy",
            score=by_category["operational"].resilience_score,
        ),
    ]

    return RiskScoreResult(
        overall_risk_score=overall_risk,
        overall_risk_level=risk_level_from_score(overall_risk),
        overall_resilience_score=overall_resilience,
        resilience_rating=resilience_rating_from_score(overall_resilience),
        category_scores=category_scores,
        risk_distribution=risk_distribution,
        resilience_factors=resilience_factors,
    )
