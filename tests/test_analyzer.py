"""End-to-end pipeline tests with providers and resolution patched out."""

import asyncio
import random
from unittest.mock import AsyncMock, patch

from vendor_risk_mcp.models import AggregatedCompanyData, CompanyIdentifier
from vendor_risk_mcp.pipeline.analyzer import research_companies, run_vendor_pipeline
from vendor_risk_mcp.reasoning import ReasoningError

MODULE = "vendor_risk_mcp.pipeline.analyzer"

EVALUATION_REPLY = {
    "risk_signals": [
        {"category": "financial", "signal": "Leverage", "severity": "high"},
        {"category": "safety", "signal": "OSHA citations", "severity": "critical"},
    ],
    "recommended_for_model": True,
    "evaluation_summary": "Leverage and safety drive risk.",
}


def _tier2(name: str, criticality: str = "Moderate") -> dict:
    """Tier 2 supplier with one tier 3 supplier, all in Japan."""
    supplier = {
        "sector": "Metals",
        "country": "Japan",
        "risk_level": "Moderate",
        "dependency_type": "Raw Material",
    }
    return {
        **supplier,
        "name": name,
        "criticality": criticality,
        "tier3_suppliers": [{**supplier, "name": f"{name} Ore", "criticality": "Low"}],
    }


class TestRunVendorPipeline:
    """Tests for run_vendor_pipeline."""

    def test_without_reasoning(
        self, company: CompanyIdentifier, aggregated_full: AggregatedCompanyData, fake_reasoning
    ) -> None:
        """Every reasoning pass fails; the run still completes on data alone."""
        with (
            patch(f"{MODULE}.resolve_vendor", AsyncMock(return_value=company)),
            patch(f"{MODULE}.aggregate_company_data", AsyncMock(return_value=aggregated_full)),
        ):
            result = asyncio.run(
                run_vendor_pipeline(
                    "vnd_abc12345", "Acme", reasoning=fake_reasoning, rng=random.Random(0)
                )
            )

        assert result.ticker == "ACME"
        assert result.evaluated is None
        assert result.dependencies.concentration_risks[0].label == "Limited data availability"
        assert result.overview.vendor_id == "vnd_abc12345"
        assert len(result.overview.risk_trend_12m) == 12
        # altman 3.5 -> 15, d/e 2.5 -> 75, current 1.8 -> 25, roe 0.15 -> 25,
        # price change 3.2% -> 35, volatility ~0 -> 15; mean 31.7 blended with 50
        assert result.scores.category("financial").risk_score == 39
        assert all(c.sub_categories for c in result.risk_breakdown.categories)
        assert [c["schema"] for c in fake_reasoning.calls] == ["EvaluationOutput"]

    def test_with_reasoning(
        self,
        company: CompanyIdentifier,
        aggregated_full: AggregatedCompanyData,
        make_reasoning,
    ) -> None:
        """Narrative failures fall back independently of the evaluation."""
        reasoning = make_reasoning(
            {
                "EvaluationOutput": EVALUATION_REPLY,
                "CategoryDescriptionsOutput": ReasoningError("schema mismatch"),
                "DependencyTreeOutput": {
                    "concentration_risks": [],
                    "tier2_suppliers": [
                        _tier2("Steel Mill", "Critical"),
                        _tier2("Bearing Works"),
                        _tier2("Hydraulics Co"),
                    ],
                },
            }
        )
        with (
            patch(f"{MODULE}.resolve_vendor", AsyncMock(return_value=company)),
            patch(f"{MODULE}.aggregate_company_data", AsyncMock(return_value=aggregated_full)),
        ):
            result = asyncio.run(
                run_vendor_pipeline(
                    "vnd_abc12345", "Acme", reasoning=reasoning, rng=random.Random(0)
                )
            )

        assert result.evaluated is not None
        assert len(result.evaluated.risk_signals) == 2
        assert result.dependencies.tier2_suppliers[0].id == "n_001"
        assert result.dependencies.summary.critical_dependency_count == 1
        assert result.dependencies.tier2_suppliers[1].id == "n_003"
        assert result.dependencies.summary.tier3_count == 3
        breakdown = {c.id: c for c in result.risk_breakdown.categories}
        assert breakdown["financial"].description.startswith("Financial risk assessment")
        assert "financial_risk_signal_count" in result.partitioned.as_mapping("financial")

    def test_out_of_shape_tree_uses_fallback(
        self,
        company: CompanyIdentifier,
        aggregated_full: AggregatedCompanyData,
        make_reasoning,
    ) -> None:
        """A single-supplier tree is rejected and the static tree is served."""
        reasoning = make_reasoning(
            {
                "EvaluationOutput": EVALUATION_REPLY,
                "DependencyTreeOutput": {
                    "concentration_risks": [],
                    "tier2_suppliers": [_tier2("Steel Mill", "Critical")],
                },
            }
        )
        with (
            patch(f"{MODULE}.resolve_vendor", AsyncMock(return_value=company)),
            patch(f"{MODULE}.aggregate_company_data", AsyncMock(return_value=aggregated_full)),
        ):
            result = asyncio.run(
                run_vendor_pipeline(
                    "vnd_abc12345", "Acme", reasoning=reasoning, rng=random.Random(0)
                )
            )

        deps = result.dependencies
        assert deps.concentration_risks[0].label == "Limited data availability"
        assert [t2.name for t2 in deps.tier2_suppliers][-1] == "Logistics Partner C"
        assert deps.summary.tier2_count == 3


class TestResearchCompanies:
    """Tests for the batch research pipeline."""

    def test_aggregate_only(
        self, aggregated_full: AggregatedCompanyData, fake_reasoning
    ) -> None:
        with patch(f"{MODULE}.aggregate_batch", AsyncMock(return_value=[aggregated_full])):
            body = asyncio.run(
                research_companies([aggregated_full.company], True, fake_reasoning)
            )

        assert body["status"] == "success"
        assert body["pipeline"] == "aggregate-only"
        assert body["results"][0]["company"]["ticker"] == "ACME"
        assert "aggregated_data" not in body
        assert body["model_variables"][0]["industry"] == "Industrials"
        assert fake_reasoning.calls == []

    def test_failed_evaluation_is_null(
        self, aggregated_full: AggregatedCompanyData, make_aggregated, make_reasoning
    ) -> None:
        reasoning = make_reasoning({"EvaluationOutput": EVALUATION_REPLY})
        calls = {"n": 0}
        inner = reasoning.generate_structured

        async def flaky(**kwargs):
            calls["n"] += 1
            if calls["n"] == 2:
                raise ReasoningError("rate limited")
            return await inner(**kwargs)

        reasoning.generate_structured = flaky
        batch = [aggregated_full, make_aggregated()]
        with patch(f"{MODULE}.aggregate_batch", AsyncMock(return_value=batch)):
            body = asyncio.run(
                research_companies([a.company for a in batch], False, reasoning)
            )

        assert body["pipeline"] == "aggregate-and-evaluate"
        assert body["results"][0]["evaluation_summary"] == "Leverage and safety drive risk."
        assert body["results"][1] is None
        assert len(body["aggregated_data"]) == 2
        variables = body["model_variables"]
        assert any(
            v["name"] == "safety_risk_signal_count" for v in variables[0]["ethical"]
        )
        assert variables[1]["ethical"] == []
