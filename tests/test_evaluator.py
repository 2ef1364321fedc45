"""Tests for the evaluation pass."""

import asyncio
import logging

import pytest

from vendor_risk_mcp.models import AggregatedCompanyData
from vendor_risk_mcp.pipeline.evaluator import (
    build_data_snapshot,
    evaluate_batch,
    evaluate_company_data,
    evaluate_or_none,
    format_number,
)
from vendor_risk_mcp.reasoning import ReasoningError, ReasoningUnavailableError

EVALUATION_REPLY = {
    "risk_signals": [
        {"category": "supply_chain", "signal": "Supplier shortage", "severity": "high"},
        {"category": "macro", "signal": "Oil volatility", "severity": "low"},
    ],
    "relevant_financials": {"debt_to_equity": 2.5},
    "relevant_news_urls": ["https://news.example.com/acme-shortage", "https://unknown"],
    "supply_chain_insights": ["Single foundry for castings"],
    "recommended_for_model": True,
    "evaluation_summary": "Elevated supply chain risk.",
}


class TestFormatNumber:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, "N/A"),
            (2.5e12, "2.50T"),
            (30e9, "30.00B"),
            (-4_200_000, "-4.20M"),
            (15_500, "15.5K"),
            (999, "999.00"),
        ],
    )
    def test_format(self, value: float | None, expected: str) -> None:
        assert format_number(value) == expected


class TestDataSnapshot:
    """Tests for build_data_snapshot."""

    def test_sections(self, aggregated_full: AggregatedCompanyData) -> None:
        snapshot = build_data_snapshot(aggregated_full)

        assert "## Company Profile" in snapshot
        assert "- Market Cap: $30.00B" in snapshot
        assert "- Employees: 12000" in snapshot
        assert "Change: -3.20%" in snapshot
        assert "- Altman Z-Score: 3.5" in snapshot
        assert "- Piotroski Score: N/A" in snapshot
        assert "## Environmental Violations (4 facilities)" in snapshot
        assert "- Total Penalties: $25.0K" in snapshot
        assert "## OSHA Inspections (2 total)" in snapshot
        # empty filing list is omitted
        assert "SEC Filings" not in snapshot

    def test_failures_listed(self, aggregated_full: AggregatedCompanyData) -> None:
        snapshot = build_data_snapshot(aggregated_full)

        assert "## Data Source Failures" in snapshot
        assert "- web_research: firecrawl:research unavailable" in snapshot
        assert "- stock_quote:" not in snapshot

    def test_all_failed(self, make_aggregated) -> None:
        snapshot = build_data_snapshot(make_aggregated())

        assert snapshot.startswith("## Data Source Failures")
        assert snapshot.count("\n- ") == 13


class TestEvaluate:
    """Tests for evaluate_company_data and its degrading wrapper."""

    def test_maps_reply(self, aggregated_full: AggregatedCompanyData, make_reasoning) -> None:
        reasoning = make_reasoning({"EvaluationOutput": EVALUATION_REPLY})

        result = asyncio.run(evaluate_company_data(aggregated_full, reasoning))

        assert result.company.ticker == "ACME"
        assert [s.severity for s in result.risk_signals] == ["high", "low"]
        assert [a.url for a in result.relevant_news] == [
            "https://news.example.com/acme-shortage"
        ]
        assert result.recommended_for_model is True
        call = reasoning.calls[0]
        assert "ACME (Acme Corp)" in call["prompt"]
        assert "## Company Profile" in call["prompt"]

    def test_error_propagates(self, aggregated_full: AggregatedCompanyData, make_reasoning) -> None:
        reasoning = make_reasoning({"EvaluationOutput": ReasoningError("bad JSON")})
        with pytest.raises(ReasoningError):
            asyncio.run(evaluate_company_data(aggregated_full, reasoning))

    def test_or_none_degrades(
        self,
        aggregated_full: AggregatedCompanyData,
        make_reasoning,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        reasoning = make_reasoning(
            {"EvaluationOutput": ReasoningUnavailableError("OPENAI_API_KEY is not set")}
        )
        with caplog.at_level(logging.WARNING):
            result = asyncio.run(evaluate_or_none(aggregated_full, reasoning))

        assert result is None
        assert "continuing with data-only scoring" in caplog.text

    def test_batch_keeps_positions(
        self, aggregated_full: AggregatedCompanyData, make_reasoning
    ) -> None:
        class Flaky:
            def __init__(self):
                self.inner = make_reasoning({"EvaluationOutput": EVALUATION_REPLY})
                self.count = 0

            async def generate_structured(self, *, system, prompt, schema):
                self.count += 1
                if self.count == 2:
                    raise ReasoningError("rate limited")
                return await self.inner.generate_structured(
                    system=system, prompt=prompt, schema=schema
                )

        results = asyncio.run(
            evaluate_batch([aggregated_full, aggregated_full, aggregated_full], Flaky())
        )

        assert results[0] is not None
        assert results[1] is None
        assert results[2] is not None
