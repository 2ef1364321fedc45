"""Qualitative evaluation pass over aggregated company data."""

import logging
from typing import Any

from pydantic import BaseModel, Field

from vendor_risk_mcp.models import (
    AggregatedCompanyData,
    EvaluatedData,
    NewsArticle,
    RiskSignal,
)
from vendor_risk_mcp.prompts.templates import get_system_prompt
from vendor_risk_mcp.reasoning import ReasoningError, ReasoningService
from vendor_risk_mcp.utils.sanitize import truncate

logger = logging.getLogger(__name__)


class EvaluationOutput(BaseModel):
    """Structured reply requested from the reasoning service."""

    risk_signals: list[RiskSignal] = Field(
        description="Risk signals; category is one of financial, supply_chain, "
        "regulatory, litigation, environmental, safety, macro"
    )
    relevant_financials: dict[str, Any] = Field(
        default_factory=dict, description="Key financial metrics worth modeling"
    )
    relevant_news_urls: list[str] = Field(
        default_factory=list, description="URLs of the most relevant news articles"
    )
    supply_chain_insights: list[str] = Field(
        default_factory=list,
        description="Insights about tier 2/3 supply chain structure and risk",
    )
    recommended_for_model: bool = Field(
        description="Whether this company's data should be passed to the quantitative model"
    )
    evaluation_summary: str = Field(description="2-3 sentence summary of overall risk posture")


def format_number(n: float | None) -> str:
    """Compact money/volume formatting: T/B/M with 2 decimals, K with 1."""
    if n is None:
        return "N/A"
    magnitude = abs(n)
    if magnitude >= 1e12:
        return f"{n / 1e12:.2f}T"
    if magnitude >= 1e9:
        return f"{n / 1e9:.2f}B"
    if magnitude >= 1e6:
        return f"{n / 1e6:.2f}M"
    if magnitude >= 1e3:
        return f"{n / 1e3:.1f}K"
    return f"{n:.2f}"


def _na(value: Any) -> Any:
    return "N/A" if value is None else value


def _percent(ratio: float | None) -> str:
    return "N/A" if ratio is None else f"{ratio * 100:.1f}%"


def build_data_snapshot(data: AggregatedCompanyData) -> str:
    """Serialize aggregated data into the compact text the evaluator reads."""
    sections: list[str] = []

    if data.profile.success:
        p = data.profile.data
        sections.append(
            "## Company Profile\n"
            f"- Name: {p.company_name}\n"
            f"- Sector: {p.sector} | Industry: {p.industry}\n"
            f"- Country: {p.country} | Exchange: {p.exchange}\n"
            f"- Market Cap: ${format_number(p.market_cap)}\n"
            f"- Employees: {_na(p.employees and int(p.employees))}\n"
            f"- Description: {p.description[:500]}"
        )

    if data.stock_quote.success:
        q = data.stock_quote.data
        change = "N/A" if q.change_percent is None else f"{q.change_percent:.2f}"
        sections.append(
            "## Current Stock\n"
            f"- Price: ${q.price:.2f} | Change: {change}%\n"
            f"- Volume: {format_number(q.volume)} | P/E: {_na(q.pe)}"
        )

    if data.financial_health.success:
        h = data.financial_health.data
        sections.append(
            "## Financial Health\n"
            f"- Altman Z-Score: {_na(h.altman_z_score)} (>2.99 safe, <1.81 distress)\n"
            f"- Piotroski Score: {_na(h.piotroski_score)} (0-9, higher is healthier)\n"
            f"- Debt/Equity: {_na(h.debt_to_equity)}\n"
            f"- Current Ratio: {_na(h.current_ratio)}\n"
            f"- ROE: {_na(h.return_on_equity)} | ROA: {_na(h.return_on_assets)}"
        )

    if data.income_statements.success and data.income_statements.data:
        stmts = data.income_statements.data[:4]
        lines = "\n".join(
            f"- {s.date}: Revenue ${format_number(s.revenue)} | "
            f"Net Income ${format_number(s.net_income)} | Margin {_percent(s.net_income_ratio)}"
            for s in stmts
        )
        sections.append(f"## Income Statements (Last {len(stmts)} Quarters)\n{lines}")

    if data.balance_sheets.success and data.balance_sheets.data:
        bs = data.balance_sheets.data[0]
        current_ratio = (
            f"{bs.total_current_assets / bs.total_current_liabilities:.2f}"
            if bs.total_current_assets is not None and bs.total_current_liabilities
            else "N/A"
        )
        sections.append(
            f"## Latest Balance Sheet ({bs.date})\n"
            f"- Total Assets: ${format_number(bs.total_assets)}\n"
            f"- Total Debt: ${format_number(bs.total_debt)} | Net Debt: ${format_number(bs.net_debt)}\n"
            f"- Cash: ${format_number(bs.cash_and_equivalents)}\n"
            f"- Current Ratio: {current_ratio}"
        )

    if data.sec_filings.success and data.sec_filings.data:
        filings = data.sec_filings.data
        lines = "\n".join(f"- {f.filing_date}: {f.form} - {f.description}" for f in filings[:5])
        sections.append(f"## Recent SEC Filings ({len(filings)} total)\n{lines}")

    if data.news.success and data.news.data:
        articles = data.news.data
        lines = []
        for a in articles[:10]:
            line = f"- [{a.published_at}] {a.title} ({a.source}) URL: {a.url}"
            if a.description:
                line += f"\n  {a.description[:200]}"
            lines.append(line)
        sections.append(f"## News Articles ({len(articles)} total)\n" + "\n".join(lines))

    if data.macro_indicators.success and data.macro_indicators.data:
        lines = []
        for m in data.macro_indicators.data:
            obs = m.observations
            latest = obs[0].value if obs else None
            line = f"- {m.series_name}: {_na(latest)} {m.units}"
            if obs:
                prior = obs[min(3, len(obs) - 1)]
                line += f" (was {_na(prior.value)} on {prior.date})"
            lines.append(line)
        sections.append("## Macro Indicators\n" + "\n".join(lines))

    if data.environmental_violations.success and data.environmental_violations.data:
        viols = data.environmental_violations.data
        total = sum(v.penalty_amount or 0.0 for v in viols)
        lines = "\n".join(
            f"- {v.facility_name} ({v.state}): {v.violation_type} | "
            f"Status: {v.compliance_status} | Penalty: ${format_number(v.penalty_amount or 0.0)}"
            for v in viols[:5]
        )
        sections.append(
            f"## Environmental Violations ({len(viols)} facilities)\n"
            f"- Total Penalties: ${format_number(total)}\n{lines}"
        )

    if data.osha_inspections.success and data.osha_inspections.data:
        insp = data.osha_inspections.data
        total = sum(i.penalty_amount for i in insp)
        lines = "\n".join(
            f"- {i.open_date}: {i.establishment_name} ({i.site_state}) | "
            f"Type: {_na(i.violation_type)} | Penalty: ${format_number(i.penalty_amount)}"
            for i in insp[:5]
        )
        sections.append(
            f"## OSHA Inspections ({len(insp)} total)\n"
            f"- Total Penalties: ${format_number(total)}\n{lines}"
        )

    if data.web_research.success and data.web_research.data:
        results = [item for wr in data.web_research.data for item in wr.results]
        lines = "\n".join(f"- {r.title}: {truncate(r.content, 300)}" for r in results[:5])
        sections.append(f"## Web Research ({len(results)} results)\n{lines}")

    failures = [
        f"- {name}: {result.error}"
        for name, result in data.source_results().items()
        if not result.success
    ]
    if failures:
        sections.append("## Data Source Failures\n" + "\n".join(failures))

    return "\n\n".join(sections)


def _relevant_news(data: AggregatedCompanyData, urls: list[str]) -> list[NewsArticle]:
    if not data.news.success:
        return []
    wanted = set(urls)
    return [a for a in data.news.data if a.url in wanted]


async def evaluate_company_data(
    aggregated: AggregatedCompanyData,
    reasoning: ReasoningService,
) -> EvaluatedData:
    """
    Run the evaluation pass for one company.

    Raises:
        ReasoningError: If the service is unavailable, fails, or returns
            a reply that does not match EvaluationOutput
    """
    company = aggregated.company
    prompt = (
        f"Evaluate the following aggregated data for {company.ticker} "
        f"({company.name or 'unknown company'}) and identify meaningful risk signals "
        f"for a supply chain risk model.\n\n{build_data_snapshot(aggregated)}"
    )
    output = await reasoning.generate_structured(
        system=get_system_prompt("evaluation"),
        prompt=prompt,
        schema=EvaluationOutput,
    )
    logger.info(
        f"evaluate({company.ticker}): {len(output.risk_signals)} signals, "
        f"recommended_for_model={output.recommended_for_model}"
    )
    return EvaluatedData(
        company=company,
        risk_signals=output.risk_signals,
        relevant_financials=output.relevant_financials,
        relevant_news=_relevant_news(aggregated, output.relevant_news_urls),
        supply_chain_insights=output.supply_chain_insights,
        recommended_for_model=output.recommended_for_model,
        evaluation_summary=output.evaluation_summary,
    )


async def evaluate_or_none(
    aggregated: AggregatedCompanyData,
    reasoning: ReasoningService,
) -> EvaluatedData | None:
    """Evaluation pass that degrades to None when the service fails."""
    try:
        return await evaluate_company_data(aggregated, reasoning)
    except ReasoningError as e:
        logger.warning(
            f"evaluate({aggregated.company.ticker}) failed, continuing with data-only scoring: {e}"
        )
        return None


async def evaluate_batch(
    batch: list[AggregatedCompanyData],
    reasoning: ReasoningService,
) -> list[EvaluatedData | None]:
    """
    Evaluate companies one at a time to stay inside the service's rate limit.

    A company whose evaluation fails is None in the returned list.
    """
    results = []
    for aggregated in batch:
        results.append(await evaluate_or_none(aggregated, reasoning))
    return results
