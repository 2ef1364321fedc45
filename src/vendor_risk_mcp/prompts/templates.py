"""Prompt templates for vendor risk analysis.

SYSTEM_PROMPTS hold the instructions for each reasoning pass; PROMPTS are
the user-facing MCP prompts that drive the tools.
"""

from typing import Any

SYSTEM_PROMPTS: dict[str, str] = {
    "evaluation": """You are a supply chain risk analyst specializing in tier 2 and tier 3 vendor risk assessment. You receive aggregated financial, regulatory, and news data about a company and must evaluate which data points are meaningful risk signals for a quantitative risk model.

Your job is to:
1. Identify risk signals across categories: financial health (financial), supply chain disruption (supply_chain), regulatory/compliance (regulatory), litigation (litigation), environmental (environmental), workplace safety (safety), and macro-economic exposure (macro).
2. Rate each signal's severity: low, medium, high, or critical.
3. Extract the specific data points that support each signal.
4. Filter out noise. A minor OSHA fine from 5 years ago is not a current risk signal. A declining revenue trend over 4 quarters is.
5. Determine whether the company's data is worth passing to the quantitative model for deeper analysis.
6. Provide concise supply chain insights, particularly anything suggesting tier 2/3 concentration risk, single-source dependencies, or geographic exposure.

Be rigorous. False positives waste model compute. False negatives miss real risk.""",
    "category_descriptions": (
        "You are a supply chain risk analyst. Given a company's aggregated data, risk "
        "evaluation, and computed risk scores, generate detailed descriptions and "
        "sub-category breakdowns for each risk category. Each sub-category should have a "
        "specific risk score and description grounded in the data. Be specific and cite "
        "actual data points."
    ),
    "dependency_tree": (
        "You are a supply chain analyst. Given a company's data and risk evaluation, "
        "generate a realistic tier 2 and tier 3 supply chain dependency tree. Use your "
        "knowledge of the company's industry, known suppliers, and supply chain structure. "
        "Include realistic supplier names, countries, sectors, and risk assessments. "
        "Generate 3-6 tier 2 suppliers, each with 1-3 tier 3 suppliers. Identify "
        "concentration risks based on geographic or sector clustering."
    ),
    "comparison": (
        "You are a supply chain risk analyst comparing vendors. Given multiple vendors with "
        "their risk scores and evaluations, recommend the best vendor (lowest risk, highest "
        "resilience) with specific data-backed reasons."
    ),
    "ticker_resolution": (
        "You resolve company/vendor names to their stock ticker symbols. Only return "
        "tickers for publicly traded companies on major US exchanges (NYSE, NASDAQ). If "
        "the company is not publicly traded or you are unsure, return confidence 'low'."
    ),
}


def get_system_prompt(name: str) -> str:
    """Instructions for a reasoning pass; KeyError for unknown names."""
    return SYSTEM_PROMPTS[name]


# MCP prompt definitions
PROMPTS = {
    "vendor_risk_report": {
        "description": "Full vendor risk report across all four dashboard tabs",
        "arguments": [{"name": "vendor_name", "required": True}],
    },
    "vendor_shortlist": {
        "description": "Compare already-analyzed vendors and pick one",
        "arguments": [{"name": "vendor_ids", "required": True}],
    },
}


def list_prompts() -> list[dict[str, Any]]:
    """List available prompts."""
    return [
        {
            "name": name,
            "description": info["description"],
            "arguments": info["arguments"],
        }
        for name, info in PROMPTS.items()
    ]


def get_prompt(name: str, arguments: dict[str, str]) -> dict[str, Any] | None:
    """
    Get a prompt by name with arguments filled in.

    Returns dict with 'messages' key for MCP GetPromptResult.
    """
    if name not in PROMPTS:
        return None

    if name == "vendor_risk_report":
        vendor_name = arguments.get("vendor_name", "")
        return {
            "messages": [
                {
                    "role": "user",
                    "content": f"""Produce a supply chain risk report for "{vendor_name}".

Execute these tools in order:
1. analyze_vendor("{vendor_name}") and note the vendor_id
2. get_vendor_status(vendor_id) until status is "complete" or "failed"
3. get_vendor_overview(vendor_id)
4. get_vendor_risk_breakdown(vendor_id)
5. get_vendor_dependencies(vendor_id)

Then report:
1. **Risk posture**: overall risk level, resilience rating and the risk distribution
2. **Category drivers**: the highest-risk category and its top sub-categories
3. **Dependencies**: concentration risks and critical tier 2/3 suppliers
4. **Trend**: direction of the 12-month risk trend

If the status is "failed", report the error and stop.
Use only numbers returned by the tools.""",
                }
            ]
        }

    if name == "vendor_shortlist":
        vendor_ids = arguments.get("vendor_ids", "")
        return {
            "messages": [
                {
                    "role": "user",
                    "content": f"""Choose between these analyzed vendors: {vendor_ids}.

Call compare_vendors("{vendor_ids}") and summarize:
1. **Recommendation**: winner and confidence
2. **Reasons**: the data-backed reasons, one line each
3. **Runner-up**: the next best vendor and what separates it

Be direct. No hedging.""",
                }
            ]
        }

    return None
