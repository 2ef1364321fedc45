"""Firecrawl web research adapter."""

import asyncio
import logging

from vendor_risk_mcp.data.fetcher import fetch_json
from vendor_risk_mcp.models import SourceResult, WebResearchItem, WebResearchResult, parse_items
from vendor_risk_mcp.sources.base import describe_error, require_env

logger = logging.getLogger(__name__)

FIRECRAWL_SEARCH = "https://api.firecrawl.dev/v1/search"


def research_queries(company_name: str, ticker: str) -> list[str]:
    return [
        f"{company_name} supply chain tier 2 tier 3 suppliers",
        f"{company_name} supplier risk disruption",
        f"{company_name} {ticker} vendor concentration risk",
        f"{company_name} procurement sourcing strategy",
    ]


async def search_web(query: str, api_key: str, limit: int = 3) -> WebResearchResult:
    raw = await fetch_json(
        FIRECRAWL_SEARCH,
        label="Firecrawl /v1/search",
        method="POST",
        headers={"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"},
        json_body={"query": query, "limit": limit, "scrapeOptions": {"formats": ["markdown"]}},
    )
    items = [
        {
            "url": item.get("url") or "",
            "title": item.get("title"),
            "content": item.get("markdown") or item.get("description"),
            "source": "firecrawl:search",
        }
        for item in raw.get("data") or []
        if isinstance(item, dict)
    ]
    return WebResearchResult(query=query, results=parse_items(WebResearchItem, items))


async def research_company_supply_chain(company_name: str, ticker: str) -> SourceResult:
    """Run the research queries concurrently; failed queries are skipped."""
    source = "firecrawl:research"
    try:
        api_key = require_env("FIRECRAWL_API_KEY")
        queries = research_queries(company_name, ticker)
        results = await asyncio.gather(
            *(search_web(q, api_key) for q in queries),
            return_exceptions=True,
        )
        research = [r for r in results if isinstance(r, WebResearchResult)]
        failures = [r for r in results if isinstance(r, BaseException)]
        for failure in failures:
            logger.info(f"{source}: query failed: {failure}")

        if not research and failures:
            return SourceResult.fail(source, describe_error(failures[0]))
        return SourceResult.ok(source, research)
    except Exception as e:
        logger.warning(f"{source}({company_name}) failed: {e}")
        return SourceResult.fail(source, describe_error(e))
