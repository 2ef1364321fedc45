"""NewsAPI adapters for supply-chain and litigation coverage."""

import logging
from collections.abc import Iterable

from vendor_risk_mcp.data.fetcher import fetch_json
from vendor_risk_mcp.models import NewsArticle, SourceResult, parse_items
from vendor_risk_mcp.sources.base import describe_error, require_env

logger = logging.getLogger(__name__)

NEWSAPI_BASE = "https://newsapi.org/v2"


def supply_chain_queries(company_name: str, ticker: str) -> list[str]:
    return [
        f'"{company_name}" supply chain',
        f'"{company_name}" supplier OR vendor OR procurement',
        f'"{ticker}" supply chain disruption OR risk OR shortage',
    ]


def litigation_queries(company_name: str, ticker: str) -> list[str]:
    return [
        f'"{company_name}" lawsuit OR litigation OR sued OR settlement',
        f'"{company_name}" regulatory action OR fine OR penalty OR violation',
        f'"{ticker}" fraud OR investigation OR enforcement',
    ]


def deduplicate_articles(articles: Iterable[NewsArticle]) -> list[NewsArticle]:
    """Drop repeated URLs; the first occurrence wins."""
    seen: set[str] = set()
    unique = []
    for article in articles:
        if article.url in seen:
            continue
        seen.add(article.url)
        unique.append(article)
    return unique


async def search_news(query: str, page_size: int = 10) -> list[NewsArticle]:
    """
    Search NewsAPI /everything.

    Raises:
        MissingCredentialError: If NEWSAPI_KEY is not set
        HTTPError: On a non-2xx response
    """
    raw = await fetch_json(
        f"{NEWSAPI_BASE}/everything",
        label="NewsAPI /everything",
        params={
            "q": query,
            "pageSize": str(page_size),
            "sortBy": "relevancy",
            "language": "en",
            "apiKey": require_env("NEWSAPI_KEY"),
        },
        headers={"Accept": "application/json"},
    )
    articles = [
        {
            "title": a.get("title"),
            "description": a.get("description"),
            "url": a.get("url"),
            "source": (a.get("source") or {}).get("name"),
            "published_at": a.get("publishedAt"),
            "content": a.get("content"),
        }
        for a in raw.get("articles") or []
        if isinstance(a, dict)
    ]
    return parse_items(NewsArticle, articles)


async def _run_queries(source: str, queries: list[str]) -> SourceResult:
    # Sequential to stay inside NewsAPI's per-second limit
    articles: list[NewsArticle] = []
    errors: list[str] = []
    for query in queries:
        try:
            articles.extend(await search_news(query))
        except Exception as e:
            logger.info(f"{source}: query {query!r} failed: {e}")
            errors.append(describe_error(e))

    if errors and len(errors) == len(queries):
        return SourceResult.fail(source, errors[0])
    return SourceResult.ok(source, deduplicate_articles(articles))


async def fetch_supply_chain_news(company_name: str, ticker: str) -> SourceResult:
    return await _run_queries(
        "newsapi:supply-chain", supply_chain_queries(company_name, ticker)
    )


async def fetch_litigation_news(company_name: str, ticker: str) -> SourceResult:
    return await _run_queries(
        "newsapi:litigation", litigation_queries(company_name, ticker)
    )


def merge_news_results(*results: SourceResult) -> SourceResult:
    """
    Merge news results into one `newsapi:merged` result.

    Articles are de-duplicated by URL, first seen wins. When nothing was
    found the merged result fails with the first constituent error.
    """
    merged = deduplicate_articles(
        article
        for result in results
        if result.success
        for article in result.data
    )
    if merged:
        return SourceResult.ok("newsapi:merged", merged)

    first_error = next((r.error for r in results if r.error), None)
    return SourceResult.fail("newsapi:merged", first_error or "No news found")
