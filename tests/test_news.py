"""Tests for news merging."""

import asyncio
from unittest.mock import AsyncMock, patch

from vendor_risk_mcp.models import NewsArticle, SourceResult
from vendor_risk_mcp.sources.base import MissingCredentialError
from vendor_risk_mcp.sources.news import (
    deduplicate_articles,
    fetch_litigation_news,
    fetch_supply_chain_news,
    merge_news_results,
)


def _article(url: str, title: str = "Headline") -> NewsArticle:
    return NewsArticle(title=title, url=url, published_at="2026-06-01T00:00:00Z")


class TestMergeNewsResults:
    """Tests for merge_news_results."""

    def test_dedupes_by_url_first_wins(self) -> None:
        supply = SourceResult.ok(
            "newsapi:supply-chain",
            [_article("https://a", "Supply A"), _article("https://b", "Supply B")],
        )
        litigation = SourceResult.ok(
            "newsapi:litigation",
            [_article("https://b", "Litigation B"), _article("https://c", "Litigation C")],
        )

        merged = merge_news_results(supply, litigation)

        assert merged.success
        assert merged.source == "newsapi:merged"
        assert [a.title for a in merged.data] == ["Supply A", "Supply B", "Litigation C"]

    def test_one_side_failed(self) -> None:
        supply = SourceResult.fail("newsapi:supply-chain", "HTTP 429")
        litigation = SourceResult.ok("newsapi:litigation", [_article("https://c")])

        merged = merge_news_results(supply, litigation)

        assert merged.success
        assert len(merged.data) == 1

    def test_both_failed_keeps_first_error(self) -> None:
        merged = merge_news_results(
            SourceResult.fail("newsapi:supply-chain", "NEWSAPI_KEY is not set"),
            SourceResult.fail("newsapi:litigation", "HTTP 500"),
        )

        assert not merged.success
        assert merged.error == "NEWSAPI_KEY is not set"

    def test_nothing_found(self) -> None:
        merged = merge_news_results(
            SourceResult.ok("newsapi:supply-chain", []),
            SourceResult.ok("newsapi:litigation", []),
        )

        assert not merged.success
        assert merged.error == "No news found"


class TestDeduplicate:
    def test_order_preserved(self) -> None:
        articles = [_article("https://x"), _article("https://y"), _article("https://x")]
        assert [a.url for a in deduplicate_articles(articles)] == ["https://x", "https://y"]


class TestQueryRuns:
    """Tests for per-query failure handling."""

    def test_individual_query_failure_is_skipped(self) -> None:
        search = AsyncMock(
            side_effect=[
                [_article("https://a")],
                RuntimeError("HTTP 500"),
                [_article("https://a"), _article("https://b")],
            ]
        )
        with patch("vendor_risk_mcp.sources.news.search_news", search):
            result = asyncio.run(fetch_supply_chain_news("Acme Corp", "ACME"))

        assert result.success
        assert result.source == "newsapi:supply-chain"
        assert [a.url for a in result.data] == ["https://a", "https://b"]
        assert search.await_count == 3

    def test_all_queries_failed(self) -> None:
        search = AsyncMock(side_effect=MissingCredentialError("NEWSAPI_KEY is not set"))
        with patch("vendor_risk_mcp.sources.news.search_news", search):
            result = asyncio.run(fetch_litigation_news("Acme Corp", "ACME"))

        assert not result.success
        assert result.source == "newsapi:litigation"
        assert result.error == "NEWSAPI_KEY is not set"
