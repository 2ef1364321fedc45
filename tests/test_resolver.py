"""Tests for vendor name resolution."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from vendor_risk_mcp.pipeline.resolver import ResolutionError, resolve_vendor

SEARCH = "vendor_risk_mcp.pipeline.resolver.search_symbols"


class TestResolveVendor:
    """Tests for search-then-reasoning resolution."""

    def test_search_hit(self, fake_reasoning) -> None:
        search = AsyncMock(
            return_value=[
                {"symbol": "", "name": "Blank"},
                {"symbol": "cat", "name": "Caterpillar Inc.", "exchange": "NYQ"},
            ]
        )
        with patch(SEARCH, search):
            company = asyncio.run(resolve_vendor("Caterpillar", fake_reasoning))

        assert company.ticker == "CAT"
        assert company.name == "Caterpillar Inc."
        assert fake_reasoning.calls == []

    def test_reasoning_fallback(self, make_reasoning) -> None:
        reasoning = make_reasoning(
            {
                "TickerResolution": {
                    "ticker": "DE",
                    "company_name": "Deere & Company",
                    "confidence": "high",
                }
            }
        )
        with patch(SEARCH, AsyncMock(return_value=[])):
            company = asyncio.run(resolve_vendor("John Deere", reasoning))

        assert company.ticker == "DE"
        assert reasoning.calls[0]["schema"] == "TickerResolution"

    def test_search_error_falls_through(self, make_reasoning) -> None:
        reasoning = make_reasoning(
            {"TickerResolution": {"ticker": "MMM", "company_name": "3M", "confidence": "medium"}}
        )
        with patch(SEARCH, AsyncMock(side_effect=ConnectionError("reset"))):
            company = asyncio.run(resolve_vendor("3M", reasoning))

        assert company.ticker == "MMM"

    @pytest.mark.parametrize(
        "reply",
        [
            None,
            {"ticker": "XYZ", "company_name": "Maybe", "confidence": "low"},
            {"ticker": "", "company_name": "Empty", "confidence": "high"},
        ],
    )
    def test_unresolvable(self, reply, make_reasoning) -> None:
        reasoning = make_reasoning({"TickerResolution": reply} if reply else {})
        with patch(SEARCH, AsyncMock(return_value=[])):
            with pytest.raises(ResolutionError) as exc_info:
                asyncio.run(resolve_vendor("Nonexistent Widgets", reasoning))

        assert str(exc_info.value) == (
            'Could not resolve vendor "Nonexistent Widgets" to a stock ticker. '
            "Try using the company's publicly traded name."
        )
