"""Resolve a free-text vendor name to a listed company."""

import logging
from typing import Literal

from pydantic import BaseModel, Field, ValidationError

from vendor_risk_mcp.data.yfinance_client import search_symbols
from vendor_risk_mcp.models import CompanyIdentifier
from vendor_risk_mcp.prompts.templates import get_system_prompt
from vendor_risk_mcp.reasoning import ReasoningError, ReasoningService

logger = logging.getLogger(__name__)


class ResolutionError(Exception):
    """Raised when a vendor name cannot be mapped to a stock ticker."""

    pass


class TickerResolution(BaseModel):
    ticker: str = Field(description="The stock ticker symbol on a major US exchange (NYSE, NASDAQ)")
    company_name: str = Field(description="The full legal company name")
    confidence: Literal["high", "medium", "low"]


async def resolve_by_search(vendor_name: str) -> CompanyIdentifier | None:
    """First US-listed equity match from symbol search, or None."""
    try:
        matches = await search_symbols(vendor_name)
    except Exception as e:
        logger.warning(f"resolve({vendor_name!r}): symbol search failed: {e}")
        return None
    for match in matches:
        if match.get("symbol"):
            return CompanyIdentifier(ticker=match["symbol"], name=match.get("name") or vendor_name)
    return None


async def resolve_by_reasoning(
    vendor_name: str, reasoning: ReasoningService
) -> CompanyIdentifier | None:
    """Ask the reasoning service; low-confidence answers are rejected."""
    try:
        result = await reasoning.generate_structured(
            system=get_system_prompt("ticker_resolution"),
            prompt=f'What is the stock ticker for "{vendor_name}"?',
            schema=TickerResolution,
        )
    except ReasoningError as e:
        logger.warning(f"resolve({vendor_name!r}): reasoning fallback failed: {e}")
        return None
    if result.confidence == "low":
        return None
    try:
        return CompanyIdentifier(ticker=result.ticker, name=result.company_name)
    except ValidationError:
        logger.warning(f"resolve({vendor_name!r}): invalid ticker {result.ticker!r}")
        return None


async def resolve_vendor(vendor_name: str, reasoning: ReasoningService) -> CompanyIdentifier:
    """
    Resolve a vendor name: symbol search first, then the reasoning service.

    Raises:
        ResolutionError: If neither strategy yields a ticker
    """
    company = await resolve_by_search(vendor_name)
    if company is None:
        company = await resolve_by_reasoning(vendor_name, reasoning)
    if company is None:
        raise ResolutionError(
            f'Could not resolve vendor "{vendor_name}" to a stock ticker. '
            "Try using the company's publicly traded name."
        )
    logger.info(f"resolve({vendor_name!r}): {company.ticker}")
    return company
