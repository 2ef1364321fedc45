"""Framework-free request handlers.

Every handler returns (status, body). Route and tool wrappers only move
bytes; all status-code and error-envelope decisions live here.
"""

import logging
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from vendor_risk_mcp.models import CompanyIdentifier
from vendor_risk_mcp.pipeline.analyzer import compare_vendor_results, research_companies
from vendor_risk_mcp.reasoning import ReasoningService
from vendor_risk_mcp.store import VendorStore

logger = logging.getLogger(__name__)

Response = tuple[int, dict[str, Any]]

MAX_RESEARCH_COMPANIES = 10


def error_response(code: str, message: str, status: int) -> Response:
    """Uniform error envelope."""
    return status, {"error": {"code": code, "message": message, "status": status}}


class InvalidRequestError(Exception):
    """Malformed request body or query; rejected before any pipeline work starts."""

    def __init__(self, code: str, message: str, status: int = 400):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status = status

    def to_response(self) -> Response:
        return error_response(self.code, self.message, self.status)


class AnalyzeRequest(BaseModel):
    vendor_name: str = Field(min_length=1, max_length=200)


class ResearchRequest(BaseModel):
    companies: list[CompanyIdentifier] = Field(min_length=1, max_length=MAX_RESEARCH_COMPANIES)
    skip_evaluation: bool = False


def parse_analyze_request(body: Any) -> str:
    """Stripped vendor name from a trigger body; raises InvalidRequestError."""
    try:
        vendor_name = AnalyzeRequest.model_validate(body).vendor_name.strip()
    except ValidationError:
        vendor_name = ""
    if not vendor_name:
        raise InvalidRequestError(
            "ANALYSIS_FAILED", "Invalid request: vendor_name is required.", 422
        )
    return vendor_name


def handle_analyze(store: VendorStore, body: Any) -> Response:
    """POST /vendors/analyze: validate, trigger, return 202 immediately."""
    try:
        vendor_name = parse_analyze_request(body)
    except InvalidRequestError as e:
        return e.to_response()
    return 202, store.trigger(vendor_name)


def handle_status(store: VendorStore, vendor_id: str) -> Response:
    entry = store.get(vendor_id)
    if entry is None:
        return error_response(
            "VENDOR_NOT_FOUND", "No vendor found with the given identifier.", 404
        )
    return 200, {"vendor_id": entry.vendor_id, "status": entry.status}


TABS = ("overview", "dependencies", "risk_breakdown")


def handle_tab(store: VendorStore, vendor_id: str, tab: str) -> Response:
    """GET /vendors/{id}/<tab> for overview, dependencies or risk_breakdown."""
    if tab not in TABS:
        raise ValueError(f"unknown tab: {tab}")

    entry = store.get(vendor_id)
    if entry is None:
        return error_response(
            "VENDOR_NOT_FOUND", "No vendor found with the given identifier.", 404
        )
    if entry.status == "processing":
        return error_response(
            "STILL_PROCESSING", "Analysis is still in progress. Poll /status and retry.", 202
        )
    if entry.status == "failed" or entry.result is None:
        return error_response("ANALYSIS_FAILED", entry.error or "Analysis failed.", 422)

    payload: BaseModel = getattr(entry.result, tab)
    return 200, payload.model_dump(mode="json")


def parse_ids(ids: str | None) -> list[str]:
    if not ids:
        return []
    return [part.strip() for part in ids.split(",") if part.strip()]


def parse_compare_ids(ids: str | None) -> list[str]:
    """At least two vendor ids from `ids`; raises InvalidRequestError."""
    if not ids:
        raise InvalidRequestError(
            "INVALID_IDS", "Query parameter 'ids' is required (comma-separated vendor IDs)."
        )
    vendor_ids = parse_ids(ids)
    if len(vendor_ids) < 2:
        raise InvalidRequestError(
            "INVALID_IDS", "At least 2 vendor IDs are required for comparison."
        )
    return vendor_ids


async def handle_compare(
    store: VendorStore, ids: str | None, reasoning: ReasoningService
) -> Response:
    """GET /vendors/compare?ids=a,b: vendors in the response mirror `ids` order."""
    try:
        vendor_ids = parse_compare_ids(ids)
    except InvalidRequestError as e:
        return e.to_response()

    results = store.get_multiple_results(vendor_ids)
    missing = [vid for vid, result in zip(vendor_ids, results) if result is None]
    if missing:
        return error_response(
            "INVALID_IDS",
            f"Vendor IDs not found or not yet complete: {', '.join(missing)}",
            400,
        )

    comparison = await compare_vendor_results(results, reasoning)
    return 200, comparison.model_dump(mode="json")


def parse_research_request(body: Any) -> ResearchRequest:
    """Validated batch research body; raises InvalidRequestError."""
    try:
        return ResearchRequest.model_validate(body)
    except ValidationError as e:
        raise InvalidRequestError(
            "INVALID_REQUEST",
            f"Invalid request: {e.error_count()} validation error(s) in body. Expected "
            f"companies (1-{MAX_RESEARCH_COMPANIES} of {{ticker, name?, cik?}}) "
            "and optional skip_evaluation.",
        ) from e


async def handle_research(body: Any, reasoning: ReasoningService) -> Response:
    """POST /research: batch aggregate, optionally evaluate, and partition."""
    try:
        request = parse_research_request(body)
    except InvalidRequestError as e:
        return e.to_response()
    result = await research_companies(request.companies, request.skip_evaluation, reasoning)
    return 200, result
