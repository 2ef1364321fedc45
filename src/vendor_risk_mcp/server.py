"""Vendor Risk MCP Server using FastMCP."""

import asyncio
import json
import logging
import os
from typing import Any

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse

from vendor_risk_mcp import SCHEMA_VERSION, SERVER_VERSION
from vendor_risk_mcp.api import (
    handle_analyze,
    handle_compare,
    handle_research,
    handle_status,
    handle_tab,
)
from vendor_risk_mcp.data import shutdown_executor
from vendor_risk_mcp.prompts.templates import get_prompt
from vendor_risk_mcp.reasoning import get_reasoning_service
from vendor_risk_mcp.store import vendor_store

# Configure logging
log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(level=getattr(logging, log_level, logging.INFO))
logger = logging.getLogger(__name__)

# Create FastMCP server instance
mcp = FastMCP(
    name="vendor-risk",
)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


def _dump(body: dict[str, Any]) -> str:
    return json.dumps(body, indent=2, default=str)


# ============================================================================
# TOOLS
# ============================================================================


@mcp.tool
async def analyze_vendor(vendor_name: str) -> str:
    """
    Start a supply chain risk analysis for a vendor.

    Returns immediately; poll get_vendor_status until the status is
    "complete" or "failed", then read the tabs.

    Args:
        vendor_name: Company or vendor name (e.g., "Apple", "Caterpillar")

    Returns:
        JSON with vendor_id, status "processing" and estimated completion seconds
    """
    _, body = handle_analyze(vendor_store, {"vendor_name": vendor_name})
    return _dump(body)


@mcp.tool
async def get_vendor_status(vendor_id: str) -> str:
    """
    Poll the analysis status of a vendor.

    Args:
        vendor_id: Identifier returned by analyze_vendor (e.g., vnd_a1b2c3d4)

    Returns:
        JSON with vendor_id and status (processing, complete or failed)
    """
    _, body = handle_status(vendor_store, vendor_id)
    return _dump(body)


@mcp.tool
async def get_vendor_overview(vendor_id: str) -> str:
    """
    Overview tab: risk distribution, risk level, resilience, industry
    profile and a 12-month risk trend.

    Args:
        vendor_id: Identifier returned by analyze_vendor

    Returns:
        JSON overview, or an error envelope (STILL_PROCESSING, ANALYSIS_FAILED,
        VENDOR_NOT_FOUND)
    """
    _, body = handle_tab(vendor_store, vendor_id, "overview")
    return _dump(body)


@mcp.tool
async def get_vendor_dependencies(vendor_id: str) -> str:
    """
    Dependencies tab: tier 2 and tier 3 supplier tree with concentration risks.

    Args:
        vendor_id: Identifier returned by analyze_vendor

    Returns:
        JSON dependency tree, or an error envelope
    """
    _, body = handle_tab(vendor_store, vendor_id, "dependencies")
    return _dump(body)


@mcp.tool
async def get_vendor_risk_breakdown(vendor_id: str) -> str:
    """
    Risk breakdown tab: per-category scores, descriptions and sub-categories.

    Args:
        vendor_id: Identifier returned by analyze_vendor

    Returns:
        JSON risk breakdown, or an error envelope
    """
    _, body = handle_tab(vendor_store, vendor_id, "risk_breakdown")
    return _dump(body)


@mcp.tool
async def compare_vendors(vendor_ids: str) -> str:
    """
    Compare two or more completed vendor analyses and recommend one.

    Args:
        vendor_ids: Comma-separated vendor ids (e.g., "vnd_aaaa1111,vnd_bbbb2222")

    Returns:
        JSON recommendation and per-vendor scores in the order given
    """
    _, body = await handle_compare(vendor_store, vendor_ids, get_reasoning_service())
    return _dump(body)


@mcp.tool
async def research_companies(
    companies: list[dict[str, Any]],
    skip_evaluation: bool = False,
) -> str:
    """
    Batch research for up to 10 companies, for downstream quantitative models.

    Args:
        companies: List of {"ticker": ..., "name": ..., "cik": ...} objects
        skip_evaluation: Return aggregated data only, without the evaluation pass

    Returns:
        JSON with pipeline name, results and partitioned model variables
    """
    _, body = await handle_research(
        {"companies": companies, "skip_evaluation": skip_evaluation},
        get_reasoning_service(),
    )
    return _dump(body)


# ============================================================================
# HTTP ROUTES
# ============================================================================


def _json(status_and_body: tuple[int, dict[str, Any]]) -> JSONResponse:
    status, body = status_and_body
    return JSONResponse(body, status_code=status, headers=CORS_HEADERS)


async def _read_json(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        return None


@mcp.custom_route("/vendors/analyze", methods=["POST"])
async def analyze_route(request: Request) -> JSONResponse:
    return _json(handle_analyze(vendor_store, await _read_json(request)))


@mcp.custom_route("/vendors/compare", methods=["GET"])
async def compare_route(request: Request) -> JSONResponse:
    ids = request.query_params.get("ids")
    return _json(await handle_compare(vendor_store, ids, get_reasoning_service()))


@mcp.custom_route("/vendors/{vendor_id}/status", methods=["GET"])
async def status_route(request: Request) -> JSONResponse:
    return _json(handle_status(vendor_store, request.path_params["vendor_id"]))


@mcp.custom_route("/vendors/{vendor_id}/overview", methods=["GET"])
async def overview_route(request: Request) -> JSONResponse:
    return _json(handle_tab(vendor_store, request.path_params["vendor_id"], "overview"))


@mcp.custom_route("/vendors/{vendor_id}/dependencies", methods=["GET"])
async def dependencies_route(request: Request) -> JSONResponse:
    return _json(handle_tab(vendor_store, request.path_params["vendor_id"], "dependencies"))


@mcp.custom_route("/vendors/{vendor_id}/risk-breakdown", methods=["GET"])
async def risk_breakdown_route(request: Request) -> JSONResponse:
    return _json(handle_tab(vendor_store, request.path_params["vendor_id"], "risk_breakdown"))


@mcp.custom_route("/research", methods=["POST"])
async def research_route(request: Request) -> JSONResponse:
    body = await _read_json(request)
    return _json(await handle_research(body, get_reasoning_service()))


# ============================================================================
# PROMPTS
# ============================================================================


@mcp.prompt
def vendor_risk_report(vendor_name: str) -> str:
    """Full vendor risk report across the overview, breakdown and dependency tabs."""
    result = get_prompt("vendor_risk_report", {"vendor_name": vendor_name})
    if result:
        return result["messages"][0]["content"]
    return f"Analyze {vendor_name} using analyze_vendor."


@mcp.prompt
def vendor_shortlist(vendor_ids: str) -> str:
    """Compare already-analyzed vendors and pick one."""
    result = get_prompt("vendor_shortlist", {"vendor_ids": vendor_ids})
    if result:
        return result["messages"][0]["content"]
    return f"Compare {vendor_ids} using compare_vendors."


# ============================================================================
# ENTRY POINT
# ============================================================================


async def serve(transport: str) -> None:
    """Serve until stopped, then cancel outstanding pipelines and fetches."""
    try:
        if transport == "stdio":
            await mcp.run_async()
        else:
            await mcp.run_async(
                transport=transport,
                host=os.environ.get("HOST", "0.0.0.0"),
                port=int(os.environ.get("PORT", "8000")),
            )
    finally:
        await vendor_store.shutdown()
        await shutdown_executor()


def main() -> None:
    """Run the MCP server."""
    transport = os.environ.get("MCP_TRANSPORT", "http")
    logger.info(
        f"Starting Vendor Risk MCP Server v{SERVER_VERSION} (schema v{SCHEMA_VERSION}) "
        f"over {transport}"
    )
    asyncio.run(serve(transport))


if __name__ == "__main__":
    main()
