"""OSHA inspection adapter (DOL v2 API)."""

import logging

from vendor_risk_mcp.data.fetcher import fetch_json
from vendor_risk_mcp.models import OshaInspection, SourceResult, parse_items
from vendor_risk_mcp.sources.base import describe_error, require_env

logger = logging.getLogger(__name__)

OSHA_BASE = "https://api.dol.gov/v2/osha/inspection"


async def fetch_osha_inspections(company_name: str, limit: int = 25) -> SourceResult:
    source = "osha:inspections"
    try:
        api_key = require_env("DOL_API_KEY", " -- OSHA data unavailable")
        raw = await fetch_json(
            OSHA_BASE,
            label="OSHA API",
            params={
                "filters": f"estab_name sw '{company_name.upper()}'",
                "page": "0",
                "size": str(limit),
            },
            headers={"Accept": "application/json", "X-API-KEY": api_key},
        )
        # v1 responses carried the same records under "results"
        records = raw.get("data") or raw.get("results") or []
        inspections = [
            {
                "activity_number": r.get("activity_nr"),
                "establishment_name": r.get("estab_name"),
                "site_state": r.get("site_state"),
                "open_date": r.get("open_date"),
                "close_date": r.get("close_case_date"),
                "violation_type": r.get("viol_type"),
                "penalty_amount": r.get("total_current_penalty"),
                "inspection_type": r.get("insp_type"),
                "industry": r.get("naics_code") or r.get("sic_code"),
            }
            for r in records
            if isinstance(r, dict)
        ]
        return SourceResult.ok(source, parse_items(OshaInspection, inspections))
    except Exception as e:
        logger.warning(f"{source}({company_name}) failed: {e}")
        return SourceResult.fail(source, describe_error(e))
