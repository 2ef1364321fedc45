"""EPA ECHO environmental compliance adapter."""

import logging

from vendor_risk_mcp.data.fetcher import fetch_json
from vendor_risk_mcp.models import EnvironmentalViolation, SourceResult, parse_items
from vendor_risk_mcp.sources.base import describe_error

logger = logging.getLogger(__name__)

ECHO_BASE = "https://echo.epa.gov/api"


async def fetch_environmental_violations(company_name: str) -> SourceResult:
    """Facilities matching the company name that are currently in violation."""
    source = "epa:violations"
    try:
        raw = await fetch_json(
            f"{ECHO_BASE}/echo_rest_services.get_facilities",
            label="EPA ECHO get_facilities",
            params={"p_fn": company_name, "p_act": "Y", "p_ptype": "GEN", "output": "JSON"},
            headers={"Accept": "application/json"},
        )
        facilities = (raw.get("Results") or {}).get("Facilities") or []
        violations = [
            {
                "facility_name": f.get("FacName"),
                "facility_id": f.get("RegistryId"),
                "state": f.get("FacState"),
                "violation_date": None,
                "violation_type": f.get("CurrVioStatus"),
                "compliance_status": f.get("FacComplianceStatus"),
                "penalty_amount": f.get("FacTotalPenalties"),
                "program_area": f.get("FacProgramsWithViol"),
            }
            for f in facilities
            if isinstance(f, dict) and f.get("CurrVioStatus") != "No Violation"
        ]
        return SourceResult.ok(source, parse_items(EnvironmentalViolation, violations))
    except Exception as e:
        logger.warning(f"{source}({company_name}) failed: {e}")
        return SourceResult.fail(source, describe_error(e))
