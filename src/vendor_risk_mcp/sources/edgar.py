"""SEC EDGAR filings adapter."""

import logging
import os
from typing import Any

from vendor_risk_mcp.data.fetcher import fetch_json
from vendor_risk_mcp.models import SecFiling, SourceResult, parse_items
from vendor_risk_mcp.sources.base import describe_error

logger = logging.getLogger(__name__)

EDGAR_SUBMISSIONS = "https://data.sec.gov/submissions"
EDGAR_TICKERS = "https://www.sec.gov/files/company_tickers.json"

# SEC requires a descriptive User-Agent with contact details
_user_agent = os.environ.get("SEC_USER_AGENT", "vendor-risk-mcp research contact@example.com")
_ticker_map_ttl = 7 * 24 * 3600

DEFAULT_FORMS = ("10-K", "10-Q", "8-K")


def _headers() -> dict[str, str]:
    return {"User-Agent": _user_agent, "Accept": "application/json"}


async def resolve_cik(ticker: str) -> str | None:
    """Resolve a ticker to a zero-padded 10-digit CIK."""
    raw = await fetch_json(
        EDGAR_TICKERS,
        label="EDGAR tickers",
        headers=_headers(),
        cache_ttl=_ticker_map_ttl,
    )
    wanted = ticker.upper()
    for entry in (raw or {}).values():
        if str(entry.get("ticker", "")).upper() == wanted:
            return str(entry["cik_str"]).zfill(10)
    return None


def extract_filings(
    recent: dict[str, list[Any]],
    cik: str,
    forms: tuple[str, ...] = DEFAULT_FORMS,
    limit: int = 20,
) -> list[dict[str, Any]]:
    """Pick filings of the wanted forms from EDGAR's columnar `recent` block."""
    wanted = {f.upper() for f in forms}
    accessions = recent.get("accessionNumber") or []
    descriptions = recent.get("primaryDocDescription") or []
    documents = recent.get("primaryDocument") or []
    filings: list[dict[str, Any]] = []

    for i, accession in enumerate(accessions):
        if len(filings) >= limit:
            break
        form = recent["form"][i]
        if form.upper() not in wanted:
            continue
        document = documents[i] if i < len(documents) else ""
        filings.append(
            {
                "accession_number": accession,
                "filing_date": recent["filingDate"][i],
                "form": form,
                "description": (descriptions[i] if i < len(descriptions) else "") or form,
                "document_url": (
                    f"https://www.sec.gov/Archives/edgar/data/{int(cik)}/"
                    f"{accession.replace('-', '')}/{document}"
                ),
                "filing_url": (
                    "https://www.sec.gov/cgi-bin/browse-edgar?action=getcompany"
                    f"&CIK={cik}&type={form}&dateb=&owner=include&count=10"
                ),
            }
        )
    return filings


async def fetch_sec_filings(
    ticker: str,
    forms: tuple[str, ...] = DEFAULT_FORMS,
    limit: int = 20,
) -> SourceResult:
    source = "edgar:filings"
    try:
        cik = await resolve_cik(ticker)
        if cik is None:
            return SourceResult.fail(source, f"Could not resolve CIK for {ticker}")

        raw = await fetch_json(
            f"{EDGAR_SUBMISSIONS}/CIK{cik}.json",
            label="EDGAR submissions",
            headers=_headers(),
        )
        recent = (raw.get("filings") or {}).get("recent") or raw.get("recentFilings")
        if not recent or not recent.get("accessionNumber"):
            return SourceResult.ok(source, [])

        filings = extract_filings(recent, cik, forms, limit)
        return SourceResult.ok(source, parse_items(SecFiling, filings))
    except Exception as e:
        logger.warning(f"{source}({ticker}) failed: {e}")
        return SourceResult.fail(source, describe_error(e))
