"""FRED macro indicator adapter."""

import asyncio
import logging
from typing import Any

from vendor_risk_mcp.data.fetcher import fetch_json
from vendor_risk_mcp.models import MacroIndicator, MacroObservation, SourceResult, parse_items
from vendor_risk_mcp.sources.base import describe_error, require_env

logger = logging.getLogger(__name__)

FRED_BASE = "https://api.stlouisfed.org/fred"
_series_info_ttl = 7 * 24 * 3600

# Supply-chain-relevant series: id -> (name, units, frequency)
SUPPLY_CHAIN_SERIES: dict[str, tuple[str, str, str]] = {
    "GSCPI": ("Global Supply Chain Pressure Index", "Standard Deviations", "Monthly"),
    "DCOILWTICO": ("Crude Oil Prices: WTI", "Dollars per Barrel", "Daily"),
    "PCUOMFG": ("Producer Price Index: Total Manufacturing", "Index", "Monthly"),
    "MANEMP": ("Manufacturing Employees", "Thousands of Persons", "Monthly"),
    "BOPGSTB": ("Trade Balance: Goods and Services", "Millions of Dollars", "Monthly"),
    "NAPMII": ("ISM Manufacturing: Inventories Index", "Percent", "Monthly"),
    "NAPMSDI": ("ISM Manufacturing: Supplier Deliveries Index", "Percent", "Monthly"),
    "TOTALSA": ("Total Vehicle Sales", "Millions of Units", "Monthly"),
    "PPIACO": ("Producer Price Index: All Commodities", "Index 1982=100", "Monthly"),
}


def _params(api_key: str, **extra: str) -> dict[str, str]:
    return {"api_key": api_key, "file_type": "json", **extra}


def parse_observations(raw: list[dict[str, Any]]) -> list[MacroObservation]:
    """FRED encodes a missing value as "."."""
    return parse_items(
        MacroObservation,
        [
            {"date": obs.get("date"), "value": None if obs.get("value") == "." else obs.get("value")}
            for obs in raw
            if isinstance(obs, dict)
        ],
    )


async def fetch_series(
    series_id: str,
    api_key: str,
    observation_start: str | None = None,
    limit: int = 120,
) -> MacroIndicator:
    """Fetch one series, observations newest first."""
    obs_params = _params(api_key, series_id=series_id, sort_order="desc", limit=str(limit))
    if observation_start:
        obs_params["observation_start"] = observation_start

    info_raw, obs_raw = await asyncio.gather(
        fetch_json(
            f"{FRED_BASE}/series",
            label="FRED /series",
            params=_params(api_key, series_id=series_id),
            cache_ttl=_series_info_ttl,
        ),
        fetch_json(
            f"{FRED_BASE}/series/observations",
            label="FRED /series/observations",
            params=obs_params,
        ),
    )
    name, units, frequency = SUPPLY_CHAIN_SERIES.get(series_id, (series_id, "Unknown", "Unknown"))
    info = (info_raw.get("seriess") or [{}])[0]
    return MacroIndicator(
        series_id=series_id,
        series_name=info.get("title") or name,
        observations=parse_observations(obs_raw.get("observations") or []),
        units=info.get("units") or units,
        frequency=info.get("frequency") or frequency,
    )


async def fetch_supply_chain_indicators(observation_start: str | None = None) -> SourceResult:
    """Fetch every supply-chain series; individual series failures are skipped."""
    source = "fred:macro"
    try:
        api_key = require_env("FRED_API_KEY")
        results = await asyncio.gather(
            *(fetch_series(sid, api_key, observation_start) for sid in SUPPLY_CHAIN_SERIES),
            return_exceptions=True,
        )
        indicators = []
        errors = []
        for series_id, result in zip(SUPPLY_CHAIN_SERIES, results):
            if isinstance(result, BaseException):
                logger.info(f"{source}: series {series_id} failed: {result}")
                errors.append(describe_error(result))
            else:
                indicators.append(result)

        if not indicators and errors:
            return SourceResult.fail(source, errors[0])
        return SourceResult.ok(source, indicators)
    except Exception as e:
        logger.warning(f"{source} failed: {e}")
        return SourceResult.fail(source, describe_error(e))
