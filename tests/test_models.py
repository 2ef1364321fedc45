"""Tests for research record models."""

import pytest
from pydantic import ValidationError

from vendor_risk_mcp.models import (
    CompanyIdentifier,
    EnvironmentalViolation,
    HistoricalPrice,
    OshaInspection,
    PartitionedVariable,
    SourceResult,
    parse_items,
    to_finite_float,
)


class TestSourceResult:
    """Tests for the success/data/error invariant."""

    def test_ok(self) -> None:
        result = SourceResult.ok("edgar:filings", [])
        assert result.success
        assert result.data == []
        assert result.error is None
        assert result.fetched_at

    def test_fail(self) -> None:
        result = SourceResult.fail("epa:violations", "HTTP 503")
        assert not result.success
        assert result.data is None
        assert result.error == "HTTP 503"

    def test_fail_without_message(self) -> None:
        assert SourceResult.fail("osha:inspections", "").error == "Unknown error"

    @pytest.mark.parametrize(
        "fields",
        [
            {"success": True},
            {"success": True, "data": [1], "error": "boom"},
            {"success": False, "data": [1], "error": "boom"},
            {"success": False},
        ],
    )
    def test_inconsistent_rejected(self, fields: dict) -> None:
        with pytest.raises(ValidationError):
            SourceResult(source="fred:macro", **fields)


class TestCompanyIdentifier:
    def test_ticker_normalized(self) -> None:
        assert CompanyIdentifier(ticker=" brk-b ").ticker == "BRK-B"

    def test_empty_ticker_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CompanyIdentifier(ticker="   ")


class TestNumericCoercion:
    """Tests for provider number parsing."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            (12, 12.0),
            ("3,500", 3500.0),
            (" 7.5 ", 7.5),
            ("", None),
            ("n/a", None),
            (None, None),
            (True, None),
            (float("nan"), None),
            (float("inf"), None),
        ],
    )
    def test_to_finite_float(self, raw, expected) -> None:
        assert to_finite_float(raw) == expected

    def test_unknown_text_defaults(self) -> None:
        violation = EnvironmentalViolation(state=None, penalty_amount="1,250.50")
        assert violation.state == "Unknown"
        assert violation.facility_name == "Unknown"
        assert violation.penalty_amount == 1250.5

    def test_osha_penalty_defaults_to_zero(self) -> None:
        assert OshaInspection(activity_number="1", penalty_amount="n/a").penalty_amount == 0.0

    def test_partitioned_variable_rejects_non_finite(self) -> None:
        with pytest.raises(ValidationError):
            PartitionedVariable(
                name="x", value=float("nan"), category="financial", industry="Unknown"
            )


class TestParseItems:
    def test_drops_invalid(self) -> None:
        items = [
            {"date": "2026-06-01", "close": 10},
            {"date": "2026-06-02", "close": "bad"},
            "not a dict",
            {"close": 11},
        ]
        parsed = parse_items(HistoricalPrice, items)
        assert [p.close for p in parsed] == [10.0]

    def test_non_list(self) -> None:
        assert parse_items(HistoricalPrice, None) == []
        assert parse_items(HistoricalPrice, {"date": "2026-06-01"}) == []
