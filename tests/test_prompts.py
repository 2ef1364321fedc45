"""Tests for prompt templates."""

import pytest

from vendor_risk_mcp.prompts import get_prompt, get_system_prompt, list_prompts


class TestPrompts:
    """Tests for MCP prompt rendering."""

    def test_list_prompts(self) -> None:
        names = [p["name"] for p in list_prompts()]
        assert names == ["vendor_risk_report", "vendor_shortlist"]

    def test_report_fills_vendor_name(self) -> None:
        result = get_prompt("vendor_risk_report", {"vendor_name": "Acme Corp"})
        content = result["messages"][0]["content"]
        assert 'analyze_vendor("Acme Corp")' in content
        assert "get_vendor_dependencies" in content

    def test_shortlist_fills_ids(self) -> None:
        result = get_prompt("vendor_shortlist", {"vendor_ids": "v_1,v_2"})
        assert 'compare_vendors("v_1,v_2")' in result["messages"][0]["content"]

    def test_unknown_prompt(self) -> None:
        assert get_prompt("nope", {}) is None


class TestSystemPrompts:
    @pytest.mark.parametrize(
        "name",
        ["evaluation", "category_descriptions", "dependency_tree", "comparison", "ticker_resolution"],
    )
    def test_every_pass_has_instructions(self, name: str) -> None:
        assert get_system_prompt(name)

    def test_unknown_pass(self) -> None:
        with pytest.raises(KeyError):
            get_system_prompt("summary")
