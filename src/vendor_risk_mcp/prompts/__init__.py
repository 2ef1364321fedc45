"""Prompt templates for MCP prompts and reasoning passes."""

from vendor_risk_mcp.prompts.templates import get_prompt, get_system_prompt, list_prompts

__all__ = ["get_prompt", "get_system_prompt", "list_prompts"]
