"""
Builds the system message for the Slack agent: role, formatting rules, and the approval note.
"""
from __future__ import annotations

from .tool_registry import ToolSet

BASE_PROMPT = """You are a Slack bot assigned to work as a customer service for Flanksource's Mission Control customers.
Flanksource Mission Control is an Internal Developer Platform that helps teams improve developer productivity and operational resilience.

Format responses using Slack mrkdwn.
Avoid Markdown features Slack doesn't support, like # headers."""


def build_system_message(tools: ToolSet | None = None) -> str:
    parts = [BASE_PROMPT]
    if tools:
        gated = sorted(name for name, tool in tools.items() if tool.needs_approval)
        if gated:
            parts.append("")
            parts.append(
                "Some tools change state and require a human to approve each call before it runs: "
                + ", ".join(gated)
                + ". If a call is denied, do not retry it; explain what you would have done instead."
            )
    return "\n".join(parts)
