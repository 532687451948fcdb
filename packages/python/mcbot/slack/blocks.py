"""
Block Kit rendering for agent replies, approval prompts and resolved approvals.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import mcbot as mc

logger = logging.getLogger(__name__)

# Slack limits
SECTION_TEXT_LIMIT = 3000
BUTTON_VALUE_LIMIT = 2000

EMPTY_REPLY_TEXT = "_No response._"


@dataclass
class RenderedResponse:
    text: str
    blocks: list[dict]


def _chunks(text: str, size: int) -> list[str]:
    return [text[i:i + size] for i in range(0, len(text), size)]


def build_text_blocks(text: str) -> list[dict]:
    """One mrkdwn section per SECTION_TEXT_LIMIT characters of text."""
    return [
        {"type": "section", "text": {"type": "mrkdwn", "text": chunk}}
        for chunk in _chunks(text, SECTION_TEXT_LIMIT)
    ]


def build_approval_blocks(text: str, payload_value: str) -> list[dict]:
    """The prompt text followed by approve/deny buttons carrying the same payload."""
    if len(payload_value) > BUTTON_VALUE_LIMIT:
        logger.warning(
            f"Approval payload is {len(payload_value)} chars, over Slack's {BUTTON_VALUE_LIMIT} char button limit"
        )
    return [
        *build_text_blocks(text),
        {
            "type": "actions",
            "elements": [
                {
                    "type": "button",
                    "text": {"type": "plain_text", "text": "Approve"},
                    "style": "primary",
                    "action_id": mc.agent.APPROVE_ACTION_ID,
                    "value": payload_value,
                },
                {
                    "type": "button",
                    "text": {"type": "plain_text", "text": "Deny"},
                    "style": "danger",
                    "action_id": mc.agent.DENY_ACTION_ID,
                    "value": payload_value,
                },
            ],
        },
    ]


def format_tool_call_status(tool_calls: list[dict]) -> str:
    names = list(dict.fromkeys(call.get("toolName", "") for call in tool_calls))
    return f"Tool called: {', '.join(names)}"


def append_tool_status_to_text(text: str, status: str) -> str:
    if not text.strip():
        return f"_{status}_"
    return f"{text}\n\n_{status}_"


def append_tool_status_to_blocks(blocks: list[dict], status: str) -> list[dict]:
    return [
        *blocks,
        {"type": "context", "elements": [{"type": "mrkdwn", "text": f"_{status}_"}]},
    ]


def _is_approval_actions_block(block: Any) -> bool:
    if not isinstance(block, dict) or block.get("type") != "actions":
        return False
    return any(
        isinstance(element, dict) and element.get("action_id") in (mc.agent.APPROVE_ACTION_ID, mc.agent.DENY_ACTION_ID)
        for element in block.get("elements") or []
    )


def build_resolved_approval_blocks(blocks: list[dict], approved: bool, user_id: str | None) -> list[dict]:
    """
    The approval message with its buttons removed and a line recording the decision.
    Without the buttons the payload can no longer be recovered from this message.
    """
    kept = [block for block in blocks if not _is_approval_actions_block(block)]
    verdict = ":white_check_mark: Approved" if approved else ":no_entry_sign: Denied"
    line = f"{verdict} by <@{user_id}>" if user_id else verdict
    return [*kept, {"type": "context", "elements": [{"type": "mrkdwn", "text": line}]}]


def render_agent_result(result: "mc.agent.AgentResult", include_reply_text_with_approvals: bool) -> RenderedResponse:
    """
    Text and blocks for an agent result. A suspended result renders the approval prompt
    (prefixed with the reply text when include_reply_text_with_approvals is set);
    a complete result renders the reply text. Either way the tool status line is appended
    when tools were called.
    """
    status = format_tool_call_status(result.tool_calls) if result.tool_calls else ""
    reply_text = (result.text or "").strip()

    if result.suspended:
        prompt = mc.agent.format_approval_prompt(result.approvals)
        text = f"{reply_text}\n\n{prompt}" if include_reply_text_with_approvals and reply_text else prompt
        blocks = build_approval_blocks(text, mc.agent.encode_approval_payload(result.approvals))
    else:
        text = reply_text
        if not text and not status:
            text = EMPTY_REPLY_TEXT
        blocks = build_text_blocks(text)

    if status:
        text = append_tool_status_to_text(text, status)
        blocks = append_tool_status_to_blocks(blocks, status)
    return RenderedResponse(text=text, blocks=blocks)
