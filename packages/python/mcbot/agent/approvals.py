"""
Pending tool approvals: the payload embedded in the approve/deny buttons, the prompt text,
and the free-text decision vocabulary.

The encoded payload is the only record of a suspended agent turn. It travels inside the
Slack message that asks for approval and is recovered from the button value, or by
re-scanning that message's blocks.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

APPROVE_ACTION_ID = "tool_approval_approve"
DENY_ACTION_ID = "tool_approval_deny"
APPROVAL_ACTION_IDS: frozenset[str] = frozenset({APPROVE_ACTION_ID, DENY_ACTION_ID})

APPROVE_WORDS: frozenset[str] = frozenset({
    "approve", "approve all", "yes", "y", "ok", "okay", "allow", "run", "go ahead",
})
DENY_WORDS: frozenset[str] = frozenset({
    "deny", "deny all", "no", "n", "reject", "stop", "cancel",
})

APPROVAL_PROMPT_HEADER = "Tool approval required:"


class ToolCall(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tool_call_id: str = Field(alias="toolCallId")
    tool_name: str = Field(alias="toolName")
    input: Any = None


class PendingApproval(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    approval_id: str = Field(alias="approvalId")
    tool_call: ToolCall = Field(alias="toolCall")


class ApprovalPayload(BaseModel):
    approvals: list[PendingApproval]


@dataclass(frozen=True)
class ApprovalDecision:
    approved: bool
    reason: str | None = None


def encode_approval_payload(approvals: list[PendingApproval]) -> str:
    """Serialize approvals as {"approvals": [...]} with camelCase keys."""
    return ApprovalPayload(approvals=approvals).model_dump_json(by_alias=True)


def decode_approval_payload(value: Any) -> ApprovalPayload | None:
    """Parse an encoded payload. Returns None for anything malformed; never raises."""
    if not isinstance(value, (str, bytes)) or not value:
        return None
    try:
        return ApprovalPayload.model_validate_json(value)
    except ValidationError:
        return None


def extract_approval_payload_from_blocks(blocks: Any) -> ApprovalPayload | None:
    """Find the first approve/deny button in an actions block whose value decodes."""
    if not isinstance(blocks, list):
        return None
    for block in blocks:
        if not isinstance(block, dict) or block.get("type") != "actions":
            continue
        elements = block.get("elements")
        if not isinstance(elements, list):
            continue
        for element in elements:
            if not isinstance(element, dict):
                continue
            if element.get("action_id") not in APPROVAL_ACTION_IDS:
                continue
            payload = decode_approval_payload(element.get("value"))
            if payload:
                return payload
    return None


def collect_tool_approval_requests(messages: list[dict]) -> list[PendingApproval]:
    """
    Pair each tool-approval-request part with the latest tool-call part seen before it
    that has the same toolCallId.
    """
    tool_calls_by_id: dict[str, ToolCall] = {}
    approvals: list[PendingApproval] = []
    for message in messages:
        content = message.get("content")
        if message.get("role") != "assistant" or not isinstance(content, list):
            continue
        for part in content:
            if not isinstance(part, dict):
                continue
            if part.get("type") == "tool-call":
                tool_calls_by_id[part["toolCallId"]] = ToolCall(
                    tool_call_id=part["toolCallId"],
                    tool_name=part["toolName"],
                    input=part.get("input"),
                )
            elif part.get("type") == "tool-approval-request":
                tool_call_id = part["toolCallId"]
                tool_call = tool_calls_by_id.get(tool_call_id)
                if tool_call is None:
                    logger.warning(f"Approval request {part['approvalId']} references unknown tool call {tool_call_id}")
                    tool_call = ToolCall(
                        tool_call_id=tool_call_id,
                        tool_name="unknown",
                        input={"toolCallId": tool_call_id},
                    )
                approvals.append(PendingApproval(approval_id=part["approvalId"], tool_call=tool_call))
    return approvals


def _safe_stringify(value: Any) -> str:
    try:
        return json.dumps(value, indent=2, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(value)


def format_approval_prompt(pending: list[PendingApproval]) -> str:
    lines = [
        f"`{approval.tool_call.tool_name}`\n```{_safe_stringify(approval.tool_call.input)}```"
        for approval in pending
    ]
    return "\n".join([APPROVAL_PROMPT_HEADER, *lines])


def parse_approval_decision(
    text: str | None,
    approve_words: frozenset[str] = APPROVE_WORDS,
    deny_words: frozenset[str] = DENY_WORDS,
) -> ApprovalDecision | None:
    """
    Exact, case-insensitive match against the fixed vocabulary.
    A denial carries the normalized word as its reason. Anything else -> None.
    """
    normalized = (text or "").strip().lower()
    if not normalized:
        return None
    if normalized in approve_words:
        return ApprovalDecision(approved=True)
    if normalized in deny_words:
        return ApprovalDecision(approved=False, reason=normalized)
    return None
