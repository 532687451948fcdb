"""
Core agent loop: bounded multi-step generation -> tool calls -> suspend on approval or complete.
Used by the new-message path and, via resume_agent_loop, by approval decisions.

Nothing is kept in memory between a suspend and its resume: the pending approvals travel in
the Slack message, and resume_agent_loop rebuilds the model context from them.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Literal

import mcbot as mc

from .approvals import PendingApproval, collect_tool_approval_requests
from .system_prompt import build_system_message
from .tool_registry import ToolSet

logger = logging.getLogger(__name__)

MAX_STEPS = 20


@dataclass
class AgentResult:
    status: Literal["complete", "suspend"]
    text: str
    approvals: list[PendingApproval] = field(default_factory=list)
    tool_calls: list[dict] = field(default_factory=list)
    step_count: int = 0

    @property
    def suspended(self) -> bool:
        return self.status == "suspend"


def _assistant_parts(messages: list[dict]):
    for message in messages:
        content = message.get("content")
        if message.get("role") != "assistant" or not isinstance(content, list):
            continue
        for part in content:
            if isinstance(part, dict):
                yield part


def collect_tool_calls(messages: list[dict]) -> list[dict]:
    return [part for part in _assistant_parts(messages) if part.get("type") == "tool-call"]


def log_tool_calls(messages: list[dict]) -> None:
    """Audit record for every tool call in a step trace."""
    for part in collect_tool_calls(messages):
        logger.info(
            f"Tool call requested: tool_name={part.get('toolName')} "
            f"tool_call_id={part.get('toolCallId')} input={part.get('input')!r}"
        )


async def run_agent_loop(
    messages: list[dict],
    model: str,
    api_key: str,
    tools: ToolSet | None = None,
    system: str | None = None,
    max_steps: int = MAX_STEPS,
    on_step_finish=None,
) -> AgentResult:
    """
    Run one bounded generation. Returns a suspend result if any tool call is waiting for
    approval, otherwise a complete result with the final text. Hitting max_steps is not
    distinguished from finishing naturally. LLM and tool errors propagate.
    """
    result = await mc.llm.generate_text(
        model=model,
        messages=messages,
        api_key=api_key,
        system=system if system is not None else build_system_message(tools),
        tools=tools,
        max_steps=max_steps,
        on_step_finish=on_step_finish,
    )
    trace = result.response_messages
    log_tool_calls(trace)
    tool_calls = collect_tool_calls(trace)
    pending = collect_tool_approval_requests(trace)
    if pending:
        logger.info(f"Agent loop suspended with {len(pending)} pending approval(s)")
        return AgentResult(
            status="suspend",
            text=result.text,
            approvals=pending,
            tool_calls=tool_calls,
            step_count=len(result.steps),
        )
    return AgentResult(
        status="complete",
        text=result.text,
        tool_calls=tool_calls,
        step_count=len(result.steps),
    )


def build_continuation_frame(
    approvals: list[PendingApproval],
    approved: bool,
    reason: str | None = None,
) -> list[dict]:
    """
    The assistant turn that asked for approval (tool-call + tool-approval-request per
    approval) followed by a tool turn with one approval response per approval.
    Same shape as the trace generate_text emits when it suspends.
    """
    assistant_content: list[dict] = []
    for approval in approvals:
        assistant_content.append({
            "type": "tool-call",
            "toolCallId": approval.tool_call.tool_call_id,
            "toolName": approval.tool_call.tool_name,
            "input": approval.tool_call.input,
        })
        assistant_content.append({
            "type": "tool-approval-request",
            "approvalId": approval.approval_id,
            "toolCallId": approval.tool_call.tool_call_id,
        })

    responses = []
    for approval in approvals:
        response = {
            "type": "tool-approval-response",
            "approvalId": approval.approval_id,
            "approved": approved,
        }
        if reason is not None:
            response["reason"] = reason
        responses.append(response)

    return [
        {"role": "assistant", "content": assistant_content},
        {"role": "tool", "content": responses},
    ]


async def resume_agent_loop(
    messages: list[dict],
    approvals: list[PendingApproval],
    approved: bool,
    model: str,
    api_key: str,
    reason: str | None = None,
    tools: ToolSet | None = None,
    system: str | None = None,
    max_steps: int = MAX_STEPS,
    on_step_finish=None,
) -> AgentResult:
    """
    Continue a suspended turn. messages is the conversation rebuilt from the transcript;
    every approval in the batch gets the same decision. May suspend again.
    """
    logger.info(
        f"Resuming agent loop: {len(approvals)} approval(s) {'approved' if approved else 'denied'}"
    )
    frame = build_continuation_frame(approvals, approved, reason)
    return await run_agent_loop(
        [*messages, *frame],
        model=model,
        api_key=api_key,
        tools=tools,
        system=system,
        max_steps=max_steps,
        on_step_finish=on_step_finish,
    )
