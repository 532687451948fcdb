# Agent: approval-gated tool loop, approval payloads, tools, system prompt.
# Used by mcbot.slack (event handlers) and mcbot.main (MCP wiring).

from .agent_loop import (
    AgentResult,
    build_continuation_frame,
    collect_tool_calls,
    resume_agent_loop,
    run_agent_loop,
)
from .approvals import (
    APPROVE_ACTION_ID,
    DENY_ACTION_ID,
    ApprovalDecision,
    ApprovalPayload,
    PendingApproval,
    ToolCall,
    collect_tool_approval_requests,
    decode_approval_payload,
    encode_approval_payload,
    extract_approval_payload_from_blocks,
    format_approval_prompt,
    parse_approval_decision,
)
from .mcp_tools import connect_mcp_tools
from .system_prompt import build_system_message
from .tool_registry import Tool, ToolSet, execute_tool, requires_approval, wrap_tools_with_approval
from . import tool_registry

__all__ = [
    "AgentResult",
    "build_continuation_frame",
    "collect_tool_calls",
    "resume_agent_loop",
    "run_agent_loop",
    "APPROVE_ACTION_ID",
    "DENY_ACTION_ID",
    "ApprovalDecision",
    "ApprovalPayload",
    "PendingApproval",
    "ToolCall",
    "collect_tool_approval_requests",
    "decode_approval_payload",
    "encode_approval_payload",
    "extract_approval_payload_from_blocks",
    "format_approval_prompt",
    "parse_approval_decision",
    "connect_mcp_tools",
    "build_system_message",
    "Tool",
    "ToolSet",
    "execute_tool",
    "requires_approval",
    "wrap_tools_with_approval",
    "tool_registry",
]
