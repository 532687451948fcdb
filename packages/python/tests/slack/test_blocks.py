"""Tests for Block Kit rendering."""
import logging

from mcbot.agent.agent_loop import AgentResult
from mcbot.agent.approvals import (
    PendingApproval,
    ToolCall,
    decode_approval_payload,
    encode_approval_payload,
    extract_approval_payload_from_blocks,
)
from mcbot.slack.blocks import (
    SECTION_TEXT_LIMIT,
    append_tool_status_to_text,
    build_approval_blocks,
    build_resolved_approval_blocks,
    build_text_blocks,
    format_tool_call_status,
    render_agent_result,
)
from mcbot.slack.transcript import extract_text_from_blocks

APPROVALS = [
    PendingApproval(approval_id="A1", tool_call=ToolCall(tool_call_id="T1", tool_name="run_playbook", input={"id": "pb-1"})),
]


def test_approval_buttons_carry_the_same_payload():
    payload = encode_approval_payload(APPROVALS)
    blocks = build_approval_blocks("Tool approval required:", payload)
    assert blocks[0] == {"type": "section", "text": {"type": "mrkdwn", "text": "Tool approval required:"}}
    approve, deny = blocks[-1]["elements"]
    assert (approve["action_id"], approve["style"]) == ("tool_approval_approve", "primary")
    assert (deny["action_id"], deny["style"]) == ("tool_approval_deny", "danger")
    assert decode_approval_payload(approve["value"]) == decode_approval_payload(deny["value"])
    assert extract_approval_payload_from_blocks(blocks).approvals == APPROVALS


def test_oversize_payload_logs_warning(caplog):
    with caplog.at_level(logging.WARNING):
        build_approval_blocks("x", "v" * 2500)
    assert "button limit" in caplog.text


def test_long_text_is_split_into_sections():
    blocks = build_text_blocks("a" * (SECTION_TEXT_LIMIT + 10))
    assert [len(b["text"]["text"]) for b in blocks] == [SECTION_TEXT_LIMIT, 10]


def test_format_tool_call_status_unique_names_in_order():
    calls = [{"toolName": "search_catalog"}, {"toolName": "describe_catalog"}, {"toolName": "search_catalog"}]
    assert format_tool_call_status(calls) == "Tool called: search_catalog, describe_catalog"


def test_append_tool_status_to_text():
    assert append_tool_status_to_text("Done.", "Tool called: a") == "Done.\n\n_Tool called: a_"
    assert append_tool_status_to_text("  ", "Tool called: a") == "_Tool called: a_"


def test_render_complete_result_with_status():
    result = AgentResult(status="complete", text="nginx is healthy.", tool_calls=[{"toolName": "search_catalog"}])
    rendered = render_agent_result(result, include_reply_text_with_approvals=True)
    assert rendered.text == "nginx is healthy.\n\n_Tool called: search_catalog_"
    assert rendered.blocks[0]["text"]["text"] == "nginx is healthy."
    assert rendered.blocks[-1] == {"type": "context", "elements": [{"type": "mrkdwn", "text": "_Tool called: search_catalog_"}]}


def test_render_complete_result_without_tools():
    rendered = render_agent_result(AgentResult(status="complete", text="Hi!"), include_reply_text_with_approvals=True)
    assert rendered.text == "Hi!"
    assert rendered.blocks == build_text_blocks("Hi!")


def test_render_empty_reply_has_fallback_text():
    rendered = render_agent_result(AgentResult(status="complete", text=""), include_reply_text_with_approvals=True)
    assert rendered.text
    assert rendered.blocks


def test_render_suspend_includes_reply_text_on_new_messages():
    result = AgentResult(status="suspend", text="I need to run a playbook.", approvals=APPROVALS, tool_calls=[{"toolName": "run_playbook"}])
    rendered = render_agent_result(result, include_reply_text_with_approvals=True)
    assert rendered.text.startswith("I need to run a playbook.\n\nTool approval required:")
    assert rendered.text.endswith("_Tool called: run_playbook_")
    assert extract_approval_payload_from_blocks(rendered.blocks).approvals == APPROVALS


def test_render_suspend_on_resume_shows_only_prompt():
    result = AgentResult(status="suspend", text="I need to run a playbook.", approvals=APPROVALS)
    rendered = render_agent_result(result, include_reply_text_with_approvals=False)
    assert rendered.text.startswith("Tool approval required:")
    assert "I need to run a playbook." not in rendered.text


def test_resolved_approval_blocks_drop_buttons():
    blocks = build_approval_blocks("Tool approval required:", encode_approval_payload(APPROVALS))
    blocks.append({"type": "actions", "elements": [{"type": "button", "action_id": "open_docs", "text": {"type": "plain_text", "text": "Docs"}}]})
    resolved = build_resolved_approval_blocks(blocks, approved=False, user_id="U1")
    assert extract_approval_payload_from_blocks(resolved) is None
    assert resolved[0] == blocks[0]
    assert resolved[1]["elements"][0]["action_id"] == "open_docs"
    assert resolved[-1]["elements"][0]["text"] == ":no_entry_sign: Denied by <@U1>"
    assert extract_text_from_blocks(resolved).startswith("Tool approval required:")
