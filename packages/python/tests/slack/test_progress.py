"""Tests for the best-effort progress message."""
import pytest

from mcbot.llm.generate import StepResult
from mcbot.slack.progress import DONE_TEXT, ERROR_TEXT, IN_PROGRESS_TEXT, ProgressReporter


def _step(number, *tool_names):
    return StepResult(
        step_number=number,
        text="",
        tool_calls=[{"type": "tool-call", "toolCallId": f"c{i}", "toolName": n, "input": {}} for i, n in enumerate(tool_names)],
    )


@pytest.mark.asyncio
async def test_single_step_without_tools_deletes_message(slack_client):
    reporter = ProgressReporter(slack_client, "C1", "1.0")
    reporter.start()
    reporter.on_step(_step(1))
    await reporter.finish()
    slack_client.chat_postMessage.assert_awaited_once_with(channel="C1", text=IN_PROGRESS_TEXT, thread_ts="1.0")
    slack_client.chat_delete.assert_awaited_once_with(channel="C1", ts="999.1")
    slack_client.chat_update.assert_not_awaited()


@pytest.mark.asyncio
async def test_single_step_with_tool_call_still_deletes(slack_client):
    reporter = ProgressReporter(slack_client, "C1")
    reporter.start()
    reporter.on_step(_step(1, "run_playbook"))
    await reporter.finish()
    slack_client.chat_delete.assert_awaited_once()


@pytest.mark.asyncio
async def test_multi_step_with_tools_is_finalized(slack_client):
    reporter = ProgressReporter(slack_client, "C1", "1.0")
    reporter.start()
    reporter.on_step(_step(1, "search_catalog", "search_catalog", "describe_catalog"))
    reporter.on_step(_step(2))
    await reporter.finish()
    slack_client.chat_delete.assert_not_awaited()
    first_update, final_update = slack_client.chat_update.await_args_list
    assert first_update.kwargs["text"].startswith(IN_PROGRESS_TEXT)
    assert "`search_catalog`, `describe_catalog`" in first_update.kwargs["text"]
    assert final_update.kwargs == {
        "channel": "C1",
        "ts": "999.1",
        "text": f"{DONE_TEXT}\n• Step 1: `search_catalog`, `describe_catalog`",
    }


@pytest.mark.asyncio
async def test_error_state(slack_client):
    reporter = ProgressReporter(slack_client, "C1")
    reporter.start()
    reporter.on_step(_step(1, "search_catalog"))
    reporter.on_step(_step(2, "run_playbook"))
    await reporter.finish(error=True)
    assert slack_client.chat_update.await_args.kwargs["text"].startswith(ERROR_TEXT)


@pytest.mark.asyncio
async def test_failures_are_swallowed(slack_client):
    slack_client.chat_postMessage.side_effect = Exception("channel_not_found")
    reporter = ProgressReporter(slack_client, "C1")
    reporter.start()
    reporter.on_step(_step(1, "a"))
    reporter.on_step(_step(2, "b"))
    await reporter.finish()
    slack_client.chat_update.assert_not_awaited()
    slack_client.chat_delete.assert_not_awaited()


@pytest.mark.asyncio
async def test_update_failures_are_swallowed(slack_client):
    slack_client.chat_update.side_effect = Exception("rate_limited")
    reporter = ProgressReporter(slack_client, "C1")
    reporter.start()
    reporter.on_step(_step(1, "a"))
    reporter.on_step(_step(2, "b"))
    await reporter.finish()
    assert slack_client.chat_update.await_count == 3


@pytest.mark.asyncio
async def test_finish_without_start_is_a_no_op(slack_client):
    reporter = ProgressReporter(slack_client, "C1")
    await reporter.finish()
    slack_client.chat_delete.assert_not_awaited()
