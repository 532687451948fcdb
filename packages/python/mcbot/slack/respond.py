"""
Handlers behind the Slack listeners: answer a message with the agent loop, and resume a
suspended loop when someone approves or denies its tool calls.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from slack_sdk.web.async_client import AsyncWebClient

import mcbot as mc

from .blocks import RenderedResponse, build_resolved_approval_blocks, render_agent_result
from .conversation import (
    CHANNEL_HISTORY_LIMIT,
    THREAD_HISTORY_LIMIT,
    build_conversation,
    drop_trailing_user_message,
    find_latest_approval_payload,
    replace_bot_mention,
    strip_bot_mention,
)
from .events import AppMentionEvent, ApprovalActionEvent, SlackMessageEvent
from .progress import ProgressReporter
from .transcript import extract_text_from_blocks

logger = logging.getLogger(__name__)

PROCESSING_REACTION = "eyes"
EMPTY_MESSAGE_REPLY = "Please send some text."
NO_PENDING_APPROVALS_TEXT = "No pending tool approvals found for this thread."
DENIED_BY_USER_REASON = "Denied by user"
ERROR_REPLY = "Sorry, something went wrong while processing your request."


@dataclass
class BotContext:
    """Everything a handler needs besides the event and the Slack client."""

    bot_user_id: str
    model: str
    api_key: str
    tools: "mc.agent.ToolSet | None" = None
    max_steps: int = 20
    thread_history_limit: int = THREAD_HISTORY_LIMIT
    channel_history_limit: int = CHANNEL_HISTORY_LIMIT

    @classmethod
    def from_config(cls, config: "mc.common.BotConfig", bot_user_id: str, tools=None) -> "BotContext":
        return cls(
            bot_user_id=bot_user_id,
            model=config.llm_model,
            api_key=config.llm_api_key,
            tools=tools,
            max_steps=config.max_steps,
            thread_history_limit=config.thread_history_limit,
            channel_history_limit=config.channel_history_limit,
        )


async def _add_reaction(client: AsyncWebClient, channel: str, ts: str) -> None:
    try:
        await client.reactions_add(channel=channel, name=PROCESSING_REACTION, timestamp=ts)
    except Exception as e:
        logger.warning(f"Could not add {PROCESSING_REACTION} reaction to {ts}: {e}")


async def _remove_reaction(client: AsyncWebClient, channel: str, ts: str) -> None:
    try:
        await client.reactions_remove(channel=channel, name=PROCESSING_REACTION, timestamp=ts)
    except Exception as e:
        logger.warning(f"Could not remove {PROCESSING_REACTION} reaction from {ts}: {e}")


async def post_message(
    client: AsyncWebClient,
    channel: str,
    thread_ts: str | None,
    text: str,
    blocks: list[dict] | None = None,
):
    kwargs = {"channel": channel, "text": text}
    if thread_ts:
        kwargs["thread_ts"] = thread_ts
    if blocks:
        kwargs["blocks"] = blocks
    return await client.chat_postMessage(**kwargs)


async def post_response(
    client: AsyncWebClient,
    channel: str,
    thread_ts: str | None,
    response: RenderedResponse,
):
    return await post_message(client, channel, thread_ts, response.text, response.blocks)


async def mark_approval_consumed(
    client: AsyncWebClient,
    channel: str,
    message_ts: str | None,
    message_text: str,
    blocks: list,
    approved: bool,
    user_id: str | None,
) -> None:
    """Rewrite the approval message without its buttons. Failures are logged only."""
    if not message_ts:
        return
    try:
        await client.chat_update(
            channel=channel,
            ts=message_ts,
            text=message_text or "Tool approval",
            blocks=build_resolved_approval_blocks(blocks or [], approved, user_id),
        )
    except Exception as e:
        logger.warning(f"Could not mark approval message {message_ts} as resolved: {e}")


async def run_with_progress(
    client: AsyncWebClient,
    channel: str,
    thread_ts: str | None,
    run: Callable[[Callable], Awaitable["mc.agent.AgentResult"]],
    include_reply_text_with_approvals: bool,
) -> "mc.agent.AgentResult":
    """
    Run an agent loop with a progress message, then post its rendered result.
    Loop or posting errors finalize the progress message as failed and propagate.
    """
    reporter = ProgressReporter(client, channel, thread_ts)
    reporter.start()
    try:
        result = await run(reporter.on_step)
        await post_response(
            client, channel, thread_ts, render_agent_result(result, include_reply_text_with_approvals)
        )
    except Exception:
        await reporter.finish(error=True)
        raise
    await reporter.finish()
    return result


async def resume_with_decision(
    client: AsyncWebClient,
    ctx: BotContext,
    channel: str,
    thread_ts: str | None,
    messages: list[dict],
    approvals: list,
    approved: bool,
    reason: str | None,
) -> "mc.agent.AgentResult":
    async def run(on_step):
        return await mc.agent.resume_agent_loop(
            messages,
            approvals,
            approved,
            model=ctx.model,
            api_key=ctx.api_key,
            reason=reason,
            tools=ctx.tools,
            max_steps=ctx.max_steps,
            on_step_finish=on_step,
        )

    return await run_with_progress(
        client, channel, thread_ts, run, include_reply_text_with_approvals=False
    )


async def _try_free_text_decision(
    event: SlackMessageEvent | AppMentionEvent,
    client: AsyncWebClient,
    ctx: BotContext,
    text: str,
) -> bool:
    """Resume the newest pending approval if text is a decision. Returns True if handled."""
    decision = mc.agent.parse_approval_decision(strip_bot_mention(text, ctx.bot_user_id))
    if decision is None:
        return False

    found = await find_latest_approval_payload(
        client,
        event.channel,
        event.thread_ts,
        ctx.bot_user_id,
        thread_limit=ctx.thread_history_limit,
        channel_limit=ctx.channel_history_limit,
    )
    if found is None:
        logger.info(f"Decision text in {event.channel} but no pending approval; treating as a message")
        return False

    logger.info(
        f"Free-text decision approved={decision.approved} for {len(found.payload.approvals)} approval(s)"
    )
    messages = await build_conversation(
        client,
        event.channel,
        event.thread_ts,
        ctx.bot_user_id,
        text,
        include_current_text=False,
        exclude_ts=event.ts,
        use_channel_history=True,
        thread_limit=ctx.thread_history_limit,
        channel_limit=ctx.channel_history_limit,
    )
    messages = drop_trailing_user_message(messages, replace_bot_mention(text, ctx.bot_user_id))
    await resume_with_decision(
        client,
        ctx,
        event.channel,
        event.thread_ts,
        messages,
        found.payload.approvals,
        decision.approved,
        decision.reason,
    )
    await mark_approval_consumed(
        client,
        event.channel,
        found.message.get("ts"),
        found.message.get("text") or "",
        found.message.get("blocks") or [],
        decision.approved,
        event.user,
    )
    return True


async def respond_with_llm(
    event: SlackMessageEvent | AppMentionEvent,
    client: AsyncWebClient,
    ctx: BotContext,
) -> None:
    """
    Answer a direct message or mention. Decision words ("yes", "deny", ...) resume the
    latest pending approval when there is one. The eyes reaction is removed on every exit.
    """
    channel = event.channel
    thread_ts = event.thread_ts
    logger.info(f"New message in {channel} from {event.user} (thread_ts={thread_ts})")

    await _add_reaction(client, channel, event.ts)
    try:
        text = (event.text or extract_text_from_blocks(event.blocks)).strip()
        if not strip_bot_mention(text, ctx.bot_user_id):
            await post_message(client, channel, thread_ts, EMPTY_MESSAGE_REPLY)
            return

        if await _try_free_text_decision(event, client, ctx, text):
            return

        messages = await build_conversation(
            client,
            channel,
            thread_ts,
            ctx.bot_user_id,
            text,
            current_ts=event.ts,
            thread_limit=ctx.thread_history_limit,
            channel_limit=ctx.channel_history_limit,
        )

        async def run(on_step):
            return await mc.agent.run_agent_loop(
                messages,
                model=ctx.model,
                api_key=ctx.api_key,
                tools=ctx.tools,
                max_steps=ctx.max_steps,
                on_step_finish=on_step,
            )

        await run_with_progress(client, channel, thread_ts, run, include_reply_text_with_approvals=True)
    finally:
        await _remove_reaction(client, channel, event.ts)


async def handle_tool_approval_action(
    action: ApprovalActionEvent,
    client: AsyncWebClient,
    ctx: BotContext,
    approved: bool,
    reason: str | None = None,
) -> None:
    """Resume the loop from an approve/deny button click."""
    channel = action.channel
    thread_ts = action.thread_ts
    if not channel:
        logger.warning("Approval action missing channel")
        return

    payload = mc.agent.decode_approval_payload(action.value) or mc.agent.extract_approval_payload_from_blocks(
        action.message_blocks
    )
    if not payload or not payload.approvals:
        logger.info(f"No recoverable approval payload in {channel} (message_ts={action.message_ts})")
        await post_message(client, channel, thread_ts, NO_PENDING_APPROVALS_TEXT)
        return

    logger.info(
        f"Approval action {action.action_id} by {action.user_id} for {len(payload.approvals)} approval(s)"
    )
    messages = await build_conversation(
        client,
        channel,
        thread_ts,
        ctx.bot_user_id,
        action.message_text,
        include_current_text=False,
        use_channel_history=True,
        thread_limit=ctx.thread_history_limit,
        channel_limit=ctx.channel_history_limit,
    )
    await resume_with_decision(client, ctx, channel, thread_ts, messages, payload.approvals, approved, reason)
    await mark_approval_consumed(
        client, channel, action.message_ts, action.message_text, action.message_blocks, approved, action.user_id
    )
