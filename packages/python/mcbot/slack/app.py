"""
Bolt app wiring: event logging middleware, message / app_mention listeners and the
approve / deny button actions.
"""
from __future__ import annotations

import json
import logging

from slack_bolt.async_app import AsyncApp
from slack_sdk.web.async_client import AsyncWebClient

import mcbot as mc

from .events import SlackMessageEvent, parse_approval_action, parse_inbound_event, should_respond_to_message
from .respond import (
    DENIED_BY_USER_REASON,
    ERROR_REPLY,
    BotContext,
    handle_tool_approval_action,
    post_message,
    respond_with_llm,
)

logger = logging.getLogger(__name__)


async def _notify_failure(client: AsyncWebClient, channel: str | None, thread_ts: str | None) -> None:
    if not channel:
        return
    try:
        await post_message(client, channel, thread_ts, ERROR_REPLY)
    except Exception as e:
        logger.warning(f"Could not post error reply in {channel}: {e}")


async def handle_inbound_event(event: dict, client: AsyncWebClient, ctx: BotContext) -> None:
    """Parse a message / app_mention event and answer it. Errors are logged and reported in Slack."""
    parsed = parse_inbound_event(event)
    if parsed is None:
        return
    if isinstance(parsed, SlackMessageEvent) and not should_respond_to_message(parsed):
        return
    try:
        await respond_with_llm(parsed, client, ctx)
    except Exception as e:
        logger.exception(f"Error responding to {parsed.type} in {parsed.channel}: {e}")
        await _notify_failure(client, parsed.channel, parsed.thread_ts)


async def handle_approval_body(body: dict, client: AsyncWebClient, ctx: BotContext, approved: bool) -> None:
    action = parse_approval_action(body)
    if action is None:
        return
    try:
        await handle_tool_approval_action(
            action, client, ctx, approved=approved, reason=None if approved else DENIED_BY_USER_REASON
        )
    except Exception as e:
        logger.exception(f"Error handling approval action {action.action_id}: {e}")
        await _notify_failure(client, action.channel, action.thread_ts)


def create_app(config: "mc.common.BotConfig", ctx: BotContext) -> AsyncApp:
    """Build the AsyncApp. Run it with AsyncSocketModeHandler (see mcbot.main)."""
    app = AsyncApp(token=config.slack_bot_token)

    @app.middleware
    async def log_event(body: dict, next):
        event = body.get("event")
        if isinstance(event, dict):
            event_log = {"type": event.get("type"), "text": event.get("text")}
            if event.get("channel_type"):
                event_log["channel_type"] = event.get("channel_type")
                event_log["thread_ts"] = event.get("thread_ts")
            logger.info(f"New event {json.dumps(event_log)}")
        await next()

    @app.event("message")
    async def handle_message(event: dict, client: AsyncWebClient):
        await handle_inbound_event(event, client, ctx)

    @app.event("app_mention")
    async def handle_mention(event: dict, client: AsyncWebClient):
        await handle_inbound_event(event, client, ctx)

    @app.action(mc.agent.APPROVE_ACTION_ID)
    async def handle_approve(ack, body: dict, client: AsyncWebClient):
        await ack()
        await handle_approval_body(body, client, ctx, approved=True)

    @app.action(mc.agent.DENY_ACTION_ID)
    async def handle_deny(ack, body: dict, client: AsyncWebClient):
        await ack()
        await handle_approval_body(body, client, ctx, approved=False)

    return app
