"""
Rebuild the model conversation from Slack history.

The thread (or, without a thread, recent channel history) is the only record of what
was said, including the pending approval payloads the bot posted.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

from slack_sdk.web.async_client import AsyncWebClient

import mcbot as mc

from .transcript import extract_text_from_blocks, merge_message_text

logger = logging.getLogger(__name__)

BOT_MENTION_PLACEHOLDER = "@assistant"
THREAD_HISTORY_LIMIT = 150
CHANNEL_HISTORY_LIMIT = 20


@dataclass
class FoundApproval:
    payload: "mc.agent.ApprovalPayload"
    message: dict


def replace_bot_mention(text: str, bot_user_id: str | None) -> str:
    if not bot_user_id:
        return text
    return text.replace(f"<@{bot_user_id}>", BOT_MENTION_PLACEHOLDER)


def strip_bot_mention(text: str, bot_user_id: str | None) -> str:
    """Remove the bot mention (and the space after it) from a message, for decision parsing."""
    if not bot_user_id:
        return text.strip()
    return re.sub(rf"<@{re.escape(bot_user_id)}>\s*", "", text).strip()


def message_text_of(msg: dict[str, Any]) -> str:
    """Text of one Slack message: block text merged with the plain text field."""
    return merge_message_text(extract_text_from_blocks(msg.get("blocks")), (msg.get("text") or "").strip())


def _is_bot_message(msg: dict, bot_user_id: str | None) -> bool:
    return bool(msg.get("bot_id")) or (bot_user_id is not None and msg.get("user") == bot_user_id)


def build_messages_from_slack(
    slack_messages: list[dict],
    bot_user_id: str | None,
    current_text: str | None = None,
    current_ts: str | None = None,
    exclude_ts: str | None = None,
) -> list[dict]:
    """
    Convert fetched Slack messages (oldest first) into user/assistant messages.

    Args:
        slack_messages: messages as returned by conversations.replies / history
        bot_user_id: the bot's own user id; its messages become assistant turns
        current_text: the triggering text, appended unless it is already the last user turn
        current_ts: ts of the triggering message; if it is in the history, it is not appended again
        exclude_ts: ts of a message to leave out entirely

    Returns:
        list[dict]: {"role", "content"} messages with no empty content
    """
    messages: list[dict] = []
    seen_current = False
    for msg in slack_messages:
        if not isinstance(msg, dict):
            continue
        ts = msg.get("ts")
        if exclude_ts and ts == exclude_ts:
            continue
        if current_ts and ts == current_ts:
            seen_current = True
        content = message_text_of(msg)
        if not content:
            continue
        messages.append({
            "role": "assistant" if _is_bot_message(msg, bot_user_id) else "user",
            "content": replace_bot_mention(content, bot_user_id),
        })

    if current_text and not seen_current:
        text = replace_bot_mention(current_text, bot_user_id)
        last = messages[-1] if messages else None
        if not last or last["role"] != "user" or last["content"] != text:
            messages.append({"role": "user", "content": text})
    return messages


def drop_trailing_user_message(messages: list[dict], text: str) -> list[dict]:
    """Drop the last message if it is the user turn with exactly this text."""
    if messages and messages[-1]["role"] == "user" and messages[-1]["content"] == text:
        return messages[:-1]
    return messages


async def fetch_thread_messages(
    client: AsyncWebClient,
    channel: str,
    thread_ts: str,
    limit: int = THREAD_HISTORY_LIMIT,
) -> list[dict]:
    # Capped to keep token usage bounded on long threads
    response = await client.conversations_replies(channel=channel, ts=thread_ts, limit=limit)
    return list(response.get("messages") or [])


async def fetch_channel_messages(
    client: AsyncWebClient,
    channel: str,
    limit: int = CHANNEL_HISTORY_LIMIT,
) -> list[dict]:
    """Most recent channel messages, oldest first."""
    response = await client.conversations_history(channel=channel, limit=limit)
    return list(reversed(response.get("messages") or []))


async def fetch_history(
    client: AsyncWebClient,
    channel: str,
    thread_ts: str | None,
    thread_limit: int = THREAD_HISTORY_LIMIT,
    channel_limit: int = CHANNEL_HISTORY_LIMIT,
) -> list[dict]:
    if thread_ts:
        return await fetch_thread_messages(client, channel, thread_ts, limit=thread_limit)
    return await fetch_channel_messages(client, channel, limit=channel_limit)


async def build_conversation(
    client: AsyncWebClient,
    channel: str,
    thread_ts: str | None,
    bot_user_id: str | None,
    text: str,
    include_current_text: bool = True,
    current_ts: str | None = None,
    exclude_ts: str | None = None,
    use_channel_history: bool = False,
    thread_limit: int = THREAD_HISTORY_LIMIT,
    channel_limit: int = CHANNEL_HISTORY_LIMIT,
) -> list[dict]:
    """
    Build the model conversation for a message.

    Without a thread (and unless use_channel_history is set) this is single-turn: one user
    message with the bot mention replaced. Otherwise the bounded history is fetched and
    converted with build_messages_from_slack.
    """
    if not thread_ts and not use_channel_history:
        content = replace_bot_mention(text, bot_user_id).strip()
        if not include_current_text or not content:
            return []
        return [{"role": "user", "content": content}]

    history = await fetch_history(
        client, channel, thread_ts, thread_limit=thread_limit, channel_limit=channel_limit
    )
    messages = build_messages_from_slack(
        history,
        bot_user_id,
        current_text=text if include_current_text else None,
        current_ts=current_ts,
        exclude_ts=exclude_ts,
    )
    logger.debug(f"Built {len(messages)} messages from {len(history)} Slack messages in {channel}")
    return messages


async def find_latest_approval_payload(
    client: AsyncWebClient,
    channel: str,
    thread_ts: str | None,
    bot_user_id: str | None,
    thread_limit: int = THREAD_HISTORY_LIMIT,
    channel_limit: int = CHANNEL_HISTORY_LIMIT,
) -> FoundApproval | None:
    """
    Newest bot message in the thread (or recent channel history) whose approve/deny
    controls still carry a decodable payload.
    """
    history = await fetch_history(
        client, channel, thread_ts, thread_limit=thread_limit, channel_limit=channel_limit
    )
    for msg in reversed(history):
        if not isinstance(msg, dict) or not _is_bot_message(msg, bot_user_id):
            continue
        payload = mc.agent.extract_approval_payload_from_blocks(msg.get("blocks"))
        if payload and payload.approvals:
            return FoundApproval(payload=payload, message=msg)
    return None

