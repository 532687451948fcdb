"""
Inbound Slack payloads as typed models.

Message and app_mention events form a union discriminated by "type"; approve/deny
button clicks are flattened from the block_actions body into ApprovalActionEvent.
"""
from __future__ import annotations

import logging
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

logger = logging.getLogger(__name__)


class _SlackEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    channel: str
    ts: str
    text: str = ""
    user: str | None = None
    thread_ts: str | None = None
    blocks: list[Any] = Field(default_factory=list)


class SlackMessageEvent(_SlackEvent):
    type: Literal["message"]
    channel_type: str | None = None
    subtype: str | None = None
    bot_id: str | None = None


class AppMentionEvent(_SlackEvent):
    type: Literal["app_mention"]


InboundEvent = Annotated[Union[SlackMessageEvent, AppMentionEvent], Field(discriminator="type")]

_inbound_event_adapter: TypeAdapter[InboundEvent] = TypeAdapter(InboundEvent)


def parse_inbound_event(event: Any) -> SlackMessageEvent | AppMentionEvent | None:
    """Validate a raw event dict. Returns None (and logs) for shapes we don't handle."""
    try:
        return _inbound_event_adapter.validate_python(event)
    except ValidationError as e:
        logger.info(f"Ignoring unsupported event: {e.error_count()} validation error(s)")
        return None


def should_respond_to_message(event: SlackMessageEvent) -> bool:
    """Plain messages are handled only as direct messages from a human."""
    if event.subtype or event.bot_id:
        return False
    return event.channel_type == "im"


class ApprovalActionEvent(BaseModel):
    action_id: str
    value: str | None = None
    user_id: str | None = None
    channel: str | None = None
    message_ts: str | None = None
    thread_ts: str | None = None
    message_text: str = ""
    message_blocks: list[Any] = Field(default_factory=list)


def parse_approval_action(body: dict) -> ApprovalActionEvent | None:
    """Flatten a block_actions body for one of the approval buttons."""
    actions = body.get("actions") or []
    action = actions[0] if actions and isinstance(actions[0], dict) else {}
    channel = body.get("channel") or body.get("container") or {}
    message = body.get("message") or {}
    try:
        return ApprovalActionEvent(
            action_id=action.get("action_id") or "",
            value=action.get("value"),
            user_id=(body.get("user") or {}).get("id"),
            channel=channel.get("id") or channel.get("channel_id"),
            message_ts=message.get("ts") or (body.get("container") or {}).get("message_ts"),
            thread_ts=message.get("thread_ts"),
            message_text=message.get("text") or "",
            message_blocks=message.get("blocks") or [],
        )
    except ValidationError as e:
        logger.warning(f"Malformed approval action body: {e}")
        return None
