# Slack surface: event models, transcript -> conversation, rendering, progress, handlers.

from .app import create_app, handle_approval_body, handle_inbound_event
from .blocks import (
    RenderedResponse,
    build_approval_blocks,
    build_resolved_approval_blocks,
    build_text_blocks,
    format_tool_call_status,
    render_agent_result,
)
from .conversation import (
    BOT_MENTION_PLACEHOLDER,
    build_conversation,
    build_messages_from_slack,
    drop_trailing_user_message,
    find_latest_approval_payload,
    replace_bot_mention,
)
from .events import (
    AppMentionEvent,
    ApprovalActionEvent,
    SlackMessageEvent,
    parse_approval_action,
    parse_inbound_event,
)
from .progress import ProgressReporter
from .respond import BotContext, handle_tool_approval_action, respond_with_llm
from .transcript import extract_text_from_blocks, merge_message_text
