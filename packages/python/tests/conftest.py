"""Shared fixtures: mocked litellm responses and a mocked Slack client (no network)."""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest


def _llm_response(content="", tool_calls=None):
    msg = MagicMock()
    msg.content = content
    msg.tool_calls = tool_calls
    return MagicMock(
        choices=[MagicMock(message=msg)],
        usage=MagicMock(prompt_tokens=10, completion_tokens=5, total_tokens=15),
    )


def _llm_tool_call(call_id, name, arguments="{}"):
    tc = MagicMock()
    tc.id = call_id
    tc.function.name = name
    tc.function.arguments = arguments
    return tc


@pytest.fixture
def llm_response():
    return _llm_response


@pytest.fixture
def llm_tool_call():
    return _llm_tool_call


@pytest.fixture
def mock_litellm():
    with patch("mcbot.llm.agent_completion", new_callable=AsyncMock) as m:
        yield m


@pytest.fixture
def mock_completion_cost():
    with patch("mcbot.llm.llm.litellm.completion_cost", return_value=0.001) as m:
        yield m


@pytest.fixture
def slack_client():
    client = AsyncMock()
    client.chat_postMessage.return_value = {"ok": True, "ts": "999.1"}
    client.conversations_replies.return_value = {"messages": []}
    client.conversations_history.return_value = {"messages": []}
    return client
