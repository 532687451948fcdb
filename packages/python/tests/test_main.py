"""Tests for startup wiring (no Slack or MCP connections)."""
from contextlib import AsyncExitStack
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from mcbot.agent.tool_registry import Tool
from mcbot.common.config import BotConfig, ConfigError
from mcbot.main import load_tools, resolve_bot_user_id


def _config(**overrides):
    values = dict(
        slack_bot_token="xoxb-test",
        slack_app_token="xapp-test",
        llm_model="anthropic/claude-haiku-4-5",
        llm_api_key="k",
    )
    values.update(overrides)
    return BotConfig(**values)


@pytest.mark.asyncio
async def test_load_tools_without_mcp_url():
    async with AsyncExitStack() as stack:
        assert await load_tools(stack, _config()) is None


@pytest.mark.asyncio
async def test_load_tools_applies_approval_gate():
    remote = {
        name: Tool(name=name, description=name, execute=AsyncMock())
        for name in ("search_catalog", "view_topology", "run_playbook")
    }
    with patch("mcbot.agent.connect_mcp_tools", new_callable=AsyncMock, return_value=remote) as connect:
        async with AsyncExitStack() as stack:
            tools = await load_tools(stack, _config(mcp_url="https://mc.example.com/mcp", mcp_bearer_token="tok"))
    connect.assert_awaited_once()
    assert connect.await_args.args[1:] == ("https://mc.example.com/mcp", "tok")
    assert {name: t.needs_approval for name, t in tools.items()} == {
        "search_catalog": False,
        "view_topology": False,
        "run_playbook": True,
    }


@pytest.mark.asyncio
async def test_resolve_bot_user_id():
    client = MagicMock()
    client.auth_test = AsyncMock(return_value={"ok": True, "user_id": "UBOT"})
    assert await resolve_bot_user_id(client) == "UBOT"

    client.auth_test = AsyncMock(return_value={"ok": True})
    with pytest.raises(ConfigError):
        await resolve_bot_user_id(client)
