#!/usr/bin/env python3
import asyncio
import logging
import sys
from contextlib import AsyncExitStack

from slack_bolt.adapter.socket_mode.async_handler import AsyncSocketModeHandler
from slack_sdk.web.async_client import AsyncWebClient

import mcbot as mc

logger = logging.getLogger(__name__)


async def load_tools(stack: AsyncExitStack, config: "mc.common.BotConfig"):
    """MCP tools with the approval gate applied, or None when MCP_URL is unset."""
    if not config.mcp_url:
        logger.info("MCP_URL not set, running without tools")
        return None
    tools = await mc.agent.connect_mcp_tools(stack, config.mcp_url, config.mcp_bearer_token)
    tools = mc.agent.wrap_tools_with_approval(tools)
    gated = sorted(name for name, tool in tools.items() if tool.needs_approval)
    logger.info(f"Tools requiring approval: {gated}")
    return tools


async def resolve_bot_user_id(client: AsyncWebClient) -> str:
    auth = await client.auth_test()
    bot_user_id = auth.get("user_id")
    if not bot_user_id:
        raise mc.common.ConfigError("Slack auth.test did not return a bot user id")
    return bot_user_id


async def run() -> None:
    config = mc.common.load_config()
    async with AsyncExitStack() as stack:
        tools = await load_tools(stack, config)
        bot_user_id = await resolve_bot_user_id(AsyncWebClient(token=config.slack_bot_token))
        provider = mc.llm.get_llm_model_provider(config.llm_model)
        logger.info(f"Starting bot {bot_user_id} with model {config.llm_model} (provider {provider})")

        ctx = mc.slack.BotContext.from_config(config, bot_user_id, tools)
        app = mc.slack.create_app(config, ctx)
        handler = AsyncSocketModeHandler(app, config.slack_app_token)
        await handler.start_async()


def main() -> None:
    # Set up the environment variables. This reads the .env file.
    mc.common.setup()
    try:
        asyncio.run(run())
    except mc.common.ConfigError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Shutting down")


if __name__ == "__main__":
    main()
