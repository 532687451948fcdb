"""
Remote tool catalogue over MCP (streamable HTTP). Each MCP tool becomes a Tool whose
execute() calls session.call_tool; the session lives in the caller's AsyncExitStack.
"""
from __future__ import annotations

import logging
from contextlib import AsyncExitStack
from typing import Any

import httpx
from mcp import ClientSession
from mcp.client.streamable_http import streamable_http_client

from .tool_registry import Tool, ToolSet

logger = logging.getLogger(__name__)

# Long read timeout: the server holds the SSE response stream open
MCP_HTTP_TIMEOUT = httpx.Timeout(30.0, read=300.0)


def call_tool_result_to_output(result: Any) -> Any:
    """Convert an MCP CallToolResult into a JSON-compatible value for the LLM."""
    texts = [
        getattr(item, "text", "")
        for item in (getattr(result, "content", None) or [])
        if getattr(item, "type", None) == "text"
    ]
    text = "\n".join(t for t in texts if t)
    if getattr(result, "isError", False):
        return {"error": text or "Tool reported an error"}
    structured = getattr(result, "structuredContent", None)
    if structured is not None:
        return structured
    return text


def _make_executor(session: ClientSession, name: str):
    async def execute(params: Any) -> Any:
        result = await session.call_tool(name, arguments=params or {})
        return call_tool_result_to_output(result)

    return execute


async def list_session_tools(session: ClientSession) -> ToolSet:
    """List the tools on an initialized MCP session. All tools need approval until wrapped."""
    response = await session.list_tools()
    tools: ToolSet = {}
    for tool in response.tools:
        tools[tool.name] = Tool(
            name=tool.name,
            description=tool.description or "",
            parameters=tool.inputSchema or {"type": "object", "properties": {}},
            execute=_make_executor(session, tool.name),
        )
    return tools


async def connect_mcp_tools(
    stack: AsyncExitStack,
    url: str,
    bearer_token: str | None = None,
) -> ToolSet:
    """
    Connect to the MCP server at url and return its tools.
    The connection is closed when stack is closed.
    """
    headers: dict[str, str] = {}
    if bearer_token:
        headers["Authorization"] = f"Bearer {bearer_token}"

    logger.info(f"Connecting to MCP server: {url}")
    http_client = await stack.enter_async_context(httpx.AsyncClient(headers=headers, timeout=MCP_HTTP_TIMEOUT))
    # mcp 1.x also yields a session-id callback, 2.x only the two streams
    streams = await stack.enter_async_context(streamable_http_client(url, http_client=http_client))
    read_stream, write_stream = streams[0], streams[1]
    session = await stack.enter_async_context(ClientSession(read_stream, write_stream))
    await session.initialize()

    tools = await list_session_tools(session)
    logger.info(f"MCP server connected with {len(tools)} tools")
    return tools
