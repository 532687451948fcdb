"""Tests for the litellm wrapper: retry classification, call parameters, usage logging."""
import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from mcbot.llm.llm import (
    agent_completion,
    get_llm_model_provider,
    is_retryable_error,
    log_llm_usage,
)


@pytest.mark.parametrize(
    "message",
    [
        "Error code: 529 - overloaded_error",
        "RateLimitError: rate limit exceeded",
        "HTTP 503 Service Unavailable",
        "Request timeout after 600s",
        "Connection error.",
        "Internal Server Error",
    ],
)
def test_retryable_errors(message):
    assert is_retryable_error(Exception(message))


@pytest.mark.parametrize("message", ["invalid api key", "400 Bad Request: messages must alternate"])
def test_non_retryable_errors(message):
    assert not is_retryable_error(ValueError(message))


def test_non_exceptions_are_not_retryable():
    assert not is_retryable_error("429")
    assert not is_retryable_error(None)


def test_get_llm_model_provider():
    assert get_llm_model_provider("anthropic/claude-haiku-4-5") == "anthropic"
    assert get_llm_model_provider("gpt-4o-mini") == "openai"


@pytest.mark.asyncio
async def test_agent_completion_without_tools():
    with patch("mcbot.llm.llm.litellm.acompletion", new_callable=AsyncMock) as m:
        m.return_value = "response"
        result = await agent_completion(model="m", messages=[{"role": "user", "content": "hi"}], api_key="k")
    assert result == "response"
    assert m.call_args.kwargs == {"model": "m", "messages": [{"role": "user", "content": "hi"}], "api_key": "k"}


@pytest.mark.asyncio
async def test_agent_completion_with_tools_defaults_tool_choice():
    tools = [{"type": "function", "function": {"name": "a", "parameters": {"type": "object", "properties": {}}}}]
    with patch("mcbot.llm.llm.litellm.acompletion", new_callable=AsyncMock) as m:
        await agent_completion(model="m", messages=[], api_key="k", tools=tools)
    assert m.call_args.kwargs["tools"] == tools
    assert m.call_args.kwargs["tool_choice"] == "auto"


def test_log_llm_usage_survives_cost_failure(caplog):
    caplog.set_level(logging.INFO)
    response = MagicMock(usage=MagicMock(prompt_tokens=12, completion_tokens=3, total_tokens=15))
    with patch("mcbot.llm.llm.litellm.completion_cost", side_effect=Exception("model not mapped")):
        log_llm_usage(response, "anthropic/unknown")
    assert "prompt_tokens=12" in caplog.text


def test_log_llm_usage_without_usage():
    log_llm_usage(object(), "m")
