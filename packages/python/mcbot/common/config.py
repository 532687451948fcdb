"""
Bot configuration, read from environment variables (see setup() for .env loading).
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping

logger = logging.getLogger(__name__)

DEFAULT_LLM_MODEL = "claude-haiku-4-5"
DEFAULT_MAX_STEPS = 20
DEFAULT_THREAD_HISTORY_LIMIT = 150  # caps token usage for long threads
DEFAULT_CHANNEL_HISTORY_LIMIT = 20


class ConfigError(Exception):
    """Raised when required configuration is missing or invalid."""


@dataclass(frozen=True)
class BotConfig:
    slack_bot_token: str
    slack_app_token: str
    llm_model: str
    llm_api_key: str
    mcp_url: str | None = None
    mcp_bearer_token: str | None = None
    log_level: str = "INFO"
    max_steps: int = DEFAULT_MAX_STEPS
    thread_history_limit: int = DEFAULT_THREAD_HISTORY_LIMIT
    channel_history_limit: int = DEFAULT_CHANNEL_HISTORY_LIMIT


def _get_int_env(env: Mapping[str, str], name: str, default: int) -> int:
    try:
        value = int(env.get(name, str(default)))
    except (TypeError, ValueError):
        logger.warning(f"Invalid integer for {name}, using default {default}")
        return default
    if value <= 0:
        logger.warning(f"{name} must be positive, using default {default}")
        return default
    return value


def _resolve_llm(env: Mapping[str, str]) -> tuple[str, str]:
    """
    Pick the litellm model string and API key. Anthropic wins when both keys are set.
    """
    model_name = env.get("LLM_MODEL") or DEFAULT_LLM_MODEL
    anthropic_key = env.get("ANTHROPIC_API_KEY")
    openai_key = env.get("OPENAI_API_KEY")
    if not anthropic_key and not openai_key:
        raise ConfigError("Missing required env var: ANTHROPIC_API_KEY or OPENAI_API_KEY")
    provider, api_key = ("anthropic", anthropic_key) if anthropic_key else ("openai", openai_key)
    if "/" not in model_name:
        model_name = f"{provider}/{model_name}"
    return model_name, api_key


def load_config(env: Mapping[str, str] | None = None) -> BotConfig:
    """
    Build BotConfig from the environment.

    Raises:
        ConfigError: if a required variable is missing
    """
    if env is None:
        env = os.environ
    for name in ("SLACK_BOT_TOKEN", "SLACK_APP_TOKEN"):
        if not env.get(name):
            raise ConfigError(f"Missing required env var: {name}")
    llm_model, llm_api_key = _resolve_llm(env)
    return BotConfig(
        slack_bot_token=env["SLACK_BOT_TOKEN"],
        slack_app_token=env["SLACK_APP_TOKEN"],
        llm_model=llm_model,
        llm_api_key=llm_api_key,
        mcp_url=env.get("MCP_URL") or None,
        mcp_bearer_token=env.get("MCP_BEARER_TOKEN") or None,
        log_level=env.get("LOG_LEVEL") or "INFO",
        max_steps=_get_int_env(env, "MAX_STEPS", DEFAULT_MAX_STEPS),
        thread_history_limit=_get_int_env(env, "THREAD_HISTORY_LIMIT", DEFAULT_THREAD_HISTORY_LIMIT),
        channel_history_limit=_get_int_env(env, "CHANNEL_HISTORY_LIMIT", DEFAULT_CHANNEL_HISTORY_LIMIT),
    )
