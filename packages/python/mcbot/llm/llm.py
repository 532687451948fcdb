import logging
from typing import Any, Dict, List, Optional, Union

import litellm
import stamina

logger = logging.getLogger(__name__)

# Drop unsupported provider/model params automatically (e.g., O-series temperature)
litellm.drop_params = True


def get_llm_model_provider(model: str) -> str:
    """
    Get the provider prefix of a litellm model string.

    Args:
        model: e.g. "anthropic/claude-haiku-4-5"

    Returns:
        str: The provider ("anthropic"), or "openai" when the model has no prefix
    """
    if "/" in model:
        return model.split("/", 1)[0]
    return "openai"


RETRYABLE_ERROR_PATTERNS = (
    "429",
    "503",
    "529",
    "overloaded",
    "unavailable",
    "rate limit",
    "timeout",
    "timed out",
    "connection error",
    "internal server error",
)


def is_retryable_error(exception) -> bool:
    """
    Transient provider failures (rate limits, overload, 5xx, timeouts) are retried by stamina;
    anything else propagates on the first failure.
    """
    if not isinstance(exception, Exception):
        return False
    error_message = str(exception).lower()
    return any(pattern in error_message for pattern in RETRYABLE_ERROR_PATTERNS)


@stamina.retry(on=is_retryable_error)
async def _litellm_acompletion_with_retry(
    model: str,
    messages: list,
    api_key: str,
    tools: Optional[List[Dict]] = None,
    tool_choice: Optional[Union[str, Dict]] = None
):
    """
    Make an LLM call with stamina retry mechanism.

    Args:
        model: The LLM model to use
        messages: The messages to send
        api_key: The API key
        tools: Optional list of tools/functions for the model to call
        tool_choice: Optional tool choice parameter ("auto", "none", or specific function)

    Returns:
        The LLM response

    Raises:
        Exception: If the call fails after all retries
    """
    params: dict[str, Any] = {
        "model": model,
        "messages": messages,
        "api_key": api_key,
    }
    if tools:
        params["tools"] = tools
        params["tool_choice"] = tool_choice or "auto"
    return await litellm.acompletion(**params)


async def agent_completion(
    model: str,
    messages: list,
    api_key: str,
    tools: Optional[List[Dict]] = None,
    tool_choice: Optional[Union[str, Dict]] = None
):
    """
    Public wrapper for agent use. Makes one LLM completion call with optional tools.
    """
    return await _litellm_acompletion_with_retry(
        model=model,
        messages=messages,
        api_key=api_key,
        tools=tools,
        tool_choice=tool_choice,
    )


def log_llm_usage(response: Any, model: str) -> None:
    """Log token usage and cost after an LLM call. Never raises."""
    try:
        usage = getattr(response, "usage", None)
        try:
            actual_cost = litellm.completion_cost(completion_response=response) if usage else 0.0
        except Exception as e:
            logger.warning(f"Could not compute LLM cost for model {model} (may not be in pricing table): {e}")
            actual_cost = 0.0

        prompt_tokens = getattr(usage, "prompt_tokens", None) or 0
        completion_tokens = getattr(usage, "completion_tokens", None) or 0
        total_tokens = getattr(usage, "total_tokens", None) or (prompt_tokens + completion_tokens)
        logger.info(
            f"LLM usage model={model} prompt_tokens={prompt_tokens} "
            f"completion_tokens={completion_tokens} total_tokens={total_tokens} cost={actual_cost}"
        )
    except Exception as e:
        logger.error(f"Error logging LLM usage (model={model}): {e}")
