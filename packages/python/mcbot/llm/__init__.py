from .llm import (
    agent_completion,
    get_llm_model_provider,
    is_retryable_error,
    log_llm_usage,
)
from .generate import GenerateResult, StepResult, generate_text

__all__ = [
    "agent_completion",
    "get_llm_model_provider",
    "is_retryable_error",
    "log_llm_usage",
    "GenerateResult",
    "StepResult",
    "generate_text",
]
