# Slack bot for Mission Control: LLM agent with approval-gated tool calls.
# Submodules reference each other through `import mcbot as mc` at call time.

from . import common
from . import llm
from . import agent
from . import slack

__all__ = ["common", "llm", "agent", "slack"]
