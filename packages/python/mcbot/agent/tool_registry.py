"""
Tool abstraction for the agent and the approval gate.
tool_definitions() is sent to the LLM; execute_tool runs the chosen tool with its input.
"""
from __future__ import annotations

import dataclasses
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

# Read-only Mission Control tools: never require approval.
TOOLS_WITH_NO_APPROVAL_REQUIRED: frozenset[str] = frozenset({
    "search_catalog",
    "read_artifact_content",
    "search_catalog_changes",
    "describe_catalog",
    "list_catalog_types",
    "get_related_configs",
    "list_connections",
    "search_health_checks",
    "get_check_status",
    "list_all_checks",
    "get_playbook_run_steps",
    "get_playbook_failed_runs",
    "get_playbook_recent_runs",
    "get_all_playbooks",
    "get_notifications_for_resource",
    "get_notification_detail",
    "read_artifact_metadata",
})

NO_APPROVAL_PREFIXES: tuple[str, ...] = ("view_",)


@dataclass(frozen=True)
class Tool:
    name: str
    description: str
    execute: Callable[[Any], Awaitable[Any]]
    parameters: dict[str, Any] = field(default_factory=lambda: {"type": "object", "properties": {}})
    needs_approval: bool = True


ToolSet = dict[str, Tool]


def requires_approval(
    name: str,
    no_approval_tools: frozenset[str] = TOOLS_WITH_NO_APPROVAL_REQUIRED,
    no_approval_prefixes: tuple[str, ...] = NO_APPROVAL_PREFIXES,
) -> bool:
    if name in no_approval_tools:
        return False
    return not name.startswith(no_approval_prefixes)


def wrap_tools_with_approval(
    tools: ToolSet,
    no_approval_tools: frozenset[str] = TOOLS_WITH_NO_APPROVAL_REQUIRED,
    no_approval_prefixes: tuple[str, ...] = NO_APPROVAL_PREFIXES,
) -> ToolSet:
    """Return a new ToolSet with needs_approval set from the allow-list and prefixes."""
    return {
        name: dataclasses.replace(
            tool,
            needs_approval=requires_approval(name, no_approval_tools, no_approval_prefixes),
        )
        for name, tool in tools.items()
    }


def tool_definitions(tools: ToolSet) -> list[dict[str, Any]]:
    """OpenAI function-calling format: [{"type": "function", "function": {name, description, parameters}}]"""
    definitions = []
    for tool in tools.values():
        parameters = tool.parameters or {"type": "object", "properties": {}}
        if parameters.get("type") != "object":
            parameters = {"type": "object", "properties": {}}
        definitions.append({
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description or tool.name,
                "parameters": parameters,
            },
        })
    return definitions


async def execute_tool(tools: ToolSet | None, name: str, arguments: Any) -> Any:
    """
    Execute a tool by name. arguments: JSON string (from LLM) or already-parsed input.
    Unknown tools and unparseable arguments come back as {"error": ...} for the LLM;
    exceptions raised by the tool itself propagate to the caller.
    """
    tool = (tools or {}).get(name)
    if tool is None:
        logger.warning(f"Unknown tool requested: {name}")
        return {"error": f"Unknown tool: {name}"}
    if isinstance(arguments, str):
        try:
            params = json.loads(arguments) if arguments.strip() else {}
        except json.JSONDecodeError as e:
            return {"error": f"Invalid JSON arguments: {e}"}
    else:
        params = arguments if arguments is not None else {}
    return await tool.execute(params)
