"""
Bounded multi-step generation: LLM call -> tool_calls -> execute (or request approval) -> loop.

Messages use a parts format so that a step trace can be re-submitted verbatim:
  {"role": "user" | "assistant" | "tool", "content": str | list[part]}
  part types: text, tool-call, tool-approval-request, tool-approval-response, tool-result.
The parts are converted to the OpenAI chat format only when calling litellm.
"""
from __future__ import annotations

import inspect
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

import mcbot as mc

logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 20


@dataclass
class StepResult:
    """One model call plus the tool calls it produced."""

    step_number: int
    text: str
    tool_calls: list[dict] = field(default_factory=list)
    tool_results: list[dict] = field(default_factory=list)
    approval_requests: list[dict] = field(default_factory=list)


@dataclass
class GenerateResult:
    text: str
    steps: list[StepResult]
    response_messages: list[dict]


StepCallback = Callable[[StepResult], Awaitable[None] | None]


def _parse_arguments(arguments: Any) -> Any:
    if isinstance(arguments, (dict, list)):
        return arguments
    if arguments is None or not str(arguments).strip():
        return {}
    try:
        return json.loads(arguments)
    except (json.JSONDecodeError, TypeError):
        logger.warning(f"Tool call arguments are not valid JSON: {arguments!r}")
        return {"raw_arguments": str(arguments)}


def _tool_call_to_part(tc: Any) -> dict:
    """Convert litellm tool_call object (or dict) to a tool-call part."""
    if isinstance(tc, dict):
        fn = tc.get("function") or {}
        tid = tc.get("id") or ""
        name = fn.get("name", "")
        args = fn.get("arguments", "{}")
    else:
        tid = getattr(tc, "id", "") or ""
        name = tc.function.name
        args = tc.function.arguments
    return {
        "type": "tool-call",
        "toolCallId": tid or mc.common.generate_id("call_"),
        "toolName": name,
        "input": _parse_arguments(args),
    }


def _tool_result_part(call: dict, output: Any) -> dict:
    return {
        "type": "tool-result",
        "toolCallId": call["toolCallId"],
        "toolName": call["toolName"],
        "output": output,
    }


def _output_to_content(output: Any) -> str:
    if isinstance(output, str):
        return output
    return json.dumps(output, default=str, ensure_ascii=False)


def _text_of(parts: list) -> str:
    return "".join(
        p.get("text", "") for p in parts if isinstance(p, dict) and p.get("type") == "text"
    )


def _tool_call_ids(msg: dict) -> list[str]:
    """Extract tool call ids from an assistant message."""
    tcs = msg.get("tool_calls") or []
    return [tc.get("id", "") for tc in tcs if tc]


def _sanitize_messages_for_llm(messages: list[dict]) -> list[dict]:
    """
    Ensure every assistant message with tool_calls is immediately followed by
    tool_result (role "tool") messages. If not (e.g. a trace cut short by an approval
    request), drop tool_calls from that assistant message so the API receives a valid sequence.
    """
    out: list[dict] = []
    i = 0
    while i < len(messages):
        m = messages[i]
        role = m.get("role")
        if role != "assistant" or not m.get("tool_calls"):
            # Tool results reached here have no preceding tool_calls; the API rejects them
            if role != "tool" and m.get("content"):
                out.append({"role": role, "content": m["content"]})
            i += 1
            continue
        want_ids = set(_tool_call_ids(m))
        got_ids: set[str] = set()
        j = i + 1
        while j < len(messages) and messages[j].get("role") == "tool":
            got_ids.add(messages[j].get("tool_call_id") or "")
            j += 1
        if want_ids and got_ids >= want_ids:
            out.append(m)
            out.extend(
                tm for tm in messages[i + 1:j] if tm.get("tool_call_id") in want_ids
            )
        elif m.get("content"):
            # Missing tool results; send assistant as content-only
            out.append({"role": "assistant", "content": m["content"]})
        i = j
    return out


def _to_llm_messages(messages: list[dict]) -> list[dict]:
    """Convert parts-format messages to OpenAI chat messages for litellm."""
    out: list[dict] = []
    for m in messages:
        role = m.get("role")
        content = m.get("content")
        if not isinstance(content, list):
            if role in ("user", "assistant") and content:
                out.append({"role": role, "content": content})
            continue
        if role == "user":
            text = _text_of(content)
            if text:
                out.append({"role": "user", "content": text})
        elif role == "assistant":
            text = _text_of(content)
            tool_calls = [
                {
                    "id": p["toolCallId"],
                    "type": "function",
                    "function": {
                        "name": p["toolName"],
                        "arguments": json.dumps(p.get("input"), ensure_ascii=False),
                    },
                }
                for p in content
                if isinstance(p, dict) and p.get("type") == "tool-call"
            ]
            if tool_calls:
                out.append({"role": "assistant", "content": text or None, "tool_calls": tool_calls})
            elif text:
                out.append({"role": "assistant", "content": text})
        elif role == "tool":
            for p in content:
                if isinstance(p, dict) and p.get("type") == "tool-result":
                    out.append({
                        "role": "tool",
                        "tool_call_id": p.get("toolCallId", ""),
                        "content": _output_to_content(p.get("output")),
                    })
    return _sanitize_messages_for_llm(out)


async def _resolve_approval_responses(messages: list[dict], tools: dict | None) -> list[dict]:
    """
    If the last message is a tool turn carrying approval responses, execute the approved
    tool calls and return their tool-result parts. Denied calls get an execution-denied output.
    """
    if not messages:
        return []
    last = messages[-1]
    if last.get("role") != "tool" or not isinstance(last.get("content"), list):
        return []
    responses = [p for p in last["content"] if p.get("type") == "tool-approval-response"]
    if not responses:
        return []
    already_resolved = {
        p.get("toolCallId") for p in last["content"] if p.get("type") == "tool-result"
    }

    calls_by_id: dict[str, dict] = {}
    call_id_by_approval: dict[str, str] = {}
    for m in messages:
        if m.get("role") != "assistant" or not isinstance(m.get("content"), list):
            continue
        for p in m["content"]:
            if p.get("type") == "tool-call":
                calls_by_id[p["toolCallId"]] = p
            elif p.get("type") == "tool-approval-request":
                call_id_by_approval[p["approvalId"]] = p["toolCallId"]

    results = []
    for response in responses:
        call_id = call_id_by_approval.get(response.get("approvalId"))
        call = calls_by_id.get(call_id) if call_id else None
        if call is None:
            logger.warning(f"No tool call found for approval {response.get('approvalId')}, skipping")
            continue
        if call_id in already_resolved:
            continue
        if response.get("approved"):
            logger.info(f"Executing approved tool {call['toolName']} (call_id={call_id})")
            output = await mc.agent.tool_registry.execute_tool(tools, call["toolName"], call.get("input"))
        else:
            logger.info(f"Tool {call['toolName']} denied (call_id={call_id})")
            output = {"type": "execution-denied"}
            if response.get("reason"):
                output["reason"] = response["reason"]
        results.append(_tool_result_part(call, output))
    return results


async def _notify_step(on_step_finish: StepCallback | None, step: StepResult) -> None:
    if on_step_finish is None:
        return
    result = on_step_finish(step)
    if inspect.isawaitable(result):
        await result


async def generate_text(
    model: str,
    messages: list[dict],
    api_key: str,
    system: str | None = None,
    tools: dict | None = None,
    max_steps: int = DEFAULT_MAX_STEPS,
    on_step_finish: StepCallback | None = None,
) -> GenerateResult:
    """
    Run up to max_steps LLM calls. Tools that do not need approval are executed inline;
    tools that do produce a tool-approval-request part and end the run. Does not mutate messages.
    Reaching max_steps is not an error: the text of the last step is returned.
    """
    history = list(messages)
    response_messages: list[dict] = []
    steps: list[StepResult] = []

    resolved = await _resolve_approval_responses(history, tools)
    if resolved:
        last = history[-1]
        history[-1] = {"role": "tool", "content": [*last["content"], *resolved]}
        response_messages.append({"role": "tool", "content": resolved})

    tool_definitions = mc.agent.tool_registry.tool_definitions(tools) if tools else None
    text = ""
    for step_number in range(1, max(1, max_steps) + 1):
        llm_messages = [{"role": "system", "content": system}] if system else []
        llm_messages.extend(_to_llm_messages(history))
        response = await mc.llm.agent_completion(
            model=model,
            messages=llm_messages,
            api_key=api_key,
            tools=tool_definitions,
            tool_choice="auto" if tool_definitions else None,
        )
        mc.llm.log_llm_usage(response, model)

        message = response.choices[0].message
        text = (message.content or "").strip()
        tool_calls = [_tool_call_to_part(tc) for tc in (getattr(message, "tool_calls", None) or [])]
        step = StepResult(step_number=step_number, text=text, tool_calls=tool_calls)

        assistant_content: list[dict] = [{"type": "text", "text": text}] if text else []
        for call in tool_calls:
            assistant_content.append(call)
            tool = tools.get(call["toolName"]) if tools else None
            if tool is not None and tool.needs_approval:
                request = {
                    "type": "tool-approval-request",
                    "approvalId": mc.common.generate_id("aprv_"),
                    "toolCallId": call["toolCallId"],
                }
                assistant_content.append(request)
                step.approval_requests.append(request)
                continue
            output = await mc.agent.tool_registry.execute_tool(tools, call["toolName"], call["input"])
            step.tool_results.append(_tool_result_part(call, output))

        step_messages = [{"role": "assistant", "content": assistant_content}]
        if step.tool_results:
            step_messages.append({"role": "tool", "content": step.tool_results})
        history.extend(step_messages)
        response_messages.extend(step_messages)
        steps.append(step)
        await _notify_step(on_step_finish, step)

        if not tool_calls or step.approval_requests:
            break

    return GenerateResult(text=text, steps=steps, response_messages=response_messages)
