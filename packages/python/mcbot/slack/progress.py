"""
Best-effort running status message for an agent loop.

Slack calls are chained on background tasks so the loop never waits on them, and every
failure is logged and dropped. finish() waits for the chain and then either deletes the
message or rewrites it to its terminal state.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from slack_sdk.web.async_client import AsyncWebClient

import mcbot as mc

logger = logging.getLogger(__name__)

IN_PROGRESS_TEXT = ":hourglass_flowing_sand: Working on it..."
DONE_TEXT = ":white_check_mark: Done"
ERROR_TEXT = ":warning: Stopped due to an error"


class ProgressReporter:
    def __init__(self, client: AsyncWebClient, channel: str, thread_ts: str | None = None):
        self.client = client
        self.channel = channel
        self.thread_ts = thread_ts
        self.ts: str | None = None
        self.lines: list[str] = []
        self.step_count = 0
        self.tool_call_count = 0
        self._pending: asyncio.Task | None = None

    def _render(self, header: str) -> str:
        return "\n".join([header, *self.lines])

    def _schedule(self, action: Callable[[], Awaitable[None]]) -> None:
        previous = self._pending

        async def run() -> None:
            if previous is not None:
                await previous
            await action()

        self._pending = asyncio.create_task(run())

    async def _post(self) -> None:
        try:
            kwargs = {"channel": self.channel, "text": self._render(IN_PROGRESS_TEXT)}
            if self.thread_ts:
                kwargs["thread_ts"] = self.thread_ts
            response = await self.client.chat_postMessage(**kwargs)
            self.ts = response.get("ts")
        except Exception as e:
            logger.warning(f"Could not post progress message in {self.channel}: {e}")

    async def _update(self, text: str) -> None:
        if not self.ts:
            return
        try:
            await self.client.chat_update(channel=self.channel, ts=self.ts, text=text)
        except Exception as e:
            logger.warning(f"Could not update progress message {self.ts}: {e}")

    async def _delete(self) -> None:
        if not self.ts:
            return
        try:
            await self.client.chat_delete(channel=self.channel, ts=self.ts)
        except Exception as e:
            logger.warning(f"Could not delete progress message {self.ts}: {e}")

    def start(self) -> None:
        """Post the in-progress message in the background."""
        self._schedule(self._post)

    def on_step(self, step: "mc.llm.StepResult") -> None:
        """Step callback for generate_text. Never blocks and never raises."""
        self.step_count += 1
        if not step.tool_calls:
            return
        self.tool_call_count += len(step.tool_calls)
        names = list(dict.fromkeys(call.get("toolName", "") for call in step.tool_calls))
        self.lines.append(f"• Step {step.step_number}: {', '.join(f'`{name}`' for name in names)}")
        text = self._render(IN_PROGRESS_TEXT)
        self._schedule(lambda: self._update(text))

    async def finish(self, error: bool = False) -> None:
        """
        Delete the message if it added nothing (fewer than two steps or no tool calls),
        otherwise rewrite it as done / stopped due to an error.
        """
        if self.step_count < 2 or self.tool_call_count == 0:
            self._schedule(self._delete)
        else:
            text = self._render(ERROR_TEXT if error else DONE_TEXT)
            self._schedule(lambda: self._update(text))
        if self._pending is not None:
            await self._pending
