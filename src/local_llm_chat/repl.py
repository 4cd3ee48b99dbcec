"""Line-based terminal host for the conversation controller."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import logging
from typing import Any

from .controller import ConversationController, TurnOutcome, TurnStatus
from .session import WELCOME_MESSAGE

LOGGER = logging.getLogger(__name__)

QUIT_WORDS = {"/quit", "/exit"}
CANCEL_WORD = "/cancel"

LineReader = Callable[[], Awaitable[str]]
Writer = Callable[[str], Any]


async def read_stdin_line(prompt: str = "> ") -> str:
    """Read one line without blocking the event loop; EOF raises ``EOFError``."""
    return await asyncio.to_thread(input, prompt)


def render_outcome(outcome: TurnOutcome) -> str:
    """Format an outcome for the terminal; superseded turns render nothing."""
    if outcome.status in {TurnStatus.SUPERSEDED, TurnStatus.IGNORED}:
        return ""
    prefix = "assistant" if outcome.status is TurnStatus.COMPLETED else "system"
    lines = [f"[{prefix}] {outcome.text}"]
    if outcome.file_suggestions:
        lines.append("[system] Suggested files: " + ", ".join(outcome.file_suggestions))
    return "\n".join(lines)


class ReplHost:
    """Feed input lines to the controller while earlier turns are still running.

    Each line is submitted as its own task, so typing a new message while a
    reply is pending supersedes the pending turn.
    """

    def __init__(
        self,
        controller: ConversationController,
        read_line: LineReader = read_stdin_line,
        write: Writer = print,
    ) -> None:
        self.controller = controller
        self._read_line = read_line
        self._write = write
        self._pending: set[asyncio.Task[None]] = set()

    async def _submit(self, line: str) -> None:
        outcome = await self.controller.submit(line)
        rendered = render_outcome(outcome)
        if rendered:
            self._write(rendered)

    def _log_task_failure(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.warning(
                "repl.task.exception",
                extra={
                    "event": "repl.task.exception",
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
            )

    async def run(self) -> None:
        self.controller.start()
        self._write(WELCOME_MESSAGE)
        try:
            while True:
                try:
                    line = await self._read_line()
                except EOFError:
                    break
                word = line.strip().lower()
                if word in QUIT_WORDS:
                    break
                if word == CANCEL_WORD:
                    if not self.controller.cancel():
                        self._write("[system] Nothing to cancel.")
                    continue
                task = asyncio.create_task(self._submit(line))
                self._pending.add(task)
                task.add_done_callback(self._pending.discard)
                task.add_done_callback(self._log_task_failure)
                # Give the new turn a chance to start before reading again.
                await asyncio.sleep(0)
        finally:
            await self.shutdown()

    async def shutdown(self) -> None:
        """Cancel outstanding turns and wait for them to unwind."""
        tasks = [task for task in self._pending if not task.done()]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._pending.clear()
