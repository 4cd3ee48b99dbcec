"""Bounded conversation history and per-turn message assembly."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging

LOGGER = logging.getLogger(__name__)

# Bootstrap notices start with this marker and are never sent to the model.
STARTUP_MARKER = "Local LLM"
WELCOME_MESSAGE = f"{STARTUP_MARKER} Chat ready! Type /help for available commands."


class Role(str, Enum):
    """Speaker of a chat message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ChatMessage:
    """A single immutable history entry."""

    role: Role
    content: str

    def to_wire(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}

    @property
    def is_bootstrap(self) -> bool:
        return self.role is Role.SYSTEM and self.content.startswith(STARTUP_MARKER)


class ChatSession:
    """Own the ordered message history of one conversation."""

    def __init__(self) -> None:
        self._messages: list[ChatMessage] = []

    def __len__(self) -> int:
        return len(self._messages)

    @property
    def messages(self) -> list[ChatMessage]:
        """Return a shallow copy of the history in chronological order."""
        return list(self._messages)

    def append(self, role: Role | str, content: str) -> ChatMessage:
        """Append a message and return it as a handle for later removal."""
        message = ChatMessage(role=Role(role), content=content)
        self._messages.append(message)
        return message

    def remove(self, handle: ChatMessage) -> bool:
        """Remove exactly ``handle`` (by identity); return whether it was present."""
        for index, message in enumerate(self._messages):
            if message is handle:
                del self._messages[index]
                return True
        return False

    def trim(self, max_length: int) -> int:
        """Drop the oldest messages, whatever their role, down to ``max_length``."""
        excess = len(self._messages) - max(0, max_length)
        if excess <= 0:
            return 0
        del self._messages[:excess]
        LOGGER.debug(
            "session.trimmed",
            extra={"event": "session.trimmed", "removed": excess},
        )
        return excess

    def clear(self) -> None:
        self._messages.clear()

    def assemble_for_turn(self, system_prompt: str) -> list[ChatMessage]:
        """Build the message list sent to the model for the next turn.

        Bootstrap notices are dropped. The result always holds exactly one
        system message: the configured prompt is prepended when the history
        has none, and several genuine system messages are folded into the
        position of the first one.
        """
        history = [message for message in self._messages if not message.is_bootstrap]
        system_indexes = [
            index
            for index, message in enumerate(history)
            if message.role is Role.SYSTEM
        ]
        if not system_indexes:
            return [ChatMessage(Role.SYSTEM, system_prompt), *history]
        if len(system_indexes) == 1:
            return history

        merged = ChatMessage(
            Role.SYSTEM,
            "\n\n".join(history[index].content for index in system_indexes),
        )
        first = system_indexes[0]
        rest = [
            message
            for index, message in enumerate(history)
            if index > first and message.role is not Role.SYSTEM
        ]
        return [*history[:first], merged, *rest]
