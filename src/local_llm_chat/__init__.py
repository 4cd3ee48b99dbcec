"""Top-level package for local-llm-chat."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .commands import CLEAR_CONVERSATION, CommandDispatcher, TextResult
    from .config import LlmSettings, Provider, SettingsProvider, load_config
    from .controller import ConversationController, TurnOutcome, TurnStatus
    from .providers import adapter_for
    from .session import ChatMessage, ChatSession, Role
    from .transport import CancelReason, CancelSignal, HttpTransport

_EXPORTS = {
    "CLEAR_CONVERSATION": "commands",
    "CommandDispatcher": "commands",
    "TextResult": "commands",
    "LlmSettings": "config",
    "Provider": "config",
    "SettingsProvider": "config",
    "load_config": "config",
    "ConversationController": "controller",
    "TurnOutcome": "controller",
    "TurnStatus": "controller",
    "adapter_for": "providers",
    "ChatMessage": "session",
    "ChatSession": "session",
    "Role": "session",
    "CancelReason": "transport",
    "CancelSignal": "transport",
    "HttpTransport": "transport",
}

__all__ = sorted(_EXPORTS)


def __getattr__(name: str) -> Any:
    """Lazily import symbols so importing the package stays cheap."""
    module_name = _EXPORTS.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    from importlib import import_module

    module = import_module(f".{module_name}", __name__)
    return getattr(module, name)
