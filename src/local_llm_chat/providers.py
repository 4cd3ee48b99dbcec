"""Provider adapters translating chat history to backend wire formats.

Each backend family implements the same two-step contract:

- ``build_request`` turns the provider-neutral history plus a settings
  snapshot into a URL and JSON body.
- ``parse_response`` turns whatever the backend answered into plain text.

Response parsing is shared: every adapter accepts the OpenAI ``choices``
shape, Ollama's ``message`` shape and the legacy ``/api/generate``
``response`` field, in that order.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
import json
from typing import Any

from .config import LlmSettings, Provider
from .exceptions import ParseError
from .session import ChatMessage


@dataclass(frozen=True)
class WireRequest:
    """Provider-shaped request for a single transport call."""

    url: str
    body: dict[str, Any]


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def _nested(payload: Any, *keys: str) -> Any:
    current = payload
    for key in keys:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


class ProviderAdapter(ABC):
    """Strategy interface shared by all backend families."""

    name: str = ""

    @abstractmethod
    def build_request(
        self, history: Sequence[ChatMessage], settings: LlmSettings
    ) -> WireRequest:
        """Return the endpoint URL and JSON body for one chat turn."""

    def parse_response(self, raw: bytes) -> str:
        """Extract assistant text; unknown shapes return the raw body."""
        text = raw.decode("utf-8", errors="replace")
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ParseError(str(exc)) from exc

        choices = _nested(payload, "choices")
        if isinstance(choices, list) and choices:
            content = _nested(choices[0], "message", "content")
            if content is not None:
                return _as_text(content)

        content = _nested(payload, "message", "content")
        if content is not None:
            return _as_text(content)

        legacy = _nested(payload, "response")
        if legacy is not None:
            return _as_text(legacy)

        return text

    @staticmethod
    def _messages(history: Sequence[ChatMessage]) -> list[dict[str, str]]:
        return [message.to_wire() for message in history]


class OllamaAdapter(ProviderAdapter):
    """Ollama ``/api/chat`` with sampling parameters under ``options``."""

    name = "ollama"

    def build_request(
        self, history: Sequence[ChatMessage], settings: LlmSettings
    ) -> WireRequest:
        return WireRequest(
            url=f"{settings.api_url.rstrip('/')}/api/chat",
            body={
                "model": settings.model_name,
                "messages": self._messages(history),
                "stream": False,
                "options": {
                    "temperature": settings.temperature,
                    "num_predict": settings.max_tokens,
                },
            },
        )


class OpenAICompatibleAdapter(ProviderAdapter):
    """OpenAI-style chat completions; ``api_url`` is the full endpoint."""

    name = "openai_compatible"

    def build_request(
        self, history: Sequence[ChatMessage], settings: LlmSettings
    ) -> WireRequest:
        return WireRequest(
            url=settings.api_url.rstrip("/"),
            body={
                "model": settings.model_name,
                "messages": self._messages(history),
                "temperature": settings.temperature,
                "max_tokens": settings.max_tokens,
                "stream": False,
            },
        )


_OLLAMA = OllamaAdapter()
_OPENAI_COMPATIBLE = OpenAICompatibleAdapter()

ADAPTERS: dict[Provider, ProviderAdapter] = {
    Provider.OLLAMA: _OLLAMA,
    Provider.LMSTUDIO: _OPENAI_COMPATIBLE,
    Provider.OPENAI_COMPATIBLE: _OPENAI_COMPATIBLE,
    Provider.CUSTOM: _OPENAI_COMPATIBLE,
}


def adapter_for(provider: Provider | str) -> ProviderAdapter:
    """Return the adapter for a provider; unknown names raise ``KeyError``."""
    try:
        return ADAPTERS[Provider(provider)]
    except ValueError:
        raise KeyError(f"Unknown provider: {provider!r}") from None
