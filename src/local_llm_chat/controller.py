"""Turn orchestration: commands, history, provider calls and cancellation."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
import logging
import time

from .commands import CLEAR_CONVERSATION, CommandDispatcher
from .config import Provider, SettingsProvider
from .exceptions import (
    DeadlineExceededError,
    LocalChatError,
    NetworkError,
    ParseError,
    RequestCancelledError,
)
from .providers import ProviderAdapter, adapter_for
from .session import WELCOME_MESSAGE, ChatMessage, ChatSession, Role
from .suggestions import extract_file_suggestions
from .transport import CancelReason, CancelSignal, HttpTransport

LOGGER = logging.getLogger(__name__)

THINKING_PLACEHOLDER = "Thinking..."
CLEARED_NOTICE = "Conversation cleared."
CANCELLED_NOTICE = "Request cancelled."


class TurnStatus(str, Enum):
    """How a submitted line was resolved."""

    COMPLETED = "completed"
    COMMAND = "command"
    CLEARED = "cleared"
    CANCELLED = "cancelled"
    SUPERSEDED = "superseded"
    TIMED_OUT = "timed_out"
    FAILED = "failed"
    IGNORED = "ignored"


@dataclass(frozen=True)
class TurnOutcome:
    """Result handed back to the host for rendering."""

    status: TurnStatus
    text: str = ""
    file_suggestions: tuple[str, ...] = ()


@dataclass
class _ActiveTurn:
    signal: CancelSignal = field(default_factory=CancelSignal)
    placeholder: ChatMessage | None = None
    superseded: bool = False


class ConversationController:
    """Run chat turns one at a time on a single event loop.

    Starting a turn while another is in flight supersedes the older one: its
    signal is cancelled, its placeholder removed, and nothing it produces is
    added to the history afterwards.
    """

    def __init__(
        self,
        settings: SettingsProvider,
        dispatcher: CommandDispatcher,
        *,
        session: ChatSession | None = None,
        transport: HttpTransport | None = None,
        adapter_factory: Callable[[Provider], ProviderAdapter] = adapter_for,
    ) -> None:
        self._settings = settings
        self.dispatcher = dispatcher
        self.session = session or ChatSession()
        self._transport = transport or HttpTransport()
        self._adapter_factory = adapter_factory
        self._active: _ActiveTurn | None = None

    @property
    def busy(self) -> bool:
        """True while a chat request is outstanding."""
        return self._active is not None

    def start(self) -> None:
        """Seed an empty session with the welcome notice."""
        if not len(self.session):
            self.session.append(Role.SYSTEM, WELCOME_MESSAGE)

    def cancel(self) -> bool:
        """Cancel the outstanding request on behalf of the user."""
        if self._active is None:
            return False
        self._active.signal.cancel(CancelReason.USER_CANCELLED)
        return True

    async def submit(self, text: str) -> TurnOutcome:
        """Handle one line of user input."""
        normalized = (text or "").strip()
        if not normalized:
            return TurnOutcome(TurnStatus.IGNORED)
        if self.dispatcher.is_command(normalized):
            return self.run_command(normalized)
        return await self.run_turn(normalized)

    def run_command(self, text: str) -> TurnOutcome:
        self.session.append(Role.USER, text)
        result = self.dispatcher.dispatch(text)
        if result is CLEAR_CONVERSATION:
            self._supersede_active()
            self.session.clear()
            self.session.append(Role.SYSTEM, CLEARED_NOTICE)
            return TurnOutcome(TurnStatus.CLEARED, CLEARED_NOTICE)
        self.session.append(Role.SYSTEM, result.text)
        return TurnOutcome(TurnStatus.COMMAND, result.text)

    def _supersede_active(self) -> None:
        previous = self._active
        self._active = None
        if previous is None:
            return
        previous.superseded = True
        previous.signal.cancel(CancelReason.SUPERSEDED)
        if previous.placeholder is not None:
            self.session.remove(previous.placeholder)
            previous.placeholder = None
        LOGGER.info("turn.superseded", extra={"event": "turn.superseded"})

    async def run_turn(self, text: str) -> TurnOutcome:
        """Send ``text`` to the configured backend and record the reply."""
        self.session.append(Role.USER, text)
        self._supersede_active()
        turn = _ActiveTurn()
        self._active = turn

        started = time.monotonic()
        try:
            settings = self._settings.get()
            self.session.trim(settings.max_history_length)
            history = self.session.assemble_for_turn(settings.system_prompt)
            turn.placeholder = self.session.append(Role.ASSISTANT, THINKING_PLACEHOLDER)

            adapter = self._adapter_factory(settings.provider)
            request = adapter.build_request(history, settings)
            LOGGER.info(
                "turn.request.start",
                extra={
                    "event": "turn.request.start",
                    "provider": settings.provider.value,
                    "model": settings.model_name,
                    "messages": len(history),
                },
            )
            raw = await self._transport.send(
                request.url,
                request.body,
                timeout=settings.timeout_seconds,
                bearer_token=settings.bearer_token,
                cancel=turn.signal,
            )
            reply = adapter.parse_response(raw)
        except RequestCancelledError:
            return self._finish(turn, TurnStatus.CANCELLED, CANCELLED_NOTICE)
        except DeadlineExceededError as exc:
            return self._finish(turn, TurnStatus.TIMED_OUT, f"Timeout: {exc}")
        except NetworkError as exc:
            return self._finish(turn, TurnStatus.FAILED, f"Error: Network error: {exc}")
        except ParseError as exc:
            return self._finish(
                turn, TurnStatus.FAILED, f"Error: Failed to parse LLM response: {exc}"
            )
        except LocalChatError as exc:
            return self._finish(turn, TurnStatus.FAILED, f"Error: {exc}")
        except Exception as exc:  # noqa: BLE001 - a failed turn must not kill the host.
            LOGGER.exception(
                "turn.unexpected_error",
                extra={"event": "turn.unexpected_error", "error_type": type(exc).__name__},
            )
            return self._finish(turn, TurnStatus.FAILED, f"Error: {exc}")
        finally:
            if turn.placeholder is not None:
                self.session.remove(turn.placeholder)
                turn.placeholder = None
            if self._active is turn:
                self._active = None

        if turn.signal.cancelled:
            return self._finish(turn, TurnStatus.CANCELLED, CANCELLED_NOTICE)
        self.session.append(Role.ASSISTANT, reply)
        LOGGER.info(
            "turn.request.complete",
            extra={
                "event": "turn.request.complete",
                "elapsed_ms": int((time.monotonic() - started) * 1000),
                "reply_chars": len(reply),
            },
        )
        return TurnOutcome(
            TurnStatus.COMPLETED,
            reply,
            tuple(extract_file_suggestions(reply)),
        )

    def _finish(self, turn: _ActiveTurn, status: TurnStatus, notice: str) -> TurnOutcome:
        """Record a failure notice unless the turn was superseded."""
        # A user-cancelled turn may be superseded later; the signal keeps its first reason.
        if turn.superseded:
            return TurnOutcome(TurnStatus.SUPERSEDED)
        LOGGER.info(
            "turn.finished",
            extra={"event": "turn.finished", "status": status.value},
        )
        self.session.append(Role.SYSTEM, notice)
        return TurnOutcome(status, notice)
