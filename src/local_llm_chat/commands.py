"""Slash command parsing and execution against the sandbox root.

Handles commands like:
- /read <path> - Read a file into the conversation
- /list [dir] - List a directory
- /search <pattern> - Glob for files below the sandbox root
- /clear - Clear the conversation
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from importlib import metadata
import logging
from pathlib import Path

from .config import Provider, SettingsProvider
from .exceptions import CommandError, NotFoundError, ValidationError
from .sandbox import check_file_size, is_rooted, resolve_path

LOGGER = logging.getLogger(__name__)

MAX_LISTED_DIRECTORIES = 20
MAX_LISTED_FILES = 50
MAX_SEARCH_RESULTS = 30


@dataclass(frozen=True)
class TextResult:
    """Plain text produced by a command."""

    text: str


class ClearConversation:
    """Sentinel asking the controller to clear the session."""

    _instance: ClearConversation | None = None

    def __new__(cls) -> ClearConversation:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "CLEAR_CONVERSATION"


CLEAR_CONVERSATION = ClearConversation()

CommandResult = TextResult | ClearConversation
CommandHandler = Callable[[str], CommandResult]


def _package_version() -> str:
    try:
        return metadata.version("local-llm-chat")
    except metadata.PackageNotFoundError:
        return "0.0.0"


def _capped(items: list[str], limit: int, indent: str = "  ") -> list[str]:
    lines = [f"{indent}{item}" for item in items[:limit]]
    if len(items) > limit:
        lines.append(f"{indent}... and {len(items) - limit} more")
    return lines


class CommandDispatcher:
    """Registry-based dispatcher for slash commands."""

    def __init__(self, root: Path | str, settings: SettingsProvider) -> None:
        self.root = Path(root).expanduser()
        self._settings = settings
        self._commands: dict[str, CommandHandler] = {}
        self._command_help: dict[str, str] = {}

        self.register(
            "help",
            lambda _args: TextResult(self.help_text()),
            "Show this help message",
        )
        self.register(
            "read",
            self._wrap(self.read_file),
            "Read a SQL script or file into context",
            usage="<file-path>",
        )
        self.register(
            "list",
            self._wrap(self.list_directory),
            "List files in a directory",
            usage="[directory]",
        )
        self.register(
            "search",
            self._wrap(self.search_files),
            "Search for files matching pattern",
            usage="<pattern>",
        )
        self.register(
            "write",
            self._wrap(self.prepare_write),
            "Prepare to write content to a file",
            usage="<path>",
        )
        self.register(
            "clear", lambda _args: CLEAR_CONVERSATION, "Clear conversation history"
        )
        self.register(
            "config",
            lambda _args: TextResult(self.config_text()),
            "Show current configuration",
        )
        self.register(
            "info",
            lambda _args: TextResult(self.info_text()),
            "Show version and provider information",
        )

    @staticmethod
    def _wrap(handler: Callable[[str], str]) -> CommandHandler:
        return lambda args: TextResult(handler(args))

    def register(
        self, name: str, handler: CommandHandler, help_text: str = "", usage: str = ""
    ) -> None:
        """Register a command under ``name`` (with or without leading /)."""
        normalized = name.lstrip("/").lower()
        self._commands[normalized] = handler
        signature = f"/{normalized} {usage}".rstrip()
        self._command_help[normalized] = f"{signature} - {help_text or f'Execute /{normalized}'}"

    @staticmethod
    def is_command(text: str) -> bool:
        """Return True when the trimmed input starts with a slash."""
        return bool(text) and text.strip().startswith("/")

    @staticmethod
    def parse(text: str) -> tuple[str, str]:
        """Split input into a lowercased command word and its arguments."""
        parts = text.strip().split(maxsplit=1)
        if not parts:
            return "", ""
        args = parts[1].strip() if len(parts) > 1 else ""
        return parts[0].lower(), args

    def dispatch(self, text: str) -> CommandResult:
        """Run a command; failures come back as ``Error: ...`` text.

        Callers check ``is_command`` first; input without a leading slash is
        reported as an unknown command.
        """
        command, args = self.parse(text)
        handler = self._commands.get(command[1:]) if command.startswith("/") else None
        if handler is None:
            LOGGER.info(
                "command.unknown",
                extra={"event": "command.unknown", "command": command},
            )
            return TextResult(
                f"Unknown command: {command}. Type /help for available commands."
            )

        LOGGER.info("command.dispatch", extra={"event": "command.dispatch", "command": command})
        try:
            return handler(args)
        except CommandError as exc:
            LOGGER.info(
                "command.failed",
                extra={
                    "event": "command.failed",
                    "command": command,
                    "error_type": type(exc).__name__,
                },
            )
            return TextResult(f"Error: {exc}")
        except OSError as exc:
            LOGGER.warning(
                "command.os_error",
                extra={"event": "command.os_error", "command": command, "error": str(exc)},
            )
            return TextResult(f"Error: {command} failed: {exc.strerror or exc}")

    def help_text(self) -> str:
        lines = ["Available Slash Commands:", ""]
        lines.extend(self._command_help.values())
        lines.extend(
            [
                "",
                "Examples:",
                "  /read script.sql",
                "  /list reports",
                "  /search *.sql",
            ]
        )
        return "\n".join(lines)

    def read_file(self, args: str) -> str:
        if not args:
            raise ValidationError(
                "Please specify a file path. Usage: /read <file-path>"
            )
        path = resolve_path(self.root, args)
        check_file_size(path)
        content = path.read_text(encoding="utf-8", errors="replace")
        return f"File: {path.name}\n\n{content}"

    def list_directory(self, args: str) -> str:
        target = resolve_path(self.root, args) if args else self.root
        if not target.is_dir():
            raise NotFoundError(f"Directory not found: {target}")

        directories: list[str] = []
        files: list[str] = []
        for entry in target.iterdir():
            (directories if entry.is_dir() else files).append(entry.name)
        directories.sort()
        files.sort()

        lines = [f"Directory: {target}", ""]
        if directories:
            lines.append("Directories:")
            lines.extend(
                _capped([f"[DIR] {name}" for name in directories], MAX_LISTED_DIRECTORIES)
            )
            lines.append("")
        if files:
            lines.append("Files:")
            lines.extend(_capped(files, MAX_LISTED_FILES))
        if not directories and not files:
            lines.append("(empty directory)")
        return "\n".join(lines).rstrip("\n")

    def search_files(self, args: str) -> str:
        if not args:
            raise ValidationError(
                "Please specify a search pattern. Usage: /search <pattern>"
            )
        if is_rooted(args) or ".." in args:
            raise ValidationError("Search patterns must stay inside the working directory.")
        if not self.root.is_dir():
            raise NotFoundError(f"Directory not found: {self.root}")

        try:
            matches = sorted(
                path.relative_to(self.root).as_posix()
                for path in self.root.rglob(args)
                if path.is_file()
            )
        except ValueError as exc:
            raise ValidationError(f"Invalid search pattern: {exc}") from exc
        if not matches:
            return f"No files found matching: {args}"

        lines = [f"Files matching '{args}':", ""]
        lines.extend(_capped(matches, MAX_SEARCH_RESULTS))
        return "\n".join(lines)

    def prepare_write(self, args: str) -> str:
        if not args:
            raise ValidationError("Please specify a file path. Usage: /write <path>")
        return f"Ready to write to: {args}\nPlease provide the content in your next message."

    def config_text(self) -> str:
        settings = self._settings.get()
        token_state = "***set***" if settings.has_bearer_token else "(not set)"
        lines = [
            "Current Configuration:",
            "",
            "LLM Settings:",
            f"  Provider: {settings.provider.label}",
            f"  API URL: {settings.api_url}",
            f"  Model: {settings.model_name}",
            f"  Temperature: {settings.temperature}",
            f"  Max Tokens: {settings.max_tokens}",
            f"  Timeout: {settings.timeout_seconds}s",
            f"  Max History: {settings.max_history_length}",
            f"  Bearer Token: {token_state}",
            "",
            f"Working Directory: {self.root}",
        ]
        return "\n".join(lines)

    def info_text(self) -> str:
        providers = ", ".join(provider.label for provider in Provider)
        lines = [
            "Local LLM Chat",
            "",
            f"Version: {_package_version()}",
            f"Providers: {providers}",
        ]
        return "\n".join(lines)
