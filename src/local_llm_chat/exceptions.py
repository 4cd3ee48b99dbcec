"""Domain exception hierarchy for the local LLM chat engine."""

from __future__ import annotations


class LocalChatError(RuntimeError):
    """Base class for all domain-level chat errors."""


class ConfigValidationError(LocalChatError):
    """Raised when configuration cannot be validated safely."""


class CommandError(LocalChatError):
    """Base class for slash-command failures that are reported as text."""


class ValidationError(CommandError):
    """Raised when a command argument such as a path is rejected."""


class SizeLimitError(ValidationError):
    """Raised when a file exceeds the readable size limit."""


class NotFoundError(CommandError):
    """Raised when a referenced file or directory does not exist."""


class NetworkError(LocalChatError):
    """Raised when the backend cannot be reached or returns a non-success status."""

    def __init__(self, message: str, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class TimeoutOrCancelledError(LocalChatError):
    """Raised when a request did not complete within budget or was withdrawn."""


class RequestCancelledError(TimeoutOrCancelledError):
    """Raised when the in-flight request was cancelled through its signal."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Request cancelled ({reason}).")
        self.reason = reason


class DeadlineExceededError(TimeoutOrCancelledError):
    """Raised when the request timeout expires before a response arrives."""

    def __init__(self, timeout_seconds: float) -> None:
        super().__init__(f"Request timed out after {timeout_seconds:g} seconds")
        self.timeout_seconds = timeout_seconds


class ParseError(LocalChatError):
    """Raised when a response body is not valid JSON."""
