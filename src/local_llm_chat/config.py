"""Configuration loading, validation and the always-fresh settings provider."""

from __future__ import annotations

from copy import deepcopy
from enum import Enum
import logging
import os
from pathlib import Path
import threading
from typing import Any
from urllib.parse import urlparse

from platformdirs import user_config_path, user_documents_path
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from .exceptions import ConfigValidationError

import tomllib  # stdlib since Python 3.11 (project requires >=3.11)

LOGGER = logging.getLogger(__name__)

APP_NAME = "local-llm-chat"
CONFIG_DIR = user_config_path(APP_NAME)
CONFIG_PATH = CONFIG_DIR / "config.toml"

VALID_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful SQL Server and T-SQL assistant. "
    "You provide expert advice on SQL Server, T-SQL queries, database design, "
    "performance optimization, and troubleshooting."
)


class Provider(str, Enum):
    """Backend families with distinct HTTP contracts."""

    OLLAMA = "ollama"
    LMSTUDIO = "lmstudio"
    OPENAI_COMPATIBLE = "openai_compatible"
    CUSTOM = "custom"

    @property
    def label(self) -> str:
        return _PROVIDER_LABELS[self]


_PROVIDER_LABELS = {
    Provider.OLLAMA: "Ollama",
    Provider.LMSTUDIO: "LM Studio",
    Provider.OPENAI_COMPATIBLE: "OpenAI-compatible",
    Provider.CUSTOM: "Custom",
}


class LlmSettings(BaseModel):
    """Immutable snapshot of the settings a chat turn is built from."""

    model_config = ConfigDict(frozen=True)

    provider: Provider = Provider.OLLAMA
    api_url: str = "http://localhost:11434"
    model_name: str = "llama3"
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=2048, gt=0)
    timeout_seconds: int = Field(default=120, gt=0)
    max_history_length: int = Field(default=50, ge=1)
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    bearer_token: str = ""

    @field_validator("provider", mode="before")
    @classmethod
    def _normalize_provider(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower().replace("-", "_")
        return value

    @field_validator("api_url", mode="before")
    @classmethod
    def _validate_api_url(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Expected a string value.")
        normalized = value.strip()
        parsed = urlparse(normalized)
        if parsed.scheme.lower() not in {"http", "https"}:
            raise ValueError("api_url must use http or https scheme.")
        if not parsed.hostname:
            raise ValueError("api_url must include a hostname.")
        return normalized

    @field_validator("model_name", mode="before")
    @classmethod
    def _validate_required_string(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Expected a string value.")
        normalized = value.strip()
        if not normalized:
            raise ValueError("String value must not be empty.")
        return normalized

    @field_validator("system_prompt", "bearer_token", mode="before")
    @classmethod
    def _normalize_text(cls, value: Any) -> str:
        if value is None:
            return ""
        if not isinstance(value, str):
            raise ValueError("Expected a string value.")
        return value.strip()

    @property
    def has_bearer_token(self) -> bool:
        return bool(self.bearer_token)


class WorkspaceConfig(BaseModel):
    """Sandbox root used by the filesystem slash commands."""

    root: str = Field(default_factory=lambda: str(user_documents_path()))

    @field_validator("root", mode="before")
    @classmethod
    def _validate_root(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("workspace root must be a string.")
        normalized = value.strip()
        if not normalized:
            raise ValueError("workspace root must not be empty.")
        return normalized

    @property
    def root_path(self) -> Path:
        return Path(self.root).expanduser()


class LoggingConfig(BaseModel):
    """Logging behavior and output destinations."""

    level: str = "INFO"
    structured: bool = True
    log_to_file: bool = False
    log_file_path: str = "~/.local/state/local-llm-chat/app.log"

    @field_validator("level", mode="before")
    @classmethod
    def _validate_level(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Logging level must be a string.")
        normalized = value.strip().upper()
        if normalized not in VALID_LOG_LEVELS:
            raise ValueError(f"Unsupported log level {normalized!r}.")
        return normalized

    @field_validator("log_file_path", mode="before")
    @classmethod
    def _validate_log_file_path(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("log_file_path must be a string.")
        normalized = value.strip()
        if not normalized:
            raise ValueError("log_file_path must not be empty.")
        return normalized


class Config(BaseModel):
    """Root configuration model for all sections."""

    llm: LlmSettings = LlmSettings()
    workspace: WorkspaceConfig = WorkspaceConfig()
    logging: LoggingConfig = LoggingConfig()


DEFAULT_CONFIG: dict[str, dict[str, Any]] = Config().model_dump(mode="json")


def ensure_config_dir(config_dir: Path | None = None) -> Path:
    """Ensure that the config directory exists and return its path."""
    directory = config_dir or CONFIG_DIR
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        LOGGER.warning("Unable to create config directory %s: %s", directory, exc)
    return directory


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override values onto base values."""
    merged: dict[str, Any] = deepcopy(base)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _enforce_private_permissions(path: Path) -> None:
    """Best-effort enforcement of private file permissions on POSIX systems."""
    if os.name != "posix" or not path.exists():
        return
    try:
        path.chmod(0o600)
    except OSError as exc:
        LOGGER.warning("Unable to enforce 0600 permissions for %s: %s", path, exc)


def _validate_config(raw: dict[str, Any]) -> Config:
    """Validate merged config and fallback to safe defaults when possible."""
    try:
        return Config.model_validate(raw)
    except ValidationError as exc:
        LOGGER.warning("Configuration validation failed, using safe defaults: %s", exc)
        return Config.model_validate(deepcopy(DEFAULT_CONFIG))
    except Exception as exc:  # noqa: BLE001 - unexpected model construction failure.
        raise ConfigValidationError(f"Unable to validate configuration: {exc}") from exc


def load_config(config_path: Path | None = None) -> Config:
    """
    Load configuration from TOML, merge with defaults, and validate.

    The config file may hold a bearer token, so it is kept private (0600).
    """
    target_path = config_path or CONFIG_PATH
    ensure_config_dir(target_path.parent)

    raw_data: dict[str, Any] = {}
    if target_path.exists():
        _enforce_private_permissions(target_path)
        try:
            raw_data = tomllib.loads(target_path.read_text(encoding="utf-8"))
        except (OSError, tomllib.TOMLDecodeError) as exc:
            LOGGER.warning("Failed to parse config at %s: %s", target_path, exc)
            raw_data = {}

    return _validate_config(_deep_merge(DEFAULT_CONFIG, raw_data))


class SettingsProvider:
    """Hand out immutable settings snapshots and accept validated updates.

    Callers read ``get()`` once per chat turn, so an update made by the host
    application takes effect on the next turn without restarting anything.
    """

    def __init__(self, settings: LlmSettings | None = None) -> None:
        self._lock = threading.Lock()
        self._settings = settings or LlmSettings()

    def get(self) -> LlmSettings:
        """Return the current snapshot."""
        with self._lock:
            return self._settings

    def update(self, **changes: Any) -> LlmSettings:
        """Apply field changes, validate the result and swap it in."""
        with self._lock:
            payload = self._settings.model_dump()
            payload.update(changes)
            try:
                updated = LlmSettings.model_validate(payload)
            except ValidationError as exc:
                raise ConfigValidationError(f"Invalid settings update: {exc}") from exc
            self._settings = updated
        LOGGER.info(
            "settings.updated",
            extra={"event": "settings.updated", "fields": sorted(changes)},
        )
        return updated

    def replace(self, settings: LlmSettings) -> None:
        """Swap in a complete snapshot built elsewhere."""
        with self._lock:
            self._settings = settings

    def reset(self) -> LlmSettings:
        """Restore default settings."""
        with self._lock:
            self._settings = LlmSettings()
            return self._settings
