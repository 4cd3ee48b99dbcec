"""Path validation and resolution against the slash-command sandbox root."""

from __future__ import annotations

import os
from pathlib import Path, PurePath

from .exceptions import NotFoundError, SizeLimitError, ValidationError

MAX_FILE_SIZE = 1024 * 1024

if os.name == "nt":
    INVALID_PATH_CHARS = frozenset(chr(code) for code in range(32)) | frozenset('"<>|')
else:
    INVALID_PATH_CHARS = frozenset("\0")


def is_rooted(path: str) -> bool:
    """Return True for absolute paths and, on Windows, drive- or root-relative ones."""
    return bool(PurePath(path).anchor)


def validate_relative_path(path: str) -> bool:
    """Return whether ``path`` is a safe path relative to the sandbox root."""
    if not path or not path.strip():
        return False
    if "\0" in path:
        return False
    if is_rooted(path):
        return False
    if ".." in path:
        return False
    return not any(char in INVALID_PATH_CHARS for char in path)


def resolve_path(root: Path, raw_path: str) -> Path:
    """Resolve a command argument to a filesystem path.

    Absolute paths are returned untouched; relative ones must pass
    ``validate_relative_path`` and are joined to ``root``.
    """
    if is_rooted(raw_path):
        return Path(raw_path)
    if not validate_relative_path(raw_path):
        raise ValidationError("Invalid file path.")
    return root / raw_path


def _format_size(size: int) -> str:
    if size >= 1024 * 1024 and size % (1024 * 1024) == 0:
        return f"{size // (1024 * 1024)}MB"
    return f"{size // 1024}KB"


def check_file_size(path: Path, max_size: int = MAX_FILE_SIZE) -> int:
    """Return the size of ``path`` or raise if it is missing or too large."""
    if not path.is_file():
        raise NotFoundError(f"File not found: {path}")
    size = path.stat().st_size
    if size > max_size:
        raise SizeLimitError(f"File too large (max {_format_size(max_size)})")
    return size
