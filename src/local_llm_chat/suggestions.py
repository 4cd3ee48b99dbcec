"""Extract file suggestions that models announce with fenced file blocks."""

from __future__ import annotations

import re

# Matches an opening fence such as: ````file path="queries/report.sql"
_FILE_FENCE_RE = re.compile(r'````file\s+path="([^"]+)"', re.MULTILINE)


def extract_file_suggestions(content: str) -> list[str]:
    """Return suggested relative paths in the order they appear."""
    if not content:
        return []
    return _FILE_FENCE_RE.findall(content)
