from __future__ import annotations

import os
import random

from .constants import PREVIEW_CHARS


def expand_path(p: str) -> str:
    return os.path.expanduser(os.path.expandvars(p))


def normalize_name(value) -> str | None:
    """Return a trimmed user or room name, or None if it is unusable."""
    if not isinstance(value, str):
        return None

    s = value.strip()
    if not s:
        return None

    # Embedded newlines or NUL break both the terminal output and the
    # comma/colon separated user list the server sends back.
    if "\n" in s or "\r" in s or "\x00" in s:
        return None

    return s


def generated_username() -> str:
    return f"user{random.randrange(1000)}"


def preview(text: str, limit: int = PREVIEW_CHARS) -> str:
    if len(text) > limit:
        return text[:limit] + "..."
    return text
