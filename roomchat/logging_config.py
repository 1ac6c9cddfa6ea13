from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from .config import ClientRuntimeConfig
from .util import expand_path

DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def level_from(value: Any, default: int) -> int:
    """Accept a level name (any case, ``WARN`` included) or a number."""
    if isinstance(value, int):
        return value
    name = str(value or "").strip().upper()
    if not name:
        return default
    if name == "WARN":
        name = "WARNING"

    known = logging.getLevelNamesMapping()
    if name in known:
        return known[name]
    return int(name) if name.isdigit() else default


def _optional(value: Any) -> str | None:
    s = "" if value is None else str(value)
    return s if s.strip() else None


def _log_file(cfg: ClientRuntimeConfig, override: str | None) -> Path | None:
    # An empty override falls back to the config value.
    name = _optional(override) or _optional(cfg.log_file)
    return Path(expand_path(name)) if name else None


def _handlers(cfg: ClientRuntimeConfig, log_file: Path | None) -> list[logging.Handler]:
    handlers: list[logging.Handler] = []
    if cfg.log_console:
        # stderr, so log lines never interleave with the chat on stdout.
        handlers.append(logging.StreamHandler())
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    formatter = logging.Formatter(
        fmt=str(cfg.log_format or "").strip() or DEFAULT_FORMAT,
        datefmt=_optional(cfg.log_datefmt),
    )
    for h in handlers:
        h.setFormatter(formatter)
    return handlers


def configure_logging(
    cfg: ClientRuntimeConfig,
    *,
    override_level: str | None = None,
    override_file: str | None = None,
) -> None:
    """Install roomchat's root handlers.

    Calling it again replaces the handlers from the previous call. The
    ``websockets`` library logs frames at DEBUG, so it gets its own level.
    """
    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    for h in _handlers(cfg, _log_file(cfg, override_file)):
        root.addHandler(h)

    root.setLevel(level_from(override_level or cfg.log_level, logging.WARNING))
    logging.getLogger("websockets").setLevel(level_from(cfg.log_websockets_level, logging.WARNING))

    logging.captureWarnings(True)
