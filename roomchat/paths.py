from __future__ import annotations

import os
from pathlib import Path


def default_roomchat_dir() -> Path:
    override = os.environ.get("ROOMCHAT_HOME")
    if override:
        return Path(override)
    return Path.home() / ".roomchat"


def default_config_path() -> Path:
    return default_roomchat_dir() / "roomchat.toml"


def ensure_private_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)
    try:
        # Best-effort tightening; may fail on some filesystems.
        os.chmod(path, 0o700)
    except OSError:
        pass
