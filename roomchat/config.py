from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Any

from .constants import (
    CLIENT_ADDRESS_PATTERN,
    DEFAULT_ROOM,
    DELIVERY_TIMEOUT_S,
    MESSAGE_HISTORY_LIMIT,
    NETWORK_LOG_LIMIT,
    RECONNECT_DELAY_S,
    WS_PATH,
)

PING_MODES = ("command", "ping")


@dataclass(frozen=True)
class ClientRuntimeConfig:
    config_path: str | None = None
    origin: str = "http://127.0.0.1:8080"
    ws_path: str = WS_PATH
    username: str = ""
    default_room: str = DEFAULT_ROOM
    reconnect_delay_s: float = RECONNECT_DELAY_S
    reconnect_max_attempts: int = 0  # 0 retries forever
    reconnect_jitter_s: float = 0.0
    delivery_timeout_s: float = DELIVERY_TIMEOUT_S
    history_limit: int = MESSAGE_HISTORY_LIMIT
    network_log_limit: int = NETWORK_LOG_LIMIT
    ping_mode: str = "command"
    client_address_pattern: str | None = CLIENT_ADDRESS_PATTERN
    log_level: str = "WARNING"
    log_websockets_level: str = "WARNING"
    log_console: bool = True
    log_file: str | None = None
    log_format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    log_datefmt: str | None = None


def load_toml(path: str) -> dict:
    import tomllib

    with open(path, "rb") as f:
        return tomllib.load(f)


_LOGGING_KEYS = {
    "level": "log_level",
    "websockets_level": "log_websockets_level",
    "console": "log_console",
    "file": "log_file",
    "format": "log_format",
    "datefmt": "log_datefmt",
}

_INT_KEYS = ("reconnect_max_attempts", "history_limit", "network_log_limit")
_FLOAT_KEYS = ("reconnect_delay_s", "reconnect_jitter_s", "delivery_timeout_s")
_EMPTY_IS_NONE = ("log_file", "log_datefmt", "client_address_pattern")


def apply_config_data(cfg: ClientRuntimeConfig, data: Any) -> ClientRuntimeConfig:
    """Overlay a parsed TOML document on ``cfg``.

    Keys may sit at the top level or under ``[client]``; ``[logging]`` keys
    map onto the ``log_*`` fields. Unknown keys are ignored.
    """
    if not isinstance(data, dict):
        return cfg

    client = data.get("client")
    if isinstance(client, dict):
        data = {**data, **client}

    log_table = data.get("logging")
    if isinstance(log_table, dict):
        mapped = {
            field: log_table[key] for key, field in _LOGGING_KEYS.items() if key in log_table
        }
        data = {**data, **mapped}

    allowed = set(asdict(cfg).keys())
    # This identifies where the file came from; do not let the file override it.
    allowed.discard("config_path")
    updates = {k: v for k, v in data.items() if k in allowed}

    for key in _INT_KEYS:
        if key in updates:
            updates[key] = int(updates[key])
    for key in _FLOAT_KEYS:
        if key in updates:
            updates[key] = float(updates[key])
    for key in _EMPTY_IS_NONE:
        if key in updates and updates[key] == "":
            updates[key] = None

    if "ping_mode" in updates and updates["ping_mode"] not in PING_MODES:
        raise ValueError(
            f"ping_mode must be one of {', '.join(PING_MODES)}, got {updates['ping_mode']!r}"
        )
    if "default_room" in updates and not str(updates["default_room"]).strip():
        updates["default_room"] = DEFAULT_ROOM

    return replace(cfg, **updates) if updates else cfg


def load_config(path: str, cfg: ClientRuntimeConfig | None = None) -> ClientRuntimeConfig:
    base = cfg or ClientRuntimeConfig()
    return replace(apply_config_data(base, load_toml(path)), config_path=path)
