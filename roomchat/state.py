"""Session state owned by a single :class:`~roomchat.controller.SessionController`.

The message history and the network log are bounded FIFOs: once full, the
oldest entry is evicted for every new one. The room directory always contains
the current room. The user directory is replaced wholesale from each server
``userlist``; it is never merged.
"""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass

from .constants import (
    DEFAULT_ROOM,
    KIND_PRIVATE,
    KIND_SYSTEM,
    MESSAGE_HISTORY_LIMIT,
    NETWORK_LOG_LIMIT,
)
from .util import generated_username, normalize_name


@dataclass(frozen=True)
class HistoryEntry:
    kind: str
    text: str
    username: str = ""
    timestamp: int = 0
    is_self: bool = False
    room: str = ""
    target: str | None = None
    id: str = ""

    @property
    def heading(self) -> str:
        if self.kind == KIND_SYSTEM:
            return ""
        if self.kind == KIND_PRIVATE:
            if self.is_self:
                return f"{self.username} → {self.target or '?'}"
            return f"{self.username} → you"
        return self.username


@dataclass(frozen=True)
class NetworkLogEntry:
    time: str
    category: str
    message: str
    level: str


@dataclass(frozen=True)
class UserEntry:
    username: str
    address: str


class SessionState:
    def __init__(
        self,
        username: str = "",
        default_room: str = DEFAULT_ROOM,
        *,
        history_limit: int = MESSAGE_HISTORY_LIMIT,
        network_log_limit: int = NETWORK_LOG_LIMIT,
    ) -> None:
        if history_limit < 1 or network_log_limit < 1:
            raise ValueError("history and network log limits must be positive")

        self.username: str = normalize_name(username) or generated_username()
        self.current_room: str = normalize_name(default_room) or DEFAULT_ROOM
        self.private_target: str | None = None

        self.message_history: deque[HistoryEntry] = deque(maxlen=history_limit)
        self.network_log: deque[NetworkLogEntry] = deque(maxlen=network_log_limit)

        # Insertion-ordered set of known rooms.
        self.room_directory: dict[str, None] = {self.current_room: None}
        self.user_directory: dict[str, str] = {}

        self.server_address: str = ""
        self.client_address: str = ""

    @property
    def in_private_mode(self) -> bool:
        return self.private_target is not None

    def add_message(self, entry: HistoryEntry) -> HistoryEntry:
        self.message_history.append(entry)
        return entry

    def add_network_log(self, category: str, message: str, level: str) -> NetworkLogEntry:
        entry = NetworkLogEntry(
            time=time.strftime("%H:%M:%S"),
            category=category,
            message=message,
            level=level,
        )
        self.network_log.append(entry)
        return entry

    def add_room(self, room: str) -> bool:
        """Add ``room`` to the directory. Returns False if it was already known."""
        if room in self.room_directory:
            return False
        self.room_directory[room] = None
        return True

    def set_current_room(self, room: str) -> None:
        name = normalize_name(room)
        if name is None:
            raise ValueError("room name must not be empty")
        self.current_room = name
        self.add_room(name)

    @property
    def rooms(self) -> list[str]:
        return list(self.room_directory)

    def replace_users(self, users: list[UserEntry]) -> None:
        self.user_directory = {u.username: u.address for u in users}

    @property
    def users(self) -> list[UserEntry]:
        return [UserEntry(name, addr) for name, addr in self.user_directory.items()]
