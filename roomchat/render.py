"""Contract between the session controller and whatever draws the session.

The controller only ever calls out through these methods; it never reads
anything back from the presentation layer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .connection import ConnectionState
    from .state import HistoryEntry, NetworkLogEntry, UserEntry


class Renderer(Protocol):
    def on_message_display(self, entry: HistoryEntry) -> None: ...

    def on_system_notice(self, text: str) -> None: ...

    def on_user_directory_change(self, directory: list[UserEntry]) -> None: ...

    def on_connection_status_change(self, state: ConnectionState) -> None: ...

    def on_latency_update(self, current: float, average: float) -> None: ...

    def on_network_log_append(self, entry: NetworkLogEntry) -> None: ...


class NullRenderer:
    """Renderer that discards everything (headless sessions)."""

    def on_message_display(self, entry: HistoryEntry) -> None:
        pass

    def on_system_notice(self, text: str) -> None:
        pass

    def on_user_directory_change(self, directory: list[UserEntry]) -> None:
        pass

    def on_connection_status_change(self, state: ConnectionState) -> None:
        pass

    def on_latency_update(self, current: float, average: float) -> None:
        pass

    def on_network_log_append(self, entry: NetworkLogEntry) -> None:
        pass
