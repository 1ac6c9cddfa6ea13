from __future__ import annotations

import logging

from .codec import decode
from .commands import Action, CommandInterpreter
from .config import ClientRuntimeConfig
from .connection import ConnectionManager, ConnectionState
from .constants import (
    KIND_CHAT,
    KIND_COMMAND,
    KIND_PRIVATE,
    KIND_SYSTEM,
    LOG_ERROR,
    LOG_INFO,
    LOG_PREVIEW_CHARS,
    LOG_RECEIVED,
    LOG_SENT,
    PRIVATE_ROOM,
)
from .delivery import DeliveryTracker
from .dispatcher import Dispatcher
from .envelope import Envelope, make_envelope, now_ms
from .errors import DecodeError, SendRejected
from .latency import LatencyProber
from .render import NullRenderer, Renderer
from .rooms import RoomManager
from .state import HistoryEntry, NetworkLogEntry, SessionState
from .stats import StatsManager
from .timers import LoopScheduler, Scheduler
from .transport import Transport, WebSocketTransport
from .util import normalize_name, preview


class SessionController:
    """One chat session: state, connection, and the protocol around them.

    All methods run on the event loop thread. Socket events and user input
    are handled one at a time, each to completion, so no locking is needed.
    """

    def __init__(
        self,
        config: ClientRuntimeConfig | None = None,
        *,
        renderer: Renderer | None = None,
        transport: Transport | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        self.config = config or ClientRuntimeConfig()
        self.log = logging.getLogger("roomchat.session")
        self.renderer: Renderer = renderer or NullRenderer()
        self.scheduler: Scheduler = scheduler or LoopScheduler()

        self.state = SessionState(
            self.config.username,
            self.config.default_room,
            history_limit=self.config.history_limit,
            network_log_limit=self.config.network_log_limit,
        )
        self.stats = StatsManager(self)

        self.connection = ConnectionManager(self, transport or WebSocketTransport())
        self.delivery = DeliveryTracker(self)
        self.latency = LatencyProber(self)
        self.rooms = RoomManager(self)
        self.commands = CommandInterpreter(self)
        # Built last: its handler table points into the components above.
        self.dispatcher = Dispatcher(self)

    @property
    def connection_state(self) -> ConnectionState:
        return self.connection.state

    # Operations

    def connect(self) -> None:
        self.connection.connect()

    def close(self) -> None:
        self.connection.close()
        self.delivery.clear()

    def submit(self, text: str) -> Action | None:
        """Handle one line of user input."""
        return self.commands.handle(text)

    def join_room(self, name: str) -> bool:
        return self.rooms.join_room(name)

    def ping(self) -> bool:
        return self.latency.ping()

    def start_private_chat(self, username: str) -> bool:
        target = normalize_name(username)
        if target is None or target == self.state.username:
            return False
        if target == self.state.private_target:
            return False

        self.state.private_target = target
        self.log.info("Private mode target=%s", target)
        self.system_notice(f"Private chat with {target}; messages are only visible to them")
        return True

    def exit_private_mode(self) -> bool:
        if self.state.private_target is None:
            return False

        self.state.private_target = None
        self.log.info("Back to room %s", self.state.current_room)
        self.system_notice(f"Left private chat; back in room {self.state.current_room}")
        return True

    def send_text(self, text: str) -> bool:
        """Send plain text to the private target if set, otherwise to the room."""
        if not text.strip():
            return False
        if self.state.private_target is not None:
            return self.send_private(self.state.private_target, text)

        env = make_envelope(
            KIND_CHAT, username=self.state.username, room=self.state.current_room, text=text
        )
        self._display_own(env)
        return self.send(env)

    def send_private(self, target: str, text: str) -> bool:
        if not target or not text.strip():
            return False
        env = make_envelope(
            KIND_PRIVATE,
            username=self.state.username,
            room=PRIVATE_ROOM,
            text=text,
            target=target,
        )
        self._display_own(env)
        return self.send(env)

    def send_command(self, text: str) -> bool:
        if not text.strip():
            return False
        env = make_envelope(
            KIND_COMMAND, username=self.state.username, room=self.state.current_room, text=text
        )
        return self.send(env)

    # Plumbing shared by the components

    def send(self, env: Envelope) -> bool:
        try:
            self.connection.send(env)
        except SendRejected as e:
            self.stats.inc("send_rejected")
            self.log.info("%s", e)
            self.system_notice("Not connected to the server; message not sent")
            return False

        self.delivery.register(env)
        self.log_network(
            "send", f"{env.kind}: {preview(env.text, LOG_PREVIEW_CHARS)}", LOG_SENT
        )
        return True

    def on_connected(self) -> None:
        self.state.server_address = self.connection.server_address
        self.log_network("connect", "connection established", LOG_INFO)

        # Identity announcement: lets the server register the name and room.
        announce = make_envelope(
            KIND_CHAT, username=self.state.username, room=self.state.current_room, text=""
        )
        self.send(announce)
        self.system_notice("Connected to the server")

    def on_disconnected(self) -> None:
        self.latency.reset()

    def on_frame(self, data: str) -> None:
        self.stats.inc("received")
        try:
            env = decode(data)
        except DecodeError as e:
            self.stats.inc("decode_errors")
            self.log.warning("Dropping bad frame bytes=%s err=%s", len(data), e)
            self.log_network("error", f"message parse failed: {e}", LOG_ERROR)
            return

        text = preview(env.text, LOG_PREVIEW_CHARS) if env.text else "empty"
        self.log_network("receive", f"{env.kind}: {text}", LOG_RECEIVED)
        self.dispatcher.dispatch(env)

    def display(self, entry: HistoryEntry) -> None:
        self.state.add_message(entry)
        self.renderer.on_message_display(entry)

    def system_notice(self, text: str) -> None:
        self.state.add_message(
            HistoryEntry(
                kind=KIND_SYSTEM,
                text=text,
                timestamp=now_ms(),
                room=self.state.current_room,
            )
        )
        self.renderer.on_system_notice(text)

    def log_network(self, category: str, message: str, level: str) -> NetworkLogEntry:
        entry = self.state.add_network_log(category, message, level)
        self.renderer.on_network_log_append(entry)
        return entry

    def _display_own(self, env: Envelope) -> None:
        self.display(
            HistoryEntry(
                kind=env.kind,
                text=env.text,
                username=env.username,
                timestamp=env.timestamp,
                is_self=True,
                room=env.room,
                target=env.target,
                id=env.id,
            )
        )
