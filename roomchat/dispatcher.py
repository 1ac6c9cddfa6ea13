from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Callable

from .constants import (
    KIND_CHAT,
    KIND_COMMAND,
    KIND_JOIN,
    KIND_PING,
    KIND_PONG,
    KIND_PRIVATE,
    KIND_SYSTEM,
    KIND_USERLIST,
    LOG_INFO,
)
from .envelope import Envelope
from .state import HistoryEntry

if TYPE_CHECKING:
    from .controller import SessionController


class Dispatcher:
    """
    Routes decoded inbound envelopes by kind.

    Each kind has one named handler in ``handlers``. Unknown kinds are
    logged and dropped; they are never an error.
    """

    def __init__(self, controller: SessionController) -> None:
        self.controller = controller
        self.log = logging.getLogger("roomchat.dispatch")

        pattern = controller.config.client_address_pattern
        self._address_re = re.compile(pattern) if pattern else None

        self.handlers: dict[str, Callable[[Envelope], None]] = {
            KIND_CHAT: self.on_chat,
            KIND_SYSTEM: self.on_system,
            KIND_PRIVATE: self.on_private,
            KIND_USERLIST: controller.rooms.handle_userlist,
            KIND_PING: controller.latency.handle_ping,
            KIND_PONG: controller.latency.handle_pong,
            KIND_COMMAND: self.on_silent,
            KIND_JOIN: self.on_silent,
        }

    def dispatch(self, env: Envelope) -> None:
        handler = self.handlers.get(env.kind)
        if handler is None:
            self.log.info("Ignoring unknown kind=%r from=%r", env.kind, env.username)
            self.controller.log_network("unknown", f"unknown message kind: {env.kind}", LOG_INFO)
            return
        handler(env)

    def on_chat(self, env: Envelope) -> None:
        c = self.controller
        # An echo of our own pending message confirms delivery; the optimistic
        # entry already shows it.
        if c.delivery.acknowledge(env.id) and self._is_self(env):
            return
        if not env.text.strip():
            return
        c.display(
            HistoryEntry(
                kind=KIND_CHAT,
                text=env.text,
                username=env.username,
                timestamp=env.timestamp,
                is_self=self._is_self(env),
                room=env.room,
                id=env.id,
            )
        )

    def on_system(self, env: Envelope) -> None:
        c = self.controller
        c.system_notice(env.text)

        if self._address_re is None or not env.text:
            return
        m = self._address_re.search(env.text)
        if m:
            address = m.group(1).strip()
            if address and address != c.state.client_address:
                c.state.client_address = address
                self.log.info("Client address reported by server: %s", address)

    def on_private(self, env: Envelope) -> None:
        c = self.controller
        acked = c.delivery.acknowledge(env.id)
        is_self = self._is_self(env)

        if not is_self and c.state.private_target is None and env.username:
            c.start_private_chat(env.username)

        if acked and is_self:
            return
        if not env.text.strip():
            return
        c.display(
            HistoryEntry(
                kind=KIND_PRIVATE,
                text=env.text,
                username=env.username,
                timestamp=env.timestamp,
                is_self=is_self,
                room=env.room,
                target=env.target,
                id=env.id,
            )
        )

    def on_silent(self, env: Envelope) -> None:
        self.log.debug("Not displaying kind=%s from=%r", env.kind, env.username)

    def _is_self(self, env: Envelope) -> bool:
        return env.username == self.controller.state.username
