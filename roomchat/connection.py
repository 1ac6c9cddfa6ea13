"""Connection lifecycle: DISCONNECTED -> CONNECTING -> CONNECTED -> DISCONNECTED.

There is no terminal state. Every close, whether clean or caused by a network
failure, schedules another ``connect()`` according to the reconnect policy,
unless the session was torn down with :meth:`ConnectionManager.close`.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING
from urllib.parse import urlsplit, urlunsplit

from .codec import encode
from .constants import LOG_ERROR, LOG_INFO, WS_PATH
from .envelope import Envelope, validate_outbound
from .errors import SendRejected, TransportClosed, TransportError
from .timers import TimerHandle

if TYPE_CHECKING:
    from .config import ClientRuntimeConfig
    from .controller import SessionController
    from .transport import Transport


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


def _split_origin(origin: str):
    return urlsplit(origin if "://" in origin else f"http://{origin}")


def build_ws_url(origin: str, path: str = WS_PATH) -> str:
    """Socket endpoint for a page origin; secure origins get ``wss``."""
    parts = _split_origin(origin)
    if not parts.netloc:
        raise ValueError(f"origin has no host: {origin!r}")
    scheme = "wss" if parts.scheme in ("https", "wss") else "ws"
    if not path.startswith("/"):
        path = "/" + path
    return urlunsplit((scheme, parts.netloc, path, "", ""))


def origin_host(origin: str) -> str:
    return _split_origin(origin).netloc


@dataclass(frozen=True)
class ReconnectPolicy:
    delay_s: float = 5.0
    max_attempts: int = 0  # 0 retries forever
    jitter_s: float = 0.0

    @classmethod
    def from_config(cls, cfg: ClientRuntimeConfig) -> ReconnectPolicy:
        return cls(
            delay_s=max(0.0, float(cfg.reconnect_delay_s)),
            max_attempts=max(0, int(cfg.reconnect_max_attempts)),
            jitter_s=max(0.0, float(cfg.reconnect_jitter_s)),
        )

    def allows(self, attempts: int) -> bool:
        return self.max_attempts == 0 or attempts < self.max_attempts

    def next_delay(self) -> float:
        if self.jitter_s <= 0:
            return self.delay_s
        return self.delay_s + random.uniform(0.0, self.jitter_s)


class ConnectionManager:
    """Owns the transport and drives the connection state machine."""

    def __init__(self, controller: SessionController, transport: Transport) -> None:
        self.controller = controller
        self.transport = transport
        self.log = logging.getLogger("roomchat.connection")

        cfg = controller.config
        self.url = build_ws_url(cfg.origin, cfg.ws_path)
        self.server_address = origin_host(cfg.origin)
        self.policy = ReconnectPolicy.from_config(cfg)

        self.state = ConnectionState.DISCONNECTED
        self._reconnect_timer: TimerHandle | None = None
        # Reconnects scheduled since the last successful open.
        self._attempts = 0
        self._closing = False

    @property
    def connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_timer is not None

    def connect(self) -> None:
        self._reconnect_timer = None
        if self.state is not ConnectionState.DISCONNECTED:
            self.log.debug("connect() ignored in state %s", self.state.value)
            return

        self._closing = False
        self._set_state(ConnectionState.CONNECTING)
        self.log.info("Connecting url=%s", self.url)
        self.controller.log_network("connect", f"connecting to {self.url}", LOG_INFO)
        self.transport.open(self.url, self)

    def close(self) -> None:
        """Tear the session down; no reconnect is scheduled afterwards."""
        self._closing = True
        if self._reconnect_timer is not None:
            self._reconnect_timer.cancel()
            self._reconnect_timer = None
        if self.state is not ConnectionState.DISCONNECTED:
            self.transport.close()
        # An attempt still in its handshake is abandoned without a close event.
        if self.state is ConnectionState.CONNECTING:
            self._set_state(ConnectionState.DISCONNECTED)

    def send(self, env: Envelope) -> None:
        if self.state is not ConnectionState.CONNECTED or not self.transport.is_open:
            raise SendRejected(env.kind)

        validate_outbound(env)
        data = encode(env)
        try:
            self.transport.send(data)
        except TransportError as e:
            raise SendRejected(env.kind) from e

        self.controller.stats.inc("sent")
        if self.log.isEnabledFor(logging.DEBUG):
            self.log.debug("Sent kind=%s id=%s bytes=%s", env.kind, env.id, len(data))

    # Transport callbacks

    def handle_open(self) -> None:
        self._attempts = 0
        self._set_state(ConnectionState.CONNECTED)
        self.controller.stats.inc("connects")
        self.log.info("Connected url=%s", self.url)
        self.controller.on_connected()

    def handle_frame(self, data: str) -> None:
        self.controller.on_frame(data)

    def handle_error(self, exc: TransportError) -> None:
        # The close that follows drives the state change.
        self.log.warning("Transport error: %s", exc)
        self.controller.log_network("error", str(exc), LOG_ERROR)

    def handle_close(self, exc: TransportClosed) -> None:
        if self.state is ConnectionState.CONNECTED:
            self.controller.stats.inc("disconnects")
        self._set_state(ConnectionState.DISCONNECTED)
        self.log.info("Connection closed code=%s reason=%r", exc.code, exc.reason)
        self.controller.log_network("disconnect", str(exc), LOG_ERROR)
        self.controller.on_disconnected()

        if self._closing:
            return
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        if not self.policy.allows(self._attempts):
            self.log.warning("Giving up after %d reconnect attempts", self._attempts)
            self.controller.system_notice(
                f"Connection lost; gave up after {self._attempts} reconnect attempts"
            )
            return

        self._attempts += 1
        delay = self.policy.next_delay()
        self.log.info("Reconnecting in %.1fs attempt=%d", delay, self._attempts)
        self._reconnect_timer = self.controller.scheduler.call_later(delay, self.connect)

    def _set_state(self, state: ConnectionState) -> None:
        if state is self.state:
            return
        self.state = state
        self.controller.renderer.on_connection_status_change(state)
