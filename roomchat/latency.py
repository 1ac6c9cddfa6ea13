from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .constants import KIND_COMMAND, KIND_PING, KIND_PONG, LOG_INFO, PING_COMMAND
from .envelope import Envelope, make_envelope, now_ms

if TYPE_CHECKING:
    from .controller import SessionController


@dataclass
class LatencyStats:
    ping_start_time: float | None = None
    sample_count: int = 0
    cumulative_latency_ms: float = 0.0
    last_latency_ms: float | None = None

    @property
    def outstanding(self) -> bool:
        return self.ping_start_time is not None

    @property
    def average_ms(self) -> float | None:
        if self.sample_count <= 0:
            return None
        return self.cumulative_latency_ms / self.sample_count

    def record(self, elapsed_ms: float) -> None:
        self.sample_count += 1
        self.cumulative_latency_ms += elapsed_ms
        self.last_latency_ms = elapsed_ms
        self.ping_start_time = None


class LatencyProber:
    """Round-trip probes; at most one is outstanding at a time.

    A probe goes out either as a ``/ping`` command the server answers, or as a
    ``ping`` envelope, depending on ``ping_mode``. Either an inbound ``ping``
    or ``pong`` completes it.
    """

    def __init__(self, controller: SessionController) -> None:
        self.controller = controller
        self.log = logging.getLogger("roomchat.latency")
        self.stats = LatencyStats()

    def ping(self) -> bool:
        """Start a probe. Returns False if one is outstanding or the send failed."""
        if self.stats.outstanding:
            self.log.debug("Probe already outstanding; ping ignored")
            return False

        state = self.controller.state
        if self.controller.config.ping_mode == "ping":
            env = make_envelope(
                KIND_PING, username=state.username, room=state.current_room, text=str(now_ms())
            )
        else:
            env = make_envelope(
                KIND_COMMAND, username=state.username, room=state.current_room, text=PING_COMMAND
            )

        self.stats.ping_start_time = self.controller.scheduler.now()
        if not self.controller.send(env):
            self.stats.ping_start_time = None
            return False

        self.controller.stats.inc("pings_out")
        self.controller.log_network("ping", "ping request sent", LOG_INFO)
        return True

    def handle_ping(self, env: Envelope) -> None:
        state = self.controller.state
        pong = make_envelope(
            KIND_PONG, username=state.username, room=state.current_room, text=env.text
        )
        if self.controller.send(pong):
            self.controller.stats.inc("pongs_out")
        self._complete()

    def handle_pong(self, env: Envelope) -> None:
        self._complete()

    def reset(self) -> None:
        """Forget an outstanding probe; its reply can no longer arrive."""
        if self.stats.outstanding:
            self.log.debug("Dropping outstanding probe")
        self.stats.ping_start_time = None

    def _complete(self) -> None:
        start = self.stats.ping_start_time
        if start is None:
            return

        elapsed_ms = max(0.0, (self.controller.scheduler.now() - start) * 1000.0)
        self.stats.record(elapsed_ms)
        self.controller.stats.inc("latency_samples")

        average = self.stats.average_ms or 0.0
        self.log.info("Latency %.0fms average=%.0fms samples=%d", elapsed_ms, average, self.stats.sample_count)
        self.controller.log_network("ping", f"latency {elapsed_ms:.0f}ms", LOG_INFO)
        self.controller.renderer.on_latency_update(elapsed_ms, average)
