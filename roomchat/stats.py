"""Statistics tracking and reporting for a chat session."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .controller import SessionController


class StatsManager:
    """
    Counts session events for the status line and the exit report.

    Tracks counters for:
    - Frames sent/received and frames that failed to decode
    - Sends rejected while disconnected
    - Connects and disconnects
    - Delivery acknowledgments and timeouts
    - Ping/pong activity
    """

    def __init__(self, controller: SessionController) -> None:
        self.controller = controller

        self.started_wall_time: float = time.time()
        self.started_monotonic: float = time.monotonic()

        self._counters: dict[str, int] = {
            "sent": 0,
            "received": 0,
            "decode_errors": 0,
            "send_rejected": 0,
            "connects": 0,
            "disconnects": 0,
            "acks": 0,
            "delivery_timeouts": 0,
            "pings_out": 0,
            "pongs_out": 0,
            "latency_samples": 0,
        }

    def inc(self, key: str, delta: int = 1) -> None:
        """Increment a counter by the given delta."""
        self._counters[key] = int(self._counters.get(key, 0)) + int(delta)

    def get(self, key: str) -> int:
        return self._counters.get(key, 0)

    def snapshot(self) -> dict[str, int]:
        return dict(self._counters)

    def format_stats(self) -> str:
        """Format current statistics as a human-readable string."""
        from . import __version__

        uptime_s = time.monotonic() - self.started_monotonic
        c = self.snapshot()
        state = self.controller.state
        latency = self.controller.latency.stats

        lines: list[str] = []
        lines.append(f"roomchat {__version__} stats")
        lines.append(f"uptime_s={uptime_s:.1f}")
        lines.append(
            f"session: user={state.username} room={state.current_room} "
            f"private={state.private_target or '-'} rooms={len(state.room_directory)} "
            f"users={len(state.user_directory)}"
        )
        lines.append(
            "io: sent={} received={} decode_errors={} send_rejected={}".format(
                c.get("sent", 0),
                c.get("received", 0),
                c.get("decode_errors", 0),
                c.get("send_rejected", 0),
            )
        )
        lines.append(
            "connection: connects={} disconnects={}".format(
                c.get("connects", 0),
                c.get("disconnects", 0),
            )
        )
        lines.append(
            "delivery: acks={} timeouts={} pending={}".format(
                c.get("acks", 0),
                c.get("delivery_timeouts", 0),
                len(self.controller.delivery.pending),
            )
        )
        average = latency.average_ms
        lines.append(
            "latency: pings_out={} pongs_out={} samples={} average_ms={}".format(
                c.get("pings_out", 0),
                c.get("pongs_out", 0),
                latency.sample_count,
                f"{average:.0f}" if average is not None else "-",
            )
        )

        return "\n".join(lines)
