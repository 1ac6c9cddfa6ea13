"""Best-effort delivery tracking for outbound chat and private messages.

The server echoes accepted messages back to the sender, so an inbound
``chat``/``private`` envelope carrying the id of a pending outbound message
counts as its acknowledgment. Anything not echoed within the timeout is
reported once as possibly undelivered and forgotten. Nothing is resent.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .envelope import Envelope
from .errors import DeliveryTimeout
from .timers import TimerHandle
from .util import preview

if TYPE_CHECKING:
    from .controller import SessionController


@dataclass
class PendingDelivery:
    id: str
    envelope: Envelope
    registered_at: float
    timer: TimerHandle | None = field(default=None, repr=False, compare=False)


class DeliveryTracker:
    def __init__(self, controller: SessionController) -> None:
        self.controller = controller
        self.log = logging.getLogger("roomchat.delivery")
        self.timeout_s = float(controller.config.delivery_timeout_s)
        self.pending: dict[str, PendingDelivery] = {}

    def register(self, env: Envelope) -> PendingDelivery | None:
        """Start tracking ``env``. Only non-empty chat/private envelopes are tracked."""
        if not env.is_acked:
            return None

        scheduler = self.controller.scheduler
        old = self.pending.pop(env.id, None)
        if old is not None and old.timer is not None:
            old.timer.cancel()

        pending = PendingDelivery(id=env.id, envelope=env, registered_at=scheduler.now())
        pending.timer = scheduler.call_later(self.timeout_s, lambda: self._expire(env.id))
        self.pending[env.id] = pending
        return pending

    def acknowledge(self, mid: str) -> bool:
        """Settle a pending delivery. Returns True if ``mid`` was pending."""
        if not mid:
            return False
        pending = self.pending.pop(mid, None)
        if pending is None:
            return False

        if pending.timer is not None:
            pending.timer.cancel()
        self.controller.stats.inc("acks")
        if self.log.isEnabledFor(logging.DEBUG):
            elapsed = self.controller.scheduler.now() - pending.registered_at
            self.log.debug("Acknowledged id=%s after %.3fs", mid, elapsed)
        return True

    def clear(self) -> None:
        for pending in self.pending.values():
            if pending.timer is not None:
                pending.timer.cancel()
        self.pending.clear()

    def _expire(self, mid: str) -> None:
        pending = self.pending.pop(mid, None)
        if pending is None:
            return

        err = DeliveryTimeout(pending, preview(pending.envelope.text))
        self.controller.stats.inc("delivery_timeouts")
        self.log.info("%s (id=%s)", err, mid)
        self.controller.system_notice(str(err))
