from __future__ import annotations

import os
import time
from dataclasses import dataclass

from .constants import (
    ACKED_KINDS,
    CONTROL_KINDS,
    K_ID,
    K_KIND,
    K_ROOM,
    K_TARGET,
    K_TEXT,
    K_TS,
    K_USERNAME,
    KIND_CHAT,
    KIND_PRIVATE,
)
from .errors import DecodeError


def now_ms() -> int:
    return int(time.time() * 1000)


def msg_id() -> str:
    return os.urandom(8).hex()


@dataclass(frozen=True)
class Envelope:
    kind: str
    username: str = ""
    room: str = ""
    text: str = ""
    timestamp: int = 0
    id: str = ""
    target: str | None = None

    def to_wire(self) -> dict[str, object]:
        wire: dict[str, object] = {
            K_KIND: self.kind,
            K_USERNAME: self.username,
            K_ROOM: self.room,
            K_TEXT: self.text,
            K_TS: self.timestamp,
            K_ID: self.id,
        }
        if self.target is not None:
            wire[K_TARGET] = self.target
        return wire

    @property
    def is_acked(self) -> bool:
        """True if this envelope takes part in delivery acknowledgment."""
        return self.kind in ACKED_KINDS and bool(self.text) and bool(self.id)


def make_envelope(
    kind: str,
    *,
    username: str,
    room: str,
    text: str = "",
    target: str | None = None,
    mid: str | None = None,
    ts: int | None = None,
) -> Envelope:
    return Envelope(
        kind=kind,
        username=username,
        room=room,
        text=text,
        timestamp=ts if ts is not None else now_ms(),
        id=mid or msg_id(),
        target=target if kind == KIND_PRIVATE else None,
    )


def validate_outbound(env: Envelope) -> None:
    """Check the invariants a client-built envelope must hold before sending.

    ``text`` may only be empty for the identity announcement (an empty
    ``chat``) and for control kinds. Private envelopes need a target.
    """
    if not env.kind:
        raise ValueError("envelope kind must not be empty")
    if env.kind == KIND_PRIVATE and not env.target:
        raise ValueError("private envelope needs a target")
    if not env.text and env.kind != KIND_CHAT and env.kind not in CONTROL_KINDS:
        raise ValueError(f"{env.kind} envelope must carry text")
    if env.kind in ACKED_KINDS and not env.id:
        raise ValueError(f"{env.kind} envelope needs an id")


def _opt_str(wire: dict, key: str) -> str:
    value = wire.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise DecodeError(f"{key} must be a string")
    return value


def from_wire(wire: object) -> Envelope:
    if not isinstance(wire, dict):
        raise DecodeError("envelope must be a JSON object")

    kind = wire.get(K_KIND)
    if not isinstance(kind, str) or not kind:
        raise DecodeError(f"missing envelope key {K_KIND}")

    ts = wire.get(K_TS, 0)
    if ts is None:
        ts = 0
    # bool is an int subclass; reject it explicitly.
    if isinstance(ts, bool) or not isinstance(ts, int):
        raise DecodeError("timestamp must be an integer")
    if ts < 0:
        raise DecodeError("timestamp must be unsigned")

    target = wire.get(K_TARGET)
    if target is not None and not isinstance(target, str):
        raise DecodeError("target must be a string")

    return Envelope(
        kind=kind,
        username=_opt_str(wire, K_USERNAME),
        room=_opt_str(wire, K_ROOM),
        text=_opt_str(wire, K_TEXT),
        timestamp=ts,
        id=_opt_str(wire, K_ID),
        target=target,
    )
