from __future__ import annotations

import json

from .envelope import Envelope, from_wire
from .errors import DecodeError, EncodeError


def encode(env: Envelope) -> str:
    try:
        return json.dumps(
            env.to_wire(), ensure_ascii=False, sort_keys=True, separators=(",", ":")
        )
    except (TypeError, ValueError) as e:
        raise EncodeError(f"cannot encode {env.kind} envelope: {e}") from e


def decode(data: str | bytes) -> Envelope:
    try:
        wire = json.loads(data)
    except (UnicodeDecodeError, ValueError) as e:
        raise DecodeError(f"malformed frame: {e}") from e
    return from_wire(wire)
