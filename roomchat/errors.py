"""Error taxonomy for the chat session controller.

None of these are fatal. They are raised at component boundaries and handled
by :class:`roomchat.controller.SessionController`, which logs them and turns
the user-relevant ones into system notices.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .delivery import PendingDelivery


class RoomChatError(Exception):
    """Base class for roomchat errors."""


class EncodeError(RoomChatError, TypeError):
    """An envelope could not be serialized."""


class DecodeError(RoomChatError, ValueError):
    """An inbound frame is not a well-formed envelope."""


class SendRejected(RoomChatError):
    """The socket is not open; the envelope was dropped."""

    def __init__(self, kind: str) -> None:
        super().__init__(f"not connected, {kind} message not sent")
        self.kind = kind


class DeliveryTimeout(RoomChatError):
    """A sent message was not echoed back before its deadline."""

    def __init__(self, pending: PendingDelivery, preview: str) -> None:
        super().__init__(f"message may not have been delivered: {preview}")
        self.pending = pending
        self.preview = preview


class TransportClosed(RoomChatError):
    def __init__(self, code: int | None = None, reason: str = "") -> None:
        super().__init__(f"connection closed: {code if code is not None else '-'} {reason}".rstrip())
        self.code = code
        self.reason = reason


class TransportError(RoomChatError):
    pass
