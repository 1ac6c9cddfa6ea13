"""Room switching and the user directory.

The server is the authority on room membership; the client switches its own
view as soon as it asks to join and does not wait for confirmation.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .constants import KIND_JOIN, LOG_INFO
from .envelope import Envelope, make_envelope
from .state import UserEntry
from .util import normalize_name

if TYPE_CHECKING:
    from .controller import SessionController


def parse_userlist(text: str) -> list[UserEntry]:
    """Parse ``name:address,name:address``.

    Empty items are skipped. Only the first ``:`` separates the name, so an
    address may itself contain colons (``host:port`` or IPv6).
    """
    users: list[UserEntry] = []
    for item in text.split(","):
        item = item.strip()
        if not item:
            continue
        username, _, address = item.partition(":")
        users.append(UserEntry(username=username, address=address))
    return users


class RoomManager:
    def __init__(self, controller: SessionController) -> None:
        self.controller = controller
        self.log = logging.getLogger("roomchat.rooms")

    def join_room(self, name: str) -> bool:
        """Switch to ``name``. Returns False when there was nothing to do."""
        c = self.controller
        room = normalize_name(name)
        if room is None or room == c.state.current_room:
            return False

        c.send(make_envelope(KIND_JOIN, username=c.state.username, room=room, text=""))
        c.state.set_current_room(room)
        self.log.info("Joined room %s", room)
        c.log_network("room", f"joining room {room}", LOG_INFO)
        c.system_notice(f"Joining room: {room}")
        return True

    def handle_userlist(self, env: Envelope) -> None:
        c = self.controller
        users = parse_userlist(env.text)
        c.state.replace_users(users)
        c.log_network("users", f"user list updated: {len(users)} users", LOG_INFO)
        c.renderer.on_user_directory_change(c.state.users)
