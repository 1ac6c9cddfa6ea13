"""Slash-command interpretation for user input.

``parse_input`` is pure: it turns one line of user text into an action.
``CommandInterpreter`` carries the action out against the session.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

from .constants import HELP_TEXT

if TYPE_CHECKING:
    from .controller import SessionController

MSG_USAGE = "usage: /msg <user> <text>"


@dataclass(frozen=True)
class ShowHelp:
    text: str = HELP_TEXT


@dataclass(frozen=True)
class JoinRoom:
    room: str


@dataclass(frozen=True)
class SendPrivate:
    target: str
    text: str


@dataclass(frozen=True)
class ForwardCommand:
    text: str


@dataclass(frozen=True)
class SendText:
    """Plain text; routed to the private target if one is set, else the room."""

    text: str


@dataclass(frozen=True)
class Notice:
    text: str


Action = Union[ShowHelp, JoinRoom, SendPrivate, ForwardCommand, SendText, Notice]


def _is_command(cmdline: str, name: str) -> bool:
    return cmdline == name or cmdline.startswith(name + " ")


def parse_input(text: str) -> Action | None:
    """Map raw input to an action, or None when there is nothing to do.

    Prefixes are case-sensitive. ``/join`` with no room name is a no-op;
    ``/msg`` needs a user and at least one word of text.
    """
    cmdline = text.strip()
    if not cmdline:
        return None

    if not cmdline.startswith("/"):
        return SendText(cmdline)

    if cmdline == "/help":
        return ShowHelp()

    if _is_command(cmdline, "/join"):
        room = cmdline[len("/join"):].strip()
        if not room:
            return None
        return JoinRoom(room)

    if _is_command(cmdline, "/msg"):
        parts = [p for p in cmdline.split(" ") if p]
        if len(parts) < 3:
            return Notice(MSG_USAGE)
        return SendPrivate(parts[1], " ".join(parts[2:]))

    # Everything else is resolved by the server.
    return ForwardCommand(cmdline)


class CommandInterpreter:
    def __init__(self, controller: SessionController) -> None:
        self.controller = controller
        self.log = logging.getLogger("roomchat.commands")

    def handle(self, text: str) -> Action | None:
        action = parse_input(text)
        if action is None:
            return None

        c = self.controller
        if isinstance(action, ShowHelp):
            c.system_notice(action.text)
        elif isinstance(action, Notice):
            c.system_notice(action.text)
        elif isinstance(action, JoinRoom):
            c.join_room(action.room)
        elif isinstance(action, SendPrivate):
            c.send_private(action.target, action.text)
        elif isinstance(action, ForwardCommand):
            c.send_command(action.text)
        elif isinstance(action, SendText):
            c.send_text(action.text)
        else:
            self.log.warning("Unhandled action %r", action)
        return action
