from __future__ import annotations

import argparse
import asyncio
import os
import sys
import threading
import time
from dataclasses import replace
from pathlib import Path
from typing import TextIO

from .config import PING_MODES, ClientRuntimeConfig, load_config
from .connection import ConnectionState
from .controller import SessionController
from .logging_config import configure_logging
from .paths import default_config_path, ensure_private_dir
from .state import HistoryEntry, NetworkLogEntry, UserEntry
from .transport import WebSocketTransport
from .util import expand_path

UI_HELP = """Terminal actions:
  :ping - measure round-trip latency
  :private <user> - send plain text to <user> only
  :room - leave private chat
  :rooms - list known rooms
  :users - list users in the current room
  :stats - show session counters
  :quit - exit"""


class ConsoleRenderer:
    """Render a session as plain lines on a text stream."""

    def __init__(self, out: TextIO | None = None, *, show_network_log: bool = False) -> None:
        self.out = out or sys.stdout
        self.show_network_log = show_network_log

    def _write(self, line: str) -> None:
        print(line, file=self.out, flush=True)

    def on_message_display(self, entry: HistoryEntry) -> None:
        stamp = _format_time(entry.timestamp)
        self._write(f"[{stamp}] {entry.heading}: {entry.text}")

    def on_system_notice(self, text: str) -> None:
        self._write(f"*** {text}")

    def on_user_directory_change(self, directory: list[UserEntry]) -> None:
        names = ", ".join(u.username for u in directory) or "-"
        self._write(f"*** users: {names}")

    def on_connection_status_change(self, state: ConnectionState) -> None:
        self._write(f"*** status: {state.value}")

    def on_latency_update(self, current: float, average: float) -> None:
        self._write(f"*** latency: {current:.0f}ms (average {average:.0f}ms)")

    def on_network_log_append(self, entry: NetworkLogEntry) -> None:
        if self.show_network_log:
            self._write(f"    {entry.time} [{entry.category}] {entry.message}")


def _format_time(ts: int) -> str:
    # Own messages carry milliseconds; the reference server stamps seconds.
    seconds = ts / 1000 if ts > 10**11 else ts
    return time.strftime("%H:%M:%S", time.localtime(seconds))


def handle_ui_action(controller: SessionController, line: str, out: TextIO) -> bool:
    """Run one input line. Returns False when the user asked to quit."""
    text = line.strip()
    if not text.startswith(":"):
        controller.submit(line)
        return True

    cmd, _, arg = text[1:].partition(" ")
    arg = arg.strip()
    if cmd in ("quit", "q"):
        return False
    if cmd == "ping":
        controller.ping()
    elif cmd == "private":
        if not arg or not controller.start_private_chat(arg):
            print("*** usage: :private <user> (not yourself)", file=out)
    elif cmd == "room":
        controller.exit_private_mode()
    elif cmd == "rooms":
        print("*** rooms: " + ", ".join(controller.state.rooms), file=out)
    elif cmd == "users":
        users = controller.state.users
        print("*** users: " + (", ".join(f"{u.username} ({u.address})" for u in users) or "-"), file=out)
    elif cmd == "stats":
        print(controller.stats.format_stats(), file=out)
    else:
        print(UI_HELP, file=out)
    return True


def _write_default_config(config_path: str) -> None:
    cfg_dir = os.path.dirname(config_path)
    if cfg_dir:
        ensure_private_dir(Path(cfg_dir))

    content = """# roomchat configuration (TOML)
#
# This file was created on first run. Command line flags override it.

[client]

# Page origin of the chat server. https:// origins connect with wss://.
origin = "http://127.0.0.1:8080"
ws_path = "/ws"

# Leave empty for a generated name.
username = ""
default_room = "lobby"

# Reconnect policy. max attempts 0 retries forever.
reconnect_delay_s = 5.0
reconnect_max_attempts = 0
reconnect_jitter_s = 0.0

# Seconds to wait for the server echo before warning that a message may
# not have been delivered.
delivery_timeout_s = 60.0

history_limit = 200
network_log_limit = 100

# "command" sends /ping for the server to answer; "ping" sends a ping envelope.
ping_mode = "command"

[logging]

level = "WARNING"
websockets_level = "WARNING"
console = true
file = ""
format = "%(asctime)s %(levelname)s %(name)s: %(message)s"
datefmt = ""
"""

    with open(config_path, "w", encoding="utf-8") as f:
        f.write(content)


def _build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="roomchat", description="Terminal client for a room chat server")

    p.add_argument(
        "--config",
        default=str(default_config_path()),
        help="Path to a TOML config file (created on first run)",
    )
    p.add_argument("--origin", default=None, help="Server origin, e.g. https://chat.example.org")
    p.add_argument("--ws-path", default=None, help="Socket path on the server (default: /ws)")
    p.add_argument("-u", "--username", default=None, help="Display name")
    p.add_argument("-r", "--room", default=None, help="Room to start in")

    p.add_argument(
        "--reconnect-delay",
        type=float,
        default=None,
        help="Seconds to wait before reconnecting",
    )
    p.add_argument(
        "--reconnect-max-attempts",
        type=int,
        default=None,
        help="Give up after this many reconnects (0 retries forever)",
    )
    p.add_argument(
        "--ping-mode",
        choices=PING_MODES,
        default=None,
        help="How latency probes are sent",
    )
    p.add_argument(
        "--show-network-log",
        action="store_true",
        help="Print network log entries as they happen",
    )

    p.add_argument(
        "--log-level",
        default=None,
        help="Logging level override (DEBUG, INFO, WARNING, ERROR). Default comes from config.",
    )
    p.add_argument(
        "--log-file",
        default=None,
        help="Log file path override (empty disables file logging). Default comes from config.",
    )

    return p


def build_config(args: argparse.Namespace) -> ClientRuntimeConfig:
    config_path = expand_path(str(args.config))
    if not os.path.exists(config_path):
        _write_default_config(config_path)
        print(f"Created default roomchat config: {config_path}", file=sys.stderr)

    cfg = load_config(config_path)

    if args.origin is not None:
        cfg = replace(cfg, origin=args.origin)
    if args.ws_path is not None:
        cfg = replace(cfg, ws_path=args.ws_path)
    if args.username is not None:
        cfg = replace(cfg, username=args.username)
    if args.room is not None:
        cfg = replace(cfg, default_room=args.room)
    if args.reconnect_delay is not None:
        cfg = replace(cfg, reconnect_delay_s=float(args.reconnect_delay))
    if args.reconnect_max_attempts is not None:
        cfg = replace(cfg, reconnect_max_attempts=int(args.reconnect_max_attempts))
    if args.ping_mode is not None:
        cfg = replace(cfg, ping_mode=args.ping_mode)
    if args.log_level is not None:
        cfg = replace(cfg, log_level=str(args.log_level))
    if args.log_file is not None:
        cfg = replace(cfg, log_file=str(args.log_file) if str(args.log_file) else None)
    return cfg


def _start_stdin_reader(loop: asyncio.AbstractEventLoop, lines: asyncio.Queue[str | None]) -> None:
    def read() -> None:
        for line in sys.stdin:
            loop.call_soon_threadsafe(lines.put_nowait, line)
        loop.call_soon_threadsafe(lines.put_nowait, None)

    threading.Thread(target=read, name="stdin", daemon=True).start()


async def run(cfg: ClientRuntimeConfig, *, show_network_log: bool = False) -> SessionController:
    transport = WebSocketTransport()
    controller = SessionController(
        cfg,
        renderer=ConsoleRenderer(show_network_log=show_network_log),
        transport=transport,
    )
    controller.system_notice(f"Welcome, {controller.state.username}. Type /help or :help.")

    lines: asyncio.Queue[str | None] = asyncio.Queue()
    _start_stdin_reader(asyncio.get_running_loop(), lines)

    controller.connect()
    try:
        while True:
            line = await lines.get()
            if line is None or not handle_ui_action(controller, line, sys.stdout):
                break
    finally:
        controller.close()
        await transport.wait_closed()
    return controller


def main(argv: list[str] | None = None) -> None:
    args = _build_arg_parser().parse_args(sys.argv[1:] if argv is None else argv)
    cfg = build_config(args)

    configure_logging(cfg, override_level=args.log_level, override_file=args.log_file)

    try:
        controller = asyncio.run(run(cfg, show_network_log=args.show_network_log))
    except KeyboardInterrupt:
        raise SystemExit(130)
    print(controller.stats.format_stats(), file=sys.stderr)


if __name__ == "__main__":
    main()
