from __future__ import annotations

from typing import Callable

import pytest

from roomchat.codec import decode
from roomchat.config import ClientRuntimeConfig
from roomchat.controller import SessionController
from roomchat.envelope import Envelope
from roomchat.errors import TransportClosed, TransportError


class _Timer:
    def __init__(self, when: float, callback: Callable[[], None]) -> None:
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler whose clock only moves when the test advances it."""

    def __init__(self) -> None:
        self.time = 1000.0
        self.timers: list[_Timer] = []

    def now(self) -> float:
        return self.time

    def call_later(self, delay: float, callback: Callable[[], None]) -> _Timer:
        timer = _Timer(self.time + delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def active(self) -> list[_Timer]:
        return [t for t in self.timers if not t.cancelled]

    def advance(self, seconds: float) -> None:
        target = self.time + seconds
        while True:
            due = [t for t in self.active if t.when <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.when)
            self.timers.remove(timer)
            self.time = timer.when
            timer.callback()
        self.time = target


class FakeTransport:
    def __init__(self) -> None:
        self.opened: list[str] = []
        self.sent: list[str] = []
        self.closed = 0
        self.handlers = None
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self, url: str, handlers) -> None:
        self.opened.append(url)
        self.handlers = handlers

    def send(self, data: str) -> None:
        if not self._open:
            raise TransportError("socket is not open")
        self.sent.append(data)

    def close(self) -> None:
        self.closed += 1

    # Test drivers

    def accept(self) -> None:
        self._open = True
        self.handlers.handle_open()

    def receive(self, data: str) -> None:
        self.handlers.handle_frame(data)

    def drop(self, code: int | None = 1006, reason: str = "") -> None:
        self._open = False
        self.handlers.handle_error(TransportError("connection reset"))
        self.handlers.handle_close(TransportClosed(code, reason))

    @property
    def envelopes(self) -> list[Envelope]:
        return [decode(d) for d in self.sent]


class RecordingRenderer:
    def __init__(self) -> None:
        self.messages = []
        self.notices: list[str] = []
        self.directories = []
        self.statuses = []
        self.latencies: list[tuple[float, float]] = []
        self.network_log = []

    def on_message_display(self, entry) -> None:
        self.messages.append(entry)

    def on_system_notice(self, text: str) -> None:
        self.notices.append(text)

    def on_user_directory_change(self, directory) -> None:
        self.directories.append(directory)

    def on_connection_status_change(self, state) -> None:
        self.statuses.append(state)

    def on_latency_update(self, current: float, average: float) -> None:
        self.latencies.append((current, average))

    def on_network_log_append(self, entry) -> None:
        self.network_log.append(entry)


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def renderer() -> RecordingRenderer:
    return RecordingRenderer()


@pytest.fixture
def config() -> ClientRuntimeConfig:
    return ClientRuntimeConfig(origin="http://chat.test:8080", username="me")


@pytest.fixture
def controller(config, renderer, transport, scheduler) -> SessionController:
    return SessionController(
        config, renderer=renderer, transport=transport, scheduler=scheduler
    )


@pytest.fixture
def connected(controller, transport) -> SessionController:
    controller.connect()
    transport.accept()
    transport.sent.clear()
    return controller
