"""WebSocket transport built on the ``websockets`` asyncio client.

The transport owns the socket and two tasks: a reader that hands text frames
to the connection manager, and a writer that drains an outbox so frames leave
in the order ``send`` was called. All callbacks run on the event loop thread.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from .errors import TransportClosed, TransportError


class TransportHandlers(Protocol):
    def handle_open(self) -> None: ...

    def handle_frame(self, data: str) -> None: ...

    def handle_close(self, exc: TransportClosed) -> None: ...

    def handle_error(self, exc: TransportError) -> None: ...


class Transport(Protocol):
    @property
    def is_open(self) -> bool: ...

    def open(self, url: str, handlers: TransportHandlers) -> None: ...

    def send(self, data: str) -> None: ...

    def close(self) -> None: ...


class WebSocketTransport:
    def __init__(self, *, open_timeout: float = 10.0) -> None:
        self.log = logging.getLogger("roomchat.transport")
        self.open_timeout = open_timeout
        self._ws: ClientConnection | None = None
        self._outbox: asyncio.Queue[str] | None = None
        self._task: asyncio.Task | None = None
        self._closer: asyncio.Task | None = None

    @property
    def is_open(self) -> bool:
        return self._ws is not None and self._outbox is not None

    def open(self, url: str, handlers: TransportHandlers) -> None:
        if self._task is not None and not self._task.done():
            raise TransportError("transport is already open")
        self._task = asyncio.get_running_loop().create_task(self._run(url, handlers))

    def send(self, data: str) -> None:
        if self._outbox is None:
            raise TransportError("socket is not open")
        self._outbox.put_nowait(data)

    def close(self) -> None:
        ws = self._ws
        if ws is not None:
            self._closer = asyncio.get_running_loop().create_task(ws.close())
        elif self._task is not None and not self._task.done():
            self._task.cancel()

    async def wait_closed(self) -> None:
        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        if self._closer is not None:
            await self._closer
            self._closer = None

    async def _run(self, url: str, handlers: TransportHandlers) -> None:
        try:
            ws = await connect(url, open_timeout=self.open_timeout)
        except (OSError, TimeoutError, WebSocketException) as e:
            handlers.handle_error(TransportError(f"connect to {url} failed: {e}"))
            handlers.handle_close(TransportClosed(None, str(e)))
            return

        self._ws = ws
        self._outbox = asyncio.Queue()
        writer = asyncio.create_task(self._write_loop(ws, self._outbox))

        try:
            try:
                handlers.handle_open()
            except Exception:
                # Closing ends the read loop, which then reports the close.
                self.log.exception("Open handler failed")
                await ws.close(1011, "client error")
            async for message in ws:
                if not isinstance(message, str):
                    self.log.debug("Ignoring binary frame bytes=%s", len(message))
                    continue
                try:
                    handlers.handle_frame(message)
                except Exception:
                    self.log.exception("Frame handler failed")
        except ConnectionClosed as e:
            handlers.handle_error(TransportError(str(e)))
        finally:
            self._ws = None
            self._outbox = None
            writer.cancel()

        handlers.handle_close(TransportClosed(ws.close_code, ws.close_reason or ""))

    async def _write_loop(self, ws: ClientConnection, outbox: asyncio.Queue[str]) -> None:
        while True:
            data = await outbox.get()
            try:
                await ws.send(data)
            except ConnectionClosed:
                # The reader sees the same close and reports it.
                return
