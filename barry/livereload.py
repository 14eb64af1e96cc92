"""WebSocket endpoint that tells connected browsers to reload."""

from __future__ import annotations

import asyncio
import threading
from concurrent.futures import Future

from aiohttp import web

RELOAD_MESSAGE = "reload"


class LiveReloader:
    """Tracks live-reload WebSocket clients and broadcasts reload events."""

    def __init__(self) -> None:
        self._clients: set[web.WebSocketResponse] = set()
        self._lock = threading.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None

    async def handler(self, request: web.Request) -> web.StreamResponse:
        """Accept a WebSocket connection and keep it until the client leaves."""
        ws = web.WebSocketResponse()
        if not ws.can_prepare(request).ok:
            return web.Response(status=400, text="Bad Request")
        await ws.prepare(request)
        self._loop = asyncio.get_running_loop()

        with self._lock:
            self._clients.add(ws)
        try:
            async for _ in ws:
                pass
        finally:
            with self._lock:
                self._clients.discard(ws)
            await ws.close()
        return ws

    async def _broadcast(self) -> None:
        with self._lock:
            clients = list(self._clients)
        for ws in clients:
            try:
                await ws.send_str(RELOAD_MESSAGE)
            except (ConnectionError, RuntimeError):
                with self._lock:
                    self._clients.discard(ws)
                await ws.close()

    def broadcast_reload(self) -> asyncio.Task | Future | None:
        """Send a reload message to every client; safe to call from any thread."""
        loop = self._loop
        if loop is None or loop.is_closed():
            return None
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            return loop.create_task(self._broadcast())
        return asyncio.run_coroutine_threadsafe(self._broadcast(), loop)

    def client_count(self) -> int:
        """Number of currently connected clients."""
        with self._lock:
            return len(self._clients)