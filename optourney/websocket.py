"""Accepts user websockets and dispatches their incoming messages."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Set

from aiohttp import web

from .bus import Bus
from .connection import Connection
from .message import IncomingMessage
from .models import UserContext


class WebsocketHandler:
    """Keeps at most one websocket per user and routes messages both ways."""

    def __init__(self, outgoing_bus: Bus, log: Optional[logging.Logger] = None) -> None:
        self._bus = outgoing_bus
        self._log = log or logging.getLogger(__name__)
        self._user_connections: Set[str] = set()
        self._messages: asyncio.Queue = asyncio.Queue(maxsize=1)
        self._stop = asyncio.Event()

    async def serve(self) -> None:
        """Handle incoming messages until stopped."""
        while not self._stop.is_set():
            getter = asyncio.ensure_future(self._messages.get())
            stopper = asyncio.ensure_future(self._stop.wait())
            try:
                await asyncio.wait({getter, stopper}, return_when=asyncio.FIRST_COMPLETED)
            finally:
                for task in (getter, stopper):
                    if not task.done():
                        task.cancel()
            if getter.done() and not getter.cancelled():
                self.handle_message(getter.result())

    async def stop(self) -> None:
        """Stop serving and end every open connection."""
        self._stop.set()
        await asyncio.sleep(0.1)

    def handle_message(self, message: IncomingMessage) -> None:
        """Parse one incoming message and act on its payload."""
        try:
            payload = message.parse()
        except ValueError as exc:
            self._log.error("failed to parse message err=%s", exc)
            return
        self._log.debug("payload %r", payload)

    async def new_connection(self, request: web.Request) -> web.StreamResponse:
        """Upgrade the request to a websocket and serve it until it closes."""
        user = request.get("user")
        if not isinstance(user, UserContext):
            return web.Response(status=500, text="internal server error")

        discord_id = user.discord_user.id
        if discord_id in self._user_connections:
            return web.Response(status=429, text="only one connection at a time")
        self._user_connections.add(discord_id)

        ws = web.WebSocketResponse()
        try:
            await ws.prepare(request)
        except (web.HTTPException, ConnectionError):
            self._user_connections.discard(discord_id)
            return web.Response(status=500, text="internal server error")

        conn = Connection(ws, discord_id, self._log)
        subscription = self._bus.subscribe(discord_id)
        writer = asyncio.create_task(conn.write_outgoing(subscription))
        self._log.debug("new connection discord_id=%s", discord_id)

        try:
            await self._read_until_stopped(conn)
        finally:
            self._log.debug("connection closed discord_id=%s", discord_id)
            subscription.close()
            writer.cancel()
            await asyncio.gather(writer, return_exceptions=True)
            self._user_connections.discard(discord_id)
            await ws.close()
        return ws

    async def _read_until_stopped(self, conn: Connection) -> None:
        if self._stop.is_set():
            return
        reader = asyncio.ensure_future(conn.read_incoming(self._messages))
        stopper = asyncio.ensure_future(self._stop.wait())
        try:
            await asyncio.wait({reader, stopper}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (reader, stopper):
                if not task.done():
                    task.cancel()
            await asyncio.gather(reader, stopper, return_exceptions=True)