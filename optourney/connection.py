"""One user's websocket connection: reading requests and writing updates."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterable, Optional

from aiohttp import WSMsgType

from .message import IncomingMessage

# Close codes that end a connection without being worth an error: going away
# and abnormal closure.
_EXPECTED_CLOSE_CODES = frozenset({1001, 1006})
_END_TYPES = frozenset({WSMsgType.CLOSING, WSMsgType.CLOSED, WSMsgType.ERROR})


class Connection:
    """A websocket belonging to one Discord user."""

    def __init__(self, ws: Any, discord_id: str, log: Optional[logging.Logger] = None) -> None:
        self.discord_id = discord_id
        self._ws = ws
        self._log = log or logging.getLogger(__name__)
        self._done = False

    @property
    def closed(self) -> bool:
        """Whether reading from the socket has ended."""
        return self._done

    async def read_incoming(self, to: asyncio.Queue) -> None:
        """Put every incoming text message on ``to`` until the socket closes."""
        try:
            while True:
                msg = await self._ws.receive()
                if msg.type == WSMsgType.CLOSE:
                    if msg.data not in _EXPECTED_CLOSE_CODES:
                        reason = f"close {msg.data} {msg.extra or ''}".strip()
                        self._log.error(
                            "failed to read message discord_id=%s err=%s",
                            self.discord_id,
                            reason,
                        )
                    return
                if msg.type in _END_TYPES:
                    return
                # Messages are JSON, so only text frames are accepted.
                if msg.type != WSMsgType.TEXT:
                    self._log.error("wrong message type discord_id=%s", self.discord_id)
                    continue
                await to.put(
                    IncomingMessage(discord_id=self.discord_id, payload=msg.data.encode("utf-8"))
                )
        finally:
            self._done = True

    async def write_outgoing(self, source: AsyncIterable[bytes]) -> None:
        """Send every payload received from ``source`` to the socket."""
        async for payload in source:
            try:
                await self.send(payload)
            except ConnectionError as exc:
                self._log.error(
                    "failed to send message discord_id=%s err=%s", self.discord_id, exc
                )

    async def send(self, message: bytes) -> None:
        """Write one text frame.

        Raises ConnectionError when the write fails while the connection is
        still open; failures after it closed are expected and ignored.
        """
        try:
            await self._ws.send_str(message.decode("utf-8"))
        except (OSError, RuntimeError) as exc:
            if not self._done:
                raise ConnectionError(f"failed to send message: {exc}") from exc