"""A publish/subscribe bus for outgoing messages."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Optional, Set

from .message import OutgoingMessage


class Subscription:
    """Payloads addressed to one Discord user, received until closed."""

    def __init__(self, bus: Bus, discord_id: str) -> None:
        self.discord_id = discord_id
        self._bus = bus
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=1)
        self._closed = asyncio.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    async def _until_closed(self, awaitable: Awaitable[Any]) -> Any:
        """Await ``awaitable``, giving up with None if the subscription closes first."""
        if self.closed:
            return None
        task = asyncio.ensure_future(awaitable)
        closer = asyncio.ensure_future(self._closed.wait())
        try:
            await asyncio.wait({task, closer}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            closer.cancel()
            if not task.done():
                task.cancel()
        return None if task.cancelled() else task.result()

    async def get(self) -> Optional[bytes]:
        """Wait for the next payload; None once the subscription is closed."""
        return await self._until_closed(self._queue.get())

    def close(self) -> None:
        """Stop receiving and leave the bus."""
        self._closed.set()
        self._bus._subscribers.discard(self)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> bytes:
        payload = await self.get()
        if payload is None:
            raise StopAsyncIteration
        return payload


class Bus:
    """Fans outgoing messages out to the subscriptions of their recipients."""

    def __init__(self) -> None:
        self._subscribers: Set[Subscription] = set()
        self._lock = asyncio.Lock()

    async def send(self, message: OutgoingMessage) -> None:
        """Deliver the payload to each recipient's subscriptions, waiting while one is full."""
        async with self._lock:
            for subscription in list(self._subscribers):
                if subscription.discord_id in message.to_discord_ids:
                    await subscription._until_closed(subscription._queue.put(message.payload))

    def subscribe(self, discord_id: str) -> Subscription:
        subscription = Subscription(self, discord_id)
        self._subscribers.add(subscription)
        return subscription