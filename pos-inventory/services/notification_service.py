"""
Registration outcome notifications.

Delivers one transient message per sale registration attempt to whoever is
listening (the checkout screen, an SSE endpoint, a test). Messages are not
persisted and are delivered at most once: the channel keeps a bounded queue and
drops the oldest pending message when it is full.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Optional, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SaleRegistered:
    sale_id: str


@dataclass(frozen=True, slots=True)
class RegistrationFailed:
    error_kind: str
    detail: str


Notification = Union[SaleRegistered, RegistrationFailed]


class NotificationChannel:
    """Bounded, single-consumer queue of registration outcomes."""

    def __init__(self, max_pending: int = 100) -> None:
        if max_pending < 1:
            raise ValueError("max_pending must be >= 1")
        self._queue: "asyncio.Queue[Notification]" = asyncio.Queue(maxsize=max_pending)

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def publish(self, notification: Notification) -> None:
        """Enqueue a message without waiting; the oldest message is dropped when full."""

        if self._queue.full():
            dropped = self._queue.get_nowait()
            logger.warning("Notification queue full, dropping oldest message", extra={"dropped": repr(dropped)})
        self._queue.put_nowait(notification)

    def sale_registered(self, sale_id: str) -> None:
        self.publish(SaleRegistered(sale_id=sale_id))

    def registration_failed(self, error_kind: str, detail: str) -> None:
        self.publish(RegistrationFailed(error_kind=error_kind, detail=detail))

    async def receive(self, timeout: Optional[float] = None) -> Notification:
        """Wait for the next message (raises asyncio.TimeoutError after timeout seconds)."""

        if timeout is None:
            return await self._queue.get()
        return await asyncio.wait_for(self._queue.get(), timeout)

    def receive_nowait(self) -> Optional[Notification]:
        try:
            return self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None

    async def listen(self) -> AsyncIterator[Notification]:
        """Yield messages as they arrive, forever."""

        while True:
            yield await self._queue.get()


__all__ = ["Notification", "NotificationChannel", "RegistrationFailed", "SaleRegistered"]
