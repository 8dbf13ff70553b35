"""
Status-change notifications.

Delivery is best effort and at most once: a subscriber whose queue is full
misses the event, and a failing sink never fails the status change that
triggered it.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol, Set

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class StatusChangedEvent(BaseModel):
    request_id: str
    new_status: str


class NotificationSink(Protocol):
    async def publish(self, event: StatusChangedEvent) -> None:
        ...


class NotificationHub:
    """In-process fan-out to subscribed asyncio queues."""

    def __init__(self, queue_size: int = 100):
        self.queue_size = queue_size
        self._subscribers: Set[asyncio.Queue] = set()

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._subscribers.discard(queue)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def publish(self, event: StatusChangedEvent) -> None:
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning(
                    "notification dropped, subscriber queue full",
                    extra={"service_request_id": event.request_id},
                )


class LoggingNotificationSink:
    async def publish(self, event: StatusChangedEvent) -> None:
        logger.info(
            "request status changed",
            extra={"service_request_id": event.request_id, "new_status": event.new_status},
        )


class Notifier:
    """Schedules publishes in the background and keeps their tasks alive."""

    def __init__(self, sink: Optional[NotificationSink]):
        self.sink = sink
        self._tasks: Set[asyncio.Task] = set()

    def publish_nowait(self, event: StatusChangedEvent) -> None:
        if self.sink is None:
            return
        try:
            task = asyncio.get_running_loop().create_task(self._deliver(event))
        except RuntimeError:
            logger.warning("no running loop, notification dropped", extra={"service_request_id": event.request_id})
            return
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _deliver(self, event: StatusChangedEvent) -> None:
        try:
            await self.sink.publish(event)
        except Exception:
            logger.warning(
                "notification publish failed",
                extra={"service_request_id": event.request_id},
                exc_info=True,
            )

    async def drain(self) -> None:
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
