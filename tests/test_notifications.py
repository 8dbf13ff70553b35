"""Tests for status-change notifications."""

import logging

import pytest

from civic_requests.services.notifications import (
    LoggingNotificationSink,
    NotificationHub,
    Notifier,
    StatusChangedEvent,
)


@pytest.mark.asyncio
async def test_hub_fans_out_to_every_subscriber():
    hub = NotificationHub()
    first, second = hub.subscribe(), hub.subscribe()
    event = StatusChangedEvent(request_id="r1", new_status="resolved")

    await hub.publish(event)

    assert first.get_nowait() == event
    assert second.get_nowait() == event


@pytest.mark.asyncio
async def test_full_queue_drops_instead_of_blocking():
    hub = NotificationHub(queue_size=1)
    queue = hub.subscribe()

    await hub.publish(StatusChangedEvent(request_id="r1", new_status="in-progress"))
    await hub.publish(StatusChangedEvent(request_id="r1", new_status="resolved"))

    assert queue.qsize() == 1
    assert queue.get_nowait().new_status == "in-progress"


@pytest.mark.asyncio
async def test_unsubscribed_queue_gets_nothing():
    hub = NotificationHub()
    queue = hub.subscribe()
    hub.unsubscribe(queue)

    await hub.publish(StatusChangedEvent(request_id="r1", new_status="resolved"))

    assert queue.empty()
    assert hub.subscriber_count == 0


@pytest.mark.asyncio
async def test_notifier_logs_and_discards_sink_failures(caplog):
    class BrokenSink:
        async def publish(self, event):
            raise ConnectionError("down")

    notifier = Notifier(BrokenSink())
    with caplog.at_level(logging.WARNING):
        notifier.publish_nowait(StatusChangedEvent(request_id="r9", new_status="rejected"))
        await notifier.drain()

    assert "notification publish failed" in caplog.text


@pytest.mark.asyncio
async def test_logging_sink_records_event(caplog):
    notifier = Notifier(LoggingNotificationSink())
    with caplog.at_level(logging.INFO, logger="civic_requests.services.notifications"):
        notifier.publish_nowait(StatusChangedEvent(request_id="r2", new_status="resolved"))
        await notifier.drain()

    assert "request status changed" in caplog.text


def test_notifier_without_sink_is_a_no_op():
    Notifier(None).publish_nowait(StatusChangedEvent(request_id="r3", new_status="pending"))
