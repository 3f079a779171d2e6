"""Tests for the EventBus."""

from __future__ import annotations

import threading

from imageloader.events import EventBus, ImageLoadedEvent, ImageLoadFailedEvent


class TestEventBus:
    def test_sync_delivery_by_type(self):
        bus = EventBus()
        loaded, failed = [], []
        bus.subscribe(ImageLoadedEvent, loaded.append)
        bus.subscribe(ImageLoadFailedEvent, failed.append)

        bus.publish(ImageLoadedEvent(url="u", source="disk"))

        assert [event.source for event in loaded] == ["disk"]
        assert failed == []

    def test_unsubscribe(self):
        bus = EventBus()
        seen = []
        sub = bus.subscribe(ImageLoadedEvent, seen.append)
        bus.unsubscribe(sub)
        bus.publish(ImageLoadedEvent(url="u", source="network"))
        assert seen == []
        assert not sub.active

    def test_cancelled_subscription_skipped(self):
        bus = EventBus()
        seen = []
        bus.subscribe(ImageLoadedEvent, seen.append).cancel()
        bus.publish(ImageLoadedEvent(url="u", source="network"))
        assert seen == []

    def test_failing_handler_does_not_block_others(self):
        bus = EventBus()
        seen = []

        def _boom(event):
            raise RuntimeError("boom")

        bus.subscribe(ImageLoadFailedEvent, _boom)
        bus.subscribe(ImageLoadFailedEvent, seen.append)
        bus.publish(ImageLoadFailedEvent(url="u", reason="download failed"))
        assert len(seen) == 1

    def test_async_delivery(self):
        bus = EventBus()
        done = threading.Event()
        bus.subscribe(ImageLoadedEvent, lambda event: done.set(), async_=True)
        bus.publish(ImageLoadedEvent(url="u", source="memory"))
        assert done.wait(timeout=5)
        bus.shutdown()

    def test_events_have_identity(self):
        first = ImageLoadedEvent(url="u", source="disk")
        second = ImageLoadedEvent(url="u", source="disk")
        assert first.event_id != second.event_id
