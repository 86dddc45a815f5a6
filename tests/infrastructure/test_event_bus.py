"""Unit tests for EventBus."""

import pytest

from neutab.domain.events.sync_events import StorageChanged, SyncPreferencesChanged
from neutab.domain.models.sync import StorageArea, SyncPreferences
from neutab.infrastructure.messaging.event_bus import EventBus


class TestEventBus:
    """Test suite for EventBus."""

    @pytest.fixture
    def event_bus(self):
        """Create a fresh event bus for each test."""
        return EventBus()

    @pytest.mark.asyncio
    async def test_subscribe_and_publish(self, event_bus):
        """Test subscribing to and publishing events."""
        received = []

        async def handler(event: StorageChanged):
            received.append(event)

        event_bus.subscribe(StorageChanged, handler)
        event = StorageChanged(area="local", changed_keys={"icon_42"})

        await event_bus.publish(event)

        assert received == [event]
        assert received[0].area is StorageArea.LOCAL
        assert received[0].changed_keys == frozenset({"icon_42"})

    @pytest.mark.asyncio
    async def test_handlers_run_in_subscription_order(self, event_bus):
        order = []

        async def first(event):
            order.append("first")

        async def second(event):
            order.append("second")

        event_bus.subscribe(StorageChanged, first)
        event_bus.subscribe(StorageChanged, second)
        await event_bus.publish(StorageChanged(area="sync", changed_keys={"themeMode"}))

        assert order == ["first", "second"]

    @pytest.mark.asyncio
    async def test_publish_with_no_handlers(self, event_bus):
        """Publishing without subscribers is a no-op."""
        await event_bus.publish(SyncPreferencesChanged(preferences=SyncPreferences()))

    @pytest.mark.asyncio
    async def test_handler_only_receives_subscribed_type(self, event_bus):
        received = []

        async def handler(event):
            received.append(event)

        event_bus.subscribe(SyncPreferencesChanged, handler)
        await event_bus.publish(StorageChanged(area="local", changed_keys={"icon_1"}))

        assert received == []

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_block_others(self, event_bus):
        called = False

        async def failing(event):
            raise RuntimeError("handler error")

        async def working(event):
            nonlocal called
            called = True

        event_bus.subscribe(StorageChanged, failing)
        event_bus.subscribe(StorageChanged, working)
        await event_bus.publish(StorageChanged(area="local", changed_keys={"icon_1"}))

        assert called is True

    @pytest.mark.asyncio
    async def test_unsubscribe(self, event_bus):
        called = False

        async def handler(event):
            nonlocal called
            called = True

        event_bus.subscribe(StorageChanged, handler)
        event_bus.unsubscribe(StorageChanged, handler)
        await event_bus.publish(StorageChanged(area="local", changed_keys={"icon_1"}))

        assert called is False
        assert event_bus.get_handler_count(StorageChanged) == 0

    def test_unsubscribe_unknown_handler_is_tolerated(self, event_bus):
        async def handler(event):
            pass

        async def other(event):
            pass

        event_bus.subscribe(StorageChanged, other)
        event_bus.unsubscribe(StorageChanged, handler)

        assert event_bus.get_handler_count(StorageChanged) == 1

    def test_clear_handlers(self, event_bus):
        async def handler(event):
            pass

        event_bus.subscribe(StorageChanged, handler)
        event_bus.subscribe(SyncPreferencesChanged, handler)

        event_bus.clear_handlers(StorageChanged)
        assert event_bus.get_handler_count(StorageChanged) == 0
        assert event_bus.get_handler_count(SyncPreferencesChanged) == 1

        event_bus.clear_handlers()
        assert event_bus.get_handler_count(SyncPreferencesChanged) == 0

    def test_invalid_area_is_rejected(self):
        with pytest.raises(ValueError):
            StorageChanged(area="session", changed_keys=set())
