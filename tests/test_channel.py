from __future__ import annotations

import asyncio
import threading

import pytest

from itemsync.channel import EventChannel
from itemsync.controller import ItemIndexController
from itemsync.exceptions import ChannelError
from itemsync.models import DataSource, Item
from itemsync.state.events import ChannelEvent, Topic
from itemsync.stores import InMemoryItemStore


class TestChannelEvent:
    def test_item_payload_from_dict(self) -> None:
        event = ChannelEvent(topic="Create", payload={"Id": "1", "Name": "Axe"})
        assert event.topic == Topic.CREATE
        assert isinstance(event.payload, Item)
        assert event.payload.name == "Axe"

    def test_item_payload_kept_as_is(self) -> None:
        item = Item(id="1")
        event = ChannelEvent(topic=Topic.UPDATE, payload=item)
        assert event.payload == item

    def test_data_source_payload_coerced_to_int(self) -> None:
        event = ChannelEvent(topic=Topic.SET_DATA_SOURCE, payload="1")
        assert event.payload == 1
        assert not isinstance(event.payload, bool)

    def test_data_source_rejects_bool(self) -> None:
        with pytest.raises(ValueError):
            ChannelEvent(topic=Topic.SET_DATA_SOURCE, payload=True)

    def test_wipe_payload_is_bool(self) -> None:
        event = ChannelEvent(topic=Topic.WIPE_DATA_LIST, payload=1)
        assert event.payload is True

    def test_unknown_topic_rejected(self) -> None:
        with pytest.raises(ValueError):
            ChannelEvent(topic="Explode", payload=1)


@pytest.mark.asyncio
async def test_events_delivered_in_publish_order() -> None:
    seen: list[str] = []

    async def _slow(event: ChannelEvent) -> None:
        await asyncio.sleep(0.01)
        assert isinstance(event.payload, Item)
        seen.append(f"create:{event.payload.id}")

    def _fast(event: ChannelEvent) -> None:
        seen.append(f"wipe:{event.source}")

    async with EventChannel() as channel:
        channel.subscribe(Topic.CREATE, _slow)
        channel.subscribe(Topic.WIPE_DATA_LIST, _fast)
        channel.publish(Topic.CREATE, Item(id="1"))
        channel.publish(Topic.WIPE_DATA_LIST, True, source="about")
        channel.publish(Topic.CREATE, Item(id="2"))
        await channel.drain()

    assert seen == ["create:1", "wipe:about", "create:2"]


@pytest.mark.asyncio
async def test_failing_handler_does_not_stop_delivery() -> None:
    seen: list[int] = []

    def _boom(_event: ChannelEvent) -> None:
        raise RuntimeError("handler bug")

    def _record(event: ChannelEvent) -> None:
        assert isinstance(event.payload, int)
        seen.append(event.payload)

    async with EventChannel() as channel:
        channel.subscribe(Topic.SET_DATA_SOURCE, _boom)
        channel.subscribe(Topic.SET_DATA_SOURCE, _record)
        channel.publish(Topic.SET_DATA_SOURCE, 1)
        channel.publish(Topic.SET_DATA_SOURCE, 0)
        await channel.drain()

    assert seen == [1, 0]


@pytest.mark.asyncio
async def test_publish_invalid_payload_raises_channel_error() -> None:
    channel = EventChannel()
    with pytest.raises(ChannelError):
        channel.publish(Topic.CREATE, "not an item")


@pytest.mark.asyncio
async def test_unsubscribe() -> None:
    channel = EventChannel()
    unsubscribe = channel.subscribe(Topic.CREATE, lambda _e: None)
    assert channel.subscriber_count(Topic.CREATE) == 1
    unsubscribe()
    assert channel.subscriber_count("Create") == 0


@pytest.mark.asyncio
async def test_publish_threadsafe_requires_running_channel() -> None:
    channel = EventChannel()
    with pytest.raises(ChannelError):
        channel.publish_threadsafe(Topic.CREATE, Item(id="1"))


@pytest.mark.asyncio
async def test_publish_threadsafe_from_worker_thread() -> None:
    received: list[str] = []
    done = asyncio.Event()

    def _record(event: ChannelEvent) -> None:
        assert isinstance(event.payload, Item)
        received.append(event.payload.id)
        done.set()

    async with EventChannel() as channel:
        channel.subscribe(Topic.CREATE, _record)
        thread = threading.Thread(target=channel.publish_threadsafe, args=(Topic.CREATE, {"id": "t1"}))
        thread.start()
        thread.join()
        await asyncio.wait_for(done.wait(), timeout=1.0)

    assert received == ["t1"]


@pytest.mark.asyncio
async def test_controller_reacts_to_channel_requests() -> None:
    memory = InMemoryItemStore([Item(id="1", name="B", description="x"), Item(id="2", name="A")])
    persistent = InMemoryItemStore([Item(id="p", name="Persisted")])

    async with EventChannel() as channel:
        controller = ItemIndexController(memory_store=memory, persistent_store=persistent, channel=channel)
        await controller.initialize()
        controller.needs_refresh()

        channel.publish(Topic.CREATE, {"id": "3", "name": "C"}, source="create-page")
        channel.publish(Topic.UPDATE, {"id": "1", "name": "Z"}, source="update-page")
        channel.publish(Topic.DELETE, {"id": "2"}, source="delete-page")
        await channel.drain()

        assert [item.name for item in controller.dataset] == ["C", "Z"]
        assert controller.needs_refresh()

        channel.publish(Topic.SET_DATA_SOURCE, 1, source="about")
        await channel.drain()
        assert controller.current_data_source == DataSource.SQLITE
        assert controller.dataset.ids() == ["p"]

        channel.publish(Topic.WIPE_DATA_LIST, True, source="about")
        await channel.drain()
        assert await persistent.index() == []
        assert controller.needs_refresh()

        controller.detach()
        assert channel.subscriber_count(Topic.CREATE) == 0
