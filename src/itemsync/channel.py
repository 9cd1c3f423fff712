"""In-process event channel.

Producers publish requests on named topics; subscribed handlers receive
them asynchronously. Every topic goes through one FIFO queue drained by a
single worker task, so events are handled in publish order and never
concurrently with each other. Delivery is at-most-once: a handler that
raises is logged and the event is dropped.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import ValidationError

from itemsync.exceptions import ChannelError
from itemsync.state.events import ChannelEvent, Topic

_logger = logging.getLogger(__name__)

EventHandler = Callable[[ChannelEvent], Awaitable[None] | None]


class EventChannel:
    """Ordered async pub/sub channel.

    Usage::

        async with EventChannel() as channel:
            channel.subscribe(Topic.CREATE, handler)
            channel.publish(Topic.CREATE, item, source="form")
            await channel.drain()
    """

    def __init__(self) -> None:
        self._handlers: dict[Topic, list[EventHandler]] = {}
        self._queue: asyncio.Queue[ChannelEvent] | None = None
        self._worker: asyncio.Task[None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> EventChannel:
        self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    @property
    def is_running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def start(self) -> None:
        """Bind to the running loop and start the delivery worker."""
        if self.is_running:
            return
        self._loop = asyncio.get_running_loop()
        if self._queue is None:
            self._queue = asyncio.Queue()
        self._worker = self._loop.create_task(self._run(), name="itemsync-event-channel")

    async def stop(self) -> None:
        """Stop the worker. Events still queued are discarded."""
        worker = self._worker
        self._worker = None
        if worker is None:
            return
        worker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await worker
        queue = self._queue
        if queue is not None:
            while not queue.empty():
                queue.get_nowait()
                queue.task_done()

    async def drain(self) -> None:
        """Wait until every event published so far has been handled."""
        if self._queue is None or not self.is_running:
            return
        await self._queue.join()

    # ------------------------------------------------------------------
    # Subscription
    # ------------------------------------------------------------------

    def subscribe(self, topic: Topic | str, handler: EventHandler) -> Callable[[], None]:
        """Register *handler* for *topic*; the returned callable unsubscribes it."""
        key = Topic(topic)
        self._handlers.setdefault(key, []).append(handler)

        def _unsubscribe() -> None:
            handlers = self._handlers.get(key, [])
            if handler in handlers:
                handlers.remove(handler)

        return _unsubscribe

    def subscriber_count(self, topic: Topic | str) -> int:
        return len(self._handlers.get(Topic(topic), []))

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    def publish(self, topic: Topic | str, payload: Any, *, source: str | None = None) -> ChannelEvent:
        """Validate and enqueue an event. Must be called on the loop thread."""
        try:
            event = ChannelEvent(topic=topic, payload=payload, source=source)
        except ValidationError as exc:
            raise ChannelError(f"Invalid payload for topic {topic!r}: {exc}") from exc
        self.publish_event(event)
        return event

    def publish_event(self, event: ChannelEvent) -> None:
        if self._queue is None:
            self._queue = asyncio.Queue()
        self._queue.put_nowait(event)

    def publish_threadsafe(self, topic: Topic | str, payload: Any, *, source: str | None = None) -> ChannelEvent:
        """Validate on the calling thread and enqueue on the channel's loop."""
        loop = self._loop
        if loop is None or not self.is_running:
            raise ChannelError("Channel is not running; call start() on the event loop first")
        try:
            event = ChannelEvent(topic=topic, payload=payload, source=source)
        except ValidationError as exc:
            raise ChannelError(f"Invalid payload for topic {topic!r}: {exc}") from exc
        loop.call_soon_threadsafe(self.publish_event, event)
        return event

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    async def _run(self) -> None:
        queue = self._queue
        assert queue is not None  # noqa: S101
        while True:
            event = await queue.get()
            try:
                await self._dispatch(event)
            finally:
                queue.task_done()

    async def _dispatch(self, event: ChannelEvent) -> None:
        handlers = list(self._handlers.get(event.topic, []))
        if not handlers:
            _logger.debug("No handler for topic=%s source=%s", event.topic, event.source)
            return
        for handler in handlers:
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                _logger.warning(
                    "Handler for topic=%s source=%s failed",
                    event.topic,
                    event.source,
                    exc_info=True,
                )
