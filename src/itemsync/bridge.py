"""Adapter from ``<prefix>/<Topic>`` messages onto the event channel.

Whatever carries the messages (a broker client, a socket, stdin) hands
each one to :meth:`MessageBridge.handle_message`; the bridge parses it into
a :class:`ChannelEvent` and enqueues it on the channel's loop.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from itemsync.channel import EventChannel
from itemsync.config import ItemSyncConfig
from itemsync.state.events import ChannelEvent, Topic

_logger = logging.getLogger(__name__)


def parse_bridge_message(topic_prefix: str, topic: str, payload: bytes | str) -> ChannelEvent | None:
    """Build a channel event from one message, or ``None`` to drop it.

    The body is either ``{"source": ..., "payload": ...}`` or the bare
    payload. ``WipeDataList`` accepts an empty body.
    """
    prefix = topic_prefix.strip("/ ") + "/"
    if not topic.startswith(prefix):
        return None
    name = topic[len(prefix) :].strip("/")
    try:
        channel_topic = Topic(name)
    except ValueError:
        return None

    if isinstance(payload, bytes):
        payload = payload.decode("utf-8", errors="replace")
    text = payload.strip()
    body: Any = json.loads(text) if text else None

    source = "bridge"
    if isinstance(body, dict) and "payload" in body:
        raw_source = body.get("source")
        if isinstance(raw_source, str) and raw_source:
            source = raw_source
        body = body["payload"]

    if body is None and channel_topic == Topic.WIPE_DATA_LIST:
        body = True
    return ChannelEvent(topic=channel_topic, payload=body, source=source)


class MessageBridge:
    """Feeds externally received messages onto an :class:`EventChannel`.

    :meth:`handle_message` may be called from any thread.
    """

    def __init__(self, channel: EventChannel, *, topic_prefix: str = "itemsync") -> None:
        self._channel = channel
        self._topic_prefix = topic_prefix.strip("/ ")

    @classmethod
    def from_config(cls, config: ItemSyncConfig, channel: EventChannel) -> MessageBridge:
        return cls(channel, topic_prefix=config.bridge_topic_prefix)

    @property
    def topic_prefix(self) -> str:
        return self._topic_prefix

    def handle_message(self, topic: str, payload: bytes | str) -> ChannelEvent | None:
        """Parse one message and schedule it on the channel's loop.

        Unknown topics and malformed bodies are logged and dropped. Raises
        :class:`~itemsync.exceptions.ChannelError` when the channel is not
        running.
        """
        try:
            event = parse_bridge_message(self._topic_prefix, topic, payload)
        except (ValueError, ValidationError):
            _logger.debug("Bridge payload parse failure topic=%s", topic, exc_info=True)
            return None
        if event is None:
            _logger.debug("Bridge message ignored topic=%s", topic)
            return None
        _logger.debug("Bridge request topic=%s source=%s", event.topic, event.source)
        return self._channel.publish_threadsafe(event.topic, event.payload, source=event.source)
