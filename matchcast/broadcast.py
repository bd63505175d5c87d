"""Fan-out of live events to the channels held by a SubscriptionRegistry."""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable

from matchcast import events
from matchcast.registry import SubscriptionRegistry

logger = logging.getLogger(__name__)


class Broadcaster:
    """Write encoded events to registered channels.

    A channel whose write raises is assumed gone: it is dropped from every
    topic and closed, and delivery carries on with the rest. Nothing here is
    retried and nothing propagates to the caller.
    """

    def __init__(self, registry: SubscriptionRegistry) -> None:
        self.registry = registry

    def publish_to_topic(self, topic: str, event: Dict[str, Any]) -> int:
        """Send `event` to every channel under `topic`; return how many took it."""
        frame = events.encode_event(event)
        return self._deliver(self.registry.channels(topic), frame, event)

    def publish_to_all(self, event: Dict[str, Any]) -> int:
        """Send `event` to every channel of every topic."""
        frame = events.encode_event(event)
        channels = [ch for _, ch in self.registry.all_channels()]
        return self._deliver(channels, frame, event)

    def publish_match_change(self, scoped_event: Dict[str, Any], match: Dict[str, Any]) -> None:
        """Notify detail viewers with `scoped_event` and list viewers with MATCH_UPDATED."""
        self.publish_to_topic(match["id"], scoped_event)
        self.publish_to_topic(events.ALL_MATCHES, events.match_updated(match))

    def _deliver(self, channels: Iterable[Any], frame: str, event: Dict[str, Any]) -> int:
        delivered = 0
        for channel in channels:
            try:
                channel.write(frame)
            except Exception as exc:
                left = self.registry.discard(channel)
                logger.warning("dropping channel on %s after failed %s write: %r",
                               ",".join(left) or "-", event.get("type"), exc)
                self._close_quietly(channel)
                continue
            delivered += 1
        return delivered

    @staticmethod
    def _close_quietly(channel: Any) -> None:
        try:
            channel.close()
        except Exception:
            logger.debug("channel close after failed write raised", exc_info=True)
