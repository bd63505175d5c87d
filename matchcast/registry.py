"""Process-wide subscription registry: topic -> set of live channels.

A channel is any object with `write(frame: str)` and `close()`. The registry
never writes to channels itself; it only tracks who is listening where.
Topics are created on the first registration and dropped when their last
channel leaves, so connection churn does not grow the mapping.

All structural changes happen under one lock, and every read hands back a
copy, so a broadcast can iterate while connections come and go.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

logger = logging.getLogger(__name__)

Disposer = Callable[[], None]


class SubscriptionRegistry:
    def __init__(self) -> None:
        self._topics: Dict[str, Set[Any]] = {}
        self._lock = threading.Lock()

    def register(self, topic: str, channel: Any) -> Disposer:
        """Add `channel` under `topic` and return a disposer that removes it.

        The disposer may be called any number of times.
        """
        with self._lock:
            self._topics.setdefault(topic, set()).add(channel)
            size = len(self._topics[topic])
        logger.debug("subscribed to %s (%d listening)", topic, size)

        def dispose() -> None:
            self.unregister(topic, channel)

        return dispose

    def unregister(self, topic: str, channel: Any) -> bool:
        """Remove `channel` from `topic`; unknown pairs are ignored."""
        with self._lock:
            channels = self._topics.get(topic)
            if not channels or channel not in channels:
                return False
            channels.discard(channel)
            if not channels:
                del self._topics[topic]
        logger.debug("unsubscribed from %s", topic)
        return True

    def discard(self, channel: Any) -> List[str]:
        """Remove `channel` from every topic; return the topics it left."""
        left = []
        with self._lock:
            for topic, channels in list(self._topics.items()):
                if channel in channels:
                    channels.discard(channel)
                    left.append(topic)
                    if not channels:
                        del self._topics[topic]
        return left

    def channels(self, topic: str) -> List[Any]:
        with self._lock:
            return list(self._topics.get(topic, ()))

    def all_channels(self) -> List[Tuple[str, Any]]:
        with self._lock:
            return [(topic, ch) for topic, channels in self._topics.items() for ch in channels]

    def topics(self) -> List[str]:
        with self._lock:
            return list(self._topics)

    def count(self, topic: Optional[str] = None) -> int:
        with self._lock:
            if topic is not None:
                return len(self._topics.get(topic, ()))
            return sum(len(c) for c in self._topics.values())

    def __contains__(self, topic: str) -> bool:
        with self._lock:
            return topic in self._topics

    def close_all(self) -> int:
        """Close and forget every channel. Used at shutdown."""
        with self._lock:
            pairs = [(t, ch) for t, channels in self._topics.items() for ch in channels]
            self._topics.clear()
        for topic, channel in pairs:
            try:
                channel.close()
            except Exception:
                logger.warning("closing channel on %s failed", topic, exc_info=True)
        return len(pairs)
