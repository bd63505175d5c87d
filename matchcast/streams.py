"""Per-connection streaming: a queue-backed channel and its session lifecycle.

A session moves CONNECTING -> STREAMING -> CLOSED. Opening it writes the
snapshot and registers the channel; the `frames()` generator then feeds the
HTTP response until the client goes away, the channel is closed, or the
process shuts down. Whatever ends the generator, its `finally` block closes
the session, which runs the registration disposer exactly once.
"""
from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional

from matchcast import events
from matchcast.registry import Disposer, SubscriptionRegistry

logger = logging.getLogger(__name__)

_CLOSED = object()


class ChannelClosed(Exception):
    pass


class ChannelOverflow(Exception):
    pass


class StreamChannel:
    """Bounded buffer of encoded frames between publishers and one response.

    `write` never blocks. It must be created inside the event loop that will
    consume it; writes from other threads are handed over to that loop.
    """

    def __init__(self, maxsize: int = 100) -> None:
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._loop = asyncio.get_running_loop()
        self.closed = False

    def _on_loop(self) -> bool:
        try:
            return asyncio.get_running_loop() is self._loop
        except RuntimeError:
            return False

    def write(self, frame: str) -> None:
        if self.closed:
            raise ChannelClosed("channel is closed")
        if self._on_loop():
            self._put(frame)
        else:
            self._loop.call_soon_threadsafe(self._put_or_close, frame)

    def _put(self, frame: str) -> None:
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull:
            raise ChannelOverflow(f"subscriber is {self._queue.maxsize} frames behind") from None

    def _put_or_close(self, frame: str) -> None:
        # Cross-thread writers cannot see the overflow, so close instead.
        if self.closed:
            return
        try:
            self._put(frame)
        except ChannelOverflow:
            logger.warning("closing overflowing channel")
            self.close()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._on_loop():
            self._wake()
        elif not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._wake)

    def _wake(self) -> None:
        try:
            self._queue.put_nowait(_CLOSED)
        except asyncio.QueueFull:
            # a full queue means the reader is not waiting
            pass

    async def next_frame(self, timeout: Optional[float]) -> Optional[str]:
        """Next queued frame, or None if nothing arrived within `timeout`."""
        if self.closed:
            raise ChannelClosed("channel is closed")
        try:
            frame = await asyncio.wait_for(self._queue.get(), timeout)
        except asyncio.TimeoutError:
            return None
        if frame is _CLOSED or self.closed:
            raise ChannelClosed("channel is closed")
        return frame


class StreamState(str, Enum):
    CONNECTING = "connecting"
    STREAMING = "streaming"
    CLOSED = "closed"


class StreamSession:
    def __init__(
        self,
        registry: SubscriptionRegistry,
        topic: str,
        ping_interval: float = 30.0,
        queue_size: int = 100,
        is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
    ) -> None:
        self.registry = registry
        self.topic = topic
        self.ping_interval = ping_interval
        self.channel = StreamChannel(maxsize=queue_size)
        self.state = StreamState.CONNECTING
        self._is_disconnected = is_disconnected
        self._dispose: Optional[Disposer] = None

    def open(self, snapshot: Optional[Dict[str, Any]] = None) -> "StreamSession":
        """Queue the snapshot (if any), register, and start streaming."""
        if self.state is not StreamState.CONNECTING:
            raise RuntimeError(f"cannot open a session that is {self.state.value}")
        if snapshot is not None:
            self.channel.write(events.encode_event(snapshot))
        self._dispose = self.registry.register(self.topic, self.channel)
        self.state = StreamState.STREAMING
        return self

    async def frames(self) -> AsyncIterator[str]:
        try:
            while self.state is StreamState.STREAMING:
                try:
                    frame = await self.channel.next_frame(self.ping_interval)
                except ChannelClosed:
                    break
                if frame is None:
                    if self._is_disconnected is not None and await self._is_disconnected():
                        logger.debug("client on %s went away", self.topic)
                        break
                    frame = events.encode_event(events.ping())
                yield frame
        finally:
            self.close()

    def close(self) -> None:
        if self.state is StreamState.CLOSED:
            return
        self.state = StreamState.CLOSED
        self.channel.close()
        if self._dispose is not None:
            self._dispose()
