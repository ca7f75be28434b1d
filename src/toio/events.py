"""Fan-out of decoded cube events to any number of async consumers."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Union

from .models.enums import ConnectionState
from .protocol.base import EventFrame

_LOGGER = logging.getLogger(__name__)

DEFAULT_STREAM_SIZE = 256


@dataclass(frozen=True, slots=True)
class ConnectionEvent:
    """Connection state change published by a session.

    Attributes:
        address: Address of the cube
        previous: State before the transition
        state: State after the transition
    """

    address: str
    previous: ConnectionState
    state: ConnectionState

    @property
    def connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED


Event = Union[EventFrame, ConnectionEvent]

_CLOSED = object()


class EventStream:
    """One subscriber's view of an EventBroadcaster.

    Registered at creation, so it only sees events published afterwards.
    Iterate with ``async for``; iteration ends when the stream is closed,
    either by the consumer or because the connection ended.
    """

    def __init__(self, broadcaster: EventBroadcaster, maxsize: int = DEFAULT_STREAM_SIZE):
        if maxsize < 1:
            raise ValueError(f"maxsize must be at least 1, got {maxsize}")
        self._broadcaster = broadcaster
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=maxsize + 1)
        self._maxsize = maxsize
        self._closed = False
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def _put(self, event: Event) -> None:
        if self._closed:
            return
        if self._queue.qsize() >= self._maxsize:
            # Slow consumer: drop the oldest event
            self._queue.get_nowait()
            self.dropped += 1
            _LOGGER.warning(
                "Event stream lagging, dropped oldest event (%d dropped so far)",
                self.dropped,
            )
        self._queue.put_nowait(event)

    def _finish(self) -> None:
        if self._closed:
            return
        self._closed = True
        # One slot is reserved above maxsize so the sentinel always fits
        self._queue.put_nowait(_CLOSED)

    def close(self) -> None:
        """Stop receiving events; pending ones are still delivered."""
        self._broadcaster.unsubscribe(self)
        self._finish()

    async def get(self) -> Event:
        """Wait for the next event.

        Raises:
            StopAsyncIteration: If the stream is closed and drained
        """
        item = await self._queue.get()
        if item is _CLOSED:
            # Keep the sentinel so later calls also stop
            self._queue.put_nowait(_CLOSED)
            raise StopAsyncIteration
        return item  # type: ignore[return-value]

    def __aiter__(self) -> EventStream:
        return self

    async def __anext__(self) -> Event:
        return await self.get()

    async def __aenter__(self) -> EventStream:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class EventBroadcaster:
    """Multi-consumer event fan-out without replay."""

    def __init__(self) -> None:
        self._streams: list[EventStream] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._streams)

    def subscribe(self, maxsize: int = DEFAULT_STREAM_SIZE) -> EventStream:
        stream = EventStream(self, maxsize)
        self._streams.append(stream)
        return stream

    def unsubscribe(self, stream: EventStream) -> None:
        if stream in self._streams:
            self._streams.remove(stream)

    def publish(self, event: Event) -> None:
        """Deliver an event to every current subscriber."""
        for stream in list(self._streams):
            stream._put(event)

    def close_all(self) -> None:
        """End every current stream."""
        streams, self._streams = self._streams, []
        for stream in streams:
            stream._finish()
