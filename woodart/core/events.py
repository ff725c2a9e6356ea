"""In-memory fan-out of server-sent events to connected clients."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from itertools import count
from threading import Lock
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class BroadcasterConfig:
    """Configuration for the event broadcaster."""

    queue_size: int = 100  # Events buffered per subscriber before dropping
    keepalive_seconds: float = 15.0  # Idle time before a keep-alive comment

    @classmethod
    def from_settings(cls) -> "BroadcasterConfig":
        """Create config from application settings."""
        from woodart.core.config import get_settings
        settings = get_settings()
        return cls(
            queue_size=settings.sse_queue_size,
            keepalive_seconds=settings.sse_keepalive_seconds,
        )


@dataclass
class Subscriber:
    """A single event-stream connection.

    A ``None`` on the queue tells the stream to finish.
    """

    subscriber_id: int
    queue: asyncio.Queue = field(repr=False)
    dropped: int = 0


def format_sse(payload: dict[str, Any]) -> str:
    """Encode a payload as one SSE message frame."""
    return f"event: message\ndata: {json.dumps(payload, default=str)}\n\n"


class EventBroadcaster:
    """Process-wide publish-and-forget channel.

    Delivery is at-most-once and best-effort: there is no replay buffer, and
    an event is dropped for a subscriber whose queue is full. Each queue is
    FIFO, so events for the same design arrive in the order published.
    """

    def __init__(self, config: BroadcasterConfig | None = None) -> None:
        self.config = config or BroadcasterConfig()
        self._subscribers: dict[int, Subscriber] = {}
        self._ids = count(1)
        self._lock = Lock()
        self._closed = False

    @property
    def subscriber_count(self) -> int:
        """Number of currently connected subscribers."""
        with self._lock:
            return len(self._subscribers)

    def subscribe(self) -> Subscriber:
        """Register a new subscriber and return its handle."""
        subscriber = Subscriber(
            subscriber_id=next(self._ids),
            queue=asyncio.Queue(maxsize=self.config.queue_size),
        )
        with self._lock:
            self._subscribers[subscriber.subscriber_id] = subscriber
            self._closed = False
        logger.debug("Event subscriber %d connected", subscriber.subscriber_id)
        return subscriber

    def unsubscribe(self, subscriber: Subscriber) -> None:
        """Remove a subscriber. Safe to call more than once."""
        with self._lock:
            removed = self._subscribers.pop(subscriber.subscriber_id, None)
        if removed is not None:
            logger.debug("Event subscriber %d disconnected", subscriber.subscriber_id)

    def publish(self, event_type: str, data: dict[str, Any]) -> int:
        """Push an event to every connected subscriber without blocking.

        Args:
            event_type: Event name placed in the ``type`` field.
            data: Event payload placed in the ``data`` field.

        Returns:
            int: Number of subscribers the event was queued for.
        """
        event = {"type": event_type, "data": data}
        with self._lock:
            subscribers = list(self._subscribers.values())

        delivered = 0
        for subscriber in subscribers:
            try:
                subscriber.queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                subscriber.dropped += 1
                logger.warning(
                    "Dropped %s event for slow subscriber %d (%d dropped so far)",
                    event_type,
                    subscriber.subscriber_id,
                    subscriber.dropped,
                )
        return delivered

    async def close(self) -> None:
        """Ask every open stream to finish and forget all subscribers."""
        with self._lock:
            subscribers = list(self._subscribers.values())
            self._subscribers.clear()
            self._closed = True

        for subscriber in subscribers:
            # Make room for the sentinel so a full queue still terminates
            while subscriber.queue.full():
                subscriber.queue.get_nowait()
            subscriber.queue.put_nowait(None)

        if subscribers:
            logger.info("Closed %d event streams", len(subscribers))

    def get_stats(self) -> dict:
        """Get broadcaster statistics for monitoring."""
        with self._lock:
            return {
                "subscribers": len(self._subscribers),
                "dropped_events": sum(s.dropped for s in self._subscribers.values()),
                "closed": self._closed,
            }


# Global singleton instance
_broadcaster: EventBroadcaster | None = None


def get_event_broadcaster() -> EventBroadcaster:
    """Get or create the global event broadcaster."""
    global _broadcaster
    if _broadcaster is None:
        _broadcaster = EventBroadcaster(BroadcasterConfig.from_settings())
    return _broadcaster


async def init_event_broadcaster() -> EventBroadcaster:
    """Initialize the broadcaster. Call at app startup."""
    return get_event_broadcaster()


async def shutdown_event_broadcaster() -> None:
    """Close all open event streams. Call at app shutdown."""
    global _broadcaster
    if _broadcaster:
        await _broadcaster.close()
