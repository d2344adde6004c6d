"""Live standings fan-out to persistent connections.

Each subscriber wraps a message sink (in practice a websocket). A sink that
fails or stalls past the send timeout is closed and unregistered; the other
subscribers and the broadcasting caller never see its error.
"""

import asyncio
from enum import Enum
from typing import Any, Protocol, Sequence

from .table import TableRow, standings_to_json
from .logging import get_logger

logger = get_logger(__name__)

DEFAULT_SEND_TIMEOUT = 5.0  # Seconds


# Websocket close codes
CLOSE_GOING_AWAY = 1001
CLOSE_INTERNAL_ERROR = 1011


class MessageSink(Protocol):
    async def send_json(self, data: Any) -> None: ...

    async def close(self, code: int = 1000) -> None: ...


class SubscriberState(Enum):
    CONNECTING = "connecting"
    ACTIVE = "active"
    CLOSED = "closed"


def standings_message(rows: Sequence[TableRow]) -> dict:
    return {"standings": standings_to_json(rows)}


class Subscriber:
    """A registered sink. Closed is terminal."""

    def __init__(self, sink: MessageSink, send_timeout: float):
        self.sink = sink
        self.send_timeout = send_timeout
        self.state = SubscriberState.CONNECTING
        # Serializes sends so the initial snapshot always goes out first
        self._send_lock = asyncio.Lock()
        self._closed = asyncio.Event()

    @property
    def key(self) -> int:
        return id(self.sink)

    @property
    def active(self) -> bool:
        return self.state is SubscriberState.ACTIVE

    async def send(self, message: dict) -> bool:
        """Deliver one message. Returns False (and closes) on failure."""
        async with self._send_lock:
            return await self._deliver(message)

    async def _deliver(self, message: dict) -> bool:
        # Caller holds _send_lock
        if self.state is SubscriberState.CLOSED:
            return False
        try:
            await asyncio.wait_for(self.sink.send_json(message), timeout=self.send_timeout)
        except asyncio.TimeoutError:
            logger.info("Subscriber %x timed out after %.1fs, dropping", self.key, self.send_timeout)
            await self.disconnect(CLOSE_INTERNAL_ERROR)
            return False
        except Exception as e:
            logger.info("Subscriber %x send failed, dropping: %s", self.key, e)
            await self.disconnect(CLOSE_INTERNAL_ERROR)
            return False
        return True

    def close(self) -> None:
        """Mark closed without touching the connection (the peer already left)."""
        self.state = SubscriberState.CLOSED
        self._closed.set()

    async def disconnect(self, code: int) -> None:
        """Mark closed and close the connection from our side."""
        self.close()
        try:
            await asyncio.wait_for(self.sink.close(code=code), timeout=self.send_timeout)
        except Exception as e:
            # Connection already broken; it is unregistered either way
            logger.debug("Subscriber %x close failed: %s", self.key, e)

    async def wait_closed(self) -> None:
        """Return once the subscriber is closed, from either side."""
        await self._closed.wait()


class StandingsBroadcaster:
    """
    Registry of live standings subscribers.

    Usage:
        broadcaster = StandingsBroadcaster()

        # In a websocket endpoint:
        subscriber = await broadcaster.subscribe(websocket, current_rows)
        try:
            ...  # read until the client goes away
        finally:
            await broadcaster.unsubscribe(subscriber)

        # After a result changes the table:
        await broadcaster.broadcast(new_rows)
    """

    def __init__(self, send_timeout: float = DEFAULT_SEND_TIMEOUT):
        self.send_timeout = send_timeout
        self._subscribers: dict[int, Subscriber] = {}
        self._lock = asyncio.Lock()

    async def subscribe(self, sink: MessageSink, snapshot: Sequence[TableRow]) -> Subscriber:
        """
        Register ``sink`` and send it ``snapshot`` as its first message.

        The returned subscriber is already closed if that first send failed.
        """
        subscriber = Subscriber(sink, self.send_timeout)
        # Broadcasts reaching this subscriber queue behind the initial send
        async with subscriber._send_lock:
            async with self._lock:
                self._subscribers[subscriber.key] = subscriber
                subscriber.state = SubscriberState.ACTIVE
            logger.info("Subscriber %x connected (%d live)", subscriber.key, len(self._subscribers))
            delivered = await subscriber._deliver(standings_message(snapshot))

        if not delivered:
            await self.unsubscribe(subscriber)
        return subscriber

    async def unsubscribe(self, subscriber: Subscriber) -> None:
        subscriber.close()
        async with self._lock:
            if self._subscribers.get(subscriber.key) is subscriber:
                del self._subscribers[subscriber.key]
                logger.info("Subscriber %x disconnected (%d live)", subscriber.key, len(self._subscribers))

    async def broadcast(self, snapshot: Sequence[TableRow]) -> int:
        """
        Push ``snapshot`` to every active subscriber.

        Returns:
            Number of subscribers that received it
        """
        async with self._lock:
            targets = [s for s in self._subscribers.values() if s.active]

        if not targets:
            return 0

        message = standings_message(snapshot)
        results = await asyncio.gather(*(s.send(message) for s in targets))

        failed = [s for s, ok in zip(targets, results) if not ok]
        if failed:
            async with self._lock:
                for s in failed:
                    if self._subscribers.get(s.key) is s:
                        del self._subscribers[s.key]

        delivered = len(targets) - len(failed)
        logger.debug("Broadcast standings to %d/%d subscribers", delivered, len(targets))
        return delivered

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def __contains__(self, sink: object) -> bool:
        return id(sink) in self._subscribers

    async def close_all(self) -> None:
        """Close every connection; used at shutdown."""
        async with self._lock:
            subscribers = list(self._subscribers.values())
            self._subscribers.clear()
        await asyncio.gather(*(s.disconnect(CLOSE_GOING_AWAY) for s in subscribers))
