"""In-process topic registry: ``Map<topic, Set[Subscriber]>`` with join / leave / publish.

Single process only; nothing is persisted per subscriber beyond set membership.
Each topic carries its own ``asyncio.Lock``: work done while holding it
(history snapshot on join, persist-then-broadcast on publish) is totally
ordered per topic. Fan-out only enqueues into each subscriber's outbox, so a
publisher never waits on a slow socket.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Set

logger = logging.getLogger(__name__)

Message = Dict[str, Any]

_CLOSE = object()


class ProtocolError(Exception):
    """Join attempted without a topic; the connection cannot be used."""


class Subscriber:
    """Outbound side of one connection.

    ``deliver`` never blocks; ``pump`` drains the outbox in FIFO order through
    ``send`` until ``close`` is called or a send fails.
    """

    def __init__(self, send: Callable[[Message], Awaitable[None]], name: str = "") -> None:
        self._send = send
        self._outbox: "asyncio.Queue[Any]" = asyncio.Queue()
        self.name = name

    def deliver(self, message: Message) -> None:
        self._outbox.put_nowait(message)

    def close(self) -> None:
        self._outbox.put_nowait(_CLOSE)

    async def pump(self) -> None:
        while True:
            message = await self._outbox.get()
            if message is _CLOSE:
                return
            try:
                await self._send(message)
            except Exception:
                logger.info("subscriber %s send failed, stopping pump", self.name)
                return

    def __repr__(self) -> str:
        return f"Subscriber({self.name!r})"


@dataclass
class _Topic:
    subscribers: Set[Subscriber] = field(default_factory=set)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    # callers inside or waiting on the lock; the topic is dropped only when this is 0 and nobody is subscribed
    pending: int = 0


class TopicRegistry:
    def __init__(self) -> None:
        self._topics: Dict[str, _Topic] = {}

    def _maybe_drop(self, topic: str) -> None:
        entry = self._topics.get(topic)
        if entry is not None and not entry.subscribers and entry.pending == 0:
            del self._topics[topic]

    @asynccontextmanager
    async def locked(self, topic: str) -> AsyncIterator[None]:
        """Hold ``topic``'s lock. Broadcasts issued inside keep persistence order."""
        entry = self._topics.setdefault(topic, _Topic())
        entry.pending += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.pending -= 1
            self._maybe_drop(topic)

    async def join(
        self,
        topic: Optional[str],
        subscriber: Subscriber,
        snapshot: Optional[Callable[[], Awaitable[Message]]] = None,
    ) -> None:
        """Subscribe, then deliver ``snapshot()`` to this subscriber only.

        Both happen under the topic lock, so no publish can fall between the
        snapshot and the first live message.
        """
        if not topic:
            raise ProtocolError("No activity with this id")
        async with self.locked(topic):
            self._topics[topic].subscribers.add(subscriber)
            if snapshot is not None:
                try:
                    subscriber.deliver(await snapshot())
                except Exception:
                    self._topics[topic].subscribers.discard(subscriber)
                    raise
        logger.info("%r joined topic %s", subscriber, topic)

    def leave(self, topic: Optional[str], subscriber: Subscriber) -> None:
        entry = self._topics.get(topic) if topic else None
        if entry is None:
            return
        entry.subscribers.discard(subscriber)
        self._maybe_drop(topic)
        logger.info("%r left topic %s", subscriber, topic)

    def broadcast(self, topic: str, message: Message) -> int:
        """Enqueue ``message`` for every current subscriber. Caller should hold ``locked(topic)``."""
        entry = self._topics.get(topic)
        subscribers = list(entry.subscribers) if entry is not None else []
        for subscriber in subscribers:
            subscriber.deliver(message)
        return len(subscribers)

    async def publish(self, topic: str, message: Message) -> int:
        async with self.locked(topic):
            return self.broadcast(topic, message)

    def subscribers(self, topic: str) -> List[Subscriber]:
        entry = self._topics.get(topic)
        return list(entry.subscribers) if entry is not None else []

    def topics(self) -> List[str]:
        return list(self._topics)
