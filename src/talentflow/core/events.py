from __future__ import annotations

import asyncio
import threading
from collections import defaultdict
from collections.abc import AsyncIterator
from typing import Any

Subscriber = tuple[asyncio.AbstractEventLoop, "asyncio.Queue[dict[str, Any]]"]


class EventBus:
    """Fan-out of in-app notifications to live subscribers, keyed by application id.

    ``publish`` is synchronous and may be called from worker threads; events
    are handed to each subscriber's own event loop.
    """

    def __init__(self) -> None:
        self._subscribers: dict[int, list[Subscriber]] = defaultdict(list)
        self._lock = threading.Lock()

    def publish(self, application_id: int, event: dict[str, Any]) -> int:
        with self._lock:
            subscribers = list(self._subscribers.get(application_id, []))

        for loop, queue in subscribers:
            loop.call_soon_threadsafe(queue.put_nowait, event)
        return len(subscribers)

    def subscriber_count(self, application_id: int) -> int:
        with self._lock:
            return len(self._subscribers.get(application_id, []))

    async def subscribe(self, application_id: int) -> AsyncIterator[dict[str, Any]]:
        queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        entry = (asyncio.get_running_loop(), queue)
        with self._lock:
            self._subscribers[application_id].append(entry)

        try:
            while True:
                event = await queue.get()
                yield event
        finally:
            with self._lock:
                if entry in self._subscribers.get(application_id, []):
                    self._subscribers[application_id].remove(entry)


_EVENT_BUS: EventBus | None = None


def get_event_bus() -> EventBus:
    global _EVENT_BUS
    if _EVENT_BUS is None:
        _EVENT_BUS = EventBus()
    return _EVENT_BUS
