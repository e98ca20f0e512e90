"""Single-channel event bus for the voice client.

Adapters (recognizer, synthesizer) and timers run in background threads
and push events via publish(). The client's main loop drains the queue
and dispatches to subscribers, so every state change happens on the one
control flow that owns the session. Delivery order is FIFO.
"""

import logging
from queue import Queue, Empty
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class EventBus:
    """Message bus bridging background threads to the client main loop."""

    def __init__(self):
        self._queue = Queue()
        self._subscribers: Dict[str, List[Callable]] = {}

    def publish(self, topic: str, payload: Any):
        """Push data from any thread. Thread-safe."""
        self._queue.put((topic, payload))

    def subscribe(self, topic: str, callback: Callable):
        """Register a callback for a topic. Called on the draining thread."""
        if topic not in self._subscribers:
            self._subscribers[topic] = []
        self._subscribers[topic].append(callback)

    def unsubscribe(self, topic: str, callback: Callable):
        """Remove a callback."""
        if topic in self._subscribers:
            self._subscribers[topic] = [
                cb for cb in self._subscribers[topic] if cb != callback
            ]

    def pending(self) -> int:
        return self._queue.qsize()

    def drain(self, max_items: int = 50, timeout: Optional[float] = None) -> int:
        """Deliver queued events to subscribers. Returns how many were handled.

        With a timeout, blocks up to that long for the first event.
        """
        handled = 0
        block = timeout is not None
        while handled < max_items:
            try:
                if block and handled == 0:
                    topic, payload = self._queue.get(timeout=timeout)
                else:
                    topic, payload = self._queue.get_nowait()
            except Empty:
                break
            handled += 1
            for cb in self._subscribers.get(topic, []):
                try:
                    cb(payload)
                except Exception as exc:
                    logger.error("EventBus callback error [%s]: %s", topic, exc)
        return handled
