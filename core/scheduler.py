"""One-shot delayed callbacks delivered through the event bus.

Used for spoken timers and for clearing transient status lines. The
delay runs on a background threading.Timer, but the callback itself is
published to the bus and executed by whoever drains it, never on the
timer thread.
"""

import logging
import threading
from typing import Callable, List

from core.event_bus import EventBus

logger = logging.getLogger(__name__)

TOPIC = "scheduler"


class Scheduler:
    """Schedule callbacks to run on the bus-draining thread after a delay."""

    def __init__(self, bus: EventBus):
        self._bus = bus
        self._timers: List[threading.Timer] = []
        self._lock = threading.Lock()
        bus.subscribe(TOPIC, self._run)

    def call_later(self, delay_s: float, callback: Callable[[], None]):
        """Run *callback* once after *delay_s* seconds. Not cancellable."""
        timer = threading.Timer(max(delay_s, 0.0), self._fire, args=(callback,))
        timer.daemon = True
        with self._lock:
            self._timers = [t for t in self._timers if t.is_alive()]
            self._timers.append(timer)
        timer.start()
        logger.debug("Scheduled callback in %.1fs", delay_s)
        return timer

    def close(self):
        """Drop any callbacks that have not fired yet (shutdown only)."""
        with self._lock:
            for timer in self._timers:
                timer.cancel()
            self._timers.clear()

    def _fire(self, callback: Callable[[], None]):
        self._bus.publish(TOPIC, callback)

    def _run(self, callback: Callable[[], None]):
        callback()
