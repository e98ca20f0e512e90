"""Shared plumbing for the voice client and the assistant service.

Architecture:
    EventBus   -- thread-safe message bus, delivers payloads to subscribers on the main loop
    Scheduler  -- one-shot delayed callbacks, delivered through the EventBus
    DataStore  -- SQLite persistence for reminders, feedback, history, preferences
"""

from core.event_bus import EventBus
from core.scheduler import Scheduler
from core.data_store import DataStore

__all__ = [
    "EventBus",
    "Scheduler",
    "DataStore",
]
