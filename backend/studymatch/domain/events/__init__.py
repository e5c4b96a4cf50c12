"""Campus events and RSVPs."""

from studymatch.domain.events.models import EventItem
from studymatch.domain.events.repo import EventRepository, InMemoryEventStore
from studymatch.domain.events.service import EventBoard, EventView, filter_events

__all__ = ["EventBoard", "EventItem", "EventRepository", "EventView", "InMemoryEventStore", "filter_events"]
