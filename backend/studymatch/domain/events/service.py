"""Event board: listings, filters and RSVPs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Collection, Dict, Iterable, List, Optional

from studymatch.domain.errors import NotFound
from studymatch.domain.events.models import DEFAULT_SOURCE, EventItem
from studymatch.domain.events.repo import EventStore
from studymatch.obs import metrics as obs_metrics


@dataclass(frozen=True, slots=True)
class EventView:
	event: EventItem
	attending: bool


def filter_events(
	events: Iterable[EventItem],
	*,
	tags: Collection[str] = (),
	sources: Collection[str] = (),
	hide_attending_for: Optional[str] = None,
) -> List[EventItem]:
	"""Keep events carrying any of ``tags`` and coming from any of ``sources``.

	An empty collection disables that filter. Order is preserved.
	"""
	wanted_tags = {str(tag) for tag in tags}
	wanted_sources = {str(source).strip() or DEFAULT_SOURCE for source in sources}
	result = []
	for event in events:
		if wanted_tags and not wanted_tags.intersection(event.tags):
			continue
		if wanted_sources and (event.source or DEFAULT_SOURCE) not in wanted_sources:
			continue
		if hide_attending_for and event.attended_by(hide_attending_for):
			continue
		result.append(event)
	return result


class EventBoard:
	def __init__(self, store: EventStore) -> None:
		self._store = store

	async def list_events(self, viewer_id: Optional[str] = None) -> List[EventView]:
		events = await self._store.list_events()
		return [EventView(event=event, attending=event.attended_by(viewer_id)) for event in events]

	async def ensure_event(self, event_id: str) -> EventItem:
		event = await self._store.get(event_id)
		if event is None:
			raise NotFound("event_not_found")
		return event

	async def events_by_id(self, event_ids: Iterable[str]) -> Dict[str, EventItem]:
		return await self._store.get_many(event_ids)

	async def rsvp(self, user_id: str, event_id: str) -> EventItem:
		"""Mark the user as attending; repeating the call changes nothing."""
		await self.ensure_event(event_id)
		if await self._store.add_attendee(event_id, user_id):
			obs_metrics.inc_event_rsvp("join")
		return await self.ensure_event(event_id)

	async def cancel_rsvp(self, user_id: str, event_id: str) -> EventItem:
		await self.ensure_event(event_id)
		if await self._store.remove_attendee(event_id, user_id):
			obs_metrics.inc_event_rsvp("cancel")
		return await self.ensure_event(event_id)
