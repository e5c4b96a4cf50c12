"""Storage for events and their attendee sets."""

from __future__ import annotations

import asyncio
from typing import Dict, Iterable, List, Optional, Protocol

from studymatch.domain.events.models import EventItem
from studymatch.infra.postgres import PostgresRepository, connection


class EventStore(Protocol):
	async def list_events(self) -> List[EventItem]:
		...

	async def get(self, event_id: str) -> Optional[EventItem]:
		...

	async def get_many(self, event_ids: Iterable[str]) -> Dict[str, EventItem]:
		...

	async def save(self, event: EventItem) -> EventItem:
		...

	async def add_attendee(self, event_id: str, user_id: str) -> bool:
		...

	async def remove_attendee(self, event_id: str, user_id: str) -> bool:
		...


class InMemoryEventStore:
	def __init__(self) -> None:
		self._lock = asyncio.Lock()
		self._events: Dict[str, EventItem] = {}
		self._attendees: Dict[str, Dict[str, None]] = {}

	async def list_events(self) -> List[EventItem]:
		async with self._lock:
			items = [self._hydrate(event) for event in self._events.values()]
		return sorted(items, key=lambda item: (item.starts_at, item.id))

	async def get(self, event_id: str) -> Optional[EventItem]:
		async with self._lock:
			event = self._events.get(str(event_id))
			return self._hydrate(event) if event else None

	async def get_many(self, event_ids: Iterable[str]) -> Dict[str, EventItem]:
		async with self._lock:
			found = (self._events.get(str(event_id)) for event_id in event_ids)
			return {event.id: self._hydrate(event) for event in found if event is not None}

	async def save(self, event: EventItem) -> EventItem:
		async with self._lock:
			self._events[event.id] = event.with_attendees(())
			attendees = self._attendees.setdefault(event.id, {})
			for user_id in event.attendee_ids:
				attendees.setdefault(user_id, None)
			return self._hydrate(event)

	async def add_attendee(self, event_id: str, user_id: str) -> bool:
		async with self._lock:
			attendees = self._attendees.setdefault(str(event_id), {})
			if str(user_id) in attendees:
				return False
			attendees[str(user_id)] = None
			return True

	async def remove_attendee(self, event_id: str, user_id: str) -> bool:
		async with self._lock:
			attendees = self._attendees.get(str(event_id), {})
			if str(user_id) not in attendees:
				return False
			del attendees[str(user_id)]
			return True

	def _hydrate(self, event: EventItem) -> EventItem:
		return event.with_attendees(self._attendees.get(event.id, {}).keys())


_MEMORY_STORE = InMemoryEventStore()

_EVENT_SELECT = """
	SELECT e.id, e.title, e.starts_at, e.location, e.tags, e.source,
		COALESCE(array_agg(a.user_id ORDER BY a.created_at) FILTER (WHERE a.user_id IS NOT NULL), '{}') AS attendee_ids
	FROM events e
	LEFT JOIN event_attendees a ON a.event_id = e.id
"""


class EventRepository(PostgresRepository):
	"""Events backed by ``events`` and ``event_attendees`` (primary key ``(event_id, user_id)``)."""

	def __init__(self, memory: InMemoryEventStore | None = None) -> None:
		super().__init__()
		self._memory = memory or _MEMORY_STORE

	async def list_events(self) -> List[EventItem]:
		pool = await self._pool_or_none()
		if pool is None:
			return await self._memory.list_events()
		async with connection(pool) as conn:
			rows = await conn.fetch(_EVENT_SELECT + " GROUP BY e.id ORDER BY e.starts_at, e.id")
		return [EventItem.from_record(row, row["attendee_ids"]) for row in rows]

	async def get(self, event_id: str) -> Optional[EventItem]:
		pool = await self._pool_or_none()
		if pool is None:
			return await self._memory.get(event_id)
		async with connection(pool) as conn:
			row = await conn.fetchrow(_EVENT_SELECT + " WHERE e.id = $1 GROUP BY e.id", str(event_id))
		return EventItem.from_record(row, row["attendee_ids"]) if row else None

	async def get_many(self, event_ids: Iterable[str]) -> Dict[str, EventItem]:
		ids = list({str(event_id) for event_id in event_ids})
		if not ids:
			return {}
		pool = await self._pool_or_none()
		if pool is None:
			return await self._memory.get_many(ids)
		async with connection(pool) as conn:
			rows = await conn.fetch(_EVENT_SELECT + " WHERE e.id = ANY($1::text[]) GROUP BY e.id", ids)
		return {str(row["id"]): EventItem.from_record(row, row["attendee_ids"]) for row in rows}

	async def save(self, event: EventItem) -> EventItem:
		pool = await self._pool_or_none()
		if pool is None:
			return await self._memory.save(event)
		async with connection(pool) as conn:
			await conn.execute(
				"""
				INSERT INTO events (id, title, starts_at, location, tags, source)
				VALUES ($1, $2, $3, $4, $5, $6)
				ON CONFLICT (id) DO UPDATE SET
					title = EXCLUDED.title,
					starts_at = EXCLUDED.starts_at,
					location = EXCLUDED.location,
					tags = EXCLUDED.tags,
					source = EXCLUDED.source
				""",
				event.id,
				event.title,
				event.starts_at,
				event.location,
				list(event.tags),
				event.source,
			)
		return event

	async def add_attendee(self, event_id: str, user_id: str) -> bool:
		pool = await self._pool_or_none()
		if pool is None:
			return await self._memory.add_attendee(event_id, user_id)
		async with connection(pool) as conn:
			status = await conn.execute(
				"""
				INSERT INTO event_attendees (event_id, user_id)
				VALUES ($1, $2)
				ON CONFLICT (event_id, user_id) DO NOTHING
				""",
				str(event_id),
				str(user_id),
			)
		return status.endswith(" 1")

	async def remove_attendee(self, event_id: str, user_id: str) -> bool:
		pool = await self._pool_or_none()
		if pool is None:
			return await self._memory.remove_attendee(event_id, user_id)
		async with connection(pool) as conn:
			status = await conn.execute(
				"DELETE FROM event_attendees WHERE event_id = $1 AND user_id = $2",
				str(event_id),
				str(user_id),
			)
		return status.endswith(" 1")
