"""Event listings and attendance."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple

from studymatch.domain.profiles.models import string_tuple

DEFAULT_SOURCE = "Other"


@dataclass(frozen=True, slots=True)
class EventItem:
	id: str
	title: str
	starts_at: datetime
	location: str = ""
	tags: Tuple[str, ...] = ()
	source: str = DEFAULT_SOURCE
	attendee_ids: Tuple[str, ...] = field(default=(), compare=False)

	def attended_by(self, user_id: Optional[str]) -> bool:
		return bool(user_id) and str(user_id) in self.attendee_ids

	def with_attendees(self, attendee_ids) -> "EventItem":
		return EventItem(self.id, self.title, self.starts_at, self.location, self.tags, self.source, tuple(attendee_ids))

	@classmethod
	def from_record(cls, record, attendee_ids=()) -> "EventItem":
		return cls(
			id=str(record["id"]),
			title=record["title"],
			starts_at=record["starts_at"],
			location=record["location"] or "",
			tags=string_tuple(record["tags"]),
			source=(record["source"] or "").strip() or DEFAULT_SOURCE,
			attendee_ids=tuple(str(item) for item in attendee_ids),
		)
