"""Pydantic schemas for event listings."""

from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import BaseModel

from studymatch.domain.events.models import EventItem
from studymatch.domain.events.service import EventView


class EventResponse(BaseModel):
	id: str
	title: str
	starts_at: datetime
	location: str
	tags: List[str]
	source: str
	attendee_ids: List[str]
	attending: bool = False

	@classmethod
	def from_model(cls, event: EventItem, *, attending: bool = False) -> "EventResponse":
		return cls(
			id=event.id,
			title=event.title,
			starts_at=event.starts_at,
			location=event.location,
			tags=list(event.tags),
			source=event.source,
			attendee_ids=list(event.attendee_ids),
			attending=attending,
		)

	@classmethod
	def from_view(cls, view: EventView) -> "EventResponse":
		return cls.from_model(view.event, attending=view.attending)
