"""Pydantic schemas for conversations and messages."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from studymatch.domain.chat.models import ConversationSummary, Message
from studymatch.domain.events.models import EventItem


class DirectConversationRequest(BaseModel):
	peer_id: str = Field(..., min_length=1)


class GroupConversationRequest(BaseModel):
	member_ids: List[str] = Field(default_factory=list)
	name: Optional[str] = None


class ConversationRef(BaseModel):
	conversation_id: str


class SendMessageRequest(BaseModel):
	body: Optional[str] = None
	event_ref: Optional[str] = None


class SharedEventSummary(BaseModel):
	id: str
	title: str
	starts_at: datetime
	location: str
	tags: List[str]
	source: str

	@classmethod
	def from_model(cls, event: EventItem) -> "SharedEventSummary":
		return cls(
			id=event.id,
			title=event.title,
			starts_at=event.starts_at,
			location=event.location,
			tags=list(event.tags),
			source=event.source,
		)


class MessageResponse(BaseModel):
	id: str
	conversation_id: str
	seq: int
	sender_id: str
	body: str
	event_ref: Optional[str] = None
	created_at: datetime
	shared_event: Optional[SharedEventSummary] = None

	@classmethod
	def from_model(cls, message: Message, events: Optional[Dict[str, EventItem]] = None) -> "MessageResponse":
		event = (events or {}).get(message.event_ref or "")
		return cls(
			**message.to_dict(),
			shared_event=SharedEventSummary.from_model(event) if event else None,
		)


class ConversationListItem(BaseModel):
	id: str
	kind: Literal["direct", "group"]
	title: str
	participant_ids: List[str]
	created_at: datetime
	last_activity: datetime
	latest_message: Optional[MessageResponse] = None

	@classmethod
	def from_summary(cls, summary: ConversationSummary) -> "ConversationListItem":
		conversation = summary.conversation
		latest = summary.latest_message
		return cls(
			id=conversation.id,
			kind=conversation.kind.value,
			title=summary.title,
			participant_ids=list(conversation.participant_ids),
			created_at=conversation.created_at,
			last_activity=summary.last_activity,
			latest_message=MessageResponse.from_model(latest) if latest else None,
		)
