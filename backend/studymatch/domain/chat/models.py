"""Domain models for conversations and their message logs."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

DIRECT_FALLBACK_TITLE = "Direct Message"
GROUP_FALLBACK_TITLE = "Group"


class ConversationKind(str, Enum):
	DIRECT = "direct"
	GROUP = "group"


@dataclass(frozen=True, slots=True)
class Conversation:
	id: str
	kind: ConversationKind
	display_name: Optional[str]
	participant_ids: Tuple[str, ...]
	created_at: datetime

	def has_participant(self, user_id: str) -> bool:
		return str(user_id) in self.participant_ids

	def counterpart(self, user_id: str) -> Optional[str]:
		"""The other member of a direct conversation."""
		if self.kind is not ConversationKind.DIRECT:
			return None
		for participant in self.participant_ids:
			if participant != str(user_id):
				return participant
		return None

	@classmethod
	def from_record(cls, record, participant_ids) -> "Conversation":
		return cls(
			id=str(record["id"]),
			kind=ConversationKind(record["kind"]),
			display_name=record["display_name"],
			participant_ids=tuple(str(item) for item in participant_ids),
			created_at=record["created_at"],
		)


@dataclass(frozen=True, slots=True)
class Message:
	id: str
	conversation_id: str
	seq: int
	sender_id: str
	body: str
	event_ref: Optional[str]
	created_at: datetime

	def to_dict(self) -> dict:
		return {
			"id": self.id,
			"conversation_id": self.conversation_id,
			"seq": self.seq,
			"sender_id": self.sender_id,
			"body": self.body,
			"event_ref": self.event_ref,
			"created_at": self.created_at.isoformat(),
		}

	@classmethod
	def from_dict(cls, data: dict) -> "Message":
		return cls(
			id=str(data["id"]),
			conversation_id=str(data["conversation_id"]),
			seq=int(data["seq"]),
			sender_id=str(data["sender_id"]),
			body=str(data.get("body") or ""),
			event_ref=data.get("event_ref"),
			created_at=datetime.fromisoformat(data["created_at"]),
		)

	@classmethod
	def from_record(cls, record) -> "Message":
		return cls(
			id=str(record["id"]),
			conversation_id=str(record["conversation_id"]),
			seq=int(record["seq"]),
			sender_id=str(record["sender_id"]),
			body=record["body"] or "",
			event_ref=record["event_ref"],
			created_at=record["created_at"],
		)


def history_order(message: Message) -> Tuple[datetime, int]:
	return (message.created_at, message.seq)


@dataclass(frozen=True, slots=True)
class ConversationSummary:
	conversation: Conversation
	title: str
	latest_message: Optional[Message]

	@property
	def last_activity(self) -> datetime:
		if self.latest_message is not None:
			return self.latest_message.created_at
		return self.conversation.created_at
