"""Domain models for connection requests between students."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from studymatch.domain.common.pairs import CanonicalPair


class ConnectionStatus(str, Enum):
	"""Edge states stored in the database."""

	PENDING = "pending"
	ACCEPTED = "accepted"
	DECLINED = "declined"


class ConnectionState(str, Enum):
	"""Edge state as seen by one of its two users. Derived, never stored."""

	NONE = "none"
	OUTGOING_PENDING = "outgoing-pending"
	INCOMING_PENDING = "incoming-pending"
	ACCEPTED = "accepted"


@dataclass(frozen=True, slots=True)
class Connection:
	"""The single edge for an unordered pair of users."""

	pair: CanonicalPair
	requester_id: str
	status: ConnectionStatus
	created_at: datetime
	updated_at: datetime

	@property
	def target_id(self) -> str:
		return self.pair.other(self.requester_id)

	def other(self, user_id: str) -> str:
		return self.pair.other(user_id)

	def state_for(self, viewer_id: str) -> ConnectionState:
		if self.status is ConnectionStatus.ACCEPTED:
			return ConnectionState.ACCEPTED
		if self.status is ConnectionStatus.PENDING:
			if self.requester_id == str(viewer_id):
				return ConnectionState.OUTGOING_PENDING
			return ConnectionState.INCOMING_PENDING
		return ConnectionState.NONE

	def after_request(self, requester_id: str, now: datetime) -> "Connection":
		"""Apply a connection request from ``requester_id`` to this edge.

		A request against the other party's pending edge is an acceptance; a request
		against a declined edge re-opens it for the new requester.
		"""
		requester_id = str(requester_id)
		if self.status is ConnectionStatus.PENDING and self.requester_id != requester_id:
			return Connection(self.pair, self.requester_id, ConnectionStatus.ACCEPTED, self.created_at, now)
		if self.status is ConnectionStatus.DECLINED:
			return Connection(self.pair, requester_id, ConnectionStatus.PENDING, self.created_at, now)
		return self

	@classmethod
	def from_record(cls, record) -> "Connection":
		return cls(
			pair=CanonicalPair(user_a=str(record["user_a"]), user_b=str(record["user_b"])),
			requester_id=str(record["requester_id"]),
			status=ConnectionStatus(record["status"]),
			created_at=record["created_at"],
			updated_at=record["updated_at"],
		)

	def to_dict(self) -> dict:
		return {
			"user_a": self.pair.user_a,
			"user_b": self.pair.user_b,
			"requester_id": self.requester_id,
			"target_id": self.target_id,
			"status": self.status.value,
			"created_at": self.created_at.isoformat(),
			"updated_at": self.updated_at.isoformat(),
		}
