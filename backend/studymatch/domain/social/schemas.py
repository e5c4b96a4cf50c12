"""Pydantic schemas for connection requests."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel

from studymatch.domain.social.models import Connection

ViewerState = Literal["none", "outgoing-pending", "incoming-pending", "accepted"]


class ConnectionSummary(BaseModel):
	user_a: str
	user_b: str
	requester_id: str
	target_id: str
	status: Literal["pending", "accepted", "declined"]
	state: ViewerState
	created_at: datetime
	updated_at: datetime

	@classmethod
	def for_viewer(cls, edge: Connection, viewer_id: str) -> "ConnectionSummary":
		return cls(
			user_a=edge.pair.user_a,
			user_b=edge.pair.user_b,
			requester_id=edge.requester_id,
			target_id=edge.target_id,
			status=edge.status.value,
			state=edge.state_for(viewer_id).value,
			created_at=edge.created_at,
			updated_at=edge.updated_at,
		)


class ConnectionRequestResult(BaseModel):
	connection: Optional[ConnectionSummary] = None


class ConnectionStatusResponse(BaseModel):
	user_id: str
	state: ViewerState


class ConnectionIndexResponse(BaseModel):
	states: Dict[str, ViewerState]


class ConnectionCountResponse(BaseModel):
	accepted: int


class ConnectionUpdatePayload(BaseModel):
	event: str
	user_a: str
	user_b: str
	requester_id: str
	status: Literal["pending", "accepted", "declined"]


class ConnectedProfile(BaseModel):
	id: str
	display_name: str
	university: Optional[str] = None
	course_label: Optional[str] = None
	interests: List[str] = []
