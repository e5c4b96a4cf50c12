"""REST API surface for events and RSVPs."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query

from studymatch import container
from studymatch.domain.events.schemas import EventResponse
from studymatch.domain.events.service import EventBoard, filter_events
from studymatch.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/events", tags=["events"])


@router.get("", response_model=List[EventResponse])
async def list_events(
	tag: List[str] = Query(default=[]),
	source: List[str] = Query(default=[]),
	hide_attending: bool = False,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	board: EventBoard = Depends(container.get_event_board),
) -> List[EventResponse]:
	views = await board.list_events(auth_user.id)
	kept = {
		event.id
		for event in filter_events(
			[view.event for view in views],
			tags=tag,
			sources=source,
			hide_attending_for=auth_user.id if hide_attending else None,
		)
	}
	return [EventResponse.from_view(view) for view in views if view.event.id in kept]


@router.post("/{event_id}/rsvp", response_model=EventResponse)
async def rsvp(
	event_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	board: EventBoard = Depends(container.get_event_board),
) -> EventResponse:
	event = await board.rsvp(auth_user.id, event_id)
	return EventResponse.from_model(event, attending=True)


@router.delete("/{event_id}/rsvp", response_model=EventResponse)
async def cancel_rsvp(
	event_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	board: EventBoard = Depends(container.get_event_board),
) -> EventResponse:
	event = await board.cancel_rsvp(auth_user.id, event_id)
	return EventResponse.from_model(event, attending=False)
