from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from studymatch.domain.errors import NotFound
from studymatch.domain.events.models import EventItem
from studymatch.domain.events.repo import InMemoryEventStore
from studymatch.domain.events.service import EventBoard, filter_events

T0 = datetime(2024, 3, 1, 18, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def board():
    store = InMemoryEventStore()
    await store.save(EventItem(id="late", title="AMA", starts_at=T0 + timedelta(days=2), tags=("Careers",), source="Clubs"))
    await store.save(EventItem(id="early", title="Sprint", starts_at=T0, tags=("FIT1045", "Study"), source="Faculty"))
    await store.save(EventItem(id="mid", title="Blue Team 101", starts_at=T0 + timedelta(days=1), tags=("Cyber",), source=""))
    return EventBoard(store)


@pytest.mark.asyncio
async def test_events_listed_by_start_time_with_attending_flag(board):
    await board.rsvp("alice", "mid")

    views = await board.list_events("alice")

    assert [view.event.id for view in views] == ["early", "mid", "late"]
    assert [view.attending for view in views] == [False, True, False]


@pytest.mark.asyncio
async def test_rsvp_and_cancel_are_idempotent(board):
    await board.rsvp("alice", "early")
    event = await board.rsvp("alice", "early")
    assert event.attendee_ids == ("alice",)

    await board.cancel_rsvp("alice", "early")
    event = await board.cancel_rsvp("alice", "early")
    assert event.attendee_ids == ()


@pytest.mark.asyncio
async def test_unknown_event_is_not_found(board):
    with pytest.raises(NotFound):
        await board.rsvp("alice", "nope")
    with pytest.raises(NotFound):
        await board.ensure_event("nope")


@pytest.mark.asyncio
async def test_filter_by_tags_sources_and_attendance(board):
    await board.rsvp("alice", "early")
    events = [view.event for view in await board.list_events()]

    assert [e.id for e in filter_events(events, tags=["Study", "Cyber"])] == ["early", "mid"]
    assert [e.id for e in filter_events(events, sources=["Other"])] == ["mid"]
    assert [e.id for e in filter_events(events, tags=["Study", "Careers"], sources=["Clubs"])] == ["late"]
    assert [e.id for e in filter_events(events, hide_attending_for="alice")] == ["mid", "late"]
    assert filter_events(events) == events
