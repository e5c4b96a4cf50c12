from datetime import datetime, timezone

import pytest
import pytest_asyncio

from studymatch.domain.events.models import EventItem
from studymatch.domain.events.repo import EventRepository
from studymatch.domain.profiles.models import Profile


def _headers(user_id: str) -> dict:
    return {"X-User-Id": user_id}


@pytest_asyncio.fixture
async def people(seed_profiles):
    await seed_profiles(
        Profile(id="alice", display_name="Alice"),
        Profile(id="bob", display_name="Bob"),
        Profile(id="carol", display_name="Carol"),
    )


@pytest.mark.asyncio
async def test_direct_conversation_is_shared(api_client, people):
    mine = await api_client.post("/conversations/direct", json={"peer_id": "bob"}, headers=_headers("alice"))
    theirs = await api_client.post("/conversations/direct", json={"peer_id": "alice"}, headers=_headers("bob"))

    assert mine.status_code == 200
    assert mine.json()["conversation_id"] == theirs.json()["conversation_id"]


@pytest.mark.asyncio
async def test_direct_conversation_errors(api_client, people):
    with_self = await api_client.post("/conversations/direct", json={"peer_id": "alice"}, headers=_headers("alice"))
    unknown = await api_client.post("/conversations/direct", json={"peer_id": "ghost"}, headers=_headers("alice"))

    assert with_self.status_code == 400
    assert unknown.status_code == 404


@pytest.mark.asyncio
async def test_send_and_read_messages(api_client, people):
    created = await api_client.post("/conversations/direct", json={"peer_id": "bob"}, headers=_headers("alice"))
    conversation_id = created.json()["conversation_id"]

    sent = await api_client.post(
        f"/conversations/{conversation_id}/messages",
        json={"body": "want to study?"},
        headers=_headers("alice"),
    )
    assert sent.status_code == 201
    assert sent.json()["seq"] == 1

    history = await api_client.get(f"/conversations/{conversation_id}/messages", headers=_headers("bob"))
    assert [m["body"] for m in history.json()] == ["want to study?"]

    outsider = await api_client.get(f"/conversations/{conversation_id}/messages", headers=_headers("carol"))
    assert outsider.status_code == 404

    blank = await api_client.post(
        f"/conversations/{conversation_id}/messages",
        json={"body": "   "},
        headers=_headers("alice"),
    )
    assert blank.status_code == 400
    assert blank.json()["detail"] == "empty_message"


@pytest.mark.asyncio
async def test_group_and_listing(api_client, people):
    group = await api_client.post(
        "/conversations/group",
        json={"member_ids": ["bob", "carol", "ghost"]},
        headers=_headers("alice"),
    )
    assert group.status_code == 201
    direct = await api_client.post("/conversations/direct", json={"peer_id": "bob"}, headers=_headers("alice"))
    await api_client.post(
        f"/conversations/{group.json()['conversation_id']}/messages",
        json={"body": "hello team"},
        headers=_headers("carol"),
    )

    listed = await api_client.get("/conversations", headers=_headers("alice"))

    items = listed.json()
    assert [item["id"] for item in items] == [group.json()["conversation_id"], direct.json()["conversation_id"]]
    assert items[0]["title"] == "Bob, Carol"
    assert items[0]["latest_message"]["body"] == "hello team"
    assert items[1]["title"] == "Bob"
    assert items[1]["kind"] == "direct"


@pytest.mark.asyncio
async def test_empty_group_rejected(api_client, people):
    response = await api_client.post("/conversations/group", json={"member_ids": ["ghost"]}, headers=_headers("alice"))

    assert response.status_code == 400
    assert response.json()["detail"] == "empty_group"


@pytest.mark.asyncio
async def test_messages_carry_shared_event_details(api_client, people):
    await EventRepository().save(
        EventItem(
            id="sprint",
            title="Study Sprint",
            starts_at=datetime(2024, 3, 1, 18, 0, tzinfo=timezone.utc),
            location="Library L2",
            tags=("Study",),
            source="Faculty",
        )
    )
    created = await api_client.post("/conversations/direct", json={"peer_id": "bob"}, headers=_headers("alice"))
    conversation_id = created.json()["conversation_id"]

    sent = await api_client.post(
        f"/conversations/{conversation_id}/messages",
        json={"event_ref": "sprint"},
        headers=_headers("alice"),
    )
    await api_client.post(f"/conversations/{conversation_id}/messages", json={"body": "see you"}, headers=_headers("bob"))
    history = await api_client.get(f"/conversations/{conversation_id}/messages", headers=_headers("bob"))

    assert sent.json()["shared_event"]["title"] == "Study Sprint"
    shared = history.json()[0]["shared_event"]
    assert shared == {
        "id": "sprint",
        "title": "Study Sprint",
        "starts_at": "2024-03-01T18:00:00Z",
        "location": "Library L2",
        "tags": ["Study"],
        "source": "Faculty",
    }
    assert history.json()[1]["shared_event"] is None


@pytest.mark.asyncio
async def test_unknown_event_ref_is_rejected(api_client, people):
    created = await api_client.post("/conversations/direct", json={"peer_id": "bob"}, headers=_headers("alice"))

    response = await api_client.post(
        f"/conversations/{created.json()['conversation_id']}/messages",
        json={"event_ref": "nope"},
        headers=_headers("alice"),
    )

    assert response.status_code == 404
    assert response.json()["detail"] == "event_not_found"
