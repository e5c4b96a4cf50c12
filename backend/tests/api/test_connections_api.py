import pytest
import pytest_asyncio

from studymatch.domain.profiles.models import Profile
from studymatch.settings import settings


def _headers(user_id: str) -> dict:
    return {"X-User-Id": user_id}


@pytest_asyncio.fixture
async def people(seed_profiles):
    await seed_profiles(
        Profile(id="alice", display_name="Alice", university="Monash"),
        Profile(id="bob", display_name="Bob", university="Monash"),
    )


@pytest.mark.asyncio
async def test_mutual_requests_end_accepted(api_client, people):
    first = await api_client.post("/connections/bob/request", headers=_headers("alice"))
    assert first.status_code == 200
    assert first.json()["connection"]["state"] == "outgoing-pending"

    second = await api_client.post("/connections/alice/request", headers=_headers("bob"))
    assert second.json()["connection"]["status"] == "accepted"

    status = await api_client.get("/connections/bob/status", headers=_headers("alice"))
    assert status.json() == {"user_id": "bob", "state": "accepted"}

    count = await api_client.get("/connections/count", headers=_headers("alice"))
    assert count.json() == {"accepted": 1}

    listed = await api_client.get("/connections", headers=_headers("bob"))
    assert [item["id"] for item in listed.json()] == ["alice"]


@pytest.mark.asyncio
async def test_accept_decline_and_index(api_client, people):
    await api_client.post("/connections/bob/request", headers=_headers("alice"))

    index = await api_client.get("/connections/index", headers=_headers("bob"))
    assert index.json() == {"states": {"alice": "incoming-pending"}}

    declined = await api_client.post("/connections/alice/decline", headers=_headers("bob"))
    assert declined.status_code == 200
    assert declined.json()["state"] == "none"

    missing = await api_client.post("/connections/alice/accept", headers=_headers("bob"))
    assert missing.status_code == 404
    assert missing.json()["detail"] == "connection_not_found"
    assert missing.json()["request_id"]


@pytest.mark.asyncio
async def test_self_request_rejected(api_client, people):
    response = await api_client.post("/connections/alice/request", headers=_headers("alice"))

    assert response.status_code == 400
    assert response.json()["detail"] == "self_connection"


@pytest.mark.asyncio
async def test_missing_identity_is_unauthorized(api_client, people):
    response = await api_client.post("/connections/bob/request")

    assert response.status_code == 401
    assert response.json()["detail"] == "unauthenticated"


@pytest.mark.asyncio
async def test_unknown_target_and_rate_limit(api_client, people, monkeypatch):
    unknown = await api_client.post("/connections/ghost/request", headers=_headers("alice"))
    assert unknown.status_code == 404

    monkeypatch.setattr(settings, "connection_requests_per_minute", 0)
    limited = await api_client.post("/connections/bob/request", headers=_headers("alice"))
    assert limited.status_code == 429
    assert limited.json()["detail"] == "connection_request_rate_limited"
