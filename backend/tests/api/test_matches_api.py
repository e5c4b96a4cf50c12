import pytest
import pytest_asyncio

from studymatch.domain.profiles.models import Profile


def _headers(user_id: str) -> dict:
    return {"X-User-Id": user_id}


@pytest_asyncio.fixture
async def people(seed_profiles):
    await seed_profiles(
        Profile(id="me", display_name="Me", university="Monash", course_label="FIT2004", interests=("Chess",)),
        Profile(id="a", display_name="A", university="Monash", course_label="FIT2004 Algorithms"),
        Profile(id="b", display_name="B", interests=("Chess",)),
        Profile(id="c", display_name="C"),
    )


@pytest.mark.asyncio
async def test_suggestions_with_reasons(api_client, people):
    response = await api_client.get("/matches", headers=_headers("me"))

    assert response.status_code == 200
    body = response.json()
    assert [item["candidate_id"] for item in body["items"]] == ["a", "b", "c"]
    assert body["items"][0]["score"] == 4.0
    assert body["items"][0]["reasons"] == ["Same university: Monash", "Also enrolled in FIT2004"]
    assert body["items"][2]["reasons"] == ["General compatibility"]
    assert body["has_next"] is False


@pytest.mark.asyncio
async def test_filters_and_page_size(api_client, people):
    response = await api_client.get(
        "/matches",
        params={"shared_interest": "true", "page_size": 1},
        headers=_headers("me"),
    )

    body = response.json()
    assert [item["candidate_id"] for item in body["items"]] == ["b"]
    assert body["total"] == 1


@pytest.mark.asyncio
async def test_like_skip_and_group_suggestion(api_client, people):
    liked = await api_client.post("/matches/a/like", headers=_headers("me"))
    skipped = await api_client.post("/matches/c/skip", headers=_headers("me"))
    assert liked.status_code == 204
    assert skipped.status_code == 204

    remaining = await api_client.get("/matches", headers=_headers("me"))
    assert [item["candidate_id"] for item in remaining.json()["items"]] == ["b"]

    group = await api_client.get("/matches/group-suggestion", headers=_headers("me"))
    assert [member["id"] for member in group.json()["members"]] == ["a"]


@pytest.mark.asyncio
async def test_unknown_viewer_and_self_like(api_client, people):
    ghost = await api_client.get("/matches", headers=_headers("ghost"))
    own = await api_client.post("/matches/me/like", headers=_headers("me"))

    assert ghost.status_code == 404
    assert own.status_code == 400
