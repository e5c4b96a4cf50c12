import pytest

from studymatch.domain.errors import InvalidArgument, NotFound
from studymatch.domain.matching import interactions
from studymatch.domain.matching.ranking import MatchFilters
from studymatch.domain.matching.service import MatchService
from studymatch.domain.profiles.models import Profile
from studymatch.domain.profiles.repo import InMemoryProfileStore
from studymatch.domain.social.repo import InMemoryConnectionStore
from studymatch.domain.social.service import ConnectionGraph
from studymatch.settings import settings


@pytest.fixture
def directory():
    return InMemoryProfileStore(
        [
            Profile(id="me", display_name="Me", university="Monash", course_label="FIT2004", interests=("Chess",)),
            Profile(id="a", display_name="A", university="Monash", course_label="FIT2004 Algorithms"),
            Profile(id="b", display_name="B", university="Monash", interests=("Chess",)),
            Profile(id="c", display_name="C"),
            Profile(id="d", display_name="D", interests=("Chess",)),
        ]
    )


@pytest.fixture
def graph(directory):
    return ConnectionGraph(InMemoryConnectionStore(), directory)


@pytest.fixture
def service(directory, graph):
    return MatchService(directory, graph)


@pytest.mark.asyncio
async def test_suggestions_ranked_for_viewer(service):
    page = await service.suggestions("me")

    assert [item.candidate_id for item in page.items] == ["a", "b", "d", "c"]
    assert page.items[0].score == 4.0
    assert page.total == 4


@pytest.mark.asyncio
async def test_liked_skipped_and_connected_candidates_are_excluded(service, graph):
    await service.like("me", "a")
    await service.skip("me", "c")
    await graph.request_connection("d", "me")

    page = await service.suggestions("me")

    assert [item.candidate_id for item in page.items] == ["b"]


@pytest.mark.asyncio
async def test_filters_and_paging(service, monkeypatch):
    monkeypatch.setattr(settings, "match_page_size", 1)

    filtered = await service.suggestions("me", filters=MatchFilters(shared_interest=True))
    second = await service.suggestions("me", filters=MatchFilters(shared_interest=True), page=2)

    assert [item.candidate_id for item in filtered.items] == ["b"]
    assert filtered.has_next
    assert [item.candidate_id for item in second.items] == ["d"]
    assert not second.has_next


@pytest.mark.asyncio
async def test_unknown_viewer_is_not_found(service):
    with pytest.raises(NotFound):
        await service.suggestions("ghost")


@pytest.mark.asyncio
async def test_like_validates_target(service):
    with pytest.raises(InvalidArgument):
        await service.like("me", "me")
    with pytest.raises(NotFound):
        await service.skip("me", "ghost")
    assert await interactions.seen_ids("me") == set()


@pytest.mark.asyncio
async def test_group_suggestion_uses_best_liked_profiles(service, monkeypatch):
    monkeypatch.setattr(settings, "group_suggestion_size", 2)
    for target in ("c", "d", "a"):
        await service.like("me", target)

    group = await service.group_suggestion("me")

    assert [profile.id for profile in group] == ["a", "d"]
