from studymatch.domain.matching.ranking import MatchFilters, apply_filters, paginate, rank, suggest_group
from studymatch.domain.profiles.models import Profile


def _profile(user_id: str, **fields) -> Profile:
    fields.setdefault("display_name", user_id)
    return Profile(id=user_id, **fields)


ME = _profile(
    "me",
    university="Monash",
    course_label="FIT2004 Algorithms",
    interests=("Chess", "Coffee"),
    availability_slots=("Mon AM",),
)


def test_rank_orders_by_score_and_keeps_input_order_for_ties():
    pool = [
        _profile("low"),
        _profile("tie-1", university="Monash"),
        _profile("high", university="Monash", course_label="FIT2004", interests=("Chess",)),
        _profile("tie-2", university="Monash"),
    ]

    ranked = rank(ME, pool)

    assert [item.candidate_id for item in ranked] == ["high", "tie-1", "tie-2", "low"]
    assert ranked[0].score == 5.5


def test_rank_drops_self_excluded_and_duplicates():
    pool = [
        _profile("a", university="Monash"),
        ME,
        _profile("b"),
        _profile("a", university="Elsewhere"),
        _profile("c"),
    ]

    ranked = rank(ME, pool, exclude={"b"})

    assert [item.candidate_id for item in ranked] == ["a", "c"]
    assert ranked[0].score == 2.0


def test_rank_without_viewer_is_empty():
    assert rank(None, [_profile("a")]) == []


def test_filters_combine_with_and_and_preserve_order():
    pool = [
        _profile("uni-only", university="Monash"),
        _profile("both", university="Monash", interests=("Coffee",)),
        _profile("interest-only", interests=("Chess",)),
        _profile("both-2", university="Monash", interests=("Chess",)),
    ]
    ranked = rank(ME, pool)

    narrowed = apply_filters(ME, ranked, MatchFilters(same_university=True, shared_interest=True))

    assert [item.candidate_id for item in narrowed] == ["both", "both-2"]


def test_course_and_availability_filters():
    pool = [
        _profile("course", course_label="FIT2004 Advanced"),
        _profile("slot", availability_slots=("Mon AM",)),
        _profile("course-slot", course_label="FIT2004", availability_slots=("Mon AM",)),
    ]
    ranked = rank(ME, pool)

    assert [i.candidate_id for i in apply_filters(ME, ranked, MatchFilters(same_course=True))] == ["course-slot", "course"]
    assert [
        i.candidate_id for i in apply_filters(ME, ranked, MatchFilters(same_course=True, shared_availability=True))
    ] == ["course-slot"]


def test_inactive_filters_return_ranking_unchanged():
    ranked = rank(ME, [_profile("a"), _profile("b", university="Monash")])

    assert apply_filters(ME, ranked, MatchFilters()) == ranked


def test_paginate_is_fixed_size_and_stable():
    items = list(range(45))

    first = paginate(items, page=1, page_size=20)
    last = paginate(items, page=3, page_size=20)
    beyond = paginate(items, page=4, page_size=20)

    assert first.items == list(range(20))
    assert first.has_next
    assert last.items == list(range(40, 45))
    assert not last.has_next
    assert beyond.items == []
    assert beyond.total == 45


def test_suggest_group_takes_top_liked_profiles():
    liked = [
        _profile("a"),
        _profile("b", university="Monash", interests=("Chess",)),
        _profile("c", university="Monash"),
        _profile("d", course_label="FIT2004"),
    ]

    group = suggest_group(ME, liked, size=3)

    assert [profile.id for profile in group] == ["b", "c", "d"]
