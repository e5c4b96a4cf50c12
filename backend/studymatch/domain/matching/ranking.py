"""Candidate ranking, narrowing filters and pagination."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Collection, Generic, Iterable, List, Optional, Sequence, Tuple, TypeVar

from studymatch.domain.matching import scoring
from studymatch.domain.profiles.models import Profile

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class CandidateScore:
	candidate_id: str
	score: float
	reasons: Tuple[str, ...]
	profile: Optional[Profile] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True, slots=True)
class MatchFilters:
	"""Client-side narrowing predicates, combined with AND."""

	same_university: bool = False
	same_course: bool = False
	shared_interest: bool = False
	shared_availability: bool = False

	@property
	def active(self) -> bool:
		return self.same_university or self.same_course or self.shared_interest or self.shared_availability

	def accepts(self, me: Profile, other: Profile) -> bool:
		if self.same_university and not (me.university and me.university == other.university):
			return False
		if self.same_course and not (me.course_code and me.course_code == other.course_code):
			return False
		if self.shared_interest and not set(me.interests) & set(other.interests):
			return False
		if self.shared_availability and not set(me.availability_slots) & set(other.availability_slots):
			return False
		return True


@dataclass(frozen=True, slots=True)
class Page(Generic[T]):
	items: List[T]
	page: int
	page_size: int
	total: int

	@property
	def has_next(self) -> bool:
		return self.page * self.page_size < self.total


def rank(me: Optional[Profile], pool: Iterable[Profile], exclude: Collection[str] = ()) -> List[CandidateScore]:
	"""Score and order ``pool`` for ``me``, highest first.

	Drops ``me``, excluded ids and repeated pool entries (first occurrence wins).
	``sorted`` is stable, so equal scores keep their input order.
	"""
	if me is None:
		return []
	excluded = {str(item) for item in exclude}
	excluded.add(me.id)
	scored: List[CandidateScore] = []
	for candidate in pool:
		if candidate is None or candidate.id in excluded:
			continue
		excluded.add(candidate.id)
		result = scoring.score(me, candidate)
		scored.append(
			CandidateScore(
				candidate_id=candidate.id,
				score=result.value,
				reasons=result.reasons,
				profile=candidate,
			)
		)
	return sorted(scored, key=lambda item: -item.score)


def apply_filters(me: Optional[Profile], ranked: Sequence[CandidateScore], filters: MatchFilters) -> List[CandidateScore]:
	if me is None:
		return []
	if not filters.active:
		return list(ranked)
	return [item for item in ranked if item.profile is not None and filters.accepts(me, item.profile)]


def paginate(items: Sequence[T], *, page: int = 1, page_size: int = 20) -> Page[T]:
	"""Return the 1-based ``page`` of ``items``; out-of-range pages are empty."""
	page = max(1, int(page))
	page_size = max(1, int(page_size))
	start = (page - 1) * page_size
	return Page(items=list(items[start : start + page_size]), page=page, page_size=page_size, total=len(items))


def suggest_group(me: Optional[Profile], liked: Iterable[Profile], *, size: int = 3) -> List[Profile]:
	"""Pick the best-scoring ``size`` liked profiles to seed a study group."""
	ranked = rank(me, liked)
	return [item.profile for item in ranked[: max(0, size)] if item.profile is not None]
